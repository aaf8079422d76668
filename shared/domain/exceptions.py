"""
Domain Errors

Every failure of the booking engine is a DomainError subclass carrying
a stable machine-readable code, the HTTP status the API answers with,
and optional context that is echoed back to the client.
"""

from typing import Any, Dict, Iterable


class DomainError(Exception):
    """Base class for expected, client-visible business failures."""

    status_code = 400
    code = 'domain_error'

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        payload = {'error': self.code, 'detail': self.message}
        payload.update(self.context)
        return payload


class NotFound(DomainError):
    status_code = 404
    code = 'not_found'


class PreconditionFailed(DomainError):
    """Booking blocked by an unmet precondition (alert, unit switched off)."""

    code = 'precondition_failed'


class UnacknowledgedAlerts(PreconditionFailed):
    code = 'unacknowledged_alerts'

    def __init__(self, titles: Iterable[str]):
        titles = list(titles)
        super().__init__(
            "You must acknowledge all safety alerts before booking. "
            f"Required alerts: {', '.join(titles)}",
            alerts=titles,
        )
        self.titles = titles


class CapacityExceeded(DomainError):
    code = 'capacity_exceeded'


class InvalidRange(DomainError):
    code = 'invalid_range'


class Conflict(DomainError):
    status_code = 409
    code = 'conflict'


class PaidSlotConflict(Conflict):
    """Payment went through but the campsite was taken by an earlier confirmation."""

    code = 'paid_slot_conflict'


class Forbidden(DomainError):
    status_code = 403
    code = 'forbidden'


class PaymentIncomplete(DomainError):
    code = 'payment_incomplete'


class InvalidTransition(DomainError):
    code = 'invalid_transition'


class UpstreamError(DomainError):
    status_code = 502
    code = 'upstream_error'
