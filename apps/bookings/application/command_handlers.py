"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- QuoteBookingCommand: Price a stay without persisting anything
- ConfirmPaymentCommand: Turn a paid checkout session into a confirmed booking
- CancelBookingCommand: Cancel a booking (owner or admin, never refunded)
- CompleteBookingCommand: Mark a finished stay as completed
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional
import logging

import structlog
from django.db import IntegrityError
from django.utils import timezone

from apps.bookings.domain.events import BookingCancelled, BookingCompleted, BookingConfirmed
from apps.bookings.domain.pricing import cheapest_rate, price_stay, stay_dates
from apps.bookings.domain.quote import BookingQuote
from apps.bookings.models import Booking
from apps.bookings.repositories import AvailabilityIndexRepository
from apps.campgrounds.models import Campground, Campsite
from apps.payments.gateway import PaymentGatewayError, get_checkout_gateway
from apps.safety.gate import AcknowledgementGate
from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import (
    CapacityExceeded,
    Conflict,
    Forbidden,
    InvalidRange,
    InvalidTransition,
    NotFound,
    PaidSlotConflict,
    PaymentIncomplete,
    PreconditionFailed,
    UpstreamError,
)
from shared.domain.value_objects import Money

logger = logging.getLogger(__name__)
payment_log = structlog.get_logger("apps.bookings.payments")

NO_REFUND_WARNING = (
    "Cancelled bookings are not refunded. "
    "Contact support if you believe you are owed a refund."
)


# ===== Commands =====

@dataclass
class QuoteBookingCommand:
    """
    Command to price a stay

    Produces an unpersisted quote. Other bookings are not consulted here:
    the slot is only checked, under a lock, once the payment succeeded.
    """
    user: object
    campground_id: int
    start_date: date
    end_date: date
    guest_count: int = 1
    campsite_id: Optional[int] = None


@dataclass
class ConfirmPaymentCommand:
    """Command to confirm a booking from a checkout session"""
    session_id: str
    user_id: int


@dataclass
class CancelBookingCommand:
    booking_id: int
    user: object


@dataclass
class CompleteBookingCommand:
    booking_id: int


@dataclass
class ConfirmationResult:
    booking: Booking
    created: bool


@dataclass
class CancellationResult:
    booking: Booking
    warning: str = NO_REFUND_WARNING


# ===== Command Handlers =====

class QuoteBookingHandler:
    """
    Handler for QuoteBooking command

    Steps, each short-circuiting on failure:
    1. Resolve the campground (NotFound)
    2. Unacknowledged safety alerts (PreconditionFailed)
    3. Campsite checks: exists, belongs to the campground, switched on,
       fits the party (NotFound / Conflict / PreconditionFailed / CapacityExceeded)
    4. Effective nightly rate: the campsite's, or the cheapest available one
    5. Nights and total (InvalidRange)
    """

    def __init__(self, gate: Optional[AcknowledgementGate] = None, today=timezone.localdate):
        self.gate = gate or AcknowledgementGate()
        self.today = today

    def handle(self, command: QuoteBookingCommand) -> BookingQuote:
        user = command.user
        logger.info(
            f"Quoting campground {command.campground_id} (campsite {command.campsite_id}) "
            f"for user {user.pk}, dates {command.start_date} - {command.end_date}"
        )

        try:
            campground = Campground.objects.get(pk=command.campground_id)
        except Campground.DoesNotExist:
            raise NotFound(
                f"Campground {command.campground_id} not found",
                campground_id=command.campground_id,
            )

        self.gate.ensure_acknowledged(user, campground.pk, command.campsite_id)

        if command.campsite_id is not None:
            rate = self._campsite_rate(campground, command)
        else:
            rate = cheapest_rate(
                campground.campsites.filter(availability=True).values_list("nightly_price", flat=True)
            )
            if rate is None:
                raise PreconditionFailed(
                    f"Campground {campground.pk} has no available campsites",
                    campground_id=campground.pk,
                )

        dates = stay_dates(command.start_date, command.end_date)
        tomorrow = self.today() + timedelta(days=1)
        if dates.start_date < tomorrow:
            raise InvalidRange(
                "Start date must be in the future.",
                start_date=dates.start_date.isoformat(),
            )

        currency = _booking_currency()
        stay = price_stay(dates.start_date, dates.end_date, rate, currency)
        return BookingQuote(
            user_id=user.pk,
            campground_id=campground.pk,
            campsite_id=command.campsite_id,
            start_date=dates.start_date,
            end_date=dates.end_date,
            nights=stay.nights,
            total=stay.total,
            guest_count=command.guest_count,
            effective_rate=Money(rate, currency),
        )

    def _campsite_rate(self, campground: Campground, command: QuoteBookingCommand):
        try:
            campsite = Campsite.objects.get(pk=command.campsite_id)
        except Campsite.DoesNotExist:
            raise NotFound(
                f"Campsite {command.campsite_id} not found",
                campsite_id=command.campsite_id,
            )

        if campsite.campground_id != campground.pk:
            raise Conflict(
                f"Campsite {campsite.pk} does not belong to campground {campground.pk}",
                campsite_id=campsite.pk,
                campground_id=campground.pk,
            )
        if not campsite.availability:
            raise PreconditionFailed(
                f"Campsite {campsite.name} is not available for booking",
                campsite_id=campsite.pk,
            )
        if command.guest_count > campsite.capacity:
            raise CapacityExceeded(
                f"Guest count ({command.guest_count}) exceeds campsite capacity ({campsite.capacity})",
                guest_count=command.guest_count,
                capacity=campsite.capacity,
            )
        return campsite.nightly_price


class ConfirmPaymentHandler:
    """
    Handler for ConfirmPayment command

    Idempotent: any number of calls for one session yield one booking.

    Strategy:
    1. Retrieve the session from the provider (NotFound / UpstreamError)
    2. Require payment_status == "paid" (PaymentIncomplete)
    3. Require the session to belong to the caller (Forbidden)
    4. Return the booking already created for this session, if any
    5. Start database transaction (atomic)
    6. Load the campsite's AvailabilityIndex with SELECT FOR UPDATE
    7. Repeat the lookup of step 4 under the lock
    8. Re-check availability; a taken slot after payment is PaidSlotConflict
    9. Create the confirmed booking and reserve its dates
    10. Commit, then publish events
    The unique payment_session_id constraint is the last line: a violation
    means a concurrent call won, and its booking is returned.
    """

    def __init__(self, gateway=None, availability_repo=None):
        self.gateway = gateway or get_checkout_gateway()
        self.availability_repo = availability_repo or AvailabilityIndexRepository()

    def handle(self, command: ConfirmPaymentCommand) -> ConfirmationResult:
        session_id = command.session_id
        logger.info(f"Confirming payment session {session_id} for user {command.user_id}")

        try:
            session = self.gateway.retrieve_session(session_id)
        except PaymentGatewayError as exc:
            raise UpstreamError(
                f"Could not retrieve checkout session: {exc}",
                session_id=session_id,
            )
        if session is None:
            raise NotFound(f"Checkout session {session_id} not found", session_id=session_id)

        if session.payment_status != "paid":
            raise PaymentIncomplete(
                "Payment has not been completed for this session.",
                session_id=session_id,
                payment_status=session.payment_status,
            )

        if str(session.metadata.get("userId")) != str(command.user_id):
            raise Forbidden(
                "This checkout session belongs to another user.",
                session_id=session_id,
            )

        existing = self._existing_booking(session_id)
        if existing is not None:
            logger.info(f"Session {session_id} already confirmed as booking {existing.pk}")
            return ConfirmationResult(existing, created=False)

        quote = BookingQuote.from_metadata(session.metadata)

        try:
            return self._create_booking(session_id, quote)
        except IntegrityError:
            existing = self._existing_booking(session_id)
            if existing is None:
                raise
            logger.info(f"Concurrent confirmation of session {session_id} won; returning booking {existing.pk}")
            return ConfirmationResult(existing, created=False)

    def _create_booking(self, session_id: str, quote: BookingQuote) -> ConfirmationResult:
        if not Campground.objects.filter(pk=quote.campground_id).exists():
            raise NotFound(
                f"Campground {quote.campground_id} not found",
                campground_id=quote.campground_id,
            )

        with DjangoUnitOfWork() as uow:
            index = None
            if quote.campsite_id is not None:
                index = self.availability_repo.get(quote.campsite_id, lock=True)
                if index is None:
                    raise NotFound(
                        f"Campsite {quote.campsite_id} not found",
                        campsite_id=quote.campsite_id,
                    )

            existing = self._existing_booking(session_id)
            if existing is not None:
                return ConfirmationResult(existing, created=False)

            dates = quote.dates
            if index is not None and not index.is_available(dates):
                payment_log.error(
                    "booking.paid_slot_conflict",
                    session_id=session_id,
                    user_id=quote.user_id,
                    campground_id=quote.campground_id,
                    campsite_id=quote.campsite_id,
                    start_date=dates.start_date.isoformat(),
                    end_date=dates.end_date.isoformat(),
                    total_price=str(quote.total.amount),
                    conflicting_booking_ids=[r.booking_id for r in index.overlapping(dates)],
                )
                raise PaidSlotConflict(
                    "Payment succeeded but the campsite was booked by someone else for these dates. "
                    "Support has been notified and will arrange a refund.",
                    session_id=session_id,
                    campsite_id=quote.campsite_id,
                    start_date=dates.start_date.isoformat(),
                    end_date=dates.end_date.isoformat(),
                )

            booking = Booking.objects.create(
                user_id=quote.user_id,
                campground_id=quote.campground_id,
                campsite_id=quote.campsite_id,
                start_date=dates.start_date,
                end_date=dates.end_date,
                total_days=quote.nights,
                nightly_rate=quote.effective_rate.amount,
                total_price=quote.total.amount,
                currency=quote.currency,
                guest_count=quote.guest_count,
                payment_session_id=session_id,
                paid=True,
                status=Booking.Status.CONFIRMED,
            )

            if index is not None:
                index.reserve(booking.pk, dates)
                self.availability_repo.save(index)
                uow.collect_events(index)

            uow.add_event(BookingConfirmed(
                booking_id=booking.pk,
                user_id=booking.user_id,
                campground_id=booking.campground_id,
                campsite_id=booking.campsite_id,
                payment_session_id=session_id,
                dates=dates,
            ))

        payment_log.info(
            "booking.confirmed",
            booking_id=booking.pk,
            session_id=session_id,
            user_id=booking.user_id,
            campsite_id=booking.campsite_id,
        )
        return ConfirmationResult(booking, created=True)

    @staticmethod
    def _existing_booking(session_id: str) -> Optional[Booking]:
        return Booking.objects.filter(payment_session_id=session_id).first()


class CancelBookingHandler:
    """Handler for cancelling a booking; frees its campsite dates"""

    def __init__(self, availability_repo=None, today=timezone.localdate):
        self.availability_repo = availability_repo or AvailabilityIndexRepository()
        self.today = today

    def handle(self, command: CancelBookingCommand) -> CancellationResult:
        user = command.user
        logger.info(f"Cancelling booking {command.booking_id} by user {user.pk}")

        with DjangoUnitOfWork() as uow:
            booking = (
                Booking.objects.select_for_update()
                .filter(pk=command.booking_id)
                .first()
            )
            if booking is None:
                raise NotFound(f"Booking {command.booking_id} not found", booking_id=command.booking_id)

            if not (booking.is_owned_by(user) or getattr(user, "is_admin", False)):
                raise Forbidden(
                    "You can only cancel your own bookings.",
                    booking_id=booking.pk,
                )

            if not booking.is_cancellable(self.today()):
                raise InvalidTransition(
                    "Only pending or confirmed bookings can be cancelled, and only before the stay starts.",
                    booking_id=booking.pk,
                    status=booking.status,
                    start_date=booking.start_date.isoformat(),
                )

            old_status = booking.status
            booking.transition_to(Booking.Status.CANCELLED)
            booking.cancelled_at = timezone.now()
            booking.cancelled_by = user
            booking.save(update_fields=["status", "cancelled_at", "cancelled_by", "updated_at"])

            if booking.campsite_id is not None:
                index = self.availability_repo.get(booking.campsite_id, lock=True)
                if index is not None and index.release(booking.pk) is not None:
                    self.availability_repo.save(index)
                    uow.collect_events(index)

            uow.add_event(BookingCancelled(
                booking_id=booking.pk,
                user_id=booking.user_id,
                cancelled_by_id=user.pk,
                old_status=old_status,
            ))

        logger.info(f"Booking {booking.pk} cancelled ({old_status} -> cancelled), no refund issued")
        return CancellationResult(booking)


class CompleteBookingHandler:
    """Handler for completing a booking once the stay is over"""

    def handle(self, command: CompleteBookingCommand) -> Booking:
        with DjangoUnitOfWork() as uow:
            booking = (
                Booking.objects.select_for_update()
                .filter(pk=command.booking_id)
                .first()
            )
            if booking is None:
                raise NotFound(f"Booking {command.booking_id} not found", booking_id=command.booking_id)

            booking.transition_to(Booking.Status.COMPLETED)
            booking.save(update_fields=["status", "updated_at"])

            uow.add_event(BookingCompleted(booking_id=booking.pk, user_id=booking.user_id))

        logger.info(f"Booking {booking.pk} completed")
        return booking


def _booking_currency() -> str:
    from django.conf import settings

    return getattr(settings, "BOOKING_CURRENCY", "USD")
