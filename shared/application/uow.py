"""
Unit of Work

A database transaction that also carries the domain events raised while
it was open. Events reach the message bus only through
``transaction.on_commit``, so a rolled back booking never sends mail.
"""

from typing import List
import logging

from django.db import transaction

from shared.domain.base import Aggregate, DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    Usage:
        with DjangoUnitOfWork() as uow:
            index = availability_repo.get(campsite_id, lock=True)
            index.reserve(booking.pk, dates)
            availability_repo.save(index)
            uow.collect_events(index)

    Nested units become savepoints; on_commit still waits for the
    outermost transaction.
    """

    def __init__(self):
        self._atomic = transaction.atomic()
        self._pending: List[DomainEvent] = []

    def __enter__(self):
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self._schedule_publish()
        elif self._pending:
            logger.warning(
                f"Transaction failed ({exc_type.__name__}), "
                f"dropping {len(self._pending)} event(s)"
            )
            self._pending.clear()
        return self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def add_event(self, event: DomainEvent):
        """Record an event raised by a command handler rather than an aggregate."""
        self._pending.append(event)

    def collect_events(self, aggregate: Aggregate):
        taken = aggregate.events
        aggregate.clear_events()
        self._pending.extend(taken)

    def _schedule_publish(self):
        if not self._pending:
            return
        events, self._pending = self._pending, []
        logger.debug(f"{len(events)} event(s) queued until commit")
        transaction.on_commit(lambda: _publish(events))


def _publish(events: List[DomainEvent]):
    from shared.application.message_bus import message_bus

    try:
        message_bus.publish_events(events)
    except Exception:
        # Runs after commit; the request has already succeeded.
        logger.exception(f"Publishing {len(events)} event(s) failed after commit")
