"""
Domain building blocks

Shared by the booking, campground and safety contexts:
- ValueObject: frozen dataclasses compared field by field (Money, DateRange)
- Aggregate: a consistency boundary that records what happened to it
- DomainEvent: a fact recorded by an aggregate or a command handler
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable, identity-less; subclasses are frozen dataclasses."""


@dataclass
class Aggregate:
    """
    Aggregate root

    Events pile up in the aggregate until a unit of work takes them
    with ``DjangoUnitOfWork.collect_events``; nothing is published
    from here directly.
    """
    _pending: List['DomainEvent'] = field(
        default_factory=list, repr=False, init=False, compare=False
    )

    def add_event(self, event: 'DomainEvent'):
        self._pending.append(event)

    def clear_events(self):
        self._pending.clear()

    @property
    def events(self) -> List['DomainEvent']:
        return list(self._pending)


@dataclass(kw_only=True)
class DomainEvent:
    """
    Something that happened to a booking or a campsite

    Payload fields are declared by subclasses; ``event_id`` and
    ``occurred_at`` are filled in automatically.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def name(self) -> str:
        return type(self).__name__
