"""
Booking Domain Events

Published by the unit of work after the transaction commits.
"""

from dataclasses import dataclass
from typing import Optional

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange


@dataclass
class BookingConfirmed(DomainEvent):
    """
    Payment verified and booking persisted as confirmed

    Triggers:
    - Confirmation e-mail to the camper
    """
    booking_id: int
    user_id: int
    campground_id: int
    campsite_id: Optional[int]
    payment_session_id: str
    dates: DateRange


@dataclass
class BookingCancelled(DomainEvent):
    """
    Booking cancelled by its owner or an admin (never refunded)

    Triggers:
    - Cancellation notice repeating the no-refund policy
    """
    booking_id: int
    user_id: int
    cancelled_by_id: int
    old_status: str


@dataclass
class BookingCompleted(DomainEvent):
    """Stay is over (confirmed -> completed)"""
    booking_id: int
    user_id: int


@dataclass
class CampsiteDatesReserved(DomainEvent):
    campsite_id: int
    booking_id: int
    dates: DateRange


@dataclass
class CampsiteDatesReleased(DomainEvent):
    campsite_id: int
    booking_id: int
    dates: DateRange
