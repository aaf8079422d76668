"""
Availability Index Aggregate

The consistency boundary that prevents double bookings of a campsite.
All date reservations for a campsite go through this aggregate.

Strategy:
1. Domain validation: is_available() checks the unit switch and overlaps
2. Pessimistic locking: the repository loads the index with
   SELECT ... FOR UPDATE on the campsite row, so two confirmations for
   the same campsite serialize on that lock
3. The reservation is written in the same transaction as the booking
"""

from dataclasses import dataclass, field
from typing import List, Optional

from shared.domain.base import Aggregate
from shared.domain.exceptions import Conflict
from shared.domain.value_objects import DateRange


@dataclass
class Reservation:
    """A booked [start, end) range held by one booking."""
    booking_id: int
    dates: DateRange


@dataclass
class AvailabilityIndex(Aggregate):
    """
    Booked date ranges of one campsite

    Key invariants:
    - No two reservations overlap (half-open ranges, back-to-back is fine)
    - A switched-off campsite is unavailable for every range
    """

    campsite_id: int = 0
    enabled: bool = True
    reservations: List[Reservation] = field(default_factory=list)

    def is_available(self, dates: DateRange) -> bool:
        if not self.enabled:
            return False
        return not self.overlapping(dates)

    def overlapping(self, dates: DateRange) -> List[Reservation]:
        return [r for r in self.reservations if r.dates.overlaps_with(dates)]

    def reserve(self, booking_id: int, dates: DateRange) -> Reservation:
        """
        Reserve dates for a booking

        Raises:
            Conflict: if the campsite is switched off or the dates overlap
        """
        if not self.enabled:
            raise Conflict(
                f"Campsite {self.campsite_id} is not available for booking",
                campsite_id=self.campsite_id,
            )

        clashes = self.overlapping(dates)
        if clashes:
            raise Conflict(
                f"Dates {dates} are not available for campsite {self.campsite_id}",
                campsite_id=self.campsite_id,
                conflicting_booking_ids=[r.booking_id for r in clashes],
            )

        reservation = Reservation(booking_id=booking_id, dates=dates)
        self.reservations.append(reservation)
        self.reservations.sort(key=lambda r: r.dates.start_date)

        from apps.bookings.domain.events import CampsiteDatesReserved

        self.add_event(CampsiteDatesReserved(
            campsite_id=self.campsite_id,
            booking_id=booking_id,
            dates=dates,
        ))
        return reservation

    def release(self, booking_id: int) -> Optional[Reservation]:
        """Free the range held by a booking; returns None if it held nothing."""
        reservation = self.reservation_for(booking_id)
        if reservation is None:
            return None

        self.reservations.remove(reservation)

        from apps.bookings.domain.events import CampsiteDatesReleased

        self.add_event(CampsiteDatesReleased(
            campsite_id=self.campsite_id,
            booking_id=booking_id,
            dates=reservation.dates,
        ))
        return reservation

    def reservation_for(self, booking_id: int) -> Optional[Reservation]:
        return next((r for r in self.reservations if r.booking_id == booking_id), None)

    def __str__(self):
        return f"AvailabilityIndex(campsite={self.campsite_id}, reservations={len(self.reservations)})"
