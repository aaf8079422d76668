"""
Availability index persistence.

The index of a campsite is stored as ``BookedDateRange`` rows plus the
campsite's ``availability`` flag. Loading it with ``lock=True`` takes a
row lock on the campsite, which serializes every confirmation for that
campsite until the surrounding transaction ends.
"""

from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction  # type: ignore

from apps.bookings.domain.availability import AvailabilityIndex, Reservation
from apps.bookings.services import _lock_queryset_if_possible
from apps.campgrounds.models import Campsite
from shared.domain.value_objects import DateRange

from .models import BookedDateRange, Booking

logger = logging.getLogger(__name__)

# Bookings that hold their dates.
HOLDING_STATUSES = (Booking.Status.CONFIRMED, Booking.Status.COMPLETED)


class AvailabilityIndexRepository:
    def get(self, campsite_id, lock: bool = False) -> Optional[AvailabilityIndex]:
        """Load the index of a campsite, or None when the campsite does not exist."""

        campsites = Campsite.objects.filter(pk=campsite_id)
        if lock:
            campsites = _lock_queryset_if_possible(campsites)
        campsite = campsites.first()
        if campsite is None:
            return None

        reservations = [
            Reservation(booking_id=row.booking_id, dates=DateRange(row.start_date, row.end_date))
            for row in BookedDateRange.objects.filter(campsite_id=campsite.pk).order_by("start_date")
        ]
        return AvailabilityIndex(
            campsite_id=campsite.pk,
            enabled=campsite.availability,
            reservations=reservations,
        )

    def save(self, index: AvailabilityIndex) -> None:
        """Write the reservation set back: insert new ranges, drop released ones."""

        stored = {
            row.booking_id: row
            for row in BookedDateRange.objects.filter(campsite_id=index.campsite_id)
        }
        wanted = {reservation.booking_id: reservation for reservation in index.reservations}

        released = [booking_id for booking_id in stored if booking_id not in wanted]
        if released:
            BookedDateRange.objects.filter(
                campsite_id=index.campsite_id, booking_id__in=released
            ).delete()

        BookedDateRange.objects.bulk_create(
            [
                BookedDateRange(
                    campsite_id=index.campsite_id,
                    booking_id=reservation.booking_id,
                    start_date=reservation.dates.start_date,
                    end_date=reservation.dates.end_date,
                )
                for booking_id, reservation in wanted.items()
                if booking_id not in stored
            ]
        )

    @transaction.atomic
    def rebuild(self, campsite_id) -> Optional[AvailabilityIndex]:
        """
        Re-derive the booked ranges of a campsite from its persisted bookings

        Compensating step for an index that drifted from the bookings table.
        Overlapping bookings are kept in creation order; later ones are
        reported and left without a range.
        """

        index = self.get(campsite_id, lock=True)
        if index is None:
            return None

        rebuilt = AvailabilityIndex(campsite_id=index.campsite_id, enabled=True)
        bookings = Booking.objects.filter(
            campsite_id=index.campsite_id,
            status__in=HOLDING_STATUSES,
        ).order_by("created_at", "pk")
        for booking in bookings:
            if rebuilt.overlapping(booking.dates):
                logger.error(
                    f"Booking {booking.pk} overlaps another booking of campsite "
                    f"{index.campsite_id} ({booking.dates}); left out of the index"
                )
                continue
            rebuilt.reserve(booking.pk, booking.dates)

        rebuilt.enabled = index.enabled
        rebuilt.clear_events()
        BookedDateRange.objects.filter(campsite_id=index.campsite_id).delete()
        self.save(rebuilt)
        logger.info(
            f"Rebuilt availability of campsite {index.campsite_id}: "
            f"{len(rebuilt.reservations)} reservation(s)"
        )
        return rebuilt
