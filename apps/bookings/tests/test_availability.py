from datetime import date, timedelta

import pytest

from apps.bookings.domain.availability import AvailabilityIndex
from apps.bookings.domain.events import CampsiteDatesReleased, CampsiteDatesReserved
from apps.bookings.models import BookedDateRange, Booking
from apps.bookings.repositories import AvailabilityIndexRepository
from apps.bookings.services import is_available
from shared.domain.exceptions import Conflict
from shared.domain.value_objects import DateRange

JUNE = date(2024, 6, 1)


def _range(start_offset, end_offset):
    return DateRange(JUNE + timedelta(days=start_offset), JUNE + timedelta(days=end_offset))


def test_empty_index_is_available():
    index = AvailabilityIndex(campsite_id=1)

    assert index.is_available(_range(0, 3))


def test_disabled_campsite_is_never_available():
    index = AvailabilityIndex(campsite_id=1, enabled=False)

    assert not index.is_available(_range(0, 3))
    with pytest.raises(Conflict):
        index.reserve(10, _range(0, 3))


@pytest.mark.parametrize(
    "query, expected",
    [
        ((0, 5), False),  # identical
        ((2, 4), False),  # inside
        ((-2, 1), False),  # overlaps start
        ((4, 8), False),  # overlaps end
        ((-3, 8), False),  # covers
        ((-3, 0), True),  # ends on arrival day
        ((5, 7), True),  # starts on departure day
        ((10, 12), True),  # far away
    ],
)
def test_overlap_is_half_open(query, expected):
    index = AvailabilityIndex(campsite_id=1)
    index.reserve(10, _range(0, 5))

    assert index.is_available(_range(*query)) is expected


def test_availability_matches_overlap_against_every_reservation():
    reserved = [_range(0, 3), _range(5, 6), _range(10, 14)]
    index = AvailabilityIndex(campsite_id=1)
    for booking_id, dates in enumerate(reserved, start=1):
        index.reserve(booking_id, dates)

    for start in range(-2, 16):
        for end in range(start + 1, 17):
            query = _range(start, end)
            expected = not any(query.overlaps_with(r) for r in reserved)
            assert index.is_available(query) is expected, query


def test_reserve_rejects_overlap_and_reports_conflicting_booking():
    index = AvailabilityIndex(campsite_id=7)
    index.reserve(1, _range(0, 4))

    with pytest.raises(Conflict) as excinfo:
        index.reserve(2, _range(3, 6))

    assert excinfo.value.context["conflicting_booking_ids"] == [1]
    assert len(index.reservations) == 1


def test_reserve_and_release_record_events():
    index = AvailabilityIndex(campsite_id=7)
    index.reserve(1, _range(0, 2))
    released = index.release(1)

    assert released is not None
    assert [type(e) for e in index.events] == [CampsiteDatesReserved, CampsiteDatesReleased]
    assert index.is_available(_range(0, 2))


def test_release_of_unknown_booking_is_noop():
    index = AvailabilityIndex(campsite_id=7)

    assert index.release(99) is None
    assert index.events == []


def _confirmed_booking(user, campsite, start, end, **extra):
    return Booking.objects.create(
        user=user,
        campground=campsite.campground,
        campsite=campsite,
        start_date=start,
        end_date=end,
        total_days=(end - start).days,
        status=Booking.Status.CONFIRMED,
        paid=True,
        **extra,
    )


@pytest.mark.django_db
def test_repository_round_trip(campsite, camper):
    booking = _confirmed_booking(camper, campsite, JUNE, JUNE + timedelta(days=2))
    repo = AvailabilityIndexRepository()

    index = repo.get(campsite.pk)
    index.reserve(booking.pk, booking.dates)
    repo.save(index)

    stored = BookedDateRange.objects.get(booking=booking)
    assert (stored.start_date, stored.end_date) == (JUNE, JUNE + timedelta(days=2))
    assert not is_available(campsite.pk, JUNE + timedelta(days=1), JUNE + timedelta(days=3))
    assert is_available(campsite.pk, JUNE + timedelta(days=2), JUNE + timedelta(days=3))

    index = repo.get(campsite.pk, lock=True)
    index.release(booking.pk)
    repo.save(index)

    assert not BookedDateRange.objects.exists()


@pytest.mark.django_db
def test_repository_missing_campsite(db):
    assert AvailabilityIndexRepository().get(12345) is None
    assert not is_available(12345, JUNE, JUNE + timedelta(days=1))


@pytest.mark.django_db
def test_switched_off_campsite_is_unavailable(campsite):
    campsite.availability = False
    campsite.save(update_fields=["availability"])

    assert not is_available(campsite.pk, JUNE, JUNE + timedelta(days=1))


@pytest.mark.django_db
def test_rebuild_restores_ranges_from_bookings(campsite, camper):
    first = _confirmed_booking(camper, campsite, JUNE, JUNE + timedelta(days=2))
    second = _confirmed_booking(camper, campsite, JUNE + timedelta(days=5), JUNE + timedelta(days=7))
    Booking.objects.create(
        user=camper,
        campground=campsite.campground,
        campsite=campsite,
        start_date=JUNE + timedelta(days=10),
        end_date=JUNE + timedelta(days=12),
        status=Booking.Status.CANCELLED,
    )

    index = AvailabilityIndexRepository().rebuild(campsite.pk)

    assert sorted(r.booking_id for r in index.reservations) == [first.pk, second.pk]
    assert set(BookedDateRange.objects.values_list("booking_id", flat=True)) == {first.pk, second.pk}


@pytest.mark.django_db
def test_rebuild_leaves_out_overlapping_booking(campsite, camper):
    first = _confirmed_booking(camper, campsite, JUNE, JUNE + timedelta(days=3))
    _confirmed_booking(camper, campsite, JUNE + timedelta(days=1), JUNE + timedelta(days=4))

    index = AvailabilityIndexRepository().rebuild(campsite.pk)

    assert [r.booking_id for r in index.reservations] == [first.pk]
