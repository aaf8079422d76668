from datetime import timedelta

import pytest
from django.utils import timezone

from apps.bookings.application.command_handlers import (
    NO_REFUND_WARNING,
    CancelBookingCommand,
    CancelBookingHandler,
    CompleteBookingCommand,
    CompleteBookingHandler,
)
from apps.bookings.models import BookedDateRange, Booking
from apps.bookings.services import is_available
from apps.bookings.tasks import complete_finished_bookings
from shared.domain.exceptions import Forbidden, InvalidTransition, NotFound

pytestmark = pytest.mark.django_db


@pytest.fixture
def booking(camper, campground, campsite, tomorrow):
    booking = Booking.objects.create(
        user=camper,
        campground=campground,
        campsite=campsite,
        start_date=tomorrow + timedelta(days=5),
        end_date=tomorrow + timedelta(days=8),
        total_days=3,
        payment_session_id="cs_cancel_me",
        paid=True,
        status=Booking.Status.CONFIRMED,
    )
    BookedDateRange.objects.create(
        campsite=campsite, booking=booking, start_date=booking.start_date, end_date=booking.end_date
    )
    return booking


def _cancel(booking_id, user):
    return CancelBookingHandler().handle(CancelBookingCommand(booking_id=booking_id, user=user))


def test_owner_cancels_confirmed_booking(booking, camper, campsite):
    result = _cancel(booking.pk, camper)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.CANCELLED
    assert booking.cancelled_by == camper
    assert booking.cancelled_at is not None
    assert booking.paid is True
    assert result.warning == NO_REFUND_WARNING


def test_cancel_releases_campsite_dates(booking, camper, campsite):
    assert not is_available(campsite.pk, booking.start_date, booking.end_date)

    _cancel(booking.pk, camper)

    assert not BookedDateRange.objects.exists()
    assert is_available(campsite.pk, booking.start_date, booking.end_date)


def test_admin_can_cancel_any_booking(booking, admin_user):
    _cancel(booking.pk, admin_user)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.CANCELLED
    assert booking.cancelled_by == admin_user


def test_other_user_cannot_cancel(booking, other_camper):
    with pytest.raises(Forbidden):
        _cancel(booking.pk, other_camper)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.CONFIRMED
    assert BookedDateRange.objects.filter(booking=booking).exists()


def test_cancelling_twice_fails(booking, camper):
    _cancel(booking.pk, camper)

    with pytest.raises(InvalidTransition):
        _cancel(booking.pk, camper)


def test_started_stay_cannot_be_cancelled(booking, camper):
    booking.start_date = timezone.localdate()
    booking.save(update_fields=["start_date"])

    with pytest.raises(InvalidTransition):
        _cancel(booking.pk, camper)


def test_completed_booking_cannot_be_cancelled(booking, camper):
    booking.status = Booking.Status.COMPLETED
    booking.save(update_fields=["status"])

    with pytest.raises(InvalidTransition) as excinfo:
        _cancel(booking.pk, camper)

    assert excinfo.value.context["status"] == Booking.Status.COMPLETED


@pytest.mark.parametrize(
    "status, start_offset, cancellable",
    [
        (Booking.Status.PENDING, 1, True),
        (Booking.Status.CONFIRMED, 1, True),
        (Booking.Status.CONFIRMED, 0, False),
        (Booking.Status.CANCELLED, 1, False),
        (Booking.Status.COMPLETED, 1, False),
    ],
)
def test_is_cancellable(status, start_offset, cancellable):
    today = timezone.localdate()
    booking = Booking(status=status, start_date=today + timedelta(days=start_offset))

    assert booking.is_cancellable(today) is cancellable


def test_pending_booking_can_be_cancelled(booking, camper):
    booking.status = Booking.Status.PENDING
    booking.save(update_fields=["status"])

    _cancel(booking.pk, camper)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.CANCELLED


def test_missing_booking(camper):
    with pytest.raises(NotFound):
        _cancel(424242, camper)


def test_cancellation_notice_repeats_no_refund_policy(
    booking, camper, django_capture_on_commit_callbacks, mailoutbox
):
    with django_capture_on_commit_callbacks(execute=True):
        _cancel(booking.pk, camper)

    assert len(mailoutbox) == 1
    assert NO_REFUND_WARNING in mailoutbox[0].body


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (Booking.Status.PENDING, Booking.Status.CONFIRMED, True),
        (Booking.Status.PENDING, Booking.Status.CANCELLED, True),
        (Booking.Status.CONFIRMED, Booking.Status.CANCELLED, True),
        (Booking.Status.CONFIRMED, Booking.Status.COMPLETED, True),
        (Booking.Status.PENDING, Booking.Status.COMPLETED, False),
        (Booking.Status.CANCELLED, Booking.Status.CONFIRMED, False),
        (Booking.Status.COMPLETED, Booking.Status.CANCELLED, False),
    ],
)
def test_status_transitions(current, target, allowed):
    booking = Booking(status=current)

    if allowed:
        booking.transition_to(target)
        assert booking.status == target
    else:
        with pytest.raises(InvalidTransition):
            booking.transition_to(target)


def test_complete_handler_requires_confirmed(booking):
    booking.status = Booking.Status.CANCELLED
    booking.save(update_fields=["status"])

    with pytest.raises(InvalidTransition):
        CompleteBookingHandler().handle(CompleteBookingCommand(booking_id=booking.pk))


def test_finished_stays_are_completed(booking):
    today = timezone.localdate()
    booking.start_date = today - timedelta(days=4)
    booking.end_date = today - timedelta(days=1)
    booking.save(update_fields=["start_date", "end_date"])

    result = complete_finished_bookings()

    booking.refresh_from_db()
    assert result == {"completed": 1}
    assert booking.status == Booking.Status.COMPLETED


def test_upcoming_stays_are_not_completed(booking):
    assert complete_finished_bookings() == {"completed": 0}

    booking.refresh_from_db()
    assert booking.status == Booking.Status.CONFIRMED
