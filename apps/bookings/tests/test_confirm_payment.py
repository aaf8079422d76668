from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest

from apps.bookings.application.command_handlers import (
    ConfirmPaymentCommand,
    ConfirmPaymentHandler,
    QuoteBookingCommand,
    QuoteBookingHandler,
)
from apps.bookings.models import BookedDateRange, Booking
from apps.payments.gateway import PaymentGatewayError
from shared.domain.exceptions import (
    Conflict,
    Forbidden,
    NotFound,
    PaidSlotConflict,
    PaymentIncomplete,
    UpstreamError,
)

pytestmark = pytest.mark.django_db


def _paid_session(gateway, user, campground, start, nights=3, campsite=None, guest_count=2):
    quote = QuoteBookingHandler().handle(
        QuoteBookingCommand(
            user=user,
            campground_id=campground.pk,
            campsite_id=campsite.pk if campsite else None,
            start_date=start,
            end_date=start + timedelta(days=nights),
            guest_count=guest_count,
        )
    )
    return gateway.create_session(
        quote,
        title="Test stay",
        success_url="http://testserver/success?session_id={CHECKOUT_SESSION_ID}",
        cancel_url="http://testserver/cancel",
    )


def _confirm(gateway, session_id, user):
    return ConfirmPaymentHandler(gateway=gateway).handle(
        ConfirmPaymentCommand(session_id=session_id, user_id=user.pk)
    )


def test_paid_session_creates_confirmed_booking(gateway, camper, campground, campsite, tomorrow):
    session = _paid_session(gateway, camper, campground, tomorrow, campsite=campsite)

    result = _confirm(gateway, session.session_id, camper)

    booking = result.booking
    assert result.created is True
    assert booking.status == Booking.Status.CONFIRMED
    assert booking.paid is True
    assert booking.payment_session_id == session.session_id
    assert booking.user == camper
    assert booking.campground == campground
    assert booking.campsite == campsite
    assert (booking.start_date, booking.end_date) == (tomorrow, tomorrow + timedelta(days=3))
    assert booking.total_days == 3
    assert booking.total_price == Decimal("150.00")
    assert booking.nightly_rate == Decimal("50.00")
    assert booking.guest_count == 2
    assert list(camper.bookings.all()) == [booking]
    assert list(campground.bookings.all()) == [booking]

    reserved = BookedDateRange.objects.get(campsite=campsite)
    assert reserved.booking_id == booking.pk
    assert (reserved.start_date, reserved.end_date) == (booking.start_date, booking.end_date)


def test_confirm_is_idempotent(gateway, camper, campground, campsite, tomorrow):
    session = _paid_session(gateway, camper, campground, tomorrow, campsite=campsite)

    first = _confirm(gateway, session.session_id, camper)
    second = _confirm(gateway, session.session_id, camper)

    assert first.created is True
    assert second.created is False
    assert second.booking.pk == first.booking.pk
    assert Booking.objects.count() == 1
    assert BookedDateRange.objects.count() == 1


def test_confirm_without_campsite(gateway, camper, campground, campsite, tomorrow):
    session = _paid_session(gateway, camper, campground, tomorrow)

    result = _confirm(gateway, session.session_id, camper)
    again = _confirm(gateway, session.session_id, camper)

    assert result.booking.campsite is None
    assert result.booking.total_price == Decimal("150.00")
    assert again.booking.pk == result.booking.pk
    assert not BookedDateRange.objects.exists()


def test_concurrent_confirmation_returns_winning_booking(gateway, camper, campground, campsite, tomorrow):
    session = _paid_session(gateway, camper, campground, tomorrow)
    winner = Booking.objects.create(
        user=camper,
        campground=campground,
        start_date=tomorrow,
        end_date=tomorrow + timedelta(days=3),
        payment_session_id=session.session_id,
        paid=True,
        status=Booking.Status.CONFIRMED,
    )

    # Both lookups miss, as if the other request committed right after them.
    with mock.patch.object(
        ConfirmPaymentHandler, "_existing_booking", side_effect=[None, None, winner]
    ):
        result = _confirm(gateway, session.session_id, camper)

    assert result.created is False
    assert result.booking.pk == winner.pk
    assert Booking.objects.filter(payment_session_id=session.session_id).count() == 1


def test_second_session_for_taken_dates_conflicts(gateway, camper, other_camper, campground, campsite, tomorrow):
    first = _paid_session(gateway, camper, campground, tomorrow, campsite=campsite)
    second = _paid_session(gateway, other_camper, campground, tomorrow + timedelta(days=2), campsite=campsite)

    _confirm(gateway, first.session_id, camper)
    with pytest.raises(PaidSlotConflict) as excinfo:
        _confirm(gateway, second.session_id, other_camper)

    assert isinstance(excinfo.value, Conflict)
    assert excinfo.value.context["session_id"] == second.session_id
    assert Booking.objects.count() == 1
    assert BookedDateRange.objects.count() == 1


def test_back_to_back_sessions_both_confirm(gateway, camper, other_camper, campground, campsite, tomorrow):
    first = _paid_session(gateway, camper, campground, tomorrow, nights=2, campsite=campsite)
    second = _paid_session(gateway, other_camper, campground, tomorrow + timedelta(days=2), campsite=campsite)

    _confirm(gateway, first.session_id, camper)
    _confirm(gateway, second.session_id, other_camper)

    assert Booking.objects.filter(status=Booking.Status.CONFIRMED).count() == 2


def test_campsite_switched_off_after_payment(gateway, camper, campground, campsite, tomorrow):
    session = _paid_session(gateway, camper, campground, tomorrow, campsite=campsite)
    campsite.availability = False
    campsite.save(update_fields=["availability"])

    with pytest.raises(PaidSlotConflict):
        _confirm(gateway, session.session_id, camper)

    assert not Booking.objects.exists()


def test_unknown_session(gateway, camper):
    with pytest.raises(NotFound):
        _confirm(gateway, "cs_does_not_exist", camper)


def test_unpaid_session(gateway, camper, campground, campsite, tomorrow):
    session = _paid_session(gateway, camper, campground, tomorrow, campsite=campsite)
    gateway.set_payment_status(session.session_id, "unpaid")

    with pytest.raises(PaymentIncomplete):
        _confirm(gateway, session.session_id, camper)

    assert not Booking.objects.exists()


def test_session_of_another_user(gateway, camper, other_camper, campground, campsite, tomorrow):
    session = _paid_session(gateway, camper, campground, tomorrow, campsite=campsite)

    with pytest.raises(Forbidden):
        _confirm(gateway, session.session_id, other_camper)

    assert not Booking.objects.exists()


def test_provider_failure_is_upstream_error(camper):
    failing = mock.Mock()
    failing.retrieve_session.side_effect = PaymentGatewayError("timeout")

    with pytest.raises(UpstreamError):
        ConfirmPaymentHandler(gateway=failing).handle(
            ConfirmPaymentCommand(session_id="cs_1", user_id=camper.pk)
        )


def test_confirmation_email_sent_after_commit(
    gateway, camper, campground, campsite, tomorrow, django_capture_on_commit_callbacks, mailoutbox
):
    session = _paid_session(gateway, camper, campground, tomorrow, campsite=campsite)

    with django_capture_on_commit_callbacks(execute=True):
        result = _confirm(gateway, session.session_id, camper)

    assert len(mailoutbox) == 1
    assert mailoutbox[0].to == [camper.email]
    assert f"#{result.booking.pk}" in mailoutbox[0].subject
