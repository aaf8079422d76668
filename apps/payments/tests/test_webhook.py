"""Tests for the checkout provider webhook."""

from __future__ import annotations

import json
import time
from datetime import timedelta
from decimal import Decimal
from unittest import mock

import stripe
from django.core.cache import cache
from django.test import override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.bookings.application.command_handlers import QuoteBookingCommand, QuoteBookingHandler
from apps.bookings.models import Booking
from apps.campgrounds.models import Campground, Campsite
from apps.payments.gateway import EmulatedCheckoutGateway, PaymentGatewayError
from apps.users.models import User

SECRET = "whsec_test"


def _sign(body: bytes, secret: str = SECRET, timestamp: int | None = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    digest = stripe.WebhookSignature._compute_signature(f"{timestamp}.{body.decode()}", secret)
    return f"t={timestamp},v1={digest}"


@override_settings(STRIPE_WEBHOOK_SECRET=SECRET)
class StripeWebhookTests(APITestCase):
    def setUp(self) -> None:
        cache.clear()
        self.gateway = EmulatedCheckoutGateway()
        self.camper = User.objects.create_user(email="camper@example.com", password="CamperPass123")
        self.other = User.objects.create_user(email="other@example.com", password="OtherPass123")
        self.campground = Campground.objects.create(title="Pine Lake")
        self.campsite = Campsite.objects.create(
            campground=self.campground, name="A1", nightly_price=Decimal("40.00"), capacity=4
        )
        self.start = timezone.localdate() + timedelta(days=7)
        self.url = reverse("payments-webhook")

    def _session(self, user, start=None):
        start = start or self.start
        quote = QuoteBookingHandler().handle(
            QuoteBookingCommand(
                user=user,
                campground_id=self.campground.pk,
                campsite_id=self.campsite.pk,
                start_date=start,
                end_date=start + timedelta(days=2),
            )
        )
        return self.gateway.create_session(quote, title="Stay", success_url="http://s", cancel_url="http://c")

    def _post(self, event: dict, signature: str | None = None):
        body = json.dumps(event).encode()
        return self.client.post(
            self.url,
            data=body,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=signature if signature is not None else _sign(body),
        )

    def _completed(self, session) -> dict:
        return {
            "id": "evt_1",
            "type": "checkout.session.completed",
            "data": {"object": {"id": session.session_id, "metadata": session.metadata}},
        }

    def test_completed_session_confirms_booking(self) -> None:
        session = self._session(self.camper)

        response = self._post(self._completed(session))

        self.assertEqual(response.status_code, 200, response.content)
        booking = Booking.objects.get(payment_session_id=session.session_id)
        self.assertEqual(booking.user, self.camper)
        self.assertEqual(booking.status, Booking.Status.CONFIRMED)
        self.assertEqual(response.json()["booking_id"], booking.pk)

    def test_duplicate_delivery_creates_one_booking(self) -> None:
        session = self._session(self.camper)

        first = self._post(self._completed(session))
        second = self._post(self._completed(session))

        self.assertTrue(first.json()["created"])
        self.assertFalse(second.json()["created"])
        self.assertEqual(Booking.objects.count(), 1)

    def test_redirect_then_webhook(self) -> None:
        session = self._session(self.camper)
        self.client.force_authenticate(self.camper)
        redirect = self.client.get(reverse("booking-payment-success"), {"session_id": session.session_id})
        self.client.force_authenticate(None)

        response = self._post(self._completed(session))

        self.assertEqual(response.json()["booking_id"], redirect.data["booking"]["id"])
        self.assertEqual(Booking.objects.count(), 1)

    def test_paid_slot_conflict_is_acknowledged(self) -> None:
        first = self._session(self.camper)
        second = self._session(self.other, start=self.start + timedelta(days=1))
        self._post(self._completed(first))

        response = self._post(self._completed(second))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["error"], "paid_slot_conflict")
        self.assertEqual(Booking.objects.count(), 1)

    def test_unpaid_session_is_acknowledged_without_booking(self) -> None:
        session = self._session(self.camper)
        self.gateway.set_payment_status(session.session_id, "unpaid")

        response = self._post(self._completed(session))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "payment_pending")
        self.assertFalse(Booking.objects.exists())

    def test_provider_failure_asks_for_retry(self) -> None:
        session = self._session(self.camper)

        with mock.patch.object(
            EmulatedCheckoutGateway, "retrieve_session", side_effect=PaymentGatewayError("down")
        ):
            response = self._post(self._completed(session))

        self.assertEqual(response.status_code, 502)
        self.assertFalse(Booking.objects.exists())

    def test_other_events_are_ignored(self) -> None:
        response = self._post({"id": "evt_2", "type": "payment_intent.created", "data": {"object": {}}})

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Booking.objects.exists())

    def test_bad_signature_is_rejected(self) -> None:
        session = self._session(self.camper)
        body = json.dumps(self._completed(session)).encode()

        response = self._post(self._completed(session), signature=_sign(body, secret="whsec_wrong"))

        self.assertEqual(response.status_code, 400)
        self.assertFalse(Booking.objects.exists())

    def test_missing_session_fields(self) -> None:
        event = {"id": "evt_3", "type": "checkout.session.completed", "data": {"object": {"id": "cs_1"}}}

        response = self._post(event)

        self.assertEqual(response.status_code, 400)

    def test_get_not_allowed(self) -> None:
        self.assertEqual(self.client.get(self.url).status_code, 405)

    def test_any_matching_signature_is_accepted(self) -> None:
        event = {"id": "evt_4", "type": "payment_intent.created", "data": {"object": {}}}
        body = json.dumps(event).encode()
        timestamp, good = _sign(body).split(",")

        response = self._post(event, signature=f"{timestamp},v1=deadbeef,{good}")

        self.assertEqual(response.status_code, 200)

    def test_stale_signature_is_rejected(self) -> None:
        event = {"id": "evt_5", "type": "payment_intent.created", "data": {"object": {}}}
        body = json.dumps(event).encode()

        response = self._post(event, signature=_sign(body, timestamp=int(time.time()) - 301))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_signature")

    def test_malformed_signature_header_is_rejected(self) -> None:
        event = {"id": "evt_6", "type": "payment_intent.created", "data": {"object": {}}}

        for header in ("", "t=abc,v1=00", "v1=00", f"t={int(time.time())}"):
            response = self._post(event, signature=header)
            self.assertEqual(response.status_code, 400, header)

    def test_invalid_json_is_rejected(self) -> None:
        body = b"not json"

        response = self.client.post(
            self.url, data=body, content_type="application/json", HTTP_STRIPE_SIGNATURE=_sign(body)
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_json")

    @override_settings(STRIPE_WEBHOOK_SECRET="")
    def test_missing_secret_rejects_everything(self) -> None:
        event = {"id": "evt_7", "type": "payment_intent.created", "data": {"object": {}}}
        body = json.dumps(event).encode()

        response = self._post(event, signature=_sign(body, secret=""))

        self.assertEqual(response.status_code, 400)
