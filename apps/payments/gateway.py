"""
Checkout session gateway

Creates and retrieves hosted checkout sessions. The booking quote rides
along as session metadata, so confirmation rebuilds the booking from what
the server issued, never from what the client sends back.

The Stripe implementation goes through the official ``stripe`` client.
The emulated gateway keeps sessions in the Django cache and reports them
paid; it is only handed out when DEBUG is on or when PAYMENT_GATEWAY_CLASS
names it explicitly (the test settings do).
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

import stripe
from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """Provider unreachable, timed out or answered with an error."""

    pass


@dataclass
class CheckoutSession:
    session_id: str
    url: str = ""
    payment_status: str = "unpaid"
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


class CheckoutGateway(ABC):
    @abstractmethod
    def create_session(self, quote, *, title: str, success_url: str, cancel_url: str) -> CheckoutSession:
        """Open a hosted checkout session for the quote."""

    @abstractmethod
    def retrieve_session(self, session_id: str) -> Optional[CheckoutSession]:
        """Fetch a session, or None when the provider does not know it."""


class StripeCheckoutGateway(CheckoutGateway):
    """Stripe Checkout through the ``stripe`` client, one call per operation, no retries."""

    def __init__(self, api_key: Optional[str] = None, timeout=None):
        self.api_key = api_key or getattr(settings, "STRIPE_SECRET_KEY", "")
        if not self.api_key:
            raise ImproperlyConfigured("STRIPE_SECRET_KEY is required for the Stripe checkout gateway")
        self.timeout = timeout or getattr(settings, "PAYMENT_HTTP_TIMEOUT", 30)
        stripe.max_network_retries = 0
        stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)

    def create_session(self, quote, *, title: str, success_url: str, cancel_url: str) -> CheckoutSession:
        logger.info(
            f"Creating Stripe checkout session for user {quote.user_id}, "
            f"campground {quote.campground_id}, amount {quote.total}"
        )
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                success_url=success_url,
                cancel_url=cancel_url,
                client_reference_id=str(quote.user_id),
                line_items=[
                    {
                        "quantity": 1,
                        "price_data": {
                            "currency": quote.currency.lower(),
                            "unit_amount": quote.total.minor_units,
                            "product_data": {
                                "name": title,
                                "description": (
                                    f"{quote.nights} night(s), "
                                    f"{quote.start_date.isoformat()} - {quote.end_date.isoformat()}"
                                ),
                            },
                        },
                    }
                ],
                metadata=quote.to_metadata(),
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe refused checkout session for user {quote.user_id}: {e}")
            raise PaymentGatewayError(f"Payment provider error: {e.user_message or e}")
        return self._to_session(session)

    def retrieve_session(self, session_id: str) -> Optional[CheckoutSession]:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.InvalidRequestError as e:
            if e.http_status == 404:
                return None
            logger.error(f"Stripe rejected lookup of session {session_id}: {e}")
            raise PaymentGatewayError(f"Payment provider error: {e.user_message or e}")
        except stripe.StripeError as e:
            logger.error(f"Stripe lookup of session {session_id} failed: {e}")
            raise PaymentGatewayError(f"Payment provider error: {e.user_message or e}")
        return self._to_session(session)

    @staticmethod
    def _to_session(data) -> CheckoutSession:
        return CheckoutSession(
            session_id=data["id"],
            url=data.get("url") or "",
            payment_status=data.get("payment_status") or "unpaid",
            metadata={k: str(v) for k, v in (data.get("metadata") or {}).items()},
        )


class EmulatedCheckoutGateway(CheckoutGateway):
    """
    In-process stand-in for the provider

    Sessions are kept in the cache and reported as paid right away unless
    ``initial_status`` says otherwise.
    """

    cache_prefix = "emulated-checkout"
    timeout = 60 * 60 * 24

    def __init__(self, initial_status: str = "paid"):
        self.initial_status = initial_status

    def create_session(self, quote, *, title: str, success_url: str, cancel_url: str) -> CheckoutSession:
        session_id = f"cs_emulated_{uuid.uuid4().hex}"
        session = CheckoutSession(
            session_id=session_id,
            url=success_url.replace("{CHECKOUT_SESSION_ID}", session_id),
            payment_status=self.initial_status,
            metadata=quote.to_metadata(),
        )
        self._store(session)
        logger.warning(f"Emulated checkout session {session_id} created ({title}, {quote.total})")
        return session

    def retrieve_session(self, session_id: str) -> Optional[CheckoutSession]:
        data = cache.get(self._key(session_id))
        if data is None:
            return None
        return CheckoutSession(**data)

    def set_payment_status(self, session_id: str, payment_status: str) -> None:
        session = self.retrieve_session(session_id)
        if session is None:
            raise PaymentGatewayError(f"Unknown checkout session {session_id}")
        session.payment_status = payment_status
        self._store(session)

    def _store(self, session: CheckoutSession) -> None:
        cache.set(
            self._key(session.session_id),
            {
                "session_id": session.session_id,
                "url": session.url,
                "payment_status": session.payment_status,
                "metadata": dict(session.metadata),
            },
            timeout=self.timeout,
        )

    def _key(self, session_id: str) -> str:
        return f"{self.cache_prefix}:{session_id}"


def get_checkout_gateway() -> CheckoutGateway:
    """
    Gateway named by PAYMENT_GATEWAY_CLASS, else Stripe when a key is set

    The emulator confirms every session as paid, so without an explicit
    choice it is only used under DEBUG.
    """

    class_path = getattr(settings, "PAYMENT_GATEWAY_CLASS", "")
    if class_path:
        return import_string(class_path)()
    if getattr(settings, "STRIPE_SECRET_KEY", ""):
        return StripeCheckoutGateway()
    if settings.DEBUG:
        logger.warning("STRIPE_SECRET_KEY is not set; using the emulated checkout gateway (DEBUG)")
        return EmulatedCheckoutGateway()
    raise ImproperlyConfigured(
        "No payment gateway configured: set STRIPE_SECRET_KEY or PAYMENT_GATEWAY_CLASS"
    )
