"""Booking entry points nested under a campground."""

from __future__ import annotations

from django.urls import path  # type: ignore

from apps.bookings.views import BookingQuoteView, CheckoutView
from apps.safety.views import RequiredAlertsView

urlpatterns = [
    path("<int:campground_id>/bookings/", BookingQuoteView.as_view(), name="campground-booking-quote"),
    path("<int:campground_id>/checkout/", CheckoutView.as_view(), name="campground-checkout"),
    path(
        "<int:campground_id>/safety-alerts/required/",
        RequiredAlertsView.as_view(),
        name="campground-required-alerts",
    ),
]
