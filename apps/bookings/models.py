"""Booking models for the campground booking engine."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.exceptions import InvalidTransition
from shared.domain.value_objects import DateRange


class Booking(models.Model):
    """A paid stay at a campground, optionally pinned to one campsite."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        CANCELLED = "cancelled", _("Cancelled")
        COMPLETED = "completed", _("Completed")

    ALLOWED_TRANSITIONS = {
        Status.PENDING: {Status.CONFIRMED, Status.CANCELLED},
        Status.CONFIRMED: {Status.CANCELLED, Status.COMPLETED},
        Status.CANCELLED: set(),
        Status.COMPLETED: set(),
    }
    CANCELLABLE_STATUSES = (Status.PENDING, Status.CONFIRMED)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    campground = models.ForeignKey(
        "campgrounds.Campground",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    campsite = models.ForeignKey(
        "campgrounds.Campsite",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    total_days = models.PositiveIntegerField(default=1)
    nightly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Effective nightly rate at the time of payment."),
    )
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="USD")
    guest_count = models.PositiveSmallIntegerField(default=1)
    payment_session_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text=_("Checkout session that paid for this booking."),
    )
    paid = models.BooleanField(default=False)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cancelled_bookings",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["campsite", "start_date", "end_date"], name="booking_campsite_dates_idx"),
            models.Index(fields=["user", "status"], name="booking_user_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.pk} at {self.campground_id} ({self.start_date} - {self.end_date})"

    @property
    def dates(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)

    def can_transition_to(self, status: str) -> bool:
        return status in self.ALLOWED_TRANSITIONS.get(self.status, set())

    def transition_to(self, status: str) -> None:
        if not self.can_transition_to(status):
            raise InvalidTransition(
                f"Booking {self.pk} cannot move from {self.status} to {status}",
                booking_id=self.pk,
                status=self.status,
            )
        self.status = status

    def is_cancellable(self, today=None) -> bool:
        today = today or timezone.localdate()
        return self.status in self.CANCELLABLE_STATUSES and self.start_date > today

    def is_owned_by(self, user) -> bool:
        return user is not None and self.user_id == user.pk


class BookedDateRange(models.Model):
    """A reserved [start_date, end_date) range of a campsite, held by one booking."""

    campsite = models.ForeignKey(
        "campgrounds.Campsite",
        on_delete=models.CASCADE,
        related_name="booked_ranges",
    )
    booking = models.OneToOneField(
        Booking,
        on_delete=models.CASCADE,
        related_name="booked_range",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Booked date range")
        verbose_name_plural = _("Booked date ranges")
        ordering = ["start_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="booked_range_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["campsite", "start_date", "end_date"], name="booked_range_campsite_idx"),
        ]

    def __str__(self) -> str:
        return f"Campsite {self.campsite_id}: {self.start_date} - {self.end_date}"
