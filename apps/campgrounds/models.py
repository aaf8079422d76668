"""Inventory models: campgrounds and their campsites."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Campground(models.Model):
    """A bookable property containing zero or more campsites."""

    title = models.CharField(max_length=200)
    location = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="campgrounds",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Campground")
        verbose_name_plural = _("Campgrounds")
        ordering = ["title"]

    def __str__(self) -> str:
        return self.title


class Campsite(models.Model):
    """An individually priced unit inside a campground."""

    campground = models.ForeignKey(
        Campground,
        on_delete=models.CASCADE,
        related_name="campsites",
    )
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    nightly_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    capacity = models.PositiveSmallIntegerField(default=1)
    availability = models.BooleanField(
        default=True,
        help_text=_("Whole-unit switch; date-level bookings are tracked separately."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Campsite")
        verbose_name_plural = _("Campsites")
        ordering = ["campground", "name"]
        indexes = [
            models.Index(fields=["campground", "availability"], name="campsite_campground_avail_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} @ {self.campground_id}"
