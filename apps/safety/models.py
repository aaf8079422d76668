"""Safety alerts attached to campgrounds and campsites."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


def normalize_user_id(user_or_id: Any) -> str:
    """Reduce a user instance, primary key or string id to one comparable form."""

    return str(getattr(user_or_id, "pk", user_or_id))


class SafetyAlertQuerySet(models.QuerySet):
    def for_campground(self, campground_id):
        return self.filter(campground_id=campground_id)

    def for_campsite(self, campsite_id, campground_id):
        """Campsite-scoped alerts plus every alert of the owning campground."""
        return self.filter(Q(campsite_id=campsite_id) | Q(campground_id=campground_id))

    def active(self, now: datetime | None = None):
        now = now or timezone.now()
        return self.filter(
            Q(end_date__isnull=True) | Q(end_date__gte=now),
            status=SafetyAlert.Status.ACTIVE,
            start_date__lte=now,
        )

    def requiring_acknowledgement(self):
        return self.filter(requires_acknowledgement=True)

    def visible_to(self, user):
        if user is None:
            return self.filter(is_public=True)
        if getattr(user, "is_admin", False):
            return self
        return self.filter(Q(is_public=True) | Q(created_by_id=user.pk))


class SafetyAlert(models.Model):
    """A hazard or advisory notice for a campground or one of its campsites."""

    class Severity(models.TextChoices):
        LOW = "low", _("Low")
        MEDIUM = "medium", _("Medium")
        HIGH = "high", _("High")
        CRITICAL = "critical", _("Critical")

    class AlertType(models.TextChoices):
        WEATHER = "weather", _("Weather")
        WILDLIFE = "wildlife", _("Wildlife")
        FIRE = "fire", _("Fire")
        FLOOD = "flood", _("Flood")
        MEDICAL = "medical", _("Medical")
        SECURITY = "security", _("Security")
        MAINTENANCE = "maintenance", _("Maintenance")
        OTHER = "other", _("Other")

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        RESOLVED = "resolved", _("Resolved")
        EXPIRED = "expired", _("Expired")

    title = models.CharField(max_length=100)
    description = models.TextField(max_length=1000)
    severity = models.CharField(max_length=10, choices=Severity.choices, default=Severity.MEDIUM)
    alert_type = models.CharField(max_length=20, choices=AlertType.choices, default=AlertType.OTHER)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ACTIVE)
    start_date = models.DateTimeField(default=timezone.now)
    end_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Leave empty for an alert that stays active until resolved."),
    )
    campground = models.ForeignKey(
        "campgrounds.Campground",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="safety_alerts",
    )
    campsite = models.ForeignKey(
        "campgrounds.Campsite",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="safety_alerts",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="created_safety_alerts",
    )
    is_public = models.BooleanField(default=True)
    requires_acknowledgement = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SafetyAlertQuerySet.as_manager()

    class Meta:
        verbose_name = _("Safety alert")
        verbose_name_plural = _("Safety alerts")
        ordering = ["-start_date"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(campground__isnull=False, campsite__isnull=True)
                    | Q(campground__isnull=True, campsite__isnull=False)
                ),
                name="safety_alert_single_target",
            ),
        ]
        indexes = [
            models.Index(fields=["campground", "status", "start_date"], name="alert_campground_status_idx"),
            models.Index(fields=["campsite", "status", "start_date"], name="alert_campsite_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.get_severity_display()})"

    def is_active(self, now: datetime | None = None) -> bool:
        now = now or timezone.now()
        if self.status != self.Status.ACTIVE or self.start_date > now:
            return False
        return self.end_date is None or now <= self.end_date

    def is_visible_to(self, user) -> bool:
        if self.is_public:
            return True
        if user is None:
            return False
        return getattr(user, "is_admin", False) or self.created_by_id == user.pk

    def acknowledged_user_ids(self) -> set[str]:
        # Goes through .all() so a prefetch_related("acknowledgements") is reused.
        return {normalize_user_id(ack.user_id) for ack in self.acknowledgements.all()}

    def is_acknowledged_by(self, user_or_id: Any) -> bool:
        return normalize_user_id(user_or_id) in self.acknowledged_user_ids()


class AlertAcknowledgement(models.Model):
    """A user's confirmation of having read a safety alert."""

    alert = models.ForeignKey(
        SafetyAlert,
        on_delete=models.CASCADE,
        related_name="acknowledgements",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="alert_acknowledgements",
    )
    acknowledged_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Alert acknowledgement")
        verbose_name_plural = _("Alert acknowledgements")
        constraints = [
            models.UniqueConstraint(fields=["alert", "user"], name="alert_acknowledged_once"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} acknowledged {self.alert_id}"
