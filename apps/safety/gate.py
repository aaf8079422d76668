"""
Acknowledgement Gate

Decides which safety alerts a user must acknowledge before booking a
campground or campsite, and records acknowledgements.

An alert is required for booking when it requires acknowledgement, is
active right now, and is visible to the user. A campsite target also
inherits every alert of its campground, so a campground-level hazard
blocks all of its campsites.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List

from django.db import IntegrityError, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.campgrounds.models import Campsite
from shared.domain.exceptions import NotFound, UnacknowledgedAlerts

from .models import AlertAcknowledgement, SafetyAlert, normalize_user_id

logger = logging.getLogger(__name__)

CAMPGROUND = "campground"
CAMPSITE = "campsite"
TARGET_TYPES = (CAMPGROUND, CAMPSITE)


class AcknowledgementGate:
    """Read side (required / unacknowledged alerts) plus the acknowledge command."""

    def __init__(self, clock=timezone.now):
        self._clock = clock

    def required_alerts(self, target_id, target_type: str, user) -> List[SafetyAlert]:
        if target_type not in TARGET_TYPES:
            raise ValueError(f"Unknown alert target type: {target_type}")

        alerts = SafetyAlert.objects.all()
        if target_type == CAMPSITE:
            campground_id = (
                Campsite.objects.filter(pk=target_id).values_list("campground_id", flat=True).first()
            )
            if campground_id is None:
                # Missing campsites are reported by the caller as NotFound.
                return []
            alerts = alerts.for_campsite(target_id, campground_id)
        else:
            alerts = alerts.for_campground(target_id)

        now: datetime = self._clock()
        return list(
            alerts.requiring_acknowledgement()
            .active(now)
            .visible_to(user)
            .prefetch_related("acknowledgements")
            .order_by("start_date", "pk")
        )

    def unacknowledged(self, target_id, target_type: str, user) -> List[SafetyAlert]:
        user_id = normalize_user_id(user)
        return [
            alert
            for alert in self.required_alerts(target_id, target_type, user)
            if user_id not in alert.acknowledged_user_ids()
        ]

    def outstanding_for_booking(self, user, campground_id, campsite_id=None) -> List[SafetyAlert]:
        """Campground and campsite are checked independently; the union is deduplicated."""

        outstanding = self.unacknowledged(campground_id, CAMPGROUND, user)
        if campsite_id is not None:
            outstanding += self.unacknowledged(campsite_id, CAMPSITE, user)
        return _unique_by_id(outstanding)

    def ensure_acknowledged(self, user, campground_id, campsite_id=None) -> None:
        outstanding = self.outstanding_for_booking(user, campground_id, campsite_id)
        if outstanding:
            logger.info(
                f"User {user.pk} blocked from booking campground {campground_id} "
                f"(campsite {campsite_id}): {len(outstanding)} unacknowledged alert(s)"
            )
            raise UnacknowledgedAlerts(alert.title for alert in outstanding)

    def acknowledge(self, alert_id, user_id) -> bool:
        """
        Record that the user read the alert

        Returns False when the alert does not require acknowledgement or
        the user already acknowledged it; acknowledging twice is a no-op.
        """
        try:
            alert = SafetyAlert.objects.get(pk=alert_id)
        except SafetyAlert.DoesNotExist:
            raise NotFound(f"Safety alert {alert_id} not found", alert_id=alert_id)

        if not alert.requires_acknowledgement:
            return False

        user_pk = getattr(user_id, "pk", user_id)
        try:
            with transaction.atomic():
                _, created = AlertAcknowledgement.objects.get_or_create(
                    alert=alert,
                    user_id=user_pk,
                    defaults={"acknowledged_at": self._clock()},
                )
        except IntegrityError:
            # A concurrent request inserted the same acknowledgement first.
            created = False

        if created:
            logger.info(f"User {user_pk} acknowledged safety alert {alert.pk}")
        return created


def _unique_by_id(alerts: Iterable[SafetyAlert]) -> List[SafetyAlert]:
    seen = set()
    unique = []
    for alert in alerts:
        if alert.pk in seen:
            continue
        seen.add(alert.pk)
        unique.append(alert)
    return unique
