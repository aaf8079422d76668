"""API views for safety alert acknowledgement."""

from __future__ import annotations

from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.campgrounds.models import Campground
from shared.domain.exceptions import NotFound
from shared.infrastructure.api import DomainErrorMixin

from .gate import AcknowledgementGate
from .models import SafetyAlert
from .serializers import SafetyAlertSerializer


class AcknowledgeAlertView(DomainErrorMixin, APIView):
    """POST: the current user acknowledges a safety alert."""

    permission_classes = [permissions.IsAuthenticated]
    gate_class = AcknowledgementGate

    def post(self, request, alert_id: int):  # type: ignore
        alert = SafetyAlert.objects.filter(pk=alert_id).first()
        if alert is None or not alert.is_visible_to(request.user):
            raise NotFound(f"Safety alert {alert_id} not found", alert_id=alert_id)

        if not alert.requires_acknowledgement:
            return Response(
                {
                    "error": "acknowledgement_not_required",
                    "detail": "This safety alert does not require acknowledgement.",
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        if not self.gate_class().acknowledge(alert.pk, request.user.pk):
            return Response(
                {
                    "error": "already_acknowledged",
                    "detail": "You have already acknowledged this safety alert.",
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {"acknowledged": True, "alert": SafetyAlertSerializer(alert).data},
            status=status.HTTP_200_OK,
        )


class RequiredAlertsView(DomainErrorMixin, APIView):
    """GET: alerts the current user still has to acknowledge before booking."""

    permission_classes = [permissions.IsAuthenticated]
    gate_class = AcknowledgementGate

    def get(self, request, campground_id: int):  # type: ignore
        if not Campground.objects.filter(pk=campground_id).exists():
            raise NotFound(f"Campground {campground_id} not found", campground_id=campground_id)

        campsite_id = request.query_params.get("campsite") or None
        if campsite_id is not None and not campsite_id.isdigit():
            campsite_id = None

        alerts = self.gate_class().outstanding_for_booking(
            request.user,
            campground_id,
            int(campsite_id) if campsite_id else None,
        )
        return Response(
            {"count": len(alerts), "alerts": SafetyAlertSerializer(alerts, many=True).data}
        )
