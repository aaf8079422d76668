"""URL routing for safety alerts."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import AcknowledgeAlertView

urlpatterns = [
    path("<int:alert_id>/acknowledge/", AcknowledgeAlertView.as_view(), name="safety-alert-acknowledge"),
]
