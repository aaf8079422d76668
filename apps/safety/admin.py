"""Admin registration for safety alerts."""

from __future__ import annotations

from django.contrib import admin

from .models import AlertAcknowledgement, SafetyAlert


class AlertAcknowledgementInline(admin.TabularInline):
    model = AlertAcknowledgement
    extra = 0
    readonly_fields = ("user", "acknowledged_at")


@admin.register(SafetyAlert)
class SafetyAlertAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "severity",
        "status",
        "campground",
        "campsite",
        "requires_acknowledgement",
        "is_public",
        "start_date",
        "end_date",
    )
    list_filter = ("severity", "status", "alert_type", "requires_acknowledgement", "is_public")
    search_fields = ("title", "campground__title", "campsite__name")
    inlines = [AlertAcknowledgementInline]
