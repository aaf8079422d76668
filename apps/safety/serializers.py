"""Serializers for safety alerts."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import SafetyAlert


class SafetyAlertSerializer(serializers.ModelSerializer):
    campground_id = serializers.ReadOnlyField(source="campground.id")
    campsite_id = serializers.ReadOnlyField(source="campsite.id")
    is_active = serializers.SerializerMethodField()

    class Meta:
        model = SafetyAlert
        fields = [
            "id",
            "title",
            "description",
            "severity",
            "alert_type",
            "status",
            "start_date",
            "end_date",
            "campground_id",
            "campsite_id",
            "is_public",
            "requires_acknowledgement",
            "is_active",
        ]
        read_only_fields = fields

    def get_is_active(self, obj: SafetyAlert) -> bool:
        return obj.is_active()
