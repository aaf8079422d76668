"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking


class BookingRequestSerializer(serializers.Serializer):
    """Stay requested by a camper, used for both the quote and the checkout."""

    start_date = serializers.DateField()
    end_date = serializers.DateField()
    guest_count = serializers.IntegerField(min_value=1, default=1)
    campsite = serializers.IntegerField(required=False, allow_null=True)


class BookingSerializer(serializers.ModelSerializer):
    """Booking summary returned by the read paths and the confirmation."""

    user_id = serializers.ReadOnlyField(source="user.id")
    campground_id = serializers.ReadOnlyField(source="campground.id")
    campground_title = serializers.ReadOnlyField(source="campground.title")
    campsite_id = serializers.ReadOnlyField(source="campsite.id")
    campsite_name = serializers.ReadOnlyField(source="campsite.name")

    class Meta:
        model = Booking
        fields = [
            "id",
            "user_id",
            "campground_id",
            "campground_title",
            "campsite_id",
            "campsite_name",
            "start_date",
            "end_date",
            "total_days",
            "nightly_rate",
            "total_price",
            "currency",
            "guest_count",
            "paid",
            "status",
            "payment_session_id",
            "cancelled_at",
            "created_at",
        ]
        read_only_fields = fields
