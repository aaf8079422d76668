"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import BookedDateRange, Booking


class BookedDateRangeInline(admin.StackedInline):
    model = BookedDateRange
    extra = 0
    can_delete = False
    readonly_fields = ("campsite", "start_date", "end_date", "created_at")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "campground",
        "campsite",
        "user",
        "status",
        "paid",
        "start_date",
        "end_date",
        "total_price",
        "created_at",
    )
    list_filter = ("status", "paid", "start_date", "end_date")
    search_fields = ("payment_session_id", "campground__title", "campsite__name", "user__email")
    readonly_fields = (
        "payment_session_id",
        "created_at",
        "updated_at",
        "total_price",
        "total_days",
        "nightly_rate",
        "cancelled_at",
        "cancelled_by",
    )
    inlines = [BookedDateRangeInline]


@admin.register(BookedDateRange)
class BookedDateRangeAdmin(admin.ModelAdmin):
    list_display = ("campsite", "booking", "start_date", "end_date")
    list_filter = ("campsite__campground",)
    search_fields = ("campsite__name", "booking__payment_session_id")
