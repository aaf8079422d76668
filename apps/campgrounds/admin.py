"""Admin registration for campground inventory."""

from __future__ import annotations

from django.contrib import admin

from .models import Campground, Campsite


class CampsiteInline(admin.TabularInline):
    model = Campsite
    extra = 0
    fields = ("name", "nightly_price", "capacity", "availability")


@admin.register(Campground)
class CampgroundAdmin(admin.ModelAdmin):
    list_display = ("title", "location", "owner", "created_at")
    search_fields = ("title", "location", "owner__email")
    inlines = [CampsiteInline]


@admin.register(Campsite)
class CampsiteAdmin(admin.ModelAdmin):
    list_display = ("name", "campground", "nightly_price", "capacity", "availability")
    list_filter = ("availability",)
    search_fields = ("name", "campground__title")
