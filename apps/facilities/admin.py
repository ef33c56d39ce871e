"""Admin registrations for the facilities domain."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Amenity, Court, Facility, FacilityPhoto, TimeSlot


@admin.register(Amenity)
class AmenityAdmin(admin.ModelAdmin):
    list_display = ("name", "icon")
    search_fields = ("name",)


class FacilityPhotoInline(admin.TabularInline):
    model = FacilityPhoto
    extra = 0


class CourtInline(admin.TabularInline):
    model = Court
    extra = 0
    fields = ("name", "sport_type", "price_per_hour", "opening_time", "closing_time", "is_active")


@admin.register(Facility)
class FacilityAdmin(admin.ModelAdmin):
    list_display = ("name", "city", "owner", "status", "created_at")
    list_filter = ("status", "city")
    search_fields = ("name", "city", "address", "owner__email")
    filter_horizontal = ("amenities",)
    inlines = [CourtInline, FacilityPhotoInline]


@admin.register(Court)
class CourtAdmin(admin.ModelAdmin):
    list_display = ("name", "facility", "sport_type", "price_per_hour", "is_active")
    list_filter = ("sport_type", "is_active")
    search_fields = ("name", "facility__name")


@admin.register(TimeSlot)
class TimeSlotAdmin(admin.ModelAdmin):
    list_display = ("court", "date", "start_time", "end_time", "is_blocked", "block_type")
    list_filter = ("is_blocked", "block_type", "date")
