"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "court",
        "user",
        "status",
        "booking_date",
        "start_time",
        "end_time",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "booking_date", "court__sport_type")
    search_fields = ("user__email", "court__name", "court__facility__name", "payment_id")
    readonly_fields = (
        "created_at",
        "updated_at",
        "total_amount",
        "confirmed_at",
        "cancelled_at",
    )
