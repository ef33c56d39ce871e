"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking


class BookingCreateSerializer(serializers.Serializer):
    """Input for a new reservation; all checks run in ``create_booking``."""

    court_id = serializers.IntegerField()
    date = serializers.DateField()
    start_time = serializers.TimeField(input_formats=["%H:%M"])
    end_time = serializers.TimeField(input_formats=["%H:%M"])
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate(self, attrs):  # type: ignore
        if attrs["start_time"] >= attrs["end_time"]:
            raise serializers.ValidationError({"end_time": "End time must be after start time."})
        return attrs


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class BookingSerializer(serializers.ModelSerializer):
    """Detailed booking representation."""

    user_id = serializers.ReadOnlyField(source="user.id")
    user_name = serializers.ReadOnlyField(source="user.name")
    court_id = serializers.ReadOnlyField(source="court.id")
    court_name = serializers.ReadOnlyField(source="court.name")
    sport_type = serializers.ReadOnlyField(source="court.sport_type")
    facility_id = serializers.ReadOnlyField(source="court.facility.id")
    facility_name = serializers.ReadOnlyField(source="court.facility.name")
    facility_city = serializers.ReadOnlyField(source="court.facility.city")
    start_time = serializers.TimeField(format="%H:%M")
    end_time = serializers.TimeField(format="%H:%M")
    duration_hours = serializers.DecimalField(max_digits=4, decimal_places=2, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "user_id",
            "user_name",
            "court_id",
            "court_name",
            "sport_type",
            "facility_id",
            "facility_name",
            "facility_city",
            "booking_date",
            "start_time",
            "end_time",
            "duration_hours",
            "total_amount",
            "status",
            "payment_id",
            "notes",
            "cancellation_reason",
            "cancelled_at",
            "confirmed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
