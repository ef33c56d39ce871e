"""Serializers for the facilities domain."""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from rest_framework import serializers  # type: ignore

from .models import Amenity, Court, Facility, FacilityPhoto, TimeSlot


class AmenitySerializer(serializers.ModelSerializer):
    class Meta:
        model = Amenity
        fields = ["id", "name", "icon"]


class FacilityPhotoSerializer(serializers.ModelSerializer):
    class Meta:
        model = FacilityPhoto
        fields = ["id", "url", "caption", "order"]


class CourtSerializer(serializers.ModelSerializer):
    facility_id = serializers.ReadOnlyField(source="facility.id")
    sport_type_display = serializers.ReadOnlyField(source="get_sport_type_display")

    class Meta:
        model = Court
        fields = [
            "id",
            "facility_id",
            "name",
            "sport_type",
            "sport_type_display",
            "price_per_hour",
            "opening_time",
            "closing_time",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["facility_id", "created_at", "updated_at"]

    def validate_price_per_hour(self, value):  # type: ignore
        if value <= 0:
            raise serializers.ValidationError("Price per hour must be greater than zero.")
        return value

    def validate(self, attrs):  # type: ignore
        opening = attrs.get("opening_time", getattr(self.instance, "opening_time", None))
        closing = attrs.get("closing_time", getattr(self.instance, "closing_time", None))
        if opening and closing and opening >= closing:
            raise serializers.ValidationError({"closing_time": "Closing time must be after opening time."})
        return attrs


class FacilitySerializer(serializers.ModelSerializer):
    """Read serializer with nested relations."""

    owner_id = serializers.ReadOnlyField(source="owner.id")
    owner_name = serializers.ReadOnlyField(source="owner.name")
    amenities = AmenitySerializer(many=True, read_only=True)
    photos = FacilityPhotoSerializer(many=True, read_only=True)
    courts = serializers.SerializerMethodField()

    class Meta:
        model = Facility
        fields = [
            "id",
            "owner_id",
            "owner_name",
            "name",
            "description",
            "address",
            "city",
            "state",
            "pincode",
            "latitude",
            "longitude",
            "phone",
            "email",
            "status",
            "admin_note",
            "amenities",
            "photos",
            "courts",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_courts(self, obj: Facility):  # type: ignore
        courts = getattr(obj, "active_courts", None)
        if courts is None:
            courts = obj.courts.filter(is_active=True)
        return CourtSerializer(courts, many=True).data


class FacilityWriteSerializer(serializers.ModelSerializer):
    """Serializer for create/update operations."""

    amenities = serializers.PrimaryKeyRelatedField(
        many=True,
        queryset=Amenity.objects.all(),
        required=False,
    )
    photos = FacilityPhotoSerializer(many=True, required=False)

    class Meta:
        model = Facility
        fields = [
            "name",
            "description",
            "address",
            "city",
            "state",
            "pincode",
            "latitude",
            "longitude",
            "phone",
            "email",
            "amenities",
            "photos",
        ]

    def validate_name(self, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise serializers.ValidationError("Name must be at least 3 characters.")
        return value

    def validate(self, attrs):  # type: ignore
        lat = attrs.get("latitude", getattr(self.instance, "latitude", None))
        lng = attrs.get("longitude", getattr(self.instance, "longitude", None))
        if (lat is None) != (lng is None):
            raise serializers.ValidationError("Latitude and longitude must be provided together.")
        return attrs

    def _save_photos(self, facility: Facility, photos) -> None:  # type: ignore
        facility.photos.all().delete()
        FacilityPhoto.objects.bulk_create(
            FacilityPhoto(
                facility=facility,
                url=photo["url"],
                caption=photo.get("caption", ""),
                order=photo.get("order", index),
            )
            for index, photo in enumerate(photos)
        )

    def create(self, validated_data):  # type: ignore
        amenities = validated_data.pop("amenities", [])
        photos = validated_data.pop("photos", [])
        facility = Facility.objects.create(owner=self.context["request"].user, **validated_data)
        if amenities:
            facility.amenities.set(amenities)
        if photos:
            self._save_photos(facility, photos)
        return facility

    def update(self, instance: Facility, validated_data):  # type: ignore
        amenities = validated_data.pop("amenities", None)
        photos = validated_data.pop("photos", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if amenities is not None:
            instance.amenities.set(amenities)
        if photos is not None:
            self._save_photos(instance, photos)
        return instance


class TimeSlotSerializer(serializers.ModelSerializer):
    class Meta:
        model = TimeSlot
        fields = [
            "id",
            "court",
            "date",
            "start_time",
            "end_time",
            "is_blocked",
            "block_reason",
            "block_type",
            "blocked_at",
        ]
        read_only_fields = fields


class SlotRangeSerializer(serializers.Serializer):
    start_time = serializers.TimeField(format="%H:%M", input_formats=["%H:%M"])
    end_time = serializers.TimeField(format="%H:%M", input_formats=["%H:%M"])

    def validate(self, attrs):  # type: ignore
        if attrs["start_time"] >= attrs["end_time"]:
            raise serializers.ValidationError("End time must be after start time.")
        return attrs


class BlockSlotsSerializer(serializers.Serializer):
    dates = serializers.ListField(child=serializers.DateField(), min_length=1, max_length=31)
    time_slots = SlotRangeSerializer(many=True)
    reason = serializers.CharField(min_length=5, max_length=200)
    block_type = serializers.ChoiceField(choices=TimeSlot.BlockType.choices, default=TimeSlot.BlockType.MAINTENANCE)
    allow_override = serializers.BooleanField(default=False)

    def validate_dates(self, value):  # type: ignore
        today = timezone.localdate()
        if any(day < today for day in value):
            raise serializers.ValidationError("Cannot block slots in the past.")
        return sorted(set(value))

    def validate_time_slots(self, value):  # type: ignore
        if not value:
            raise serializers.ValidationError("At least one time slot is required.")
        return value


class UnblockSlotsSerializer(serializers.Serializer):
    dates = serializers.ListField(child=serializers.DateField(), min_length=1, max_length=31)
    time_slots = SlotRangeSerializer(many=True, required=False)


class SearchQuerySerializer(serializers.Serializer):
    """Geo, rating and sorting parameters that are applied outside the ORM."""

    SORT_CHOICES = ["rating", "price_low", "price_high", "distance", "newest"]

    lat = serializers.FloatField(required=False, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, min_value=-180, max_value=180)
    radius = serializers.FloatField(required=False, min_value=0.1, max_value=500, default=10)
    min_rating = serializers.FloatField(required=False, min_value=0, max_value=5)
    sort = serializers.ChoiceField(choices=SORT_CHOICES, required=False)

    def validate(self, attrs):  # type: ignore
        if ("lat" in attrs) != ("lng" in attrs):
            raise serializers.ValidationError("lat and lng must be provided together.")
        return attrs


class AvailableSearchQuerySerializer(SearchQuerySerializer):
    date = serializers.DateField()
    start_time = serializers.TimeField(required=False, input_formats=["%H:%M"])
    end_time = serializers.TimeField(required=False, input_formats=["%H:%M"])
    sport_type = serializers.ChoiceField(choices=Court.SportType.choices, required=False)

    def validate_date(self, value):  # type: ignore
        if value < timezone.localdate():
            raise serializers.ValidationError("Date cannot be in the past.")
        return value


class NearbyQuerySerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)
    radius = serializers.FloatField(required=False, min_value=0.1, max_value=500, default=10)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=50, default=20)
