"""Serializers for the favorites domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.facilities.models import Facility

from .models import Favorite


class FacilityShortSerializer(serializers.Serializer):
    """Venue summary shown in the favorites list."""

    id = serializers.IntegerField()
    name = serializers.CharField()
    city = serializers.CharField()
    address = serializers.CharField()
    status = serializers.CharField()
    main_photo_url = serializers.SerializerMethodField()
    sports = serializers.SerializerMethodField()

    def get_main_photo_url(self, obj):  # type: ignore
        photo = obj.photos.first()
        return photo.url if photo else None

    def get_sports(self, obj):  # type: ignore
        return sorted({court.sport_type for court in obj.courts.all() if court.is_active})


class FavoriteSerializer(serializers.ModelSerializer):
    facility_id = serializers.ReadOnlyField(source='facility.id')
    facility = FacilityShortSerializer(read_only=True)

    class Meta:
        model = Favorite
        fields = ['id', 'facility_id', 'facility', 'created_at']


class FavoriteCreateSerializer(serializers.Serializer):
    facility_id = serializers.IntegerField()

    def validate_facility_id(self, value: int) -> int:  # type: ignore
        if not Facility.objects.filter(pk=value, status=Facility.Status.APPROVED).exists():
            raise serializers.ValidationError("Facility not found or not approved.")
        return value
