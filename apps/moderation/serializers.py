"""Serializers for reports and the admin console."""

from __future__ import annotations

from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import serializers  # type: ignore

from apps.facilities.models import Court, Facility

from . import services
from .models import Report

User = get_user_model()


class ReportSerializer(serializers.ModelSerializer):
    reporter_id = serializers.ReadOnlyField(source="reporter.id")
    reporter_name = serializers.ReadOnlyField(source="reporter.name")
    resolved_by_id = serializers.ReadOnlyField(source="resolved_by.id", default=None)

    class Meta:
        model = Report
        fields = [
            "id",
            "reporter_id",
            "reporter_name",
            "type",
            "target_id",
            "category",
            "title",
            "description",
            "evidence",
            "priority",
            "status",
            "admin_notes",
            "resolved_by_id",
            "resolved_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ReportCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Report.Type.choices)
    target_id = serializers.CharField(required=False, allow_blank=True, max_length=64)
    category = serializers.ChoiceField(choices=Report.Category.choices)
    title = serializers.CharField(min_length=5, max_length=100)
    description = serializers.CharField(min_length=10, max_length=1000)
    evidence = serializers.ListField(child=serializers.URLField(), required=False, max_length=10)
    priority = serializers.ChoiceField(choices=Report.Priority.choices, default=Report.Priority.MEDIUM)


class ReportUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Report.Status.choices)
    admin_notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class PendingVenueSerializer(serializers.ModelSerializer):
    owner = serializers.SerializerMethodField()
    courts = serializers.SerializerMethodField()
    photos = serializers.SerializerMethodField()
    amenities = serializers.SerializerMethodField()
    waiting_days = serializers.SerializerMethodField()
    flags = serializers.SerializerMethodField()

    class Meta:
        model = Facility
        fields = [
            "id",
            "name",
            "description",
            "status",
            "address",
            "city",
            "state",
            "pincode",
            "latitude",
            "longitude",
            "owner",
            "courts",
            "photos",
            "amenities",
            "waiting_days",
            "flags",
            "created_at",
        ]
        read_only_fields = fields

    def get_owner(self, obj):  # type: ignore
        owner = obj.owner
        return {
            "id": owner.pk,
            "name": owner.name,
            "email": owner.email,
            "phone": owner.phone,
            "is_verified": owner.is_verified,
            "total_facilities": getattr(obj, "owner_facility_count", None) or owner.facilities.count(),
        }

    def get_courts(self, obj):  # type: ignore
        return [
            {"id": c.pk, "name": c.name, "sport_type": c.sport_type, "price_per_hour": str(c.price_per_hour)}
            for c in obj.courts.all()
        ]

    def get_photos(self, obj):  # type: ignore
        return [p.url for p in obj.photos.all()[:5]]

    def get_amenities(self, obj):  # type: ignore
        return [a.name for a in obj.amenities.all()]

    def get_waiting_days(self, obj) -> int:  # type: ignore
        return services.waiting_days(obj)

    def get_flags(self, obj):  # type: ignore
        owner_facilities = getattr(obj, "owner_facility_count", None) or obj.owner.facilities.count()
        return {
            "has_photos": bool(obj.photos.all()),
            "has_courts": bool(obj.courts.all()),
            "has_amenities": bool(obj.amenities.all()),
            "owner_verified": obj.owner.is_verified,
            "is_first_venue": owner_facilities == 1,
        }


class VenueDecisionSerializer(serializers.Serializer):
    admin_note = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class AdminUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "name",
            "email",
            "phone",
            "avatar_url",
            "role",
            "is_verified",
            "is_active",
            "is_banned",
            "banned_reason",
            "deactivated_at",
            "created_at",
        ]
        read_only_fields = fields


class RoleChangeSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.Role.choices)


class BanSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class VerifySerializer(serializers.Serializer):
    is_verified = serializers.BooleanField()


class AdminCourtSerializer(serializers.ModelSerializer):
    facility_id = serializers.ReadOnlyField(source="facility.id")
    facility_name = serializers.ReadOnlyField(source="facility.name")
    facility_status = serializers.ReadOnlyField(source="facility.status")
    owner_email = serializers.ReadOnlyField(source="facility.owner.email")
    booking_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Court
        fields = [
            "id",
            "name",
            "sport_type",
            "price_per_hour",
            "opening_time",
            "closing_time",
            "is_active",
            "facility_id",
            "facility_name",
            "facility_status",
            "owner_email",
            "booking_count",
            "created_at",
        ]
        read_only_fields = fields
