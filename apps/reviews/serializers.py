"""Serializers for reviews.

The author and the verified-booking flag are never client supplied;
``create_review`` derives them from the request user.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Review


class ReviewSerializer(serializers.ModelSerializer):
    user_id = serializers.ReadOnlyField(source="user.id")
    user_name = serializers.ReadOnlyField(source="user.name")
    user_avatar = serializers.ReadOnlyField(source="user.avatar_url")
    facility_id = serializers.ReadOnlyField(source="facility.id")
    facility_name = serializers.ReadOnlyField(source="facility.name")

    class Meta:
        model = Review
        fields = [
            "id",
            "user_id",
            "user_name",
            "user_avatar",
            "facility_id",
            "facility_name",
            "rating",
            "title",
            "comment",
            "is_approved",
            "is_verified_booking",
            "helpful_count",
            "owner_response",
            "owner_responded_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ModerationReviewSerializer(ReviewSerializer):
    flagged_by_id = serializers.ReadOnlyField(source="flagged_by.id", default=None)

    class Meta(ReviewSerializer.Meta):
        fields = ReviewSerializer.Meta.fields + [
            "is_flagged",
            "flag_reason",
            "flagged_by_id",
            "flagged_at",
            "moderated_at",
        ]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    facility_id = serializers.IntegerField()
    rating = serializers.IntegerField(min_value=1, max_value=5)
    title = serializers.CharField(required=False, allow_blank=True, max_length=100)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class ReviewUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
    title = serializers.CharField(required=False, allow_blank=True, max_length=100)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=1000)

    def validate(self, attrs):  # type: ignore
        if not attrs:
            raise serializers.ValidationError("Provide at least one of rating, title or comment.")
        return attrs


class OwnerResponseSerializer(serializers.Serializer):
    response = serializers.CharField(min_length=1, max_length=1000)


class FlagSerializer(serializers.Serializer):
    reason = serializers.CharField(min_length=3, max_length=255)


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class BulkApproveSerializer(serializers.Serializer):
    review_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False, max_length=100)
