"""Serializers for user profile endpoints."""

from __future__ import annotations

from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import serializers  # type: ignore

from .auth_serializers import _check_password_policy
from .models import PHONE_VALIDATOR

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
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
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class UserShortSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "name", "avatar_url"]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=2, max_length=50, required=False)
    phone = serializers.CharField(required=False, allow_blank=True, validators=[PHONE_VALIDATOR])

    class Meta:
        model = User
        fields = ["name", "phone", "avatar_url"]


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(min_length=8, write_only=True)

    def validate_current_password(self, value: str) -> str:
        if not self.context["request"].user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate_new_password(self, value: str) -> str:
        return _check_password_policy(value)

    def validate(self, attrs):  # type: ignore
        if attrs["current_password"] == attrs["new_password"]:
            raise serializers.ValidationError(
                {"new_password": "New password must be different from the current one."}
            )
        return attrs

    def save(self, **kwargs):  # type: ignore
        user = self.context["request"].user
        user.set_password(self.validated_data["new_password"])
        user.save(update_fields=["password", "updated_at"])
        return user


class DeactivateAccountSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)
