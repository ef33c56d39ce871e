"""Serializers for authentication flows (register, login, OTP, password reset)."""

from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model  # type: ignore
from django.contrib.auth.password_validation import validate_password  # type: ignore
from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from django.db import transaction  # type: ignore
from rest_framework import serializers  # type: ignore
from rest_framework_simplejwt.exceptions import AuthenticationFailed  # type: ignore
from rest_framework_simplejwt.serializers import TokenRefreshSerializer  # type: ignore
from rest_framework_simplejwt.settings import api_settings as jwt_settings  # type: ignore
from rest_framework_simplejwt.tokens import RefreshToken  # type: ignore

from apps.core.authentication import account_block_reason
from apps.core.exceptions import Conflict

from .models import OTP, PHONE_VALIDATOR
from .services import issue_otp


User = get_user_model()


def _check_password_policy(value: str) -> str:
    try:
        validate_password(value)
    except DjangoValidationError as exc:
        raise serializers.ValidationError(list(exc.messages))
    return value


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=50, trim_whitespace=True)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, write_only=True)
    phone = serializers.CharField(required=False, allow_blank=True, validators=[PHONE_VALIDATOR])
    role = serializers.ChoiceField(
        choices=[User.Role.USER, User.Role.FACILITY_OWNER],
        default=User.Role.USER,
    )

    def validate_email(self, value: str) -> str:
        return value.strip().lower()

    def validate_password(self, value: str) -> str:
        return _check_password_policy(value)

    @transaction.atomic
    def create(self, validated_data: dict[str, Any]):  # type: ignore
        if User.objects.filter(email__iexact=validated_data["email"]).exists():
            raise Conflict("An account with this email already exists", code="EMAIL_EXISTS")
        password = validated_data.pop("password")
        user = User.objects.create_user(password=password, **validated_data)
        issue_otp(user, OTP.Type.EMAIL_VERIFICATION)
        return user


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class VerifyOTPSerializer(serializers.Serializer):
    email = serializers.EmailField()
    code = serializers.RegexField(r"^\d{6}$", error_messages={"invalid": "Code must be 6 digits."})
    type = serializers.ChoiceField(choices=OTP.Type.choices, default=OTP.Type.EMAIL_VERIFICATION)


class ResendOTPSerializer(serializers.Serializer):
    email = serializers.EmailField()
    type = serializers.ChoiceField(choices=OTP.Type.choices, default=OTP.Type.EMAIL_VERIFICATION)


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordResetConfirmSerializer(serializers.Serializer):
    email = serializers.EmailField()
    code = serializers.RegexField(r"^\d{6}$")
    new_password = serializers.CharField(min_length=8)

    def validate_new_password(self, value: str) -> str:
        return _check_password_policy(value)


class AccountTokenRefreshSerializer(TokenRefreshSerializer):
    """Refuse to mint new access tokens for banned or deactivated accounts."""

    def validate(self, attrs):  # type: ignore
        refresh = RefreshToken(attrs["refresh"])
        user_id = refresh.payload.get(jwt_settings.USER_ID_CLAIM)
        user = User.objects.filter(**{jwt_settings.USER_ID_FIELD: user_id}).first()
        if user is None:
            raise AuthenticationFailed("User not found", code="user_not_found")
        reason = account_block_reason(user)
        if reason is not None:
            raise AuthenticationFailed(reason, code="account_blocked")
        return super().validate(attrs)
