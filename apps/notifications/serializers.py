"""Serializers for notifications."""

from __future__ import annotations

from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import serializers  # type: ignore

from .models import Notification, NotificationPreference, PushSubscription


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ["id", "type", "title", "message", "data", "is_read", "read_at", "expires_at", "created_at"]
        read_only_fields = fields


class NotificationPreferenceSerializer(serializers.ModelSerializer):
    class Meta:
        model = NotificationPreference
        fields = [
            "email_enabled",
            "push_enabled",
            "booking_updates",
            "payment_updates",
            "review_updates",
            "promotional",
            "updated_at",
        ]
        read_only_fields = ["updated_at"]


class PushSubscriptionSerializer(serializers.Serializer):
    """Accepts the browser ``PushSubscription.toJSON()`` shape."""

    endpoint = serializers.URLField(max_length=500)
    keys = serializers.DictField(child=serializers.CharField())

    def validate_keys(self, value):  # type: ignore
        missing = {"p256dh", "auth"} - set(value)
        if missing:
            raise serializers.ValidationError(f"Missing keys: {', '.join(sorted(missing))}")
        return value

    def save(self, **kwargs):  # type: ignore
        request = self.context["request"]
        subscription, _ = PushSubscription.objects.update_or_create(
            endpoint=self.validated_data["endpoint"],
            defaults={
                "user": request.user,
                "p256dh": self.validated_data["keys"]["p256dh"],
                "auth": self.validated_data["keys"]["auth"],
                "user_agent": request.headers.get("User-Agent", "")[:255],
                "is_active": True,
            },
        )
        return subscription


class BroadcastSerializer(serializers.Serializer):
    type = serializers.ChoiceField(
        choices=[Notification.Type.SYSTEM_ALERT, Notification.Type.PROMOTIONAL],
        default=Notification.Type.SYSTEM_ALERT,
    )
    title = serializers.CharField(max_length=255, required=False)
    message = serializers.CharField(max_length=2000)
    role = serializers.ChoiceField(choices=get_user_model().Role.choices, required=False)
