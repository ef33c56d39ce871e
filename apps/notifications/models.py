"""Notification models.

``Notification`` rows are created by domain services (booking confirmed,
payment failed, venue approved...) and read by their recipient through the
API. ``NotificationPreference`` lets a user silence whole categories and
``PushSubscription`` stores browser push endpoints.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Notification(models.Model):
    """A message sent to a user about some event."""

    class Type(models.TextChoices):
        BOOKING_CREATED = "BOOKING_CREATED", _("Booking created")
        BOOKING_CONFIRMED = "BOOKING_CONFIRMED", _("Booking confirmed")
        BOOKING_CANCELLED = "BOOKING_CANCELLED", _("Booking cancelled")
        BOOKING_REMINDER = "BOOKING_REMINDER", _("Booking reminder")
        PAYMENT_SUCCESS = "PAYMENT_SUCCESS", _("Payment successful")
        PAYMENT_FAILED = "PAYMENT_FAILED", _("Payment failed")
        REFUND_PROCESSED = "REFUND_PROCESSED", _("Refund processed")
        REVIEW_RESPONSE = "REVIEW_RESPONSE", _("Review response")
        VENUE_APPROVED = "VENUE_APPROVED", _("Venue approved")
        VENUE_REJECTED = "VENUE_REJECTED", _("Venue rejected")
        SYSTEM_ALERT = "SYSTEM_ALERT", _("System alert")
        PROMOTIONAL = "PROMOTIONAL", _("Promotional")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications"
    )
    type = models.CharField(max_length=32, choices=Type.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "is_read"]),
            models.Index(fields=["user", "-created_at"]),
        ]

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.title}"

    def mark_read(self) -> None:
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=["is_read", "read_at"])


class NotificationPreference(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notification_preference"
    )
    email_enabled = models.BooleanField(default=True)
    push_enabled = models.BooleanField(default=True)
    booking_updates = models.BooleanField(default=True)
    payment_updates = models.BooleanField(default=True)
    review_updates = models.BooleanField(default=True)
    promotional = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Preferences of {self.user_id}"


class PushSubscription(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="push_subscriptions"
    )
    endpoint = models.URLField(max_length=500, unique=True)
    p256dh = models.CharField(max_length=255)
    auth = models.CharField(max_length=255)
    user_agent = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Push endpoint for {self.user_id}"
