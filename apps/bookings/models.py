"""Booking domain models for CourtBook."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.core.timeutils import aware_datetime, hours_between


class Booking(models.Model):
    """Reservation of a court for a time range on one date."""

    class Status(models.TextChoices):
        PENDING = "PENDING", _("Awaiting payment")
        CONFIRMED = "CONFIRMED", _("Confirmed")
        CANCELLED = "CANCELLED", _("Cancelled")
        COMPLETED = "COMPLETED", _("Completed")

    ACTIVE_STATUSES = (Status.PENDING, Status.CONFIRMED)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    court = models.ForeignKey(
        "facilities.Court",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    time_slot = models.OneToOneField(
        "facilities.TimeSlot",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="booking",
    )
    booking_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    payment_id = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(end_time__gt=models.F("start_time")),
                name="booking_valid_times",
            ),
        ]
        indexes = [
            models.Index(fields=["court", "booking_date"]),
            models.Index(fields=["user", "status"]),
            models.Index(fields=["status"]),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.pk} court {self.court_id} {self.booking_date} {self.start_time:%H:%M}"

    @property
    def starts_at(self) -> datetime:
        return aware_datetime(self.booking_date, self.start_time)

    @property
    def ends_at(self) -> datetime:
        return aware_datetime(self.booking_date, self.end_time)

    @property
    def duration_hours(self) -> Decimal:
        return hours_between(self.start_time, self.end_time)

    @property
    def has_started(self) -> bool:
        return timezone.now() >= self.starts_at

    def mark_confirmed(self, payment_id: str = "") -> None:
        self.status = self.Status.CONFIRMED
        self.confirmed_at = timezone.now()
        if payment_id:
            self.payment_id = payment_id
        self.save(update_fields=["status", "confirmed_at", "payment_id", "updated_at"])

    def mark_cancelled(self, reason: str = "") -> None:
        self.status = self.Status.CANCELLED
        self.cancellation_reason = reason
        self.cancelled_at = timezone.now()
        self.save(update_fields=["status", "cancellation_reason", "cancelled_at", "updated_at"])
