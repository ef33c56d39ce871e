"""User-submitted reports about venues, players, bookings and reviews."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Report(models.Model):
    """Complaint filed by a user and worked by an administrator."""

    class Type(models.TextChoices):
        FACILITY = "facility", _("Facility")
        USER = "user", _("User")
        BOOKING = "booking", _("Booking")
        REVIEW = "review", _("Review")
        OTHER = "other", _("Other")

    class Category(models.TextChoices):
        INAPPROPRIATE_CONTENT = "inappropriate_content", _("Inappropriate content")
        FAKE_INFORMATION = "fake_information", _("Fake information")
        POOR_SERVICE = "poor_service", _("Poor service")
        BOOKING_DISPUTE = "booking_dispute", _("Booking dispute")
        HARASSMENT = "harassment", _("Harassment")
        SPAM = "spam", _("Spam")
        FRAUD = "fraud", _("Fraud")
        SAFETY_CONCERN = "safety_concern", _("Safety concern")
        OTHER = "other", _("Other")

    class Priority(models.TextChoices):
        LOW = "low", _("Low")
        MEDIUM = "medium", _("Medium")
        HIGH = "high", _("High")

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        INVESTIGATING = "investigating", _("Investigating")
        RESOLVED = "resolved", _("Resolved")
        DISMISSED = "dismissed", _("Dismissed")

    OPEN_STATUSES = (Status.PENDING, Status.INVESTIGATING)
    CLOSED_STATUSES = (Status.RESOLVED, Status.DISMISSED)

    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reports",
    )
    type = models.CharField(max_length=20, choices=Type.choices)
    target_id = models.CharField(max_length=64, blank=True)
    category = models.CharField(max_length=30, choices=Category.choices)
    title = models.CharField(max_length=100)
    description = models.TextField()
    evidence = models.JSONField(default=list, blank=True)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    admin_notes = models.TextField(blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resolved_reports",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Report")
        verbose_name_plural = _("Reports")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "priority"]),
            models.Index(fields=["type", "target_id"]),
        ]

    def __str__(self) -> str:
        return f"Report {self.pk}: {self.title} ({self.get_status_display()})"

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES
