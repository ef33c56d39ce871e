"""Catalog models: venues, their courts and per-date time slots.

A facility belongs to an owner and goes through admin approval before it
is listed publicly. Courts carry the hourly price and operating hours;
``TimeSlot`` rows only exist for slots that were explicitly blocked by the
owner (maintenance, events and so on) or linked to a booking.
"""

from __future__ import annotations

from datetime import time
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Amenity(models.Model):
    """Facility feature such as parking, showers or floodlights."""

    name = models.CharField(max_length=100, unique=True)
    icon = models.CharField(
        max_length=100,
        blank=True,
        help_text=_("Icon identifier used by the frontend."),
    )

    class Meta:
        verbose_name = _("Amenity")
        verbose_name_plural = _("Amenities")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Facility(models.Model):
    """Sports venue listed by a facility owner."""

    class Status(models.TextChoices):
        PENDING = "PENDING", _("Pending approval")
        APPROVED = "APPROVED", _("Approved")
        REJECTED = "REJECTED", _("Rejected")

    # Editing any of these sends an approved or rejected venue back to review.
    CORE_FIELDS = ("name", "address", "city")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="facilities",
    )
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    address = models.CharField(max_length=255)
    city = models.CharField(max_length=100, db_index=True)
    state = models.CharField(max_length=100, blank=True)
    pincode = models.CharField(
        max_length=6,
        blank=True,
        validators=[RegexValidator(r"^\d{6}$", _("Pincode must be 6 digits."))],
    )
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("-90")), MaxValueValidator(Decimal("90"))],
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("-180")), MaxValueValidator(Decimal("180"))],
    )
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    admin_note = models.TextField(blank=True)
    amenities = models.ManyToManyField(Amenity, blank=True, related_name="facilities")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Facility")
        verbose_name_plural = _("Facilities")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "city"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.city})"

    @property
    def is_approved(self) -> bool:
        return self.status == self.Status.APPROVED

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class FacilityPhoto(models.Model):
    facility = models.ForeignKey(Facility, on_delete=models.CASCADE, related_name="photos")
    url = models.URLField(max_length=500)
    caption = models.CharField(max_length=255, blank=True)
    order = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["order", "id"]

    def __str__(self) -> str:
        return f"Photo {self.pk} for {self.facility_id}"


class Court(models.Model):
    """Bookable playing area inside a facility."""

    class SportType(models.TextChoices):
        BADMINTON = "BADMINTON", _("Badminton")
        TENNIS = "TENNIS", _("Tennis")
        FOOTBALL = "FOOTBALL", _("Football")
        CRICKET = "CRICKET", _("Cricket")
        BASKETBALL = "BASKETBALL", _("Basketball")
        TABLE_TENNIS = "TABLE_TENNIS", _("Table tennis")
        SWIMMING = "SWIMMING", _("Swimming")
        SQUASH = "SQUASH", _("Squash")
        VOLLEYBALL = "VOLLEYBALL", _("Volleyball")
        OTHER = "OTHER", _("Other")

    facility = models.ForeignKey(Facility, on_delete=models.CASCADE, related_name="courts")
    name = models.CharField(max_length=100)
    sport_type = models.CharField(max_length=20, choices=SportType.choices)
    price_per_hour = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    opening_time = models.TimeField(default=time(6, 0))
    closing_time = models.TimeField(default=time(22, 0))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Court")
        verbose_name_plural = _("Courts")
        ordering = ["facility_id", "name"]
        indexes = [
            models.Index(fields=["sport_type", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.get_sport_type_display()})"

    def is_within_hours(self, start: time, end: time) -> bool:
        return self.opening_time <= start and end <= self.closing_time


class TimeSlot(models.Model):
    """Concrete slot on a court for a given date."""

    class BlockType(models.TextChoices):
        MAINTENANCE = "maintenance", _("Maintenance")
        RENOVATION = "renovation", _("Renovation")
        EVENT = "event", _("Private event")
        EMERGENCY = "emergency", _("Emergency")
        OTHER = "other", _("Other")

    court = models.ForeignKey(Court, on_delete=models.CASCADE, related_name="time_slots")
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_blocked = models.BooleanField(default=False)
    block_reason = models.CharField(max_length=200, blank=True)
    block_type = models.CharField(max_length=20, choices=BlockType.choices, blank=True)
    blocked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    blocked_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Time slot")
        verbose_name_plural = _("Time slots")
        ordering = ["date", "start_time"]
        constraints = [
            models.UniqueConstraint(fields=["court", "date", "start_time"], name="unique_court_slot"),
        ]

    def __str__(self) -> str:
        return f"{self.court_id} {self.date} {self.start_time:%H:%M}-{self.end_time:%H:%M}"
