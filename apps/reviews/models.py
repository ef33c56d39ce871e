"""Models for the review domain.

A ``Review`` is a 1-5 star rating of a facility with an optional title
and comment. A player reviews a facility at most once. Reviews backed by
a confirmed or completed booking are marked as verified and published
immediately; the rest wait for moderation.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Review(models.Model):
    """Rating left by a player for a facility."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    facility = models.ForeignKey(
        "facilities.Facility",
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviews",
        help_text=_("Booking that backs a verified review"),
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    title = models.CharField(max_length=100, blank=True)
    comment = models.TextField(blank=True)

    is_approved = models.BooleanField(default=False)
    is_verified_booking = models.BooleanField(default=False)

    is_flagged = models.BooleanField(default=False)
    flag_reason = models.CharField(max_length=255, blank=True)
    flagged_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="flagged_reviews",
    )
    flagged_at = models.DateTimeField(null=True, blank=True)

    owner_response = models.TextField(blank=True)
    owner_responded_at = models.DateTimeField(null=True, blank=True)

    helpful_count = models.PositiveIntegerField(default=0)

    moderated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="moderated_reviews",
    )
    moderated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Review")
        verbose_name_plural = _("Reviews")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "facility"], name="one_review_per_facility"),
        ]
        indexes = [
            models.Index(fields=["facility", "is_approved"]),
            models.Index(fields=["is_flagged"]),
            models.Index(fields=["rating"]),
        ]

    def __str__(self) -> str:
        return f"Review by {self.user_id} for facility {self.facility_id} ({self.rating}/5)"

    def approve(self, moderator) -> None:
        self.is_approved = True
        self.is_flagged = False
        self.flag_reason = ""
        self.moderated_by = moderator
        self.moderated_at = timezone.now()
        self.save(
            update_fields=["is_approved", "is_flagged", "flag_reason", "moderated_by", "moderated_at", "updated_at"]
        )


class ReviewHelpfulVote(models.Model):
    review = models.ForeignKey(Review, on_delete=models.CASCADE, related_name="helpful_votes")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="helpful_votes",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Helpful vote")
        verbose_name_plural = _("Helpful votes")
        constraints = [
            models.UniqueConstraint(fields=["review", "user"], name="one_helpful_vote_per_user"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} found review {self.review_id} helpful"
