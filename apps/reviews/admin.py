"""Admin registration for reviews."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Review, ReviewHelpfulVote


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("id", "facility", "user", "rating", "is_approved", "is_verified_booking", "is_flagged", "created_at")
    list_filter = ("is_approved", "is_verified_booking", "is_flagged", "rating")
    search_fields = ("title", "comment", "user__email", "facility__name")
    readonly_fields = ("helpful_count", "created_at", "updated_at")


@admin.register(ReviewHelpfulVote)
class ReviewHelpfulVoteAdmin(admin.ModelAdmin):
    list_display = ("review", "user", "created_at")
