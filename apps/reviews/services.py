"""Domain services for reviews, ratings and moderation."""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Iterable

from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import Avg, Count, F, Q  # type: ignore
from django.utils import timezone  # type: ignore

from apps.core.exceptions import Conflict, NotFound, PermissionDenied, ValidationFailed
from apps.core.permissions import is_admin
from apps.facilities.models import Facility

from .models import Review, ReviewHelpfulVote

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.users.models import User

logger = logging.getLogger(__name__)

WILSON_Z = 1.96
DEFAULT_MIN_REVIEWS = 3

SORT_ORDERS = {
    "recent": ("-created_at",),
    "highest": ("-rating", "-created_at"),
    "lowest": ("rating", "-created_at"),
    "helpful": ("-helpful_count", "-created_at"),
}


# ============================================================================
# RATINGS
# ============================================================================

def wilson_score(average: float, count: int, z: float = WILSON_Z) -> float:
    """
    Lower bound of the Wilson interval for a 1-5 star average.

    The average is mapped onto [0, 1], bounded, then mapped back onto the
    star scale, so venues with few reviews rank below equally rated
    venues with many.
    """
    if count <= 0:
        return 0.0
    phat = (average - 1) / 4
    z2 = z * z
    score = (phat + z2 / (2 * count) - z * math.sqrt((phat * (1 - phat) + z2 / (4 * count)) / count)) / (
        1 + z2 / count
    )
    return max(0.0, score * 4 + 1)


def calculate_venue_rating(facility: Facility | int) -> dict[str, Any]:
    facility_id = facility.pk if isinstance(facility, Facility) else facility
    approved = Review.objects.filter(facility_id=facility_id, is_approved=True)
    stats = approved.aggregate(avg=Avg("rating"), total=Count("id"))
    total = stats["total"] or 0
    average = float(stats["avg"] or 0)

    distribution = {star: 0 for star in range(1, 6)}
    for row in approved.values("rating").annotate(n=Count("id")):
        distribution[row["rating"]] = row["n"]

    return {
        "average_rating": round(average, 2),
        "total_reviews": total,
        "distribution": distribution,
        "weighted_score": round(wilson_score(average, total), 4),
    }


# ============================================================================
# AUTHORING
# ============================================================================

def _verified_booking(user: "User", facility: Facility):
    from apps.bookings.models import Booking

    return (
        Booking.objects.filter(
            user=user,
            court__facility=facility,
            status__in=[Booking.Status.CONFIRMED, Booking.Status.COMPLETED],
        )
        .order_by("-booking_date")
        .first()
    )


def create_review(user: "User", facility_id, rating: int, title: str = "", comment: str = "") -> Review:
    facility = Facility.objects.filter(pk=facility_id).first()
    if facility is None:
        raise NotFound("Facility not found")
    if facility.status != Facility.Status.APPROVED:
        raise ValidationFailed("Only approved facilities can be reviewed", code="FACILITY_NOT_APPROVED")
    if facility.owner_id == user.pk:
        raise PermissionDenied("You cannot review your own facility")
    if Review.objects.filter(user=user, facility=facility).exists():
        raise Conflict("You have already reviewed this facility", code="ALREADY_REVIEWED")

    booking = _verified_booking(user, facility)
    try:
        with transaction.atomic():
            review = Review.objects.create(
                user=user,
                facility=facility,
                booking=booking,
                rating=rating,
                title=title,
                comment=comment,
                is_verified_booking=booking is not None,
                is_approved=booking is not None,
            )
    except IntegrityError:
        raise Conflict("You have already reviewed this facility", code="ALREADY_REVIEWED")

    logger.info(
        f"Review {review.pk} created by user {user.pk} for facility {facility.pk} "
        f"(verified={review.is_verified_booking})"
    )
    return review


def _ensure_author_or_admin(review: Review, user: "User") -> None:
    if review.user_id != user.pk and not is_admin(user):
        raise PermissionDenied("You can only modify your own reviews")


def update_review(review: Review, user: "User", changes: dict[str, Any]) -> Review:
    _ensure_author_or_admin(review, user)
    fields = [name for name in ("rating", "title", "comment") if name in changes]
    for name in fields:
        setattr(review, name, changes[name])
    if fields and not is_admin(user) and review.is_approved and not review.is_verified_booking:
        review.is_approved = False
        fields.append("is_approved")
    review.save(update_fields=[*fields, "updated_at"])
    return review


def delete_review(review: Review, user: "User") -> None:
    _ensure_author_or_admin(review, user)
    logger.info(f"Review {review.pk} deleted by user {user.pk}")
    review.delete()


def facility_reviews(facility: Facility, sort: str = "recent", rating: int | None = None):
    qs = Review.objects.filter(facility=facility, is_approved=True).select_related("user")
    if rating:
        qs = qs.filter(rating=rating)
    return qs.order_by(*SORT_ORDERS.get(sort, SORT_ORDERS["recent"]))


# ============================================================================
# OWNER RESPONSES
# ============================================================================

def _ensure_facility_manager(review: Review, user: "User") -> None:
    if review.facility.owner_id != user.pk and not is_admin(user):
        raise PermissionDenied("Only the facility owner can respond to reviews")


def set_owner_response(review: Review, user: "User", text: str) -> Review:
    from apps.notifications.models import Notification
    from apps.notifications.services import create_notification

    _ensure_facility_manager(review, user)
    review.owner_response = text
    review.owner_responded_at = timezone.now()
    review.save(update_fields=["owner_response", "owner_responded_at", "updated_at"])
    create_notification(
        review.user,
        Notification.Type.REVIEW_RESPONSE,
        {"venue_name": review.facility.name, "review_id": review.pk},
    )
    return review


def delete_owner_response(review: Review, user: "User") -> Review:
    _ensure_facility_manager(review, user)
    if not review.owner_response:
        raise NotFound("This review has no response")
    review.owner_response = ""
    review.owner_responded_at = None
    review.save(update_fields=["owner_response", "owner_responded_at", "updated_at"])
    return review


# ============================================================================
# HELPFUL VOTES / FLAGS
# ============================================================================

def vote_helpful(review: Review, user: "User") -> int:
    if review.user_id == user.pk:
        raise ValidationFailed("You cannot vote on your own review", code="OWN_REVIEW")
    try:
        with transaction.atomic():
            ReviewHelpfulVote.objects.create(review=review, user=user)
            Review.objects.filter(pk=review.pk).update(helpful_count=F("helpful_count") + 1)
    except IntegrityError:
        raise Conflict("You already marked this review as helpful", code="ALREADY_VOTED")
    review.refresh_from_db(fields=["helpful_count"])
    return review.helpful_count


def remove_helpful_vote(review: Review, user: "User") -> int:
    with transaction.atomic():
        deleted, _ = ReviewHelpfulVote.objects.filter(review=review, user=user).delete()
        if not deleted:
            raise NotFound("You have not voted on this review")
        Review.objects.filter(pk=review.pk, helpful_count__gt=0).update(helpful_count=F("helpful_count") - 1)
    review.refresh_from_db(fields=["helpful_count"])
    return review.helpful_count


def flag_review(review: Review, user: "User", reason: str) -> Review:
    if review.user_id == user.pk:
        raise ValidationFailed("You cannot flag your own review", code="OWN_REVIEW")
    if not (reason or "").strip():
        raise ValidationFailed("A reason is required to flag a review")
    if review.is_flagged:
        raise Conflict("This review has already been flagged", code="ALREADY_FLAGGED")
    review.is_flagged = True
    review.flag_reason = reason.strip()
    review.flagged_by = user
    review.flagged_at = timezone.now()
    review.save(update_fields=["is_flagged", "flag_reason", "flagged_by", "flagged_at", "updated_at"])
    logger.info(f"Review {review.pk} flagged by user {user.pk}: {review.flag_reason}")
    return review


# ============================================================================
# MODERATION
# ============================================================================

def approve_review(review: Review, moderator: "User") -> Review:
    review.approve(moderator)
    logger.info(f"Review {review.pk} approved by {moderator.pk}")
    return review


def reject_review(review: Review, moderator: "User", reason: str = "") -> None:
    logger.info(f"Review {review.pk} rejected by {moderator.pk}: {reason or 'no reason given'}")
    review.delete()


def bulk_approve(review_ids: Iterable[int], moderator: "User") -> int:
    updated = Review.objects.filter(pk__in=list(review_ids), is_approved=False).update(
        is_approved=True,
        is_flagged=False,
        flag_reason="",
        moderated_by=moderator,
        moderated_at=timezone.now(),
        updated_at=timezone.now(),
    )
    logger.info(f"{updated} reviews bulk-approved by {moderator.pk}")
    return updated


def pending_reviews():
    return Review.objects.filter(is_approved=False).select_related("user", "facility").order_by("created_at")


def flagged_reviews():
    return Review.objects.filter(is_flagged=True).select_related("user", "facility", "flagged_by").order_by(
        "flagged_at"
    )


# ============================================================================
# STATS
# ============================================================================

def user_review_stats(user: "User") -> dict[str, Any]:
    stats = Review.objects.filter(user=user).aggregate(
        total=Count("id"),
        avg=Avg("rating"),
    )
    helpful = ReviewHelpfulVote.objects.filter(review__user=user).count()
    return {
        "total_reviews": stats["total"] or 0,
        "average_rating_given": round(float(stats["avg"]), 2) if stats["avg"] else 0,
        "helpful_votes_received": helpful,
    }


def review_analytics() -> dict[str, Any]:
    reviews = Review.objects.all()
    totals = reviews.aggregate(
        total=Count("id"),
        pending=Count("id", filter=Q(is_approved=False)),
        flagged=Count("id", filter=Q(is_flagged=True)),
        verified=Count("id", filter=Q(is_verified_booking=True)),
        avg=Avg("rating", filter=Q(is_approved=True)),
    )
    distribution = {star: 0 for star in range(1, 6)}
    for row in reviews.filter(is_approved=True).values("rating").annotate(n=Count("id")):
        distribution[row["rating"]] = row["n"]
    return {
        "total_reviews": totals["total"],
        "pending_reviews": totals["pending"],
        "flagged_reviews": totals["flagged"],
        "verified_reviews": totals["verified"],
        "average_rating": round(float(totals["avg"]), 2) if totals["avg"] else 0,
        "distribution": distribution,
        "reviews_last_30_days": reviews.filter(created_at__gte=timezone.now() - timedelta(days=30)).count(),
    }


def top_rated_facilities(limit: int = 10, min_reviews: int = DEFAULT_MIN_REVIEWS, city: str | None = None) -> list[dict]:
    from apps.facilities.services import approved_facilities, facility_card, rating_stats, with_listing_relations

    qs = approved_facilities()
    if city:
        qs = qs.filter(city__iexact=city)
    qs = qs.annotate(
        approved_reviews=Count("reviews", filter=Q(reviews__is_approved=True)),
    ).filter(approved_reviews__gte=min_reviews)

    facilities = list(with_listing_relations(qs))
    ratings = rating_stats(f.pk for f in facilities)
    cards = []
    for facility in facilities:
        card = facility_card(facility, ratings)
        avg, total = ratings.get(facility.pk, (None, 0))
        card["weighted_score"] = round(wilson_score(float(avg or 0), total), 4)
        cards.append(card)
    cards.sort(key=lambda c: (-c["weighted_score"], -c["review_count"]))
    return cards[:limit]


def owner_review_summary(owner: "User") -> dict[str, Any]:
    facilities = Facility.objects.filter(owner=owner).order_by("name")
    items = []
    for facility in facilities:
        rating = calculate_venue_rating(facility)
        unanswered = Review.objects.filter(facility=facility, is_approved=True, owner_response="").count()
        items.append(
            {
                "facility_id": facility.pk,
                "facility_name": facility.name,
                **rating,
                "unanswered_reviews": unanswered,
            }
        )
    return {
        "facilities": items,
        "total_reviews": sum(i["total_reviews"] for i in items),
        "unanswered_reviews": sum(i["unanswered_reviews"] for i in items),
    }
