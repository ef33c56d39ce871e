"""Admin moderation services: reports, venue approvals and user management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.db import transaction  # type: ignore
from django.db.models import Count  # type: ignore
from django.utils import timezone  # type: ignore

from apps.core.exceptions import Conflict, NotFound, PermissionDenied, ValidationFailed
from apps.facilities.models import Facility
from apps.facilities.services import set_facility_status
from apps.notifications.models import Notification
from apps.notifications.services import create_notification
from apps.users.models import User
from apps.users.services import cancel_pending_bookings

from .models import Report

if TYPE_CHECKING:  # pragma: no cover
    from django.db.models import QuerySet  # type: ignore

logger = logging.getLogger(__name__)

ESCALATED_CATEGORIES = {Report.Category.SAFETY_CONCERN, Report.Category.FRAUD}


# ============================================================================
# REPORTS
# ============================================================================

def _target_model(report_type: str):
    from apps.bookings.models import Booking
    from apps.reviews.models import Review

    return {
        Report.Type.FACILITY: Facility,
        Report.Type.USER: User,
        Report.Type.BOOKING: Booking,
        Report.Type.REVIEW: Review,
    }.get(report_type)


def _ensure_target_exists(report_type: str, target_id: str) -> None:
    model = _target_model(report_type)
    if model is None:
        return
    try:
        exists = model.objects.filter(pk=int(target_id)).exists()
    except (TypeError, ValueError):
        exists = False
    if not exists:
        raise NotFound(f"{report_type.capitalize()} not found")


def submit_report(reporter: User, data: dict[str, Any]) -> Report:
    report_type = data["type"]
    target_id = str(data.get("target_id") or "")
    if report_type != Report.Type.OTHER and not target_id:
        raise ValidationFailed("Target ID is required", details={"target_id": ["This field is required."]})
    _ensure_target_exists(report_type, target_id)

    duplicate = Report.objects.filter(
        reporter=reporter,
        type=report_type,
        target_id=target_id,
        status__in=Report.OPEN_STATUSES,
    )
    if report_type != Report.Type.OTHER and duplicate.exists():
        raise Conflict(
            "You have already reported this item. Please wait for our review.",
            code="DUPLICATE_REPORT",
        )

    report = Report.objects.create(
        reporter=reporter,
        type=report_type,
        target_id=target_id,
        category=data["category"],
        title=data["title"],
        description=data["description"],
        evidence=data.get("evidence") or [],
        priority=data.get("priority") or Report.Priority.MEDIUM,
    )
    if report.priority == Report.Priority.HIGH or report.category in ESCALATED_CATEGORIES:
        logger.warning(f"High priority report {report.pk} ({report.category}): {report.title}")
    else:
        logger.info(f"Report {report.pk} submitted by user {reporter.pk}")
    return report


def update_report(report: Report, admin: User, status: str, admin_notes: str | None = None) -> Report:
    report.status = status
    if admin_notes is not None:
        report.admin_notes = admin_notes
    if status in Report.CLOSED_STATUSES:
        report.resolved_by = admin
        report.resolved_at = timezone.now()
    else:
        report.resolved_by = None
        report.resolved_at = None
    report.save(update_fields=["status", "admin_notes", "resolved_by", "resolved_at", "updated_at"])
    logger.info(f"Report {report.pk} moved to {status} by admin {admin.pk}")
    return report


def _count_by(field: str, values: list[str]) -> dict[str, int]:
    counts = {row[field]: row["n"] for row in Report.objects.values(field).annotate(n=Count("id"))}
    return {value: counts.get(value, 0) for value in values}


def report_stats() -> dict[str, dict[str, int]]:
    return {
        "by_status": _count_by("status", Report.Status.values),
        "by_priority": _count_by("priority", Report.Priority.values),
    }


# ============================================================================
# VENUE APPROVALS
# ============================================================================

def pending_venues(order: str = "oldest") -> "QuerySet[Facility]":
    ordering = "created_at" if order != "newest" else "-created_at"
    return (
        Facility.objects.filter(status=Facility.Status.PENDING)
        .select_related("owner")
        .prefetch_related("courts", "amenities", "photos")
        .annotate(owner_facility_count=Count("owner__facilities", distinct=True))
        .order_by(ordering)
    )


def waiting_days(facility: Facility) -> int:
    return max(0, (timezone.now() - facility.created_at).days)


def approval_stats() -> dict[str, Any]:
    counts = {row["status"]: row["n"] for row in Facility.objects.values("status").annotate(n=Count("id"))}
    pending = list(Facility.objects.filter(status=Facility.Status.PENDING).only("created_at"))
    avg_wait = round(sum(waiting_days(f) for f in pending) / len(pending)) if pending else 0
    return {
        "pending": counts.get(Facility.Status.PENDING, 0),
        "approved": counts.get(Facility.Status.APPROVED, 0),
        "rejected": counts.get(Facility.Status.REJECTED, 0),
        "avg_wait_days": avg_wait,
    }


def approve_venue(facility: Facility, admin: User, note: str = "") -> Facility:
    if facility.status == Facility.Status.APPROVED:
        raise ValidationFailed("Venue is already approved", code="ALREADY_APPROVED")
    set_facility_status(facility, Facility.Status.APPROVED, note)
    create_notification(
        facility.owner,
        Notification.Type.VENUE_APPROVED,
        {"venue_name": facility.name, "venue_id": facility.pk},
    )
    logger.info(f"Facility {facility.pk} approved by admin {admin.pk}")
    return facility


def reject_venue(facility: Facility, admin: User, note: str) -> Facility:
    if not (note or "").strip():
        raise ValidationFailed("A rejection reason is required", details={"admin_note": ["This field is required."]})
    set_facility_status(facility, Facility.Status.REJECTED, note.strip())
    create_notification(
        facility.owner,
        Notification.Type.VENUE_REJECTED,
        {"venue_name": facility.name, "venue_id": facility.pk, "reason": facility.admin_note},
    )
    logger.info(f"Facility {facility.pk} rejected by admin {admin.pk}")
    return facility


# ============================================================================
# USERS
# ============================================================================

def change_role(target: User, admin: User, role: str) -> User:
    if target.pk == admin.pk:
        raise PermissionDenied("You cannot change your own role", code="OWN_ROLE")
    previous = target.role
    target.role = role
    target.save(update_fields=["role", "updated_at"])
    logger.info(f"User {target.pk} role changed {previous} -> {role} by admin {admin.pk}")
    return target


def _ensure_manageable(target: User, admin: User) -> None:
    if target.pk == admin.pk:
        raise PermissionDenied("You cannot ban yourself")
    if target.is_platform_admin():
        raise PermissionDenied("Cannot modify other admin accounts")


@transaction.atomic
def ban_user(target: User, admin: User, reason: str = "") -> dict[str, Any]:
    _ensure_manageable(target, admin)
    if target.is_banned:
        raise ValidationFailed("User is already banned", code="ALREADY_BANNED")
    cancelled = cancel_pending_bookings(target, "Account suspended by administrator")
    target.is_banned = True
    target.banned_reason = reason or "Account banned by admin"
    target.save(update_fields=["is_banned", "banned_reason", "updated_at"])
    logger.info(f"User {target.pk} banned by admin {admin.pk}, cancelled {cancelled} pending bookings")
    return {"user": target, "cancelled_bookings": cancelled}


def unban_user(target: User, admin: User) -> User:
    _ensure_manageable(target, admin)
    if not target.is_banned:
        raise ValidationFailed("User is not banned", code="NOT_BANNED")
    target.is_banned = False
    target.banned_reason = ""
    target.save(update_fields=["is_banned", "banned_reason", "updated_at"])
    logger.info(f"User {target.pk} unbanned by admin {admin.pk}")
    return target


def set_verified(target: User, admin: User, verified: bool) -> User:
    target.is_verified = verified
    target.save(update_fields=["is_verified", "updated_at"])
    logger.info(f"User {target.pk} verified={verified} set by admin {admin.pk}")
    return target


def user_activity(target: User) -> dict[str, Any]:
    from django.db.models import Sum  # type: ignore

    from apps.bookings.models import Booking
    from apps.payments.models import Payment

    bookings = {
        row["status"]: row["n"]
        for row in Booking.objects.filter(user=target).values("status").annotate(n=Count("id"))
    }
    spent = (
        Payment.objects.filter(user=target, status=Payment.Status.COMPLETED).aggregate(total=Sum("total_amount"))[
            "total"
        ]
        or 0
    )
    return {
        "bookings": {"total": sum(bookings.values()), **bookings},
        "total_spent": str(spent),
        "reviews": target.reviews.count(),
        "facilities": target.facilities.count(),
        "reports_filed": target.reports.count(),
    }
