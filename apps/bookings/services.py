"""Domain services for booking workflows."""

from __future__ import annotations

import logging
from datetime import date, time
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import Q  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.core.exceptions import Conflict, NotFound, PermissionDenied, ValidationFailed
from apps.core.permissions import is_admin
from apps.core.timeutils import aware_datetime, format_hhmm, hours_between
from apps.facilities.models import Court, Facility, TimeSlot

from .models import Booking

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.users.models import User

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


class BookingConflictError(Conflict):
    """Raised when a court is busy for the requested time range."""

    default_code = "BOOKING_CONFLICT"
    default_message = "This time slot is already booked"


class SlotBlockedError(Conflict):
    default_code = "SLOT_BLOCKED"
    default_message = "This time slot has been blocked by the facility"


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def ensure_court_is_available(
    court: Court,
    booking_date: date,
    start_time: time,
    end_time: time,
    *,
    exclude_booking_id=None,
) -> None:
    """Ensure no blocked slot or live booking overlaps ``[start_time, end_time)``."""

    overlapping_filter = Q(start_time__lt=end_time) & Q(end_time__gt=start_time)

    blocked_qs = TimeSlot.objects.filter(court=court, date=booking_date, is_blocked=True).filter(overlapping_filter)
    blocked_qs = _lock_queryset_if_possible(blocked_qs)
    if blocked_qs.exists():
        raise SlotBlockedError()

    bookings_qs = Booking.objects.filter(
        court=court,
        booking_date=booking_date,
        status__in=Booking.ACTIVE_STATUSES,
    ).filter(overlapping_filter)

    if exclude_booking_id is not None:
        bookings_qs = bookings_qs.exclude(pk=exclude_booking_id)

    bookings_qs = _lock_queryset_if_possible(bookings_qs)

    if bookings_qs.exists():
        raise BookingConflictError(
            details={
                "date": booking_date.isoformat(),
                "start_time": format_hhmm(start_time),
                "end_time": format_hhmm(end_time),
            }
        )


def calculate_total(court: Court, start_time: time, end_time: time) -> Decimal:
    total = hours_between(start_time, end_time) * court.price_per_hour
    return total.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def create_booking(
    user: "User",
    court_id,
    booking_date: date,
    start_time: time,
    end_time: time,
    notes: str = "",
) -> Booking:
    from apps.notifications.models import Notification
    from apps.notifications.services import notify_booking_event

    if start_time >= end_time:
        raise ValidationFailed("End time must be after start time")
    if hours_between(start_time, end_time) > settings.BOOKING_MAX_DURATION_HOURS:
        raise ValidationFailed(
            f"A booking cannot be longer than {settings.BOOKING_MAX_DURATION_HOURS} hours"
        )
    if aware_datetime(booking_date, start_time) <= timezone.now():
        raise ValidationFailed("Cannot book a slot in the past")

    with transaction.atomic():
        # The court row is the serialisation point for concurrent requests.
        court = _lock_queryset_if_possible(Court.objects.filter(pk=court_id)).first()
        if court is None:
            raise NotFound("Court not found")
        facility = Facility.objects.get(pk=court.facility_id)
        if not court.is_active:
            raise ValidationFailed("Court is not available for booking", code="COURT_INACTIVE")
        if facility.status != Facility.Status.APPROVED:
            raise ValidationFailed("Facility is not available for booking", code="FACILITY_NOT_APPROVED")
        if not court.is_within_hours(start_time, end_time):
            raise ValidationFailed(
                f"Court operates between {format_hhmm(court.opening_time)} and {format_hhmm(court.closing_time)}",
                code="OUTSIDE_OPERATING_HOURS",
            )

        ensure_court_is_available(court, booking_date, start_time, end_time)

        booking = Booking.objects.create(
            user=user,
            court=court,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            total_amount=calculate_total(court, start_time, end_time),
            notes=notes,
        )

    logger.info(
        f"Booking {booking.pk} created by user {user.pk} on court {court.pk} "
        f"{booking_date} {format_hhmm(start_time)}-{format_hhmm(end_time)}"
    )
    notify_booking_event(booking, Notification.Type.BOOKING_CREATED)
    return booking


# ============================================================================
# VISIBILITY
# ============================================================================

def visible_bookings(user: "User"):
    qs = Booking.objects.select_related("user", "court", "court__facility")
    if is_admin(user):
        return qs
    if user.is_facility_owner():
        return qs.filter(Q(court__facility__owner=user) | Q(user=user))
    return qs.filter(user=user)


def can_manage(user: "User", booking: Booking) -> bool:
    return (
        booking.user_id == user.pk
        or booking.court.facility.owner_id == user.pk
        or is_admin(user)
    )


# ============================================================================
# CANCELLATION
# ============================================================================

def refund_percentage(booking: Booking, now=None) -> int:
    """24h+ before start: full refund, 12-24h: half, under 12h: nothing."""

    now = now or timezone.now()
    hours_left = (booking.starts_at - now).total_seconds() / 3600
    if hours_left >= 24:
        return 100
    if hours_left >= 12:
        return 50
    return 0


def _refund_reason(actor: "User", booking: Booking) -> str:
    from apps.payments.models import Refund

    if booking.user_id == actor.pk:
        return Refund.Reason.USER_CANCELLED
    if is_admin(actor):
        return Refund.Reason.ADMIN_CANCELLED
    return Refund.Reason.FACILITY_UNAVAILABLE


def cancel_booking(booking: Booking, actor: "User", reason: str = "") -> dict[str, Any]:
    from apps.notifications.models import Notification
    from apps.notifications.services import notify_booking_event, send_booking_cancellation_email
    from apps.payments.exceptions import PaymentGatewayError
    from apps.payments.models import Payment
    from apps.payments.services import process_refund

    if not can_manage(actor, booking):
        raise PermissionDenied("You can only cancel your own bookings")

    with transaction.atomic():
        booking = _lock_queryset_if_possible(
            Booking.objects.select_related("user", "court", "court__facility").filter(pk=booking.pk)
        ).get()
        if booking.status == Booking.Status.CANCELLED:
            raise ValidationFailed("Booking is already cancelled", code="ALREADY_CANCELLED")
        if booking.status == Booking.Status.COMPLETED:
            raise ValidationFailed("Cannot cancel a completed booking", code="BOOKING_COMPLETED")
        if booking.has_started:
            raise ValidationFailed("Cannot cancel a booking that has already started or passed")

        payment = None
        percentage = 0
        if booking.status == Booking.Status.CONFIRMED:
            payment = Payment.objects.filter(booking=booking, status=Payment.Status.COMPLETED).first()
            if payment is not None:
                percentage = refund_percentage(booking)

        booking.mark_cancelled(reason)

    refund_amount = Decimal("0.00")
    refund_status = None
    if payment is not None and percentage:
        refund_amount = (payment.refundable_amount * percentage / 100).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        try:
            refund = process_refund(
                payment,
                refund_amount,
                _refund_reason(actor, booking),
                notes=reason or f"Booking {booking.pk} cancelled",
            )
            refund_status = refund.status
        except PaymentGatewayError as exc:
            # booking stays cancelled; the refund can be retried from the admin refund endpoint
            logger.error(f"Refund for cancelled booking {booking.pk} failed: {exc.message}", exc_info=True)
            refund_status = "FAILED"

    send_booking_cancellation_email(booking, refund_amount if refund_amount else None)
    notify_booking_event(
        booking,
        Notification.Type.BOOKING_CANCELLED,
        reason=reason,
        refund_amount=str(refund_amount),
    )

    logger.info(f"Booking {booking.pk} cancelled by user {actor.pk}, refund {percentage}% ({refund_amount})")
    return {
        "booking": booking,
        "refund": {
            "was_payment_made": payment is not None,
            "refund_percentage": percentage,
            "refund_amount": refund_amount,
            "status": refund_status,
        },
    }


# ============================================================================
# PAYMENT VIEWS OF A BOOKING
# ============================================================================

def payment_status(booking: Booking) -> dict[str, Any]:
    from apps.payments.models import Payment

    payment = Payment.objects.filter(booking=booking).order_by("-created_at").first()
    return {
        "booking_id": booking.pk,
        "booking_status": booking.status,
        "amount": booking.total_amount,
        "is_paid": booking.status in (Booking.Status.CONFIRMED, Booking.Status.COMPLETED) and bool(booking.payment_id),
        "payment": None
        if payment is None
        else {
            "id": payment.pk,
            "status": payment.status,
            "method": payment.method,
            "total_amount": payment.total_amount,
            "gateway_order_id": payment.gateway_order_id,
            "gateway_payment_id": payment.gateway_payment_id,
            "completed_at": payment.completed_at,
        },
    }


def booking_receipt(booking: Booking) -> dict[str, Any]:
    from apps.payments.models import Payment
    from apps.payments.services import build_receipt

    payment = (
        Payment.objects.filter(booking=booking, status__in=[Payment.Status.COMPLETED, Payment.Status.REFUNDED])
        .order_by("-created_at")
        .first()
    )
    if payment is None:
        raise ValidationFailed("Receipt is only available for paid bookings", code="NOT_PAID")
    return build_receipt(payment)
