"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from .models import Booking

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (scheduled by Celery Beat)
# ============================================================================

def _stale_booking_ids(cutoff) -> list[int]:
    return list(
        Booking.objects.filter(status=Booking.Status.PENDING, created_at__lte=cutoff).values_list("pk", flat=True)
    )


@shared_task(name="bookings.expire_pending_bookings")
def expire_pending_bookings() -> dict[str, int]:
    """
    Cancel unpaid holds.

    PENDING bookings older than ``BOOKING_PENDING_TIMEOUT_MINUTES`` are
    cancelled with the reason "Payment timeout" and their open payment
    attempts are marked CANCELLED.

    Returns:
        dict: {"expired": number of cancelled bookings}
    """
    from apps.payments.models import Payment

    cutoff = timezone.now() - timedelta(minutes=settings.BOOKING_PENDING_TIMEOUT_MINUTES)
    expired_count = 0

    for booking_id in _stale_booking_ids(cutoff):
        try:
            with transaction.atomic():
                # Payment may have confirmed the booking since it was listed.
                booking = (
                    Booking.objects.select_for_update()
                    .filter(pk=booking_id, status=Booking.Status.PENDING)
                    .first()
                )
                if booking is None:
                    continue
                booking.mark_cancelled("Payment timeout")
                Payment.objects.filter(booking=booking, status=Payment.Status.PENDING).update(
                    status=Payment.Status.CANCELLED,
                    failure_reason="Payment timeout",
                )
            expired_count += 1
            logger.info(f"Booking {booking.pk} expired automatically (user {booking.user_id})")
        except Exception as e:
            logger.error(f"Error expiring booking {booking_id}: {e}", exc_info=True)

    if expired_count > 0:
        logger.info(f"Expired {expired_count} pending bookings")

    return {"expired": expired_count}


@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """
    Mark CONFIRMED bookings whose end time has passed as COMPLETED.

    Returns:
        dict: {"completed": number of completed bookings}
    """
    now = timezone.localtime()
    today = now.date()

    finished = Booking.objects.filter(status=Booking.Status.CONFIRMED, booking_date__lt=today)
    completed_count = finished.update(status=Booking.Status.COMPLETED, updated_at=timezone.now())

    ended_today = Booking.objects.filter(
        status=Booking.Status.CONFIRMED,
        booking_date=today,
        end_time__lte=now.time(),
    )
    completed_count += ended_today.update(status=Booking.Status.COMPLETED, updated_at=timezone.now())

    if completed_count > 0:
        logger.info(f"Completed {completed_count} bookings")

    return {"completed": completed_count}


@shared_task(name="bookings.send_upcoming_booking_reminders")
def send_upcoming_booking_reminders() -> dict[str, int]:
    """
    Remind players about tomorrow's confirmed bookings.

    Returns:
        dict: {"sent": number of reminders}
    """
    from apps.notifications.models import Notification
    from apps.notifications.services import notify_booking_event, send_booking_reminder_email

    tomorrow = timezone.localdate() + timedelta(days=1)
    sent_count = 0

    upcoming = Booking.objects.filter(
        status=Booking.Status.CONFIRMED,
        booking_date=tomorrow,
    ).select_related("user", "court", "court__facility")

    for booking in upcoming:
        try:
            send_booking_reminder_email(booking)
            notify_booking_event(booking, Notification.Type.BOOKING_REMINDER)
            sent_count += 1
        except Exception as e:
            logger.error(f"Error sending reminder for booking {booking.pk}: {e}", exc_info=True)

    if sent_count > 0:
        logger.info(f"Sent {sent_count} booking reminders")

    return {"sent": sent_count}
