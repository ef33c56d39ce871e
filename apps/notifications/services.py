"""Notification services: in-app rows and transactional e-mail."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.db.models import Q  # type: ignore
from django.template.loader import render_to_string  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.html import strip_tags  # type: ignore

from apps.core.exceptions import ValidationFailed

from .models import Notification, NotificationPreference

if TYPE_CHECKING:  # pragma: no cover
    from apps.bookings.models import Booking
    from apps.users.models import User

logger = logging.getLogger(__name__)

T = Notification.Type

TEMPLATES: dict[str, tuple[str, str]] = {
    T.BOOKING_CREATED: (
        "Booking Created",
        "Your booking at {venue_name} for {date} at {time} is reserved. Complete payment to confirm it.",
    ),
    T.BOOKING_CONFIRMED: (
        "Booking Confirmed",
        "Your booking at {venue_name} for {date} at {time} has been confirmed.",
    ),
    T.BOOKING_CANCELLED: (
        "Booking Cancelled",
        "Your booking at {venue_name} for {date} has been cancelled. {reason}",
    ),
    T.BOOKING_REMINDER: (
        "Upcoming Booking Reminder",
        "Reminder: You have a booking at {venue_name} on {date} at {time}.",
    ),
    T.PAYMENT_SUCCESS: (
        "Payment Successful",
        "Payment of ₹{amount} for your booking at {venue_name} was successful.",
    ),
    T.PAYMENT_FAILED: (
        "Payment Failed",
        "Payment of ₹{amount} for your booking at {venue_name} failed. Please try again.",
    ),
    T.REFUND_PROCESSED: (
        "Refund Processed",
        "Your refund of ₹{amount} has been processed. It will be credited within 5-7 business days.",
    ),
    T.REVIEW_RESPONSE: (
        "Owner Responded to Your Review",
        "The owner of {venue_name} responded to your review.",
    ),
    T.VENUE_APPROVED: (
        "Venue Approved",
        'Congratulations! Your venue "{venue_name}" has been approved and is now live.',
    ),
    T.VENUE_REJECTED: (
        "Venue Not Approved",
        'Your venue "{venue_name}" was not approved. Reason: {reason}',
    ),
    T.SYSTEM_ALERT: ("System Notification", "{message}"),
    T.PROMOTIONAL: ("Special Offer", "{message}"),
}

# Preference flag that silences each category; SYSTEM_ALERT is always delivered.
PREFERENCE_FIELDS: dict[str, str] = {
    T.BOOKING_CREATED: "booking_updates",
    T.BOOKING_CONFIRMED: "booking_updates",
    T.BOOKING_CANCELLED: "booking_updates",
    T.BOOKING_REMINDER: "booking_updates",
    T.PAYMENT_SUCCESS: "payment_updates",
    T.PAYMENT_FAILED: "payment_updates",
    T.REFUND_PROCESSED: "payment_updates",
    T.REVIEW_RESPONSE: "review_updates",
    T.VENUE_APPROVED: "booking_updates",
    T.VENUE_REJECTED: "booking_updates",
    T.PROMOTIONAL: "promotional",
}

_DEFAULT_MESSAGES = {
    T.SYSTEM_ALERT: "You have a new system notification.",
    T.PROMOTIONAL: "Check out our latest offers!",
}


class _SafeDict(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render_template(notification_type: str, data: dict[str, Any]) -> tuple[str, str]:
    title, template = TEMPLATES[notification_type]
    if notification_type in _DEFAULT_MESSAGES and not data.get("message"):
        return title, _DEFAULT_MESSAGES[notification_type]
    return title, template.format_map(_SafeDict(data)).strip()


def get_preferences(user: "User") -> NotificationPreference:
    preference, _ = NotificationPreference.objects.get_or_create(user=user)
    return preference


def is_category_enabled(user: "User", notification_type: str) -> bool:
    field = PREFERENCE_FIELDS.get(notification_type)
    if field is None:
        return True
    return getattr(get_preferences(user), field)


def create_notification(
    user: "User",
    notification_type: str,
    data: dict[str, Any] | None = None,
    *,
    title: str | None = None,
    message: str | None = None,
    expires_at=None,
) -> Notification | None:
    """Store a templated notification unless the user muted its category."""

    data = data or {}
    if notification_type not in TEMPLATES and not title:
        raise ValidationFailed(f"Unknown notification type: {notification_type}")

    if not is_category_enabled(user, notification_type):
        logger.info(f"Notification {notification_type} skipped for user {user.pk} (muted)")
        return None

    default_title, default_message = (
        render_template(notification_type, data) if notification_type in TEMPLATES else ("Notification", "")
    )
    return Notification.objects.create(
        user=user,
        type=notification_type,
        title=title or default_title,
        message=message or default_message or "You have a new notification.",
        data=data,
        expires_at=expires_at,
    )


def create_bulk_notifications(users: Iterable["User"], notification_type: str, data: dict[str, Any] | None = None) -> int:
    data = data or {}
    title, message = render_template(notification_type, data)
    rows = [
        Notification(user=user, type=notification_type, title=title, message=message, data=data)
        for user in users
    ]
    created = Notification.objects.bulk_create(rows)
    logger.info(f"Created {len(created)} {notification_type} notifications")
    return len(created)


def active_notifications(user: "User"):
    now = timezone.now()
    return Notification.objects.filter(user=user).filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))


def unread_count(user: "User") -> int:
    return active_notifications(user).filter(is_read=False).count()


def mark_all_read(user: "User") -> int:
    return Notification.objects.filter(user=user, is_read=False).update(is_read=True, read_at=timezone.now())


# ============================================================================
# EMAIL NOTIFICATIONS
# ============================================================================

def send_email_notification(
    recipient_email: str,
    subject: str,
    template_name: str | None,
    context: dict,
    *,
    html_message: str | None = None,
) -> bool:
    """
    Send a transactional e-mail.

    Args:
        recipient_email: recipient address
        subject: message subject
        template_name: optional Django template rendered with ``context``
        context: template context; ``context["message"]`` is the plain body
            when no template or HTML is given
        html_message: pre-rendered HTML body

    Returns:
        bool: True when the backend accepted the message
    """
    try:
        if html_message:
            text_message = strip_tags(html_message)
        elif template_name:
            html_message = render_to_string(template_name, context)
            text_message = strip_tags(html_message)
        else:
            text_message = context.get("message", "")
            html_message = None

        send_mail(
            subject=subject,
            message=text_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info(f"Email sent successfully to {recipient_email}: {subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False


def _email_allowed(user: "User") -> bool:
    return get_preferences(user).email_enabled


def send_otp_email(user: "User", code: str, otp_type: str) -> bool:
    """OTP mails ignore preferences: they gate login and password reset."""

    from apps.users.models import OTP

    if otp_type == OTP.Type.PASSWORD_RESET:
        subject = "Reset your CourtBook password"
        intro = "Use this code to reset your password"
    else:
        subject = "Verify your CourtBook account"
        intro = "Use this code to verify your email address"

    html_message = f"""
    <html>
    <body>
        <h2>Hello, {user.name or user.email}!</h2>
        <p>{intro}:</p>
        <p style="font-size: 24px; letter-spacing: 4px;"><strong>{code}</strong></p>
        <p>The code expires in {settings.OTP_EXPIRY_MINUTES} minutes.</p>
        <p>If you did not request this, you can ignore this email.</p>
    </body>
    </html>
    """
    return send_email_notification(user.email, subject, None, {}, html_message=html_message)


def _booking_context(booking: "Booking") -> dict[str, str]:
    return {
        "venue_name": booking.court.facility.name,
        "court_name": booking.court.name,
        "date": booking.booking_date.strftime("%d %b %Y"),
        "time": f"{booking.start_time:%H:%M} - {booking.end_time:%H:%M}",
        "amount": str(booking.total_amount),
    }


def send_booking_confirmation_email(booking: "Booking") -> bool:
    if not _email_allowed(booking.user):
        return False
    ctx = _booking_context(booking)
    html_message = f"""
    <html>
    <body>
        <h2>Hi {booking.user.name},</h2>
        <p>Your booking is confirmed.</p>
        <ul>
            <li><strong>Booking:</strong> #{booking.pk}</li>
            <li><strong>Venue:</strong> {ctx['venue_name']}</li>
            <li><strong>Court:</strong> {ctx['court_name']}</li>
            <li><strong>Date:</strong> {ctx['date']}</li>
            <li><strong>Time:</strong> {ctx['time']}</li>
            <li><strong>Amount:</strong> ₹{ctx['amount']}</li>
        </ul>
        <p>See you on court!</p>
    </body>
    </html>
    """
    return send_email_notification(
        booking.user.email, f"Booking #{booking.pk} confirmed", None, ctx, html_message=html_message
    )


def send_booking_cancellation_email(booking: "Booking", refund_amount=None) -> bool:
    if not _email_allowed(booking.user):
        return False
    ctx = _booking_context(booking)
    refund_line = (
        f"<p>A refund of ₹{refund_amount} will be credited within 5-7 business days.</p>"
        if refund_amount
        else "<p>No refund applies to this cancellation.</p>"
    )
    html_message = f"""
    <html>
    <body>
        <h2>Hi {booking.user.name},</h2>
        <p>Your booking #{booking.pk} at {ctx['venue_name']} on {ctx['date']} ({ctx['time']}) has been cancelled.</p>
        <p>Reason: {booking.cancellation_reason or 'not specified'}</p>
        {refund_line}
    </body>
    </html>
    """
    return send_email_notification(
        booking.user.email, f"Booking #{booking.pk} cancelled", None, ctx, html_message=html_message
    )


def send_booking_reminder_email(booking: "Booking") -> bool:
    if not _email_allowed(booking.user):
        return False
    ctx = _booking_context(booking)
    ctx["message"] = (
        f"Reminder: you have a booking at {ctx['venue_name']} ({ctx['court_name']}) "
        f"on {ctx['date']} at {ctx['time']}."
    )
    return send_email_notification(booking.user.email, "Your booking is tomorrow", None, ctx)


def notify_booking_event(booking: "Booking", notification_type: str, **extra: Any) -> Notification | None:
    data = {**_booking_context(booking), "booking_id": booking.pk, **extra}
    return create_notification(booking.user, notification_type, data)
