"""Account services: OTP issue/verification and account deactivation."""

from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.core.exceptions import NotFound, PermissionDenied, ValidationFailed, NotAuthorized, ServiceError

from .models import OTP, User

logger = logging.getLogger(__name__)


class OTPError(ValidationFailed):
    default_code = "INVALID_OTP"
    default_message = "Invalid or expired code"


class OTPRateLimited(ServiceError):
    status_code = 429
    default_code = "OTP_RATE_LIMITED"
    default_message = "Please wait before requesting another code"


@transaction.atomic
def issue_otp(user: User, otp_type: str) -> OTP:
    """Replace any unused code of this type with a fresh one and e-mail it."""

    OTP.objects.filter(user=user, type=otp_type, is_used=False).delete()
    otp = OTP.objects.create(
        user=user,
        code=OTP.generate_code(),
        type=otp_type,
        expires_at=OTP.default_expiry(),
    )

    from apps.notifications.services import send_otp_email

    send_otp_email(user, otp.code, otp_type)
    logger.info(f"Issued {otp_type} OTP for user {user.pk}")
    return otp


def resend_otp(email: str, otp_type: str) -> OTP:
    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        raise NotFound("User not found")
    if otp_type == OTP.Type.EMAIL_VERIFICATION and user.is_verified:
        raise ValidationFailed("Email is already verified", code="ALREADY_VERIFIED")

    latest = OTP.objects.filter(user=user, type=otp_type).order_by("-created_at").first()
    cooldown = timedelta(seconds=settings.OTP_RESEND_COOLDOWN_SECONDS)
    if latest and timezone.now() - latest.created_at < cooldown:
        raise OTPRateLimited()
    return issue_otp(user, otp_type)


@transaction.atomic
def verify_otp(email: str, code: str, otp_type: str) -> User:
    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        raise OTPError()

    otp = (
        OTP.objects.select_for_update()
        .filter(user=user, type=otp_type, code=code, is_used=False)
        .order_by("-created_at")
        .first()
    )
    if otp is None:
        raise OTPError()
    if otp.is_expired:
        raise OTPError("Code has expired, request a new one", code="OTP_EXPIRED")

    otp.mark_used()
    if otp_type == OTP.Type.EMAIL_VERIFICATION and not user.is_verified:
        user.mark_verified()
        logger.info(f"User {user.pk} verified email")
    return user


def authenticate_user(email: str, password: str) -> User:
    """Check credentials and account state for the login endpoint."""

    user = User.objects.filter(email__iexact=email).first()
    if user is None or not user.check_password(password):
        raise NotAuthorized("Invalid email or password", code="INVALID_CREDENTIALS")
    if user.is_deactivated or not user.is_active:
        raise PermissionDenied("Account is deactivated", code="ACCOUNT_DEACTIVATED")
    if user.is_banned:
        raise PermissionDenied("Account has been suspended", code="ACCOUNT_BANNED")
    if not user.is_verified:
        raise PermissionDenied(
            "Please verify your email before logging in", code="EMAIL_NOT_VERIFIED"
        )
    user.last_login = timezone.now()
    user.save(update_fields=["last_login"])
    return user


@transaction.atomic
def reset_password(email: str, code: str, new_password: str) -> User:
    user = verify_otp(email, code, OTP.Type.PASSWORD_RESET)
    user.set_password(new_password)
    user.save(update_fields=["password", "updated_at"])
    logger.info(f"Password reset for user {user.pk}")
    return user


def cancel_pending_bookings(user: User, reason: str) -> int:
    from apps.bookings.models import Booking

    return Booking.objects.filter(user=user, status=Booking.Status.PENDING).update(
        status=Booking.Status.CANCELLED,
        cancelled_at=timezone.now(),
        cancellation_reason=reason,
    )


@transaction.atomic
def deactivate_account(user: User, password: str, reason: str = "") -> dict[str, int | str]:
    """Soft delete: keep the row, cancel pending bookings, block login."""

    if user.is_deactivated:
        raise ValidationFailed("Account is already deactivated")
    if not user.check_password(password):
        raise NotAuthorized("Incorrect password", code="INVALID_PASSWORD")
    if user.is_platform_admin():
        raise PermissionDenied("Admin accounts cannot be self-deactivated. Contact another admin.")

    cancelled = cancel_pending_bookings(user, "Account deactivated by user")

    user.is_active = False
    user.deactivated_at = timezone.now()
    user.deactivation_reason = reason or "User requested account deletion"
    user.save(update_fields=["is_active", "deactivated_at", "deactivation_reason", "updated_at"])

    logger.info(f"User {user.pk} deactivated account, cancelled {cancelled} pending bookings")
    return {"cancelled_bookings": cancelled, "deactivated_at": user.deactivated_at.isoformat()}


def build_dashboard(user: User) -> dict:
    from django.db.models import Count, Sum  # type: ignore

    from apps.bookings.models import Booking
    from apps.bookings.serializers import BookingSerializer
    from apps.payments.models import Payment

    bookings = Booking.objects.filter(user=user)
    by_status = {row["status"]: row["total"] for row in bookings.values("status").annotate(total=Count("id"))}
    upcoming = (
        bookings.filter(
            status__in=[Booking.Status.PENDING, Booking.Status.CONFIRMED],
            booking_date__gte=timezone.localdate(),
        )
        .select_related("court", "court__facility")
        .order_by("booking_date", "start_time")[:5]
    )
    total_spent = (
        Payment.objects.filter(user=user, status=Payment.Status.COMPLETED).aggregate(total=Sum("total_amount"))["total"]
        or 0
    )
    return {
        "bookings": {
            "total": sum(by_status.values()),
            "pending": by_status.get(Booking.Status.PENDING, 0),
            "confirmed": by_status.get(Booking.Status.CONFIRMED, 0),
            "completed": by_status.get(Booking.Status.COMPLETED, 0),
            "cancelled": by_status.get(Booking.Status.CANCELLED, 0),
        },
        "upcoming": BookingSerializer(upcoming, many=True).data,
        "total_spent": str(total_spent),
        "reviews": user.reviews.count(),
        "favorites": user.favorites.count(),
    }
