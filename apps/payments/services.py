"""Domain services for payments, refunds and coupons."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore

from apps.core.exceptions import Conflict, NotFound, PermissionDenied, ValidationFailed
from apps.core.permissions import is_admin

from . import gateway
from .exceptions import CouponError, PaymentGatewayError
from .models import Coupon, CouponUsage, Payment, Refund, WebhookEvent

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.bookings.models import Booking
    from apps.users.models import User

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# ============================================================================
# COUPONS
# ============================================================================

def get_coupon(code: str) -> Coupon:
    coupon = Coupon.objects.filter(code=(code or "").strip().upper()).first()
    if coupon is None:
        raise NotFound("Invalid coupon code", code="COUPON_NOT_FOUND")
    return coupon


def check_coupon(coupon: Coupon, user: "User | None" = None, amount: Decimal | None = None, sport_type: str | None = None) -> None:
    """Raise ``CouponError`` unless the coupon can be used right now."""

    now = timezone.now()
    if not coupon.is_active:
        raise CouponError("This coupon is no longer active")
    if coupon.valid_from and coupon.valid_from > now:
        raise CouponError("This coupon is not yet active")
    if coupon.valid_until and coupon.valid_until < now:
        raise CouponError("This coupon has expired")
    if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
        raise CouponError("This coupon has reached its usage limit")
    if amount is not None and coupon.min_booking_value and amount < coupon.min_booking_value:
        raise CouponError(f"Minimum booking amount for this coupon is {coupon.min_booking_value}")
    if sport_type and coupon.sport_types and sport_type not in coupon.sport_types:
        raise CouponError(f"This coupon is not valid for {sport_type}")
    if user is not None:
        used = CouponUsage.objects.filter(coupon=coupon, user=user).count()
        if used >= coupon.per_user_limit:
            raise CouponError("You have already used this coupon the maximum number of times")


def coupon_discount(coupon: Coupon, amount: Decimal) -> Decimal:
    if coupon.discount_type == Coupon.DiscountType.PERCENTAGE:
        discount = amount * coupon.discount_value / 100
    else:
        discount = coupon.discount_value
    if coupon.max_discount is not None and discount > coupon.max_discount:
        discount = coupon.max_discount
    return _money(min(discount, amount))


def apply_coupon(code: str, amount: Decimal, user: "User", sport_type: str | None = None) -> dict[str, Any]:
    coupon = get_coupon(code)
    amount = _money(amount)
    check_coupon(coupon, user, amount, sport_type)
    discount = coupon_discount(coupon, amount)
    return {
        "coupon": coupon,
        "original_amount": amount,
        "discount": discount,
        "final_amount": amount - discount,
    }


def _record_coupon_usage(payment: Payment) -> None:
    if payment.coupon_id is None:
        return
    CouponUsage.objects.create(
        coupon_id=payment.coupon_id,
        user_id=payment.user_id,
        booking_id=payment.booking_id,
        discount_amount=payment.discount_amount,
    )
    Coupon.objects.filter(pk=payment.coupon_id).update(usage_count=F("usage_count") + 1)


# ============================================================================
# CHECKOUT
# ============================================================================

def initiate_payment(booking: "Booking", user: "User", method: str, coupon_code: str | None = None) -> dict[str, Any]:
    """
    Create a gateway order and a PENDING payment for ``booking``.

    Returns the data the client needs to open the gateway checkout.
    """
    from apps.bookings.models import Booking

    if method not in Payment.Method.values:
        raise ValidationFailed(f"Unsupported payment method: {method}", code="INVALID_METHOD")
    if booking.user_id != user.pk:
        raise PermissionDenied("You can only pay for your own bookings")
    if booking.status != Booking.Status.PENDING:
        raise ValidationFailed("Only pending bookings can be paid", code="BOOKING_NOT_PENDING")
    if Payment.objects.filter(
        booking=booking,
        status__in=[Payment.Status.PENDING, Payment.Status.COMPLETED],
    ).exists():
        raise Conflict("A payment for this booking is already in progress or completed", code="PAYMENT_EXISTS")

    base_amount = _money(booking.total_amount)
    coupon = None
    discount = Decimal("0.00")
    if coupon_code:
        applied = apply_coupon(coupon_code, base_amount, user, booking.court.sport_type)
        coupon = applied["coupon"]
        discount = applied["discount"]

    fees = gateway.calculate_fees(base_amount - discount, method)
    receipt = gateway.generate_order_id(booking.pk)
    order = gateway.create_order(
        fees["total_amount"],
        receipt,
        notes={
            "booking_id": booking.pk,
            "user_id": user.pk,
            "base_amount": fees["base_amount"],
            "platform_fee": fees["platform_fee"],
            "gst": fees["gst"],
        },
    )

    payment = Payment.objects.create(
        booking=booking,
        user=user,
        coupon=coupon,
        amount=fees["base_amount"],
        discount_amount=discount,
        platform_fee=fees["platform_fee"],
        tax=fees["gst"],
        total_amount=fees["total_amount"],
        currency=order.get("currency", settings.PAYMENT_CURRENCY),
        method=method,
        gateway_order_id=order["id"],
        gateway_receipt=receipt,
        gateway_response={"order": order},
    )
    logger.info(
        f"Payment {payment.pk} initiated for booking {booking.pk}: "
        f"{payment.total_amount} {payment.currency} via {method}"
    )

    return {
        "payment_id": payment.pk,
        "booking_id": booking.pk,
        "order_id": payment.gateway_order_id,
        "receipt": receipt,
        "amount": gateway.to_minor_units(payment.total_amount),
        "currency": payment.currency,
        "key": settings.PAYMENT_GATEWAY_KEY_ID,
        "method": method,
        "fee_breakdown": {
            "original_amount": base_amount,
            "discount": discount,
            "base_amount": fees["base_amount"],
            "platform_fee": fees["platform_fee"],
            "gst": fees["gst"],
            "total_amount": fees["total_amount"],
        },
        "coupon_code": coupon.code if coupon else None,
        "prefill": {"name": user.name, "email": user.email, "contact": user.phone},
    }


def _complete_payment(payment: Payment, gateway_payment_id: str, signature: str = "", details: dict | None = None) -> Payment:
    from apps.bookings.models import Booking
    from apps.notifications.models import Notification
    from apps.notifications.services import notify_booking_event, send_booking_confirmation_email

    with transaction.atomic():
        payment = Payment.objects.select_for_update().select_related(
            "booking", "booking__user", "booking__court", "booking__court__facility"
        ).get(pk=payment.pk)
        if payment.status == Payment.Status.COMPLETED:
            return payment
        if details:
            payment.gateway_response = {**payment.gateway_response, "payment": details}
            payment.save(update_fields=["gateway_response", "updated_at"])
        payment.mark_completed(gateway_payment_id, signature)
        _record_coupon_usage(payment)
        booking = payment.booking
        booking_live = booking.status == Booking.Status.PENDING
        if booking_live:
            booking.mark_confirmed(gateway_payment_id)

    logger.info(f"Payment {payment.pk} completed ({gateway_payment_id}), booking {booking.pk}")

    if not booking_live:
        # Money arrived for a booking that already expired or was cancelled.
        logger.warning(f"Payment {payment.pk} captured for booking {booking.pk} in status {booking.status}, refunding")
        try:
            process_refund(
                payment,
                payment.total_amount,
                Refund.Reason.TECHNICAL_ISSUE,
                notes=f"Booking {booking.pk} was {booking.status.lower()} before payment completed",
            )
        except PaymentGatewayError as exc:
            logger.error(f"Automatic refund for payment {payment.pk} failed: {exc.message}", exc_info=True)
        return payment

    send_booking_confirmation_email(booking)
    notify_booking_event(booking, Notification.Type.PAYMENT_SUCCESS, amount=str(payment.total_amount))
    notify_booking_event(booking, Notification.Type.BOOKING_CONFIRMED)
    return payment


def verify_payment(user: "User", order_id: str, payment_id: str, signature: str) -> Payment:
    """Confirm a checkout the client reports as paid."""

    if not gateway.verify_payment_signature(order_id, payment_id, signature):
        logger.warning(f"Invalid payment signature for order {order_id} (user {user.pk})")
        raise ValidationFailed("Invalid payment signature", code="INVALID_SIGNATURE")

    payment = Payment.objects.filter(
        gateway_order_id=order_id,
        user=user,
        status=Payment.Status.PENDING,
    ).first()
    if payment is None:
        raise NotFound("Pending payment not found for this order", code="PAYMENT_NOT_FOUND")

    details = gateway.fetch_payment(payment_id)
    gateway_amount = details.get("amount")
    if gateway_amount is not None and int(gateway_amount) != gateway.to_minor_units(payment.total_amount):
        logger.error(
            f"Amount mismatch for payment {payment.pk}: gateway {gateway_amount}, "
            f"expected {gateway.to_minor_units(payment.total_amount)}"
        )
        raise ValidationFailed("Payment amount does not match the order", code="AMOUNT_MISMATCH")

    return _complete_payment(payment, payment_id, signature, details)


def fail_payment(payment: Payment, reason: str) -> Payment:
    from apps.notifications.models import Notification
    from apps.notifications.services import notify_booking_event

    payment.mark_failed(reason or "Payment failed")
    logger.info(f"Payment {payment.pk} failed: {payment.failure_reason}")
    notify_booking_event(payment.booking, Notification.Type.PAYMENT_FAILED, amount=str(payment.total_amount))
    return payment


# ============================================================================
# REFUNDS
# ============================================================================

def _refresh_refund_state(payment: Payment) -> None:
    if payment.status == Payment.Status.COMPLETED and payment.refunded_amount >= payment.total_amount:
        payment.mark_refunded()


def process_refund(payment: Payment, amount: Decimal, reason: str, notes: str = "") -> Refund:
    """Refund ``amount`` of a completed payment through the gateway."""

    from apps.notifications.models import Notification
    from apps.notifications.services import create_notification

    amount = _money(amount)
    if payment.status != Payment.Status.COMPLETED:
        raise ValidationFailed("Only completed payments can be refunded", code="PAYMENT_NOT_COMPLETED")
    if amount <= 0:
        raise ValidationFailed("Refund amount must be positive")
    if amount > payment.refundable_amount:
        raise ValidationFailed(
            f"Refund amount exceeds the refundable balance of {payment.refundable_amount}",
            code="REFUND_TOO_LARGE",
        )
    if reason not in Refund.Reason.values:
        reason = Refund.Reason.OTHER

    refund = Refund.objects.create(payment=payment, amount=amount, reason=reason, notes=notes)
    try:
        result = gateway.create_refund(
            payment.gateway_payment_id,
            amount,
            notes={"reason": reason, "payment_id": payment.pk, "booking_id": payment.booking_id},
        )
    except PaymentGatewayError:
        refund.status = Refund.Status.FAILED
        refund.save(update_fields=["status", "updated_at"])
        raise

    refund.gateway_refund_id = result.get("id")
    if result.get("status") == "processed":
        refund.status = Refund.Status.PROCESSED
        refund.processed_at = timezone.now()
    refund.save(update_fields=["gateway_refund_id", "status", "processed_at", "updated_at"])
    _refresh_refund_state(payment)

    logger.info(f"Refund {refund.pk} of {amount} for payment {payment.pk}: {refund.status}")
    if refund.status == Refund.Status.PROCESSED:
        create_notification(
            payment.user,
            Notification.Type.REFUND_PROCESSED,
            {"amount": str(amount), "booking_id": payment.booking_id},
        )
    return refund


# ============================================================================
# WEBHOOKS
# ============================================================================

def _entity(payload: dict[str, Any], name: str) -> dict[str, Any]:
    return ((payload.get("payload") or {}).get(name) or {}).get("entity") or {}


def _on_payment_captured(payload: dict[str, Any]) -> str:
    entity = _entity(payload, "payment")
    gateway_payment_id = entity.get("id")
    if Payment.objects.filter(gateway_payment_id=gateway_payment_id, status=Payment.Status.COMPLETED).exists():
        return "already processed"
    payment = Payment.objects.filter(
        gateway_order_id=entity.get("order_id"),
        status=Payment.Status.PENDING,
    ).first()
    if payment is None:
        logger.warning(f"No pending payment for captured order {entity.get('order_id')}")
        return "payment not found"
    _complete_payment(payment, gateway_payment_id, details=entity)
    return "payment completed"


def _on_payment_failed(payload: dict[str, Any]) -> str:
    entity = _entity(payload, "payment")
    payment = Payment.objects.filter(
        gateway_order_id=entity.get("order_id"),
        status=Payment.Status.PENDING,
    ).first()
    if payment is None:
        logger.warning(f"No pending payment for failed order {entity.get('order_id')}")
        return "payment not found"
    reason = entity.get("error_description") or f"Error code: {entity.get('error_code')}"
    fail_payment(payment, reason)
    return "payment failed"


def _on_refund_processed(payload: dict[str, Any]) -> str:
    entity = _entity(payload, "refund")
    payment = Payment.objects.filter(gateway_payment_id=entity.get("payment_id")).first()
    if payment is None:
        logger.warning(f"No payment for refund {entity.get('id')} ({entity.get('payment_id')})")
        return "payment not found"

    refund, created = Refund.objects.get_or_create(
        gateway_refund_id=entity.get("id"),
        defaults={
            "payment": payment,
            "amount": gateway.from_minor_units(entity.get("amount")),
            "reason": Refund.Reason.OTHER,
            "notes": "Created from gateway webhook",
        },
    )
    if refund.status == Refund.Status.PROCESSED and not created:
        return "already processed"
    refund.status = Refund.Status.PROCESSED
    refund.processed_at = timezone.now()
    refund.save(update_fields=["status", "processed_at", "updated_at"])
    _refresh_refund_state(payment)
    return "refund processed"


WEBHOOK_HANDLERS = {
    "payment.captured": _on_payment_captured,
    "payment.failed": _on_payment_failed,
    "refund.processed": _on_refund_processed,
}


def process_webhook(event: WebhookEvent) -> str:
    """Apply a verified webhook event; unknown events are acknowledged."""

    handler = WEBHOOK_HANDLERS.get(event.event)
    if handler is None:
        logger.info(f"Unhandled webhook event: {event.event}")
        result = "ignored"
    else:
        result = handler(event.payload)
    event.processed = True
    event.error = "" if result != "payment not found" else result
    event.save(update_fields=["processed", "error"])
    logger.info(f"Webhook {event.pk} ({event.event}): {result}")
    return result


# ============================================================================
# QUERIES
# ============================================================================

def visible_payments(user: "User"):
    qs = Payment.objects.select_related("booking", "booking__court", "booking__court__facility", "user")
    if is_admin(user):
        return qs
    return qs.filter(user=user)


def build_receipt(payment: Payment) -> dict[str, Any]:
    booking = payment.booking
    court = booking.court
    facility = court.facility
    refunds = list(payment.refunds.all())
    refunded = sum((r.amount for r in refunds if r.status == Refund.Status.PROCESSED), Decimal("0.00"))
    return {
        "receipt_number": f"RCP-{payment.pk:08d}",
        "invoice_number": f"INV-{payment.created_at:%Y}-{payment.pk:06d}",
        "payment_id": payment.pk,
        "gateway_payment_id": payment.gateway_payment_id,
        "gateway_order_id": payment.gateway_order_id,
        "customer": {
            "name": payment.user.name,
            "email": payment.user.email,
            "phone": payment.user.phone,
        },
        "venue": {
            "name": facility.name,
            "address": facility.address,
            "city": facility.city,
            "state": facility.state,
            "pincode": facility.pincode,
        },
        "booking": {
            "id": booking.pk,
            "court_name": court.name,
            "sport_type": court.sport_type,
            "date": booking.booking_date.isoformat(),
            "start_time": f"{booking.start_time:%H:%M}",
            "end_time": f"{booking.end_time:%H:%M}",
            "duration_hours": booking.duration_hours,
        },
        "payment": {
            "base_amount": payment.amount,
            "discount": payment.discount_amount,
            "platform_fee": payment.platform_fee,
            "gst": payment.tax,
            "total_amount": payment.total_amount,
            "currency": payment.currency,
            "method": payment.method,
            "status": payment.status,
        },
        "refunds": [
            {
                "id": r.pk,
                "amount": r.amount,
                "status": r.status,
                "reason": r.reason,
                "date": r.processed_at or r.created_at,
            }
            for r in refunds
        ],
        "net_amount": payment.total_amount - refunded,
        "payment_date": payment.created_at,
        "completed_at": payment.completed_at,
        "generated_at": timezone.now(),
    }
