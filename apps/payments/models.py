"""Payment domain models for CourtBook."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.db.models import Sum  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Coupon(models.Model):
    """Discount code applied to the base amount of a booking."""

    class DiscountType(models.TextChoices):
        PERCENTAGE = "PERCENTAGE", _("Percentage")
        FIXED = "FIXED", _("Fixed amount")

    code = models.CharField(max_length=30, unique=True)
    description = models.CharField(max_length=255, blank=True)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    discount_value = models.DecimalField(max_digits=10, decimal_places=2)
    min_booking_value = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    max_discount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    valid_from = models.DateTimeField(default=timezone.now)
    valid_until = models.DateTimeField(null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    per_user_limit = models.PositiveIntegerField(default=1)
    sport_types = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Coupon")
        verbose_name_plural = _("Coupons")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.code

    def save(self, *args, **kwargs):  # type: ignore
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)


class Payment(models.Model):
    """Gateway payment attempt for a booking."""

    class Method(models.TextChoices):
        CARD = "CARD", _("Credit/Debit card")
        UPI = "UPI", _("UPI")
        NET_BANKING = "NET_BANKING", _("Net banking")
        WALLET = "WALLET", _("Wallet")
        EMI = "EMI", _("EMI")

    class Status(models.TextChoices):
        PENDING = "PENDING", _("Awaiting payment")
        COMPLETED = "COMPLETED", _("Completed")
        FAILED = "FAILED", _("Failed")
        REFUNDED = "REFUNDED", _("Refunded")
        CANCELLED = "CANCELLED", _("Cancelled")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="payments",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    coupon = models.ForeignKey(
        Coupon,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2, help_text=_("Base amount after discount"))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    platform_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="INR")
    method = models.CharField(max_length=20, choices=Method.choices)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    gateway_order_id = models.CharField(max_length=100, db_index=True)
    gateway_receipt = models.CharField(max_length=100, blank=True)
    gateway_payment_id = models.CharField(max_length=100, unique=True, null=True, blank=True)
    gateway_signature = models.CharField(max_length=255, blank=True)
    gateway_response = models.JSONField(default=dict, blank=True)
    failure_reason = models.CharField(max_length=255, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "status"]),
            models.Index(fields=["status", "completed_at"]),
        ]

    def __str__(self) -> str:
        return f"Payment {self.pk} for booking {self.booking_id} ({self.status})"

    @property
    def refunded_amount(self) -> Decimal:
        total = self.refunds.filter(status=Refund.Status.PROCESSED).aggregate(total=Sum("amount"))["total"]
        return total or Decimal("0.00")

    @property
    def committed_refund_amount(self) -> Decimal:
        """Refunds already processed or still in flight at the gateway."""
        statuses = [Refund.Status.PENDING, Refund.Status.PROCESSED]
        total = self.refunds.filter(status__in=statuses).aggregate(total=Sum("amount"))["total"]
        return total or Decimal("0.00")

    @property
    def refundable_amount(self) -> Decimal:
        return max(Decimal("0.00"), self.total_amount - self.committed_refund_amount)

    def mark_completed(self, gateway_payment_id: str, signature: str = "") -> None:
        self.status = self.Status.COMPLETED
        self.gateway_payment_id = gateway_payment_id
        if signature:
            self.gateway_signature = signature
        self.completed_at = timezone.now()
        self.save(
            update_fields=["status", "gateway_payment_id", "gateway_signature", "completed_at", "updated_at"]
        )

    def mark_failed(self, reason: str = "") -> None:
        self.status = self.Status.FAILED
        self.failure_reason = reason[:255]
        self.save(update_fields=["status", "failure_reason", "updated_at"])

    def mark_refunded(self) -> None:
        self.status = self.Status.REFUNDED
        self.save(update_fields=["status", "updated_at"])


class Refund(models.Model):
    """Money returned for a completed payment."""

    class Reason(models.TextChoices):
        USER_CANCELLED = "USER_CANCELLED", _("Cancelled by player")
        FACILITY_UNAVAILABLE = "FACILITY_UNAVAILABLE", _("Facility unavailable")
        TECHNICAL_ISSUE = "TECHNICAL_ISSUE", _("Technical issue")
        ADMIN_CANCELLED = "ADMIN_CANCELLED", _("Cancelled by administrator")
        DUPLICATE_PAYMENT = "DUPLICATE_PAYMENT", _("Duplicate payment")
        OTHER = "OTHER", _("Other")

    class Status(models.TextChoices):
        PENDING = "PENDING", _("Pending")
        PROCESSED = "PROCESSED", _("Processed")
        FAILED = "FAILED", _("Failed")

    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name="refunds")
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    reason = models.CharField(max_length=30, choices=Reason.choices, default=Reason.OTHER)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    gateway_refund_id = models.CharField(max_length=100, unique=True, null=True, blank=True)
    notes = models.TextField(blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Refund")
        verbose_name_plural = _("Refunds")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Refund {self.amount} for payment {self.payment_id} ({self.status})"


class WebhookEvent(models.Model):
    """Raw log of every webhook delivery from the gateway."""

    event = models.CharField(max_length=50, blank=True)
    payload = models.JSONField(default=dict, blank=True)
    signature_valid = models.BooleanField(default=False)
    processed = models.BooleanField(default=False)
    error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Webhook event")
        verbose_name_plural = _("Webhook events")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.event or 'unknown'} ({'processed' if self.processed else 'pending'})"


class CouponUsage(models.Model):
    coupon = models.ForeignKey(Coupon, on_delete=models.CASCADE, related_name="usages")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="coupon_usages",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="coupon_usages",
    )
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2)
    used_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Coupon usage")
        verbose_name_plural = _("Coupon usages")
        ordering = ["-used_at"]

    def __str__(self) -> str:
        return f"{self.coupon_id} used by {self.user_id}"
