"""Admin registration for payments."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Coupon, CouponUsage, Payment, Refund, WebhookEvent


class RefundInline(admin.TabularInline):
    model = Refund
    extra = 0
    readonly_fields = ("amount", "reason", "status", "gateway_refund_id", "processed_at", "created_at")


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "user", "method", "status", "total_amount", "currency", "completed_at")
    list_filter = ("status", "method", "currency")
    search_fields = ("gateway_order_id", "gateway_payment_id", "user__email")
    readonly_fields = ("gateway_response", "created_at", "updated_at", "completed_at")
    inlines = [RefundInline]


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ("id", "payment", "amount", "reason", "status", "processed_at")
    list_filter = ("status", "reason")
    search_fields = ("gateway_refund_id", "payment__gateway_payment_id")


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ("id", "event", "signature_valid", "processed", "created_at")
    list_filter = ("event", "signature_valid", "processed")
    readonly_fields = ("event", "payload", "signature_valid", "processed", "error", "created_at")


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ("code", "discount_type", "discount_value", "usage_count", "usage_limit", "is_active", "valid_until")
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "description")


@admin.register(CouponUsage)
class CouponUsageAdmin(admin.ModelAdmin):
    list_display = ("coupon", "user", "booking", "discount_amount", "used_at")
