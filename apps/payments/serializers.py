"""Serializers for payments, refunds and coupons."""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers  # type: ignore

from apps.facilities.models import Court

from .models import Coupon, Payment, Refund


class RefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = Refund
        fields = [
            "id",
            "amount",
            "reason",
            "status",
            "gateway_refund_id",
            "notes",
            "processed_at",
            "created_at",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    """Payment with a compact booking summary."""

    booking_id = serializers.ReadOnlyField(source="booking.id")
    booking_date = serializers.ReadOnlyField(source="booking.booking_date")
    booking_status = serializers.ReadOnlyField(source="booking.status")
    facility_name = serializers.ReadOnlyField(source="booking.court.facility.name")
    court_name = serializers.ReadOnlyField(source="booking.court.name")
    coupon_code = serializers.ReadOnlyField(source="coupon.code", default=None)
    refunds = RefundSerializer(many=True, read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking_id",
            "booking_date",
            "booking_status",
            "facility_name",
            "court_name",
            "amount",
            "discount_amount",
            "coupon_code",
            "platform_fee",
            "tax",
            "total_amount",
            "currency",
            "method",
            "status",
            "gateway_order_id",
            "gateway_payment_id",
            "failure_reason",
            "completed_at",
            "created_at",
            "refunds",
        ]
        read_only_fields = fields


class PaymentInitiateSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=Payment.Method.choices)
    coupon_code = serializers.CharField(required=False, allow_blank=True, max_length=30)


class PaymentVerifySerializer(serializers.Serializer):
    order_id = serializers.CharField(max_length=100)
    payment_id = serializers.CharField(max_length=100)
    signature = serializers.CharField(max_length=255)


class RefundRequestSerializer(serializers.Serializer):
    payment_id = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=Decimal("0.01"))
    reason = serializers.ChoiceField(choices=Refund.Reason.choices, default=Refund.Reason.OTHER)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500)


class CouponSerializer(serializers.ModelSerializer):
    sport_types = serializers.ListField(
        child=serializers.ChoiceField(choices=Court.SportType.choices),
        required=False,
    )

    class Meta:
        model = Coupon
        fields = [
            "id",
            "code",
            "description",
            "discount_type",
            "discount_value",
            "min_booking_value",
            "max_discount",
            "valid_from",
            "valid_until",
            "usage_limit",
            "usage_count",
            "per_user_limit",
            "sport_types",
            "is_active",
            "created_at",
        ]
        read_only_fields = ["id", "usage_count", "created_at"]

    def validate_code(self, value: str) -> str:
        value = value.strip().upper()
        qs = Coupon.objects.filter(code=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("A coupon with this code already exists.")
        return value

    def validate(self, attrs):  # type: ignore
        discount_type = attrs.get("discount_type", getattr(self.instance, "discount_type", None))
        value = attrs.get("discount_value", getattr(self.instance, "discount_value", None))
        if value is not None and value <= 0:
            raise serializers.ValidationError({"discount_value": "Discount must be positive."})
        if discount_type == Coupon.DiscountType.PERCENTAGE and value is not None and value > 100:
            raise serializers.ValidationError({"discount_value": "Percentage discount cannot exceed 100."})
        valid_from = attrs.get("valid_from", getattr(self.instance, "valid_from", None))
        valid_until = attrs.get("valid_until", getattr(self.instance, "valid_until", None))
        if valid_from and valid_until and valid_until <= valid_from:
            raise serializers.ValidationError({"valid_until": "Must be after valid_from."})
        return attrs


class CouponPublicSerializer(serializers.ModelSerializer):
    class Meta:
        model = Coupon
        fields = [
            "code",
            "description",
            "discount_type",
            "discount_value",
            "min_booking_value",
            "max_discount",
            "valid_until",
            "sport_types",
        ]
        read_only_fields = fields


class CouponApplySerializer(serializers.Serializer):
    code = serializers.CharField(max_length=30)
    booking_amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0.01"))
    sport_type = serializers.ChoiceField(choices=Court.SportType.choices, required=False)
