"""Integration tests for checkout, verification, refunds and coupons."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.core.exceptions import PermissionDenied, ValidationFailed
from apps.core.testing import make_admin, make_booking, make_court, make_facility, make_owner, make_user
from apps.notifications.models import Notification
from apps.payments import gateway, services
from apps.payments.exceptions import CouponError
from apps.payments.models import Coupon, CouponUsage, Payment, Refund


class FeeCalculationTests(APITestCase):
    def test_card_fee_includes_gst_on_fee(self) -> None:
        fees = gateway.calculate_fees(Decimal("1000.00"), "CARD")

        self.assertEqual(fees["platform_fee"], Decimal("29.90"))
        self.assertEqual(fees["gst"], Decimal("5.38"))
        self.assertEqual(fees["total_amount"], Decimal("1035.28"))

    def test_upi_fee(self) -> None:
        fees = gateway.calculate_fees(Decimal("1000.00"), "UPI")

        self.assertEqual(fees["platform_fee"], Decimal("5.00"))
        self.assertEqual(fees["gst"], Decimal("0.90"))
        self.assertEqual(fees["total_amount"], Decimal("1005.90"))

    def test_order_id_format(self) -> None:
        order_id = gateway.generate_order_id(123456789)

        self.assertTrue(order_id.startswith("ORDER_23456789_"))
        self.assertEqual(order_id, order_id.upper())


class CheckoutTests(APITestCase):
    def setUp(self) -> None:
        self.player = make_user()
        self.owner = make_owner()
        self.court = make_court(make_facility(self.owner))
        self.booking = make_booking(self.player, self.court)
        self.client.force_authenticate(self.player)

    def _pay(self, **payload):
        payload.setdefault("method", "UPI")
        return self.client.post(reverse("booking-pay", args=[self.booking.pk]), payload, format="json")

    def _checkout(self) -> Payment:
        response = self._pay()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return Payment.objects.get(pk=response.data["data"]["payment_id"])

    def test_initiate_creates_pending_payment_with_fees(self) -> None:
        response = self._pay()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        data = response.data["data"]
        self.assertEqual(data["amount"], 100590)
        self.assertTrue(data["order_id"].startswith("ORDER_"))
        payment = Payment.objects.get(pk=data["payment_id"])
        self.assertEqual(payment.status, Payment.Status.PENDING)
        self.assertEqual(payment.total_amount, Decimal("1005.90"))

    def test_second_checkout_is_rejected(self) -> None:
        self._checkout()

        response = self._pay()

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "PAYMENT_EXISTS")

    def test_invalid_method_is_rejected(self) -> None:
        response = self._pay(method="CASH")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_pay_for_someone_elses_booking(self) -> None:
        other = make_user()

        with self.assertRaises(PermissionDenied):
            services.initiate_payment(self.booking, other, "CARD")

    def test_cancelled_booking_cannot_be_paid(self) -> None:
        self.booking.mark_cancelled("changed plans")

        response = self._pay()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "BOOKING_NOT_PENDING")

    def test_verify_confirms_booking(self) -> None:
        payment = self._checkout()
        signature = gateway.sign_payment(payment.gateway_order_id, "pay_test_1")

        response = self.client.post(
            reverse("payment-verify"),
            {"order_id": payment.gateway_order_id, "payment_id": "pay_test_1", "signature": signature},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        payment.refresh_from_db()
        self.booking.refresh_from_db()
        self.assertEqual(payment.status, Payment.Status.COMPLETED)
        self.assertEqual(self.booking.status, Booking.Status.CONFIRMED)
        self.assertEqual(self.booking.payment_id, "pay_test_1")
        self.assertIsNotNone(self.booking.confirmed_at)
        self.assertTrue(
            Notification.objects.filter(user=self.player, type=Notification.Type.PAYMENT_SUCCESS).exists()
        )

    def test_verify_rejects_bad_signature(self) -> None:
        payment = self._checkout()

        response = self.client.post(
            reverse("payment-verify"),
            {"order_id": payment.gateway_order_id, "payment_id": "pay_test_1", "signature": "deadbeef"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "INVALID_SIGNATURE")
        payment.refresh_from_db()
        self.assertEqual(payment.status, Payment.Status.PENDING)

    def test_verify_rejects_amount_mismatch(self) -> None:
        payment = self._checkout()
        signature = gateway.sign_payment(payment.gateway_order_id, "pay_test_2")

        with patch.object(gateway, "fetch_payment", return_value={"id": "pay_test_2", "amount": 100}):
            response = self.client.post(
                reverse("payment-verify"),
                {"order_id": payment.gateway_order_id, "payment_id": "pay_test_2", "signature": signature},
                format="json",
            )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "AMOUNT_MISMATCH")

    def test_verify_unknown_order_is_not_found(self) -> None:
        signature = gateway.sign_payment("ORDER_MISSING", "pay_x")

        response = self.client.post(
            reverse("payment-verify"),
            {"order_id": "ORDER_MISSING", "payment_id": "pay_x", "signature": signature},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_payment_methods_are_public(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(reverse("payment-methods"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        methods = {m["method"] for m in response.data["data"]["methods"]}
        self.assertEqual(methods, {"CARD", "UPI", "NET_BANKING", "WALLET", "EMI"})

    def test_my_payments_lists_only_own(self) -> None:
        self._checkout()
        other_booking = make_booking(make_user(), self.court, days_ahead=4)
        services.initiate_payment(other_booking, other_booking.user, "CARD")

        response = self.client.get(reverse("user-payments"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["pagination"]["total"], 1)


class RefundTests(APITestCase):
    def setUp(self) -> None:
        self.player = make_user()
        self.court = make_court(make_facility(make_owner()))
        self.booking = make_booking(self.player, self.court, days_ahead=5)
        checkout = services.initiate_payment(self.booking, self.player, "CARD")
        self.payment = Payment.objects.get(pk=checkout["payment_id"])
        services.verify_payment(
            self.player,
            self.payment.gateway_order_id,
            "pay_refund_1",
            gateway.sign_payment(self.payment.gateway_order_id, "pay_refund_1"),
        )
        self.payment.refresh_from_db()

    def test_cancel_far_ahead_refunds_in_full(self) -> None:
        self.client.force_authenticate(self.player)

        response = self.client.post(reverse("booking-cancel", args=[self.booking.pk]), {"reason": "rain"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        refund = response.data["data"]["refund"]
        self.assertEqual(refund["refund_percentage"], 100)
        self.assertEqual(refund["status"], Refund.Status.PROCESSED)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.REFUNDED)

    def test_refund_cannot_exceed_paid_amount(self) -> None:
        with self.assertRaises(ValidationFailed):
            services.process_refund(self.payment, self.payment.total_amount + 1, Refund.Reason.OTHER)

    def test_partial_refund_keeps_payment_completed(self) -> None:
        refund = services.process_refund(self.payment, Decimal("100.00"), Refund.Reason.TECHNICAL_ISSUE)

        self.assertEqual(refund.status, Refund.Status.PROCESSED)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.COMPLETED)
        self.assertEqual(self.payment.refundable_amount, self.payment.total_amount - Decimal("100.00"))

    def test_pending_refund_holds_refundable_balance(self) -> None:
        with patch.object(gateway, "create_refund", return_value={"id": "rfnd_pending_1", "status": "pending"}):
            first = services.process_refund(self.payment, self.payment.total_amount, Refund.Reason.OTHER)

            with self.assertRaises(ValidationFailed) as ctx:
                services.process_refund(self.payment, self.payment.total_amount, Refund.Reason.OTHER)

        self.assertEqual(first.status, Refund.Status.PENDING)
        self.assertEqual(ctx.exception.code, "REFUND_TOO_LARGE")
        self.assertEqual(self.payment.refunds.count(), 1)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.COMPLETED)

    def test_admin_refund_endpoint(self) -> None:
        self.client.force_authenticate(make_admin())

        response = self.client.post(
            reverse("payment-refund"),
            {"payment_id": self.payment.pk, "reason": "DUPLICATE_PAYMENT"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(Decimal(response.data["data"]["amount"]), self.payment.total_amount)

    def test_player_cannot_use_admin_refund(self) -> None:
        self.client.force_authenticate(self.player)

        response = self.client.post(reverse("payment-refund"), {"payment_id": self.payment.pk}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_receipt_and_pdf(self) -> None:
        self.client.force_authenticate(self.player)

        response = self.client.get(reverse("payment-receipt", args=[self.payment.pk]))
        pdf = self.client.get(reverse("payment-receipt-pdf", args=[self.payment.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["receipt_number"], f"RCP-{self.payment.pk:08d}")
        self.assertEqual(pdf.status_code, status.HTTP_200_OK)
        self.assertEqual(pdf["Content-Type"], "application/pdf")
        self.assertTrue(pdf.content.startswith(b"%PDF"))

    def test_booking_receipt(self) -> None:
        self.client.force_authenticate(self.player)

        response = self.client.get(reverse("booking-receipt", args=[self.booking.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["booking"]["id"], self.booking.pk)


class CouponTests(APITestCase):
    def setUp(self) -> None:
        self.player = make_user()
        self.client.force_authenticate(self.player)
        self.coupon = Coupon.objects.create(
            code="smash10",
            discount_type=Coupon.DiscountType.PERCENTAGE,
            discount_value=Decimal("10"),
            max_discount=Decimal("50"),
        )

    def test_code_is_stored_upper_case(self) -> None:
        self.assertEqual(self.coupon.code, "SMASH10")

    def test_apply_caps_discount(self) -> None:
        response = self.client.post(
            reverse("coupon-apply"),
            {"code": "smash10", "booking_amount": "1000.00"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(Decimal(response.data["data"]["discount"]), Decimal("50.00"))
        self.assertEqual(Decimal(response.data["data"]["final_amount"]), Decimal("950.00"))

    def test_fixed_discount_never_exceeds_amount(self) -> None:
        coupon = Coupon.objects.create(
            code="BIG", discount_type=Coupon.DiscountType.FIXED, discount_value=Decimal("800")
        )

        self.assertEqual(services.coupon_discount(coupon, Decimal("300.00")), Decimal("300.00"))

    def test_expired_coupon_is_rejected(self) -> None:
        self.coupon.valid_until = timezone.now() - timedelta(days=1)
        self.coupon.valid_from = timezone.now() - timedelta(days=10)
        self.coupon.save()

        response = self.client.get(reverse("coupon-validate"), {"code": "SMASH10"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "INVALID_COUPON")

    def test_unknown_coupon_is_not_found(self) -> None:
        response = self.client.get(reverse("coupon-validate"), {"code": "NOPE"})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_sport_restriction(self) -> None:
        self.coupon.sport_types = ["TENNIS"]
        self.coupon.save()

        with self.assertRaises(CouponError):
            services.apply_coupon("SMASH10", Decimal("500"), self.player, "BADMINTON")

    def test_coupon_checkout_records_usage_once_paid(self) -> None:
        court = make_court(make_facility(make_owner()))
        booking = make_booking(self.player, court)

        checkout = services.initiate_payment(booking, self.player, "UPI", "smash10")
        payment = Payment.objects.get(pk=checkout["payment_id"])
        self.assertEqual(payment.discount_amount, Decimal("50.00"))
        self.assertEqual(payment.amount, Decimal("950.00"))
        self.assertFalse(CouponUsage.objects.exists())

        services.verify_payment(
            self.player,
            payment.gateway_order_id,
            "pay_coupon",
            gateway.sign_payment(payment.gateway_order_id, "pay_coupon"),
        )

        self.coupon.refresh_from_db()
        self.assertEqual(self.coupon.usage_count, 1)
        with self.assertRaises(CouponError):
            services.apply_coupon("SMASH10", Decimal("1000"), self.player)

    def test_only_admin_can_create_coupons(self) -> None:
        payload = {"code": "new20", "discount_type": "PERCENTAGE", "discount_value": "20"}

        denied = self.client.post(reverse("coupon-list"), payload, format="json")
        self.client.force_authenticate(make_admin())
        created = self.client.post(reverse("coupon-list"), payload, format="json")

        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        self.assertEqual(created.data["data"]["code"], "NEW20")
