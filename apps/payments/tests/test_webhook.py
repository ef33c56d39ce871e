"""Tests for the gateway webhook endpoint."""

from __future__ import annotations

import hashlib
import hmac
import json
from decimal import Decimal

from django.test import TestCase, override_settings
from django.urls import reverse

from apps.bookings.models import Booking
from apps.core.testing import make_booking, make_court, make_facility, make_owner, make_user
from apps.payments import gateway, services
from apps.payments.models import Payment, Refund, WebhookEvent

WEBHOOK_SECRET = "test_webhook_secret"


@override_settings(PAYMENT_GATEWAY_WEBHOOK_SECRET=WEBHOOK_SECRET)
class PaymentWebhookTests(TestCase):
    def setUp(self) -> None:
        self.player = make_user()
        self.booking = make_booking(self.player, make_court(make_facility(make_owner())))
        checkout = services.initiate_payment(self.booking, self.player, "CARD")
        self.payment = Payment.objects.get(pk=checkout["payment_id"])
        self.url = reverse("payment-webhook")

    def _post(self, payload: dict, *, signature: str | None = None, sign: bool = True):
        body = json.dumps(payload).encode("utf-8")
        headers = {}
        if sign:
            digest = signature or hmac.new(WEBHOOK_SECRET.encode("utf-8"), body, hashlib.sha256).hexdigest()
            headers["HTTP_X_RAZORPAY_SIGNATURE"] = digest
        return self.client.post(self.url, data=body, content_type="application/json", **headers)

    def _payment_event(self, event: str, **entity) -> dict:
        entity.setdefault("id", "pay_hook_1")
        entity.setdefault("order_id", self.payment.gateway_order_id)
        entity.setdefault("amount", gateway.to_minor_units(self.payment.total_amount))
        return {"event": event, "payload": {"payment": {"entity": entity}}}

    def test_missing_signature_is_bad_request(self) -> None:
        response = self._post(self._payment_event("payment.captured"), sign=False)

        self.assertEqual(response.status_code, 400)
        event = WebhookEvent.objects.get()
        self.assertEqual(event.event, "payment.captured")
        self.assertEqual(event.error, "Missing webhook signature")
        self.assertFalse(event.signature_valid)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.PENDING)

    def test_malformed_body_is_bad_request_and_logged(self) -> None:
        body = b"not json"
        digest = hmac.new(WEBHOOK_SECRET.encode("utf-8"), body, hashlib.sha256).hexdigest()

        response = self.client.post(
            self.url, data=body, content_type="application/json", HTTP_X_RAZORPAY_SIGNATURE=digest
        )

        self.assertEqual(response.status_code, 400)
        event = WebhookEvent.objects.get()
        self.assertEqual(event.error, "Invalid JSON")
        self.assertEqual(event.payload, {})

    def test_invalid_signature_is_unauthorized_and_logged(self) -> None:
        response = self._post(self._payment_event("payment.captured"), signature="0" * 64)

        self.assertEqual(response.status_code, 401)
        event = WebhookEvent.objects.get()
        self.assertFalse(event.signature_valid)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.PENDING)

    def test_payment_captured_confirms_booking_once(self) -> None:
        first = self._post(self._payment_event("payment.captured"))
        second = self._post(self._payment_event("payment.captured"))

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["result"], "payment completed")
        self.assertEqual(second.json()["result"], "already processed")
        self.payment.refresh_from_db()
        self.booking.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.COMPLETED)
        self.assertEqual(self.payment.gateway_payment_id, "pay_hook_1")
        self.assertEqual(self.booking.status, Booking.Status.CONFIRMED)
        self.assertEqual(WebhookEvent.objects.filter(processed=True).count(), 2)

    def test_payment_failed_records_reason(self) -> None:
        response = self._post(
            self._payment_event("payment.failed", error_code="BAD_REQUEST_ERROR", error_description="Card declined")
        )

        self.assertEqual(response.status_code, 200)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.FAILED)
        self.assertEqual(self.payment.failure_reason, "Card declined")

    def test_refund_processed_is_idempotent(self) -> None:
        self._post(self._payment_event("payment.captured"))
        refund_event = {
            "event": "refund.processed",
            "payload": {
                "refund": {
                    "entity": {
                        "id": "rfnd_hook_1",
                        "payment_id": "pay_hook_1",
                        "amount": gateway.to_minor_units(self.payment.total_amount),
                    }
                }
            },
        }

        self._post(refund_event)
        repeat = self._post(refund_event)

        self.assertEqual(repeat.json()["result"], "already processed")
        refund = Refund.objects.get(gateway_refund_id="rfnd_hook_1")
        self.assertEqual(refund.amount, self.payment.total_amount)
        self.assertEqual(refund.status, Refund.Status.PROCESSED)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.REFUNDED)

    def test_unknown_event_is_acknowledged(self) -> None:
        response = self._post({"event": "order.paid", "payload": {}})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["result"], "ignored")

    def test_capture_after_expiry_refunds_automatically(self) -> None:
        self.booking.mark_cancelled("Payment timeout")

        self._post(self._payment_event("payment.captured"))

        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.REFUNDED)
        self.assertEqual(
            Refund.objects.get(payment=self.payment).amount,
            self.payment.total_amount,
        )
        self.assertEqual(self.payment.refundable_amount, Decimal("0.00"))
