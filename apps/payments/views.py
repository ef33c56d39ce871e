"""API views for payments, refunds, coupons and the gateway webhook."""

from __future__ import annotations

import json
import logging

from django.conf import settings  # type: ignore
from django.http import HttpResponse, JsonResponse  # type: ignore
from django.views.decorators.csrf import csrf_exempt  # type: ignore
from django.views.decorators.http import require_POST  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.generics import ListAPIView  # type: ignore

from apps.core.exceptions import NotFound
from apps.core.permissions import IsAdminRole
from apps.core.responses import success_response

from . import gateway, services
from .models import Coupon, Payment, WebhookEvent
from .receipts import render_receipt_pdf
from .serializers import (
    CouponApplySerializer,
    CouponPublicSerializer,
    CouponSerializer,
    PaymentSerializer,
    PaymentVerifySerializer,
    RefundRequestSerializer,
    RefundSerializer,
)

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "HTTP_X_RAZORPAY_SIGNATURE"


class PaymentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Payments of the current user (all payments for admins)."""

    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        qs = services.visible_payments(self.request.user).prefetch_related("refunds")
        params = self.request.query_params
        if params.get("status"):
            qs = qs.filter(status=params["status"].upper())
        if params.get("method"):
            qs = qs.filter(method=params["method"].upper())
        return qs

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        return success_response(PaymentSerializer(self.get_object()).data)

    @action(detail=True, methods=["get"])
    def receipt(self, request, pk=None):  # type: ignore
        return success_response(services.build_receipt(self.get_object()))

    @action(detail=True, methods=["get"], url_path="receipt/pdf")
    def receipt_pdf(self, request, pk=None):  # type: ignore
        receipt = services.build_receipt(self.get_object())
        response = HttpResponse(render_receipt_pdf(receipt), content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="{receipt["receipt_number"]}.pdf"'
        return response

    @action(detail=False, methods=["post"])
    def verify(self, request):  # type: ignore
        serializer = PaymentVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = services.verify_payment(request.user, **serializer.validated_data)
        return success_response(PaymentSerializer(payment).data, "Payment verified, booking confirmed")

    @action(
        detail=False,
        methods=["get"],
        url_path="methods",
        url_name="methods",
        permission_classes=[permissions.AllowAny],
    )
    def payment_methods(self, request):  # type: ignore
        return success_response({"methods": gateway.payment_methods(), "currency": settings.PAYMENT_CURRENCY})

    @action(detail=False, methods=["post"], permission_classes=[IsAdminRole])
    def refund(self, request):  # type: ignore
        serializer = RefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        payment = Payment.objects.filter(pk=data["payment_id"]).select_related("booking", "user").first()
        if payment is None:
            raise NotFound("Payment not found")
        refund = services.process_refund(
            payment,
            data.get("amount") or payment.refundable_amount,
            data["reason"],
            notes=data.get("notes", ""),
        )
        return success_response(RefundSerializer(refund).data, "Refund initiated", status=status.HTTP_201_CREATED)


class MyPaymentsView(ListAPIView):
    """``/users/me/payments/``: paginated payment history."""

    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        qs = (
            Payment.objects.filter(user=self.request.user)
            .select_related("booking", "booking__court", "booking__court__facility", "coupon")
            .prefetch_related("refunds")
        )
        if self.request.query_params.get("status"):
            qs = qs.filter(status=self.request.query_params["status"].upper())
        return qs


def _reject_webhook(event: WebhookEvent, message: str, status_code: int) -> JsonResponse:
    logger.error(f"Webhook {event.pk} rejected: {message}")
    event.error = message
    event.save(update_fields=["error"])
    return JsonResponse({"success": False, "message": message}, status=status_code)


@csrf_exempt
@require_POST
def payment_webhook(request):
    """
    Gateway webhook endpoint.

    Every delivery is logged as a ``WebhookEvent``; only events with a
    valid ``X-Razorpay-Signature`` are applied.
    """
    signature = request.META.get(SIGNATURE_HEADER, "")
    raw_body = request.body
    parsed = True
    try:
        payload = json.loads(raw_body)
    except ValueError:
        payload, parsed = None, False
    is_object = isinstance(payload, dict)

    event = WebhookEvent.objects.create(
        event=str(payload.get("event", ""))[:50] if is_object else "",
        payload=payload if is_object else {},
        signature_valid=bool(signature) and gateway.verify_webhook_signature(raw_body, signature),
    )
    if not signature:
        return _reject_webhook(event, "Missing webhook signature", 400)
    if not parsed:
        return _reject_webhook(event, "Invalid JSON", 400)
    if not is_object:
        return _reject_webhook(event, "Invalid webhook payload", 400)
    if not event.signature_valid:
        return _reject_webhook(event, "Invalid webhook signature", 401)

    try:
        result = services.process_webhook(event)
    except Exception as e:
        logger.error(f"Webhook {event.pk} processing failed: {e}", exc_info=True)
        event.error = str(e)
        event.save(update_fields=["error"])
        return JsonResponse({"success": False, "message": "Webhook processing failed"}, status=500)

    return JsonResponse({"success": True, "result": result})


class CouponViewSet(viewsets.ModelViewSet):
    """Admin CRUD plus validate/apply for players."""

    queryset = Coupon.objects.all()
    serializer_class = CouponSerializer
    permission_classes = [IsAdminRole]

    def get_permissions(self):  # type: ignore
        if self.action in {"validate", "apply"}:
            return [permissions.IsAuthenticated()]
        return super().get_permissions()

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        active = self.request.query_params.get("is_active")
        if active in {"true", "false"}:
            qs = qs.filter(is_active=active == "true")
        return qs

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        return success_response(CouponSerializer(self.get_object()).data)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = CouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Coupon {serializer.instance.code} created by admin {request.user.pk}")
        return success_response(serializer.data, "Coupon created", status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):  # type: ignore
        serializer = CouponSerializer(self.get_object(), data=request.data, partial=kwargs.pop("partial", False))
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return success_response(serializer.data, "Coupon updated")

    def destroy(self, request, *args, **kwargs):  # type: ignore
        coupon = self.get_object()
        if coupon.usages.exists():
            coupon.is_active = False
            coupon.save(update_fields=["is_active", "updated_at"])
            return success_response(message="Coupon has been used and was deactivated instead of deleted")
        coupon.delete()
        return success_response(message="Coupon deleted")

    @action(detail=False, methods=["get"])
    def validate(self, request):  # type: ignore
        coupon = services.get_coupon(request.query_params.get("code", ""))
        services.check_coupon(coupon, request.user)
        return success_response({"valid": True, "coupon": CouponPublicSerializer(coupon).data})

    @action(detail=False, methods=["post"])
    def apply(self, request):  # type: ignore
        serializer = CouponApplySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = services.apply_coupon(data["code"], data["booking_amount"], request.user, data.get("sport_type"))
        result["coupon"] = CouponPublicSerializer(result["coupon"]).data
        return success_response(result, "Coupon applied successfully")
