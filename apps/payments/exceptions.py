"""Payment specific errors."""

from __future__ import annotations

from rest_framework import status  # type: ignore

from apps.core.exceptions import ServiceError, ValidationFailed


class PaymentGatewayError(ServiceError):
    """The payment gateway rejected a call or could not be reached."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_code = "PAYMENT_GATEWAY_ERROR"
    default_message = "Payment gateway error"


class CouponError(ValidationFailed):
    default_code = "INVALID_COUPON"
    default_message = "Coupon cannot be applied"
