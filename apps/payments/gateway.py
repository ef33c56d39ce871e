"""
Payment gateway client (Razorpay-compatible REST API).

Orders, payment lookups and refunds go over HTTPS with basic auth
(key id / key secret). When no credentials are configured every call is
emulated locally so development and test environments work offline.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import random
import string
import time
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import requests  # type: ignore
from django.conf import settings  # type: ignore

from .exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
GST_RATE = Decimal("18")

# Percent of the base amount charged per method.
FEE_RATES: dict[str, Decimal] = {
    "CARD": Decimal("2.99"),
    "UPI": Decimal("0.5"),
    "NET_BANKING": Decimal("1.9"),
    "WALLET": Decimal("1.5"),
    "EMI": Decimal("3.5"),
}

METHOD_LABELS: dict[str, str] = {
    "CARD": "Credit/Debit Card",
    "UPI": "UPI",
    "NET_BANKING": "Net Banking",
    "WALLET": "Wallets",
    "EMI": "EMI",
}


def _round(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(value) -> Decimal:
    return _round(Decimal(value or 0) / 100)


def is_emulated() -> bool:
    return not (settings.PAYMENT_GATEWAY_KEY_ID and settings.PAYMENT_GATEWAY_KEY_SECRET)


def calculate_fees(amount: Decimal, method: str) -> dict[str, Decimal]:
    """
    Processing fee breakdown for ``amount`` paid with ``method``.

    GST is charged on the processing fee, not on the base amount.

    Returns:
        dict: base_amount, platform_fee, gst, total_amount
    """
    if method not in FEE_RATES:
        raise ValueError(f"Unsupported payment method: {method}")

    base = _round(Decimal(amount))
    fee = _round(base * FEE_RATES[method] / 100)
    gst = _round(fee * GST_RATE / 100)
    return {
        "base_amount": base,
        "platform_fee": fee,
        "gst": gst,
        "total_amount": base + fee + gst,
    }


def payment_methods() -> list[dict[str, Any]]:
    return [
        {"method": code, "name": METHOD_LABELS[code], "enabled": True, "fee_percent": str(rate)}
        for code, rate in FEE_RATES.items()
    ]


def generate_order_id(booking_id) -> str:
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"ORDER_{str(booking_id)[-8:]}_{int(time.time() * 1000)}_{suffix}".upper()


def _auth() -> tuple[str, str]:
    return settings.PAYMENT_GATEWAY_KEY_ID, settings.PAYMENT_GATEWAY_KEY_SECRET


def _url(path: str) -> str:
    return f"{settings.PAYMENT_GATEWAY_BASE_URL.rstrip('/')}/{path.lstrip('/')}"


def _request(method: str, path: str, **kwargs) -> dict[str, Any]:
    try:
        response = requests.request(method, _url(path), auth=_auth(), timeout=30, **kwargs)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.HTTPError as e:
        body = e.response.text if e.response is not None else ""
        logger.error(f"Gateway returned an error for {method} {path}: {e} {body}")
        raise PaymentGatewayError(f"Payment gateway error: {e}")
    except requests.exceptions.RequestException as e:
        logger.error(f"Network error calling gateway {method} {path}: {e}")
        raise PaymentGatewayError(f"Could not reach payment gateway: {e}")
    except ValueError as e:
        logger.error(f"Gateway returned invalid JSON for {method} {path}: {e}")
        raise PaymentGatewayError("Payment gateway returned an invalid response")


# ============================================================================
# ORDERS / PAYMENTS / REFUNDS
# ============================================================================

def create_order(amount: Decimal, receipt: str, notes: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create a gateway order for ``amount`` (major units).

    Returns:
        dict: gateway order with ``id``, ``amount`` (minor units),
        ``currency``, ``receipt`` and ``status``
    """
    payload = {
        "amount": to_minor_units(amount),
        "currency": settings.PAYMENT_CURRENCY,
        "receipt": receipt,
        "notes": {k: str(v) for k, v in (notes or {}).items()},
    }
    logger.info(f"Creating gateway order {receipt} for {amount} {settings.PAYMENT_CURRENCY}")

    if is_emulated():
        logger.warning("Payment gateway emulation is active (no API credentials configured)")
        return {**payload, "id": receipt, "status": "created", "emulated": True}

    order = _request("POST", "orders", json=payload)
    logger.info(f"Gateway order created: {order.get('id')}")
    return order


def fetch_payment(payment_id: str) -> dict[str, Any]:
    """Look up a payment; ``amount`` is in minor units (``None`` when emulated)."""

    if is_emulated():
        return {"id": payment_id, "status": "captured", "amount": None, "emulated": True}
    return _request("GET", f"payments/{payment_id}")


def create_refund(payment_id: str, amount: Decimal, notes: dict[str, Any] | None = None) -> dict[str, Any]:
    payload = {
        "amount": to_minor_units(amount),
        "notes": {k: str(v) for k, v in (notes or {}).items()},
    }
    logger.info(f"Requesting refund of {amount} for gateway payment {payment_id}")

    if is_emulated():
        logger.warning("Payment gateway emulation is active, refund is processed locally")
        return {
            **payload,
            "id": f"rfnd_{uuid.uuid4().hex[:14]}",
            "payment_id": payment_id,
            "status": "processed",
            "emulated": True,
        }

    return _request("POST", f"payments/{payment_id}/refund", json=payload)


# ============================================================================
# SIGNATURES
# ============================================================================

def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def sign_payment(order_id: str, payment_id: str) -> str:
    return _hmac_hex(settings.PAYMENT_GATEWAY_KEY_SECRET, f"{order_id}|{payment_id}".encode("utf-8"))


def verify_payment_signature(order_id: str, payment_id: str, signature: str) -> bool:
    if not settings.PAYMENT_GATEWAY_KEY_SECRET or not signature:
        return False
    return hmac.compare_digest(sign_payment(order_id, payment_id), signature)


def verify_webhook_signature(raw_body: bytes, signature: str) -> bool:
    secret = settings.PAYMENT_GATEWAY_WEBHOOK_SECRET
    if not secret or not signature:
        logger.warning("Webhook signature check failed: secret or signature missing")
        return False
    return hmac.compare_digest(_hmac_hex(secret, raw_body), signature)
