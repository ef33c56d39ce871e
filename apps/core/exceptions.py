"""Error taxonomy and the DRF exception handler.

Services raise ``ServiceError`` subclasses; views let them propagate and the
handler below renders every failure as::

    {"success": false, "message": "...", "code": "...", "details": ...}
"""

from __future__ import annotations

import logging
from typing import Any

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied  # type: ignore
from django.http import Http404  # type: ignore
from rest_framework import exceptions as drf_exceptions  # type: ignore
from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for expected, client-visible failures."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "ERROR"
    default_message = "Request failed"

    def __init__(self, message: str | None = None, *, code: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details
        super().__init__(self.message)


class ValidationFailed(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class NotAuthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHORIZED"
    default_message = "Authentication required"


class PermissionDenied(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"
    default_message = "Resource not found"


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"
    default_message = "Resource state conflict"


_DRF_CODES = {
    status.HTTP_400_BAD_REQUEST: "VALIDATION_ERROR",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    status.HTTP_429_TOO_MANY_REQUESTS: "THROTTLED",
}


def _error_body(message: str, code: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message, "code": code}
    if details is not None:
        body["details"] = details
    return body


def api_exception_handler(exc, context):  # type: ignore
    """Render ServiceError and DRF exceptions with the common JSON envelope."""

    if isinstance(exc, ServiceError):
        view = context.get("view")
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}"
        )
        return Response(_error_body(exc.message, exc.code, exc.details), status=exc.status_code)

    if isinstance(exc, Http404):
        exc = drf_exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = drf_exceptions.PermissionDenied()

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    code = _DRF_CODES.get(response.status_code, "ERROR")
    if isinstance(exc, drf_exceptions.ValidationError):
        response.data = _error_body("Validation failed", code, response.data)
    else:
        detail = response.data.get("detail") if isinstance(response.data, dict) else response.data
        response.data = _error_body(str(detail), code)
    return response
