"""Success envelope shared by all API views."""

from __future__ import annotations

from typing import Any

from rest_framework import status as http_status  # type: ignore
from rest_framework.response import Response  # type: ignore


def success_response(data: Any = None, message: str = "", status: int = http_status.HTTP_200_OK) -> Response:
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return Response(body, status=status)
