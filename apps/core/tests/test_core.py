from __future__ import annotations

from datetime import time
from decimal import Decimal

import pytest
from rest_framework import exceptions as drf_exceptions
from rest_framework import status

from apps.core.exceptions import Conflict, NotFound, api_exception_handler
from apps.core.geo import bounding_box, haversine_km
from apps.core.pagination import paginate_list
from apps.core.timeutils import generate_hourly_slots, hours_between, overlaps, parse_hhmm


def test_haversine_bengaluru_to_mysuru() -> None:
    distance = haversine_km(12.9716, 77.5946, 12.2958, 76.6394)

    assert 125 < distance < 130


def test_haversine_same_point() -> None:
    assert haversine_km(19.076, 72.8777, 19.076, 72.8777) == pytest.approx(0)


def test_bounding_box_contains_radius() -> None:
    min_lat, max_lat, min_lng, max_lng = bounding_box(12.97, 77.59, 10)

    assert min_lat < 12.97 < max_lat
    assert min_lng < 77.59 < max_lng
    assert haversine_km(12.97, 77.59, max_lat, 77.59) == pytest.approx(10, rel=1e-3)


def test_hourly_slots_drop_partial_hour() -> None:
    slots = generate_hourly_slots(time(6, 0), time(8, 30))

    assert slots == [(time(6, 0), time(7, 0)), (time(7, 0), time(8, 0))]


def test_hours_between_fractions() -> None:
    assert hours_between(time(6, 0), time(7, 30)) == Decimal("1.5")


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (("10:00", "12:00"), ("11:00", "13:00"), True),
        (("10:00", "12:00"), ("12:00", "13:00"), False),
        (("10:00", "12:00"), ("09:00", "10:00"), False),
        (("10:00", "12:00"), ("10:30", "11:00"), True),
    ],
)
def test_overlaps_is_half_open(a, b, expected) -> None:
    assert overlaps(*map(parse_hhmm, a), *map(parse_hhmm, b)) is expected


def test_paginate_list_clamps_limit() -> None:
    page = paginate_list(list(range(120)), page="3", limit="500")

    assert page["pagination"] == {"page": 3, "limit": 50, "total": 120, "totalPages": 3}
    assert page["results"][0] == 100


def test_paginate_list_bad_input_falls_back() -> None:
    page = paginate_list([1, 2, 3], page="abc", limit=None)

    assert page["pagination"]["page"] == 1
    assert page["results"] == [1, 2, 3]


def test_service_error_envelope() -> None:
    response = api_exception_handler(Conflict("Slot taken", code="SLOT_UNAVAILABLE", details={"id": 1}), {})

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.data == {"success": False, "message": "Slot taken", "code": "SLOT_UNAVAILABLE", "details": {"id": 1}}


def test_service_error_defaults() -> None:
    response = api_exception_handler(NotFound(), {})

    assert response.data == {"success": False, "message": "Resource not found", "code": "NOT_FOUND"}


def test_drf_validation_error_envelope() -> None:
    response = api_exception_handler(drf_exceptions.ValidationError({"email": ["Required."]}), {})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.data["message"] == "Validation failed"
    assert response.data["code"] == "VALIDATION_ERROR"
    assert response.data["details"] == {"email": ["Required."]}


def test_drf_permission_error_envelope() -> None:
    response = api_exception_handler(drf_exceptions.PermissionDenied(), {})

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.data["code"] == "FORBIDDEN"
