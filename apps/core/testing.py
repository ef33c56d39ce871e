"""Object builders shared by the API test suites."""

from __future__ import annotations

from datetime import date, time, timedelta
from decimal import Decimal
from itertools import count

from apps.bookings.models import Booking
from apps.facilities.models import Court, Facility
from apps.users.models import User

_seq = count(1)


def make_user(role: str = User.Role.USER, **extra) -> User:
    n = next(_seq)
    extra.setdefault("name", f"Test User {n}")
    extra.setdefault("is_verified", True)
    return User.objects.create_user(
        email=extra.pop("email", f"user{n}@example.com"),
        password=extra.pop("password", "StrongPass123!"),
        role=role,
        **extra,
    )


def make_owner(**extra) -> User:
    return make_user(User.Role.FACILITY_OWNER, **extra)


def make_admin(**extra) -> User:
    return make_user(User.Role.ADMIN, **extra)


def make_facility(owner: User, status: str = Facility.Status.APPROVED, **extra) -> Facility:
    extra.setdefault("name", f"Arena {next(_seq)}")
    extra.setdefault("address", "12 MG Road")
    extra.setdefault("city", "Bengaluru")
    extra.setdefault("state", "Karnataka")
    return Facility.objects.create(owner=owner, status=status, **extra)


def make_court(facility: Facility, **extra) -> Court:
    extra.setdefault("name", f"Court {next(_seq)}")
    extra.setdefault("sport_type", Court.SportType.BADMINTON)
    extra.setdefault("price_per_hour", Decimal("500.00"))
    return Court.objects.create(facility=facility, **extra)


def make_booking(
    user: User,
    court: Court,
    *,
    days_ahead: int = 3,
    start: time = time(10, 0),
    end: time = time(12, 0),
    status: str = Booking.Status.PENDING,
    **extra,
) -> Booking:
    hours = (end.hour * 60 + end.minute - start.hour * 60 - start.minute) / 60
    extra.setdefault("total_amount", (court.price_per_hour * Decimal(str(hours))).quantize(Decimal("0.01")))
    return Booking.objects.create(
        user=user,
        court=court,
        booking_date=extra.pop("booking_date", date.today() + timedelta(days=days_ahead)),
        start_time=start,
        end_time=end,
        status=status,
        **extra,
    )
