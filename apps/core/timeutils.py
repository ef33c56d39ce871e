"""Helpers for HH:MM slot arithmetic."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal

from django.utils import timezone  # type: ignore


def parse_hhmm(value: str | time) -> time:
    if isinstance(value, time):
        return value
    return datetime.strptime(value, "%H:%M").time()


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def hours_between(start: time, end: time) -> Decimal:
    """Duration in hours as a Decimal, e.g. 06:00-07:30 -> 1.5."""

    return Decimal(minutes_of(end) - minutes_of(start)) / Decimal(60)


def generate_hourly_slots(opening: time, closing: time) -> list[tuple[time, time]]:
    slots: list[tuple[time, time]] = []
    current = minutes_of(opening)
    end = minutes_of(closing)
    while current + 60 <= end:
        slots.append((time(current // 60, current % 60), time((current + 60) // 60 % 24, current % 60)))
        current += 60
    return slots


def aware_datetime(day: date, at: time) -> datetime:
    """Combine a booking date and time in the project time zone."""

    return timezone.make_aware(datetime.combine(day, at), timezone.get_current_timezone())


def overlaps(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    return start_a < end_b and end_a > start_b


def days_ago(days: int) -> datetime:
    return timezone.now() - timedelta(days=days)
