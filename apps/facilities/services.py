"""Catalog services: court availability, slot blocking and venue search."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, time
from decimal import Decimal
from typing import Any, Iterable

from django.db import transaction  # type: ignore
from django.db.models import Avg, Count, Max, Min, Prefetch, Q  # type: ignore
from django.utils import timezone  # type: ignore

from apps.core.exceptions import Conflict, NotFound, PermissionDenied, ValidationFailed
from apps.core.geo import bounding_box, haversine_km
from apps.core.permissions import is_admin
from apps.core.timeutils import aware_datetime, days_ago, format_hhmm, generate_hourly_slots, overlaps, parse_hhmm

from .models import Amenity, Court, Facility, TimeSlot

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 10
DEFAULT_MAX_PRICE = Decimal("1000")
TRENDING_WINDOW_DAYS = 30
MATCHING_SLOTS_LIMIT = 5
SUGGESTIONS_LIMIT = 5


class SlotConflictError(Conflict):
    default_code = "SLOT_CONFLICT"
    default_message = "Some slots already have bookings"


def ensure_can_manage(user, facility: Facility) -> None:
    if is_admin(user) or facility.owner_id == getattr(user, "pk", None):
        return
    raise PermissionDenied("You can only manage your own facilities")


def _active_booking_statuses() -> tuple[str, ...]:
    from apps.bookings.models import Booking

    return (Booking.Status.PENDING, Booking.Status.CONFIRMED)


def busy_intervals(courts: Iterable[Court], day: date) -> tuple[dict, dict]:
    """Return ``(booked, blocked)`` maps of court id to ``[(start, end), ...]``."""

    from apps.bookings.models import Booking

    court_ids = [court.pk for court in courts]
    booked: dict[int, list[tuple[time, time]]] = defaultdict(list)
    blocked: dict[int, list[tuple[time, time]]] = defaultdict(list)

    for row in Booking.objects.filter(
        court_id__in=court_ids,
        booking_date=day,
        status__in=_active_booking_statuses(),
    ).values("court_id", "start_time", "end_time"):
        booked[row["court_id"]].append((row["start_time"], row["end_time"]))

    for row in TimeSlot.objects.filter(court_id__in=court_ids, date=day, is_blocked=True).values(
        "court_id", "start_time", "end_time"
    ):
        blocked[row["court_id"]].append((row["start_time"], row["end_time"]))
    return booked, blocked


def _slot_status(day: date, start: time, end: time, booked, blocked, now) -> str:
    if any(overlaps(start, end, b_start, b_end) for b_start, b_end in booked):
        return "booked"
    if any(overlaps(start, end, b_start, b_end) for b_start, b_end in blocked):
        return "blocked"
    if aware_datetime(day, start) <= now:
        return "past"
    return "available"


def court_slots(court: Court, day: date, booked=None, blocked=None) -> list[dict[str, Any]]:
    if booked is None or blocked is None:
        booked_map, blocked_map = busy_intervals([court], day)
        booked, blocked = booked_map[court.pk], blocked_map[court.pk]
    now = timezone.now()
    return [
        {
            "start_time": format_hhmm(start),
            "end_time": format_hhmm(end),
            "status": _slot_status(day, start, end, booked, blocked, now),
            "price": court.price_per_hour,
        }
        for start, end in generate_hourly_slots(court.opening_time, court.closing_time)
    ]


def court_availability(court_id, day: date) -> dict[str, Any]:
    court = Court.objects.select_related("facility").filter(pk=court_id).first()
    if court is None:
        raise NotFound("Court not found")
    if not court.is_active:
        raise ValidationFailed("Court is not active", code="COURT_INACTIVE")

    slots = court_slots(court, day)
    return {
        "court": {
            "id": court.pk,
            "name": court.name,
            "sport_type": court.sport_type,
            "price_per_hour": court.price_per_hour,
            "opening_time": format_hhmm(court.opening_time),
            "closing_time": format_hhmm(court.closing_time),
            "facility": {"id": court.facility_id, "name": court.facility.name},
        },
        "date": day.isoformat(),
        "slots": slots,
        "summary": {
            "total": len(slots),
            "available": sum(1 for s in slots if s["status"] == "available"),
            "booked": sum(1 for s in slots if s["status"] == "booked"),
            "blocked": sum(1 for s in slots if s["status"] == "blocked"),
        },
    }


# ============================================================================
# SLOT BLOCKING
# ============================================================================

def _normalize_slots(court: Court, time_slots: list[dict[str, Any]]) -> list[tuple[time, time]]:
    result = []
    for slot in time_slots:
        start, end = parse_hhmm(slot["start_time"]), parse_hhmm(slot["end_time"])
        if start >= end:
            raise ValidationFailed(f"Invalid slot {format_hhmm(start)}-{format_hhmm(end)}")
        if not court.is_within_hours(start, end):
            raise ValidationFailed(
                f"Slot {format_hhmm(start)}-{format_hhmm(end)} is outside operating hours",
                code="OUTSIDE_OPERATING_HOURS",
            )
        result.append((start, end))
    return result


@transaction.atomic
def block_slots(
    court: Court,
    user,
    dates: list[date],
    time_slots: list[dict[str, Any]],
    reason: str,
    block_type: str,
    allow_override: bool = False,
) -> dict[str, Any]:
    """Mark slots unavailable. Refuses slots with live bookings unless overridden."""

    from apps.bookings.models import Booking

    ensure_can_manage(user, court.facility)
    slots = _normalize_slots(court, time_slots)

    conflicts = []
    for day in dates:
        for start, end in slots:
            clash = Booking.objects.filter(
                court=court,
                booking_date=day,
                status__in=_active_booking_statuses(),
                start_time__lt=end,
                end_time__gt=start,
            ).values_list("pk", flat=True)
            for booking_id in clash:
                conflicts.append(
                    {
                        "date": day.isoformat(),
                        "start_time": format_hhmm(start),
                        "end_time": format_hhmm(end),
                        "booking_id": booking_id,
                    }
                )

    if conflicts and not allow_override:
        raise SlotConflictError(details={"conflicts": conflicts})

    now = timezone.now()
    blocked = 0
    for day in dates:
        for start, end in slots:
            TimeSlot.objects.update_or_create(
                court=court,
                date=day,
                start_time=start,
                defaults={
                    "end_time": end,
                    "is_blocked": True,
                    "block_reason": reason,
                    "block_type": block_type,
                    "blocked_by": user,
                    "blocked_at": now,
                },
            )
            blocked += 1

    logger.info(f"User {user.pk} blocked {blocked} slots on court {court.pk} ({block_type})")
    return {
        "blocked": blocked,
        "dates": [d.isoformat() for d in dates],
        "conflicts": conflicts,
        "overridden": bool(conflicts),
    }


@transaction.atomic
def unblock_slots(court: Court, user, dates: list[date], time_slots: list[dict[str, Any]] | None = None) -> int:
    ensure_can_manage(user, court.facility)
    qs = TimeSlot.objects.filter(court=court, date__in=dates, is_blocked=True)
    if time_slots:
        starts = [parse_hhmm(slot["start_time"]) for slot in time_slots]
        qs = qs.filter(start_time__in=starts)
    unblocked = qs.update(is_blocked=False, block_reason="", block_type="", blocked_by=None, blocked_at=None)
    logger.info(f"User {user.pk} unblocked {unblocked} slots on court {court.pk}")
    return unblocked


def blocked_slots(court: Court, start_date: date | None = None, end_date: date | None = None):
    qs = TimeSlot.objects.filter(court=court, is_blocked=True)
    if start_date:
        qs = qs.filter(date__gte=start_date)
    if end_date:
        qs = qs.filter(date__lte=end_date)
    return qs.order_by("date", "start_time")


# ============================================================================
# SEARCH
# ============================================================================

def approved_facilities():
    return Facility.objects.filter(status=Facility.Status.APPROVED)


def with_listing_relations(queryset):
    return queryset.select_related("owner").prefetch_related(
        Prefetch("courts", queryset=Court.objects.filter(is_active=True), to_attr="active_courts"),
        "amenities",
        "photos",
    )


def rating_stats(facility_ids: Iterable[int]) -> dict[int, tuple[float | None, int]]:
    """Average approved rating and review count per facility."""

    from apps.reviews.models import Review

    rows = (
        Review.objects.filter(facility_id__in=list(facility_ids), is_approved=True)
        .values("facility_id")
        .annotate(avg=Avg("rating"), total=Count("id"))
    )
    return {row["facility_id"]: (row["avg"], row["total"]) for row in rows}


def facility_card(
    facility: Facility,
    ratings: dict[int, tuple[float | None, int]],
    *,
    distance: float | None = None,
) -> dict[str, Any]:
    courts = getattr(facility, "active_courts", None)
    if courts is None:
        courts = list(facility.courts.filter(is_active=True))
    avg, total = ratings.get(facility.pk, (None, 0))
    photos = list(facility.photos.all())
    return {
        "id": facility.pk,
        "name": facility.name,
        "city": facility.city,
        "address": facility.address,
        "latitude": facility.latitude,
        "longitude": facility.longitude,
        "photo": photos[0].url if photos else None,
        "rating": round(avg, 1) if avg else None,
        "review_count": total,
        "distance": round(distance, 1) if distance is not None else None,
        "min_price": min((c.price_per_hour for c in courts), default=Decimal("0")),
        "sports": sorted({c.sport_type for c in courts}),
        "amenities": [a.name for a in facility.amenities.all()],
        "court_count": len(courts),
        "created_at": facility.created_at,
    }


def _geo_candidates(queryset, lat: float, lng: float, radius_km: float):
    """Narrow by bounding box, then keep rows inside the Haversine radius."""

    min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius_km)
    queryset = queryset.filter(
        latitude__isnull=False,
        longitude__isnull=False,
        latitude__gte=min_lat,
        latitude__lte=max_lat,
        longitude__gte=min_lng,
        longitude__lte=max_lng,
    )
    result = []
    for facility in queryset:
        distance = haversine_km(lat, lng, float(facility.latitude), float(facility.longitude))
        if distance <= radius_km:
            result.append((facility, distance))
    return result


SORT_KEYS = {
    "rating": lambda card: (-(card["rating"] or 0), -card["review_count"]),
    "price_low": lambda card: card["min_price"],
    "price_high": lambda card: -card["min_price"],
    "distance": lambda card: card["distance"] if card["distance"] is not None else float("inf"),
    "newest": lambda card: -card["created_at"].timestamp(),
}


def search_facilities(
    queryset,
    *,
    lat: float | None = None,
    lng: float | None = None,
    radius: float = DEFAULT_RADIUS_KM,
    min_rating: float | None = None,
    sort: str | None = None,
) -> list[dict[str, Any]]:
    """Rank an already filtered queryset; distance and rating are applied here."""

    queryset = with_listing_relations(queryset.distinct())
    if lat is not None and lng is not None:
        pairs = _geo_candidates(queryset, lat, lng, radius)
    else:
        pairs = [(facility, None) for facility in queryset]

    ratings = rating_stats(f.pk for f, _ in pairs)
    cards = [facility_card(f, ratings, distance=d) for f, d in pairs]

    if min_rating is not None:
        cards = [c for c in cards if (c["rating"] or 0) >= min_rating]

    if sort not in SORT_KEYS:
        sort = "distance" if lat is not None and lng is not None else "rating"
    cards.sort(key=SORT_KEYS[sort])
    return cards


def search_available(
    queryset,
    day: date,
    *,
    start_time: time | None = None,
    end_time: time | None = None,
    sport_type: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
    radius: float = DEFAULT_RADIUS_KM,
) -> list[dict[str, Any]]:
    """Facilities with at least one free court slot on ``day``."""

    cards = search_facilities(queryset, lat=lat, lng=lng, radius=radius)
    if not cards:
        return []

    courts = list(Court.objects.filter(facility_id__in=[c["id"] for c in cards], is_active=True))
    if sport_type:
        courts = [court for court in courts if court.sport_type == sport_type]
    booked, blocked = busy_intervals(courts, day)

    by_facility: dict[int, list[dict[str, Any]]] = defaultdict(list)
    free_courts: dict[int, set[int]] = defaultdict(set)
    for court in courts:
        for slot in court_slots(court, day, booked[court.pk], blocked[court.pk]):
            if slot["status"] != "available":
                continue
            if start_time and parse_hhmm(slot["start_time"]) < start_time:
                continue
            if end_time and parse_hhmm(slot["end_time"]) > end_time:
                continue
            free_courts[court.facility_id].add(court.pk)
            by_facility[court.facility_id].append(
                {
                    "court_id": court.pk,
                    "court_name": court.name,
                    "sport_type": court.sport_type,
                    "price": court.price_per_hour,
                    "start_time": slot["start_time"],
                    "end_time": slot["end_time"],
                }
            )

    result = []
    for card in cards:
        if not free_courts.get(card["id"]):
            continue
        card["available_courts"] = len(free_courts[card["id"]])
        card["matching_slots"] = by_facility[card["id"]][:MATCHING_SLOTS_LIMIT]
        result.append(card)
    return result


def nearby_facilities(lat: float, lng: float, radius: float = DEFAULT_RADIUS_KM, limit: int = 20) -> list[dict]:
    cards = search_facilities(approved_facilities(), lat=lat, lng=lng, radius=radius, sort="distance")
    return cards[:limit]


def similar_facilities(facility: Facility, limit: int = 5) -> list[dict[str, Any]]:
    sports = set(facility.courts.values_list("sport_type", flat=True))
    amenity_ids = set(facility.amenities.values_list("id", flat=True))
    if not sports:
        return []

    candidates = with_listing_relations(
        approved_facilities()
        .exclude(pk=facility.pk)
        .filter(city__iexact=facility.city, courts__sport_type__in=sports, courts__is_active=True)
        .distinct()
    )
    candidates = list(candidates)
    ratings = rating_stats(f.pk for f in candidates)

    scored = []
    for other in candidates:
        card = facility_card(other, ratings)
        common_sports = sum(1 for c in other.active_courts if c.sport_type in sports)
        common_amenities = sum(1 for a in other.amenities.all() if a.pk in amenity_ids)
        avg = ratings.get(other.pk, (None, 0))[0] or 0
        card["similarity_score"] = round(common_sports * 3 + common_amenities * 2 + float(avg), 2)
        scored.append(card)

    scored.sort(key=lambda c: -c["similarity_score"])
    return scored[:limit]


def _booking_counts_since(since, *, by: str, **filters) -> dict:
    from apps.bookings.models import Booking

    rows = (
        Booking.objects.filter(
            created_at__gte=since,
            status__in=[Booking.Status.CONFIRMED, Booking.Status.COMPLETED],
            **filters,
        )
        .values(by)
        .annotate(total=Count("id"))
    )
    return {row[by]: row["total"] for row in rows}


def trending_facilities(limit: int = 10, sport_type: str | None = None, city: str | None = None) -> list[dict]:
    """Score = 2 * recent confirmed bookings + 10 * average rating."""

    qs = approved_facilities()
    if city:
        qs = qs.filter(city__icontains=city)
    if sport_type:
        qs = qs.filter(courts__sport_type=sport_type, courts__is_active=True)
    facilities = list(with_listing_relations(qs.distinct()))

    ratings = rating_stats(f.pk for f in facilities)
    bookings = _booking_counts_since(
        days_ago(TRENDING_WINDOW_DAYS),
        by="court__facility_id",
        court__facility_id__in=[f.pk for f in facilities],
        court__is_active=True,
    )

    cards = []
    for facility in facilities:
        card = facility_card(facility, ratings)
        recent = bookings.get(facility.pk, 0)
        avg = ratings.get(facility.pk, (None, 0))[0] or 0
        card["bookings_this_month"] = recent
        card["trending_score"] = round(recent * 2 + float(avg) * 10, 2)
        cards.append(card)

    cards.sort(key=lambda c: -c["trending_score"])
    return cards[:limit]


def popular_sports(city: str | None = None) -> list[dict[str, Any]]:
    """Score = active court count + 2 * recent confirmed bookings."""

    courts = Court.objects.filter(is_active=True, facility__status=Facility.Status.APPROVED)
    booking_filters: dict[str, Any] = {
        "court__is_active": True,
        "court__facility__status": Facility.Status.APPROVED,
    }
    if city:
        courts = courts.filter(facility__city__icontains=city)
        booking_filters["court__facility__city__icontains"] = city

    court_counts = {row["sport_type"]: row["total"] for row in courts.values("sport_type").annotate(total=Count("id"))}
    bookings = _booking_counts_since(days_ago(TRENDING_WINDOW_DAYS), by="court__sport_type", **booking_filters)

    labels = dict(Court.SportType.choices)
    result = [
        {
            "sport": sport,
            "label": str(labels.get(sport, sport)),
            "court_count": count,
            "bookings_this_month": bookings.get(sport, 0),
            "popularity_score": count + bookings.get(sport, 0) * 2,
        }
        for sport, count in court_counts.items()
    ]
    result.sort(key=lambda row: -row["popularity_score"])
    return result


def featured_cities(limit: int = 10) -> list[dict[str, Any]]:
    rows = (
        approved_facilities()
        .values("city")
        .annotate(venue_count=Count("id"))
        .order_by("-venue_count", "city")[:limit]
    )
    result = []
    for row in rows:
        courts = Court.objects.filter(
            is_active=True, facility__status=Facility.Status.APPROVED, facility__city=row["city"]
        )
        prices = courts.aggregate(low=Min("price_per_hour"), high=Max("price_per_hour"), avg=Avg("price_per_hour"))
        result.append(
            {
                "city": row["city"],
                "venue_count": row["venue_count"],
                "sports_available": sorted(set(courts.values_list("sport_type", flat=True))),
                "price_range": {
                    "min": prices["low"] or 0,
                    "max": prices["high"] or 0,
                    "avg": round(prices["avg"]) if prices["avg"] else 0,
                },
            }
        )
    return result


def filter_options(city: str | None = None) -> dict[str, Any]:
    courts = Court.objects.filter(is_active=True, facility__status=Facility.Status.APPROVED)
    if city:
        courts = courts.filter(facility__city__icontains=city)
    prices = courts.aggregate(low=Min("price_per_hour"), high=Max("price_per_hour"))
    return {
        "cities": list(approved_facilities().order_by("city").values_list("city", flat=True).distinct()),
        "sports": sorted(set(courts.values_list("sport_type", flat=True))),
        "amenities": list(Amenity.objects.order_by("name").values("id", "name", "icon")),
        "price_range": {
            "min": prices["low"] or 0,
            "max": prices["high"] or DEFAULT_MAX_PRICE,
        },
    }


def suggestions(query: str) -> dict[str, list]:
    query = (query or "").strip()
    if len(query) < 2:
        return {"venues": [], "cities": []}
    venues = approved_facilities().filter(name__icontains=query).order_by("name").values("id", "name", "city")
    cities = (
        approved_facilities()
        .filter(city__icontains=query)
        .order_by("city")
        .values_list("city", flat=True)
        .distinct()
    )
    return {
        "venues": list(venues[:SUGGESTIONS_LIMIT]),
        "cities": list(cities[:SUGGESTIONS_LIMIT]),
    }


# ============================================================================
# FACILITY LIFECYCLE
# ============================================================================

def apply_facility_update(facility: Facility, changes: dict[str, Any]) -> bool:
    """Return True when the edit sends the facility back to moderation."""

    touched_core = any(
        field in changes and changes[field] != getattr(facility, field) for field in Facility.CORE_FIELDS
    )
    return touched_core and facility.status in (Facility.Status.APPROVED, Facility.Status.REJECTED)


def set_facility_status(facility: Facility, status: str, note: str = "") -> Facility:
    facility.status = status
    facility.admin_note = note
    facility.save(update_fields=["status", "admin_note", "updated_at"])
    logger.info(f"Facility {facility.pk} moved to {status}")
    return facility


def facility_visible_to(user):
    """Queryset of facilities the user may read."""

    qs = Facility.objects.all()
    if is_admin(user):
        return qs
    if user.is_authenticated:
        return qs.filter(Q(status=Facility.Status.APPROVED) | Q(owner=user))
    return qs.filter(status=Facility.Status.APPROVED)
