"""Aggregations behind the admin, owner and public analytics endpoints.

Revenue figures come from captured payments: ``COMPLETED`` plus those
later marked ``REFUNDED``. Processed refunds are reported separately and
subtracted for net figures. Owners earn the base court amount; the
platform fee and tax belong to the platform.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model  # type: ignore
from django.db.models import Avg, Count, Max, Min, Q, Sum  # type: ignore
from django.db.models.functions import TruncDate, TruncMonth  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.models import Booking
from apps.core.exceptions import NotFound
from apps.core.timeutils import days_ago, hours_between
from apps.facilities.models import Court, Facility
from apps.payments.models import Payment, Refund
from apps.reviews.models import Review

if TYPE_CHECKING:  # pragma: no cover
    from apps.users.models import User

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CAPTURED_STATUSES = (Payment.Status.COMPLETED, Payment.Status.REFUNDED)
BOOKED_STATUSES = (Booking.Status.CONFIRMED, Booking.Status.COMPLETED)
RECENT_TRANSACTIONS = 10
HOME_SECTION_SIZE = 6


def _count_by(queryset, field: str) -> dict[str, int]:
    return {row[field]: row["n"] for row in queryset.values(field).annotate(n=Count("id"))}


def _total(queryset, field: str) -> Decimal:
    return queryset.aggregate(total=Sum(field))["total"] or ZERO


def captured_payments():
    return Payment.objects.filter(status__in=CAPTURED_STATUSES)


def processed_refunds():
    return Refund.objects.filter(status=Refund.Status.PROCESSED)


# ============================================================================
# ADMIN
# ============================================================================

def admin_overview() -> dict[str, Any]:
    User = get_user_model()
    since = days_ago(30)
    payments = captured_payments()
    courts = Court.objects.aggregate(
        active=Count("id", filter=Q(is_active=True)),
        inactive=Count("id", filter=Q(is_active=False)),
    )
    reviews = Review.objects.aggregate(
        total=Count("id"),
        pending=Count("id", filter=Q(is_approved=False)),
        flagged=Count("id", filter=Q(is_flagged=True)),
    )
    users_by_role = _count_by(User.objects.all(), "role")
    facilities_by_status = _count_by(Facility.objects.all(), "status")
    bookings_by_status = _count_by(Booking.objects.all(), "status")

    return {
        "users": {
            "total": sum(users_by_role.values()),
            "by_role": users_by_role,
            "banned": User.objects.filter(is_banned=True).count(),
            "new_last_30_days": User.objects.filter(created_at__gte=since).count(),
        },
        "facilities": {
            "total": sum(facilities_by_status.values()),
            "by_status": facilities_by_status,
        },
        "courts": {**courts, "total": courts["active"] + courts["inactive"]},
        "bookings": {
            "total": sum(bookings_by_status.values()),
            "by_status": bookings_by_status,
            "last_30_days": Booking.objects.filter(created_at__gte=since).count(),
        },
        "revenue": {
            "total": _total(payments, "total_amount"),
            "last_30_days": _total(payments.filter(completed_at__gte=since), "total_amount"),
            "platform_fees": _total(payments, "platform_fee"),
            "refunds": _total(processed_refunds(), "amount"),
        },
        "pending_approvals": facilities_by_status.get(Facility.Status.PENDING, 0),
        "reviews": reviews,
    }


def admin_revenue(days: int = 30) -> dict[str, Any]:
    since = days_ago(days)
    payments = captured_payments().filter(completed_at__gte=since)
    refunds = processed_refunds().filter(processed_at__gte=since)

    daily = [
        {
            "date": row["day"],
            "revenue": row["revenue"] or ZERO,
            "platform_fees": row["fees"] or ZERO,
            "transactions": row["n"],
        }
        for row in payments.annotate(day=TruncDate("completed_at"))
        .values("day")
        .annotate(revenue=Sum("total_amount"), fees=Sum("platform_fee"), n=Count("id"))
        .order_by("day")
    ]
    by_method = [
        {"method": row["method"], "revenue": row["revenue"] or ZERO, "transactions": row["n"]}
        for row in payments.values("method").annotate(revenue=Sum("total_amount"), n=Count("id")).order_by("-revenue")
    ]
    gross = _total(payments, "total_amount")
    refunded = _total(refunds, "amount")
    return {
        "days": days,
        "gross_revenue": gross,
        "platform_fees": _total(payments, "platform_fee"),
        "tax_collected": _total(payments, "tax"),
        "discounts": _total(payments, "discount_amount"),
        "refunds": refunded,
        "net_revenue": gross - refunded,
        "transactions": payments.count(),
        "daily": daily,
        "by_method": by_method,
    }


def search_analytics() -> dict[str, Any]:
    approved = Facility.objects.filter(status=Facility.Status.APPROVED)
    courts = Court.objects.filter(is_active=True, facility__status=Facility.Status.APPROVED)
    prices = courts.aggregate(low=Min("price_per_hour"), high=Max("price_per_hour"), avg=Avg("price_per_hour"))
    labels = dict(Court.SportType.choices)

    top_cities = [
        {"city": row["city"], "venues": row["n"]}
        for row in approved.values("city").annotate(n=Count("id")).order_by("-n", "city")[:10]
    ]
    sports = [
        {
            "sport": row["sport_type"],
            "label": str(labels.get(row["sport_type"], row["sport_type"])),
            "courts": row["n"],
            "avg_price": round(row["avg"], 2) if row["avg"] else ZERO,
        }
        for row in courts.values("sport_type").annotate(n=Count("id"), avg=Avg("price_per_hour")).order_by("-n")
    ]
    return {
        "inventory": {
            "venues": approved.count(),
            "courts": courts.count(),
            "cities": approved.values("city").distinct().count(),
            "geo_tagged_venues": approved.filter(latitude__isnull=False, longitude__isnull=False).count(),
        },
        "top_cities": top_cities,
        "sports": sports,
        "price_stats": {
            "min": prices["low"] or ZERO,
            "max": prices["high"] or ZERO,
            "avg": round(prices["avg"], 2) if prices["avg"] else ZERO,
        },
    }


# ============================================================================
# OWNER
# ============================================================================

def owner_payments(owner: "User", facility_id: int | None = None):
    qs = captured_payments().filter(booking__court__facility__owner=owner)
    if facility_id:
        qs = qs.filter(booking__court__facility_id=facility_id)
    return qs


def owner_dashboard(owner: "User") -> dict[str, Any]:
    from apps.bookings.serializers import BookingSerializer

    today = timezone.localdate()
    month_start = timezone.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    facilities = Facility.objects.filter(owner=owner)
    courts = Court.objects.filter(facility__owner=owner)
    bookings = Booking.objects.filter(court__facility__owner=owner)
    upcoming = (
        bookings.filter(status__in=Booking.ACTIVE_STATUSES, booking_date__gte=today)
        .select_related("user", "court", "court__facility")
        .order_by("booking_date", "start_time")
    )
    rating = Review.objects.filter(facility__owner=owner, is_approved=True).aggregate(avg=Avg("rating"), n=Count("id"))
    by_status = _count_by(facilities, "status")

    return {
        "facilities": {"total": sum(by_status.values()), "by_status": by_status},
        "courts": {"total": courts.count(), "active": courts.filter(is_active=True).count()},
        "bookings": {
            "today": bookings.filter(booking_date=today, status__in=BOOKED_STATUSES).count(),
            "upcoming": upcoming.count(),
            "pending": bookings.filter(status=Booking.Status.PENDING).count(),
            "total": bookings.count(),
        },
        "revenue_this_month": _total(owner_payments(owner).filter(completed_at__gte=month_start), "amount"),
        "average_rating": round(float(rating["avg"]), 2) if rating["avg"] else 0,
        "total_reviews": rating["n"],
        "upcoming_bookings": BookingSerializer(upcoming[:5], many=True).data,
    }


def owner_earnings(owner: "User", days: int = 365, facility_id: int | None = None) -> dict[str, Any]:
    since = days_ago(days)
    payments = owner_payments(owner, facility_id).filter(completed_at__gte=since)
    refunds = processed_refunds().filter(
        payment__booking__court__facility__owner=owner,
        processed_at__gte=since,
    )
    if facility_id:
        refunds = refunds.filter(payment__booking__court__facility_id=facility_id)

    monthly = [
        {"month": row["month"].strftime("%Y-%m"), "earnings": row["earnings"] or ZERO, "bookings": row["n"]}
        for row in payments.annotate(month=TruncMonth("completed_at"))
        .values("month")
        .annotate(earnings=Sum("amount"), n=Count("id"))
        .order_by("month")
    ]
    venues = [
        {
            "facility_id": row["booking__court__facility_id"],
            "facility_name": row["booking__court__facility__name"],
            "earnings": row["earnings"] or ZERO,
            "bookings": row["n"],
        }
        for row in payments.values("booking__court__facility_id", "booking__court__facility__name")
        .annotate(earnings=Sum("amount"), n=Count("id"))
        .order_by("-earnings")
    ]
    recent = [
        {
            "payment_id": p.pk,
            "booking_id": p.booking_id,
            "facility_name": p.booking.court.facility.name,
            "court_name": p.booking.court.name,
            "customer": p.user.name,
            "amount": p.amount,
            "status": p.status,
            "completed_at": p.completed_at,
        }
        for p in payments.select_related("user", "booking__court__facility").order_by("-completed_at")[
            :RECENT_TRANSACTIONS
        ]
    ]
    total = _total(payments, "amount")
    refunded = _total(refunds, "amount")
    pending = _total(
        Payment.objects.filter(status=Payment.Status.PENDING, booking__court__facility__owner=owner), "amount"
    )
    return {
        "days": days,
        "summary": {
            "total_earnings": total,
            "total_bookings": payments.count(),
            "total_refunds": refunded,
            "net_earnings": total - refunded,
            "pending_payments": pending,
        },
        "monthly": monthly,
        "venues": venues,
        "recent_transactions": recent,
    }


def _booked_hours(bookings) -> Decimal:
    return sum((hours_between(b.start_time, b.end_time) for b in bookings), Decimal("0"))


def _operating_hours(court: Court, days: int) -> Decimal:
    return hours_between(court.opening_time, court.closing_time) * days


def _occupancy(booked: Decimal, available: Decimal) -> float:
    if available <= 0:
        return 0.0
    return round(float(booked / available * 100), 1)


def owner_court_analytics(owner: "User", days: int = 30, facility_id: int | None = None) -> dict[str, Any]:
    start = timezone.localdate() - timedelta(days=days)
    courts = Court.objects.filter(facility__owner=owner, is_active=True).select_related("facility")
    if facility_id:
        courts = courts.filter(facility_id=facility_id)
    courts = list(courts)

    bookings = list(
        Booking.objects.filter(court__in=courts, booking_date__gte=start).only(
            "court_id", "status", "start_time", "end_time"
        )
    )
    revenue = {
        row["booking__court_id"]: row["total"] or ZERO
        for row in owner_payments(owner)
        .filter(booking__court__in=courts, booking__booking_date__gte=start)
        .values("booking__court_id")
        .annotate(total=Sum("amount"))
    }

    rows = []
    for court in courts:
        mine = [b for b in bookings if b.court_id == court.pk]
        booked = [b for b in mine if b.status in BOOKED_STATUSES]
        booked_hours = _booked_hours(booked)
        rows.append(
            {
                "court_id": court.pk,
                "court_name": court.name,
                "facility_id": court.facility_id,
                "facility_name": court.facility.name,
                "sport_type": court.sport_type,
                "bookings": len(booked),
                "cancelled": sum(1 for b in mine if b.status == Booking.Status.CANCELLED),
                "revenue": revenue.get(court.pk, ZERO),
                "booked_hours": booked_hours,
                "occupancy": _occupancy(booked_hours, _operating_hours(court, days)),
            }
        )
    rows.sort(key=lambda r: -r["occupancy"])

    total_revenue = sum((r["revenue"] for r in rows), ZERO)
    return {
        "days": days,
        "courts": rows,
        "summary": {
            "total_courts": len(rows),
            "avg_occupancy": round(sum(r["occupancy"] for r in rows) / len(rows), 1) if rows else 0,
            "total_revenue": total_revenue,
            "avg_revenue_per_court": (total_revenue / len(rows)).quantize(ZERO) if rows else ZERO,
        },
    }


def court_detail_analytics(owner: "User", court_id: int, days: int = 30) -> dict[str, Any]:
    from apps.core.permissions import is_admin

    court = Court.objects.select_related("facility").filter(pk=court_id).first()
    if court is None or (court.facility.owner_id != owner.pk and not is_admin(owner)):
        raise NotFound("Court not found")

    start = timezone.localdate() - timedelta(days=days)
    booked = list(Booking.objects.filter(court=court, booking_date__gte=start, status__in=BOOKED_STATUSES))

    by_weekday = {name: 0 for name in ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")}
    by_hour: dict[int, int] = {}
    for booking in booked:
        by_weekday[booking.booking_date.strftime("%a")] += 1
        by_hour[booking.start_time.hour] = by_hour.get(booking.start_time.hour, 0) + 1
    peak_hours = sorted(by_hour.items(), key=lambda item: (-item[1], item[0]))[:3]

    booked_hours = _booked_hours(booked)
    revenue = _total(captured_payments().filter(booking__court=court, booking__booking_date__gte=start), "amount")
    return {
        "court_id": court.pk,
        "court_name": court.name,
        "facility_name": court.facility.name,
        "days": days,
        "bookings": len(booked),
        "booked_hours": booked_hours,
        "occupancy": _occupancy(booked_hours, _operating_hours(court, days)),
        "revenue": revenue,
        "by_weekday": by_weekday,
        "peak_hours": [{"hour": f"{hour:02d}:00", "bookings": n} for hour, n in peak_hours],
    }


# ============================================================================
# PUBLIC
# ============================================================================

def home_feed(city: str | None = None) -> dict[str, Any]:
    from apps.facilities import services as catalog
    from apps.reviews.services import top_rated_facilities

    User = get_user_model()
    return {
        "trending_venues": catalog.trending_facilities(limit=HOME_SECTION_SIZE, city=city),
        "top_rated_venues": top_rated_facilities(limit=HOME_SECTION_SIZE, city=city),
        "popular_sports": catalog.popular_sports(city)[:8],
        "featured_cities": catalog.featured_cities(limit=HOME_SECTION_SIZE),
        "stats": {
            "total_venues": catalog.approved_facilities().count(),
            "total_courts": Court.objects.filter(is_active=True, facility__status=Facility.Status.APPROVED).count(),
            "total_bookings": Booking.objects.filter(status__in=BOOKED_STATUSES).count(),
            "total_players": User.objects.filter(role=User.Role.USER, is_active=True).count(),
        },
    }


def sports_list() -> list[dict[str, Any]]:
    counts = _count_by(
        Court.objects.filter(is_active=True, facility__status=Facility.Status.APPROVED), "sport_type"
    )
    return [
        {"value": value, "label": str(label), "court_count": counts.get(value, 0)}
        for value, label in Court.SportType.choices
    ]
