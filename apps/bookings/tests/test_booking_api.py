"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import date, time, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings import services, tasks
from apps.bookings.models import Booking
from apps.core.testing import make_admin, make_booking, make_court, make_facility, make_owner, make_user
from apps.facilities.models import Facility, TimeSlot
from apps.notifications.models import Notification
from apps.payments.models import Payment


class BookingAPITests(APITestCase):
    """Covers creation, overlap conflicts and cancellation."""

    def setUp(self) -> None:
        self.player = make_user()
        self.owner = make_owner()
        self.facility = make_facility(self.owner)
        self.court = make_court(self.facility, price_per_hour=Decimal("600.00"))
        self.day = date.today() + timedelta(days=5)
        self.client.force_authenticate(self.player)
        self.url = reverse("booking-list")

    def _book(self, start: str = "10:00", end: str = "12:00", **extra):
        payload = {
            "court_id": self.court.pk,
            "date": self.day.isoformat(),
            "start_time": start,
            "end_time": end,
            **extra,
        }
        return self.client.post(self.url, payload, format="json")

    def test_create_booking_prices_by_duration(self) -> None:
        response = self._book("10:00", "11:30")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        booking = Booking.objects.get()
        self.assertEqual(booking.status, Booking.Status.PENDING)
        self.assertEqual(booking.total_amount, Decimal("900.00"))

    def test_create_booking_notifies_player(self) -> None:
        self._book("10:00", "11:00")

        notification = Notification.objects.get(user=self.player)
        self.assertEqual(notification.type, Notification.Type.BOOKING_CREATED)
        self.assertEqual(notification.data["booking_id"], Booking.objects.get().pk)
        self.assertIn(self.facility.name, notification.message)

    def test_overlapping_booking_conflicts(self) -> None:
        self._book("10:00", "12:00")
        self.client.force_authenticate(make_user())

        response = self._book("11:00", "13:00")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Booking.objects.count(), 1)

    def test_adjacent_booking_is_allowed(self) -> None:
        self._book("10:00", "12:00")

        response = self._book("12:00", "13:00")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_cancelled_booking_frees_the_slot(self) -> None:
        make_booking(make_user(), self.court, booking_date=self.day, status=Booking.Status.CANCELLED)

        response = self._book("10:00", "12:00")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_blocked_slot_conflicts(self) -> None:
        TimeSlot.objects.create(
            court=self.court,
            date=self.day,
            start_time=time(10, 0),
            end_time=time(11, 0),
            is_blocked=True,
            block_type=TimeSlot.BlockType.MAINTENANCE,
        )

        response = self._book("10:30", "11:30")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_outside_operating_hours(self) -> None:
        response = self._book("05:00", "07:00")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "OUTSIDE_OPERATING_HOURS")

    def test_booking_in_the_past(self) -> None:
        self.day = date.today() - timedelta(days=1)

        response = self._book()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_too_long_booking(self) -> None:
        response = self._book("06:00", "16:00")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unapproved_facility_cannot_be_booked(self) -> None:
        self.facility.status = Facility.Status.PENDING
        self.facility.save()

        response = self._book()

        self.assertEqual(response.data["code"], "FACILITY_NOT_APPROVED")

    def test_end_before_start(self) -> None:
        response = self._book("12:00", "10:00")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("end_time", response.data["details"])

    def test_list_only_own_bookings(self) -> None:
        make_booking(self.player, self.court)
        make_booking(make_user(), self.court, days_ahead=4)

        response = self.client.get(self.url)

        self.assertEqual(response.data["data"]["pagination"]["total"], 1)

    def test_owner_sees_bookings_on_own_courts(self) -> None:
        make_booking(self.player, self.court)
        self.client.force_authenticate(self.owner)

        response = self.client.get(self.url)

        self.assertEqual(response.data["data"]["pagination"]["total"], 1)

    def test_stranger_cannot_view_booking(self) -> None:
        booking = make_booking(self.player, self.court)
        self.client.force_authenticate(make_user())

        response = self.client.get(reverse("booking-detail", args=[booking.pk]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class CancellationTests(APITestCase):
    def setUp(self) -> None:
        self.player = make_user()
        self.court = make_court(make_facility(make_owner()))
        self.client.force_authenticate(self.player)

    def test_cancel_unpaid_booking(self) -> None:
        booking = make_booking(self.player, self.court)

        response = self.client.post(reverse("booking-cancel", args=[booking.pk]), {"reason": "Plans changed"})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertFalse(response.data["data"]["refund"]["was_payment_made"])
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CANCELLED)
        self.assertEqual(booking.cancellation_reason, "Plans changed")
        self.assertTrue(
            Notification.objects.filter(user=self.player, type=Notification.Type.BOOKING_CANCELLED).exists()
        )

    def test_cancel_twice(self) -> None:
        booking = make_booking(self.player, self.court, status=Booking.Status.CANCELLED)

        response = self.client.post(reverse("booking-cancel", args=[booking.pk]))

        self.assertEqual(response.data["code"], "ALREADY_CANCELLED")

    def test_cannot_cancel_completed(self) -> None:
        booking = make_booking(self.player, self.court, days_ahead=-1, status=Booking.Status.COMPLETED)

        response = self.client.post(reverse("booking-cancel", args=[booking.pk]))

        self.assertEqual(response.data["code"], "BOOKING_COMPLETED")

    def test_payment_status_for_unpaid_booking(self) -> None:
        booking = make_booking(self.player, self.court)

        response = self.client.get(reverse("booking-payment-status", args=[booking.pk]))

        self.assertFalse(response.data["data"]["is_paid"])
        self.assertIsNone(response.data["data"]["payment"])

    def test_receipt_requires_payment(self) -> None:
        booking = make_booking(self.player, self.court)

        response = self.client.get(reverse("booking-receipt", args=[booking.pk]))

        self.assertEqual(response.data["code"], "NOT_PAID")

    def test_admin_can_cancel_any_booking(self) -> None:
        booking = make_booking(self.player, self.court)
        self.client.force_authenticate(make_admin())

        response = self.client.post(reverse("booking-cancel", args=[booking.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)


@pytest.mark.parametrize(
    "hours_ahead, expected",
    [(48, 100), (24, 100), (18, 50), (12, 50), (6, 0)],
)
def test_refund_percentage_tiers(hours_ahead: int, expected: int) -> None:
    now = timezone.now()
    start = timezone.localtime(now + timedelta(hours=hours_ahead, minutes=1))
    booking = Booking(booking_date=start.date(), start_time=start.time().replace(second=0, microsecond=0))

    assert services.refund_percentage(booking, now=now) == expected


@pytest.mark.django_db
def test_expire_pending_bookings_cancels_stale_holds() -> None:
    court = make_court(make_facility(make_owner()))
    player = make_user()
    stale = make_booking(player, court)
    fresh = make_booking(player, court, days_ahead=4)
    Booking.objects.filter(pk=stale.pk).update(created_at=timezone.now() - timedelta(hours=2))
    Payment.objects.create(
        booking=stale,
        user=player,
        amount=stale.total_amount,
        total_amount=stale.total_amount,
        method=Payment.Method.UPI,
        gateway_order_id="ORDER_STALE",
    )

    result = tasks.expire_pending_bookings()

    assert result == {"expired": 1}
    stale.refresh_from_db()
    fresh.refresh_from_db()
    assert stale.status == Booking.Status.CANCELLED
    assert fresh.status == Booking.Status.PENDING
    assert Payment.objects.get(booking=stale).status == Payment.Status.CANCELLED


@pytest.mark.django_db
def test_expire_skips_booking_confirmed_after_listing() -> None:
    booking = make_booking(make_user(), make_court(make_facility(make_owner())))
    Booking.objects.filter(pk=booking.pk).update(
        status=Booking.Status.CONFIRMED, created_at=timezone.now() - timedelta(hours=2)
    )

    with patch.object(tasks, "_stale_booking_ids", return_value=[booking.pk]):
        result = tasks.expire_pending_bookings()

    assert result == {"expired": 0}
    booking.refresh_from_db()
    assert booking.status == Booking.Status.CONFIRMED
    assert booking.cancellation_reason == ""


@pytest.mark.django_db
def test_complete_finished_bookings() -> None:
    court = make_court(make_facility(make_owner()))
    past = make_booking(make_user(), court, days_ahead=-1, status=Booking.Status.CONFIRMED)
    future = make_booking(make_user(), court, days_ahead=2, status=Booking.Status.CONFIRMED)

    tasks.complete_finished_bookings()

    past.refresh_from_db()
    future.refresh_from_db()
    assert past.status == Booking.Status.COMPLETED
    assert future.status == Booking.Status.CONFIRMED
