"""Integration tests for reports and the admin console."""

from __future__ import annotations

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.core.testing import make_admin, make_booking, make_court, make_facility, make_owner, make_user
from apps.facilities.models import Facility
from apps.moderation.models import Report
from apps.notifications.models import Notification
from apps.users.models import User


class ReportAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = make_user()
        self.facility = make_facility(make_owner())
        self.client.force_authenticate(self.user)
        self.url = reverse("report-list")

    def _payload(self, **overrides):
        payload = {
            "type": "facility",
            "target_id": str(self.facility.pk),
            "category": "fake_information",
            "title": "Photos are misleading",
            "description": "The courts look nothing like the photos on the listing.",
        }
        payload.update(overrides)
        return payload

    def test_submit_report(self) -> None:
        response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        report = Report.objects.get()
        self.assertEqual(report.reporter, self.user)
        self.assertEqual(report.priority, Report.Priority.MEDIUM)
        self.assertEqual(report.status, Report.Status.PENDING)

    def test_unknown_target_is_not_found(self) -> None:
        response = self.client.post(self.url, self._payload(target_id="999999"), format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_duplicate_open_report_conflicts(self) -> None:
        self.client.post(self.url, self._payload(), format="json")

        response = self.client.post(self.url, self._payload(title="Still misleading"), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_can_report_again_once_resolved(self) -> None:
        self.client.post(self.url, self._payload(), format="json")
        Report.objects.update(status=Report.Status.RESOLVED)

        response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_short_title_rejected(self) -> None:
        response = self.client.post(self.url, self._payload(title="Bad"), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("title", response.data["details"])

    def test_list_only_own_reports(self) -> None:
        self.client.post(self.url, self._payload(), format="json")
        Report.objects.create(
            reporter=make_user(),
            type=Report.Type.OTHER,
            category=Report.Category.SPAM,
            title="Someone else",
            description="Not visible to the first user.",
        )

        response = self.client.get(self.url)

        self.assertEqual(response.data["data"]["pagination"]["total"], 1)

    def test_admin_resolves_report(self) -> None:
        self.client.post(self.url, self._payload(), format="json")
        report = Report.objects.get()
        admin = make_admin()
        self.client.force_authenticate(admin)

        response = self.client.patch(
            reverse("admin-report-detail", args=[report.pk]),
            {"status": "resolved", "admin_notes": "Photos updated by owner"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        report.refresh_from_db()
        self.assertEqual(report.resolved_by, admin)
        self.assertIsNotNone(report.resolved_at)

    def test_admin_report_list_includes_stats(self) -> None:
        self.client.post(self.url, self._payload(), format="json")
        Report.objects.create(
            reporter=make_user(),
            type=Report.Type.OTHER,
            category=Report.Category.SPAM,
            title="Spam listing",
            description="Repeated promotional posts.",
            priority=Report.Priority.HIGH,
            status=Report.Status.RESOLVED,
        )
        self.client.force_authenticate(make_admin())

        response = self.client.get(reverse("admin-report-list"))

        stats = response.data["data"]["stats"]
        self.assertEqual(stats["by_status"]["pending"], 1)
        self.assertEqual(stats["by_status"]["resolved"], 1)
        self.assertEqual(stats["by_priority"], {"low": 0, "medium": 1, "high": 1})

    def test_admin_report_list_requires_admin(self) -> None:
        response = self.client.get(reverse("admin-report-list"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class VenueApprovalTests(APITestCase):
    def setUp(self) -> None:
        self.admin = make_admin()
        self.owner = make_owner()
        self.venue = make_facility(self.owner, status=Facility.Status.PENDING)
        make_facility(make_owner())
        self.client.force_authenticate(self.admin)

    def test_pending_queue_with_stats(self) -> None:
        response = self.client.get(reverse("admin-venue-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data["data"]
        self.assertEqual([v["id"] for v in data["results"]], [self.venue.pk])
        self.assertEqual(data["stats"]["pending"], 1)
        self.assertEqual(data["stats"]["approved"], 1)
        self.assertTrue(data["results"][0]["flags"]["is_first_venue"])

    def test_approve_notifies_owner(self) -> None:
        response = self.client.post(reverse("admin-venue-approve", args=[self.venue.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.venue.refresh_from_db()
        self.assertEqual(self.venue.status, Facility.Status.APPROVED)
        self.assertTrue(Notification.objects.filter(user=self.owner, type=Notification.Type.VENUE_APPROVED).exists())

    def test_reject_requires_note(self) -> None:
        response = self.client.post(reverse("admin-venue-reject", args=[self.venue.pk]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reject_stores_note_and_notifies(self) -> None:
        response = self.client.post(
            reverse("admin-venue-reject", args=[self.venue.pk]),
            {"admin_note": "Address could not be verified"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.venue.refresh_from_db()
        self.assertEqual(self.venue.status, Facility.Status.REJECTED)
        self.assertEqual(self.venue.admin_note, "Address could not be verified")
        self.assertTrue(Notification.objects.filter(user=self.owner, type=Notification.Type.VENUE_REJECTED).exists())


class AdminUserTests(APITestCase):
    def setUp(self) -> None:
        self.admin = make_admin()
        self.player = make_user(name="Priya Sharma")
        self.client.force_authenticate(self.admin)

    def test_list_filters_by_role_and_search(self) -> None:
        make_owner()

        by_role = self.client.get(reverse("admin-user-list"), {"role": User.Role.FACILITY_OWNER})
        by_search = self.client.get(reverse("admin-user-list"), {"search": "priya"})

        self.assertEqual(by_role.data["data"]["pagination"]["total"], 1)
        self.assertEqual([u["id"] for u in by_search.data["data"]["results"]], [self.player.pk])

    def test_detail_includes_activity(self) -> None:
        response = self.client.get(reverse("admin-user-detail", args=[self.player.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["activity"]["bookings"]["total"], 0)

    def test_change_role(self) -> None:
        response = self.client.put(
            reverse("admin-user-role", args=[self.player.pk]),
            {"role": User.Role.FACILITY_OWNER},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.player.refresh_from_db()
        self.assertEqual(self.player.role, User.Role.FACILITY_OWNER)

    def test_cannot_change_own_role(self) -> None:
        response = self.client.put(
            reverse("admin-user-role", args=[self.admin.pk]), {"role": User.Role.USER}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_ban_cancels_pending_bookings(self) -> None:
        court = make_court(make_facility(make_owner()))
        booking = make_booking(self.player, court)

        response = self.client.post(
            reverse("admin-user-ban", args=[self.player.pk]), {"reason": "Repeated no-shows"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["data"]["cancelled_bookings"], 1)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CANCELLED)
        self.player.refresh_from_db()
        self.assertTrue(self.player.is_banned)

    def test_unban(self) -> None:
        self.player.is_banned = True
        self.player.save()

        response = self.client.post(reverse("admin-user-unban", args=[self.player.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.player.refresh_from_db()
        self.assertFalse(self.player.is_banned)

    def test_cannot_ban_another_admin(self) -> None:
        other = make_admin()

        response = self.client.post(reverse("admin-user-ban", args=[other.pk]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AdminListingTests(APITestCase):
    def setUp(self) -> None:
        self.client.force_authenticate(make_admin())
        self.court = make_court(make_facility(make_owner()))
        self.player = make_user()
        make_booking(self.player, self.court)
        make_booking(self.player, self.court, days_ahead=4, status=Booking.Status.CONFIRMED)

    def test_bookings_filtered_by_status(self) -> None:
        response = self.client.get(reverse("admin-booking-list"), {"status": Booking.Status.CONFIRMED})

        self.assertEqual(response.data["data"]["pagination"]["total"], 1)

    def test_courts_include_booking_count(self) -> None:
        response = self.client.get(reverse("admin-court-list"))

        self.assertEqual(response.data["data"]["results"][0]["booking_count"], 2)

    def test_payments_listing_requires_admin(self) -> None:
        self.client.force_authenticate(self.player)

        response = self.client.get(reverse("admin-payment-list"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
