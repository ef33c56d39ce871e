"""Tests for notification services and endpoints."""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.core import mail
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.core.exceptions import ValidationFailed
from apps.core.testing import make_admin, make_booking, make_court, make_facility, make_owner, make_user
from apps.notifications import services, tasks
from apps.notifications.models import Notification, NotificationPreference, PushSubscription
from apps.users.models import User


# ============================================================================
# SERVICES
# ============================================================================

def test_render_template_fills_placeholders() -> None:
    title, message = services.render_template(
        Notification.Type.VENUE_REJECTED, {"venue_name": "Smash Arena", "reason": "Blurry photos"}
    )

    assert title == "Venue Not Approved"
    assert message == 'Your venue "Smash Arena" was not approved. Reason: Blurry photos'


def test_render_template_missing_values_are_blank() -> None:
    _, message = services.render_template(Notification.Type.BOOKING_CANCELLED, {"venue_name": "X", "date": "1 Jan"})

    assert message == "Your booking at X for 1 Jan has been cancelled."


@pytest.mark.django_db
def test_muted_category_is_skipped() -> None:
    user = make_user()
    NotificationPreference.objects.create(user=user, payment_updates=False)

    result = services.create_notification(user, Notification.Type.PAYMENT_FAILED, {"amount": "100"})

    assert result is None
    assert not Notification.objects.exists()


@pytest.mark.django_db
def test_system_alert_ignores_preferences() -> None:
    user = make_user()
    NotificationPreference.objects.create(user=user, booking_updates=False, promotional=False)

    notification = services.create_notification(user, Notification.Type.SYSTEM_ALERT, {"message": "Maintenance"})

    assert notification is not None
    assert notification.message == "Maintenance"


@pytest.mark.django_db
def test_unknown_type_without_title_rejected() -> None:
    with pytest.raises(ValidationFailed):
        services.create_notification(make_user(), "SOMETHING_ELSE")


@pytest.mark.django_db
def test_booking_confirmation_email_respects_preference() -> None:
    booking = make_booking(make_user(), make_court(make_facility(make_owner())))

    assert services.send_booking_confirmation_email(booking) is True
    NotificationPreference.objects.filter(user=booking.user).update(email_enabled=False)
    assert services.send_booking_confirmation_email(booking) is False
    assert len(mail.outbox) == 1
    assert f"#{booking.pk}" in mail.outbox[0].subject


@pytest.mark.django_db
def test_purge_expired_notifications() -> None:
    user = make_user()
    Notification.objects.create(
        user=user, type=Notification.Type.PROMOTIONAL, title="Old", message="x",
        expires_at=timezone.now() - timedelta(days=1),
    )
    Notification.objects.create(user=user, type=Notification.Type.PROMOTIONAL, title="New", message="y")

    assert tasks.purge_expired_notifications() == {"deleted": 1}
    assert Notification.objects.get().title == "New"


# ============================================================================
# API
# ============================================================================

class NotificationAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = make_user()
        self.client.force_authenticate(self.user)
        self.first = services.create_notification(self.user, Notification.Type.SYSTEM_ALERT, {"message": "One"})
        self.second = services.create_notification(self.user, Notification.Type.SYSTEM_ALERT, {"message": "Two"})
        services.create_notification(make_user(), Notification.Type.SYSTEM_ALERT, {"message": "Other"})

    def test_list_only_own(self) -> None:
        response = self.client.get(reverse("notification-list"))

        self.assertEqual(response.data["data"]["pagination"]["total"], 2)
        self.assertEqual(response.data["data"]["pagination"]["limit"], 20)

    def test_expired_hidden(self) -> None:
        Notification.objects.filter(pk=self.first.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        response = self.client.get(reverse("notification-count"))

        self.assertEqual(response.data["data"]["unread"], 1)

    def test_mark_read_and_count(self) -> None:
        self.client.post(reverse("notification-mark-read", args=[self.first.pk]))

        unread = self.client.get(reverse("notification-list"), {"unread_only": "true"})
        count = self.client.get(reverse("notification-count"))

        self.assertEqual(unread.data["data"]["pagination"]["total"], 1)
        self.assertEqual(count.data["data"]["unread"], 1)
        self.first.refresh_from_db()
        self.assertIsNotNone(self.first.read_at)

    def test_mark_all_then_clear(self) -> None:
        marked = self.client.post(reverse("notification-mark-all-read"))
        cleared = self.client.delete(reverse("notification-clear-read"))

        self.assertEqual(marked.data["data"]["updated"], 2)
        self.assertEqual(cleared.data["data"]["deleted"], 2)
        self.assertEqual(Notification.objects.filter(user=self.user).count(), 0)

    def test_cannot_read_others(self) -> None:
        other = Notification.objects.exclude(user=self.user).get()

        response = self.client.get(reverse("notification-detail", args=[other.pk]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_preferences(self) -> None:
        response = self.client.patch(reverse("notification-preferences"), {"promotional": True}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(NotificationPreference.objects.get(user=self.user).promotional)

    def test_push_subscribe_and_unsubscribe(self) -> None:
        payload = {
            "endpoint": "https://push.example.com/sub/abc",
            "keys": {"p256dh": "key", "auth": "secret"},
        }
        created = self.client.post(reverse("notification-subscribe"), payload, format="json")
        removed = self.client.post(reverse("notification-unsubscribe"), {}, format="json")

        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        self.assertEqual(removed.data["data"]["unsubscribed"], 1)
        self.assertFalse(PushSubscription.objects.get().is_active)

    def test_push_subscribe_requires_keys(self) -> None:
        payload = {"endpoint": "https://push.example.com/sub/abc", "keys": {"auth": "secret"}}

        response = self.client.post(reverse("notification-subscribe"), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class BroadcastTests(APITestCase):
    def test_admin_broadcast_to_role(self) -> None:
        make_owner()
        make_owner()
        make_user()
        self.client.force_authenticate(make_admin())

        response = self.client.post(
            reverse("notification-broadcast"),
            {"message": "Owner payouts run tonight", "role": User.Role.FACILITY_OWNER},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["data"]["sent"], 2)

    def test_non_admin_cannot_broadcast(self) -> None:
        self.client.force_authenticate(make_user())

        response = self.client.post(reverse("notification-broadcast"), {"message": "hi"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
