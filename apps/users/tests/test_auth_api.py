"""API tests for authentication and account endpoints."""

from __future__ import annotations

from datetime import timedelta

from django.core import mail
from django.test import override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.core.testing import make_admin, make_booking, make_court, make_facility, make_owner, make_user
from apps.moderation.services import ban_user
from apps.users.models import OTP, User


class AuthAPITests(APITestCase):
    def _register(self, **overrides):
        payload = {
            "name": "Asha Rao",
            "email": "Asha@Example.com",
            "password": "StrongPass123",
            "phone": "+919876543210",
        }
        payload.update(overrides)
        return self.client.post(reverse("auth:register"), payload, format="json")

    def test_register_sends_verification_code(self) -> None:
        response = self._register()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        user = User.objects.get(email="asha@example.com")
        self.assertFalse(user.is_verified)
        self.assertEqual(user.role, User.Role.USER)
        self.assertTrue(OTP.objects.filter(user=user, type=OTP.Type.EMAIL_VERIFICATION).exists())
        self.assertEqual(len(mail.outbox), 1)

    def test_register_cannot_pick_admin_role(self) -> None:
        response = self._register(role=User.Role.ADMIN)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_email_conflicts(self) -> None:
        self._register()

        response = self._register(email="asha@example.com")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "EMAIL_EXISTS")

    def test_weak_password_rejected(self) -> None:
        response = self._register(password="alllowercase")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("password", response.data["details"])

    def test_verify_otp_returns_tokens(self) -> None:
        self._register()
        otp = OTP.objects.get(user__email="asha@example.com")

        response = self.client.post(
            reverse("auth:verify-otp"),
            {"email": "asha@example.com", "code": otp.code},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertIn("access", response.data["data"]["tokens"])
        self.assertTrue(User.objects.get(email="asha@example.com").is_verified)

    @override_settings(OTP_EXPIRY_MINUTES=15)
    def test_issued_code_expires_after_configured_minutes(self) -> None:
        before = timezone.now()
        self._register()

        otp = OTP.objects.get(user__email="asha@example.com")

        self.assertGreaterEqual(otp.expires_at, before + timedelta(minutes=15))
        self.assertLessEqual(otp.expires_at, timezone.now() + timedelta(minutes=15))

    def test_expired_otp_rejected(self) -> None:
        self._register()
        otp = OTP.objects.get(user__email="asha@example.com")
        otp.expires_at = timezone.now() - timedelta(minutes=1)
        otp.save()

        response = self.client.post(
            reverse("auth:verify-otp"),
            {"email": "asha@example.com", "code": otp.code},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "OTP_EXPIRED")

    def test_login_requires_verified_email(self) -> None:
        self._register()

        response = self.client.post(
            reverse("auth:login"),
            {"email": "asha@example.com", "password": "StrongPass123"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "EMAIL_NOT_VERIFIED")

    def test_login_with_wrong_password(self) -> None:
        user = make_user()

        response = self.client.post(
            reverse("auth:login"), {"email": user.email, "password": "WrongPass123"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_and_me(self) -> None:
        user = make_user()

        login = self.client.post(
            reverse("auth:login"), {"email": user.email, "password": "StrongPass123!"}, format="json"
        )
        access = login.data["data"]["tokens"]["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        me = self.client.get(reverse("auth:me"))

        self.assertEqual(login.status_code, status.HTTP_200_OK, login.data)
        self.assertEqual(me.data["data"]["user"]["email"], user.email)

    def test_banned_user_cannot_login(self) -> None:
        user = make_user(is_banned=True)

        response = self.client.post(
            reverse("auth:login"), {"email": user.email, "password": "StrongPass123!"}, format="json"
        )

        self.assertEqual(response.data["code"], "ACCOUNT_BANNED")

    def test_ban_revokes_existing_tokens(self) -> None:
        user = make_user()
        login = self.client.post(
            reverse("auth:login"), {"email": user.email, "password": "StrongPass123!"}, format="json"
        )
        tokens = login.data["data"]["tokens"]

        ban_user(user, make_admin(), "Abusive messages")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
        me = self.client.get(reverse("auth:me"))
        self.client.credentials()
        refreshed = self.client.post(reverse("auth:token_refresh"), {"refresh": tokens["refresh"]}, format="json")

        self.assertEqual(me.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(refreshed.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertNotIn("access", refreshed.data)

    def test_refresh_works_for_active_account(self) -> None:
        user = make_user()
        login = self.client.post(
            reverse("auth:login"), {"email": user.email, "password": "StrongPass123!"}, format="json"
        )

        refreshed = self.client.post(
            reverse("auth:token_refresh"), {"refresh": login.data["data"]["tokens"]["refresh"]}, format="json"
        )

        self.assertEqual(refreshed.status_code, status.HTTP_200_OK, refreshed.data)
        self.assertIn("access", refreshed.data)

    def test_password_reset_flow(self) -> None:
        user = make_user()

        request_resp = self.client.post(
            reverse("auth:password-reset-request"), {"email": user.email}, format="json"
        )
        otp = OTP.objects.get(user=user, type=OTP.Type.PASSWORD_RESET)
        confirm_resp = self.client.post(
            reverse("auth:password-reset-confirm"),
            {"email": user.email, "code": otp.code, "new_password": "NewPassword1"},
            format="json",
        )

        self.assertEqual(request_resp.status_code, status.HTTP_200_OK)
        self.assertEqual(confirm_resp.status_code, status.HTTP_200_OK, confirm_resp.data)
        user.refresh_from_db()
        self.assertTrue(user.check_password("NewPassword1"))

    def test_password_reset_request_for_unknown_email_does_not_leak(self) -> None:
        response = self.client.post(
            reverse("auth:password-reset-request"), {"email": "nobody@example.com"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 0)

    def test_resend_for_verified_account_rejected(self) -> None:
        user = make_user()

        response = self.client.post(reverse("auth:resend-otp"), {"email": user.email}, format="json")

        self.assertEqual(response.data["code"], "ALREADY_VERIFIED")

    @override_settings(OTP_RESEND_COOLDOWN_SECONDS=60)
    def test_resend_within_cooldown_is_rate_limited(self) -> None:
        self._register()

        response = self.client.post(reverse("auth:resend-otp"), {"email": "asha@example.com"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(response.data["code"], "OTP_RATE_LIMITED")
        self.assertEqual(OTP.objects.filter(user__email="asha@example.com").count(), 1)


class AccountAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = make_user()
        self.client.force_authenticate(self.user)

    def test_update_profile(self) -> None:
        response = self.client.patch(reverse("user-profile"), {"name": "New Name"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["user"]["name"], "New Name")

    def test_change_password_requires_current(self) -> None:
        response = self.client.put(
            reverse("user-password"),
            {"current_password": "nope", "new_password": "Another123"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_deactivation_cancels_pending_bookings(self) -> None:
        court = make_court(make_facility(make_owner()))
        pending = make_booking(self.user, court)
        confirmed = make_booking(self.user, court, days_ahead=5, status=Booking.Status.CONFIRMED)

        response = self.client.delete(
            reverse("user-account"), {"password": "StrongPass123!"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["data"]["cancelled_bookings"], 1)
        pending.refresh_from_db()
        confirmed.refresh_from_db()
        self.assertEqual(pending.status, Booking.Status.CANCELLED)
        self.assertEqual(confirmed.status, Booking.Status.CONFIRMED)
        self.user.refresh_from_db()
        self.assertFalse(self.user.is_active)

    def test_deactivation_wrong_password(self) -> None:
        response = self.client.delete(reverse("user-account"), {"password": "wrong"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_cannot_self_deactivate(self) -> None:
        admin = make_admin()
        self.client.force_authenticate(admin)

        response = self.client.delete(
            reverse("user-account"), {"password": "StrongPass123!"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_dashboard(self) -> None:
        response = self.client.get(reverse("user-dashboard"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["bookings"]["total"], 0)
