"""User domain models for CourtBook.

Players book courts, facility owners list venues and administrators
moderate the marketplace. Accounts start unverified and must confirm their
e-mail with a one-time password before they can log in.
"""

from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Any

from django.conf import settings  # type: ignore
from django.contrib.auth.models import AbstractUser, BaseUserManager  # type: ignore
from django.core.validators import MinLengthValidator, RegexValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


PHONE_VALIDATOR = RegexValidator(
    regex=r"^\+?\d{10,15}$",
    message=_("Phone number must contain 10 to 15 digits."),
)


class UserManager(BaseUserManager):
    """Manager that uses the e-mail address as the login."""

    use_in_migrations = True

    def _create_user(self, email: str, password: str | None, **extra_fields: Any):
        if not email:
            raise ValueError("Email is required.")
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email: str, password: str | None = None, **extra_fields: Any):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        extra_fields.setdefault("role", User.Role.USER)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email: str, password: str | None = None, **extra_fields: Any):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_verified", True)
        extra_fields.setdefault("role", User.Role.ADMIN)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Marketplace account."""

    class Role(models.TextChoices):
        USER = "USER", _("Player")
        FACILITY_OWNER = "FACILITY_OWNER", _("Facility owner")
        ADMIN = "ADMIN", _("Administrator")

    username = models.CharField(max_length=150, blank=True)
    first_name = None  # type: ignore
    last_name = None  # type: ignore
    name = models.CharField(_("Name"), max_length=50, validators=[MinLengthValidator(2)])
    email = models.EmailField(_("Email"), unique=True)
    phone = models.CharField(_("Phone"), max_length=20, blank=True, validators=[PHONE_VALIDATOR])
    avatar_url = models.URLField(_("Avatar"), blank=True)
    role = models.CharField(_("Role"), max_length=20, choices=Role.choices, default=Role.USER)
    is_verified = models.BooleanField(_("Email verified"), default=False)
    is_banned = models.BooleanField(default=False)
    banned_reason = models.CharField(max_length=255, blank=True)
    deactivated_at = models.DateTimeField(null=True, blank=True)
    deactivation_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    class Meta:
        verbose_name = _("User")
        verbose_name_plural = _("Users")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["role"]),
        ]

    def __str__(self) -> str:
        return f"{self.email} ({self.get_role_display()})"

    def get_full_name(self) -> str:
        return self.name

    def get_short_name(self) -> str:
        return self.name.split(" ")[0] if self.name else self.email

    def is_platform_admin(self) -> bool:
        return self.role == self.Role.ADMIN or self.is_superuser

    def is_facility_owner(self) -> bool:
        return self.role == self.Role.FACILITY_OWNER

    @property
    def is_deactivated(self) -> bool:
        return self.deactivated_at is not None

    def mark_verified(self) -> None:
        self.is_verified = True
        self.save(update_fields=["is_verified", "updated_at"])


class OTP(models.Model):
    """Six digit one-time password delivered by e-mail."""

    class Type(models.TextChoices):
        EMAIL_VERIFICATION = "EMAIL_VERIFICATION", _("Email verification")
        PASSWORD_RESET = "PASSWORD_RESET", _("Password reset")

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="otps")
    code = models.CharField(max_length=6)
    type = models.CharField(max_length=32, choices=Type.choices)
    expires_at = models.DateTimeField()
    is_used = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("One-time password")
        verbose_name_plural = _("One-time passwords")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "type", "is_used"]),
        ]

    def __str__(self) -> str:
        return f"{self.type} code for {self.user_id}"

    @staticmethod
    def generate_code() -> str:
        return f"{secrets.randbelow(1_000_000):06d}"

    @staticmethod
    def default_expiry():
        return timezone.now() + timedelta(minutes=settings.OTP_EXPIRY_MINUTES)

    @property
    def is_expired(self) -> bool:
        return timezone.now() >= self.expires_at

    def mark_used(self) -> None:
        self.is_used = True
        self.save(update_fields=["is_used"])
