"""Admin registrations for the users domain."""

from __future__ import annotations

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import OTP, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (_("Personal info"), {"fields": ("name", "phone", "avatar_url")}),
        (_("Role and status"), {"fields": ("role", "is_verified", "is_banned", "banned_reason")}),
        (_("Deactivation"), {"fields": ("deactivated_at", "deactivation_reason")}),
        (
            _("Permissions"),
            {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")},
        ),
        (_("Important dates"), {"fields": ("last_login", "date_joined", "created_at", "updated_at")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "name", "password1", "password2", "role", "is_verified"),
            },
        ),
    )
    list_display = ("email", "name", "role", "is_verified", "is_active", "is_banned", "created_at")
    list_filter = ("role", "is_active", "is_verified", "is_banned")
    search_fields = ("email", "name", "phone")
    ordering = ("email",)
    readonly_fields = ("created_at", "updated_at", "date_joined", "deactivated_at")


@admin.register(OTP)
class OTPAdmin(admin.ModelAdmin):
    list_display = ("user", "type", "expires_at", "is_used", "created_at")
    list_filter = ("type", "is_used")
    search_fields = ("user__email",)
