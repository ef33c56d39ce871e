"""Role based permission classes."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore


def is_admin(user) -> bool:
    if not user or not user.is_authenticated:
        return False
    if getattr(user, "is_superuser", False):
        return True
    return hasattr(user, "is_platform_admin") and user.is_platform_admin()


class IsAdminRole(permissions.BasePermission):
    """Only platform administrators."""

    def has_permission(self, request, view) -> bool:  # type: ignore
        return is_admin(request.user)


class IsFacilityOwnerRole(permissions.BasePermission):
    """Facility owners and administrators."""

    def has_permission(self, request, view) -> bool:  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if is_admin(user):
            return True
        return hasattr(user, "is_facility_owner") and user.is_facility_owner()


class IsFacilityOwnerRoleOrReadOnly(IsFacilityOwnerRole):
    def has_permission(self, request, view) -> bool:  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        return super().has_permission(request, view)


class IsVerifiedUser(permissions.BasePermission):
    message = "Email address is not verified."

    def has_permission(self, request, view) -> bool:  # type: ignore
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_verified", False))
