"""Profile, password, account and dashboard views for the current user."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.core.responses import success_response

from .serializers import (
    DeactivateAccountSerializer,
    PasswordChangeSerializer,
    ProfileUpdateSerializer,
    UserSerializer,
)
from .services import build_dashboard, deactivate_account


class ProfileView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        return success_response({"user": UserSerializer(request.user).data})

    def patch(self, request):  # type: ignore
        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return success_response({"user": UserSerializer(user).data}, "Profile updated")

    put = patch


class PasswordChangeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request):  # type: ignore
        serializer = PasswordChangeSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return success_response(message="Password changed successfully")

    post = put


class AccountView(APIView):
    """DELETE deactivates (soft deletes) the current account."""

    permission_classes = [permissions.IsAuthenticated]

    def delete(self, request):  # type: ignore
        serializer = DeactivateAccountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = deactivate_account(
            request.user,
            serializer.validated_data["password"],
            serializer.validated_data.get("reason", ""),
        )
        return success_response(result, "Account deactivated successfully")


class DashboardView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        return success_response(build_dashboard(request.user))
