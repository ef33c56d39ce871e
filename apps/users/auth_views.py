"""Views for authentication flows (register, login, OTP, password reset)."""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken  # type: ignore
from rest_framework_simplejwt.views import TokenRefreshView  # type: ignore

from apps.core.responses import success_response

from .auth_serializers import (
    AccountTokenRefreshSerializer,
    LoginSerializer,
    PasswordResetConfirmSerializer,
    PasswordResetRequestSerializer,
    RegisterSerializer,
    ResendOTPSerializer,
    VerifyOTPSerializer,
)
from .models import OTP, User
from .serializers import UserSerializer
from .services import authenticate_user, issue_otp, resend_otp, reset_password, verify_otp

logger = logging.getLogger(__name__)


def _tokens_for_user(user) -> dict[str, str]:
    refresh = RefreshToken.for_user(user)
    refresh["role"] = user.role
    return {"refresh": str(refresh), "access": str(refresh.access_token)}


class RegisterView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):  # type: ignore
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return success_response(
            {"user": UserSerializer(user).data},
            "Registration successful. Check your email for the verification code.",
            status.HTTP_201_CREATED,
        )


class LoginView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):  # type: ignore
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = authenticate_user(
            serializer.validated_data["email"], serializer.validated_data["password"]
        )
        return success_response(
            {"user": UserSerializer(user).data, "tokens": _tokens_for_user(user)},
            "Login successful",
        )


class VerifyOTPView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):  # type: ignore
        serializer = VerifyOTPSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        if data["type"] == OTP.Type.PASSWORD_RESET:
            # Password reset codes are consumed by the confirm endpoint
            exists = OTP.objects.filter(
                user__email__iexact=data["email"],
                type=OTP.Type.PASSWORD_RESET,
                code=data["code"],
                is_used=False,
            ).exists()
            return success_response({"valid": exists}, "Code checked")

        user = verify_otp(data["email"], data["code"], data["type"])
        return success_response(
            {"user": UserSerializer(user).data, "tokens": _tokens_for_user(user)},
            "Email verified successfully",
        )


class ResendOTPView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):  # type: ignore
        serializer = ResendOTPSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        resend_otp(serializer.validated_data["email"], serializer.validated_data["type"])
        return success_response(message="A new code has been sent")


class AccountTokenRefreshView(TokenRefreshView):
    serializer_class = AccountTokenRefreshSerializer


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):  # type: ignore
        return success_response({"user": UserSerializer(request.user).data})


class PasswordResetRequestView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):  # type: ignore
        serializer = PasswordResetRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = User.objects.filter(
            email__iexact=serializer.validated_data["email"], is_active=True
        ).first()
        if user is not None:
            issue_otp(user, OTP.Type.PASSWORD_RESET)
        else:
            logger.info("Password reset requested for unknown email")
        return success_response(message="If the account exists, a reset code has been sent")


class PasswordResetConfirmView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):  # type: ignore
        serializer = PasswordResetConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        reset_password(data["email"], data["code"], data["new_password"])
        return success_response(message="Password updated")
