"""JWT authentication that re-checks account state on every request."""

from __future__ import annotations

from django.utils.translation import gettext_lazy as _  # type: ignore
from rest_framework_simplejwt.authentication import JWTAuthentication  # type: ignore
from rest_framework_simplejwt.exceptions import AuthenticationFailed  # type: ignore


def account_block_reason(user) -> str | None:
    """Return why ``user`` may not hold a session, or None when they may."""

    if not user.is_active or getattr(user, "is_deactivated", False):
        return _("Account is deactivated")
    if getattr(user, "is_banned", False):
        return _("Account has been suspended")
    return None


class AccountStateJWTAuthentication(JWTAuthentication):
    """Reject tokens of users banned or deactivated after the token was issued."""

    def get_user(self, validated_token):  # type: ignore
        user = super().get_user(validated_token)
        reason = account_block_reason(user)
        if reason is not None:
            raise AuthenticationFailed(reason, code="account_blocked")
        return user
