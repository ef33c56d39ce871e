"""Password policy: upper-case, lower-case and a digit."""

from __future__ import annotations

import re

from django.core.exceptions import ValidationError  # type: ignore
from django.utils.translation import gettext as _  # type: ignore

_RULES = (
    (re.compile(r"[A-Z]"), "one uppercase letter"),
    (re.compile(r"[a-z]"), "one lowercase letter"),
    (re.compile(r"\d"), "one number"),
)


class MixedCharacterPasswordValidator:
    def validate(self, password: str, user=None) -> None:  # type: ignore
        missing = [label for pattern, label in _RULES if not pattern.search(password or "")]
        if missing:
            raise ValidationError(
                _("Password must contain at least %(rules)s.") % {"rules": ", ".join(missing)},
                code="password_too_simple",
            )

    def get_help_text(self) -> str:
        return _("Your password must contain an uppercase letter, a lowercase letter and a number.")
