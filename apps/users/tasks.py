"""Celery tasks for the users domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from .models import OTP

logger = logging.getLogger(__name__)


@shared_task(name="users.purge_expired_otps")
def purge_expired_otps() -> dict[str, int]:
    """Remove used and expired one-time passwords."""

    deleted, _ = OTP.objects.filter(expires_at__lt=timezone.now()).delete()
    used_deleted, _ = OTP.objects.filter(is_used=True).delete()
    total = deleted + used_deleted
    if total:
        logger.info(f"Purged {total} OTP records")
    return {"deleted": total}
