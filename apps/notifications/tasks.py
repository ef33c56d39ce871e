"""Celery tasks for notifications."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from .models import Notification

logger = logging.getLogger(__name__)


@shared_task(name="notifications.purge_expired_notifications")
def purge_expired_notifications() -> dict[str, int]:
    deleted, _ = Notification.objects.filter(expires_at__lt=timezone.now()).delete()
    if deleted:
        logger.info(f"Purged {deleted} expired notifications")
    return {"deleted": deleted}
