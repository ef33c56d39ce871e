import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("courtbook")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Unpaid bookings release their slot after the payment window
    "expire-pending-bookings": {
        "task": "bookings.expire_pending_bookings",
        "schedule": 300.0,
        "options": {"expires": 240},
    },
    "complete-finished-bookings": {
        "task": "bookings.complete_finished_bookings",
        "schedule": crontab(minute=5),
    },
    "send-upcoming-booking-reminders": {
        "task": "bookings.send_upcoming_booking_reminders",
        "schedule": crontab(minute=0, hour=18),
    },
    "purge-expired-otps": {
        "task": "users.purge_expired_otps",
        "schedule": crontab(minute=30, hour="*/6"),
    },
    "purge-expired-notifications": {
        "task": "notifications.purge_expired_notifications",
        "schedule": crontab(minute=0, hour=3),
    },
}

app.conf.timezone = os.environ.get("TIME_ZONE", "Asia/Kolkata")
