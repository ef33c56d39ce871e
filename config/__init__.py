"""Top-level package for Django configuration.

Holds the settings modules for each environment, the URL map and the WSGI,
ASGI and Celery entry points of the CourtBook marketplace.
"""

# Import the Celery application as soon as Django starts so that shared
# tasks are registered.
from .celery import app as celery_app  # noqa: F401
