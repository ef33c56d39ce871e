"""Development settings for the CourtBook project.

Extends the base settings with debug mode, permissive hosts and the
console email backend so OTP codes show up in the runserver output.
Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403

DEBUG = True

ALLOWED_HOSTS = ['*']

# OTP and booking e-mails are printed to stdout
EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

CORS_ALLOW_ALL_ORIGINS = True
