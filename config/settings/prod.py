"""Production settings for the CourtBook project.

Sensitive values (secret key, gateway credentials) are mandatory here and
must come from the environment; startup fails fast when they are absent.
"""

from .base import *  # noqa: F401,F403
from .base import get_env

DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)

ALLOWED_HOSTS = get_env('DJANGO_ALLOWED_HOSTS', '').split(',')

CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

PAYMENT_GATEWAY_KEY_ID = get_env('PAYMENT_GATEWAY_KEY_ID', required=True)
PAYMENT_GATEWAY_KEY_SECRET = get_env('PAYMENT_GATEWAY_KEY_SECRET', required=True)
PAYMENT_GATEWAY_WEBHOOK_SECRET = get_env('PAYMENT_GATEWAY_WEBHOOK_SECRET', required=True)

EMAIL_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'
EMAIL_HOST = get_env('EMAIL_HOST', 'localhost')
EMAIL_PORT = int(get_env('EMAIL_PORT', 587))
EMAIL_USE_TLS = get_env('EMAIL_USE_TLS', 'true').lower() == 'true'
EMAIL_HOST_USER = get_env('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = get_env('EMAIL_HOST_PASSWORD', '')
