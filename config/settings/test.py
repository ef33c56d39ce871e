"""Settings used by the pytest suite."""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

# Gateway runs in emulation mode unless a test overrides these
PAYMENT_GATEWAY_KEY_ID = ''
PAYMENT_GATEWAY_KEY_SECRET = 'test_key_secret'
PAYMENT_GATEWAY_WEBHOOK_SECRET = 'test_webhook_secret'

OTP_RESEND_COOLDOWN_SECONDS = 0
