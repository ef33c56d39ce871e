"""WSGI config for the CourtBook project.

Exposes the WSGI application used by runserver and production WSGI servers
such as gunicorn.
"""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_wsgi_application()
