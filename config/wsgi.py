"""WSGI entry point for the hotel notification API and admin.

Serve with any WSGI server, e.g. ``gunicorn config.wsgi``. Queue workers run
separately under Celery (``celery -A config worker -B``).
"""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.prod')

application = get_wsgi_application()
