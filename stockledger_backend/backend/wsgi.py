# backend/wsgi.py
"""
WSGI config for the stock ledger backend.
Defaults to dev settings unless DJANGO_SETTINGS_MODULE is set externally
(production must set DJANGO_SETTINGS_MODULE=backend.settings.prod).
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings.dev")

application = get_wsgi_application()
