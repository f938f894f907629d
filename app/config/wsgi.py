"""
WSGI config for the Django application.

Serves the REST API only. WebSocket chat needs the ASGI application in
config.asgi (run under Uvicorn); use this callable for plain HTTP workers.

This file exposes the WSGI callable as a module-level variable named `application`.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
