# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URLs, the ASGI application serving REST and WebSocket traffic,
# and the Celery app running the notification retention sweep.
#
# The Celery app is imported here so shared_task decorators bind to it
# when Django starts.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
