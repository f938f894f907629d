"""
Celery configuration for the chat service.

Celery runs the periodic maintenance jobs; django-celery-beat stores the
schedule in the database (seeded from CELERY_BEAT_SCHEDULE).

Periodic tasks:
    notifications.purge_read_notifications  Daily retention sweep

Usage:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Looks for a tasks.py module in each installed app
app.autodiscover_tasks()
