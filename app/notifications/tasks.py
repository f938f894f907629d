"""
Celery tasks for the chat notification inbox.

Tasks:
    purge_read_notifications: Delete read notifications past the retention window

Schedule:
    Registered with django-celery-beat (see CELERY_BEAT_SCHEDULE in
    config.settings); runs daily.

Usage:
    from notifications.tasks import purge_read_notifications

    purge_read_notifications.delay()
    purge_read_notifications.delay(retention_days=7)
"""

from __future__ import annotations

import logging

from celery import shared_task

from chat.constants import NOTIFICATION_CONFIG
from notifications.services import NotificationService

logger = logging.getLogger(__name__)


@shared_task(name="notifications.purge_read_notifications")
def purge_read_notifications(retention_days: int = NOTIFICATION_CONFIG.RETENTION_DAYS) -> int:
    """
    Delete read notifications whose read_at is older than ``retention_days``.

    Unread notifications are retained indefinitely.

    Returns:
        Number of notifications deleted
    """
    deleted = NotificationService.purge_read(retention_days=retention_days)
    logger.info(f"Retention sweep removed {deleted} read notifications")
    return deleted
