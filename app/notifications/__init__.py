"""
Notifications app for the chat notification inbox.

This app provides:
- ChatNotification model for persisted per-user chat notifications
- NotificationService for creation and read-state changes
- A Celery task purging read notifications past the retention window
- REST API for listing and marking notifications

Usage:
    from notifications.services import NotificationService

    result = NotificationService.mark_all_as_read(user)
    if result.success:
        updated_count = result.data
"""
