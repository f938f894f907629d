"""
Notification service layer.

This module provides the business logic for the chat notification inbox.

Services:
    NotificationService: Notification creation, read state, and retention

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Creation helpers are called from inside chat service transactions, so
      a message and its notifications commit or roll back together
    - A recipient only ever sees their own notifications; a notification
      owned by someone else is reported as not found

Usage:
    from notifications.services import NotificationService

    # New-message notifications for everyone but the sender
    notifications = NotificationService.notify_new_message(message, recipients)

    # Read state
    result = NotificationService.mark_as_read(notification_id, user)
    result = NotificationService.mark_all_as_read(user)
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from django.utils import timezone

from chat.constants import NOTIFICATION_CONFIG
from core.services import BaseService, ServiceResult
from notifications.models import ChatNotification, ChatNotificationType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from django.db.models import QuerySet

    from authentication.models import User
    from chat.models import Conversation, Message

logger = logging.getLogger(__name__)


def _action_url(conversation_id) -> str:
    return NOTIFICATION_CONFIG.ACTION_URL.format(conversation_id=conversation_id)


class NotificationService(BaseService):
    """
    Service for chat notifications.

    Methods:
        create_notification: Create one notification
        notify_recipients: Create the same notification for many recipients
        notify_new_message: Create new-message notifications for a message
        list_for_user: Queryset of a user's notifications
        unread_count: Number of unread notifications for a user
        mark_as_read: Mark a single notification as read
        mark_all_as_read: Mark all of a user's notifications as read
        delete_notification: Delete one of a user's notifications
        purge_read: Delete read notifications past the retention window
    """

    @classmethod
    def create_notification(
        cls,
        recipient: User,
        conversation: Conversation,
        notification_type: str,
        title: str,
        body: str = "",
        message: Message | None = None,
    ) -> ServiceResult[ChatNotification]:
        """
        Create a single notification.

        Args:
            recipient: User who receives the notification
            conversation: Source conversation
            notification_type: ChatNotificationType value
            title: Headline
            body: Preview text (truncated to NOTIFICATION_CONFIG.BODY_PREVIEW_LENGTH)
            message: Source message, if any

        Returns:
            ServiceResult with the created ChatNotification
        """
        notification = ChatNotification.objects.create(
            recipient=recipient,
            conversation=conversation,
            message=message,
            notification_type=notification_type,
            title=title,
            body=body[: NOTIFICATION_CONFIG.BODY_PREVIEW_LENGTH],
            action_url=_action_url(conversation.id),
            action_text=NOTIFICATION_CONFIG.ACTION_TEXT,
        )
        cls.get_logger().debug(
            f"Created {notification_type} notification {notification.id} "
            f"for user {recipient.id}"
        )
        return ServiceResult.success(notification)

    @classmethod
    def notify_recipients(
        cls,
        recipients: Iterable[User],
        conversation: Conversation,
        notification_type: str,
        title: str,
        body: str = "",
        message: Message | None = None,
    ) -> list[ChatNotification]:
        """
        Create the same notification for several recipients.

        Rows are created one by one so each carries its primary key for the
        live push that follows.
        """
        return [
            cls.create_notification(
                recipient=recipient,
                conversation=conversation,
                notification_type=notification_type,
                title=title,
                body=body,
                message=message,
            ).data
            for recipient in recipients
        ]

    @classmethod
    def notify_new_message(
        cls,
        message: Message,
        recipients: Iterable[User],
    ) -> list[ChatNotification]:
        """
        Create new-message notifications for every recipient.

        Title is "New message from <sender name>"; body is the message
        preview (text, or ``[type]`` for attachments).
        """
        sender_name = message.sender.display_name if message.sender else "System"
        return cls.notify_recipients(
            recipients=recipients,
            conversation=message.conversation,
            notification_type=ChatNotificationType.NEW_MESSAGE,
            title=NOTIFICATION_CONFIG.NEW_MESSAGE_TITLE.format(name=sender_name),
            body=message.preview,
            message=message,
        )

    @classmethod
    def list_for_user(cls, user: User, unread_only: bool = False) -> QuerySet[ChatNotification]:
        """Return the user's notifications, newest first."""
        queryset = ChatNotification.objects.filter(recipient=user).select_related(
            "conversation", "message"
        )
        if unread_only:
            queryset = queryset.filter(read=False)
        return queryset.order_by("-created_at", "-id")

    @classmethod
    def unread_count(cls, user: User) -> int:
        return ChatNotification.objects.filter(recipient=user, read=False).count()

    @classmethod
    def mark_as_read(cls, notification_id, user: User) -> ServiceResult[ChatNotification]:
        """
        Mark a single notification as read.

        Idempotent: an already-read notification keeps its original read_at.

        Error codes:
            NOTIFICATION_NOT_FOUND: Missing or owned by another user (404)
        """
        notification = ChatNotification.objects.filter(
            id=notification_id,
            recipient=user,
        ).first()
        if notification is None:
            return ServiceResult.failure(
                "Notification not found",
                error_code="NOTIFICATION_NOT_FOUND",
                status_code=404,
            )

        if not notification.read:
            notification.read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=["read", "read_at", "updated_at"])
            cls.get_logger().debug(f"Marked notification {notification.id} as read")

        return ServiceResult.success(notification)

    @classmethod
    def mark_all_as_read(cls, user: User) -> ServiceResult[int]:
        """
        Mark all of the user's unread notifications as read in one query.

        Returns:
            ServiceResult with the number of notifications updated
        """
        now = timezone.now()
        count = ChatNotification.objects.filter(recipient=user, read=False).update(
            read=True,
            read_at=now,
            updated_at=now,
        )
        cls.get_logger().info(f"Marked {count} notifications as read for user {user.id}")
        return ServiceResult.success(count)

    @classmethod
    def delete_notification(cls, notification_id, user: User) -> ServiceResult[None]:
        """
        Delete one of the user's notifications.

        Error codes:
            NOTIFICATION_NOT_FOUND: Missing or owned by another user (404)
        """
        deleted, _ = ChatNotification.objects.filter(id=notification_id, recipient=user).delete()
        if not deleted:
            return ServiceResult.failure(
                "Notification not found",
                error_code="NOTIFICATION_NOT_FOUND",
                status_code=404,
            )
        return ServiceResult.success(None)

    @classmethod
    def purge_read(cls, retention_days: int = NOTIFICATION_CONFIG.RETENTION_DAYS) -> int:
        """
        Delete read notifications whose read_at is older than the window.

        Unread notifications are never purged.

        Returns:
            Number of notifications deleted
        """
        cutoff = timezone.now() - timedelta(days=retention_days)
        deleted, _ = ChatNotification.objects.filter(
            read=True,
            read_at__lt=cutoff,
        ).delete()
        cls.get_logger().info(
            f"Purged {deleted} read notifications older than {retention_days} days"
        )
        return deleted
