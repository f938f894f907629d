"""
Chat notification models.

This module defines the persisted notification inbox for chat events:
- ChatNotification: One row per recipient per event (new message, block, ...)

Design Decisions:
    - Notifications are created regardless of the recipient's online status;
      the live push over WebSocket is best-effort, this row is the durable record
    - Deleting a conversation cascades to its notifications
    - Read notifications are purged after NOTIFICATION_CONFIG.RETENTION_DAYS
      by notifications.tasks.purge_read_notifications; unread ones are kept

Usage:
    from notifications.models import ChatNotification, ChatNotificationType

    ChatNotification.objects.filter(recipient=user, read=False).count()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


# =============================================================================
# Enums
# =============================================================================


class ChatNotificationType(models.TextChoices):
    """
    Kind of chat event a notification reports.

    NEW_MESSAGE: Another participant sent a message
    NEW_CONVERSATION: A customer opened a conversation with a vendor
    MESSAGE_READ: A message was read (reserved; receipts are pushed live only)
    CONVERSATION_CLOSED: A participant archived the conversation
    ADMIN_WARNING: An admin blocked the conversation
    SYSTEM_ANNOUNCEMENT: An admin broadcast an announcement
    """

    NEW_MESSAGE = "new-message", "New Message"
    NEW_CONVERSATION = "new-conversation", "New Conversation"
    MESSAGE_READ = "message-read", "Message Read"
    CONVERSATION_CLOSED = "conversation-closed", "Conversation Closed"
    ADMIN_WARNING = "admin-warning", "Admin Warning"
    SYSTEM_ANNOUNCEMENT = "system-announcement", "System Announcement"


# =============================================================================
# Models
# =============================================================================


class ChatNotification(BaseModel):
    """
    A notification delivered to one user about a chat event.

    Fields:
        recipient: User the notification is for
        conversation: Source conversation
        message: Source message, if the event was a message
        notification_type: Kind of event
        title: Headline ("New message from Jane")
        body: Preview text
        read / read_at: Read state
        action_url / action_text: Where the client should navigate
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_notifications",
        help_text="User who receives this notification",
    )

    conversation = models.ForeignKey(
        "chat.Conversation",
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="Conversation the event happened in",
    )

    message = models.ForeignKey(
        "chat.Message",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
        help_text="Message that triggered the notification, if any",
    )

    notification_type = models.CharField(
        max_length=30,
        choices=ChatNotificationType.choices,
        default=ChatNotificationType.NEW_MESSAGE,
        db_index=True,
        help_text="Kind of chat event",
    )

    title = models.CharField(
        max_length=200,
        help_text="Notification headline",
    )

    body = models.TextField(
        blank=True,
        default="",
        help_text="Notification body / preview text",
    )

    read = models.BooleanField(
        default=False,
        help_text="Whether the recipient has read the notification",
    )

    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the notification was read",
    )

    action_url = models.CharField(
        max_length=200,
        blank=True,
        default="",
        help_text="Client route to open",
    )

    action_text = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Label for the action button",
    )

    class Meta:
        db_table = "notifications_chat_notification"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["recipient", "read", "-created_at"],
                name="notif_recipient_read_idx",
            ),
            models.Index(
                fields=["read", "read_at"],
                name="notif_read_read_at_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"ChatNotification({self.pk}, {self.notification_type} -> {self.recipient_id})"
