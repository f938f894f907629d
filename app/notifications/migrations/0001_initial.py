"""
Initial schema for the chat notification inbox.
"""

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("chat", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ChatNotification",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "notification_type",
                    models.CharField(
                        choices=[
                            ("new-message", "New Message"),
                            ("new-conversation", "New Conversation"),
                            ("message-read", "Message Read"),
                            ("conversation-closed", "Conversation Closed"),
                            ("admin-warning", "Admin Warning"),
                            ("system-announcement", "System Announcement"),
                        ],
                        db_index=True,
                        default="new-message",
                        help_text="Kind of chat event",
                        max_length=30,
                    ),
                ),
                ("title", models.CharField(help_text="Notification headline", max_length=200)),
                (
                    "body",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Notification body / preview text",
                    ),
                ),
                (
                    "read",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the recipient has read the notification",
                    ),
                ),
                (
                    "read_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the notification was read",
                        null=True,
                    ),
                ),
                (
                    "action_url",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Client route to open",
                        max_length=200,
                    ),
                ),
                (
                    "action_text",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Label for the action button",
                        max_length=50,
                    ),
                ),
                (
                    "conversation",
                    models.ForeignKey(
                        help_text="Conversation the event happened in",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="chat.conversation",
                    ),
                ),
                (
                    "message",
                    models.ForeignKey(
                        blank=True,
                        help_text="Message that triggered the notification, if any",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="chat.message",
                    ),
                ),
                (
                    "recipient",
                    models.ForeignKey(
                        help_text="User who receives this notification",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "notifications_chat_notification",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["recipient", "read", "-created_at"],
                        name="notif_recipient_read_idx",
                    ),
                    models.Index(
                        fields=["read", "read_at"],
                        name="notif_read_read_at_idx",
                    ),
                ],
            },
        ),
    ]
