"""
Initial schema for conversations, participants, messages and read receipts.
"""

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def _id():
    return models.BigAutoField(
        auto_created=True,
        primary_key=True,
        serialize=False,
        verbose_name="ID",
    )


def _created_at():
    return models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )


def _updated_at():
    return models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )


MESSAGE_TYPE_CHOICES = [
    ("text", "Text"),
    ("image", "Image"),
    ("file", "File"),
    ("system", "System"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Conversation",
            fields=[
                ("id", _id()),
                ("created_at", _created_at()),
                ("updated_at", _updated_at()),
                (
                    "conversation_type",
                    models.CharField(
                        choices=[
                            ("product-inquiry", "Product Inquiry"),
                            ("order-support", "Order Support"),
                            ("general", "General"),
                            ("admin-monitor", "Admin Monitor"),
                        ],
                        db_index=True,
                        default="product-inquiry",
                        help_text="Business purpose of the conversation",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("archived", "Archived"),
                            ("blocked", "Blocked"),
                        ],
                        db_index=True,
                        default="active",
                        help_text="Lifecycle state (active, archived, blocked)",
                        max_length=10,
                    ),
                ),
                (
                    "context_subject",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Free-text subject line",
                        max_length=200,
                    ),
                ),
                (
                    "last_message_text",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Preview text of the most recent message",
                    ),
                ),
                (
                    "last_message_type",
                    models.CharField(
                        blank=True,
                        choices=MESSAGE_TYPE_CHOICES,
                        default="",
                        help_text="Type of the most recent message",
                        max_length=10,
                    ),
                ),
                (
                    "last_message_at",
                    models.DateTimeField(
                        blank=True,
                        db_index=True,
                        help_text="Timestamp of the most recent message",
                        null=True,
                    ),
                ),
                (
                    "total_messages",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Number of messages created in this conversation",
                    ),
                ),
                (
                    "customer_satisfaction",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Optional customer rating (1-5)",
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(5),
                        ],
                    ),
                ),
                (
                    "average_response_time",
                    models.FloatField(
                        blank=True,
                        help_text="Rolling average reply latency in seconds",
                        null=True,
                    ),
                ),
                (
                    "response_count",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Number of replies folded into average_response_time",
                    ),
                ),
                (
                    "is_urgent",
                    models.BooleanField(default=False, help_text="Flagged for priority handling"),
                ),
                (
                    "tags",
                    models.JSONField(blank=True, default=list, help_text="Free-form triage tags"),
                ),
                (
                    "is_monitored",
                    models.BooleanField(
                        default=False,
                        help_text="Whether an admin is monitoring this conversation",
                    ),
                ),
                (
                    "flagged_reason",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Reason given by the admin who blocked the conversation",
                        max_length=500,
                    ),
                ),
                (
                    "blocked_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the conversation was blocked",
                        null=True,
                    ),
                ),
                (
                    "blocked_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Admin who blocked the conversation",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "context_order",
                    models.ForeignKey(
                        blank=True,
                        help_text="Order this conversation is about",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="conversations",
                        to="catalog.order",
                    ),
                ),
                (
                    "context_product",
                    models.ForeignKey(
                        blank=True,
                        help_text="Product this conversation is about",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="conversations",
                        to="catalog.product",
                    ),
                ),
                (
                    "last_message_sender",
                    models.ForeignKey(
                        blank=True,
                        help_text="Author of the most recent message (null for system)",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "monitored_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Admin monitoring this conversation",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_conversation",
                "ordering": ["-updated_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "-updated_at"],
                        name="chat_conv_status_upd_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ConversationPair",
            fields=[
                (
                    "conversation",
                    models.OneToOneField(
                        help_text="Conversation this pair represents",
                        on_delete=django.db.models.deletion.CASCADE,
                        primary_key=True,
                        related_name="pair",
                        serialize=False,
                        to="chat.conversation",
                    ),
                ),
                (
                    "user_higher",
                    models.ForeignKey(
                        help_text="User with higher ID in this pair",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user_lower",
                    models.ForeignKey(
                        help_text="User with lower ID in this pair",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_conversation_pair",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user_lower", "user_higher"),
                        name="unique_conversation_pair",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(user_lower_id__lt=models.F("user_higher_id")),
                        name="pair_user_lower_less_than_higher",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ConversationParticipant",
            fields=[
                ("id", _id()),
                ("created_at", _created_at()),
                ("updated_at", _updated_at()),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("customer", "Customer"),
                            ("vendor", "Vendor"),
                            ("admin", "Admin"),
                        ],
                        help_text="Role in this conversation",
                        max_length=10,
                    ),
                ),
                (
                    "last_read_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="Read cursor for unread counts",
                    ),
                ),
                (
                    "joined_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="When the user joined the conversation",
                    ),
                ),
                (
                    "conversation",
                    models.ForeignKey(
                        help_text="Conversation the user participates in",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="participants",
                        to="chat.conversation",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Participating user",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_participations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_conversation_participant",
                "ordering": ["joined_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["user", "conversation"],
                        name="chat_part_user_conv_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("conversation", "user"),
                        name="unique_conversation_participant",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", _id()),
                ("created_at", _created_at()),
                ("updated_at", _updated_at()),
                (
                    "is_deleted",
                    models.BooleanField(
                        db_index=True,
                        default=False,
                        help_text="Whether this record has been soft deleted",
                    ),
                ),
                (
                    "deleted_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Timestamp when this record was soft deleted",
                        null=True,
                    ),
                ),
                (
                    "sender_role",
                    models.CharField(
                        choices=[
                            ("customer", "Customer"),
                            ("vendor", "Vendor"),
                            ("admin", "Admin"),
                            ("system", "System"),
                        ],
                        help_text="Role of the author at send time",
                        max_length=10,
                    ),
                ),
                (
                    "message_type",
                    models.CharField(
                        choices=MESSAGE_TYPE_CHOICES,
                        default="text",
                        help_text="Content type (text, image, file, system)",
                        max_length=10,
                    ),
                ),
                (
                    "text",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Message text (required for text messages)",
                    ),
                ),
                (
                    "file_url",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="URL of the attached file",
                        max_length=500,
                    ),
                ),
                (
                    "file_name",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Original file name",
                        max_length=255,
                    ),
                ),
                (
                    "file_size",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="File size in bytes",
                        null=True,
                    ),
                ),
                (
                    "mime_type",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="MIME type of the attached file",
                        max_length=100,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("sent", "Sent"),
                            ("delivered", "Delivered"),
                            ("read", "Read"),
                            ("deleted", "Deleted"),
                            ("edited", "Edited"),
                        ],
                        default="sent",
                        help_text="Informational delivery state",
                        max_length=10,
                    ),
                ),
                (
                    "is_edited",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the message has been edited",
                    ),
                ),
                (
                    "edited_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the message was last edited",
                        null=True,
                    ),
                ),
                (
                    "conversation",
                    models.ForeignKey(
                        help_text="Conversation this message belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="chat.conversation",
                    ),
                ),
                (
                    "deleted_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who deleted the message",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reply_to",
                    models.ForeignKey(
                        blank=True,
                        help_text="Message this one replies to",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="replies",
                        to="chat.message",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        blank=True,
                        help_text="Author of the message (null for system messages)",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sent_chat_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_message",
                "ordering": ["created_at", "id"],
                "base_manager_name": "all_objects",
                "indexes": [
                    models.Index(
                        fields=["conversation", "created_at"],
                        name="chat_msg_conv_created_idx",
                    ),
                    models.Index(
                        fields=["conversation", "is_deleted"],
                        name="chat_msg_conv_deleted_idx",
                    ),
                ],
            },
            managers=[
                ("objects", models.Manager()),
                ("all_objects", models.Manager()),
            ],
        ),
        migrations.AddField(
            model_name="conversation",
            name="last_message",
            field=models.ForeignKey(
                blank=True,
                help_text="Most recent non-deleted message",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="chat.message",
            ),
        ),
        migrations.CreateModel(
            name="MessageReadReceipt",
            fields=[
                ("id", _id()),
                (
                    "read_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="When the message was read",
                    ),
                ),
                (
                    "message",
                    models.ForeignKey(
                        help_text="Message that was read",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="read_receipts",
                        to="chat.message",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Reader",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_message_read_receipt",
                "ordering": ["read_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("message", "user"),
                        name="unique_message_read_receipt",
                    ),
                ],
            },
        ),
    ]
