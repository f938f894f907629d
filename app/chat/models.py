"""
Chat system models.

This module defines the durable records of the marketplace chat:
- Conversations between a customer and a vendor about a product or order,
  optionally monitored by an admin
- Messages with text or file content, soft-deleted for audit
- Per-user read receipts

Models:
    Conversation: Thread between participants with a denormalized last-message cache
    ConversationPair: Canonical (lower, higher) user pair for find-or-create
    ConversationParticipant: Membership with role snapshot and read cursor
    Message: Individual message within a conversation
    MessageReadReceipt: One row per (message, reader)

Design Decisions:
    - Find-or-create is keyed on the unordered participant pair, not on the
      product; ConversationPair enforces this with a unique constraint so
      concurrent first contacts cannot create two threads
    - Membership is the sole authorization unit once a conversation exists
    - The last-message cache and counters are written by MessageService
      inside the same transaction as the message insert (no signals)
    - Messages are soft deleted; deleting a conversation hard-deletes its
      messages and notifications through CASCADE
    - reply_to is a weak reference (SET_NULL), never ownership
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.managers import SoftDeleteManager
from core.model_mixins import SoftDeleteMixin
from core.models import BaseModel

if TYPE_CHECKING:
    from authentication.models import User


class ConversationType(models.TextChoices):
    """
    Business purpose of a conversation.

    PRODUCT_INQUIRY: Customer asks a vendor about a product (default)
    ORDER_SUPPORT: Customer and vendor discuss an order
    GENERAL: No specific product or order
    ADMIN_MONITOR: Opened or taken over by an admin for moderation
    """

    PRODUCT_INQUIRY = "product-inquiry", "Product Inquiry"
    ORDER_SUPPORT = "order-support", "Order Support"
    GENERAL = "general", "General"
    ADMIN_MONITOR = "admin-monitor", "Admin Monitor"


class ConversationStatus(models.TextChoices):
    """
    Conversation lifecycle.

    Transitions:
        ACTIVE -> ARCHIVED (any participant or admin)
        ACTIVE <-> BLOCKED (admin only)
    """

    ACTIVE = "active", "Active"
    ARCHIVED = "archived", "Archived"
    BLOCKED = "blocked", "Blocked"


class ParticipantRole(models.TextChoices):
    """Role a participant holds in a conversation (snapshot at join)."""

    CUSTOMER = "customer", "Customer"
    VENDOR = "vendor", "Vendor"
    ADMIN = "admin", "Admin"


class SenderRole(models.TextChoices):
    """Role of a message author, captured at send time."""

    CUSTOMER = "customer", "Customer"
    VENDOR = "vendor", "Vendor"
    ADMIN = "admin", "Admin"
    SYSTEM = "system", "System"


class MessageType(models.TextChoices):
    """
    Type of message content.

    TEXT: ``text`` is required (1..5000 chars)
    IMAGE / FILE: file_url, file_name, file_size, mime_type are set
    SYSTEM: Authored by the platform (announcements)
    """

    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    FILE = "file", "File"
    SYSTEM = "system", "System"


class MessageStatus(models.TextChoices):
    """Informational delivery state; not a strict state machine."""

    SENT = "sent", "Sent"
    DELIVERED = "delivered", "Delivered"
    READ = "read", "Read"
    DELETED = "deleted", "Deleted"
    EDITED = "edited", "Edited"


def message_preview(message_type: str, text: str | None) -> str:
    """
    Text shown for a message in caches and notifications.

    Text messages use their text; other types fall back to ``[type]``.
    """
    return text or f"[{message_type}]"


class Conversation(BaseModel):
    """
    A conversation between a customer and a vendor, optionally watched by an admin.

    Fields:
        conversation_type: Business purpose (product inquiry, order support, ...)
        status: active / archived / blocked
        context_product / context_order / context_subject: Business linkage
        last_message*: Denormalized cache of the newest non-deleted message
        total_messages: Count of messages ever created
        customer_satisfaction: Optional 1..5 rating
        average_response_time / response_count: Rolling reply latency (seconds)
        is_urgent, tags: Triage metadata
        is_monitored ... blocked_by: Moderation audit trail

    Relationships:
        participants: ConversationParticipant rows
        messages: Message rows (default manager hides deleted ones)
        pair: ConversationPair used by find-or-create
    """

    conversation_type = models.CharField(
        max_length=20,
        choices=ConversationType.choices,
        default=ConversationType.PRODUCT_INQUIRY,
        db_index=True,
        help_text="Business purpose of the conversation",
    )

    status = models.CharField(
        max_length=10,
        choices=ConversationStatus.choices,
        default=ConversationStatus.ACTIVE,
        db_index=True,
        help_text="Lifecycle state (active, archived, blocked)",
    )

    # -------------------------------------------------------------------------
    # Context
    # -------------------------------------------------------------------------

    context_product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="conversations",
        help_text="Product this conversation is about",
    )

    context_order = models.ForeignKey(
        "catalog.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="conversations",
        help_text="Order this conversation is about",
    )

    context_subject = models.CharField(
        max_length=200,
        blank=True,
        default="",
        help_text="Free-text subject line",
    )

    # -------------------------------------------------------------------------
    # Last message cache
    # -------------------------------------------------------------------------

    last_message = models.ForeignKey(
        "chat.Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent non-deleted message",
    )

    last_message_text = models.TextField(
        blank=True,
        default="",
        help_text="Preview text of the most recent message",
    )

    last_message_sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Author of the most recent message (null for system)",
    )

    last_message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        blank=True,
        default="",
        help_text="Type of the most recent message",
    )

    last_message_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of the most recent message",
    )

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    total_messages = models.PositiveIntegerField(
        default=0,
        help_text="Number of messages created in this conversation",
    )

    customer_satisfaction = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
        help_text="Optional customer rating (1-5)",
    )

    average_response_time = models.FloatField(
        null=True,
        blank=True,
        help_text="Rolling average reply latency in seconds",
    )

    response_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of replies folded into average_response_time",
    )

    is_urgent = models.BooleanField(
        default=False,
        help_text="Flagged for priority handling",
    )

    tags = models.JSONField(
        default=list,
        blank=True,
        help_text="Free-form triage tags",
    )

    # -------------------------------------------------------------------------
    # Moderation audit
    # -------------------------------------------------------------------------

    is_monitored = models.BooleanField(
        default=False,
        help_text="Whether an admin is monitoring this conversation",
    )

    monitored_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Admin monitoring this conversation",
    )

    flagged_reason = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Reason given by the admin who blocked the conversation",
    )

    blocked_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the conversation was blocked",
    )

    blocked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Admin who blocked the conversation",
    )

    class Meta:
        db_table = "chat_conversation"
        ordering = ["-updated_at"]
        indexes = [
            models.Index(
                fields=["status", "-updated_at"],
                name="chat_conv_status_upd_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Conversation({self.pk}, {self.status})"

    @property
    def is_active(self) -> bool:
        return self.status == ConversationStatus.ACTIVE

    @property
    def is_blocked(self) -> bool:
        return self.status == ConversationStatus.BLOCKED

    def get_participant(self, user: User) -> ConversationParticipant | None:
        """Return the participant row for ``user``, or None."""
        return self.participants.filter(user=user).first()

    def is_participant(self, user: User) -> bool:
        return self.participants.filter(user=user).exists()

    def participant_user_ids(self) -> list[int]:
        """User ids of all participants, in join order."""
        return list(self.participants.order_by("joined_at", "id").values_list("user_id", flat=True))


class ConversationPair(models.Model):
    """
    Enforces one conversation per unordered user pair.

    Users are stored in canonical order (lower id first), so the lookup is
    the same regardless of which side initiates contact.

    Constraints:
        - UniqueConstraint(user_lower, user_higher)
        - CheckConstraint(user_lower_id < user_higher_id)
    """

    conversation = models.OneToOneField(
        Conversation,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="pair",
        help_text="Conversation this pair represents",
    )

    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with lower ID in this pair",
    )

    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with higher ID in this pair",
    )

    class Meta:
        db_table = "chat_conversation_pair"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_conversation_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="pair_user_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        return f"Pair({self.user_lower_id}, {self.user_higher_id})"

    @staticmethod
    def canonical(user_a_id: int, user_b_id: int) -> tuple[int, int]:
        """Return the two ids as (lower, higher)."""
        return (user_a_id, user_b_id) if user_a_id < user_b_id else (user_b_id, user_a_id)


class ConversationParticipant(BaseModel):
    """
    A user's membership in a conversation.

    Fields:
        role: Role snapshot taken when the user joined
        last_read_at: Read cursor; messages after it count as unread
        joined_at: When the user was added

    Constraints:
        - One row per (conversation, user)
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="participants",
        help_text="Conversation the user participates in",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_participations",
        help_text="Participating user",
    )

    role = models.CharField(
        max_length=10,
        choices=ParticipantRole.choices,
        help_text="Role in this conversation",
    )

    last_read_at = models.DateTimeField(
        default=timezone.now,
        help_text="Read cursor for unread counts",
    )

    joined_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the user joined the conversation",
    )

    class Meta:
        db_table = "chat_conversation_participant"
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["conversation", "user"],
                name="unique_conversation_participant",
            ),
        ]
        indexes = [
            models.Index(
                fields=["user", "conversation"],
                name="chat_part_user_conv_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Participant({self.user_id} in {self.conversation_id} as {self.role})"


class Message(SoftDeleteMixin, BaseModel):
    """
    A single message in a conversation.

    Content:
        TEXT messages carry ``text``; IMAGE/FILE messages carry the file_*
        fields and optionally a caption in ``text``; SYSTEM messages are
        announcements posted by an admin with sender_role ``system``.

    Soft Delete:
        is_deleted/deleted_at/deleted_by mark the row; the default manager
        hides deleted rows, ``all_objects`` shows them for audit.
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Conversation this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_chat_messages",
        help_text="Author of the message (null for system messages)",
    )

    sender_role = models.CharField(
        max_length=10,
        choices=SenderRole.choices,
        help_text="Role of the author at send time",
    )

    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
        help_text="Content type (text, image, file, system)",
    )

    text = models.TextField(
        blank=True,
        default="",
        help_text="Message text (required for text messages)",
    )

    file_url = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="URL of the attached file",
    )

    file_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Original file name",
    )

    file_size = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="File size in bytes",
    )

    mime_type = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="MIME type of the attached file",
    )

    status = models.CharField(
        max_length=10,
        choices=MessageStatus.choices,
        default=MessageStatus.SENT,
        help_text="Informational delivery state",
    )

    is_edited = models.BooleanField(
        default=False,
        help_text="Whether the message has been edited",
    )

    edited_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the message was last edited",
    )

    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="User who deleted the message",
    )

    reply_to = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="replies",
        help_text="Message this one replies to",
    )

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        base_manager_name = "all_objects"
        indexes = [
            models.Index(
                fields=["conversation", "created_at"],
                name="chat_msg_conv_created_idx",
            ),
            models.Index(
                fields=["conversation", "is_deleted"],
                name="chat_msg_conv_deleted_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Message({self.pk}, {self.message_type})"

    @property
    def preview(self) -> str:
        return message_preview(self.message_type, self.text)

    def get_soft_delete_update_fields(self) -> list[str]:
        return super().get_soft_delete_update_fields() + ["deleted_by", "status"]

    def soft_delete(self, deleted_by: User | None = None) -> None:
        """Mark deleted, recording who did it."""
        self.deleted_by = deleted_by
        self.status = MessageStatus.DELETED
        super().soft_delete()


class MessageReadReceipt(models.Model):
    """
    Records that a user has read a message.

    The unique constraint makes mark-read idempotent: re-marking by the
    same reader never creates a second row.
    """

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="read_receipts",
        help_text="Message that was read",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="Reader",
    )

    read_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the message was read",
    )

    class Meta:
        db_table = "chat_message_read_receipt"
        ordering = ["read_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_message_read_receipt",
            ),
        ]

    def __str__(self) -> str:
        return f"ReadReceipt({self.message_id} by {self.user_id})"
