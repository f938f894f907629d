"""
Serializers for chat API.

This module provides serializers for the chat system:
- Conversation serializers (read, find-or-create, moderation input)
- Participant serializers (read)
- Message serializers (read, attachment upload)

Serializer Hierarchy:
    ConversationSerializer: Conversation with context, cache, counters,
        moderation audit, and the caller's unread count
    ConversationCreateSerializer: Find-or-create input
    BlockConversationSerializer: Block reason

    ParticipantSerializer: Participant with user info

    MessageSerializer: Fully populated message (REST and message:new)
    MessageUploadSerializer: Multipart attachment upload

Design Decisions:
    - Field names follow the client contract (camelCase), mapped onto
      snake_case model attributes with ``source``
    - The same MessageSerializer output is sent over REST and pushed in
      message:new frames, so clients parse one shape
    - Read and write serializers are separate for clarity
    - Computed fields use SerializerMethodField for flexibility
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSerializer
from chat.constants import MESSAGE_CONFIG, UPLOAD_CONFIG
from chat.models import Conversation, ConversationParticipant, Message
from core.validators import (
    validate_file_extension,
    validate_file_mime_type,
    validate_file_size,
)


# =============================================================================
# Message Serializers
# =============================================================================


class MessageSerializer(serializers.ModelSerializer):
    """
    Full message serializer.

    ``content`` is the discriminated union {type, text, fileUrl, fileName,
    fileSize, mimeType}; ``readBy`` lists {userId, readAt} receipts.
    """

    conversationId = serializers.IntegerField(source="conversation_id", read_only=True)
    sender = UserSerializer(read_only=True, allow_null=True)
    senderRole = serializers.CharField(source="sender_role", read_only=True)
    content = serializers.SerializerMethodField(help_text="Message body by type")
    readBy = serializers.SerializerMethodField(help_text="Read receipts")
    isEdited = serializers.BooleanField(source="is_edited", read_only=True)
    editedAt = serializers.DateTimeField(source="edited_at", read_only=True)
    isDeleted = serializers.BooleanField(source="is_deleted", read_only=True)
    replyTo = serializers.IntegerField(source="reply_to_id", read_only=True, allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "conversationId",
            "sender",
            "senderRole",
            "content",
            "status",
            "readBy",
            "isEdited",
            "editedAt",
            "isDeleted",
            "replyTo",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields

    def get_content(self, obj: Message) -> dict:
        content = {"type": obj.message_type, "text": obj.text}
        if obj.file_url:
            content.update(
                {
                    "fileUrl": obj.file_url,
                    "fileName": obj.file_name,
                    "fileSize": obj.file_size,
                    "mimeType": obj.mime_type,
                }
            )
        return content

    def get_readBy(self, obj: Message) -> list[dict]:
        return [
            {"userId": receipt.user_id, "readAt": receipt.read_at.isoformat()}
            for receipt in obj.read_receipts.all()
        ]


class MessageUploadSerializer(serializers.Serializer):
    """
    Serializer for attachment uploads.

    Accepts images, PDF, and Word documents up to 5MB.
    """

    file = serializers.FileField(
        validators=[
            validate_file_size(UPLOAD_CONFIG.MAX_FILE_SIZE_BYTES),
            validate_file_extension(UPLOAD_CONFIG.ALLOWED_EXTENSIONS),
            validate_file_mime_type(UPLOAD_CONFIG.ALLOWED_MIME_TYPES),
        ],
        help_text="Image, PDF or Word document (max 5MB)",
    )
    conversationId = serializers.IntegerField(help_text="Target conversation")
    text = serializers.CharField(
        max_length=MESSAGE_CONFIG.MAX_TEXT_LENGTH,
        required=False,
        allow_blank=True,
        default="",
        help_text="Optional caption",
    )


# =============================================================================
# Participant Serializers
# =============================================================================


class ParticipantSerializer(serializers.ModelSerializer):
    """Read serializer for conversation participants."""

    user = UserSerializer(read_only=True)
    lastReadAt = serializers.DateTimeField(source="last_read_at", read_only=True)
    joinedAt = serializers.DateTimeField(source="joined_at", read_only=True)

    class Meta:
        model = ConversationParticipant
        fields = ["user", "role", "lastReadAt", "joinedAt"]
        read_only_fields = fields


# =============================================================================
# Conversation Serializers
# =============================================================================


class ConversationSerializer(serializers.ModelSerializer):
    """
    Serializer for conversation list and detail views.

    Includes computed fields:
    - unreadCount: Unread messages for the requesting user
    - lastMessage: The denormalized last-message cache, or null
    - context: Product/order linkage and subject
    """

    type = serializers.CharField(source="conversation_type", read_only=True)
    participants = ParticipantSerializer(many=True, read_only=True)
    context = serializers.SerializerMethodField(help_text="Product/order context")
    lastMessage = serializers.SerializerMethodField(help_text="Last message cache")
    metadata = serializers.SerializerMethodField(help_text="Aggregate counters")
    adminActions = serializers.SerializerMethodField(help_text="Moderation audit")
    unreadCount = serializers.SerializerMethodField(help_text="Number of unread messages")
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Conversation
        fields = [
            "id",
            "type",
            "status",
            "participants",
            "context",
            "lastMessage",
            "metadata",
            "adminActions",
            "unreadCount",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields

    def get_context(self, obj: Conversation) -> dict:
        product = obj.context_product
        order = obj.context_order
        return {
            "product": (
                {
                    "id": product.id,
                    "name": product.name,
                    "image": product.image,
                    "price": str(product.price),
                }
                if product
                else None
            ),
            "order": (
                {"id": order.id, "orderNumber": order.order_number, "status": order.status}
                if order
                else None
            ),
            "subject": obj.context_subject,
        }

    def get_lastMessage(self, obj: Conversation) -> dict | None:
        if obj.last_message_at is None:
            return None
        return {
            "senderId": obj.last_message_sender_id,
            "text": obj.last_message_text,
            "timestamp": obj.last_message_at.isoformat(),
            "type": obj.last_message_type,
        }

    def get_metadata(self, obj: Conversation) -> dict:
        return {
            "totalMessages": obj.total_messages,
            "customerSatisfaction": obj.customer_satisfaction,
            "averageResponseTime": obj.average_response_time,
            "isUrgent": obj.is_urgent,
            "tags": obj.tags,
        }

    def get_adminActions(self, obj: Conversation) -> dict:
        return {
            "isMonitored": obj.is_monitored,
            "monitoredBy": obj.monitored_by_id,
            "flaggedReason": obj.flagged_reason,
            "blockedAt": obj.blocked_at.isoformat() if obj.blocked_at else None,
            "blockedBy": obj.blocked_by_id,
        }

    def get_unreadCount(self, obj: Conversation) -> int:
        from chat.services import ConversationService

        request = self.context.get("request")
        if not request or not request.user.is_authenticated:
            return 0
        return ConversationService.unread_count(obj, request.user)


class ConversationCreateSerializer(serializers.Serializer):
    """Find-or-create input."""

    productId = serializers.IntegerField(help_text="Product the inquiry is about")
    vendorId = serializers.IntegerField(
        required=False,
        allow_null=True,
        default=None,
        help_text="Vendor to talk to (defaults to the product's vendor)",
    )
    orderId = serializers.IntegerField(
        required=False,
        allow_null=True,
        default=None,
        help_text="Related order, for order support",
    )
    subject = serializers.CharField(
        max_length=200,
        required=False,
        allow_blank=True,
        default="",
        help_text="Free-text subject",
    )


class BlockConversationSerializer(serializers.Serializer):
    """Reason given by the moderator."""

    reason = serializers.CharField(
        max_length=500,
        required=False,
        allow_blank=True,
        default="",
        help_text="Why the conversation is blocked",
    )
