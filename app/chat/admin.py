"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Conversation management and moderation audit
- Participant viewing
- Message moderation (including soft-deleted rows)
"""

from django.contrib import admin

from chat.models import Conversation, ConversationParticipant, Message, MessageReadReceipt


class ParticipantInline(admin.TabularInline):
    """Inline display of participants in conversation admin."""

    model = ConversationParticipant
    extra = 0
    readonly_fields = ["joined_at", "last_read_at"]
    raw_id_fields = ["user"]


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model."""

    list_display = [
        "id",
        "conversation_type",
        "status",
        "total_messages",
        "is_urgent",
        "last_message_at",
        "updated_at",
    ]
    list_filter = ["conversation_type", "status", "is_urgent", "is_monitored"]
    search_fields = ["id", "context_subject", "last_message_text"]
    readonly_fields = [
        "created_at",
        "updated_at",
        "last_message",
        "last_message_text",
        "last_message_sender",
        "last_message_type",
        "last_message_at",
        "total_messages",
        "average_response_time",
        "response_count",
        "blocked_at",
        "blocked_by",
    ]
    raw_id_fields = ["context_product", "context_order", "monitored_by"]
    inlines = [ParticipantInline]
    ordering = ["-updated_at"]


class ReadReceiptInline(admin.TabularInline):
    model = MessageReadReceipt
    extra = 0
    readonly_fields = ["user", "read_at"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "conversation",
        "sender",
        "sender_role",
        "message_type",
        "status",
        "is_deleted",
        "created_at",
    ]
    list_filter = ["message_type", "sender_role", "status", "is_deleted"]
    search_fields = ["text", "file_name"]
    readonly_fields = ["created_at", "updated_at", "deleted_at", "deleted_by"]
    raw_id_fields = ["conversation", "sender", "reply_to"]
    inlines = [ReadReceiptInline]
    ordering = ["-created_at"]

    def get_queryset(self, request):
        """Include soft-deleted messages."""
        return Message.all_objects.select_related("conversation", "sender")
