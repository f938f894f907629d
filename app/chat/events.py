"""
Inbound real-time event schemas.

Each client-to-server event has one DRF serializer. A frame is validated
against its schema before it reaches the fan-out engine, so handlers only
ever see well-typed data.

Frame Format:
    {"event": "message:send", "data": {"conversationId": 1, "text": "hi"}}

    Events whose payload is a single id also accept the bare value:
    {"event": "conversation:join", "data": 1}

Client Events:
    conversation:join / conversation:leave     {conversationId}
    message:send         {conversationId, text?, type, fileData?, replyTo?}
    typing:start / typing:stop                 {conversationId}
    message:read         {messageId, conversationId?}
    conversation:mark-read                     {conversationId}
    admin:block-conversation                   {conversationId, reason?}
    admin:unblock-conversation                 {conversationId}
    admin:send-announcement                    {message, targetRole?}
    user:check-online                          {targetUserId}

Usage:
    result = parse_event("message:send", frame.get("data"))
    if not result:
        await send_error(result)
    else:
        data = result.data
"""

from __future__ import annotations

from rest_framework import serializers

from chat.constants import MESSAGE_CONFIG
from chat.models import MessageType
from core.services import ServiceResult


class ClientEvent:
    """Client-to-server event names."""

    JOIN = "conversation:join"
    LEAVE = "conversation:leave"
    SEND = "message:send"
    TYPING_START = "typing:start"
    TYPING_STOP = "typing:stop"
    READ = "message:read"
    MARK_READ = "conversation:mark-read"
    BLOCK = "admin:block-conversation"
    UNBLOCK = "admin:unblock-conversation"
    ANNOUNCE = "admin:send-announcement"
    CHECK_ONLINE = "user:check-online"


class ServerEvent:
    """Server-to-client event names."""

    MESSAGE_NEW = "message:new"
    MESSAGE_DELETED = "message:deleted"
    NOTIFICATION_NEW = "notification:new"
    READ_RECEIPT = "message:read-receipt"
    TYPING = "user:typing"
    STOP_TYPING = "user:stop-typing"
    ONLINE = "user:online"
    OFFLINE = "user:offline"
    USERS_ONLINE = "users:online"
    ONLINE_STATUS = "user:online-status"
    JOINED = "conversation:joined"
    MARKED_READ = "conversation:marked-read"
    BLOCKED = "conversation:blocked"
    UNBLOCKED = "conversation:unblocked"
    ANNOUNCEMENT_SENT = "announcement:sent"
    ERROR = "error"


# =============================================================================
# Schemas
# =============================================================================


class ConversationEventSerializer(serializers.Serializer):
    conversationId = serializers.IntegerField(min_value=1)


class FileDataSerializer(serializers.Serializer):
    fileUrl = serializers.CharField(max_length=500)
    fileName = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    fileSize = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)
    mimeType = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")


class SendMessageEventSerializer(serializers.Serializer):
    """
    message:send payload.

    Text limits are left to MessageService.validate_content so the REST and
    real-time paths report them identically.
    """

    conversationId = serializers.IntegerField(min_value=1)
    text = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        trim_whitespace=False,
        default="",
    )
    type = serializers.ChoiceField(choices=MessageType.choices, default=MessageType.TEXT)
    fileData = FileDataSerializer(required=False, allow_null=True, default=None)
    replyTo = serializers.IntegerField(required=False, allow_null=True, default=None)

    def validate(self, attrs: dict) -> dict:
        if attrs["type"] in (MessageType.IMAGE, MessageType.FILE) and not attrs.get("fileData"):
            raise serializers.ValidationError({"fileData": "Attachments require fileData."})
        if attrs["type"] == MessageType.SYSTEM:
            raise serializers.ValidationError({"type": "System messages cannot be sent by clients."})
        return attrs


class ReadMessageEventSerializer(serializers.Serializer):
    messageId = serializers.IntegerField(min_value=1)
    conversationId = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class BlockEventSerializer(serializers.Serializer):
    conversationId = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class AnnouncementEventSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=MESSAGE_CONFIG.MAX_TEXT_LENGTH)
    targetRole = serializers.ChoiceField(
        choices=["all", "customer", "vendor", "admin"],
        required=False,
        allow_null=True,
        default="all",
    )


class CheckOnlineEventSerializer(serializers.Serializer):
    targetUserId = serializers.IntegerField(min_value=1)


EVENT_SCHEMAS: dict[str, type[serializers.Serializer]] = {
    ClientEvent.JOIN: ConversationEventSerializer,
    ClientEvent.LEAVE: ConversationEventSerializer,
    ClientEvent.SEND: SendMessageEventSerializer,
    ClientEvent.TYPING_START: ConversationEventSerializer,
    ClientEvent.TYPING_STOP: ConversationEventSerializer,
    ClientEvent.READ: ReadMessageEventSerializer,
    ClientEvent.MARK_READ: ConversationEventSerializer,
    ClientEvent.BLOCK: BlockEventSerializer,
    ClientEvent.UNBLOCK: ConversationEventSerializer,
    ClientEvent.ANNOUNCE: AnnouncementEventSerializer,
    ClientEvent.CHECK_ONLINE: CheckOnlineEventSerializer,
}

# Field a bare scalar payload is assigned to
SCALAR_FIELDS: dict[str, str] = {
    ClientEvent.JOIN: "conversationId",
    ClientEvent.LEAVE: "conversationId",
    ClientEvent.TYPING_START: "conversationId",
    ClientEvent.TYPING_STOP: "conversationId",
    ClientEvent.MARK_READ: "conversationId",
    ClientEvent.UNBLOCK: "conversationId",
    ClientEvent.CHECK_ONLINE: "targetUserId",
}


def _first_error(errors) -> str:
    if isinstance(errors, dict):
        for field_name, value in errors.items():
            message = _first_error(value)
            return message if field_name == "non_field_errors" else f"{field_name}: {message}"
    if isinstance(errors, list) and errors:
        return _first_error(errors[0])
    return str(errors)


def parse_event(event: str, data) -> ServiceResult[dict]:
    """
    Validate an inbound payload against its event schema.

    Returns:
        ServiceResult with validated data, or a failure with
        UNKNOWN_EVENT / VALIDATION_ERROR
    """
    schema = EVENT_SCHEMAS.get(event)
    if schema is None:
        return ServiceResult.failure(f"Unknown event: {event}", error_code="UNKNOWN_EVENT")

    if not isinstance(data, dict):
        scalar_field = SCALAR_FIELDS.get(event)
        data = {scalar_field: data} if scalar_field and data is not None else {}

    serializer = schema(data=data)
    if not serializer.is_valid():
        return ServiceResult.failure(
            _first_error(serializer.errors),
            error_code="VALIDATION_ERROR",
            errors=serializer.errors,
        )
    return ServiceResult.success(dict(serializer.validated_data))
