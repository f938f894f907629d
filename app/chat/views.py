"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ConversationViewSet: Find-or-create, listing, detail, status actions
- MessageViewSet: Message deletion and attachment upload
- ChatStatsView: Admin dashboard aggregates

URL Structure:
    /api/v1/chat/conversations/                   GET, POST
    /api/v1/chat/conversations/{id}/              GET, DELETE
    /api/v1/chat/conversations/{id}/messages/     GET
    /api/v1/chat/conversations/{id}/archive/      PUT
    /api/v1/chat/conversations/{id}/block/        PUT (admin)
    /api/v1/chat/conversations/{id}/unblock/      PUT (admin)
    /api/v1/chat/messages/{id}/                   DELETE
    /api/v1/chat/messages/upload/                 POST (multipart)
    /api/v1/chat/stats/                           GET (admin)

Design Decisions:
    - All operations use the service layer for business logic
    - Service failures are returned as {"success": false, "message", ...}
      with the status the service chose
    - Writes that have a real-time counterpart (block, unblock, delete,
      upload, new notifications) are fanned out through the same engine the
      WebSocket path uses, after the write has committed
    - Fan-out from REST is best-effort: a broadcast failure is logged and
      does not fail the request
"""

from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.fanout import get_fanout_engine, notification_pushes, serialize_message
from chat.models import Conversation, ConversationStatus
from chat.pagination import ConversationPagination, MessagePagination
from chat.permissions import CanAccessConversation, IsChatAdmin
from chat.serializers import (
    BlockConversationSerializer,
    ConversationCreateSerializer,
    ConversationSerializer,
    MessageSerializer,
    MessageUploadSerializer,
)
from chat.services import ConversationService, MessageService, StatsService

logger = logging.getLogger(__name__)


def publish(method_name: str, *args, **kwargs) -> None:
    """Run a FanoutEngine publish_* coroutine from sync code, best-effort."""
    engine = get_fanout_engine()
    try:
        async_to_sync(getattr(engine, method_name))(*args, **kwargs)
    except Exception:
        logger.exception(f"Real-time fan-out failed: {method_name}")


def failure_response(result) -> Response:
    return Response(result.to_response(), status=result.status_code)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_conversations",
        summary="List conversations",
        parameters=[
            OpenApiParameter("status", OpenApiTypes.STR, enum=ConversationStatus.values),
        ],
        tags=["Chat - Conversations"],
    ),
    create=extend_schema(
        operation_id="find_or_create_conversation",
        summary="Find or create conversation",
        request=ConversationCreateSerializer,
        responses={200: ConversationSerializer, 201: ConversationSerializer},
        tags=["Chat - Conversations"],
    ),
    retrieve=extend_schema(
        operation_id="get_conversation",
        summary="Get conversation",
        tags=["Chat - Conversations"],
    ),
    destroy=extend_schema(
        operation_id="delete_conversation",
        summary="Delete conversation with its messages and notifications",
        tags=["Chat - Conversations"],
    ),
)
class ConversationViewSet(viewsets.GenericViewSet):
    """
    ViewSet for conversation operations.

    list:
        Conversations of the current user (all of them for admins), most
        recently updated first, each with its unread count.

    create:
        Find the conversation with the vendor, or create it.
        201 when created, 200 when an existing one is returned.

    retrieve:
        Conversation details. 403 for non-participants.

    destroy:
        Hard delete, cascading to messages and notifications.

    messages:
        Non-deleted messages, newest page first, each page oldest-first.

    archive / block / unblock:
        Status transitions; block and unblock are admin only.
    """

    queryset = Conversation.objects.select_related(
        "context_product",
        "context_order",
    ).prefetch_related("participants__user")
    serializer_class = ConversationSerializer
    permission_classes = [IsAuthenticated, CanAccessConversation]
    lookup_value_regex = r"\d+"
    pagination_class = ConversationPagination

    def get_permissions(self):
        """Return permissions based on action."""
        if self.action in ("block", "unblock"):
            return [IsAuthenticated(), IsChatAdmin(), CanAccessConversation()]
        return super().get_permissions()

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == "create":
            return ConversationCreateSerializer
        if self.action == "block":
            return BlockConversationSerializer
        return ConversationSerializer

    def _detail(self, conversation: Conversation, status_code: int = status.HTTP_200_OK) -> Response:
        data = ConversationSerializer(conversation, context={"request": self.request}).data
        return Response({"success": True, "data": data}, status=status_code)

    def list(self, request):
        """List the caller's conversations."""
        status_filter = request.query_params.get("status")
        if status_filter and status_filter not in ConversationStatus.values:
            return Response(
                {
                    "success": False,
                    "message": f"Invalid status: {status_filter}",
                    "error_code": "VALIDATION_ERROR",
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        queryset = ConversationService.list_for_user(request.user, status=status_filter)
        page = self.paginate_queryset(queryset)
        serializer = ConversationSerializer(page, many=True, context={"request": request})
        return self.get_paginated_response(serializer.data)

    def create(self, request):
        """Find or create a conversation about a product."""
        serializer = ConversationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = ConversationService.find_or_create(
            customer=request.user,
            product_id=data["productId"],
            vendor_id=data.get("vendorId"),
            order_id=data.get("orderId"),
            subject=data.get("subject", ""),
        )
        if not result:
            return failure_response(result)

        outcome = result.data
        if outcome.notifications:
            publish("publish_notifications", notification_pushes(outcome.notifications))

        return self._detail(
            outcome.conversation,
            status.HTTP_201_CREATED if outcome.created else status.HTTP_200_OK,
        )

    def retrieve(self, request, pk=None):
        """Get a conversation."""
        return self._detail(self.get_object())

    def destroy(self, request, pk=None):
        """Delete a conversation."""
        result = ConversationService.delete(self.get_object(), request.user)
        if not result:
            return failure_response(result)
        return Response({"success": True, "message": "Conversation deleted"})

    @extend_schema(
        operation_id="list_conversation_messages",
        summary="List messages",
        responses={200: MessageSerializer(many=True)},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["get"])
    def messages(self, request, pk=None):
        """
        Non-deleted messages, newest page first.

        Page 1 is the most recent ``limit`` messages. Each page is returned
        oldest-first so clients can render it top to bottom.
        """
        result = MessageService.list_messages(user=request.user, conversation_id=pk)
        if not result:
            return failure_response(result)

        paginator = MessagePagination()
        page = paginator.paginate_queryset(
            result.data.prefetch_related("read_receipts"),
            request,
            view=self,
        )
        serializer = MessageSerializer(list(reversed(page)), many=True)
        return paginator.get_paginated_response(serializer.data)

    @extend_schema(
        operation_id="archive_conversation",
        summary="Archive conversation",
        request=None,
        tags=["Chat - Conversations"],
    )
    @action(detail=True, methods=["put"])
    def archive(self, request, pk=None):
        """Archive an active conversation."""
        result = ConversationService.archive(self.get_object(), request.user)
        if not result:
            return failure_response(result)

        publish("publish_notifications", notification_pushes(result.data.notifications))
        return self._detail(result.data.conversation)

    @extend_schema(
        operation_id="block_conversation",
        summary="Block conversation (admin)",
        tags=["Chat - Moderation"],
    )
    @action(detail=True, methods=["put"])
    def block(self, request, pk=None):
        """Block an active conversation."""
        conversation = self.get_object()
        serializer = BlockConversationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reason = serializer.validated_data["reason"]

        result = ConversationService.block(conversation, request.user, reason)
        if not result:
            return failure_response(result)

        outcome = result.data
        publish(
            "publish_block",
            conversation.id,
            outcome.recipient_ids,
            request.user.id,
            reason,
            notification_pushes(outcome.notifications),
        )
        return self._detail(outcome.conversation)

    @extend_schema(
        operation_id="unblock_conversation",
        summary="Unblock conversation (admin)",
        request=None,
        tags=["Chat - Moderation"],
    )
    @action(detail=True, methods=["put"])
    def unblock(self, request, pk=None):
        """Return a blocked conversation to active."""
        conversation = self.get_object()
        result = ConversationService.unblock(conversation, request.user)
        if not result:
            return failure_response(result)

        publish("publish_unblock", conversation.id, result.data.recipient_ids, request.user.id)
        return self._detail(result.data.conversation)


class MessageViewSet(viewsets.GenericViewSet):
    """
    ViewSet for message operations outside a conversation URL.

    destroy:
        Soft delete (sender or admin). Emits message:deleted to the room.

    upload:
        Store an attachment and send it as an image or file message.
        Mirrors the real-time message:new broadcast.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = MessageSerializer
    lookup_value_regex = r"\d+"

    @extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        tags=["Chat - Messages"],
    )
    def destroy(self, request, pk=None):
        """Soft delete a message."""
        result = MessageService.delete_message(request.user, pk)
        if not result:
            return failure_response(result)

        message = result.data
        publish("publish_message_deleted", message.conversation_id, message.id)
        return Response({"success": True, "message": "Message deleted"})

    @extend_schema(
        operation_id="upload_message_attachment",
        summary="Upload attachment",
        request={"multipart/form-data": MessageUploadSerializer},
        responses={201: MessageSerializer},
        tags=["Chat - Messages"],
    )
    @action(
        detail=False,
        methods=["post"],
        parser_classes=[MultiPartParser, FormParser],
    )
    def upload(self, request):
        """Upload a file into a conversation."""
        serializer = MessageUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = MessageService.upload_attachment(
            sender=request.user,
            conversation_id=data["conversationId"],
            upload=data["file"],
            text=data.get("text", ""),
        )
        if not result:
            return failure_response(result)

        outcome = result.data
        message_data = serialize_message(outcome.message)
        publish(
            "publish_message",
            outcome.conversation.id,
            message_data,
            notification_pushes(outcome.notifications),
        )
        return Response({"success": True, "data": message_data}, status=status.HTTP_201_CREATED)


class ChatStatsView(APIView):
    """Admin dashboard: conversation/message counts and response time."""

    permission_classes = [IsAuthenticated, IsChatAdmin]

    @extend_schema(
        operation_id="chat_stats",
        summary="Chat statistics (admin)",
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Moderation"],
    )
    def get(self, request):
        result = StatsService.get_stats(request.user)
        if not result:
            return failure_response(result)
        return Response({"success": True, "data": result.data})
