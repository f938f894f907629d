"""
Chat system service layer.

This module provides the business logic for the chat system, encapsulating
all operations on conversations, participants, and messages. The REST views
and the real-time fan-out engine both call into it, so validation,
authorization, and persistence rules are identical on every surface.

Services:
    ConversationService: Find-or-create, listing, status transitions, deletion
    MessageService: Send, read receipts, deletion, attachments, announcements
    StatsService: Admin dashboard aggregates

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure() with an HTTP status
    - Unexpected failures raise exceptions
    - A message, its conversation cache update, and its notifications are
      written in one transaction; nothing is broadcast by this layer
    - Services return outcome objects carrying everything the caller needs
      to fan out (notifications created, recipients to inform)

Concurrency:
    Message creation locks the conversation row with select_for_update()
    and bumps the counter with F("total_messages") + 1, so concurrent sends
    to one conversation serialize on the row and no update is lost. The
    last writer's message becomes the cached last message.

Usage:
    from chat.services import ConversationService, MessageService

    result = ConversationService.find_or_create(customer, product_id=product.id)
    if result.success:
        conversation = result.data.conversation

    result = MessageService.send_message(
        sender=user,
        conversation_id=conversation.id,
        text="Is this in stock?",
    )
    if result.success:
        message = result.data.message
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.core.files.storage import default_storage
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, F, Q, Sum
from django.utils import timezone

from chat.authorization import ChatAuthorizationService, require_conversation_access
from chat.constants import MESSAGE_CONFIG, NOTIFICATION_CONFIG, UPLOAD_CONFIG
from chat.models import (
    Conversation,
    ConversationPair,
    ConversationParticipant,
    ConversationStatus,
    ConversationType,
    Message,
    MessageReadReceipt,
    MessageStatus,
    MessageType,
    ParticipantRole,
    SenderRole,
    message_preview,
)
from core.services import BaseService, ServiceResult
from core.validators import detect_mime_type
from notifications.models import ChatNotificationType
from notifications.services import NotificationService

if TYPE_CHECKING:
    from django.core.files.uploadedfile import UploadedFile
    from django.db.models import QuerySet

    from authentication.models import User
    from notifications.models import ChatNotification

logger = logging.getLogger(__name__)


# =============================================================================
# Outcome objects
# =============================================================================


@dataclass
class ConversationOutcome:
    """Result of find-or-create."""

    conversation: Conversation
    created: bool = False
    notifications: list[ChatNotification] = field(default_factory=list)


@dataclass
class SendOutcome:
    """A persisted message plus the notifications created alongside it."""

    message: Message
    conversation: Conversation
    notifications: list[ChatNotification] = field(default_factory=list)


@dataclass
class ReadOutcome:
    """A newly created read receipt."""

    message: Message
    receipt: MessageReadReceipt


@dataclass
class ModerationOutcome:
    """
    Result of a status transition.

    recipient_ids holds every participant plus the acting admin, each user
    exactly once, in participant join order.
    """

    conversation: Conversation
    recipient_ids: list[int] = field(default_factory=list)
    notifications: list[ChatNotification] = field(default_factory=list)


def _unique_ids(*groups) -> list[int]:
    seen: dict[int, None] = {}
    for group in groups:
        for user_id in group:
            if user_id is not None:
                seen.setdefault(user_id, None)
    return list(seen)


def _participant_role_for(user: User) -> str:
    if user.role in ParticipantRole.values:
        return user.role
    return ParticipantRole.CUSTOMER


# =============================================================================
# ConversationService
# =============================================================================


class ConversationService(BaseService):
    """
    Service for conversation lifecycle.

    Methods:
        find_or_create: One conversation per unordered customer/vendor pair
        list_for_user: Caller's conversations (all of them for admins)
        get_for_user: Load one conversation through the authorization gate
        unread_count: Unread messages for a participant
        touch_read_cursor: Best-effort last_read_at bump on room join
        archive: active -> archived
        block / unblock: active <-> blocked (admin only)
        delete: Hard delete with cascade
        refresh_last_message: Recompute the last-message cache
    """

    @classmethod
    def find_or_create(
        cls,
        customer: User,
        product_id,
        vendor_id=None,
        order_id=None,
        subject: str = "",
    ) -> ServiceResult[ConversationOutcome]:
        """
        Find the conversation between ``customer`` and the vendor, or create it.

        The key is the unordered participant pair, not the product. An
        existing conversation is returned whatever its status; a blocked or
        archived conversation is never silently reopened. While it is still
        active, its product context follows the latest inquiry.

        Args:
            customer: User starting the conversation
            product_id: Product the inquiry is about
            vendor_id: Explicit vendor; defaults to the product's vendor
            order_id: Optional order, making a new conversation order-support
            subject: Optional free-text subject

        Returns:
            ServiceResult with a ConversationOutcome

        Error codes:
            PRODUCT_NOT_FOUND: No such product (404)
            VENDOR_NOT_FOUND: No such vendor (404)
            ORDER_NOT_FOUND: No such order (404)
            SELF_CONVERSATION: Customer and vendor are the same user (400)
        """
        from catalog.models import Order, Product

        product = Product.objects.select_related("vendor").filter(id=product_id).first()
        if product is None:
            return ServiceResult.failure(
                "Product not found",
                error_code="PRODUCT_NOT_FOUND",
                status_code=404,
            )

        if vendor_id is not None:
            vendor = get_user_model().objects.filter(id=vendor_id).first()
            if vendor is None:
                return ServiceResult.failure(
                    "Vendor not found",
                    error_code="VENDOR_NOT_FOUND",
                    status_code=404,
                )
        else:
            vendor = product.vendor

        order = None
        if order_id is not None:
            order = Order.objects.filter(id=order_id).first()
            if order is None:
                return ServiceResult.failure(
                    "Order not found",
                    error_code="ORDER_NOT_FOUND",
                    status_code=404,
                )

        if vendor.id == customer.id:
            return ServiceResult.failure(
                "Cannot start a conversation with yourself",
                error_code="SELF_CONVERSATION",
            )

        existing = cls._find_by_pair(customer.id, vendor.id)
        if existing is not None:
            return ServiceResult.success(
                ConversationOutcome(conversation=cls._refresh_context(existing, product))
            )

        try:
            with transaction.atomic():
                conversation = Conversation.objects.create(
                    conversation_type=(
                        ConversationType.ORDER_SUPPORT if order else ConversationType.PRODUCT_INQUIRY
                    ),
                    context_product=product,
                    context_order=order,
                    context_subject=subject or "",
                )
                ConversationParticipant.objects.create(
                    conversation=conversation,
                    user=customer,
                    role=_participant_role_for(customer),
                )
                ConversationParticipant.objects.create(
                    conversation=conversation,
                    user=vendor,
                    role=ParticipantRole.VENDOR,
                )
                lower, higher = ConversationPair.canonical(customer.id, vendor.id)
                ConversationPair.objects.create(
                    conversation=conversation,
                    user_lower_id=lower,
                    user_higher_id=higher,
                )
                notification = NotificationService.create_notification(
                    recipient=vendor,
                    conversation=conversation,
                    notification_type=ChatNotificationType.NEW_CONVERSATION,
                    title=NOTIFICATION_CONFIG.NEW_CONVERSATION_TITLE.format(
                        name=customer.display_name
                    ),
                    body=product.name,
                ).data
        except IntegrityError:
            # Lost a race with a concurrent find-or-create for the same pair
            existing = cls._find_by_pair(customer.id, vendor.id)
            if existing is None:
                raise
            return ServiceResult.success(ConversationOutcome(conversation=existing))

        cls.get_logger().info(
            f"Created conversation {conversation.id} between user {customer.id} "
            f"and vendor {vendor.id} about product {product.id}"
        )
        return ServiceResult.success(
            ConversationOutcome(
                conversation=conversation,
                created=True,
                notifications=[notification],
            )
        )

    @classmethod
    def _find_by_pair(cls, user_a_id: int, user_b_id: int) -> Conversation | None:
        lower, higher = ConversationPair.canonical(user_a_id, user_b_id)
        pair = (
            ConversationPair.objects.select_related("conversation")
            .filter(user_lower_id=lower, user_higher_id=higher)
            .first()
        )
        return pair.conversation if pair else None

    @classmethod
    def _refresh_context(cls, conversation: Conversation, product) -> Conversation:
        if conversation.is_active and conversation.context_product_id != product.id:
            conversation.context_product = product
            conversation.save(update_fields=["context_product", "updated_at"])
        return conversation

    @classmethod
    def list_for_user(cls, user: User, status: str | None = None) -> QuerySet[Conversation]:
        """
        Conversations visible to ``user``, most recently updated first.

        Admins see every conversation; everyone else sees the ones they
        participate in.
        """
        queryset = Conversation.objects.select_related(
            "context_product",
            "context_order",
            "last_message_sender",
        ).prefetch_related("participants__user")

        if not ChatAuthorizationService.is_admin(user):
            queryset = queryset.filter(participants__user=user)
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by("-updated_at", "-id").distinct()

    @classmethod
    def get_for_user(cls, user: User, conversation_id) -> ServiceResult[Conversation]:
        """Load a conversation if ``user`` may access it (404 / 403 otherwise)."""
        return ChatAuthorizationService.get_accessible_conversation(user, conversation_id)

    @classmethod
    def unread_count(cls, conversation: Conversation, user: User) -> int:
        """
        Messages the user has not read.

        Counts non-deleted messages from others, created after the user's
        read cursor, without a read receipt from the user. Non-participants
        (admins browsing) have no unread messages.
        """
        participant = ConversationParticipant.objects.filter(
            conversation=conversation,
            user=user,
        ).first()
        if participant is None:
            return 0
        return (
            Message.objects.filter(
                conversation=conversation,
                created_at__gt=participant.last_read_at,
            )
            .exclude(sender=user)
            .exclude(read_receipts__user=user)
            .count()
        )

    @classmethod
    def touch_read_cursor(cls, conversation_id, user: User) -> bool:
        """
        Set the participant's last_read_at to now.

        Best-effort: failures are logged and reported as False, never raised,
        so a join is never blocked by the cursor update.
        """
        try:
            updated = ConversationParticipant.objects.filter(
                conversation_id=conversation_id,
                user=user,
            ).update(last_read_at=timezone.now())
        except Exception:  # noqa: BLE001
            cls.get_logger().warning(
                f"Could not update read cursor for user {user.id} "
                f"in conversation {conversation_id}",
                exc_info=True,
            )
            return False
        return bool(updated)

    @classmethod
    def archive(cls, conversation: Conversation, user: User) -> ServiceResult[ModerationOutcome]:
        """
        Archive an active conversation.

        Any participant or an admin may archive. The other participants get
        a conversation-closed notification.

        Error codes:
            NOT_AUTHORIZED: Not a participant and not an admin (403)
            INVALID_STATE_TRANSITION: Conversation is not active (400)
        """
        access = ChatAuthorizationService.authorize_access(conversation, user)
        if not access:
            return access

        if conversation.status != ConversationStatus.ACTIVE:
            return ServiceResult.failure(
                "Only active conversations can be archived",
                error_code="INVALID_STATE_TRANSITION",
            )

        with cls.atomic():
            conversation.status = ConversationStatus.ARCHIVED
            conversation.save(update_fields=["status", "updated_at"])
            others = [
                p.user
                for p in conversation.participants.select_related("user")
                if p.user_id != user.id
            ]
            notifications = NotificationService.notify_recipients(
                recipients=others,
                conversation=conversation,
                notification_type=ChatNotificationType.CONVERSATION_CLOSED,
                title=NOTIFICATION_CONFIG.CONVERSATION_CLOSED_TITLE,
            )

        cls.get_logger().info(f"User {user.id} archived conversation {conversation.id}")
        return ServiceResult.success(
            ModerationOutcome(
                conversation=conversation,
                recipient_ids=[u.id for u in others],
                notifications=notifications,
            )
        )

    @classmethod
    def block(
        cls,
        conversation: Conversation,
        admin: User,
        reason: str = "",
    ) -> ServiceResult[ModerationOutcome]:
        """
        Block an active conversation (admin only).

        Records the moderation audit fields and warns every participant
        other than the acting admin.

        Error codes:
            ADMIN_REQUIRED: Caller's role is not admin (403)
            INVALID_STATE_TRANSITION: Conversation is not active (400)
        """
        gate = ChatAuthorizationService.authorize_admin(admin)
        if not gate:
            return gate

        if conversation.status != ConversationStatus.ACTIVE:
            return ServiceResult.failure(
                "Only active conversations can be blocked",
                error_code="INVALID_STATE_TRANSITION",
            )

        with cls.atomic():
            conversation.status = ConversationStatus.BLOCKED
            conversation.blocked_at = timezone.now()
            conversation.blocked_by = admin
            conversation.flagged_reason = reason or ""
            conversation.is_monitored = True
            conversation.monitored_by = admin
            conversation.save(
                update_fields=[
                    "status",
                    "blocked_at",
                    "blocked_by",
                    "flagged_reason",
                    "is_monitored",
                    "monitored_by",
                    "updated_at",
                ]
            )
            others = [
                p.user
                for p in conversation.participants.select_related("user")
                if p.user_id != admin.id
            ]
            notifications = NotificationService.notify_recipients(
                recipients=others,
                conversation=conversation,
                notification_type=ChatNotificationType.ADMIN_WARNING,
                title=NOTIFICATION_CONFIG.ADMIN_WARNING_TITLE,
                body=reason or "",
            )

        cls.get_logger().warning(
            f"Admin {admin.id} blocked conversation {conversation.id}: {reason or 'no reason'}"
        )
        return ServiceResult.success(
            ModerationOutcome(
                conversation=conversation,
                recipient_ids=_unique_ids(conversation.participant_user_ids(), [admin.id]),
                notifications=notifications,
            )
        )

    @classmethod
    def unblock(cls, conversation: Conversation, admin: User) -> ServiceResult[ModerationOutcome]:
        """
        Return a blocked conversation to active (admin only).

        Error codes:
            ADMIN_REQUIRED: Caller's role is not admin (403)
            INVALID_STATE_TRANSITION: Conversation is not blocked (400)
        """
        gate = ChatAuthorizationService.authorize_admin(admin)
        if not gate:
            return gate

        if conversation.status != ConversationStatus.BLOCKED:
            return ServiceResult.failure(
                "Only blocked conversations can be unblocked",
                error_code="INVALID_STATE_TRANSITION",
            )

        conversation.status = ConversationStatus.ACTIVE
        conversation.blocked_at = None
        conversation.blocked_by = None
        conversation.save(update_fields=["status", "blocked_at", "blocked_by", "updated_at"])

        cls.get_logger().info(f"Admin {admin.id} unblocked conversation {conversation.id}")
        return ServiceResult.success(
            ModerationOutcome(
                conversation=conversation,
                recipient_ids=_unique_ids(conversation.participant_user_ids(), [admin.id]),
            )
        )

    @classmethod
    def delete(cls, conversation: Conversation, user: User) -> ServiceResult[int]:
        """
        Hard delete a conversation.

        Cascades to participants, the pair row, messages (deleted or not),
        read receipts, and notifications.

        Returns:
            ServiceResult with the deleted conversation's id
        """
        access = ChatAuthorizationService.authorize_access(conversation, user)
        if not access:
            return access

        conversation_id = conversation.id
        with cls.atomic():
            # The cache FK points back at messages being removed
            Conversation.objects.filter(pk=conversation_id).update(last_message=None)
            conversation.delete()

        cls.get_logger().info(f"User {user.id} deleted conversation {conversation_id}")
        return ServiceResult.success(conversation_id)

    @classmethod
    def refresh_last_message(cls, conversation_id) -> None:
        """
        Recompute the last-message cache from the newest non-deleted message.

        Clears the cache when no message remains.
        """
        latest = (
            Message.objects.filter(conversation_id=conversation_id)
            .order_by("-created_at", "-id")
            .first()
        )
        if latest is None:
            Conversation.objects.filter(pk=conversation_id).update(
                last_message=None,
                last_message_text="",
                last_message_sender=None,
                last_message_type="",
                last_message_at=None,
            )
            return

        Conversation.objects.filter(pk=conversation_id).update(
            last_message=latest,
            last_message_text=latest.preview[: MESSAGE_CONFIG.LAST_MESSAGE_PREVIEW_LENGTH],
            last_message_sender_id=latest.sender_id,
            last_message_type=latest.message_type,
            last_message_at=latest.created_at,
        )

    @classmethod
    def announcement_targets(cls, target_role: str | None = None) -> list[int]:
        """
        Ids of active conversations an announcement should reach.

        With a target role other than "all", only conversations having at
        least one participant with that role are included.
        """
        queryset = Conversation.objects.filter(status=ConversationStatus.ACTIVE)
        if target_role and target_role != "all":
            queryset = queryset.filter(participants__role=target_role)
        return list(queryset.order_by("id").values_list("id", flat=True).distinct())


# =============================================================================
# MessageService
# =============================================================================


class MessageService(BaseService):
    """
    Service for messages.

    Methods:
        validate_content: Text/type checks done before any lookup
        send_message: Validate, authorize, persist, notify
        list_messages: Non-deleted messages of a conversation, newest first
        mark_read: Idempotent single read receipt
        mark_conversation_read: Read every unread message plus cursor update
        delete_message: Soft delete by sender or admin
        upload_attachment: Store a file and send it as a message
        send_announcement: System message for one conversation
    """

    @classmethod
    def validate_content(cls, message_type: str, text: str | None) -> ServiceResult | None:
        """
        Check the message body.

        Text messages need non-blank text of at most MAX_TEXT_LENGTH
        characters (inclusive). Other types accept optional text with the
        same limit.

        Returns:
            A failure result, or None when valid
        """
        if message_type not in MessageType.values:
            return ServiceResult.failure(
                f"Invalid message type: {message_type}",
                error_code="INVALID_MESSAGE_TYPE",
                errors={"type": [f"Must be one of {', '.join(MessageType.values)}."]},
            )

        if message_type == MessageType.TEXT and not (text and text.strip()):
            return ServiceResult.failure(
                "Message text is required",
                error_code="EMPTY_CONTENT",
                errors={"text": ["This field is required."]},
            )

        if text and len(text) > MESSAGE_CONFIG.MAX_TEXT_LENGTH:
            return ServiceResult.failure(
                f"Message cannot exceed {MESSAGE_CONFIG.MAX_TEXT_LENGTH} characters",
                error_code="MESSAGE_TOO_LONG",
                errors={"text": [f"Ensure this field has no more than {MESSAGE_CONFIG.MAX_TEXT_LENGTH} characters."]},
            )
        return None

    @classmethod
    def send_message(
        cls,
        sender: User,
        conversation_id,
        text: str | None = None,
        message_type: str = MessageType.TEXT,
        file_data: dict | None = None,
        reply_to_id=None,
    ) -> ServiceResult[SendOutcome]:
        """
        Send a message to a conversation.

        Checks run in a fixed order and stop at the first failure: content,
        then conversation existence, then the authorization gate (which also
        rejects blocked conversations). Nothing is written on failure.

        Args:
            sender: User sending the message
            conversation_id: Target conversation
            text: Message text (required for type text)
            message_type: MessageType value
            file_data: fileUrl/fileName/fileSize/mimeType for attachments
            reply_to_id: Optional message being replied to

        Returns:
            ServiceResult with a SendOutcome

        Error codes:
            EMPTY_CONTENT / MESSAGE_TOO_LONG / INVALID_MESSAGE_TYPE (400)
            CONVERSATION_NOT_FOUND (404)
            NOT_AUTHORIZED / CONVERSATION_BLOCKED (403)
            INVALID_REPLY_TO: Replied-to message not in this conversation (400)
        """
        invalid = cls.validate_content(message_type, text)
        if invalid:
            return invalid

        conversation = Conversation.objects.filter(id=conversation_id).first()
        if conversation is None:
            return ServiceResult.failure(
                "Conversation not found",
                error_code="CONVERSATION_NOT_FOUND",
                status_code=404,
            )

        gate = ChatAuthorizationService.authorize_send(conversation, sender)
        if not gate:
            return gate

        reply_to = None
        if reply_to_id is not None:
            reply_to = Message.objects.filter(id=reply_to_id, conversation=conversation).first()
            if reply_to is None:
                return ServiceResult.failure(
                    "Replied-to message not found in this conversation",
                    error_code="INVALID_REPLY_TO",
                )

        participant = conversation.get_participant(sender)
        sender_role = participant.role if participant else sender.role
        file_data = file_data or {}

        with cls.atomic():
            message, conversation = cls._persist(
                conversation_id=conversation.id,
                sender=sender,
                sender_role=sender_role,
                message_type=message_type,
                text=text or "",
                file_url=file_data.get("fileUrl", ""),
                file_name=file_data.get("fileName", ""),
                file_size=file_data.get("fileSize"),
                mime_type=file_data.get("mimeType", ""),
                reply_to=reply_to,
            )
            recipients = [
                p.user
                for p in conversation.participants.select_related("user")
                if p.user_id != sender.id
            ]
            notifications = NotificationService.notify_new_message(message, recipients)

        cls.get_logger().debug(
            f"User {sender.id} sent message {message.id} to conversation {conversation.id}"
        )
        return ServiceResult.success(
            SendOutcome(message=message, conversation=conversation, notifications=notifications)
        )

    @classmethod
    def _persist(
        cls,
        conversation_id,
        sender: User,
        sender_role: str,
        message_type: str,
        text: str,
        file_url: str = "",
        file_name: str = "",
        file_size: int | None = None,
        mime_type: str = "",
        reply_to: Message | None = None,
    ) -> tuple[Message, Conversation]:
        """
        Create a message and update the conversation cache.

        Must run inside a transaction. The conversation row stays locked
        until commit.
        """
        conversation = Conversation.objects.select_for_update().get(pk=conversation_id)

        message = Message.objects.create(
            conversation=conversation,
            sender=sender,
            sender_role=sender_role,
            message_type=message_type,
            text=text,
            file_url=file_url,
            file_name=file_name,
            file_size=file_size,
            mime_type=mime_type,
            reply_to=reply_to,
        )

        updates = {
            "last_message": message,
            "last_message_text": message.preview[: MESSAGE_CONFIG.LAST_MESSAGE_PREVIEW_LENGTH],
            "last_message_sender": sender,
            "last_message_type": message_type,
            "last_message_at": message.created_at,
            "total_messages": F("total_messages") + 1,
            "updated_at": timezone.now(),
        }

        # Response time: gap between a message and the previous one from someone else
        if (
            sender_role != SenderRole.SYSTEM
            and conversation.last_message_at is not None
            and conversation.last_message_sender_id is not None
            and conversation.last_message_sender_id != sender.id
        ):
            gap = (message.created_at - conversation.last_message_at).total_seconds()
            count = conversation.response_count
            average = conversation.average_response_time or 0.0
            updates["average_response_time"] = (average * count + max(gap, 0.0)) / (count + 1)
            updates["response_count"] = F("response_count") + 1

        Conversation.objects.filter(pk=conversation.pk).update(**updates)
        conversation.refresh_from_db()
        return message, conversation

    @classmethod
    @require_conversation_access()
    def list_messages(
        cls,
        user: User,
        conversation_id,
        _conversation: Conversation | None = None,
    ) -> ServiceResult[QuerySet[Message]]:
        """
        Non-deleted messages of an accessible conversation, newest first.

        Callers page over this ordering so page 1 holds the most recent
        messages, then reverse each page for display.
        """
        queryset = (
            Message.objects.filter(conversation=_conversation)
            .select_related("sender", "reply_to")
            .order_by("-created_at", "-id")
        )
        return ServiceResult.success(queryset)

    @classmethod
    def mark_read(cls, user: User, message_id) -> ServiceResult[ReadOutcome | None]:
        """
        Record that ``user`` read a message.

        Silent no-op (success with None) when the message is missing or
        deleted, when the reader sent it, or when it was already read by
        this user. Only a newly created receipt yields a ReadOutcome.

        Error codes:
            NOT_AUTHORIZED: Reader cannot access the conversation (403)
        """
        message = (
            Message.objects.select_related("conversation", "sender").filter(id=message_id).first()
        )
        if message is None:
            return ServiceResult.success(None)

        access = ChatAuthorizationService.authorize_access(message.conversation, user)
        if not access:
            return access

        if message.sender_id == user.id:
            return ServiceResult.success(None)

        receipt, created = MessageReadReceipt.objects.get_or_create(message=message, user=user)
        if not created:
            return ServiceResult.success(None)

        if message.status != MessageStatus.READ:
            Message.objects.filter(pk=message.pk).update(status=MessageStatus.READ)
            message.status = MessageStatus.READ

        return ServiceResult.success(ReadOutcome(message=message, receipt=receipt))

    @classmethod
    @require_conversation_access()
    def mark_conversation_read(
        cls,
        user: User,
        conversation_id,
        _conversation: Conversation | None = None,
    ) -> ServiceResult[list[int]]:
        """
        Mark every unread message from others as read, then move the cursor.

        Not atomic across messages; re-running after a partial sweep is safe
        because receipts are unique per reader.

        Returns:
            ServiceResult with the ids of messages newly marked read
        """
        unread_ids = list(
            Message.objects.filter(conversation=_conversation)
            .exclude(sender=user)
            .exclude(read_receipts__user=user)
            .values_list("id", flat=True)
        )
        now = timezone.now()
        MessageReadReceipt.objects.bulk_create(
            [MessageReadReceipt(message_id=mid, user=user, read_at=now) for mid in unread_ids],
            ignore_conflicts=True,
        )
        if unread_ids:
            Message.objects.filter(id__in=unread_ids).update(status=MessageStatus.READ)

        ConversationService.touch_read_cursor(_conversation.id, user)
        cls.get_logger().debug(
            f"User {user.id} marked {len(unread_ids)} messages read "
            f"in conversation {_conversation.id}"
        )
        return ServiceResult.success(unread_ids)

    @classmethod
    def delete_message(cls, user: User, message_id) -> ServiceResult[Message]:
        """
        Soft delete a message (sender or admin only).

        If the message was the cached last message, the cache moves to the
        newest remaining message.

        Error codes:
            MESSAGE_NOT_FOUND: Missing or already deleted (404)
            PERMISSION_DENIED: Neither the sender nor an admin (403)
        """
        message = Message.objects.select_related("conversation").filter(id=message_id).first()
        if message is None:
            return ServiceResult.failure(
                "Message not found",
                error_code="MESSAGE_NOT_FOUND",
                status_code=404,
            )

        if not ChatAuthorizationService.can_delete_message(message, user):
            return ServiceResult.failure(
                "Only the sender or an admin can delete this message",
                error_code="PERMISSION_DENIED",
                status_code=403,
            )

        with cls.atomic():
            message.soft_delete(deleted_by=user)
            if message.conversation.last_message_id == message.id:
                ConversationService.refresh_last_message(message.conversation_id)

        cls.get_logger().info(f"User {user.id} deleted message {message.id}")
        return ServiceResult.success(message)

    @classmethod
    def upload_attachment(
        cls,
        sender: User,
        conversation_id,
        upload: UploadedFile,
        text: str = "",
    ) -> ServiceResult[SendOutcome]:
        """
        Store an uploaded file and send it as an image or file message.

        The caller has already checked size, extension, and MIME type.
        Access is checked before the file is written to storage. The
        stored MIME type and the image/file split come from the file's
        content, never from the client-declared Content-Type.
        """
        conversation = Conversation.objects.filter(id=conversation_id).first()
        if conversation is None:
            return ServiceResult.failure(
                "Conversation not found",
                error_code="CONVERSATION_NOT_FOUND",
                status_code=404,
            )
        gate = ChatAuthorizationService.authorize_send(conversation, sender)
        if not gate:
            return gate

        mime_type = detect_mime_type(upload) or "application/octet-stream"
        extension = os.path.splitext(upload.name)[1].lower()
        path = default_storage.save(
            f"{UPLOAD_CONFIG.UPLOAD_DIR}/{uuid.uuid4().hex}{extension}",
            upload,
        )

        return cls.send_message(
            sender=sender,
            conversation_id=conversation.id,
            text=text,
            message_type=MessageType.IMAGE if mime_type.startswith("image/") else MessageType.FILE,
            file_data={
                "fileUrl": default_storage.url(path),
                "fileName": upload.name,
                "fileSize": upload.size,
                "mimeType": mime_type,
            },
        )

    @classmethod
    def send_announcement(
        cls,
        admin: User,
        conversation_id,
        text: str,
    ) -> ServiceResult[SendOutcome]:
        """
        Post a system message authored by ``admin`` into one conversation.

        Skips conversations that stopped being active after targeting.
        Participants other than the admin get a system-announcement
        notification.

        Error codes:
            ADMIN_REQUIRED (403), CONVERSATION_NOT_ACTIVE (400)
        """
        gate = ChatAuthorizationService.authorize_admin(admin)
        if not gate:
            return gate

        invalid = cls.validate_content(MessageType.TEXT, text)
        if invalid:
            return invalid

        with cls.atomic():
            conversation = Conversation.objects.filter(
                id=conversation_id,
                status=ConversationStatus.ACTIVE,
            ).first()
            if conversation is None:
                return ServiceResult.failure(
                    "Conversation is not active",
                    error_code="CONVERSATION_NOT_ACTIVE",
                )
            message, conversation = cls._persist(
                conversation_id=conversation.id,
                sender=admin,
                sender_role=SenderRole.SYSTEM,
                message_type=MessageType.SYSTEM,
                text=text,
            )
            recipients = [
                p.user
                for p in conversation.participants.select_related("user")
                if p.user_id != admin.id
            ]
            notifications = NotificationService.notify_recipients(
                recipients=recipients,
                conversation=conversation,
                notification_type=ChatNotificationType.SYSTEM_ANNOUNCEMENT,
                title=NOTIFICATION_CONFIG.ANNOUNCEMENT_TITLE,
                body=message_preview(MessageType.TEXT, text),
                message=message,
            )

        return ServiceResult.success(
            SendOutcome(message=message, conversation=conversation, notifications=notifications)
        )


# =============================================================================
# StatsService
# =============================================================================


def format_duration(seconds: float | None) -> str:
    """Format seconds as "Xm Ys"."""
    total = int(round(seconds or 0))
    return f"{total // 60}m {total % 60}s"


class StatsService(BaseService):
    """Admin dashboard aggregates."""

    @classmethod
    def get_stats(cls, user: User) -> ServiceResult[dict]:
        """
        Conversation and message counts plus average response time.

        The average is weighted by each conversation's response count.

        Error codes:
            ADMIN_REQUIRED (403)
        """
        gate = ChatAuthorizationService.authorize_admin(user)
        if not gate:
            return gate

        conversations = Conversation.objects.aggregate(
            total=Count("id"),
            active=Count("id", filter=Q(status=ConversationStatus.ACTIVE)),
            blocked=Count("id", filter=Q(status=ConversationStatus.BLOCKED)),
            weighted=Sum(
                F("average_response_time") * F("response_count"),
                filter=Q(average_response_time__isnull=False),
            ),
            responses=Sum("response_count", filter=Q(average_response_time__isnull=False)),
            simple_average=Avg("average_response_time"),
        )
        since = timezone.now() - timedelta(hours=24)

        if conversations["responses"]:
            average = conversations["weighted"] / conversations["responses"]
        else:
            average = conversations["simple_average"] or 0.0

        stats = {
            "totalConversations": conversations["total"],
            "activeConversations": conversations["active"],
            "blockedConversations": conversations["blocked"],
            "totalMessages": Message.objects.count(),
            "messagesLast24h": Message.objects.filter(created_at__gte=since).count(),
            "avgResponseTimeSeconds": round(average, 2),
            "avgResponseTimeFormatted": format_duration(average),
        }
        return ServiceResult.success(stats)
