"""
Message fan-out engine.

Turns validated client intents into persisted state and real-time
deliveries. Every handler is a short pipeline:

    validate -> authorize -> persist -> broadcast

Each stage returns a ServiceResult; the first failure short-circuits the
rest and becomes an ``error`` frame sent to the acting connection only.
Nothing is broadcast unless the write it describes has committed.

Key Components:
    FanoutEngine: Event dispatch plus publish_* helpers shared with REST
    serialize_message / notification_payload: Frame payload builders
    get_fanout_engine: Engine wired to the process presence registry

Design Decisions:
    - The engine depends on the RoomBroadcaster protocol, never on channel
      groups or connection handles beyond passing them through
    - ORM work runs through database_sync_to_async; serialization happens
      inside the same sync call so no lazy query escapes to the event loop
    - Live notification pushes go only to users the presence registry
      reports online at the moment of the push; the persisted notification
      is the durable record
    - Moderation events go to each affected user's personal room exactly
      once, never to the conversation room
    - Announcements process conversations with bounded concurrency
      (ANNOUNCEMENT_CONFIG.MAX_CONCURRENCY)
    - Unexpected exceptions are logged and reported to the actor as a
      generic error; the connection stays open

Usage:
    engine = FanoutEngine(presence=ChatConfig.presence, broadcaster=ChannelLayerBroadcaster())
    await engine.connect(user, channel_name)
    await engine.dispatch(user, channel_name, "message:send", {"conversationId": 1, "text": "hi"})
    await engine.disconnect(user, channel_name)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async

from chat.authorization import ChatAuthorizationService
from chat.broadcast import ChannelLayerBroadcaster
from chat.constants import ANNOUNCEMENT_CONFIG, MESSAGE_CONFIG
from chat.events import ClientEvent, ServerEvent, parse_event
from chat.models import Conversation
from chat.serializers import MessageSerializer
from chat.services import ConversationService, MessageService
from core.services import ServiceResult
from notifications.serializers import ChatNotificationSerializer

if TYPE_CHECKING:
    from authentication.models import User
    from chat.broadcast import RoomBroadcaster
    from chat.models import Message
    from chat.presence import PresenceRegistry
    from notifications.models import ChatNotification

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong, please try again"


# =============================================================================
# Payload builders (sync; call from a DB thread)
# =============================================================================


def serialize_message(message: Message) -> dict:
    return MessageSerializer(message).data


def notification_payload(notification: ChatNotification) -> dict:
    """
    Live notification:new payload.

    {notification, conversation, message: {id, text, sender} | null}, the
    message text cut to the live preview length.
    """
    message = notification.message
    message_summary = None
    if message is not None:
        sender = message.sender
        message_summary = {
            "id": message.id,
            "text": message.preview[: MESSAGE_CONFIG.LIVE_NOTIFICATION_PREVIEW_LENGTH],
            "sender": (
                {"id": sender.id, "name": sender.display_name, "avatar": sender.avatar}
                if sender
                else None
            ),
        }
    return {
        "notification": ChatNotificationSerializer(notification).data,
        "conversation": notification.conversation_id,
        "message": message_summary,
    }


def notification_pushes(notifications) -> list[tuple[int, dict]]:
    """(recipient id, payload) pairs ready for publish_notifications()."""
    return [(n.recipient_id, notification_payload(n)) for n in notifications]


def user_summary(user: User) -> dict:
    return {"userId": user.id, "role": user.role, "name": user.display_name}


# =============================================================================
# Engine
# =============================================================================


class FanoutEngine:
    """
    Real-time event handling for one process.

    Attributes:
        presence: Process presence registry
        broadcaster: RoomBroadcaster used for every delivery
    """

    def __init__(self, presence: PresenceRegistry, broadcaster: RoomBroadcaster):
        self.presence = presence
        self.broadcaster = broadcaster
        self._handlers = {
            ClientEvent.JOIN: self.join_conversation,
            ClientEvent.LEAVE: self.leave_conversation,
            ClientEvent.SEND: self.send_message,
            ClientEvent.TYPING_START: self.start_typing,
            ClientEvent.TYPING_STOP: self.stop_typing,
            ClientEvent.READ: self.mark_read,
            ClientEvent.MARK_READ: self.mark_conversation_read,
            ClientEvent.BLOCK: self.block_conversation,
            ClientEvent.UNBLOCK: self.unblock_conversation,
            ClientEvent.ANNOUNCE: self.send_announcement,
            ClientEvent.CHECK_ONLINE: self.check_online,
        }

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def dispatch(self, user: User, handle: str, event: str, data) -> None:
        """Validate a client frame and run its handler."""
        parsed = parse_event(event, data)
        if not parsed:
            await self.emit_error(handle, parsed)
            return

        try:
            await self._handlers[event](user, handle, parsed.data)
        except Exception:
            logger.exception(f"Unhandled error processing {event} for user {user.id}")
            await self.emit_error(
                handle,
                ServiceResult.failure(GENERIC_ERROR, error_code="INTERNAL_ERROR", status_code=500),
            )

    async def connect(self, user: User, handle: str) -> None:
        """
        Register a new authenticated connection.

        Announces the user as online on their first connection and sends
        the newcomer the current online list.
        """
        came_online = self.presence.connect(user.id, handle)
        if came_online:
            await self.broadcaster.emit_to_all(ServerEvent.ONLINE, user_summary(user))
        await self.broadcaster.emit_to_connection(
            handle,
            ServerEvent.USERS_ONLINE,
            {"userIds": sorted(self.presence.all_online())},
        )
        logger.info(f"User {user.id} connected ({handle})")

    async def disconnect(self, user: User, handle: str) -> None:
        """
        Clean up a closed connection.

        Clears every typing mark of the user with a stop-typing broadcast
        per conversation, and announces offline when no connection remains.
        """
        result = self.presence.disconnect(user.id, handle)

        for conversation_id in result.left_rooms:
            await self.broadcaster.unsubscribe(handle, conversation_id)

        for conversation_id in result.stopped_typing:
            await self.broadcaster.emit_to_room(
                conversation_id,
                ServerEvent.STOP_TYPING,
                {"userId": user.id, "conversationId": conversation_id},
                exclude_user=user.id,
            )

        if result.went_offline:
            await self.broadcaster.emit_to_all(ServerEvent.OFFLINE, user_summary(user))
        logger.info(f"User {user.id} disconnected ({handle})")

    async def emit_error(self, handle: str, result: ServiceResult) -> None:
        payload = {"message": result.error, "code": result.error_code}
        if result.errors:
            payload["errors"] = result.errors
        await self.broadcaster.emit_to_connection(handle, ServerEvent.ERROR, payload)

    # -------------------------------------------------------------------------
    # Rooms
    # -------------------------------------------------------------------------

    async def join_conversation(self, user: User, handle: str, data: dict) -> None:
        conversation_id = data["conversationId"]
        gate = await self._join(user, conversation_id)
        if not gate:
            await self.emit_error(handle, gate)
            return

        await self.broadcaster.subscribe(handle, conversation_id)
        self.presence.join(handle, conversation_id)
        await self.broadcaster.emit_to_connection(
            handle,
            ServerEvent.JOINED,
            {"conversationId": conversation_id},
        )
        logger.debug(f"User {user.id} joined conversation {conversation_id}")

    @database_sync_to_async
    def _join(self, user: User, conversation_id) -> ServiceResult:
        gate = ChatAuthorizationService.get_accessible_conversation(user, conversation_id)
        if gate:
            ConversationService.touch_read_cursor(conversation_id, user)
        return gate

    async def leave_conversation(self, user: User, handle: str, data: dict) -> None:
        conversation_id = data["conversationId"]
        await self.broadcaster.unsubscribe(handle, conversation_id)
        self.presence.leave(handle, conversation_id)
        if self.presence.stop_typing(conversation_id, user.id):
            await self._broadcast_stop_typing(user, conversation_id)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def send_message(self, user: User, handle: str, data: dict) -> None:
        result = await self._send(user, data)
        if not result:
            await self.emit_error(handle, result)
            return
        await self.publish_message(*result.data)

    @database_sync_to_async
    def _send(self, user: User, data: dict) -> ServiceResult:
        result = MessageService.send_message(
            sender=user,
            conversation_id=data["conversationId"],
            text=data.get("text"),
            message_type=data["type"],
            file_data=data.get("fileData"),
            reply_to_id=data.get("replyTo"),
        )
        return result.map(
            lambda outcome: (
                outcome.conversation.id,
                serialize_message(outcome.message),
                notification_pushes(outcome.notifications),
            )
        )

    async def publish_message(
        self,
        conversation_id: int,
        message: dict,
        pushes: list[tuple[int, dict]],
        **extra,
    ) -> None:
        """One room broadcast, then live notifications for online recipients."""
        await self.broadcaster.emit_to_room(
            conversation_id,
            ServerEvent.MESSAGE_NEW,
            {"message": message, "conversationId": conversation_id, **extra},
        )
        await self.publish_notifications(pushes)

    async def publish_notifications(self, pushes: list[tuple[int, dict]]) -> None:
        for recipient_id, payload in pushes:
            if self.presence.is_online(recipient_id):
                await self.broadcaster.emit_to_user(
                    recipient_id,
                    ServerEvent.NOTIFICATION_NEW,
                    payload,
                )

    async def publish_message_deleted(self, conversation_id: int, message_id: int) -> None:
        await self.broadcaster.emit_to_room(
            conversation_id,
            ServerEvent.MESSAGE_DELETED,
            {"messageId": message_id, "conversationId": conversation_id},
        )

    # -------------------------------------------------------------------------
    # Typing
    # -------------------------------------------------------------------------

    async def start_typing(self, user: User, handle: str, data: dict) -> None:
        conversation_id = data["conversationId"]
        if not self.presence.has_joined(handle, conversation_id):
            await self.emit_error(
                handle,
                ServiceResult.failure(
                    "Join the conversation before typing",
                    error_code="NOT_IN_ROOM",
                ),
            )
            return

        self.presence.start_typing(conversation_id, user.id)
        await self.broadcaster.emit_to_room(
            conversation_id,
            ServerEvent.TYPING,
            {"userId": user.id, "userName": user.display_name, "conversationId": conversation_id},
            exclude_user=user.id,
        )

    async def stop_typing(self, user: User, handle: str, data: dict) -> None:
        conversation_id = data["conversationId"]
        was_typing = self.presence.stop_typing(conversation_id, user.id)
        if was_typing or self.presence.has_joined(handle, conversation_id):
            await self._broadcast_stop_typing(user, conversation_id)

    async def _broadcast_stop_typing(self, user: User, conversation_id: int) -> None:
        await self.broadcaster.emit_to_room(
            conversation_id,
            ServerEvent.STOP_TYPING,
            {"userId": user.id, "conversationId": conversation_id},
            exclude_user=user.id,
        )

    # -------------------------------------------------------------------------
    # Read state
    # -------------------------------------------------------------------------

    async def mark_read(self, user: User, handle: str, data: dict) -> None:
        result = await self._mark_read(user, data["messageId"])
        if not result:
            await self.emit_error(handle, result)
            return

        outcome = result.data
        if outcome is None or outcome.message.sender_id is None:
            return

        await self.broadcaster.emit_to_user(
            outcome.message.sender_id,
            ServerEvent.READ_RECEIPT,
            {
                "messageId": outcome.message.id,
                "conversationId": outcome.message.conversation_id,
                "readBy": user.id,
                "readAt": outcome.receipt.read_at.isoformat(),
            },
        )

    @database_sync_to_async
    def _mark_read(self, user: User, message_id) -> ServiceResult:
        return MessageService.mark_read(user, message_id)

    async def mark_conversation_read(self, user: User, handle: str, data: dict) -> None:
        conversation_id = data["conversationId"]
        result = await self._mark_conversation_read(user, conversation_id)
        if not result:
            await self.emit_error(handle, result)
            return
        await self.broadcaster.emit_to_connection(
            handle,
            ServerEvent.MARKED_READ,
            {"conversationId": conversation_id, "count": len(result.data)},
        )

    @database_sync_to_async
    def _mark_conversation_read(self, user: User, conversation_id) -> ServiceResult:
        return MessageService.mark_conversation_read(user=user, conversation_id=conversation_id)

    # -------------------------------------------------------------------------
    # Moderation
    # -------------------------------------------------------------------------

    async def block_conversation(self, user: User, handle: str, data: dict) -> None:
        result = await self._moderate(user, data["conversationId"], block=True, reason=data["reason"])
        if not result:
            await self.emit_error(handle, result)
            return
        await self.publish_block(*result.data)

    async def unblock_conversation(self, user: User, handle: str, data: dict) -> None:
        result = await self._moderate(user, data["conversationId"], block=False)
        if not result:
            await self.emit_error(handle, result)
            return
        await self.publish_unblock(*result.data)

    @database_sync_to_async
    def _moderate(self, user: User, conversation_id, block: bool, reason: str = "") -> ServiceResult:
        gate = ChatAuthorizationService.authorize_admin(user)
        if not gate:
            return gate
        conversation = Conversation.objects.filter(id=conversation_id).first()
        if conversation is None:
            return ServiceResult.failure(
                "Conversation not found",
                error_code="CONVERSATION_NOT_FOUND",
                status_code=404,
            )
        if block:
            result = ConversationService.block(conversation, user, reason)
            return result.map(
                lambda outcome: (
                    conversation.id,
                    outcome.recipient_ids,
                    user.id,
                    reason,
                    notification_pushes(outcome.notifications),
                )
            )
        result = ConversationService.unblock(conversation, user)
        return result.map(lambda outcome: (conversation.id, outcome.recipient_ids, user.id))

    async def publish_block(
        self,
        conversation_id: int,
        recipient_ids: list[int],
        blocked_by: int,
        reason: str,
        pushes: list[tuple[int, dict]],
    ) -> None:
        """conversation:blocked to each affected user's personal room, once each."""
        payload = {"conversationId": conversation_id, "reason": reason, "blockedBy": blocked_by}
        for user_id in recipient_ids:
            await self.broadcaster.emit_to_user(user_id, ServerEvent.BLOCKED, payload)
        await self.publish_notifications(pushes)

    async def publish_unblock(
        self,
        conversation_id: int,
        recipient_ids: list[int],
        unblocked_by: int,
    ) -> None:
        payload = {"conversationId": conversation_id, "unblockedBy": unblocked_by}
        for user_id in recipient_ids:
            await self.broadcaster.emit_to_user(user_id, ServerEvent.UNBLOCKED, payload)

    async def send_announcement(self, user: User, handle: str, data: dict) -> None:
        """
        Post a system message into every targeted active conversation.

        At most ANNOUNCEMENT_CONFIG.MAX_CONCURRENCY conversations are in
        flight at once. A failure in one conversation is logged and does
        not stop the others.
        """
        gate = ChatAuthorizationService.authorize_admin(user)
        if not gate:
            await self.emit_error(handle, gate)
            return

        text = data["message"]
        targets = await self._announcement_targets(data.get("targetRole"))
        semaphore = asyncio.Semaphore(ANNOUNCEMENT_CONFIG.MAX_CONCURRENCY)

        async def announce(conversation_id: int) -> bool:
            async with semaphore:
                try:
                    result = await self._announce(user, conversation_id, text)
                    if not result:
                        return False
                    await self.publish_message(*result.data, isSystemMessage=True)
                    return True
                except Exception:
                    logger.exception(f"Announcement failed for conversation {conversation_id}")
                    return False

        delivered = await asyncio.gather(*(announce(cid) for cid in targets))
        sent = sum(1 for ok in delivered if ok)

        logger.info(f"Admin {user.id} sent announcement to {sent}/{len(targets)} conversations")
        await self.broadcaster.emit_to_connection(
            handle,
            ServerEvent.ANNOUNCEMENT_SENT,
            {"success": True, "conversations": sent},
        )

    @database_sync_to_async
    def _announcement_targets(self, target_role: str | None) -> list[int]:
        return ConversationService.announcement_targets(target_role)

    @database_sync_to_async
    def _announce(self, user: User, conversation_id: int, text: str) -> ServiceResult:
        result = MessageService.send_announcement(user, conversation_id, text)
        return result.map(
            lambda outcome: (
                outcome.conversation.id,
                serialize_message(outcome.message),
                notification_pushes(outcome.notifications),
            )
        )

    # -------------------------------------------------------------------------
    # Presence queries
    # -------------------------------------------------------------------------

    async def check_online(self, user: User, handle: str, data: dict) -> None:
        target = data["targetUserId"]
        await self.broadcaster.emit_to_connection(
            handle,
            ServerEvent.ONLINE_STATUS,
            {"userId": target, "isOnline": self.presence.is_online(target)},
        )


def get_fanout_engine() -> FanoutEngine:
    """Engine bound to this process's presence registry and channel layer."""
    from chat.apps import ChatConfig

    return FanoutEngine(presence=ChatConfig.presence, broadcaster=ChannelLayerBroadcaster())
