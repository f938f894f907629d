"""
Room broadcasting for real-time chat events.

The fan-out engine never touches connection handles or channel groups
directly; it talks to a RoomBroadcaster. This keeps the engine testable
with a recording fake and lets the transport change without touching
business logic.

Available Protocols:
    RoomBroadcaster: Emit to a conversation room, a user, everyone, or
        one connection; subscribe/unsubscribe connections to rooms

Implementations:
    ChannelLayerBroadcaster: Django Channels channel-layer groups

Group Naming:
    conversation_<id>  Room: connections that joined the conversation
    user_<id>          Personal room: every connection of one user
    presence           Every authenticated connection

Frame Format:
    Every group message is {"type": "chat.event", "event", "data",
    "exclude_user"}. ChatConsumer.chat_event() forwards it to the socket
    as {"event", "data"} unless the connection belongs to exclude_user.

Usage:
    broadcaster = ChannelLayerBroadcaster()
    await broadcaster.subscribe(self.channel_name, conversation_id)
    await broadcaster.emit_to_room(conversation_id, "message:new", payload)
    await broadcaster.emit_to_user(user_id, "notification:new", payload)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from channels.layers import get_channel_layer

from chat.constants import REALTIME_CONFIG

if TYPE_CHECKING:
    from typing import Any

HANDLER_TYPE = "chat.event"


def conversation_group(conversation_id) -> str:
    return REALTIME_CONFIG.CONVERSATION_GROUP.format(conversation_id=conversation_id)


def user_group(user_id) -> str:
    return REALTIME_CONFIG.USER_GROUP.format(user_id=user_id)


@runtime_checkable
class RoomBroadcaster(Protocol):
    """
    Protocol for real-time delivery.

    Each emit is a single fan-out call; the transport delivers it to every
    member of the target or to none.
    """

    async def emit_to_room(
        self,
        conversation_id: int,
        event: str,
        payload: dict[str, Any],
        exclude_user: int | None = None,
    ) -> None:
        """Deliver to every connection subscribed to the conversation room."""
        ...

    async def emit_to_user(self, user_id: int, event: str, payload: dict[str, Any]) -> None:
        """Deliver to every connection of one user."""
        ...

    async def emit_to_all(self, event: str, payload: dict[str, Any]) -> None:
        """Deliver to every authenticated connection."""
        ...

    async def emit_to_connection(self, handle: str, event: str, payload: dict[str, Any]) -> None:
        """Deliver to a single connection."""
        ...

    async def subscribe(self, handle: str, conversation_id: int) -> None:
        ...

    async def unsubscribe(self, handle: str, conversation_id: int) -> None:
        ...


class ChannelLayerBroadcaster:
    """
    RoomBroadcaster over the configured Django Channels layer.

    The layer is looked up lazily so settings overrides in tests take
    effect.
    """

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        return self._channel_layer or get_channel_layer()

    @staticmethod
    def _frame(event: str, payload: dict[str, Any], exclude_user: int | None = None) -> dict:
        return {
            "type": HANDLER_TYPE,
            "event": event,
            "data": payload,
            "exclude_user": exclude_user,
        }

    async def emit_to_room(self, conversation_id, event, payload, exclude_user=None) -> None:
        await self.channel_layer.group_send(
            conversation_group(conversation_id),
            self._frame(event, payload, exclude_user),
        )

    async def emit_to_user(self, user_id, event, payload) -> None:
        await self.channel_layer.group_send(user_group(user_id), self._frame(event, payload))

    async def emit_to_all(self, event, payload) -> None:
        await self.channel_layer.group_send(
            REALTIME_CONFIG.PRESENCE_GROUP,
            self._frame(event, payload),
        )

    async def emit_to_connection(self, handle, event, payload) -> None:
        await self.channel_layer.send(handle, self._frame(event, payload))

    async def subscribe(self, handle, conversation_id) -> None:
        await self.channel_layer.group_add(conversation_group(conversation_id), handle)

    async def unsubscribe(self, handle, conversation_id) -> None:
        await self.channel_layer.group_discard(conversation_group(conversation_id), handle)

