"""
WebSocket consumers for the chat application.

This module implements the WebSocket consumer for real-time chat
functionality. The consumer is a thin transport adapter: it owns the
socket and its channel-layer group memberships, and hands every client
frame to the FanoutEngine.

Consumers:
    ChatConsumer: One connection of one authenticated user

Authentication:
    JWTAuthMiddleware resolves the handshake token to scope["user"]. An
    anonymous scope is refused with close code 4001 before any event is
    processed.

Channel Groups:
    user_<id>          Joined on connect (personal room)
    presence           Joined on connect (global broadcasts)
    conversation_<id>  Joined on conversation:join after the access check

Frames:
    Client -> server: {"event": "message:send", "data": {...}}
    Server -> client: {"event": "message:new", "data": {...}}
    Failures come back as {"event": "error", "data": {"message", "code"}}
    to this connection only; the socket stays open.
"""

from __future__ import annotations

import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from chat.broadcast import ChannelLayerBroadcaster, user_group
from chat.constants import REALTIME_CONFIG
from chat.events import ServerEvent
from chat.fanout import FanoutEngine
from chat.middleware import SUBPROTOCOL_NAME

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat.

    Handles:
        - Refusing unauthenticated connections
        - Personal and presence group membership
        - Forwarding client frames to the fan-out engine
        - Delivering chat.event group messages to the socket

    Attributes:
        user: Authenticated user (None until connected)
        engine: FanoutEngine bound to the injected presence registry
    """

    # Injected through as_asgi(presence=..., broadcaster=...)
    presence = None
    broadcaster = None

    def __init__(self, *args, presence=None, broadcaster=None, **kwargs):
        super().__init__(*args, **kwargs)
        if presence is None:
            presence = self.presence
        if presence is None:
            from chat.apps import ChatConfig

            presence = ChatConfig.presence
        if broadcaster is None:
            broadcaster = self.broadcaster or ChannelLayerBroadcaster()
        self.engine = FanoutEngine(
            presence=presence,
            broadcaster=broadcaster,
        )
        self.user = None

    async def connect(self):
        """
        Handle WebSocket connection.

        Refuses anonymous users with 4001; otherwise joins the personal and
        presence groups, accepts, and registers presence.
        """
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            logger.warning("Rejected unauthenticated WebSocket connection")
            await self.close(code=REALTIME_CONFIG.CLOSE_UNAUTHENTICATED)
            return

        self.user = user
        await self.channel_layer.group_add(user_group(user.id), self.channel_name)
        await self.channel_layer.group_add(REALTIME_CONFIG.PRESENCE_GROUP, self.channel_name)

        subprotocol = SUBPROTOCOL_NAME if SUBPROTOCOL_NAME in self.scope.get("subprotocols", []) else None
        await self.accept(subprotocol=subprotocol)
        await self.engine.connect(user, self.channel_name)

    async def disconnect(self, close_code):
        """
        Handle WebSocket disconnection.

        Runs presence cleanup and leaves every group this connection joined.
        """
        if self.user is None:
            return

        await self.engine.disconnect(self.user, self.channel_name)
        await self.channel_layer.group_discard(user_group(self.user.id), self.channel_name)
        await self.channel_layer.group_discard(REALTIME_CONFIG.PRESENCE_GROUP, self.channel_name)
        logger.debug(f"User {self.user.id} closed with code {close_code}")

    async def receive_json(self, content, **kwargs):
        """
        Handle incoming WebSocket frames.

        Expected frame format:
            {"event": "conversation:join", "data": {"conversationId": 1}}
        """
        if not isinstance(content, dict) or not content.get("event"):
            await self.send_json(
                {
                    "event": ServerEvent.ERROR,
                    "data": {"message": "Frame must have an event name", "code": "INVALID_FRAME"},
                }
            )
            return

        await self.engine.dispatch(
            self.user,
            self.channel_name,
            content["event"],
            content.get("data"),
        )

    async def chat_event(self, event):
        """
        Handle chat.event messages from the channel layer.

        Skips delivery when the frame excludes this connection's user.
        """
        exclude_user = event.get("exclude_user")
        if exclude_user is not None and self.user is not None and exclude_user == self.user.id:
            return

        await self.send_json({"event": event["event"], "data": event["data"]})
