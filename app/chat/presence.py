"""
In-process presence registry.

Tracks which users are connected, which conversation rooms each
connection has joined, and who is typing where. State lives in memory and
is rebuilt as clients reconnect after a restart.

Design Decisions:
    - One instance per process, owned by ChatConfig and injected into the
      consumer; nothing reaches it through module globals
    - All mutations happen on the ASGI event loop thread, so plain dicts
      and sets need no locking
    - A user may hold several connections (tabs, devices). They are online
      while at least one connection is open
    - Typing state is per user, not per connection, and any disconnect of
      that user clears it so peers never see a stuck indicator
    - A multi-process deployment needs a shared store behind the same
      interface; channels_redis already carries the broadcasts

Usage:
    from chat.apps import ChatConfig

    presence = ChatConfig.presence
    came_online = presence.connect(user.id, channel_name)
    presence.join(channel_name, conversation_id)
    presence.start_typing(conversation_id, user.id)
    result = presence.disconnect(user.id, channel_name)
    for conversation_id in result.stopped_typing:
        ...
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class DisconnectResult:
    """
    What a disconnect changed.

    Attributes:
        went_offline: This was the user's last open connection
        stopped_typing: Conversations the user was typing in, now cleared
        left_rooms: Conversations this connection had joined
    """

    went_offline: bool = False
    stopped_typing: list[int] = field(default_factory=list)
    left_rooms: list[int] = field(default_factory=list)


class PresenceRegistry:
    """
    Maps users to live connection handles and conversations to typists.

    A handle is the channel name of one WebSocket connection.
    """

    def __init__(self) -> None:
        self._connections: dict[int, set[str]] = defaultdict(set)
        self._rooms: dict[str, set[int]] = defaultdict(set)
        self._typing: dict[int, set[int]] = defaultdict(set)

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    def connect(self, user_id: int, handle: str) -> bool:
        """
        Register a connection.

        Returns:
            True when the user was offline before this connection
        """
        came_online = not self._connections.get(user_id)
        self._connections[user_id].add(handle)
        logger.debug(
            f"User {user_id} connected on {handle} "
            f"({len(self._connections[user_id])} connection(s))"
        )
        return came_online

    def disconnect(self, user_id: int, handle: str) -> DisconnectResult:
        """
        Drop a connection, its room memberships, and the user's typing marks.

        Unknown handles are tolerated so cleanup can run more than once.
        """
        result = DisconnectResult()

        handles = self._connections.get(user_id)
        if handles is not None:
            handles.discard(handle)
            if not handles:
                del self._connections[user_id]
                result.went_offline = True

        result.left_rooms = sorted(self._rooms.pop(handle, set()))

        for conversation_id in list(self._typing):
            typists = self._typing[conversation_id]
            if user_id in typists:
                typists.discard(user_id)
                result.stopped_typing.append(conversation_id)
            if not typists:
                del self._typing[conversation_id]

        return result

    def is_online(self, user_id: int) -> bool:
        return bool(self._connections.get(user_id))

    def all_online(self) -> set[int]:
        return {user_id for user_id, handles in self._connections.items() if handles}

    def handles_for(self, user_id: int) -> set[str]:
        return set(self._connections.get(user_id, ()))

    # -------------------------------------------------------------------------
    # Rooms
    # -------------------------------------------------------------------------

    def join(self, handle: str, conversation_id: int) -> None:
        self._rooms[handle].add(conversation_id)

    def leave(self, handle: str, conversation_id: int) -> None:
        rooms = self._rooms.get(handle)
        if rooms is not None:
            rooms.discard(conversation_id)
            if not rooms:
                del self._rooms[handle]

    def has_joined(self, handle: str, conversation_id: int) -> bool:
        return conversation_id in self._rooms.get(handle, ())

    def rooms_for(self, handle: str) -> set[int]:
        return set(self._rooms.get(handle, ()))

    # -------------------------------------------------------------------------
    # Typing
    # -------------------------------------------------------------------------

    def start_typing(self, conversation_id: int, user_id: int) -> bool:
        """Mark typing. Returns False when the user was already marked."""
        typists = self._typing[conversation_id]
        if user_id in typists:
            return False
        typists.add(user_id)
        return True

    def stop_typing(self, conversation_id: int, user_id: int) -> bool:
        """Clear a typing mark. Returns False when there was none."""
        typists = self._typing.get(conversation_id)
        if not typists or user_id not in typists:
            return False
        typists.discard(user_id)
        if not typists:
            del self._typing[conversation_id]
        return True

    def typing_users(self, conversation_id: int) -> set[int]:
        return set(self._typing.get(conversation_id, ()))

    def clear(self) -> None:
        """Forget everything. Used on shutdown and between tests."""
        self._connections.clear()
        self._rooms.clear()
        self._typing.clear()
