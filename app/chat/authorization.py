"""
Service-level authorization for chat operations.

This module is the Conversation Authorization Gate. Both the REST views
and the WebSocket fan-out engine go through it, so membership rules hold
identically on every surface. It is distinct from DRF permission classes
(in permissions.py), which only wrap it for HTTP.

Rules:
    - A user may access a conversation (join its room, read, send) iff they
      are a participant OR hold the admin role
    - Vendors/customers outside the participant list are denied even when
      they share the product or order context
    - Moderation (block/unblock/announce/stats) requires role == admin;
      being a participant with the admin role snapshot is not enough
    - Nobody sends into a blocked conversation

Key Components:
    ChatAuthorizationService: Stateless checks returning bool or ServiceResult
    require_conversation_access: Decorator loading and gating a conversation

Error Codes:
    CONVERSATION_NOT_FOUND: No conversation with that id (404)
    NOT_AUTHORIZED: Not a participant and not an admin (403)
    ADMIN_REQUIRED: Operation needs the admin role (403)
    CONVERSATION_BLOCKED: Sending into a blocked conversation (403)

Usage:
    if ChatAuthorizationService.can_access(conversation, user):
        ...

    class MessageService(BaseService):
        @classmethod
        @require_conversation_access()
        def mark_conversation_read(cls, user, conversation_id, _conversation=None):
            ...
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Callable, TypeVar

from core.services import ServiceResult

if TYPE_CHECKING:
    from authentication.models import User
    from chat.models import Conversation, Message


T = TypeVar("T")

logger = logging.getLogger(__name__)


class ChatAuthorizationService:
    """
    Stateless service providing authorization checks for chat operations.

    Boolean helpers (is_*, can_*) are for composition; authorize_* helpers
    return a ServiceResult the caller can hand straight back.
    """

    @classmethod
    def is_admin(cls, user: User) -> bool:
        """True only for users whose account role is admin."""
        from authentication.models import UserRole

        return bool(user and user.is_authenticated and user.role == UserRole.ADMIN)

    @classmethod
    def is_participant(cls, user: User, conversation_id) -> bool:
        from chat.models import ConversationParticipant

        return ConversationParticipant.objects.filter(
            conversation_id=conversation_id,
            user=user,
        ).exists()

    @classmethod
    def can_access(cls, conversation: Conversation, user: User) -> bool:
        """
        Whether ``user`` may join, read, or post in ``conversation``.

        Participant OR admin. Status is not considered here; see can_send().
        """
        if user is None or not user.is_authenticated:
            return False
        if cls.is_admin(user):
            return True
        return cls.is_participant(user, conversation.id)

    @classmethod
    def authorize_access(cls, conversation: Conversation, user: User) -> ServiceResult[Conversation]:
        if cls.can_access(conversation, user):
            return ServiceResult.success(conversation)
        logger.warning(
            f"User {getattr(user, 'id', None)} denied access to conversation {conversation.id}"
        )
        return ServiceResult.failure(
            "Not authorized to access this conversation",
            error_code="NOT_AUTHORIZED",
            status_code=403,
        )

    @classmethod
    def authorize_send(cls, conversation: Conversation, user: User) -> ServiceResult[Conversation]:
        """
        Gate for posting a message: access check plus blocked-status check.

        Blocked conversations reject sends from everyone, admins included.
        """
        access = cls.authorize_access(conversation, user)
        if not access:
            return access
        if conversation.is_blocked:
            return ServiceResult.failure(
                "This conversation has been blocked",
                error_code="CONVERSATION_BLOCKED",
                status_code=403,
            )
        return access

    @classmethod
    def authorize_admin(cls, user: User) -> ServiceResult[User]:
        if cls.is_admin(user):
            return ServiceResult.success(user)
        logger.warning(f"User {getattr(user, 'id', None)} attempted an admin-only chat action")
        return ServiceResult.failure(
            "Admin access required",
            error_code="ADMIN_REQUIRED",
            status_code=403,
        )

    @classmethod
    def can_delete_message(cls, message: Message, user: User) -> bool:
        """Only the sender or an admin may delete a message."""
        return message.sender_id == user.id or cls.is_admin(user)

    @classmethod
    def get_accessible_conversation(cls, user: User, conversation_id) -> ServiceResult[Conversation]:
        """
        Load a conversation and check access in one step.

        Returns:
            404 CONVERSATION_NOT_FOUND, 403 NOT_AUTHORIZED, or the conversation
        """
        from chat.models import Conversation

        conversation = Conversation.objects.filter(id=conversation_id).first()
        if conversation is None:
            return ServiceResult.failure(
                "Conversation not found",
                error_code="CONVERSATION_NOT_FOUND",
                status_code=404,
            )
        return cls.authorize_access(conversation, user)


def require_conversation_access(
    conversation_id_param: str = "conversation_id",
    user_param: str = "user",
) -> Callable:
    """
    Decorator that loads a conversation and requires access to it.

    On success the conversation is injected as the ``_conversation`` kwarg.
    On failure the wrapped method is not called and the gate's
    ServiceResult (404 or 403) is returned instead.
    """

    def decorator(
        func: Callable[..., ServiceResult[T]],
    ) -> Callable[..., ServiceResult[T]]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> ServiceResult[T]:
            user = kwargs.get(user_param)
            conversation_id = kwargs.get(conversation_id_param)

            if user is None or conversation_id is None:
                return ServiceResult.failure(
                    "Missing required parameters",
                    error_code="INVALID_REQUEST",
                )

            gate = ChatAuthorizationService.get_accessible_conversation(user, conversation_id)
            if not gate:
                return gate

            kwargs["_conversation"] = gate.data
            return func(*args, **kwargs)

        return wrapper

    return decorator
