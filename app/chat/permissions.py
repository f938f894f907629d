"""
Permission classes for chat API.

This module provides DRF permission classes for the chat system:
- IsChatAdmin: User's account role is admin
- CanAccessConversation: Participant or admin (object level)

Design Decisions:
    - Both classes delegate to ChatAuthorizationService so the REST and
      WebSocket surfaces share one rule set
    - The admin check uses the account role, not Django's is_staff flag
    - Service methods re-check the same rules; these classes give early,
      schema-visible 403s
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

from chat.authorization import ChatAuthorizationService

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView

    from chat.models import Conversation


class IsChatAdmin(permissions.BasePermission):
    """Allows access only to users with the admin role."""

    message = "Admin access required."

    def has_permission(self, request: Request, view: APIView) -> bool:
        return ChatAuthorizationService.is_admin(request.user)


class CanAccessConversation(permissions.BasePermission):
    """
    Allows access to participants of the conversation and to admins.

    Non-participant vendors and customers are denied even when they share
    the conversation's product or order.
    """

    message = "Not authorized to access this conversation."

    def has_object_permission(self, request: Request, view: APIView, obj: Conversation) -> bool:
        return ChatAuthorizationService.can_access(obj, request.user)
