"""
Views for notification API.

This module provides the ViewSet for the chat notification inbox.

ViewSets:
    NotificationViewSet: Inbox listing with read-state and delete actions

Endpoints:
    GET /api/v1/notifications/ - List user's notifications (paginated, filtered)
    PUT /api/v1/notifications/{id}/read/ - Mark single notification as read
    PUT /api/v1/notifications/read-all/ - Mark all notifications as read
    DELETE /api/v1/notifications/{id}/ - Delete a notification

Usage:
    # In urls.py
    from rest_framework.routers import DefaultRouter
    from notifications.views import NotificationViewSet

    router = DefaultRouter()
    router.register(r"", NotificationViewSet, basename="notification")
"""

from __future__ import annotations

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.pagination import PageLimitPagination
from notifications.serializers import (
    ChatNotificationSerializer,
    MarkAllReadResponseSerializer,
)
from notifications.services import NotificationService


@extend_schema_view(
    list=extend_schema(
        operation_id="list_notifications",
        summary="List notifications",
        description=(
            "Get paginated list of notifications for the authenticated user, "
            "newest first, with the total unread count."
        ),
        parameters=[
            OpenApiParameter(
                name="unreadOnly",
                type=bool,
                location=OpenApiParameter.QUERY,
                description="Only unread notifications (true/false)",
                required=False,
            ),
        ],
        tags=["Notifications - Inbox"],
    ),
    destroy=extend_schema(
        operation_id="delete_notification",
        summary="Delete notification",
        responses={404: OpenApiResponse(description="Notification not found")},
        tags=["Notifications - Inbox"],
    ),
)
class NotificationViewSet(viewsets.GenericViewSet):
    """
    ViewSet for notification operations.

    Provides:
    - list: GET / - List user's notifications with unreadCount
    - read: PUT /{id}/read/ - Mark single as read
    - read_all: PUT /read-all/ - Mark all as read
    - destroy: DELETE /{id}/ - Delete one notification

    Filtering:
    - ?unreadOnly=true - Only unread notifications

    Permissions:
    - All endpoints require authentication
    - Users can only access their own notifications; others' are 404
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ChatNotificationSerializer
    pagination_class = PageLimitPagination
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        unread_only = self.request.query_params.get("unreadOnly", "").lower() == "true"
        return NotificationService.list_for_user(self.request.user, unread_only=unread_only)

    def list(self, request):
        """List notifications with the unread count."""
        page = self.paginate_queryset(self.get_queryset())
        serializer = self.get_serializer(page, many=True)
        return self.paginator.get_paginated_response(
            serializer.data,
            extra={"unreadCount": NotificationService.unread_count(request.user)},
        )

    def destroy(self, request, pk=None):
        """Delete one of the user's notifications."""
        result = NotificationService.delete_notification(pk, request.user)
        if not result:
            return Response(result.to_response(), status=result.status_code)
        return Response({"success": True, "message": "Notification deleted"})

    @extend_schema(
        operation_id="mark_notification_read",
        summary="Mark notification as read",
        description=(
            "Mark a single notification as read. "
            "This operation is idempotent - already-read notifications return success."
        ),
        request=None,
        responses={
            200: ChatNotificationSerializer,
            404: OpenApiResponse(description="Notification not found"),
        },
        tags=["Notifications - Inbox"],
    )
    @action(detail=True, methods=["put"])
    def read(self, request, pk=None):
        """
        Mark single notification as read.

        Returns 404 if notification doesn't exist or belongs to another user.
        """
        result = NotificationService.mark_as_read(pk, request.user)
        if not result:
            return Response(result.to_response(), status=result.status_code)

        serializer = self.get_serializer(result.data)
        return Response({"success": True, "data": serializer.data})

    @extend_schema(
        operation_id="mark_all_notifications_read",
        summary="Mark all notifications as read",
        description="Mark all unread notifications for the authenticated user as read.",
        request=None,
        responses={200: MarkAllReadResponseSerializer},
        tags=["Notifications - Inbox"],
    )
    @action(detail=False, methods=["put"], url_path="read-all")
    def read_all(self, request):
        """
        Mark all user's notifications as read.

        Returns:
            {"success": true, "data": {"markedCount": <int>}}
        """
        result = NotificationService.mark_all_as_read(request.user)
        serializer = MarkAllReadResponseSerializer({"markedCount": result.data})
        return Response({"success": True, "data": serializer.data})
