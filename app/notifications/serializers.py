"""
Serializers for notification API.

This module provides DRF serializers for the notification endpoints and
for the live notification:new push.

Serializers:
    ChatNotificationSerializer: Read-only serializer for notification details
    UnreadCountSerializer: Response for unread count
    MarkAllReadResponseSerializer: Response for mark all read endpoint

Usage:
    from notifications.serializers import ChatNotificationSerializer

    serializer = ChatNotificationSerializer(notification)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from notifications.models import ChatNotification


class ChatNotificationSerializer(serializers.ModelSerializer):
    """
    Serializer for ChatNotification model.

    Read-only; the same shape is returned by the REST inbox and embedded
    in live notification:new frames.
    """

    type = serializers.CharField(source="notification_type", read_only=True)
    recipientId = serializers.IntegerField(source="recipient_id", read_only=True)
    conversationId = serializers.IntegerField(source="conversation_id", read_only=True)
    messageId = serializers.IntegerField(source="message_id", read_only=True, allow_null=True)
    readAt = serializers.DateTimeField(source="read_at", read_only=True)
    actionUrl = serializers.CharField(source="action_url", read_only=True)
    actionText = serializers.CharField(source="action_text", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = ChatNotification
        fields = [
            "id",
            "type",
            "recipientId",
            "conversationId",
            "messageId",
            "title",
            "body",
            "read",
            "readAt",
            "actionUrl",
            "actionText",
            "createdAt",
        ]
        read_only_fields = fields


class UnreadCountSerializer(serializers.Serializer):
    """
    Response serializer for unread count.

    Fields:
        unreadCount: Integer count of unread notifications
    """

    unreadCount = serializers.IntegerField()


class MarkAllReadResponseSerializer(serializers.Serializer):
    """
    Response serializer for mark all read endpoint.

    Fields:
        markedCount: Integer count of notifications marked as read
    """

    markedCount = serializers.IntegerField()
