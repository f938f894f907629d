"""
Django admin configuration for notification models.

Registers the chat notification inbox with the admin site.
"""

from django.contrib import admin

from notifications.models import ChatNotification


@admin.register(ChatNotification)
class ChatNotificationAdmin(admin.ModelAdmin):
    """
    Admin configuration for ChatNotification.

    Read state is editable; everything else is shown for support lookups.
    """

    list_display = [
        "id",
        "recipient",
        "notification_type",
        "title",
        "read",
        "created_at",
    ]
    list_filter = ["notification_type", "read"]
    search_fields = ["recipient__email", "title", "body"]
    raw_id_fields = ["recipient", "conversation", "message"]
    readonly_fields = ["created_at", "updated_at", "read_at"]
    ordering = ["-created_at"]
