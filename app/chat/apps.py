"""
Chat application configuration.

This app provides the real-time marketplace chat:
- Customer/vendor conversations keyed on the participant pair
- Messages with read receipts and soft deletion
- WebSocket fan-out (messages, typing, presence, moderation)
- REST endpoints backed by the same service layer

The process-wide PresenceRegistry lives on ChatConfig so the ASGI
routing and the REST views share one instance.
"""

from django.apps import AppConfig

from chat.presence import PresenceRegistry


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"

    presence: PresenceRegistry = PresenceRegistry()
