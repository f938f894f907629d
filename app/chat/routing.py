"""
WebSocket URL routing for the chat application.

This module defines the URL patterns for WebSocket connections,
mapping paths to their corresponding consumers.

URL Patterns:
    ws/chat/ - One connection per client; rooms are joined with events

Authentication:
    JWT token should be passed as query parameter (?token=<jwt_access_token>)
    or as the subprotocol pair ["jwt", <token>]. JWTAuthMiddleware
    validates it and attaches the user to the consumer's scope.

Presence:
    Every consumer instance receives the process-wide PresenceRegistry
    owned by ChatConfig.
"""

from django.urls import path

from chat import consumers
from chat.apps import ChatConfig

websocket_urlpatterns = [
    path(
        "ws/chat/",
        consumers.ChatConsumer.as_asgi(presence=ChatConfig.presence),
    ),
]
