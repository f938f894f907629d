"""
WebSocket authentication middleware.

Provides JWT authentication for WebSocket connections.
Supports token via query string or subprotocol.

Related files:
    - routing.py: WebSocket URL patterns
    - consumers.py: WebSocket handlers (closes with 4001 when anonymous)
    - config/asgi.py: ASGI configuration

Token Passing Methods:
    1. Query string: ws://host/ws/chat/?token=<jwt_token>
    2. Subprotocol: Sec-WebSocket-Protocol: jwt, <jwt_token>

Design Decisions:
    - The token is checked once, at handshake time; every later event on
      the connection trusts scope["user"]
    - Any failure (missing, malformed, expired, unknown or inactive user)
      yields AnonymousUser, and the consumer refuses the connection before
      processing any event
    - Deactivated accounts are refused at the handshake even though their
      token is still valid. This is stricter than a socket path that only
      verifies the token, and matches the active-account rule REST applies
      through simplejwt
    - authenticate_token() is the synchronous core, raising
      AuthenticationError, so it can be tested and reused without ASGI

Usage in config/asgi.py:
    from chat.middleware import JWTAuthMiddleware

    application = ProtocolTypeRouter({
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddleware(URLRouter(websocket_urlpatterns))
        ),
    })
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from core.exceptions import AuthenticationError

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)

SUBPROTOCOL_NAME = "jwt"


def get_token_from_query(scope) -> str | None:
    """Extract token from query string."""
    query_string = scope.get("query_string", b"").decode()
    token_list = parse_qs(query_string).get("token", [])
    return token_list[0] if token_list else None


def get_token_from_subprotocol(scope) -> str | None:
    """
    Extract token from WebSocket subprotocol.

    Expects: Sec-WebSocket-Protocol: jwt, <token>
    """
    subprotocols = scope.get("subprotocols", [])
    if len(subprotocols) >= 2 and subprotocols[0] == SUBPROTOCOL_NAME:
        return subprotocols[1]
    return None


def authenticate_token(token: str | None) -> User:
    """
    Validate a JWT access token and resolve its user.

    Args:
        token: Raw access token

    Returns:
        The active user the token was issued to

    Raises:
        AuthenticationError: Missing, invalid or expired token, unknown
            user, or disabled account
    """
    if not token:
        raise AuthenticationError("Authentication token missing", error_code="TOKEN_MISSING")

    try:
        access_token = AccessToken(token)
    except TokenError as e:
        raise AuthenticationError(f"Invalid token: {e}", error_code="TOKEN_INVALID") from e

    user_id = access_token.get(api_settings.USER_ID_CLAIM)
    User = get_user_model()
    user = User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).first()
    if user is None:
        raise AuthenticationError("User not found", error_code="USER_NOT_FOUND")
    if not user.is_active:
        raise AuthenticationError("User account is disabled", error_code="USER_INACTIVE")
    return user


class JWTAuthMiddleware(BaseMiddleware):
    """
    JWT authentication middleware for WebSocket connections.

    Extracts JWT token from query string or subprotocol,
    validates it, and attaches the user to the scope.

    Token sources (in order of precedence):
        1. Query string: ?token=<jwt_token>
        2. Subprotocol: Sec-WebSocket-Protocol: jwt, <jwt_token>
    """

    async def __call__(self, scope, receive, send):
        """
        Authenticate the handshake, then pass through to the inner app.
        """
        scope = dict(scope)
        token = get_token_from_query(scope) or get_token_from_subprotocol(scope)
        scope["user"] = await self._get_user(token)
        return await super().__call__(scope, receive, send)

    @database_sync_to_async
    def _get_user(self, token: str | None):
        try:
            return authenticate_token(token)
        except AuthenticationError as e:
            logger.warning(f"WebSocket authentication failed: {e.message}")
            return AnonymousUser()
