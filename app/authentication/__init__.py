"""
Authentication application.

Provides the user store the chat subsystem relies on: identity, display
name, avatar, marketplace role, and the active/disabled flag. Tokens are
issued by djangorestframework-simplejwt (see authentication.urls).

Usage:
    from authentication.models import User, UserRole
"""
