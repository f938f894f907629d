"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Message content limits
- Attachment uploads (size, allowed types)
- Notification text and retention
- System announcement fan-out
- Real-time room naming and close codes

Import example:
    from chat.constants import MESSAGE_CONFIG, UPLOAD_CONFIG
"""

from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits
    MAX_TEXT_LENGTH: Final[int] = 5000  # Characters, inclusive

    # Preview lengths
    LAST_MESSAGE_PREVIEW_LENGTH: Final[int] = 100
    LIVE_NOTIFICATION_PREVIEW_LENGTH: Final[int] = 50

    # Listing
    DEFAULT_PAGE_SIZE: Final[int] = 50


# =============================================================================
# Upload Configuration
# =============================================================================


class UPLOAD_CONFIG:
    """Configuration for chat attachments uploaded over REST."""

    MAX_FILE_SIZE_BYTES: Final[int] = 5 * 1024 * 1024  # 5MB

    ALLOWED_EXTENSIONS: Final[tuple] = ("jpeg", "jpg", "png", "gif", "pdf", "doc", "docx")

    ALLOWED_MIME_TYPES: Final[tuple] = (
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    )

    # Storage prefix under default_storage
    UPLOAD_DIR: Final[str] = "chat"


# =============================================================================
# Notification Configuration
# =============================================================================


class NOTIFICATION_CONFIG:
    """Configuration for chat notifications."""

    # Read notifications older than this are purged; unread are kept forever
    RETENTION_DAYS: Final[int] = 30

    BODY_PREVIEW_LENGTH: Final[int] = 100

    NEW_MESSAGE_TITLE: Final[str] = "New message from {name}"
    NEW_CONVERSATION_TITLE: Final[str] = "New conversation from {name}"
    ADMIN_WARNING_TITLE: Final[str] = "Conversation blocked by moderator"
    CONVERSATION_CLOSED_TITLE: Final[str] = "Conversation archived"
    ANNOUNCEMENT_TITLE: Final[str] = "Announcement"

    ACTION_URL: Final[str] = "/chat/{conversation_id}"
    ACTION_TEXT: Final[str] = "View Message"


# =============================================================================
# Announcement Configuration
# =============================================================================


class ANNOUNCEMENT_CONFIG:
    """Configuration for admin system announcements."""

    # Conversations processed concurrently during one announcement
    MAX_CONCURRENCY: Final[int] = 5


# =============================================================================
# Real-time Configuration
# =============================================================================


class REALTIME_CONFIG:
    """Channel-layer group names and WebSocket close codes."""

    CONVERSATION_GROUP: Final[str] = "conversation_{conversation_id}"
    USER_GROUP: Final[str] = "user_{user_id}"
    PRESENCE_GROUP: Final[str] = "presence"

    # Custom close codes (4000-4999 are application defined)
    CLOSE_UNAUTHENTICATED: Final[int] = 4001
