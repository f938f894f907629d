"""
Pagination classes for chat API.

Both classes use the shared page/limit envelope from core.pagination:
- ConversationPagination: Conversation lists (most recently updated first)
- MessagePagination: Message lists (newest page first, larger pages)

Design Decisions:
    - Ordering is fixed by the service querysets, not by the paginator
    - Message pages are larger since chat history is read in bulk
"""

from chat.constants import MESSAGE_CONFIG
from core.pagination import PageLimitPagination


class ConversationPagination(PageLimitPagination):
    """
    Pagination for conversation lists.

    Default: 20 conversations per page
    Maximum: 100 conversations per page
    """

    page_size = 20


class MessagePagination(PageLimitPagination):
    """
    Pagination for message lists.

    Default: 50 messages per page
    Maximum: 100 messages per page
    """

    page_size = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE
