"""
Chat app for real-time customer/vendor messaging.

This app handles:
- Conversations scoped to a product, one per customer/vendor pair
- Message sending, history, soft deletion and attachments
- WebSocket fan-out: presence, rooms, typing and read receipts
- Admin moderation (block, unblock, announcements, stats)

Related apps:
    - authentication: User model and marketplace roles
    - catalog: Products and orders a conversation refers to
    - notifications: Per-user inbox written alongside each message

WebSocket Support:
    Uses Django Channels for real-time communication.
    See middleware.py for the token handshake.
    See consumers.py for the socket lifecycle and fanout.py for event handling.

Usage:
    from chat.services import ConversationService, MessageService

    result = ConversationService.find_or_create(customer, product_id=product.id)
    conversation = result.data.conversation

    result = MessageService.send_message(
        sender=customer,
        conversation_id=conversation.id,
        text="Is this still available?",
    )
"""
