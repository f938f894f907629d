"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Conversation, ConversationPair, Message model tests
- test_services.py: Conversation, message and stats service tests
- test_authorization.py: Participant and admin checks
- test_events.py: WebSocket frame validation
- test_presence.py: In-process presence registry
- test_fanout.py: Event handling and broadcast targets
- test_middleware.py: Token handshake
- test_consumers.py: WebSocket consumer tests
- test_views.py: REST API endpoint tests

Usage:
    pytest chat/tests/
    pytest chat/tests/test_fanout.py
"""
