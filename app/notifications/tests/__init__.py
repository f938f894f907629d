"""
Tests for notifications app.

This package contains test modules for:
- test_services.py: NotificationService tests
- test_tasks.py: Retention purge task tests
- test_views.py: Inbox API endpoint tests

Usage:
    pytest notifications/tests/
    pytest notifications/tests/test_services.py
"""
