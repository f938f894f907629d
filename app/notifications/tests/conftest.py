"""
Test configuration and fixtures for notification tests.

This module provides:
- Users receiving notifications
- Read and unread notification fixtures
- API client helpers for authenticated requests

Usage:
    def test_example(user, unread_notification, authenticated_client):
        response = authenticated_client.get('/api/v1/notifications/')
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import CustomerFactory
from notifications.tests.factories import ChatNotificationFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """User whose inbox is under test."""
    return CustomerFactory()


@pytest.fixture
def other_user(db):
    """Another user for isolation tests."""
    return CustomerFactory()


# =============================================================================
# Notification Fixtures
# =============================================================================


@pytest.fixture
def unread_notification(user):
    return ChatNotificationFactory(recipient=user)


@pytest.fixture
def read_notification(user):
    return ChatNotificationFactory(recipient=user, read=True)


@pytest.fixture
def other_user_notification(other_user):
    return ChatNotificationFactory(recipient=other_user)


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated client."""
    return APIClient()


@pytest.fixture
def authenticated_client(user):
    """Client authenticated as ``user`` with a JWT access token."""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}")
    return client
