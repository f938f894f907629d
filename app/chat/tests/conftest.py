"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures for each marketplace role
- A customer/vendor conversation about a vendor's product
- API client helpers for authenticated requests
- A recording RoomBroadcaster and a FanoutEngine wired to it

Usage:
    def test_example(conversation, customer_client):
        response = customer_client.get(f"/api/v1/chat/conversations/{conversation.id}/")
        assert response.status_code == 200

    def test_fanout(engine, broadcaster, customer, conversation):
        run(engine.dispatch)(customer, "conn-1", "conversation:join", conversation.id)
        assert broadcaster.events("conversation:joined")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import AdminFactory, CustomerFactory, VendorFactory
from catalog.tests.factories import ProductFactory
from chat.fanout import FanoutEngine
from chat.presence import PresenceRegistry
from chat.tests.factories import create_conversation


# =============================================================================
# Recording broadcaster
# =============================================================================


@dataclass
class Emission:
    """One call made on the broadcaster."""

    kind: str  # room, user, all, connection
    target: Any
    event: str
    payload: dict
    exclude_user: int | None = None


@dataclass
class RecordingBroadcaster:
    """
    In-memory RoomBroadcaster that records every call instead of sending.

    ``subscriptions`` mirrors the room membership the engine asked for.
    """

    emissions: list[Emission] = field(default_factory=list)
    subscriptions: set[tuple[str, int]] = field(default_factory=set)

    async def emit_to_room(self, conversation_id, event, payload, exclude_user=None):
        self.emissions.append(Emission("room", conversation_id, event, payload, exclude_user))

    async def emit_to_user(self, user_id, event, payload):
        self.emissions.append(Emission("user", user_id, event, payload))

    async def emit_to_all(self, event, payload):
        self.emissions.append(Emission("all", None, event, payload))

    async def emit_to_connection(self, handle, event, payload):
        self.emissions.append(Emission("connection", handle, event, payload))

    async def subscribe(self, handle, conversation_id):
        self.subscriptions.add((handle, conversation_id))

    async def unsubscribe(self, handle, conversation_id):
        self.subscriptions.discard((handle, conversation_id))

    def events(self, event: str, kind: str | None = None) -> list[Emission]:
        return [e for e in self.emissions if e.event == event and (kind is None or e.kind == kind)]

    def errors(self) -> list[dict]:
        return [e.payload for e in self.emissions if e.event == "error"]

    def clear(self) -> None:
        self.emissions.clear()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def customer(db):
    return CustomerFactory(name="Jane Buyer")


@pytest.fixture
def vendor(db):
    return VendorFactory(name="Corner Shop")


@pytest.fixture
def moderator(db):
    """A user with the admin role."""
    return AdminFactory(name="Mod")


@pytest.fixture
def other_customer(db):
    return CustomerFactory()


@pytest.fixture
def other_vendor(db):
    return VendorFactory()


# =============================================================================
# Conversation Fixtures
# =============================================================================


@pytest.fixture
def product(vendor):
    return ProductFactory(vendor=vendor, name="Walnut Desk")


@pytest.fixture
def conversation(customer, vendor, product):
    """Active customer/vendor conversation about the vendor's product."""
    return create_conversation(customer, vendor, product)


# =============================================================================
# API Client Fixtures
# =============================================================================


def bearer_client(user) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}")
    return client


@pytest.fixture
def api_client():
    """Unauthenticated client."""
    return APIClient()


@pytest.fixture
def customer_client(customer):
    return bearer_client(customer)


@pytest.fixture
def vendor_client(vendor):
    return bearer_client(vendor)


@pytest.fixture
def moderator_client(moderator):
    return bearer_client(moderator)


@pytest.fixture
def other_customer_client(other_customer):
    return bearer_client(other_customer)


# =============================================================================
# Real-time Fixtures
# =============================================================================


@pytest.fixture
def presence():
    return PresenceRegistry()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def engine(presence, broadcaster):
    return FanoutEngine(presence=presence, broadcaster=broadcaster)
