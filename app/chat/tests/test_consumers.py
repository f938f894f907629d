"""
Tests for ChatConsumer over a real in-memory channel layer.

Each test runs one async scenario through WebsocketCommunicator with the
JWT middleware in front of the consumer, so frames travel the same path
as in production: handshake auth, group membership, chat.event delivery.

Test Categories:
    1. Handshake - token required, 4001 on refusal
    2. Frames - error for malformed frames
    3. Delivery - room fan-out, personal notifications, exclude_user
"""

import pytest
from asgiref.sync import async_to_sync
from channels.testing import WebsocketCommunicator
from rest_framework_simplejwt.tokens import AccessToken

from chat.consumers import ChatConsumer
from chat.middleware import JWTAuthMiddleware

pytestmark = pytest.mark.django_db(transaction=True)


def make_application(presence):
    return JWTAuthMiddleware(ChatConsumer.as_asgi(presence=presence))


def communicator_for(application, user=None, token=None):
    if user is not None:
        token = str(AccessToken.for_user(user))
    path = f"/ws/chat/?token={token}" if token else "/ws/chat/"
    return WebsocketCommunicator(application, path)


async def receive_event(communicator, event, limit=10):
    """Read frames until one named ``event`` arrives."""
    for _ in range(limit):
        frame = await communicator.receive_json_from(timeout=2)
        if frame["event"] == event:
            return frame
    raise AssertionError(f"{event} not received")


# =============================================================================
# Handshake
# =============================================================================


class TestHandshake:
    def test_missing_token_is_refused_with_4001(self, presence):
        async def scenario():
            communicator = communicator_for(make_application(presence))
            connected, code = await communicator.connect()
            return connected, code

        connected, code = async_to_sync(scenario)()

        assert connected is False
        assert code == 4001

    def test_garbage_token_is_refused(self, presence, db):
        async def scenario():
            communicator = communicator_for(make_application(presence), token="garbage")
            return await communicator.connect()

        connected, code = async_to_sync(scenario)()

        assert connected is False
        assert code == 4001

    def test_inactive_user_is_refused(self, presence, customer):
        token = str(AccessToken.for_user(customer))
        customer.is_active = False
        customer.save(update_fields=["is_active"])

        async def scenario():
            communicator = communicator_for(make_application(presence), token=token)
            return await communicator.connect()

        connected, _ = async_to_sync(scenario)()

        assert connected is False
        assert not presence.is_online(customer.id)

    def test_valid_token_connects_and_receives_online_snapshot(self, presence, customer):
        async def scenario():
            communicator = communicator_for(make_application(presence), customer)
            connected, _ = await communicator.connect()
            snapshot = await receive_event(communicator, "users:online")
            await communicator.disconnect()
            return connected, snapshot

        connected, snapshot = async_to_sync(scenario)()

        assert connected is True
        assert snapshot["data"] == {"userIds": [customer.id]}
        assert not presence.is_online(customer.id)


# =============================================================================
# Frames
# =============================================================================


class TestFrames:
    def test_frame_without_event_gets_error(self, presence, customer):
        async def scenario():
            communicator = communicator_for(make_application(presence), customer)
            await communicator.connect()
            await communicator.send_json_to({"data": {}})
            error = await receive_event(communicator, "error")
            await communicator.disconnect()
            return error

        error = async_to_sync(scenario)()

        assert error["data"]["code"] == "INVALID_FRAME"

    def test_failure_keeps_socket_open(self, presence, customer, conversation):
        async def scenario():
            communicator = communicator_for(make_application(presence), customer)
            await communicator.connect()
            await communicator.send_json_to({"event": "conversation:join", "data": "abc"})
            error = await receive_event(communicator, "error")
            await communicator.send_json_to({"event": "conversation:join", "data": conversation.id})
            joined = await receive_event(communicator, "conversation:joined")
            await communicator.disconnect()
            return error, joined

        error, joined = async_to_sync(scenario)()

        assert error["data"]["code"] == "VALIDATION_ERROR"
        assert joined["data"] == {"conversationId": conversation.id}


# =============================================================================
# Delivery
# =============================================================================


class TestDelivery:
    def test_message_reaches_room_and_recipient_notification(
        self, presence, customer, vendor, conversation
    ):
        async def scenario():
            application = make_application(presence)
            buyer = communicator_for(application, customer)
            seller = communicator_for(application, vendor)
            await buyer.connect()
            await seller.connect()

            for communicator in (buyer, seller):
                await communicator.send_json_to({"event": "conversation:join", "data": conversation.id})
                await receive_event(communicator, "conversation:joined")

            await buyer.send_json_to(
                {
                    "event": "message:send",
                    "data": {"conversationId": conversation.id, "text": "Still available?"},
                }
            )
            seen_by_buyer = await receive_event(buyer, "message:new")
            seen_by_seller = await receive_event(seller, "message:new")
            notification = await receive_event(seller, "notification:new")

            await buyer.disconnect()
            await seller.disconnect()
            return seen_by_buyer, seen_by_seller, notification

        seen_by_buyer, seen_by_seller, notification = async_to_sync(scenario)()

        assert seen_by_buyer["data"]["message"]["id"] == seen_by_seller["data"]["message"]["id"]
        assert seen_by_seller["data"]["message"]["content"]["text"] == "Still available?"
        assert notification["data"]["conversation"] == conversation.id
        assert notification["data"]["message"]["text"] == "Still available?"

    def test_typing_is_not_echoed_to_typist(self, presence, customer, vendor, conversation):
        async def scenario():
            application = make_application(presence)
            buyer = communicator_for(application, customer)
            seller = communicator_for(application, vendor)
            await buyer.connect()
            await seller.connect()
            for communicator in (buyer, seller):
                await communicator.send_json_to({"event": "conversation:join", "data": conversation.id})
                await receive_event(communicator, "conversation:joined")

            await buyer.send_json_to({"event": "typing:start", "data": conversation.id})
            typing = await receive_event(seller, "user:typing")

            # Drain presence frames, then the typist's socket must be quiet
            while not await buyer.receive_nothing(timeout=0.2):
                frame = await buyer.receive_json_from()
                assert frame["event"] != "user:typing"

            await buyer.disconnect()
            stop = await receive_event(seller, "user:stop-typing")
            await seller.disconnect()
            return typing, stop

        typing, stop = async_to_sync(scenario)()

        assert typing["data"]["userId"] == customer.id
        assert typing["data"]["userName"] == "Jane Buyer"
        assert stop["data"] == {"userId": customer.id, "conversationId": conversation.id}
