"""
Tests for chat service layer.

This module tests:
- ConversationService: find-or-create, listing, unread counts, status
  transitions, deletion, announcement targeting
- MessageService: content validation, send, read receipts, deletion,
  attachments, announcements
- StatsService: admin aggregates and duration formatting

Test Organization:
    - Each service has its own test class
    - Tests use descriptive names following: test_<scenario>_<expected_outcome>
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time

from authentication.tests.factories import CustomerFactory, VendorFactory
from catalog.tests.factories import OrderFactory, ProductFactory
from chat.models import (
    Conversation,
    ConversationPair,
    ConversationParticipant,
    ConversationStatus,
    ConversationType,
    Message,
    MessageReadReceipt,
    MessageStatus,
    MessageType,
    SenderRole,
)
from chat.services import (
    ConversationService,
    MessageService,
    StatsService,
    format_duration,
)
from chat.tests.factories import (
    PNG_BYTES,
    ConversationFactory,
    MessageFactory,
    ParticipantFactory,
    create_conversation,
    pdf_upload,
    png_upload,
)
from notifications.models import ChatNotification, ChatNotificationType


# =============================================================================
# ConversationService.find_or_create
# =============================================================================


class TestFindOrCreate:
    """Tests for ConversationService.find_or_create()."""

    def test_creates_conversation_with_both_participants(self, customer, vendor, product):
        result = ConversationService.find_or_create(customer, product_id=product.id)

        assert result.success
        outcome = result.data
        assert outcome.created is True
        conversation = outcome.conversation
        assert conversation.status == ConversationStatus.ACTIVE
        assert conversation.conversation_type == ConversationType.PRODUCT_INQUIRY
        assert conversation.context_product_id == product.id
        assert set(conversation.participant_user_ids()) == {customer.id, vendor.id}
        roles = dict(
            ConversationParticipant.objects.filter(conversation=conversation).values_list(
                "user_id", "role"
            )
        )
        assert roles == {customer.id: "customer", vendor.id: "vendor"}

    def test_stores_canonical_pair(self, customer, vendor, product):
        conversation = ConversationService.find_or_create(customer, product_id=product.id).data.conversation

        pair = ConversationPair.objects.get(conversation=conversation)
        assert (pair.user_lower_id, pair.user_higher_id) == ConversationPair.canonical(
            customer.id, vendor.id
        )

    def test_notifies_vendor_of_new_conversation(self, customer, vendor, product):
        outcome = ConversationService.find_or_create(customer, product_id=product.id).data

        assert len(outcome.notifications) == 1
        notification = outcome.notifications[0]
        assert notification.recipient_id == vendor.id
        assert notification.notification_type == ChatNotificationType.NEW_CONVERSATION
        assert notification.title == "New conversation from Jane Buyer"
        assert notification.body == "Walnut Desk"

    def test_second_call_returns_existing_conversation(self, customer, product):
        first = ConversationService.find_or_create(customer, product_id=product.id).data
        second = ConversationService.find_or_create(customer, product_id=product.id).data

        assert second.created is False
        assert second.notifications == []
        assert second.conversation.id == first.conversation.id
        assert Conversation.objects.count() == 1

    def test_other_product_of_same_vendor_reuses_conversation_and_updates_context(
        self, customer, vendor, product
    ):
        first = ConversationService.find_or_create(customer, product_id=product.id).data
        other_product = ProductFactory(vendor=vendor)

        second = ConversationService.find_or_create(customer, product_id=other_product.id).data

        assert second.conversation.id == first.conversation.id
        second.conversation.refresh_from_db()
        assert second.conversation.context_product_id == other_product.id

    def test_blocked_conversation_is_returned_without_reopening(self, customer, vendor, product):
        conversation = create_conversation(customer, vendor, product, status=ConversationStatus.BLOCKED)
        other_product = ProductFactory(vendor=vendor)

        outcome = ConversationService.find_or_create(customer, product_id=other_product.id).data

        assert outcome.conversation.id == conversation.id
        conversation.refresh_from_db()
        assert conversation.status == ConversationStatus.BLOCKED
        assert conversation.context_product_id == product.id

    def test_order_makes_order_support_conversation(self, customer, product):
        order = OrderFactory(customer=customer)

        outcome = ConversationService.find_or_create(
            customer, product_id=product.id, order_id=order.id, subject="Late delivery"
        ).data

        assert outcome.conversation.conversation_type == ConversationType.ORDER_SUPPORT
        assert outcome.conversation.context_order_id == order.id
        assert outcome.conversation.context_subject == "Late delivery"

    def test_explicit_vendor_overrides_product_vendor(self, customer, product, other_vendor):
        outcome = ConversationService.find_or_create(
            customer, product_id=product.id, vendor_id=other_vendor.id
        ).data

        assert other_vendor.id in outcome.conversation.participant_user_ids()

    def test_missing_product_returns_404(self, customer):
        result = ConversationService.find_or_create(customer, product_id=999999)

        assert not result.success
        assert result.error_code == "PRODUCT_NOT_FOUND"
        assert result.status_code == 404

    def test_missing_vendor_returns_404(self, customer, product):
        result = ConversationService.find_or_create(customer, product_id=product.id, vendor_id=999999)

        assert result.error_code == "VENDOR_NOT_FOUND"
        assert result.status_code == 404

    def test_missing_order_returns_404(self, customer, product):
        result = ConversationService.find_or_create(customer, product_id=product.id, order_id=999999)

        assert result.error_code == "ORDER_NOT_FOUND"
        assert result.status_code == 404

    def test_vendor_cannot_open_conversation_with_self(self, vendor, product):
        result = ConversationService.find_or_create(vendor, product_id=product.id)

        assert result.error_code == "SELF_CONVERSATION"
        assert result.status_code == 400
        assert Conversation.objects.count() == 0


# =============================================================================
# ConversationService listing and unread counts
# =============================================================================


class TestListForUser:
    def test_participant_sees_own_conversations_only(self, conversation, customer, other_customer, vendor):
        foreign = create_conversation(other_customer, VendorFactory())

        ids = list(ConversationService.list_for_user(customer).values_list("id", flat=True))

        assert ids == [conversation.id]
        assert foreign.id not in ids

    def test_admin_sees_every_conversation(self, conversation, moderator, other_customer):
        foreign = create_conversation(other_customer, VendorFactory())

        ids = set(ConversationService.list_for_user(moderator).values_list("id", flat=True))

        assert ids == {conversation.id, foreign.id}

    def test_status_filter(self, conversation, customer):
        archived = create_conversation(customer, VendorFactory(), status=ConversationStatus.ARCHIVED)

        ids = list(
            ConversationService.list_for_user(customer, status=ConversationStatus.ARCHIVED).values_list(
                "id", flat=True
            )
        )

        assert ids == [archived.id]


class TestUnreadCount:
    def test_counts_messages_from_others_after_cursor(self, conversation, customer, vendor):
        ConversationParticipant.objects.filter(conversation=conversation, user=vendor).update(
            last_read_at=timezone.now() - timedelta(hours=1)
        )
        MessageFactory.create_batch(3, conversation=conversation, sender=customer)
        MessageFactory(conversation=conversation, sender=vendor)

        assert ConversationService.unread_count(conversation, vendor) == 3

    def test_read_and_deleted_messages_are_not_counted(self, conversation, customer, vendor):
        ConversationParticipant.objects.filter(conversation=conversation, user=vendor).update(
            last_read_at=timezone.now() - timedelta(hours=1)
        )
        read, deleted, unread = MessageFactory.create_batch(3, conversation=conversation, sender=customer)
        MessageReadReceipt.objects.create(message=read, user=vendor)
        deleted.soft_delete(deleted_by=customer)

        assert ConversationService.unread_count(conversation, vendor) == 1

    def test_non_participant_has_no_unread(self, conversation, customer, moderator):
        MessageFactory(conversation=conversation, sender=customer)

        assert ConversationService.unread_count(conversation, moderator) == 0


# =============================================================================
# ConversationService status transitions
# =============================================================================


class TestArchive:
    def test_participant_archives_active_conversation(self, conversation, customer, vendor):
        result = ConversationService.archive(conversation, customer)

        assert result.success
        conversation.refresh_from_db()
        assert conversation.status == ConversationStatus.ARCHIVED
        assert result.data.recipient_ids == [vendor.id]
        assert [n.recipient_id for n in result.data.notifications] == [vendor.id]
        assert result.data.notifications[0].notification_type == ChatNotificationType.CONVERSATION_CLOSED

    def test_archiving_twice_is_invalid(self, conversation, customer):
        ConversationService.archive(conversation, customer)

        result = ConversationService.archive(conversation, customer)

        assert result.error_code == "INVALID_STATE_TRANSITION"
        assert result.status_code == 400

    def test_outsider_cannot_archive(self, conversation, other_customer):
        result = ConversationService.archive(conversation, other_customer)

        assert result.error_code == "NOT_AUTHORIZED"
        assert result.status_code == 403


class TestBlock:
    def test_admin_blocks_with_audit_fields(self, conversation, moderator):
        result = ConversationService.block(conversation, moderator, "Spam")

        assert result.success
        conversation.refresh_from_db()
        assert conversation.status == ConversationStatus.BLOCKED
        assert conversation.blocked_at is not None
        assert conversation.blocked_by_id == moderator.id
        assert conversation.flagged_reason == "Spam"
        assert conversation.is_monitored is True
        assert conversation.monitored_by_id == moderator.id

    def test_block_warns_every_participant(self, conversation, moderator, customer, vendor):
        outcome = ConversationService.block(conversation, moderator, "Spam").data

        assert outcome.recipient_ids == [customer.id, vendor.id, moderator.id]
        assert {n.recipient_id for n in outcome.notifications} == {customer.id, vendor.id}
        assert all(n.notification_type == ChatNotificationType.ADMIN_WARNING for n in outcome.notifications)
        assert all(n.body == "Spam" for n in outcome.notifications)

    def test_admin_participant_is_informed_once(self, conversation, moderator, customer, vendor):
        ConversationParticipant.objects.create(conversation=conversation, user=moderator, role="admin")

        outcome = ConversationService.block(conversation, moderator, "Spam").data

        assert outcome.recipient_ids == [customer.id, vendor.id, moderator.id]
        assert moderator.id not in {n.recipient_id for n in outcome.notifications}

    def test_non_admin_cannot_block(self, conversation, vendor):
        result = ConversationService.block(conversation, vendor, "Spam")

        assert result.error_code == "ADMIN_REQUIRED"
        assert result.status_code == 403
        conversation.refresh_from_db()
        assert conversation.status == ConversationStatus.ACTIVE

    def test_blocking_blocked_conversation_is_invalid(self, conversation, moderator):
        ConversationService.block(conversation, moderator, "Spam")

        result = ConversationService.block(conversation, moderator, "Again")

        assert result.error_code == "INVALID_STATE_TRANSITION"

    def test_archived_conversation_cannot_be_blocked(self, conversation, moderator, customer):
        ConversationService.archive(conversation, customer)

        result = ConversationService.block(conversation, moderator, "Spam")

        assert result.error_code == "INVALID_STATE_TRANSITION"


class TestUnblock:
    def test_unblock_returns_to_active(self, conversation, moderator, customer, vendor):
        ConversationService.block(conversation, moderator, "Spam")

        result = ConversationService.unblock(conversation, moderator)

        assert result.success
        conversation.refresh_from_db()
        assert conversation.status == ConversationStatus.ACTIVE
        assert conversation.blocked_at is None
        assert result.data.recipient_ids == [customer.id, vendor.id, moderator.id]

    def test_unblocking_active_conversation_is_invalid(self, conversation, moderator):
        result = ConversationService.unblock(conversation, moderator)

        assert result.error_code == "INVALID_STATE_TRANSITION"

    def test_non_admin_cannot_unblock(self, conversation, moderator, customer):
        ConversationService.block(conversation, moderator, "Spam")

        result = ConversationService.unblock(conversation, customer)

        assert result.error_code == "ADMIN_REQUIRED"


class TestDeleteConversation:
    def test_delete_cascades_messages_and_notifications(self, conversation, customer):
        MessageService.send_message(sender=customer, conversation_id=conversation.id, text="hi")
        conversation_id = conversation.id

        result = ConversationService.delete(conversation, customer)

        assert result.data == conversation_id
        assert not Conversation.objects.filter(id=conversation_id).exists()
        assert not Message.all_objects.filter(conversation_id=conversation_id).exists()
        assert not ChatNotification.objects.filter(conversation_id=conversation_id).exists()
        assert not ConversationPair.objects.filter(conversation_id=conversation_id).exists()

    def test_outsider_cannot_delete(self, conversation, other_customer):
        result = ConversationService.delete(conversation, other_customer)

        assert result.error_code == "NOT_AUTHORIZED"
        assert Conversation.objects.filter(id=conversation.id).exists()


class TestAnnouncementTargets:
    def test_only_active_conversations(self, conversation, customer, moderator):
        blocked = create_conversation(customer, VendorFactory(), status=ConversationStatus.BLOCKED)

        targets = ConversationService.announcement_targets()

        assert targets == [conversation.id]
        assert blocked.id not in targets

    def test_role_filter(self, conversation):
        vendors_only = ConversationFactory()
        ParticipantFactory(conversation=vendors_only, user=VendorFactory())
        ParticipantFactory(conversation=vendors_only, user=VendorFactory())

        assert ConversationService.announcement_targets("customer") == [conversation.id]
        assert set(ConversationService.announcement_targets("vendor")) == {
            conversation.id,
            vendors_only.id,
        }
        assert set(ConversationService.announcement_targets("all")) == {
            conversation.id,
            vendors_only.id,
        }


# =============================================================================
# MessageService.validate_content / send_message
# =============================================================================


class TestValidateContent:
    def test_text_at_limit_is_valid(self):
        assert MessageService.validate_content(MessageType.TEXT, "x" * 5000) is None

    def test_text_over_limit_is_rejected(self):
        result = MessageService.validate_content(MessageType.TEXT, "x" * 5001)

        assert result.error_code == "MESSAGE_TOO_LONG"
        assert result.status_code == 400

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_blank_text_is_rejected(self, text):
        result = MessageService.validate_content(MessageType.TEXT, text)

        assert result.error_code == "EMPTY_CONTENT"

    def test_unknown_type_is_rejected(self):
        result = MessageService.validate_content("video", "hi")

        assert result.error_code == "INVALID_MESSAGE_TYPE"

    def test_file_without_caption_is_valid(self):
        assert MessageService.validate_content(MessageType.FILE, "") is None


class TestSendMessage:
    """Tests for MessageService.send_message()."""

    def test_send_persists_message_and_updates_cache(self, conversation, customer):
        result = MessageService.send_message(
            sender=customer,
            conversation_id=conversation.id,
            text="Is this in stock?",
        )

        assert result.success
        message = result.data.message
        assert message.sender_id == customer.id
        assert message.sender_role == SenderRole.CUSTOMER
        assert message.status == MessageStatus.SENT
        conversation.refresh_from_db()
        assert conversation.last_message_id == message.id
        assert conversation.last_message_text == "Is this in stock?"
        assert conversation.last_message_sender_id == customer.id
        assert conversation.last_message_type == MessageType.TEXT
        assert conversation.last_message_at == message.created_at
        assert conversation.total_messages == 1

    def test_cache_text_is_truncated(self, conversation, customer):
        MessageService.send_message(sender=customer, conversation_id=conversation.id, text="a" * 300)

        conversation.refresh_from_db()
        assert conversation.last_message_text == "a" * 100

    def test_send_notifies_other_participants(self, conversation, customer, vendor):
        outcome = MessageService.send_message(
            sender=customer, conversation_id=conversation.id, text="Hello"
        ).data

        assert [n.recipient_id for n in outcome.notifications] == [vendor.id]
        notification = outcome.notifications[0]
        assert notification.notification_type == ChatNotificationType.NEW_MESSAGE
        assert notification.title == "New message from Jane Buyer"
        assert notification.body == "Hello"
        assert notification.message_id == outcome.message.id

    def test_text_at_limit_is_accepted(self, conversation, customer):
        result = MessageService.send_message(
            sender=customer, conversation_id=conversation.id, text="x" * 5000
        )

        assert result.success
        assert len(result.data.message.text) == 5000

    def test_text_over_limit_writes_nothing(self, conversation, customer):
        result = MessageService.send_message(
            sender=customer, conversation_id=conversation.id, text="x" * 5001
        )

        assert result.error_code == "MESSAGE_TOO_LONG"
        assert Message.all_objects.count() == 0
        assert ChatNotification.objects.count() == 0

    def test_content_is_checked_before_existence(self, customer):
        result = MessageService.send_message(sender=customer, conversation_id=999999, text="")

        assert result.error_code == "EMPTY_CONTENT"

    def test_missing_conversation_returns_404(self, customer):
        result = MessageService.send_message(sender=customer, conversation_id=999999, text="hi")

        assert result.error_code == "CONVERSATION_NOT_FOUND"
        assert result.status_code == 404

    def test_outsider_cannot_send(self, conversation, other_vendor):
        result = MessageService.send_message(
            sender=other_vendor, conversation_id=conversation.id, text="hi"
        )

        assert result.error_code == "NOT_AUTHORIZED"
        assert result.status_code == 403
        assert Message.all_objects.count() == 0

    def test_blocked_conversation_rejects_participants_and_admins(self, conversation, customer, moderator):
        ConversationService.block(conversation, moderator, "Spam")

        for sender in (customer, moderator):
            result = MessageService.send_message(
                sender=sender, conversation_id=conversation.id, text="hi"
            )
            assert result.error_code == "CONVERSATION_BLOCKED"
            assert result.status_code == 403
        assert Message.all_objects.count() == 0

    def test_archived_conversation_still_accepts_messages(self, conversation, customer):
        ConversationService.archive(conversation, customer)

        result = MessageService.send_message(
            sender=customer, conversation_id=conversation.id, text="One more thing"
        )

        assert result.success

    def test_admin_non_participant_sends_as_admin(self, conversation, moderator, customer, vendor):
        outcome = MessageService.send_message(
            sender=moderator, conversation_id=conversation.id, text="Moderator here"
        ).data

        assert outcome.message.sender_role == SenderRole.ADMIN
        assert {n.recipient_id for n in outcome.notifications} == {customer.id, vendor.id}

    def test_reply_to_message_in_same_conversation(self, conversation, customer, vendor):
        original = MessageService.send_message(
            sender=customer, conversation_id=conversation.id, text="Question"
        ).data.message

        reply = MessageService.send_message(
            sender=vendor,
            conversation_id=conversation.id,
            text="Answer",
            reply_to_id=original.id,
        ).data.message

        assert reply.reply_to_id == original.id

    def test_reply_to_foreign_message_is_rejected(self, conversation, customer, other_customer):
        foreign = create_conversation(other_customer, VendorFactory())
        foreign_message = MessageFactory(conversation=foreign, sender=other_customer)

        result = MessageService.send_message(
            sender=customer,
            conversation_id=conversation.id,
            text="hi",
            reply_to_id=foreign_message.id,
        )

        assert result.error_code == "INVALID_REPLY_TO"

    def test_reply_latency_updates_average_response_time(self, conversation, customer, vendor):
        with freeze_time("2026-03-01 10:00:00"):
            MessageService.send_message(sender=customer, conversation_id=conversation.id, text="Q")
        with freeze_time("2026-03-01 10:01:30"):
            MessageService.send_message(sender=vendor, conversation_id=conversation.id, text="A")
        with freeze_time("2026-03-01 10:02:00"):
            MessageService.send_message(sender=vendor, conversation_id=conversation.id, text="A2")

        conversation.refresh_from_db()
        assert conversation.average_response_time == pytest.approx(90.0)
        assert conversation.response_count == 1
        assert conversation.total_messages == 3


# =============================================================================
# MessageService listing and read receipts
# =============================================================================


class TestListMessages:
    def test_excludes_deleted_newest_first(self, conversation, customer, vendor):
        first = MessageFactory(conversation=conversation, sender=customer)
        deleted = MessageFactory(conversation=conversation, sender=vendor)
        last = MessageFactory(conversation=conversation, sender=vendor)
        deleted.soft_delete(deleted_by=vendor)

        result = MessageService.list_messages(user=customer, conversation_id=conversation.id)

        assert [m.id for m in result.data] == [last.id, first.id]

    def test_outsider_is_denied(self, conversation, other_customer):
        result = MessageService.list_messages(user=other_customer, conversation_id=conversation.id)

        assert result.error_code == "NOT_AUTHORIZED"

    def test_missing_conversation_returns_404(self, customer):
        result = MessageService.list_messages(user=customer, conversation_id=999999)

        assert result.error_code == "CONVERSATION_NOT_FOUND"


class TestMarkRead:
    def test_first_read_creates_receipt(self, conversation, customer, vendor):
        message = MessageFactory(conversation=conversation, sender=customer)

        result = MessageService.mark_read(vendor, message.id)

        assert result.success
        assert result.data.message.id == message.id
        assert result.data.receipt.user_id == vendor.id
        message.refresh_from_db()
        assert message.status == MessageStatus.READ

    def test_second_read_is_silent_no_op(self, conversation, customer, vendor):
        message = MessageFactory(conversation=conversation, sender=customer)
        MessageService.mark_read(vendor, message.id)

        result = MessageService.mark_read(vendor, message.id)

        assert result.success
        assert result.data is None
        assert MessageReadReceipt.objects.filter(message=message, user=vendor).count() == 1

    def test_sender_reading_own_message_is_no_op(self, conversation, customer):
        message = MessageFactory(conversation=conversation, sender=customer)

        result = MessageService.mark_read(customer, message.id)

        assert result.data is None
        assert not MessageReadReceipt.objects.exists()

    def test_missing_message_is_no_op(self, customer):
        result = MessageService.mark_read(customer, 999999)

        assert result.success
        assert result.data is None

    def test_outsider_is_denied(self, conversation, customer, other_customer):
        message = MessageFactory(conversation=conversation, sender=customer)

        result = MessageService.mark_read(other_customer, message.id)

        assert result.error_code == "NOT_AUTHORIZED"
        assert not MessageReadReceipt.objects.exists()


class TestMarkConversationRead:
    def test_marks_unread_messages_from_others(self, conversation, customer, vendor):
        a, b = MessageFactory.create_batch(2, conversation=conversation, sender=customer)
        MessageFactory(conversation=conversation, sender=vendor)
        MessageReadReceipt.objects.create(message=a, user=vendor)

        result = MessageService.mark_conversation_read(user=vendor, conversation_id=conversation.id)

        assert result.data == [b.id]
        assert MessageReadReceipt.objects.filter(user=vendor).count() == 2
        assert ConversationService.unread_count(conversation, vendor) == 0

    def test_repeated_sweep_marks_nothing(self, conversation, customer, vendor):
        MessageFactory(conversation=conversation, sender=customer)
        MessageService.mark_conversation_read(user=vendor, conversation_id=conversation.id)

        result = MessageService.mark_conversation_read(user=vendor, conversation_id=conversation.id)

        assert result.data == []

    def test_outsider_is_denied(self, conversation, other_customer):
        result = MessageService.mark_conversation_read(
            user=other_customer, conversation_id=conversation.id
        )

        assert result.error_code == "NOT_AUTHORIZED"


# =============================================================================
# MessageService deletion, attachments, announcements
# =============================================================================


class TestDeleteMessage:
    def test_sender_soft_deletes(self, conversation, customer):
        message = MessageFactory(conversation=conversation, sender=customer)

        result = MessageService.delete_message(customer, message.id)

        assert result.success
        stored = Message.all_objects.get(id=message.id)
        assert stored.is_deleted is True
        assert stored.deleted_by_id == customer.id

    def test_admin_may_delete_any_message(self, conversation, customer, moderator):
        message = MessageFactory(conversation=conversation, sender=customer)

        assert MessageService.delete_message(moderator, message.id).success

    def test_other_participant_cannot_delete(self, conversation, customer, vendor):
        message = MessageFactory(conversation=conversation, sender=customer)

        result = MessageService.delete_message(vendor, message.id)

        assert result.error_code == "PERMISSION_DENIED"
        assert result.status_code == 403

    def test_already_deleted_returns_404(self, conversation, customer):
        message = MessageFactory(conversation=conversation, sender=customer)
        MessageService.delete_message(customer, message.id)

        result = MessageService.delete_message(customer, message.id)

        assert result.error_code == "MESSAGE_NOT_FOUND"
        assert result.status_code == 404

    def test_deleting_last_message_moves_cache_back(self, conversation, customer, vendor):
        with freeze_time("2026-03-01 10:00:00"):
            first = MessageService.send_message(
                sender=customer, conversation_id=conversation.id, text="first"
            ).data.message
        with freeze_time("2026-03-01 10:05:00"):
            last = MessageService.send_message(
                sender=vendor, conversation_id=conversation.id, text="second"
            ).data.message

        MessageService.delete_message(vendor, last.id)

        conversation.refresh_from_db()
        assert conversation.last_message_id == first.id
        assert conversation.last_message_text == "first"
        assert conversation.last_message_sender_id == customer.id

    def test_deleting_only_message_clears_cache(self, conversation, customer):
        message = MessageService.send_message(
            sender=customer, conversation_id=conversation.id, text="only"
        ).data.message

        MessageService.delete_message(customer, message.id)

        conversation.refresh_from_db()
        assert conversation.last_message_id is None
        assert conversation.last_message_text == ""
        assert conversation.last_message_at is None


class TestUploadAttachment:
    def test_image_upload_becomes_image_message(self, conversation, customer):
        result = MessageService.upload_attachment(
            sender=customer, conversation_id=conversation.id, upload=png_upload(name="photo.PNG")
        )

        assert result.success
        message = result.data.message
        assert message.message_type == MessageType.IMAGE
        assert message.file_name == "photo.PNG"
        assert message.file_size == len(PNG_BYTES)
        assert message.mime_type == "image/png"
        assert "/chat/" in message.file_url
        assert message.file_url.endswith(".png")
        conversation.refresh_from_db()
        assert conversation.last_message_text == "[image]"

    def test_pdf_upload_becomes_file_message_with_caption(self, conversation, customer):
        message = MessageService.upload_attachment(
            sender=customer, conversation_id=conversation.id, upload=pdf_upload(), text="Invoice"
        ).data.message

        assert message.message_type == MessageType.FILE
        assert message.mime_type == "application/pdf"
        assert message.text == "Invoice"

    def test_type_comes_from_content_not_declared_header(self, conversation, customer):
        """
        A PNG declared as a PDF is stored and announced as an image.
        """
        upload = png_upload(name="scan.png", content_type="application/pdf")

        message = MessageService.upload_attachment(
            sender=customer, conversation_id=conversation.id, upload=upload
        ).data.message

        assert message.mime_type == "image/png"
        assert message.message_type == MessageType.IMAGE

    def test_outsider_upload_is_rejected(self, conversation, other_customer):
        result = MessageService.upload_attachment(
            sender=other_customer, conversation_id=conversation.id, upload=pdf_upload()
        )

        assert result.error_code == "NOT_AUTHORIZED"
        assert Message.all_objects.count() == 0


class TestSendAnnouncement:
    def test_posts_system_message(self, conversation, moderator, customer, vendor):
        result = MessageService.send_announcement(moderator, conversation.id, "Maintenance tonight")

        assert result.success
        message = result.data.message
        assert message.message_type == MessageType.SYSTEM
        assert message.sender_role == SenderRole.SYSTEM
        assert message.sender_id == moderator.id
        assert {n.recipient_id for n in result.data.notifications} == {customer.id, vendor.id}
        assert all(
            n.notification_type == ChatNotificationType.SYSTEM_ANNOUNCEMENT
            for n in result.data.notifications
        )

    def test_non_admin_is_rejected(self, conversation, vendor):
        result = MessageService.send_announcement(vendor, conversation.id, "hi")

        assert result.error_code == "ADMIN_REQUIRED"

    def test_inactive_conversation_is_skipped(self, conversation, moderator):
        ConversationService.block(conversation, moderator, "Spam")

        result = MessageService.send_announcement(moderator, conversation.id, "hi")

        assert result.error_code == "CONVERSATION_NOT_ACTIVE"
        assert Message.all_objects.count() == 0


# =============================================================================
# StatsService
# =============================================================================


class TestStats:
    def test_aggregates(self, conversation, customer, vendor, moderator):
        create_conversation(CustomerFactory(), VendorFactory(), status=ConversationStatus.BLOCKED)
        with freeze_time("2026-03-01 10:00:00"):
            MessageService.send_message(sender=customer, conversation_id=conversation.id, text="Q")
        with freeze_time("2026-03-01 10:02:05"):
            MessageService.send_message(sender=vendor, conversation_id=conversation.id, text="A")

        with freeze_time("2026-03-01 12:00:00"):
            stats = StatsService.get_stats(moderator).data

        assert stats["totalConversations"] == 2
        assert stats["activeConversations"] == 1
        assert stats["blockedConversations"] == 1
        assert stats["totalMessages"] == 2
        assert stats["messagesLast24h"] == 2
        assert stats["avgResponseTimeSeconds"] == 125.0
        assert stats["avgResponseTimeFormatted"] == "2m 5s"

    def test_empty_system(self, moderator):
        stats = StatsService.get_stats(moderator).data

        assert stats["totalConversations"] == 0
        assert stats["avgResponseTimeSeconds"] == 0
        assert stats["avgResponseTimeFormatted"] == "0m 0s"

    def test_non_admin_is_rejected(self, customer):
        result = StatsService.get_stats(customer)

        assert result.error_code == "ADMIN_REQUIRED"
        assert result.status_code == 403

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(None, "0m 0s"), (59, "0m 59s"), (60, "1m 0s"), (3725.4, "62m 5s")],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected
