"""
Tests for SoftDeleteManager, SoftDeleteQuerySet and SoftDeleteMixin.

Message is the soft-deleted model in this project, so it is used as the
concrete subject.
"""

import pytest

from chat.models import Message
from chat.tests.factories import ConversationFactory, MessageFactory

pytestmark = pytest.mark.django_db


@pytest.fixture
def conversation():
    return ConversationFactory()


class TestSoftDeleteManager:
    def test_default_manager_hides_deleted_rows(self, conversation):
        visible = MessageFactory(conversation=conversation)
        hidden = MessageFactory(conversation=conversation, is_deleted=True)

        assert list(Message.objects.filter(conversation=conversation)) == [visible]
        assert set(Message.all_objects.filter(conversation=conversation)) == {visible, hidden}

    def test_get_by_pk_of_deleted_row_fails(self, conversation):
        hidden = MessageFactory(conversation=conversation, is_deleted=True)

        with pytest.raises(Message.DoesNotExist):
            Message.objects.get(pk=hidden.pk)


class TestSoftDeleteQuerySet:
    def test_bulk_delete_marks_rows(self, conversation):
        MessageFactory.create_batch(3, conversation=conversation)

        count, per_model = Message.objects.filter(conversation=conversation).delete()

        assert count == 3
        assert per_model == {"chat.Message": 3}
        rows = Message.all_objects.filter(conversation=conversation)
        assert rows.count() == 3
        assert all(row.is_deleted and row.deleted_at is not None for row in rows)

    def test_bulk_delete_skips_already_deleted(self, conversation):
        MessageFactory(conversation=conversation)
        MessageFactory(conversation=conversation, is_deleted=True)

        count, _ = Message.objects.filter(conversation=conversation).delete()

        assert count == 1


class TestSoftDeleteMixin:
    def test_soft_delete_sets_flag_and_timestamp(self, conversation):
        message = MessageFactory(conversation=conversation)

        message.soft_delete()

        message.refresh_from_db()
        assert message.is_deleted is True
        assert message.deleted_at is not None
