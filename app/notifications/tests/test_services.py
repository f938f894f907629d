"""
Unit tests for notification services.

Tests focus on service behavior and ServiceResult patterns.

Test Classes:
    TestNotificationServiceCreate: Tests for create_notification() and helpers
    TestNotificationServiceList: Tests for list_for_user() / unread_count()
    TestNotificationServiceMarkAsRead: Tests for mark_as_read()
    TestNotificationServiceMarkAllAsRead: Tests for mark_all_as_read()
    TestNotificationServiceDelete: Tests for delete_notification()
    TestNotificationServicePurge: Tests for purge_read()
"""

from datetime import timedelta

from django.utils import timezone
from freezegun import freeze_time

from authentication.tests.factories import CustomerFactory, VendorFactory
from chat.tests.factories import ConversationFactory, MessageFactory
from notifications.models import ChatNotification, ChatNotificationType
from notifications.services import NotificationService
from notifications.tests.factories import ChatNotificationFactory


class TestNotificationServiceCreate:
    """
    Tests for NotificationService.create_notification() and the
    notify_* helpers.

    Verifies:
    - Body truncation to the preview length
    - Action URL pointing at the conversation
    - One row per recipient
    """

    def test_creates_notification(self, db, user):
        conversation = ConversationFactory()

        result = NotificationService.create_notification(
            recipient=user,
            conversation=conversation,
            notification_type=ChatNotificationType.ADMIN_WARNING,
            title="Conversation blocked by moderator",
            body="Spam",
        )

        assert result.success
        notification = result.data
        assert notification.recipient == user
        assert notification.read is False
        assert notification.read_at is None
        assert notification.action_url == f"/chat/{conversation.id}"
        assert notification.action_text == "View Message"

    def test_body_is_truncated(self, db, user):
        notification = NotificationService.create_notification(
            recipient=user,
            conversation=ConversationFactory(),
            notification_type=ChatNotificationType.NEW_MESSAGE,
            title="New message from Bob",
            body="z" * 250,
        ).data

        assert notification.body == "z" * 100

    def test_notify_recipients_creates_one_row_each(self, db, user, other_user):
        conversation = ConversationFactory()

        notifications = NotificationService.notify_recipients(
            recipients=[user, other_user],
            conversation=conversation,
            notification_type=ChatNotificationType.CONVERSATION_CLOSED,
            title="Conversation archived",
        )

        assert [n.recipient_id for n in notifications] == [user.id, other_user.id]
        assert all(n.pk for n in notifications)

    def test_notify_new_message_uses_sender_name_and_preview(self, db, user):
        vendor = VendorFactory(name="Corner Shop")
        message = MessageFactory(sender=vendor, text="", message_type="image", file_url="/media/chat/x.png")

        notification = NotificationService.notify_new_message(message, [user])[0]

        assert notification.title == "New message from Corner Shop"
        assert notification.body == "[image]"
        assert notification.message_id == message.id
        assert notification.conversation_id == message.conversation_id


class TestNotificationServiceList:
    def test_newest_first(self, db, user):
        with freeze_time("2026-01-01"):
            older = ChatNotificationFactory(recipient=user)
        with freeze_time("2026-01-02"):
            newer = ChatNotificationFactory(recipient=user)

        ids = list(NotificationService.list_for_user(user).values_list("id", flat=True))

        assert ids == [newer.id, older.id]

    def test_unread_only(self, db, unread_notification, read_notification, user):
        ids = list(NotificationService.list_for_user(user, unread_only=True).values_list("id", flat=True))

        assert ids == [unread_notification.id]

    def test_excludes_other_users(self, db, unread_notification, other_user_notification, user):
        assert list(NotificationService.list_for_user(user)) == [unread_notification]

    def test_unread_count(self, db, unread_notification, read_notification, other_user_notification, user):
        assert NotificationService.unread_count(user) == 1


class TestNotificationServiceMarkAsRead:
    """
    Tests for NotificationService.mark_as_read().

    Verifies:
    - read flag and read_at are set
    - Idempotent for already-read notifications
    - Other users' notifications are reported as not found
    """

    def test_marks_notification_as_read(self, db, unread_notification, user):
        result = NotificationService.mark_as_read(unread_notification.id, user)

        assert result.success
        unread_notification.refresh_from_db()
        assert unread_notification.read is True
        assert unread_notification.read_at is not None

    def test_idempotent_already_read(self, db, user):
        first_read = timezone.now() - timedelta(days=2)
        notification = ChatNotificationFactory(recipient=user, read=True, read_at=first_read)

        result = NotificationService.mark_as_read(notification.id, user)

        assert result.success
        notification.refresh_from_db()
        assert notification.read_at == first_read

    def test_wrong_user_returns_not_found(self, db, other_user_notification, user):
        result = NotificationService.mark_as_read(other_user_notification.id, user)

        assert not result.success
        assert result.error_code == "NOTIFICATION_NOT_FOUND"
        assert result.status_code == 404
        other_user_notification.refresh_from_db()
        assert other_user_notification.read is False


class TestNotificationServiceMarkAllAsRead:
    """
    Tests for NotificationService.mark_all_as_read().

    Verifies:
    - All unread notifications marked
    - Returns count of marked notifications
    - Single UPDATE query
    - Other users unaffected
    """

    def test_marks_all_unread_as_read(self, db, user):
        ChatNotificationFactory.create_batch(3, recipient=user)

        result = NotificationService.mark_all_as_read(user)

        assert result.data == 3
        assert not ChatNotification.objects.filter(recipient=user, read=False).exists()

    def test_single_database_query(self, db, user, django_assert_num_queries):
        ChatNotificationFactory.create_batch(3, recipient=user)

        with django_assert_num_queries(1):
            NotificationService.mark_all_as_read(user)

    def test_does_not_affect_other_users(self, db, unread_notification, other_user_notification, user):
        NotificationService.mark_all_as_read(user)

        other_user_notification.refresh_from_db()
        assert other_user_notification.read is False

    def test_preserves_already_read_notifications(self, db, user, read_notification, unread_notification):
        original_read_at = read_notification.read_at

        result = NotificationService.mark_all_as_read(user)

        assert result.data == 1
        read_notification.refresh_from_db()
        assert read_notification.read_at == original_read_at


class TestNotificationServiceDelete:
    def test_deletes_own_notification(self, db, unread_notification, user):
        result = NotificationService.delete_notification(unread_notification.id, user)

        assert result.success
        assert not ChatNotification.objects.filter(id=unread_notification.id).exists()

    def test_other_users_notification_is_not_found(self, db, other_user_notification, user):
        result = NotificationService.delete_notification(other_user_notification.id, user)

        assert result.error_code == "NOTIFICATION_NOT_FOUND"
        assert ChatNotification.objects.filter(id=other_user_notification.id).exists()


class TestNotificationServicePurge:
    """Retention: read notifications older than the window are removed."""

    def test_purges_old_read_notifications_only(self, db, user):
        now = timezone.now()
        old_read = ChatNotificationFactory(recipient=user, read=True, read_at=now - timedelta(days=31))
        recent_read = ChatNotificationFactory(recipient=user, read=True, read_at=now - timedelta(days=5))
        with freeze_time(now - timedelta(days=90)):
            old_unread = ChatNotificationFactory(recipient=CustomerFactory())

        deleted = NotificationService.purge_read()

        assert deleted == 1
        remaining = set(ChatNotification.objects.values_list("id", flat=True))
        assert remaining == {recent_read.id, old_unread.id}
        assert old_read.id not in remaining

    def test_custom_retention_window(self, db, user):
        ChatNotificationFactory(recipient=user, read=True, read_at=timezone.now() - timedelta(days=8))

        assert NotificationService.purge_read(retention_days=7) == 1
