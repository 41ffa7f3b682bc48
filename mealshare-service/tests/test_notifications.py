"""
Tests for the notification dispatcher.
"""
from mealshare_service.domain.errors import ErrorKind
from mealshare_service.domain.models import NotificationType


class TestNotify:
    """Creating notifications."""

    async def test_notify_existing_user(self, dispatcher, people):
        notification = await dispatcher.notify(
            "owner", "Hello", "Body", NotificationType.POST_APPROVED, "post-1"
        )
        assert notification.user_id == "owner"
        assert notification.related_post_id == "post-1"
        assert not notification.is_read

    async def test_notify_unknown_user(self, dispatcher):
        result = await dispatcher.notify("ghost", "Hello", "Body", NotificationType.NEW_MESSAGE)
        assert result.kind == ErrorKind.NOT_FOUND

    async def test_dispatch_never_raises(self, dispatcher, notification_repo, people, monkeypatch):
        assert await dispatcher.dispatch("ghost", "t", "b", NotificationType.NEW_MESSAGE) is None

        async def broken(notification):
            raise RuntimeError("disk full")

        monkeypatch.setattr(notification_repo, "add", broken)
        assert await dispatcher.dispatch("owner", "t", "b", NotificationType.NEW_MESSAGE) is None


class TestInbox:
    """Listing and read state."""

    async def test_newest_first_and_unread(self, dispatcher, people, clock):
        first = await dispatcher.notify("owner", "First", "", NotificationType.POST_APPROVED)
        clock.advance(seconds=1)
        second = await dispatcher.notify("owner", "Second", "", NotificationType.POST_CLAIMED)

        listed = await dispatcher.for_user("owner").to_list()
        assert [n.id for n in listed] == [second.id, first.id]
        assert await dispatcher.unread_count("owner") == 2

        await dispatcher.mark_read(first.id, "owner")
        unread = await dispatcher.for_user("owner", unread_only=True).to_list()
        assert [n.id for n in unread] == [second.id]
        assert await dispatcher.unread_count("owner") == 1

    async def test_mark_read_of_someone_else(self, dispatcher, people):
        notification = await dispatcher.notify("owner", "Mine", "", NotificationType.POST_APPROVED)
        result = await dispatcher.mark_read(notification.id, "claimer")
        assert result.kind == ErrorKind.NOT_FOUND

    async def test_mark_all_read(self, dispatcher, people):
        for i in range(3):
            await dispatcher.notify("owner", f"n{i}", "", NotificationType.NEW_MESSAGE)
        await dispatcher.notify("claimer", "other inbox", "", NotificationType.NEW_MESSAGE)

        assert await dispatcher.mark_all_read("owner") == 3
        assert await dispatcher.unread_count("owner") == 0
        assert await dispatcher.unread_count("claimer") == 1
