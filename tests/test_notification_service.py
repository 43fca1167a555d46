"""
Tests for the notification dispatcher and inbox operations
"""

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from bluezone.models.notification import NotificationType
from bluezone.repositories.notification_repository import NotificationRepository
from bluezone.services.notification_service import NotificationDispatcher
from bluezone.utils.errors import NotificationNotFound
from bluezone.utils.websocket_manager import ConnectionManager


class TestDispatch:

    async def test_created_then_suppressed(self, dispatcher):
        first = await dispatcher.dispatch("u", NotificationType.REPLY_LIKE, "t", "c", "r1")
        second = await dispatcher.dispatch("u", NotificationType.REPLY_LIKE, "t", "c", "r1")

        assert first.created and first.notification["read"] is False
        assert second.suppressed and second.notification is None

    async def test_dedup_key_includes_type_and_link(self, dispatcher):
        await dispatcher.dispatch("u", NotificationType.REPLY_LIKE, "t", "c", "r1")
        other_link = await dispatcher.dispatch("u", NotificationType.REPLY_LIKE, "t", "c", "r2")
        other_type = await dispatcher.dispatch("u", NotificationType.DISCUSSION_LIKE, "t", "c", "r1")
        other_user = await dispatcher.dispatch("v", NotificationType.REPLY_LIKE, "t", "c", "r1")
        assert other_link.created and other_type.created and other_user.created

    async def test_offline_recipient_keeps_row(self, dispatcher):
        outcome = await dispatcher.dispatch("offline", NotificationType.MESSAGE, "New Message", "hi", "/messages/1")
        assert outcome.created
        assert outcome.delivered == 0
        assert len(await dispatcher.list_notifications("offline")) == 1

    async def test_persistence_error_propagates(self, dispatcher, notification_repo, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(notification_repo, "create_if_absent", broken)
        with pytest.raises(RuntimeError):
            await dispatcher.dispatch("u", NotificationType.MESSAGE, "t", "c", "l")
        outcome = await dispatcher.dispatch_after_commit("u", NotificationType.MESSAGE, "t", "c", "l")
        assert outcome.status == "failed"


class TestUnreadUniqueness:

    async def test_store_refuses_second_unread_row(self, db):
        row = {"recipient_id": "u", "type": "reply_like", "link": "r1", "read": False}
        await db["notifications"].insert_one(dict(row))
        with pytest.raises(DuplicateKeyError):
            await db["notifications"].insert_one(dict(row))

    async def test_read_rows_do_not_block(self, db):
        row = {"recipient_id": "u", "type": "reply_like", "link": "r1"}
        await db["notifications"].insert_one({**row, "read": True})
        await db["notifications"].insert_one({**row, "read": True})
        await db["notifications"].insert_one({**row, "read": False})
        assert await db["notifications"].count_documents(row) == 3

    async def test_lost_upsert_race_is_suppressed(self, db):
        class RacingCollection:
            async def update_one(self, *args, **kwargs):
                raise DuplicateKeyError("E11000 duplicate key error collection: notifications")

        class RacingRepository(NotificationRepository):
            @property
            def collection(self):
                return RacingCollection()

        dispatcher = NotificationDispatcher(RacingRepository(db), ConnectionManager())
        outcome = await dispatcher.dispatch("u", NotificationType.REPLY_LIKE, "t", "c", "r1")
        assert outcome.suppressed


class TestInbox:

    async def test_mark_read_and_counts(self, dispatcher):
        first = await dispatcher.dispatch("u", NotificationType.MESSAGE, "t", "c", "l1")
        await dispatcher.dispatch("u", NotificationType.MESSAGE, "t", "c", "l2")
        assert await dispatcher.unread_count("u") == 2

        updated = await dispatcher.mark_read(first.notification["id"], "u")
        assert updated["read"] is True
        assert await dispatcher.unread_count("u") == 1

        assert await dispatcher.mark_all_read("u") == 1
        assert await dispatcher.unread_count("u") == 0

    async def test_mark_read_of_someone_elses(self, dispatcher):
        outcome = await dispatcher.dispatch("u", NotificationType.MESSAGE, "t", "c", "l1")
        with pytest.raises(NotificationNotFound):
            await dispatcher.mark_read(outcome.notification["id"], "intruder")
        with pytest.raises(NotificationNotFound):
            await dispatcher.mark_read(str(ObjectId()), "u")
        with pytest.raises(NotificationNotFound):
            await dispatcher.mark_read("nope", "u")

    async def test_list_newest_first(self, dispatcher):
        for link in ("a", "b", "c"):
            await dispatcher.dispatch("u", NotificationType.MESSAGE, "t", "c", link)
        links = [n["link"] for n in await dispatcher.list_notifications("u")]
        assert links == ["c", "b", "a"]

    async def test_dismiss_frees_dedup_slot(self, dispatcher):
        outcome = await dispatcher.dispatch("u", NotificationType.REPLY_LIKE, "t", "c", "r1")
        await dispatcher.dismiss(outcome.notification["id"], "u")

        again = await dispatcher.dispatch("u", NotificationType.REPLY_LIKE, "t", "c", "r1")
        assert again.created
        with pytest.raises(NotificationNotFound):
            await dispatcher.dismiss(outcome.notification["id"], "u")
