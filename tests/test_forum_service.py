"""
Tests for discussions, replies and moderation rights
"""

from datetime import datetime, timedelta, timezone

import pytest

from bluezone.models.reaction import SubjectKind
from bluezone.models.user import Capability, UserRole, has_capability
from bluezone.utils.errors import PermissionDenied, SubjectNotFound


async def _seed(forum_service, users):
    discussion = await forum_service.create_discussion(users["u1"], "  Repair cafe  ", "Bring your broken toasters.", "events", ["repair"])
    reply = await forum_service.add_reply(discussion["id"], users["u2"], "I'll bring tools")
    return discussion, reply


class TestRoles:

    def test_capabilities(self):
        assert has_capability(UserRole.ADMIN, Capability.MODERATE_CONTENT)
        assert has_capability("moderator", Capability.MODERATE_CONTENT)
        assert not has_capability(UserRole.MEMBER, Capability.MODERATE_CONTENT)
        assert not has_capability(UserRole.COMPANY, Capability.MODERATE_CONTENT)
        assert has_capability(UserRole.COMPANY, Capability.POST_INITIATIVES)

    def test_unknown_role_is_member(self):
        assert not has_capability("superuser", Capability.MANAGE_USERS)
        assert not has_capability(None, Capability.MODERATE_CONTENT)


class TestDiscussions:

    async def test_get_discussion_with_likes(self, forum_service, like_aggregator, users):
        discussion, reply = await _seed(forum_service, users)
        await like_aggregator.toggle_like(SubjectKind.DISCUSSION, discussion["id"], users["u2"])
        await like_aggregator.toggle_like(SubjectKind.REPLY, reply["id"], users["u3"])
        await like_aggregator.toggle_like(SubjectKind.REPLY, reply["id"], users["u1"])

        view = await forum_service.get_discussion(discussion["id"], users["u3"])

        assert view["discussion"]["title"] == "Repair cafe"
        assert view["discussion"]["likes_count"] == 1
        assert view["discussion"]["liked_by_user"] is False
        assert view["discussion"]["views"] == 1
        assert view["discussion"]["author"]["name"] == "U1"
        assert view["replies"][0]["likes_count"] == 2
        assert view["replies"][0]["liked_by_user"] is True

    async def test_anonymous_view_counts(self, forum_service, users):
        discussion, _ = await _seed(forum_service, users)
        await forum_service.get_discussion(discussion["id"])
        view = await forum_service.get_discussion(discussion["id"])
        assert view["discussion"]["views"] == 2
        assert view["replies"][0]["liked_by_user"] is False

    async def test_reply_to_missing_discussion(self, forum_service, users):
        with pytest.raises(SubjectNotFound):
            await forum_service.add_reply("5f0000000000000000000000", users["u1"], "hello")


class TestListing:

    async def test_search_and_category_filters(self, forum_service, users):
        await forum_service.create_discussion(users["u1"], "Garden swap", "Seeds and cuttings for the spring.", "gardening")
        await forum_service.create_discussion(users["u2"], "Bike repair", "Who can fix a GARDEN gate too?", "repair")
        await forum_service.create_discussion(users["u3"], "Book club", "Next meeting on Friday evening.", "culture")

        found = await forum_service.list_discussions(search="garden")
        assert sorted(d["title"] for d in found["discussions"]) == ["Bike repair", "Garden swap"]
        assert found["total"] == 2

        repair = await forum_service.list_discussions(search="garden", category="repair")
        assert [d["title"] for d in repair["discussions"]] == ["Bike repair"]

    async def test_search_is_literal(self, forum_service, users):
        await forum_service.create_discussion(users["u1"], "Any (questions)?", "Ask away, neighbours welcome.", "general")
        found = await forum_service.list_discussions(search="(questions)?")
        assert found["total"] == 1

    async def test_pagination_reports_total(self, forum_service, users):
        for i in range(5):
            await forum_service.create_discussion(users["u1"], f"Topic number {i}", "Some longer content here.", "general")

        page = await forum_service.list_discussions(limit=2, offset=2)

        assert page["total"] == 5
        assert [d["title"] for d in page["discussions"]] == ["Topic number 2", "Topic number 1"]

    async def test_popular_sort_and_like_counts(self, forum_service, like_aggregator, users):
        quiet = await forum_service.create_discussion(users["u1"], "Quiet topic", "Nobody answers this one.", "general")
        busy = await forum_service.create_discussion(users["u2"], "Busy topic", "Everyone answers this one.", "general")
        await forum_service.add_reply(busy["id"], users["u1"], "first!")
        await forum_service.add_reply(busy["id"], users["u3"], "second")
        await like_aggregator.toggle_like(SubjectKind.DISCUSSION, quiet["id"], users["u3"])

        page = await forum_service.list_discussions(viewer_id=users["u3"], sort="popular")

        assert [d["id"] for d in page["discussions"]] == [busy["id"], quiet["id"]]
        assert page["discussions"][0]["replies_count"] == 2
        assert page["discussions"][1]["likes_count"] == 1
        assert page["discussions"][1]["liked_by_user"] is True
        assert page["discussions"][0]["author"]["name"] == "U2"

    async def test_unknown_sort_falls_back_to_recent(self, forum_service, users):
        await forum_service.create_discussion(users["u1"], "Older topic", "Posted first of all.", "general")
        await forum_service.create_discussion(users["u1"], "Newer topic", "Posted second of all.", "general")
        page = await forum_service.list_discussions(sort="sideways")
        assert [d["title"] for d in page["discussions"]] == ["Newer topic", "Older topic"]

    async def test_trending_window_and_order(self, forum_service, users, db):
        stale = await forum_service.create_discussion(users["u1"], "Stale topic", "From three days ago.", "general")
        await db["discussions"].update_one(
            {"title": "Stale topic"},
            {"$set": {"created_at": datetime.now(timezone.utc) - timedelta(hours=72), "reply_count": 99}},
        )
        viewed = await forum_service.create_discussion(users["u1"], "Viewed topic", "Read by many people.", "general")
        replied = await forum_service.create_discussion(users["u2"], "Replied topic", "Answered by someone.", "general")
        await forum_service.add_reply(replied["id"], users["u3"], "me too")
        await forum_service.get_discussion(viewed["id"])
        for i in range(4):
            await forum_service.create_discussion(users["u3"], f"Filler topic {i}", "Nothing much going on.", "general")

        trending = await forum_service.trending_discussions()

        assert len(trending) == 5
        assert [d["id"] for d in trending[:2]] == [replied["id"], viewed["id"]]
        assert stale["id"] not in [d["id"] for d in trending]


class TestEditing:

    async def test_author_updates_discussion(self, forum_service, users):
        discussion, _ = await _seed(forum_service, users)

        updated = await forum_service.update_discussion(discussion["id"], {"_id": users["u1"], "role": "member"}, title="  Repair cafe v2 ")

        assert updated["title"] == "Repair cafe v2"
        assert updated["content"] == "Bring your broken toasters."

    async def test_moderator_updates_others_discussion(self, forum_service, users):
        discussion, _ = await _seed(forum_service, users)
        updated = await forum_service.update_discussion(discussion["id"], {"_id": users["mod"], "role": "moderator"}, category="meetups")
        assert updated["category"] == "meetups"

    async def test_stranger_cannot_update(self, forum_service, users):
        discussion, reply = await _seed(forum_service, users)
        stranger = {"_id": users["u3"], "role": "member"}
        with pytest.raises(PermissionDenied):
            await forum_service.update_discussion(discussion["id"], stranger, title="Hijacked title")
        with pytest.raises(PermissionDenied):
            await forum_service.update_reply(reply["id"], stranger, "hijacked")

    async def test_author_updates_reply(self, forum_service, like_aggregator, users):
        _, reply = await _seed(forum_service, users)
        await like_aggregator.toggle_like(SubjectKind.REPLY, reply["id"], users["u1"])

        updated = await forum_service.update_reply(reply["id"], {"_id": users["u2"], "role": "member"}, " I'll bring glue too ")

        assert updated["content"] == "I'll bring glue too"
        assert updated["likes_count"] == 1
        assert updated["updated_at"] is not None

    async def test_update_missing_reply(self, forum_service, users):
        with pytest.raises(SubjectNotFound):
            await forum_service.update_reply("nope", {"_id": users["u1"], "role": "member"}, "hello")


class TestModeration:

    async def test_member_cannot_delete_others_reply(self, forum_service, users, db):
        _, reply = await _seed(forum_service, users)
        stranger = {"_id": users["u3"], "role": "member"}
        with pytest.raises(PermissionDenied):
            await forum_service.delete_reply(reply["id"], stranger)

    async def test_moderator_deletes_discussion_and_reactions(self, forum_service, like_aggregator, users, db):
        discussion, reply = await _seed(forum_service, users)
        await like_aggregator.toggle_like(SubjectKind.REPLY, reply["id"], users["u1"])
        await like_aggregator.toggle_like(SubjectKind.DISCUSSION, discussion["id"], users["u2"])

        await forum_service.delete_discussion(discussion["id"], {"_id": users["mod"], "role": "moderator"})

        assert await db["discussions"].count_documents({}) == 0
        assert await db["replies"].count_documents({}) == 0
        assert await db["reactions"].count_documents({}) == 0
        with pytest.raises(SubjectNotFound):
            await like_aggregator.toggle_like(SubjectKind.REPLY, reply["id"], users["u3"])

    async def test_author_deletes_own_reply(self, forum_service, users, db):
        _, reply = await _seed(forum_service, users)
        await forum_service.delete_reply(reply["id"], {"_id": users["u2"], "role": "member"})
        assert await db["replies"].count_documents({}) == 0

    async def test_deleting_reply_removes_nested_replies(self, forum_service, like_aggregator, users, db):
        discussion, reply = await _seed(forum_service, users)
        child = await forum_service.add_reply(discussion["id"], users["u3"], "me too", parent_id=reply["id"])
        grandchild = await forum_service.add_reply(discussion["id"], users["u1"], "great", parent_id=child["id"])
        sibling = await forum_service.add_reply(discussion["id"], users["u3"], "separate thread")
        await like_aggregator.toggle_like(SubjectKind.REPLY, grandchild["id"], users["u2"])
        await like_aggregator.toggle_like(SubjectKind.REPLY, sibling["id"], users["u2"])

        await forum_service.delete_reply(reply["id"], {"_id": users["u2"], "role": "member"})

        remaining = [str(r["_id"]) async for r in db["replies"].find({})]
        assert remaining == [sibling["id"]]
        assert await db["reactions"].count_documents({"subject_id": grandchild["id"]}) == 0
        assert await db["reactions"].count_documents({"subject_id": sibling["id"]}) == 1
        view = await forum_service.get_discussion(discussion["id"])
        assert view["discussion"]["replies_count"] == 1
