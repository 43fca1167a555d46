from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bluezone.models.reaction import SubjectKind
from bluezone.models.user import Capability, has_capability
from bluezone.repositories.discussion_repository import DiscussionRepository
from bluezone.repositories.reaction_repository import ReactionRepository
from bluezone.repositories.user_repository import UserRepository
from bluezone.utils.errors import PermissionDenied, SubjectNotFound
from bluezone.utils.ids import parse_object_id
from bluezone.utils.serializers import serialize_discussion, serialize_reply


TRENDING_WINDOW = timedelta(hours=48)
TRENDING_SIZE = 5


class ForumService:

    def __init__(self, discussion_repo: DiscussionRepository, reaction_repo: ReactionRepository, user_repo: UserRepository) -> None:
        self._discussion_repo = discussion_repo
        self._reaction_repo = reaction_repo
        self._user_repo = user_repo

    async def list_discussions(
        self,
        viewer_id: Optional[str] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort: str = "recent",
        limit: int = 10,
        offset: int = 0,
    ) -> Dict[str, Any]:
        discussions, total = await self._discussion_repo.list_discussions(search, category, sort, limit, offset)
        return {"discussions": await self._with_likes(discussions, viewer_id), "total": total}

    async def trending_discussions(self, viewer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Discussions from the last 48 hours with the most replies, then the most views."""
        since = datetime.now(timezone.utc) - TRENDING_WINDOW
        return await self._with_likes(await self._discussion_repo.trending(since, TRENDING_SIZE), viewer_id)

    async def create_discussion(self, author_id: str, title: str, content: str, category: str, tags: Optional[List[str]] = None) -> Dict[str, Any]:
        doc = await self._discussion_repo.create_discussion(author_id, title.strip(), content.strip(), category.strip(), tags or [])
        return serialize_discussion(doc)

    async def get_discussion(self, discussion_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """Discussion plus ordered replies, each with its like count and the viewer's like flag."""
        discussion = await self._require_discussion(discussion_id)
        await self._discussion_repo.increment_views(discussion["_id"])
        discussion["views"] = discussion.get("views", 0) + 1

        replies = await self._discussion_repo.list_replies(str(discussion["_id"]))
        discussion_likes = await self._reaction_repo.summarize(SubjectKind.DISCUSSION, [str(discussion["_id"])], viewer_id)
        reply_likes = await self._reaction_repo.summarize(SubjectKind.REPLY, [str(r["_id"]) for r in replies], viewer_id)
        authors = await self._user_repo.get_users_by_ids([discussion["author_id"], *(r["author_id"] for r in replies)])

        return {
            "discussion": serialize_discussion(discussion, discussion_likes[str(discussion["_id"])], authors.get(discussion["author_id"])),
            "replies": [serialize_reply(r, reply_likes[str(r["_id"])], authors.get(r["author_id"])) for r in replies],
        }

    async def update_discussion(
        self,
        discussion_id: str,
        user: Dict[str, Any],
        title: Optional[str] = None,
        content: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        discussion = await self._require_discussion(discussion_id)
        self._check_can_modify(discussion, user)
        fields = {name: value.strip() for name, value in (("title", title), ("content", content), ("category", category)) if value is not None}
        if fields:
            discussion = await self._discussion_repo.update_discussion(discussion["_id"], fields)
            if discussion is None:
                raise SubjectNotFound("Discussion not found")
        return (await self._with_likes([discussion], user["_id"]))[0]

    async def add_reply(self, discussion_id: str, author_id: str, content: str, parent_id: Optional[str] = None) -> Dict[str, Any]:
        discussion = await self._require_discussion(discussion_id)
        reply = await self._discussion_repo.create_reply(str(discussion["_id"]), author_id, content.strip(), parent_id)
        return serialize_reply(reply)

    async def update_reply(self, reply_id: str, user: Dict[str, Any], content: str) -> Dict[str, Any]:
        reply = await self._require_reply(reply_id)
        self._check_can_modify(reply, user)
        updated = await self._discussion_repo.update_reply(reply["_id"], content.strip())
        if updated is None:
            raise SubjectNotFound("Reply not found")
        likes = await self._reaction_repo.summarize(SubjectKind.REPLY, [reply_id], user["_id"])
        return serialize_reply(updated, likes[reply_id])

    async def delete_discussion(self, discussion_id: str, user: Dict[str, Any]) -> None:
        discussion = await self._require_discussion(discussion_id)
        self._check_can_modify(discussion, user)
        reply_ids = await self._discussion_repo.delete_discussion(discussion["_id"])
        await self._reaction_repo.delete_for_subjects(SubjectKind.REPLY, reply_ids)
        await self._reaction_repo.delete_for_subjects(SubjectKind.DISCUSSION, [str(discussion["_id"])])

    async def delete_reply(self, reply_id: str, user: Dict[str, Any]) -> None:
        """Delete a reply together with the replies nested under it."""
        reply = await self._require_reply(reply_id)
        self._check_can_modify(reply, user)
        reply_ids = await self._discussion_repo.delete_reply_tree(reply)
        await self._reaction_repo.delete_for_subjects(SubjectKind.REPLY, reply_ids)

    async def _with_likes(self, discussions: List[Dict[str, Any]], viewer_id: Optional[str]) -> List[Dict[str, Any]]:
        likes = await self._reaction_repo.summarize(SubjectKind.DISCUSSION, [str(d["_id"]) for d in discussions], viewer_id)
        authors = await self._user_repo.get_users_by_ids([d["author_id"] for d in discussions])
        return [serialize_discussion(d, likes[str(d["_id"])], authors.get(d["author_id"])) for d in discussions]

    async def _require_discussion(self, discussion_id: str) -> Dict[str, Any]:
        oid = parse_object_id(discussion_id)
        discussion = await self._discussion_repo.get_discussion(oid) if oid else None
        if discussion is None:
            raise SubjectNotFound("Discussion not found")
        return discussion

    async def _require_reply(self, reply_id: str) -> Dict[str, Any]:
        oid = parse_object_id(reply_id)
        reply = await self._discussion_repo.get_reply(oid) if oid else None
        if reply is None:
            raise SubjectNotFound("Reply not found")
        return reply

    def _check_can_modify(self, item: Dict[str, Any], user: Dict[str, Any]) -> None:
        if item["author_id"] == user["_id"]:
            return
        if not has_capability(user.get("role"), Capability.MODERATE_CONTENT):
            raise PermissionDenied()
