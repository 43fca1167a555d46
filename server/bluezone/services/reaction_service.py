from dataclasses import dataclass
from typing import Any, Dict, Optional

from bluezone.models.notification import NotificationType
from bluezone.models.reaction import SubjectKind
from bluezone.repositories.discussion_repository import DiscussionRepository
from bluezone.repositories.persistence_gateway import PersistenceGateway
from bluezone.services.notification_service import SKIPPED, DispatchOutcome, NotificationDispatcher
from bluezone.utils.errors import SubjectNotFound
from bluezone.utils.ids import parse_object_id


@dataclass
class LikeResult:

    liked: bool
    likes: int
    notification: DispatchOutcome


class LikeAggregator:
    """
    Toggle a like on a discussion or a reply.

    The count is recomputed from the reaction rows on every toggle. Only a
    new like on someone else's post produces a notification; unliking
    leaves any notification already sent in place.
    """

    def __init__(self, gateway: PersistenceGateway, discussion_repo: DiscussionRepository, dispatcher: NotificationDispatcher) -> None:
        self._gateway = gateway
        self._discussion_repo = discussion_repo
        self._dispatcher = dispatcher

    async def toggle_like(self, kind: SubjectKind, subject_id: str, user_id: str, liker_name: Optional[str] = None) -> LikeResult:
        subject = await self._load_subject(kind, subject_id)
        result = await self._gateway.toggle_reaction(kind, str(subject["_id"]), user_id)

        outcome = SKIPPED
        if result.inserted and subject["author_id"] != user_id:
            outcome = await self._notify_author(kind, subject, liker_name or "Someone")
        return LikeResult(liked=result.reacted, likes=result.count, notification=outcome)

    async def _load_subject(self, kind: SubjectKind, subject_id: str) -> Dict[str, Any]:
        oid = parse_object_id(subject_id)
        subject = None
        if oid is not None:
            if kind is SubjectKind.DISCUSSION:
                subject = await self._discussion_repo.get_discussion(oid)
            else:
                subject = await self._discussion_repo.get_reply(oid)
        if subject is None:
            raise SubjectNotFound(f"{kind.value.capitalize()} not found")
        return subject

    async def _notify_author(self, kind: SubjectKind, subject: Dict[str, Any], liker_name: str) -> DispatchOutcome:
        if kind is SubjectKind.DISCUSSION:
            return await self._dispatcher.dispatch_after_commit(
                subject["author_id"],
                NotificationType.DISCUSSION_LIKE,
                "Your discussion was liked",
                f'{liker_name} liked your discussion "{subject["title"]}"',
                str(subject["_id"]),
            )
        return await self._dispatcher.dispatch_after_commit(
            subject["author_id"],
            NotificationType.REPLY_LIKE,
            "Your reply was liked",
            f"{liker_name} liked your reply",
            str(subject["_id"]),
        )
