from bson import ObjectId

from bluezone.repositories.conversation_repository import ConversationRepository


class UnreadTracker:
    """
    Read-side view of the per-participant unread counters.

    The counters themselves only move inside the persistence gateway:
    incremented for every other participant when a message is appended,
    reset to zero on mark-read. Nothing here writes.
    """

    def __init__(self, conversation_repo: ConversationRepository) -> None:
        self._conversation_repo = conversation_repo

    async def get_total_unread(self, user_id: str) -> int:
        return sum(await self._conversation_repo.unread_counters_for_user(user_id))

    async def get_unread(self, conversation_id: ObjectId, user_id: str) -> int:
        convo = await self._conversation_repo.get_for_participant(conversation_id, user_id)
        if convo is None:
            return 0
        return int((convo.get("unread_counters") or {}).get(user_id, 0))
