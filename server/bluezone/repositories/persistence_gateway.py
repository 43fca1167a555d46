import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, TypeVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from bluezone.models.reaction import SubjectKind
from bluezone.repositories.conversation_repository import ConversationRepository
from bluezone.repositories.message_repository import MessageRepository
from bluezone.repositories.reaction_repository import ReactionRepository
from bluezone.utils.errors import ConversationNotFound, NotAParticipant


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ToggleResult:

    reacted: bool
    count: int
    # True only when this call created the reaction row
    inserted: bool = False


@dataclass
class LeaveResult:

    conversation_deleted: bool
    messages_deleted: int = 0


class PersistenceGateway:
    """
    Composite write operations that span several collections.

    Each operation runs as one callback. With `transactions=True` the callback
    goes through `ClientSession.with_transaction`, which commits atomically and
    retries transient errors; otherwise it is built from single-document atomic
    updates guarded by unique indexes. Duplicate-key recovery always reads
    outside the failed unit of work.
    """

    def __init__(self, db: AsyncIOMotorDatabase, transactions: bool = False) -> None:
        self._db = db
        self._transactions = transactions
        self.conversations = ConversationRepository(db)
        self.messages = MessageRepository(db)
        self.reactions = ReactionRepository(db)

    async def _run(self, operation: Callable[[Any], Awaitable[T]]) -> T:
        if not self._transactions:
            return await operation(None)
        async with await self._db.client.start_session() as session:
            return await session.with_transaction(operation)

    async def register_or_reuse_conversation(self, user_a: str, user_b: str) -> Dict[str, Any]:
        async def register(session):
            return await self.conversations.get_or_create_one_to_one(user_a, user_b, session=session)

        try:
            return await self._run(register)
        except DuplicateKeyError:
            # lost an upsert race against the other participant
            return await self.conversations.find_by_pair(user_a, user_b)

    async def append_message(self, conversation_id: ObjectId, sender_id: str, content: str) -> Dict[str, Any]:
        async def append(session):
            convo = await self._require_participant(conversation_id, sender_id, session)
            now = datetime.now(timezone.utc)
            message = await self.messages.save_message(conversation_id, sender_id, content, now, session=session)
            receivers = [uid for uid in convo.get("participants", []) if uid != sender_id]
            await self.conversations.update_on_new_message(conversation_id, content[:200], receivers, now, session=session)
            message["receiver_ids"] = receivers
            return message

        return await self._run(append)

    async def mark_read(self, conversation_id: ObjectId, user_id: str) -> int:
        async def mark(session):
            now = datetime.now(timezone.utc)
            if not await self.conversations.reset_unread(conversation_id, user_id, now, session=session):
                await self._raise_missing(conversation_id, session)
            return await self.messages.mark_read_for_reader(conversation_id, user_id, session=session)

        return await self._run(mark)

    async def toggle_reaction(self, kind: SubjectKind, subject_id: str, user_id: str) -> ToggleResult:
        async def toggle(session):
            if await self.reactions.remove(kind, subject_id, user_id, session=session):
                count = await self.reactions.count(kind, subject_id, session=session)
                return ToggleResult(reacted=False, count=count)
            await self.reactions.add(kind, subject_id, user_id, session=session)
            count = await self.reactions.count(kind, subject_id, session=session)
            return ToggleResult(reacted=True, count=count, inserted=True)

        try:
            return await self._run(toggle)
        except DuplicateKeyError:
            # a concurrent toggle by the same user inserted the row first
            count = await self.reactions.count(kind, subject_id)
            return ToggleResult(reacted=True, count=count, inserted=False)

    async def leave_conversation(self, conversation_id: ObjectId, user_id: str) -> LeaveResult:
        async def leave(session):
            if not await self.conversations.remove_participant(conversation_id, user_id, session=session):
                await self._raise_missing(conversation_id, session)
            if not await self.conversations.delete_if_empty(conversation_id, session=session):
                return LeaveResult(conversation_deleted=False)
            deleted = await self.messages.delete_by_conversation(conversation_id, session=session)
            return LeaveResult(conversation_deleted=True, messages_deleted=deleted)

        result = await self._run(leave)
        if result.conversation_deleted:
            logger.info("Conversation %s destroyed after last participant left", conversation_id)
        return result

    async def _require_participant(self, conversation_id: ObjectId, user_id: str, session) -> Dict[str, Any]:
        convo = await self.conversations.get_for_participant(conversation_id, user_id, session=session)
        if convo is None:
            await self._raise_missing(conversation_id, session)
        return convo

    async def _raise_missing(self, conversation_id: ObjectId, session) -> None:
        if await self.conversations.get(conversation_id, session=session) is None:
            raise ConversationNotFound()
        raise NotAParticipant()
