from typing import Any, Dict, List, Optional

from bson import ObjectId

from bluezone.models.notification import NotificationType
from bluezone.repositories.persistence_gateway import LeaveResult, PersistenceGateway
from bluezone.repositories.user_repository import UserRepository
from bluezone.services.notification_service import NotificationDispatcher
from bluezone.services.read_state_service import UnreadTracker
from bluezone.utils.errors import ConversationNotFound, InvalidContent, InvalidRecipient, UserNotFound
from bluezone.utils.ids import parse_object_id
from bluezone.utils.serializers import format_user, serialize_conversation, serialize_message
from bluezone.utils.websocket_manager import ConnectionManager


class ChatService:
    """Conversation lifecycle: start, send, read, leave."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        user_repo: UserRepository,
        dispatcher: NotificationDispatcher,
        manager: ConnectionManager,
    ) -> None:
        self._gateway = gateway
        self._user_repo = user_repo
        self._dispatcher = dispatcher
        self._manager = manager
        self._tracker = UnreadTracker(gateway.conversations)

    async def start_conversation(self, user_id: str, recipient_id: str) -> Dict[str, Any]:
        if user_id == recipient_id:
            raise InvalidRecipient()
        if await self._user_repo.get_user_by_id(recipient_id) is None:
            raise UserNotFound("Recipient not found")
        convo = await self._gateway.register_or_reuse_conversation(user_id, recipient_id)
        users = await self._user_repo.get_users_by_ids(convo["participants"])
        return serialize_conversation(convo, user_id, users)

    async def send_message(self, conversation_id: str, sender_id: str, content: str, sender: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        content = content.strip() if isinstance(content, str) else ""
        if not content:
            raise InvalidContent("Message content cannot be empty")
        convo_oid = self._conversation_oid(conversation_id)
        saved = await self._gateway.append_message(convo_oid, sender_id, content)
        message = serialize_message(saved)

        if sender is None:
            sender = await self._user_repo.get_user_by_id(sender_id)
        sender_public = format_user(sender)
        sender_name = (sender or {}).get("name") or "Someone"
        for receiver_id in saved["receiver_ids"]:
            await self._manager.deliver_to_user(receiver_id, "message:new", {"message": message, "sender": sender_public})
            await self._dispatcher.dispatch_after_commit(
                receiver_id,
                NotificationType.MESSAGE,
                "New Message",
                f"New message from {sender_name}",
                f"/messages/{conversation_id}",
            )
        return message

    async def mark_read(self, conversation_id: str, user_id: str) -> int:
        return await self._gateway.mark_read(self._conversation_oid(conversation_id), user_id)

    async def leave_conversation(self, conversation_id: str, user_id: str) -> LeaveResult:
        return await self._gateway.leave_conversation(self._conversation_oid(conversation_id), user_id)

    async def list_conversations(self, user_id: str) -> List[Dict[str, Any]]:
        convos = await self._gateway.conversations.list_for_user(user_id)
        participant_ids = {uid for c in convos for uid in c.get("participants", [])}
        users = await self._user_repo.get_users_by_ids(participant_ids)
        items = []
        for convo in convos:
            last = await self._gateway.messages.latest(convo["_id"])
            items.append(serialize_conversation(convo, user_id, users, last_message=last))
        return items

    async def get_conversation(self, conversation_id: str, user_id: str) -> Dict[str, Any]:
        convo_oid = self._conversation_oid(conversation_id)
        convo = await self._gateway.conversations.get_for_participant(convo_oid, user_id)
        if convo is None:
            raise ConversationNotFound()
        users = await self._user_repo.get_users_by_ids(convo["participants"])
        messages = await self._gateway.messages.list_by_conversation(convo_oid)
        return serialize_conversation(convo, user_id, users, messages=messages)

    async def get_total_unread(self, user_id: str) -> int:
        return await self._tracker.get_total_unread(user_id)

    async def get_unread(self, conversation_id: str, user_id: str) -> int:
        oid = parse_object_id(conversation_id)
        if oid is None:
            return 0
        return await self._tracker.get_unread(oid, user_id)

    def _conversation_oid(self, conversation_id: str) -> ObjectId:
        oid = parse_object_id(conversation_id)
        if oid is None:
            raise ConversationNotFound()
        return oid
