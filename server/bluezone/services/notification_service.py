import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bluezone.models.notification import NotificationType
from bluezone.repositories.notification_repository import NotificationRepository
from bluezone.utils.errors import NotificationNotFound
from bluezone.utils.ids import parse_object_id
from bluezone.utils.serializers import serialize_notification
from bluezone.utils.websocket_manager import ConnectionManager


logger = logging.getLogger(__name__)


@dataclass
class DispatchOutcome:

    # created | suppressed | skipped | failed
    status: str
    notification: Optional[Dict[str, Any]] = None
    delivered: int = 0

    @property
    def created(self) -> bool:
        return self.status == "created"

    @property
    def suppressed(self) -> bool:
        return self.status == "suppressed"


SKIPPED = DispatchOutcome(status="skipped")


class NotificationDispatcher:

    def __init__(self, repo: NotificationRepository, manager: ConnectionManager) -> None:
        self._repo = repo
        self._manager = manager

    async def dispatch(self, recipient_id: str, type_: NotificationType, title: str, content: str, link: str) -> DispatchOutcome:
        """
        Persist and push a notification, unless an unread one for the same
        (recipient, type, link) is still outstanding. Persistence errors
        propagate; live delivery is best effort.
        """
        doc = await self._repo.create_if_absent(recipient_id, type_.value, title, content, link)
        if doc is None:
            logger.debug("Suppressed duplicate %s notification for %s on %s", type_.value, recipient_id, link)
            return DispatchOutcome(status="suppressed")
        notification = serialize_notification(doc)
        delivered = await self._manager.deliver_to_user(recipient_id, "notification:new", {"notification": notification})
        return DispatchOutcome(status="created", notification=notification, delivered=delivered)

    async def dispatch_after_commit(self, recipient_id: str, type_: NotificationType, title: str, content: str, link: str) -> DispatchOutcome:
        """`dispatch` for side effects of an already-committed action: failures are logged, not raised."""
        try:
            return await self.dispatch(recipient_id, type_, title, content, link)
        except Exception:
            logger.warning("Failed to create %s notification for %s", type_.value, recipient_id, exc_info=True)
            return DispatchOutcome(status="failed")

    async def list_notifications(self, user_id: str) -> List[Dict[str, Any]]:
        return [serialize_notification(n) for n in await self._repo.list_for_user(user_id)]

    async def mark_read(self, notification_id: str, user_id: str) -> Dict[str, Any]:
        oid = parse_object_id(notification_id)
        doc = await self._repo.mark_read(oid, user_id) if oid else None
        if doc is None:
            raise NotificationNotFound()
        return serialize_notification(doc)

    async def mark_all_read(self, user_id: str) -> int:
        return await self._repo.mark_all_read(user_id)

    async def unread_count(self, user_id: str) -> int:
        return await self._repo.count_unread(user_id)

    async def dismiss(self, notification_id: str, user_id: str) -> None:
        oid = parse_object_id(notification_id)
        if oid is None or not await self._repo.delete(oid, user_id):
            raise NotificationNotFound()
