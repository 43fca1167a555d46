from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError


class NotificationRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["notifications"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("recipient_id", ASCENDING), ("created_at", DESCENDING)])
        # at most one unread row per (recipient, type, link)
        await self.collection.create_index(
            [("recipient_id", ASCENDING), ("type", ASCENDING), ("link", ASCENDING)],
            unique=True,
            partialFilterExpression={"read": False},
        )

    async def create_if_absent(self, recipient_id: str, type_: str, title: str, content: str, link: str) -> Optional[Dict[str, Any]]:
        """
        Insert an unread notification unless one with the same
        (recipient, type, link) is still unread. Returns the new document,
        or None when it was suppressed.
        """
        try:
            result = await self.collection.update_one(
                {"recipient_id": recipient_id, "type": type_, "link": link, "read": False},
                {"$setOnInsert": {"title": title, "content": content, "created_at": datetime.now(timezone.utc)}},
                upsert=True,
            )
        except DuplicateKeyError:
            # a concurrent upsert inserted the unread row first
            return None
        if result.upserted_id is None:
            return None
        return await self.collection.find_one({"_id": result.upserted_id})

    async def list_for_user(self, user_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        cursor = self.collection.find({"recipient_id": user_id}).sort([("created_at", DESCENDING), ("_id", DESCENDING)]).limit(limit)
        return await cursor.to_list(length=limit)

    async def mark_read(self, notification_id: ObjectId, user_id: str) -> Optional[Dict[str, Any]]:
        result = await self.collection.update_one({"_id": notification_id, "recipient_id": user_id}, {"$set": {"read": True}})
        if not result.matched_count:
            return None
        return await self.collection.find_one({"_id": notification_id})

    async def mark_all_read(self, user_id: str) -> int:
        result = await self.collection.update_many({"recipient_id": user_id, "read": False}, {"$set": {"read": True}})
        return result.modified_count or 0

    async def count_unread(self, user_id: str) -> int:
        return await self.collection.count_documents({"recipient_id": user_id, "read": False})

    async def delete(self, notification_id: ObjectId, user_id: str) -> bool:
        result = await self.collection.delete_one({"_id": notification_id, "recipient_id": user_id})
        return bool(result.deleted_count)
