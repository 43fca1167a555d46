from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING


class MessageRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["messages"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("conversation_id", ASCENDING), ("created_at", ASCENDING)])

    async def save_message(self, conversation_id: ObjectId, sender_id: str, content: str, at: datetime, session=None) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "content": content,
            "created_at": at,
            "read": False,
        }
        result = await self.collection.insert_one(doc, session=session)
        doc["_id"] = result.inserted_id
        return doc

    async def list_by_conversation(self, conversation_id: ObjectId, limit: int = 200) -> List[Dict[str, Any]]:
        cursor = self.collection.find({"conversation_id": conversation_id}).sort([("created_at", ASCENDING), ("_id", ASCENDING)]).limit(limit)
        return await cursor.to_list(length=limit)

    async def latest(self, conversation_id: ObjectId) -> Optional[Dict[str, Any]]:
        cursor = self.collection.find({"conversation_id": conversation_id}).sort([("created_at", DESCENDING), ("_id", DESCENDING)]).limit(1)
        items = await cursor.to_list(length=1)
        return items[0] if items else None

    async def mark_read_for_reader(self, conversation_id: ObjectId, reader_id: str, session=None) -> int:
        result = await self.collection.update_many(
            {"conversation_id": conversation_id, "sender_id": {"$ne": reader_id}, "read": False},
            {"$set": {"read": True}},
            session=session,
        )
        return result.modified_count or 0

    async def delete_by_conversation(self, conversation_id: ObjectId, session=None) -> int:
        result = await self.collection.delete_many({"conversation_id": conversation_id}, session=session)
        return result.deleted_count or 0
