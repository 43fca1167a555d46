from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from bluezone.utils.ids import pair_key


class ConversationRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["conversations"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("pair_key", ASCENDING)], unique=True)
        await self.collection.create_index([("participants", ASCENDING)])
        await self.collection.create_index([("last_message_at", DESCENDING)])

    async def get_or_create_one_to_one(self, user_a: str, user_b: str, session=None) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        key = pair_key(user_a, user_b)
        doc = {
            "participants": sorted([user_a, user_b]),
            "created_at": now,
            "last_message_at": now,
            "last_message_preview": None,
            "unread_counters": {user_a: 0, user_b: 0},
            "last_read_at": {user_a: None, user_b: None},
        }
        # raises DuplicateKeyError when a concurrent upsert for the pair wins
        return await self.collection.find_one_and_update(
            {"pair_key": key},
            {"$setOnInsert": doc},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=session,
        )

    async def find_by_pair(self, user_a: str, user_b: str, session=None) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"pair_key": pair_key(user_a, user_b)}, session=session)

    async def get(self, conversation_id: ObjectId, session=None) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"_id": conversation_id}, session=session)

    async def get_for_participant(self, conversation_id: ObjectId, user_id: str, session=None) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"_id": conversation_id, "participants": user_id}, session=session)

    async def update_on_new_message(self, conversation_id: ObjectId, preview: str, receiver_ids: List[str], at: datetime, session=None) -> None:
        update: Dict[str, Any] = {
            "$set": {
                "last_message_at": at,
                "last_message_preview": preview,
            },
        }
        if receiver_ids:
            update["$inc"] = {f"unread_counters.{uid}": 1 for uid in receiver_ids}
        await self.collection.update_one({"_id": conversation_id}, update, session=session)

    async def reset_unread(self, conversation_id: ObjectId, user_id: str, at: datetime, session=None) -> bool:
        result = await self.collection.update_one(
            {"_id": conversation_id, "participants": user_id},
            {"$set": {f"unread_counters.{user_id}": 0, f"last_read_at.{user_id}": at}},
            session=session,
        )
        return bool(result.matched_count)

    async def remove_participant(self, conversation_id: ObjectId, user_id: str, session=None) -> bool:
        result = await self.collection.update_one(
            {"_id": conversation_id, "participants": user_id},
            {
                "$pull": {"participants": user_id},
                "$unset": {f"unread_counters.{user_id}": "", f"last_read_at.{user_id}": ""},
                "$set": {"pair_key": f"left:{conversation_id}"},
            },
            session=session,
        )
        return bool(result.matched_count)

    async def delete_if_empty(self, conversation_id: ObjectId, session=None) -> bool:
        result = await self.collection.delete_one({"_id": conversation_id, "participants": {"$size": 0}}, session=session)
        return bool(result.deleted_count)

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        cursor = self.collection.find({"participants": user_id}).sort([("last_message_at", DESCENDING), ("_id", DESCENDING)]).limit(limit)
        return await cursor.to_list(length=limit)

    async def unread_counters_for_user(self, user_id: str) -> List[int]:
        cursor = self.collection.find({"participants": user_id}, {"unread_counters": 1})
        counters = []
        async for doc in cursor:
            counters.append(int((doc.get("unread_counters") or {}).get(user_id, 0)))
        return counters
