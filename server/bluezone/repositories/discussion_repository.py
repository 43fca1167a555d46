import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument


SORT_ORDERS = {
    "recent": [("created_at", DESCENDING)],
    "popular": [("reply_count", DESCENDING), ("created_at", DESCENDING)],
    "active": [("updated_at", DESCENDING)],
}


class DiscussionRepository:
    """Discussions and their replies."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def discussions(self):
        return self._db["discussions"]

    @property
    def replies(self):
        return self._db["replies"]

    async def ensure_indexes(self) -> None:
        await self.discussions.create_index([("created_at", DESCENDING)])
        await self.discussions.create_index([("category", ASCENDING), ("created_at", DESCENDING)])
        await self.replies.create_index([("discussion_id", ASCENDING), ("created_at", ASCENDING)])
        await self.replies.create_index([("parent_id", ASCENDING)])

    async def create_discussion(self, author_id: str, title: str, content: str, category: str, tags: List[str]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        doc: Dict[str, Any] = {
            "author_id": author_id,
            "title": title,
            "content": content,
            "category": category,
            "tags": tags,
            "views": 0,
            "reply_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.discussions.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def get_discussion(self, discussion_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.discussions.find_one({"_id": discussion_id})

    async def list_discussions(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort: str = "recent",
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """One page of discussions and the total number matching the filters."""
        query: Dict[str, Any] = {}
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"content": pattern}]
        if category:
            query["category"] = category
        order = SORT_ORDERS.get(sort, SORT_ORDERS["recent"]) + [("_id", DESCENDING)]
        cursor = self.discussions.find(query).sort(order).skip(offset).limit(limit)
        items = await cursor.to_list(length=limit)
        total = await self.discussions.count_documents(query)
        return items, total

    async def trending(self, since: datetime, limit: int = 5) -> List[Dict[str, Any]]:
        cursor = (
            self.discussions.find({"created_at": {"$gte": since}})
            .sort([("reply_count", DESCENDING), ("views", DESCENDING), ("_id", DESCENDING)])
            .limit(limit)
        )
        return await cursor.to_list(length=limit)

    async def update_discussion(self, discussion_id: ObjectId, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self.discussions.find_one_and_update(
            {"_id": discussion_id},
            {"$set": {**fields, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )

    async def increment_views(self, discussion_id: ObjectId) -> None:
        await self.discussions.update_one({"_id": discussion_id}, {"$inc": {"views": 1}})

    async def delete_discussion(self, discussion_id: ObjectId) -> List[str]:
        """Delete the discussion and its replies; returns the deleted reply ids."""
        reply_ids = [str(r["_id"]) for r in await self.replies.find({"discussion_id": str(discussion_id)}, {"_id": 1}).to_list(length=None)]
        await self.replies.delete_many({"discussion_id": str(discussion_id)})
        await self.discussions.delete_one({"_id": discussion_id})
        return reply_ids

    async def create_reply(self, discussion_id: str, author_id: str, content: str, parent_id: Optional[str] = None) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "discussion_id": discussion_id,
            "author_id": author_id,
            "parent_id": parent_id,
            "content": content,
            "created_at": datetime.now(timezone.utc),
        }
        result = await self.replies.insert_one(doc)
        doc["_id"] = result.inserted_id
        await self.discussions.update_one(
            {"_id": ObjectId(discussion_id)},
            {"$set": {"updated_at": doc["created_at"]}, "$inc": {"reply_count": 1}},
        )
        return doc

    async def get_reply(self, reply_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.replies.find_one({"_id": reply_id})

    async def list_replies(self, discussion_id: str) -> List[Dict[str, Any]]:
        cursor = self.replies.find({"discussion_id": discussion_id}).sort([("created_at", ASCENDING), ("_id", ASCENDING)])
        return await cursor.to_list(length=None)

    async def update_reply(self, reply_id: ObjectId, content: str) -> Optional[Dict[str, Any]]:
        return await self.replies.find_one_and_update(
            {"_id": reply_id},
            {"$set": {"content": content, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_reply_tree(self, reply: Dict[str, Any]) -> List[str]:
        """Delete a reply and every reply nested under it; returns the deleted ids."""
        deleted = [str(reply["_id"])]
        frontier = list(deleted)
        while frontier:
            children = await self.replies.find({"parent_id": {"$in": frontier}}, {"_id": 1}).to_list(length=None)
            frontier = [str(child["_id"]) for child in children]
            deleted.extend(frontier)
        result = await self.replies.delete_many({"_id": {"$in": [ObjectId(rid) for rid in deleted]}})
        await self.discussions.update_one(
            {"_id": ObjectId(reply["discussion_id"])},
            {"$inc": {"reply_count": -(result.deleted_count or 0)}},
        )
        return deleted
