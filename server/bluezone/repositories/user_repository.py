from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from bluezone.models.user import UserRole
from bluezone.utils.ids import parse_object_id


class UserRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("users")

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("email", ASCENDING)], unique=True)

    async def create_user(self, email: str, name: str, role: UserRole = UserRole.MEMBER) -> str:

        doc = {"email": email, "name": name, "role": role.value, "suspended": False, "interests": []}
        result = await self._collection.insert_one(doc)
        return str(result.inserted_id)

    async def get_user_by_id(self, user_id: str) -> Optional[dict]:

        oid = parse_object_id(user_id)
        if oid is None:
            return None
        user = await self._collection.find_one({"_id": oid})
        if user:
            user["_id"] = str(user["_id"])  # normalize to string for API layer
        return user

    async def get_users_by_ids(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:

        oids = [oid for oid in (parse_object_id(uid) for uid in set(user_ids)) if oid is not None]
        if not oids:
            return {}
        users: List[Dict[str, Any]] = await self._collection.find({"_id": {"$in": oids}}).to_list(length=len(oids))
        result = {}
        for user in users:
            user["_id"] = str(user["_id"])
            result[user["_id"]] = user
        return result
