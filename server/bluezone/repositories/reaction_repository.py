from datetime import datetime, timezone
from typing import Dict, Iterable, Set

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from bluezone.models.reaction import SubjectKind


class ReactionRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["reactions"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index(
            [("subject_kind", ASCENDING), ("subject_id", ASCENDING), ("user_id", ASCENDING)],
            unique=True,
        )

    async def remove(self, kind: SubjectKind, subject_id: str, user_id: str, session=None) -> bool:
        result = await self.collection.delete_one(
            {"subject_kind": kind.value, "subject_id": subject_id, "user_id": user_id},
            session=session,
        )
        return bool(result.deleted_count)

    async def add(self, kind: SubjectKind, subject_id: str, user_id: str, session=None) -> None:
        """Insert the pair; DuplicateKeyError when it already exists."""
        doc = {
            "subject_kind": kind.value,
            "subject_id": subject_id,
            "user_id": user_id,
            "created_at": datetime.now(timezone.utc),
        }
        await self.collection.insert_one(doc, session=session)

    async def count(self, kind: SubjectKind, subject_id: str, session=None) -> int:
        return await self.collection.count_documents({"subject_kind": kind.value, "subject_id": subject_id}, session=session)

    async def summarize(self, kind: SubjectKind, subject_ids: Iterable[str], viewer_id: str | None = None) -> Dict[str, Dict]:
        """likes_count / liked_by_user for each subject id, recomputed from the reaction rows."""
        ids = list(subject_ids)
        summary: Dict[str, Dict] = {sid: {"likes_count": 0, "liked_by_user": False} for sid in ids}
        if not ids:
            return summary
        likers: Dict[str, Set[str]] = {sid: set() for sid in ids}
        cursor = self.collection.find({"subject_kind": kind.value, "subject_id": {"$in": ids}}, {"subject_id": 1, "user_id": 1})
        async for row in cursor:
            likers[row["subject_id"]].add(row["user_id"])
        for sid, users in likers.items():
            summary[sid] = {"likes_count": len(users), "liked_by_user": bool(viewer_id and viewer_id in users)}
        return summary

    async def delete_for_subjects(self, kind: SubjectKind, subject_ids: Iterable[str]) -> int:
        ids = list(subject_ids)
        if not ids:
            return 0
        result = await self.collection.delete_many({"subject_kind": kind.value, "subject_id": {"$in": ids}})
        return result.deleted_count or 0
