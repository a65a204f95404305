from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from todox.ports.task_store import TaskStore
from todox.domain.task import Task, TaskId, OwnerId
from todox.domain.errors import TaskAlreadyExistsError, PersistenceError

logger = logging.getLogger(__name__)


### COMMENTS
# ==========================================================
# Document store adapter (adapters/mongo/task_store.py).
# ==========================================================
# One collection, one document per task:
#   { id, ownerId, name, completed, createdAt }
# - `_id` is left to MongoDB and never leaves this module (projection {"_id": 0}).
# - Ownership lives in every filter: {"id": ..., "ownerId": ...}.
# - BSON dates hold milliseconds, so `createdAt` is truncated before insert
#   and the returned Task matches what a later read sees.

_NO_ID = {"_id": 0}


def _to_bson_dt(dt: datetime) -> datetime:
    dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=dt.microsecond // 1000 * 1000)


def _from_bson_dt(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _encode_task(task: Task) -> dict[str, Any]:
    return {
        "id": str(task.task_id),
        "ownerId": str(task.owner_id),
        "name": task.name,
        "completed": bool(task.completed),
        "createdAt": _to_bson_dt(task.created_at),
    }


def _decode_task(doc: dict[str, Any]) -> Task:
    return Task(
        task_id=TaskId(doc["id"]),
        owner_id=OwnerId(doc["ownerId"]),
        name=doc["name"],
        completed=bool(doc.get("completed", False)),
        created_at=_from_bson_dt(doc["createdAt"]),
    )


class MongoTaskStore(TaskStore):
    def __init__(self, collection) -> None:
        """Wraps a motor collection (or anything with the same async API)."""
        self.collection = collection
        self._indexes_ready = False
        self._index_lock = asyncio.Lock()

    @classmethod
    def from_uri(cls, uri: str, database: str, collection: str) -> "MongoTaskStore":
        client = AsyncIOMotorClient(uri, tz_aware=True)
        return cls(client[database][collection])

    async def _ensure_indexes(self) -> None:
        if self._indexes_ready:
            return
        async with self._index_lock:
            if self._indexes_ready:
                return
            try:
                await self.collection.create_index([("id", ASCENDING)], unique=True)
                await self.collection.create_index([("ownerId", ASCENDING), ("createdAt", ASCENDING)])
            except PyMongoError as e:
                logger.error("Creating task indexes failed: %s", e)
                raise PersistenceError("task store unavailable") from e
            self._indexes_ready = True

    async def insert(self, task: Task) -> Task:
        await self._ensure_indexes()
        doc = _encode_task(task)
        try:
            # insert_one adds `_id` to the dict it gets
            await self.collection.insert_one(dict(doc))
        except DuplicateKeyError:
            raise TaskAlreadyExistsError(task.task_id)
        except PyMongoError as e:
            logger.error("Insert of task %s failed: %s", task.task_id, e)
            raise PersistenceError("task store write failed") from e
        return _decode_task(doc)

    async def find_owned(self, owner_id: OwnerId, completed: Optional[bool] = None) -> list[Task]:
        await self._ensure_indexes()
        query: dict[str, Any] = {"ownerId": str(owner_id)}
        if completed is not None:
            query["completed"] = completed
        try:
            cursor = self.collection.find(query, _NO_ID).sort([("createdAt", ASCENDING), ("id", ASCENDING)])
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Listing tasks of owner %s failed: %s", owner_id, e)
            raise PersistenceError("task store read failed") from e
        return [_decode_task(d) for d in docs]

    async def update_if_owned(self, owner_id: OwnerId, task_id: TaskId, *, completed: bool) -> Optional[Task]:
        await self._ensure_indexes()
        try:
            doc = await self.collection.find_one_and_update(
                {"id": str(task_id), "ownerId": str(owner_id)},
                {"$set": {"completed": completed}},
                projection=_NO_ID,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error("Update of task %s failed: %s", task_id, e)
            raise PersistenceError("task store write failed") from e
        if doc is None:
            return None
        return _decode_task(doc)

    async def delete_if_owned(self, owner_id: OwnerId, task_id: TaskId) -> int:
        await self._ensure_indexes()
        try:
            result = await self.collection.delete_one({"id": str(task_id), "ownerId": str(owner_id)})
        except PyMongoError as e:
            logger.error("Delete of task %s failed: %s", task_id, e)
            raise PersistenceError("task store write failed") from e
        return int(result.deleted_count)
