from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping

from bson import ObjectId
from pymongo import ASCENDING, MongoClient

from .models import TaskEntity
from .repositories import Repository, utcnow

DEFAULT_DATABASE = "taskmaster"
COLLECTION = "tasks"


def _to_bson_precision(value: datetime) -> datetime:
    # BSON dates carry milliseconds; truncate so the created entity equals what list() returns
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


class MongoRepository(Repository):
    """
    MongoDB document store for tasks.

    Documents look like {"_id": ObjectId, "text": str, "createdAt": datetime}.
    The ObjectId's hex string is the task id exposed to callers.
    """

    def __init__(self, client: Any, database: str = DEFAULT_DATABASE) -> None:
        self._client = client
        self._collection = client[database][COLLECTION]
        self._collection.create_index([("createdAt", ASCENDING)])

    @classmethod
    def from_url(cls, url: str, timeout_ms: int = 5000) -> "MongoRepository":
        """Connect using a mongodb:// URL; the database comes from the URL path."""
        client: MongoClient = MongoClient(url, serverSelectionTimeoutMS=timeout_ms, tz_aware=True)
        database = client.get_default_database(default=DEFAULT_DATABASE).name
        return cls(client, database)

    def _doc_to_entity(self, doc: Mapping[str, Any]) -> TaskEntity:
        created_at: datetime = doc["createdAt"]
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return {
            "id": str(doc["_id"]),
            "text": str(doc["text"]),
            "created_at": created_at,
        }

    def create(self, text: str) -> TaskEntity:
        doc = {"text": text, "createdAt": _to_bson_precision(utcnow())}
        result = self._collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return self._doc_to_entity(doc)

    def list(self) -> List[TaskEntity]:
        # ObjectIds grow with insertion, so _id orders tasks created in the same millisecond
        cursor = self._collection.find().sort([("createdAt", ASCENDING), ("_id", ASCENDING)])
        return [self._doc_to_entity(d) for d in cursor]

    def delete(self, task_id: str) -> bool:
        # A malformed id can never match a stored document
        if not ObjectId.is_valid(task_id):
            return False
        result = self._collection.delete_one({"_id": ObjectId(task_id)})
        return result.deleted_count > 0

    def ping(self) -> None:
        self._client.admin.command("ping")

    def close(self) -> None:
        self._client.close()
