import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from insight_engine.domains.enums import TaskStatus
from insight_engine.domains.queue import QueueTask
from insight_engine.interfaces.providers.data_storage import DataStorageProvider

logger = logging.getLogger(__name__)


class QueueRepository:
    """MongoDB-backed task queue with atomic claim semantics."""

    def __init__(self, db_provider: DataStorageProvider):
        self.db = db_provider
        self.collection = "insight_queue"
        try:
            self.db.create_collection(self.collection)
            self.db.create_index(
                self.collection,
                [("status", 1), ("task_priority", -1), ("scheduled_for", 1)],
            )
            self.db.create_index(self.collection, [("created_at", 1)])
        except Exception as e:  # pragma: no cover
            logger.error(f"Error initializing queue collection: {e}")

    def insert(self, task: QueueTask) -> str:
        return self.db.insert_one(self.collection, task.to_document())

    def get(self, task_id: str) -> Optional[QueueTask]:
        doc = self.db.find_one(self.collection, {"_id": task_id})
        return QueueTask.from_document(doc) if doc else None

    def claim_next(self, processor_id: str, now: datetime) -> Optional[QueueTask]:
        """Atomically move the most urgent due task from pending to processing."""
        doc = self.db.find_one_and_update(
            self.collection,
            {"status": TaskStatus.PENDING.value, "scheduled_for": {"$lte": now}},
            {
                "$set": {
                    "status": TaskStatus.PROCESSING.value,
                    "started_at": now,
                    "processor_id": processor_id,
                }
            },
            sort=[("task_priority", -1), ("scheduled_for", 1), ("created_at", 1)],
        )
        return QueueTask.from_document(doc) if doc else None

    def update(self, task_id: str, fields: Dict[str, Any]) -> bool:
        return self.db.update_one(self.collection, {"_id": task_id}, {"$set": fields})

    def find_since(self, since: datetime) -> List[QueueTask]:
        docs = self.db.find(self.collection, {"created_at": {"$gt": since}})
        return [QueueTask.from_document(d) for d in docs]
