import logging
from typing import List, Optional

from insight_engine.domains.memory import Memory, ThinkingSequence
from insight_engine.interfaces.providers.data_storage import DataStorageProvider

logger = logging.getLogger(__name__)


class MemoryRepository:
    """Read access to memories and reasoning sequences stored in MongoDB."""

    def __init__(self, db_provider: DataStorageProvider):
        self.db = db_provider
        self.collection = "memories"
        self.sequences_collection = "thinking_sequences"
        try:
            self.db.create_collection(self.collection)
            self.db.create_collection(self.sequences_collection)
            self.db.create_index(self.collection, [("project_id", 1)])
            self.db.create_index(self.collection, [("memory_type", 1)])
        except Exception as e:  # pragma: no cover
            logger.error(f"Error initializing memory collections: {e}")

    @staticmethod
    def _to_memory(doc: dict) -> Memory:
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return Memory(**data)

    def get(self, memory_id: str) -> Optional[Memory]:
        doc = self.db.find_one(self.collection, {"_id": memory_id})
        return self._to_memory(doc) if doc else None

    def get_many(self, memory_ids: List[str]) -> List[Memory]:
        """Fetch memories by id, preserving the requested order."""
        if not memory_ids:
            return []
        docs = self.db.find(self.collection, {"_id": {"$in": list(memory_ids)}})
        by_id = {str(d["_id"]): d for d in docs}
        missing = [i for i in memory_ids if i not in by_id]
        if missing:
            logger.warning(f"Memories not found: {missing}")
        return [self._to_memory(by_id[i]) for i in memory_ids if i in by_id]

    def save(self, memory: Memory) -> str:
        doc = memory.model_dump()
        doc["_id"] = doc.pop("id")
        self.db.update_one(self.collection, {"_id": doc["_id"]}, {"$set": doc}, upsert=True)
        return doc["_id"]

    def get_thinking_sequence(self, sequence_id: str) -> Optional[ThinkingSequence]:
        doc = self.db.find_one(self.sequences_collection, {"_id": sequence_id})
        if not doc:
            return None
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return ThinkingSequence(**data)
