import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from insight_engine.domains.enums import ValidationStatus
from insight_engine.domains.insight import Insight
from insight_engine.interfaces.providers.data_storage import DataStorageProvider

logger = logging.getLogger(__name__)


class InsightRepository:
    """MongoDB persistence for insights."""

    def __init__(self, db_provider: DataStorageProvider):
        self.db = db_provider
        self.collection = "insights"
        try:
            self.db.create_collection(self.collection)
            self.db.create_index(self.collection, [("signature", 1), ("created_at", -1)])
            self.db.create_index(self.collection, [("project_id", 1)])
            self.db.create_index(self.collection, [("insight_type", 1)])
            self.db.create_index(self.collection, [("insight_category", 1)])
            self.db.create_index(self.collection, [("confidence_score", -1)])
            self.db.create_index(self.collection, [("source_ids", 1)])
        except Exception as e:  # pragma: no cover
            logger.error(f"Error initializing insights collection: {e}")

    def insert(self, insight: Insight) -> Insight:
        self.db.insert_one(self.collection, insight.to_document())
        return insight

    def get(self, insight_id: str) -> Optional[Insight]:
        doc = self.db.find_one(self.collection, {"_id": insight_id})
        return Insight.from_document(doc) if doc else None

    def get_many(self, insight_ids: List[str]) -> List[Insight]:
        if not insight_ids:
            return []
        docs = self.db.find(self.collection, {"_id": {"$in": list(insight_ids)}})
        return [Insight.from_document(d) for d in docs]

    def find_recent_by_signature(
        self, signature: str, since: datetime, project_id: Optional[str] = None
    ) -> Optional[Insight]:
        """Newest insight with this signature created after ``since``."""
        query: Dict[str, Any] = {"signature": signature, "created_at": {"$gte": since}}
        if project_id is not None:
            query["project_id"] = project_id
        doc = self.db.find_one(self.collection, query, sort=[("created_at", -1)])
        return Insight.from_document(doc) if doc else None

    def update(self, insight_id: str, updates: Dict[str, Any]) -> Optional[Insight]:
        fields = dict(updates)
        fields["updated_at"] = datetime.now(timezone.utc)
        self.db.update_one(self.collection, {"_id": insight_id}, {"$set": fields})
        return self.get(insight_id)

    def add_source_ids(self, insight_id: str, source_ids: List[str]) -> None:
        self.db.update_one(
            self.collection,
            {"_id": insight_id},
            {
                "$addToSet": {"source_ids": {"$each": list(source_ids)}},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            },
        )

    def mark_superseded(self, old_id: str, new_id: str) -> None:
        self.db.update_one(
            self.collection,
            {"_id": old_id},
            {"$set": {"superseded_by": new_id, "updated_at": datetime.now(timezone.utc)}},
        )

    def find_related(self, insight: Insight, limit: int = 20) -> List[Insight]:
        """Insights in the same project sharing a category, technology or source."""
        alternatives: List[Dict[str, Any]] = [{"insight_category": insight.insight_category}]
        tech_names = [t.name for t in insight.technologies]
        if tech_names:
            alternatives.append({"technologies.name": {"$in": tech_names}})
        if insight.source_ids:
            alternatives.append({"source_ids": {"$in": list(insight.source_ids)}})
        query = {
            "_id": {"$ne": insight.id},
            "project_id": insight.project_id,
            "$or": alternatives,
        }
        docs = self.db.find(self.collection, query, limit=limit)
        return [Insight.from_document(d) for d in docs]

    def find_supersedable(
        self, insight: Insight, older_than: datetime, limit: int = 5
    ) -> List[Insight]:
        """Older, weaker, unvalidated insights of the same type and category."""
        query = {
            "_id": {"$ne": insight.id},
            "insight_type": insight.insight_type,
            "insight_category": insight.insight_category,
            "confidence_score": {"$lt": insight.confidence_score},
            "created_at": {"$lt": older_than},
            "validation_status": {"$ne": ValidationStatus.VALIDATED.value},
            "superseded_by": None,
        }
        docs = self.db.find(self.collection, query, sort=[("created_at", 1)], limit=limit)
        return [Insight.from_document(d) for d in docs]

    def search(
        self,
        query: Dict[str, Any],
        sort: Optional[List[Tuple[str, int]]] = None,
        limit: int = 0,
        skip: int = 0,
    ) -> List[Insight]:
        docs = self.db.find(self.collection, query, sort=sort, limit=limit, skip=skip)
        return [Insight.from_document(d) for d in docs]

    def count(self, query: Dict[str, Any]) -> int:
        return self.db.count_documents(self.collection, query)

    def find_with_embeddings(self, exclude_id: Optional[str] = None) -> List[Insight]:
        query: Dict[str, Any] = {"embedding": {"$ne": None}}
        if exclude_id:
            query["_id"] = {"$ne": exclude_id}
        docs = self.db.find(self.collection, query)
        return [Insight.from_document(d) for d in docs]
