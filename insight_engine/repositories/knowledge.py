"""
Pattern library and technology tracking collections used by enrichers.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from insight_engine.interfaces.providers.data_storage import DataStorageProvider

logger = logging.getLogger(__name__)


class PatternLibraryRepository:
    """Known patterns to match insights against."""

    def __init__(self, db_provider: DataStorageProvider):
        self.db = db_provider
        self.collection = "pattern_library"
        try:
            self.db.create_collection(self.collection)
            self.db.create_index(self.collection, [("pattern_category", 1)])
        except Exception as e:  # pragma: no cover
            logger.error(f"Error initializing pattern library: {e}")

    def find_matching(
        self, category: str, technologies: List[str], limit: int = 10
    ) -> List[Dict[str, Any]]:
        alternatives: List[Dict[str, Any]] = [
            {"pattern_category": category},
            {"pattern_subcategory": category},
        ]
        if technologies:
            alternatives.append({"technologies": {"$in": technologies}})
        return self.db.find(
            self.collection,
            {"$or": alternatives},
            sort=[("confidence_score", -1), ("frequency_count", -1)],
            limit=limit,
        )

    def add(self, pattern: Dict[str, Any]) -> str:
        return self.db.insert_one(self.collection, dict(pattern))


class TechnologyTrackingRepository:
    """Running usage counts per technology."""

    def __init__(self, db_provider: DataStorageProvider):
        self.db = db_provider
        self.collection = "technology_tracking"
        try:
            self.db.create_collection(self.collection)
            self.db.create_index(
                self.collection,
                [("technology_name", 1), ("technology_category", 1)],
                unique=True,
            )
        except Exception as e:  # pragma: no cover
            logger.error(f"Error initializing technology tracking: {e}")

    def record(self, name: str, category: str, project_id: Optional[str]) -> None:
        now = datetime.now(timezone.utc)
        update: Dict[str, Any] = {
            "$inc": {"total_occurrences": 1},
            "$set": {"last_seen_at": now},
            "$setOnInsert": {"preference_score": 0.5, "first_seen_at": now},
        }
        if project_id:
            update["$addToSet"] = {"projects_using": project_id}
        self.db.update_one(
            self.collection,
            {"technology_name": name, "technology_category": category},
            update,
            upsert=True,
        )

    def get(self, name: str, category: str) -> Optional[Dict[str, Any]]:
        return self.db.find_one(
            self.collection, {"technology_name": name, "technology_category": category}
        )
