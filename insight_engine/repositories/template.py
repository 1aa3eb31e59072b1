import logging
from typing import Any, Dict, List, Optional

from insight_engine.domains.template import AnalysisTemplate
from insight_engine.interfaces.providers.data_storage import DataStorageProvider

logger = logging.getLogger(__name__)


class TemplateRepository:
    """MongoDB access to analysis templates."""

    def __init__(self, db_provider: DataStorageProvider):
        self.db = db_provider
        self.collection = "insight_templates"
        try:
            self.db.create_collection(self.collection)
            self.db.create_index(self.collection, [("template_name", 1)], unique=True)
            self.db.create_index(self.collection, [("template_category", 1), ("is_active", 1)])
        except Exception as e:  # pragma: no cover
            logger.error(f"Error initializing templates collection: {e}")

    @staticmethod
    def _to_template(doc: Dict[str, Any]) -> AnalysisTemplate:
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return AnalysisTemplate(**data)

    def find_active(
        self,
        category: Optional[str] = None,
        exclude_category: Optional[str] = None,
    ) -> List[AnalysisTemplate]:
        """Active templates, oldest first."""
        query: Dict[str, Any] = {"is_active": True}
        if category:
            query["template_category"] = category
        elif exclude_category:
            query["template_category"] = {"$ne": exclude_category}
        docs = self.db.find(self.collection, query, sort=[("created_at", 1)])
        templates = []
        for doc in docs:
            try:
                templates.append(self._to_template(doc))
            except Exception as e:
                logger.warning(f"Skipping malformed template {doc.get('_id')}: {e}")
        return templates

    def save(self, template: AnalysisTemplate) -> str:
        doc = template.model_dump()
        doc["_id"] = doc.pop("id")
        self.db.update_one(self.collection, {"_id": doc["_id"]}, {"$set": doc}, upsert=True)
        return doc["_id"]
