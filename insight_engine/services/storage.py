"""
Insight storage service.

Persists validated insights while enforcing the rolling deduplication
window and maintaining the supersession chain.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from insight_engine.domains.config import StorageConfig
from insight_engine.domains.errors import StorageError
from insight_engine.domains.insight import Insight
from insight_engine.enrichers.relationship import SUPERSEDES_KEY
from insight_engine.interfaces.services.storage import StorageService as StorageServiceInterface
from insight_engine.repositories.insight import InsightRepository

logger = logging.getLogger(__name__)


class InsightStorageService(StorageServiceInterface):
    """Stores insights with a signature-based deduplication window."""

    def __init__(
        self,
        insight_repository: InsightRepository,
        config: Optional[StorageConfig] = None,
    ):
        """Initialize the storage service.

        Args:
            insight_repository: Insight collection access
            config: Storage settings, supplies the deduplication window
        """
        self.insight_repository = insight_repository
        self.config = config or StorageConfig()

    def store_insights(self, insights: List[Insight]) -> List[Insight]:
        stored: List[Insight] = []
        failed = 0
        for insight in insights:
            try:
                stored.append(self.store_insight(insight))
            except StorageError:
                raise
            except Exception as e:
                failed += 1
                logger.error(f"Failed to store insight '{insight.title}': {e}")

        logger.info(f"Stored {len(stored)} insights ({failed} failed)")
        return stored

    def check_duplicate(self, insight: Insight) -> Optional[Insight]:
        since = datetime.now(timezone.utc) - self.config.window
        try:
            return self.insight_repository.find_recent_by_signature(
                insight.signature, since, insight.project_id
            )
        except PyMongoError as e:
            raise StorageError(f"Duplicate check failed: {e}") from e

    def store_insight(self, insight: Insight) -> Insight:
        existing = self.check_duplicate(insight)
        candidates = insight.custom_metadata.pop(SUPERSEDES_KEY, None) or []

        try:
            if existing and existing.confidence_score >= insight.confidence_score:
                self.insight_repository.add_source_ids(existing.id, insight.source_ids)
                logger.info(
                    f"Merged duplicate insight into {existing.id} ({insight.signature})"
                )
                return self.insight_repository.get(existing.id) or existing

            if existing:
                insight.supersedes_insight_id = existing.id

            self.insight_repository.insert(insight)

            if existing:
                self.insight_repository.mark_superseded(existing.id, insight.id)
                logger.info(f"Insight {insight.id} supersedes {existing.id}")
            for old_id in candidates:
                if existing and old_id == existing.id:
                    continue
                self.insight_repository.mark_superseded(old_id, insight.id)
        except PyMongoError as e:
            raise StorageError(f"Failed to store insight {insight.id}: {e}") from e

        logger.debug(f"Stored insight {insight.id}: {insight.title}")
        return insight

    def update_insight(self, insight_id: str, updates: Dict[str, Any]) -> Optional[Insight]:
        try:
            return self.insight_repository.update(insight_id, updates)
        except PyMongoError as e:
            raise StorageError(f"Failed to update insight {insight_id}: {e}") from e
