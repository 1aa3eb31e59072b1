from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from insight_engine.domains.insight import Insight


class StorageService(ABC):
    """Interface for persisting validated insights."""

    @abstractmethod
    def store_insights(self, insights: List[Insight]) -> List[Insight]:
        """Store each insight, returning the stored (or absorbing) records."""
        pass

    @abstractmethod
    def store_insight(self, insight: Insight) -> Insight:
        """Store one insight subject to the deduplication window."""
        pass

    @abstractmethod
    def update_insight(self, insight_id: str, updates: Dict[str, Any]) -> Optional[Insight]:
        pass

    @abstractmethod
    def check_duplicate(self, insight: Insight) -> Optional[Insight]:
        """Return a stored insight with the same signature inside the window."""
        pass
