from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class QueryService(ABC):
    """Interface for reading stored insights."""

    @abstractmethod
    def search(self, criteria: Dict[str, Any]) -> Dict[str, Any]:
        """Filtered, paginated search returning insights, total and the criteria used."""
        pass

    @abstractmethod
    def get_by_id(self, insight_id: str, include_related: bool = False) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def find_similar(
        self, insight_id: str, limit: int = 5, min_similarity: float = 0.7
    ) -> List[Dict[str, Any]]:
        pass
