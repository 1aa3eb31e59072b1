from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from insight_engine.domains.memory import Memory


class InsightEngineClient(ABC):
    """Interface for the config-driven insight engine client."""

    @abstractmethod
    async def process(
        self, memory: Union[Memory, Dict[str, Any]], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def process_batch(
        self,
        memories: List[Union[Memory, Dict[str, Any]]],
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
    def get_insights(
        self, analysis_type: str = "comprehensive", filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
    def health(self) -> Dict[str, Any]:
        pass
