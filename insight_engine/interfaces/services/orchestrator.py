"""
Orchestrator service interface.

This is the public surface consumed by the HTTP layer, the CLI and the
queue consumer.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from insight_engine.domains.memory import Memory
from insight_engine.domains.queue import QueueTask


class OrchestratorService(ABC):
    """Interface for the insight generation pipeline."""

    @abstractmethod
    async def process_memory(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Run one memory through strategy, processors, dedup, enrichment, validation and storage."""
        pass

    @abstractmethod
    async def process_batch(
        self, memories: List[Memory], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Process memories in bounded concurrent groups."""
        pass

    @abstractmethod
    def query_insights(
        self, criteria: Dict[str, Any], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        pass

    @abstractmethod
    def get_insights(
        self, analysis_type: str = "comprehensive", filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Named analysis mode query formatted into the response envelope."""
        pass

    @abstractmethod
    def queue_for_processing(
        self, task_type: str, source_ids: List[str], options: Optional[Dict[str, Any]] = None
    ) -> QueueTask:
        pass

    @abstractmethod
    def get_health(self) -> Dict[str, Any]:
        pass
