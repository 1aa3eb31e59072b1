from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from insight_engine.domains.queue import QueueTask


class QueueService(ABC):
    """Interface for the durable async task queue."""

    @abstractmethod
    def enqueue(
        self, task_type: str, source_ids: List[str], options: Optional[Dict[str, Any]] = None
    ) -> QueueTask:
        pass

    @abstractmethod
    def claim_next(self) -> Optional[QueueTask]:
        """Atomically claim the most urgent due task."""
        pass

    @abstractmethod
    def complete(self, task_id: str, result: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def fail(self, task_id: str, error: str) -> None:
        """Reschedule with backoff or mark the task failed."""
        pass

    @abstractmethod
    async def process_next(
        self, handler: Callable[[QueueTask], Awaitable[Dict[str, Any]]]
    ) -> Optional[QueueTask]:
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        pass
