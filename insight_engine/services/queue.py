"""
Insight queue service.

Durable priority queue of processing tasks backed by the store. Claiming
is atomic, so several consumers can drain the same queue.
"""
import asyncio
import logging
import os
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from insight_engine.domains.config import QueueConfig
from insight_engine.domains.enums import TaskStatus
from insight_engine.domains.errors import TaskNotFoundError
from insight_engine.domains.queue import QueueTask
from insight_engine.interfaces.services.queue import QueueService as QueueServiceInterface
from insight_engine.processors.base import as_utc
from insight_engine.repositories.queue import QueueRepository

logger = logging.getLogger(__name__)

TaskHandler = Callable[[QueueTask], Awaitable[Dict[str, Any]]]

STATS_WINDOW = timedelta(hours=24)


class InsightQueueService(QueueServiceInterface):
    """Enqueue, claim and settle queue tasks."""

    def __init__(self, queue_repository: QueueRepository, config: Optional[QueueConfig] = None):
        """Initialize the queue service.

        Args:
            queue_repository: Queue collection access
            config: Retry and polling settings
        """
        self.queue_repository = queue_repository
        self.config = config or QueueConfig()
        self.processor_id = f"processor_{os.getpid()}_{int(time.time() * 1000)}"
        self.running = False
        self._loop_task: Optional[asyncio.Task] = None

    def enqueue(
        self, task_type: str, source_ids: List[str], options: Optional[Dict[str, Any]] = None
    ) -> QueueTask:
        options = options or {}
        priority = int(options.get("priority") or 5)
        task = QueueTask(
            task_type=task_type,
            task_priority=max(1, min(10, priority)),
            source_type=options.get("source_type", "memory"),
            source_ids=source_ids,
            task_payload=options.get("payload") or {},
            max_retries=options.get("max_retries", self.config.max_retries),
        )
        self.queue_repository.insert(task)
        logger.debug(f"Enqueued task {task.id} of type {task_type}")
        return task

    def get_task(self, task_id: str) -> QueueTask:
        task = self.queue_repository.get(task_id)
        if not task:
            raise TaskNotFoundError(task_id)
        return task

    def claim_next(self) -> Optional[QueueTask]:
        return self.queue_repository.claim_next(self.processor_id, datetime.now(timezone.utc))

    def complete(self, task_id: str, result: Dict[str, Any]) -> None:
        self.queue_repository.update(
            task_id,
            {
                "status": TaskStatus.COMPLETED.value,
                "completed_at": datetime.now(timezone.utc),
                "result_summary": result.get("summary") or {},
                "insights_generated": int(result.get("insights_generated") or 0),
            },
        )

    def fail(self, task_id: str, error: str) -> None:
        task = self.get_task(task_id)
        fields: Dict[str, Any] = {
            "retry_count": task.retry_count + 1,
            "error_message": error,
        }
        if task.retry_count < task.max_retries:
            delay = timedelta(minutes=self.config.retry_delay_minutes * (task.retry_count + 1))
            fields["status"] = TaskStatus.PENDING.value
            fields["scheduled_for"] = datetime.now(timezone.utc) + delay
            logger.warning(
                f"Task {task_id} failed (attempt {task.retry_count + 1}), retrying in {delay}"
            )
        else:
            fields["status"] = TaskStatus.FAILED.value
            fields["completed_at"] = datetime.now(timezone.utc)
            logger.error(f"Task {task_id} failed permanently: {error}")
        self.queue_repository.update(task_id, fields)

    async def process_next(self, handler: TaskHandler) -> Optional[QueueTask]:
        """Claim one due task, run the handler on it and settle it.

        Returns:
            The settled task, or None when nothing was due
        """
        task = self.claim_next()
        if not task:
            return None

        logger.info(f"Processing queue task {task.id} of type {task.task_type}")
        try:
            result = await handler(task)
            self.complete(task.id, result or {})
        except Exception as e:
            logger.exception(f"Queue task {task.id} failed: {e}")
            self.fail(task.id, str(e))
        return self.queue_repository.get(task.id)

    def get_stats(self) -> Dict[str, Any]:
        since = datetime.now(timezone.utc) - STATS_WINDOW
        stats: Dict[str, Any] = {status.value: 0 for status in TaskStatus}
        durations = []
        for task in self.queue_repository.find_since(since):
            stats[task.status.value] += 1
            if task.status == TaskStatus.COMPLETED and task.started_at and task.completed_at:
                durations.append(
                    (as_utc(task.completed_at) - as_utc(task.started_at)).total_seconds()
                )
        stats["avg_duration"] = round(sum(durations) / len(durations)) if durations else 0
        return stats

    async def run(self, handler: TaskHandler, max_tasks: Optional[int] = None) -> int:
        """Consumer loop. Polls while running, or until ``max_tasks`` have been handled."""
        handled = 0
        while self.running:
            task = await self.process_next(handler)
            if task:
                handled += 1
                if max_tasks is not None and handled >= max_tasks:
                    break
                continue
            await asyncio.sleep(self.config.poll_interval_seconds)
        return handled

    async def start(self, handler: Optional[TaskHandler] = None) -> None:
        self.running = True
        if handler and not self._loop_task:
            self._loop_task = asyncio.create_task(self.run(handler))
        logger.info("Insight queue service started")

    async def stop(self) -> None:
        self.running = False
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        logger.info("Insight queue service stopped")
