"""
Tests for the insight queue service over a mongomock-backed repository.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from insight_engine.domains.config import QueueConfig
from insight_engine.domains.enums import TaskStatus
from insight_engine.domains.errors import TaskNotFoundError
from insight_engine.processors.base import as_utc
from insight_engine.repositories.queue import QueueRepository
from insight_engine.services.queue import InsightQueueService


@pytest.fixture
def queue(mongo_adapter):
    return InsightQueueService(
        QueueRepository(mongo_adapter),
        QueueConfig(max_retries=2, retry_delay_minutes=5, poll_interval_seconds=0.01),
    )


class TestEnqueue:
    """Task creation."""

    def test_defaults(self, queue):
        task = queue.enqueue("memory_batch", ["m1", "m2"])
        stored = queue.get_task(task.id)
        assert stored.status == TaskStatus.PENDING
        assert stored.task_priority == 5
        assert stored.source_ids == ["m1", "m2"]
        assert stored.max_retries == 2

    def test_priority_is_clamped(self, queue):
        assert queue.enqueue("memory_batch", ["m1"], {"priority": 42}).task_priority == 10
        assert queue.enqueue("memory_batch", ["m1"], {"priority": -3}).task_priority == 1

    def test_payload_and_source_type(self, queue):
        task = queue.enqueue(
            "cluster_analysis",
            ["m1"],
            {"payload": {"cluster": True}, "source_type": "memory_cluster", "max_retries": 0},
        )
        stored = queue.get_task(task.id)
        assert stored.task_payload == {"cluster": True}
        assert stored.source_type == "memory_cluster"
        assert stored.max_retries == 0

    def test_unknown_task(self, queue):
        with pytest.raises(TaskNotFoundError):
            queue.get_task("missing")


class TestClaim:
    """Atomic claiming order."""

    def test_highest_priority_first(self, queue):
        queue.enqueue("memory_batch", ["low"], {"priority": 2})
        urgent = queue.enqueue("memory_batch", ["high"], {"priority": 9})

        claimed = queue.claim_next()

        assert claimed.id == urgent.id
        assert claimed.status == TaskStatus.PROCESSING
        assert claimed.processor_id == queue.processor_id
        assert claimed.started_at is not None

    def test_claimed_task_not_claimed_twice(self, queue):
        queue.enqueue("memory_batch", ["m1"])
        assert queue.claim_next() is not None
        assert queue.claim_next() is None

    def test_future_tasks_not_due(self, queue):
        task = queue.enqueue("memory_batch", ["m1"])
        queue.queue_repository.update(
            task.id, {"scheduled_for": datetime.now(timezone.utc) + timedelta(hours=1)}
        )
        assert queue.claim_next() is None


class TestSettle:
    """Completion, retry backoff and permanent failure."""

    def test_complete(self, queue):
        task = queue.enqueue("memory_batch", ["m1"])
        queue.claim_next()
        queue.complete(task.id, {"summary": {"successful": 1}, "insights_generated": 3})

        stored = queue.get_task(task.id)
        assert stored.status == TaskStatus.COMPLETED
        assert stored.result_summary == {"successful": 1}
        assert stored.insights_generated == 3
        assert stored.completed_at is not None

    def test_fail_schedules_retry_with_linear_backoff(self, queue):
        task = queue.enqueue("memory_batch", ["m1"])
        before = datetime.now(timezone.utc)

        queue.fail(task.id, "boom")
        first = queue.get_task(task.id)
        assert first.status == TaskStatus.PENDING
        assert first.retry_count == 1
        assert first.error_message == "boom"
        assert as_utc(first.scheduled_for) >= before + timedelta(minutes=5) - timedelta(seconds=1)

        queue.fail(task.id, "boom again")
        second = queue.get_task(task.id)
        assert second.retry_count == 2
        assert as_utc(second.scheduled_for) >= before + timedelta(minutes=10) - timedelta(seconds=1)

    def test_fail_after_max_retries_is_permanent(self, queue):
        task = queue.enqueue("memory_batch", ["m1"], {"max_retries": 1})
        queue.fail(task.id, "first")
        queue.fail(task.id, "second")

        stored = queue.get_task(task.id)
        assert stored.status == TaskStatus.FAILED
        assert stored.retry_count == 2
        assert stored.error_message == "second"


class TestProcessNext:
    """Claim, handle and settle in one step."""

    @pytest.mark.asyncio
    async def test_success(self, queue):
        task = queue.enqueue("memory_batch", ["m1"])
        handler = AsyncMock(return_value={"insights_generated": 2})

        settled = await queue.process_next(handler)

        handler.assert_awaited_once()
        assert handler.await_args.args[0].id == task.id
        assert settled.status == TaskStatus.COMPLETED
        assert settled.insights_generated == 2

    @pytest.mark.asyncio
    async def test_handler_failure_goes_to_retry(self, queue):
        task = queue.enqueue("memory_batch", ["m1"])
        settled = await queue.process_next(AsyncMock(side_effect=RuntimeError("llm down")))
        assert settled.id == task.id
        assert settled.status == TaskStatus.PENDING
        assert settled.error_message == "llm down"

    @pytest.mark.asyncio
    async def test_empty_queue(self, queue):
        assert await queue.process_next(AsyncMock()) is None

    @pytest.mark.asyncio
    async def test_run_stops_after_max_tasks(self, queue):
        for i in range(3):
            queue.enqueue("memory_batch", [f"m{i}"])
        queue.running = True
        handled = await queue.run(AsyncMock(return_value={}), max_tasks=2)
        assert handled == 2

    @pytest.mark.asyncio
    async def test_start_and_stop(self, queue):
        await queue.start(AsyncMock(return_value={}))
        assert queue.running
        await queue.stop()
        assert not queue.running
        assert queue._loop_task is None


class TestStats:
    """Per-status counts over the last day."""

    @pytest.mark.asyncio
    async def test_counts_and_average_duration(self, queue):
        queue.enqueue("memory_batch", ["pending"])
        done = queue.enqueue("memory_batch", ["done"], {"priority": 9})
        await queue.process_next(AsyncMock(return_value={}))

        stats = queue.get_stats()

        assert stats["pending"] == 1
        assert stats["completed"] == 1
        assert stats["failed"] == 0
        assert stats["avg_duration"] == 0
        assert queue.get_task(done.id).status == TaskStatus.COMPLETED
