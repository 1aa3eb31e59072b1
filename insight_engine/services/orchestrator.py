"""
Insight orchestrator.

Wires strategy selection, processors, deduplication, enrichment,
validation and storage into the memory and batch processing paths, and
exposes the query and queue entry points.
"""
import asyncio
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from insight_engine.domains.config import EngineConfig
from insight_engine.domains.enums import (
    CONFIDENCE_HIGH,
    CONFIDENCE_MEDIUM,
    TaskType,
    ValidationStatus,
)
from insight_engine.domains.errors import InsightEngineError
from insight_engine.domains.insight import Insight
from insight_engine.domains.memory import Memory, ThinkingSequence
from insight_engine.domains.queue import QueueTask
from insight_engine.enrichers.registry import EnricherRegistry
from insight_engine.interfaces.processors.processor import Processor
from insight_engine.interfaces.services.orchestrator import (
    OrchestratorService as OrchestratorServiceInterface,
)
from insight_engine.processors.base import BaseProcessor
from insight_engine.processors.registry import ProcessorRegistry
from insight_engine.repositories.memory import MemoryRepository
from insight_engine.services.deduplicator import deduplicate
from insight_engine.services.query import InsightQueryService
from insight_engine.services.queue import InsightQueueService
from insight_engine.services.storage import InsightStorageService
from insight_engine.services.strategy import select_strategy
from insight_engine.services.validator import InsightValidator

logger = logging.getLogger(__name__)

DEFAULT_INSIGHTS_LIMIT = 50

# named analysis modes -> query criteria
ANALYSIS_CRITERIA: Dict[str, Dict[str, Any]] = {
    "comprehensive": {"include_all_categories": True},
    "patterns": {"categories": ["architectural", "design", "api"], "insight_types": ["pattern"]},
    "learning": {"categories": ["learning", "progress"]},
    "progress": {"insight_types": ["progress", "milestone"]},
    "quality": {
        "categories": ["quality", "testing", "code_quality"],
        "insight_types": ["bug", "code_smell", "improvement"],
    },
    "productivity": {"categories": ["productivity", "efficiency"]},
    "technical_debt": {
        "categories": ["debt", "refactoring", "maintenance"],
        "insight_types": ["debt", "anti_pattern"],
    },
}


def generate_processing_id() -> str:
    return f"proc_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def confidence_distribution(insights: List[Insight]) -> Dict[str, int]:
    bands = {"high": 0, "medium": 0, "low": 0}
    for insight in insights:
        if insight.confidence_score >= CONFIDENCE_HIGH:
            bands["high"] += 1
        elif insight.confidence_score >= CONFIDENCE_MEDIUM:
            bands["medium"] += 1
        else:
            bands["low"] += 1
    return bands


def distinct_categories(insights: List[Insight]) -> List[str]:
    categories: List[str] = []
    for insight in insights:
        for category in (insight.insight_category, insight.insight_subcategory):
            if category and category not in categories:
                categories.append(category)
    return categories


class InsightOrchestrator(OrchestratorServiceInterface):
    """Top-level insight generation pipeline."""

    def __init__(
        self,
        processor_registry: ProcessorRegistry,
        storage_service: InsightStorageService,
        query_service: InsightQueryService,
        enricher_registry: Optional[EnricherRegistry] = None,
        validator: Optional[InsightValidator] = None,
        queue_service: Optional[InsightQueueService] = None,
        memory_repository: Optional[MemoryRepository] = None,
        config: Optional[EngineConfig] = None,
    ):
        """Initialize the orchestrator.

        Args:
            processor_registry: Catalog of analysis processors
            storage_service: Persists validated insights
            query_service: Read side used by query_insights and get_insights
            enricher_registry: Optional enricher pipeline
            validator: Insight validator, built from config when omitted
            queue_service: Optional async task queue
            memory_repository: Loads memories referenced by queue tasks
            config: Engine configuration
        """
        self.config = config or EngineConfig()
        self.processor_registry = processor_registry
        self.storage_service = storage_service
        self.query_service = query_service
        self.enricher_registry = enricher_registry or EnricherRegistry()
        self.validator = validator or InsightValidator(self.config.quality)
        self.queue_service = queue_service
        self.memory_repository = memory_repository

        self.initialized = False
        self.metrics = {
            "processed": 0,
            "errors": 0,
            "insights_generated": 0,
            "total_processing_time": 0.0,
            "start_time": time.time(),
        }

    async def initialize(self) -> None:
        if self.initialized:
            return
        logger.info("Initializing insight orchestrator...")
        await self.processor_registry.initialize()
        await self.enricher_registry.initialize()
        if self.queue_service and self.config.processing.queue_enabled:
            await self.queue_service.start()
        self.initialized = True
        logger.info("Insight orchestrator initialized")

    async def shutdown(self) -> None:
        logger.info("Shutting down insight orchestrator...")
        if self.queue_service:
            await self.queue_service.stop()
        await self.processor_registry.cleanup()
        await self.enricher_registry.cleanup()
        self.initialized = False
        logger.info("Insight orchestrator shut down")

    async def run_processor(
        self, processor: Processor, memory: Memory, options: Dict[str, Any]
    ) -> List[Insight]:
        if isinstance(processor, BaseProcessor):
            return await processor.run(memory, options)
        if not processor.should_process(memory):
            return []
        return await processor.process(memory, options)

    async def process_memory(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        options = options or {}
        started = time.monotonic()
        processing_id = generate_processing_id()

        if not memory.has_content():
            logger.warning(f"Memory {memory.id} has no content, skipping")
            return {
                "success": True,
                "processing_id": processing_id,
                "insights": [],
                "metrics": {"duration_ms": 0, "insights_generated": 0},
            }

        strategy = select_strategy(memory, options, self.config)
        logger.info(
            f"Processing memory {memory.id} ({memory.memory_type}) with "
            f"{strategy.processors} [{strategy.priority}]"
        )

        processors = await self.processor_registry.get_processors(strategy.processors)
        run_options = dict(options, processing_id=processing_id)

        drafts: List[Insight] = []
        for processor in processors:
            try:
                produced = await self.run_processor(processor, memory, run_options)
            except Exception as e:
                logger.error(f"Processor {processor.name} failed on memory {memory.id}: {e}")
                self.metrics["errors"] += 1
                continue
            logger.debug(f"Processor {processor.name} returned {len(produced)} insights")
            drafts.extend(produced)

        unique = deduplicate(drafts)
        enriched = await self.enricher_registry.enrich_all(unique, memory)
        valid = self.accept(enriched)

        try:
            stored = self.storage_service.store_insights(valid)
        except Exception as e:
            self.metrics["errors"] += 1
            logger.error(f"Failed to store insights for memory {memory.id}: {e}")
            raise

        duration = time.monotonic() - started
        self.metrics["processed"] += 1
        self.metrics["insights_generated"] += len(stored)
        self.metrics["total_processing_time"] += duration
        logger.info(f"Stored {len(stored)} insights for memory {memory.id}")

        return {
            "success": True,
            "processing_id": processing_id,
            "insights": stored,
            "metrics": {
                "duration_ms": int(duration * 1000),
                "insights_generated": len(stored),
                "drafts": len(drafts),
                "processors": [p.name for p in processors],
            },
        }

    def accept(self, insights: List[Insight]) -> List[Insight]:
        """Validate drafts; with ``require_validation`` survivors await manual review."""
        valid = self.validator.filter_valid(insights)
        if self.config.quality.require_validation:
            for insight in valid:
                insight.validation_status = ValidationStatus.PENDING.value
                insight.validation_reason = "Awaiting manual validation"
        return valid

    async def process_batch(
        self, memories: List[Memory], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        options = options or {}
        concurrency = options.get("concurrency") or self.config.processing.max_concurrent
        results: Dict[str, Any] = {"successful": 0, "failed": 0, "insights": []}

        for start in range(0, len(memories), concurrency):
            group = memories[start:start + concurrency]
            outcomes = await asyncio.gather(
                *(self.process_memory(memory, options) for memory in group),
                return_exceptions=True,
            )
            for memory, outcome in zip(group, outcomes):
                if isinstance(outcome, Exception):
                    results["failed"] += 1
                    logger.error(f"Batch processing error for memory {memory.id}: {outcome}")
                    continue
                results["successful"] += 1
                results["insights"].extend(outcome["insights"])

        if options.get("cluster"):
            try:
                clustered = await self.analyze_clusters(memories, options)
            except Exception as e:
                self.metrics["errors"] += 1
                logger.error(f"Cluster analysis failed for batch of {len(memories)}: {e}")
                results["cluster_error"] = str(e)
            else:
                results["insights"].extend(clustered["insights"])

        logger.info(
            f"Batch finished: {results['successful']} successful, {results['failed']} failed"
        )
        return results

    async def analyze_clusters(
        self, memories: List[Memory], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Run the clustering processor over memories and store what survives."""
        processor = await self.processor_registry.get_processor("clustering")
        if not processor:
            return {"success": False, "insights": []}

        drafts = await processor.process_batch(memories, options or {})
        valid = self.accept(deduplicate(drafts))
        stored = self.storage_service.store_insights(valid)
        self.metrics["insights_generated"] += len(stored)
        return {"success": True, "insights": stored}

    def query_insights(
        self, criteria: Dict[str, Any], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return self.query_service.search(dict(criteria, **(options or {})))

    def get_insights(
        self, analysis_type: str = "comprehensive", filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        filters = filters or {}
        criteria = dict(ANALYSIS_CRITERIA.get(analysis_type, {}))
        criteria.update(filters)
        criteria["limit"] = filters.get("limit") or DEFAULT_INSIGHTS_LIMIT

        results = self.query_insights(criteria)
        return self.format_insights_response(results, analysis_type)

    @staticmethod
    def format_insights_response(results: Dict[str, Any], analysis_type: str) -> Dict[str, Any]:
        insights: List[Insight] = results.get("insights", [])
        return {
            "analysis_type": analysis_type,
            "insights": insights,
            "metadata": {
                "total_found": results.get("total", len(insights)),
                "confidence_distribution": confidence_distribution(insights),
                "categories": distinct_categories(insights),
                "time_range": results.get("time_range", "all"),
            },
            "recommendations": [r for i in insights for r in i.recommendations],
            "evidence": [e for i in insights for e in i.evidence],
        }

    def queue_for_processing(
        self, task_type: str, source_ids: List[str], options: Optional[Dict[str, Any]] = None
    ) -> QueueTask:
        if not self.queue_service:
            raise InsightEngineError("Queue service is not configured")
        return self.queue_service.enqueue(task_type, source_ids, options)

    async def handle_task(self, task: QueueTask) -> Dict[str, Any]:
        """Dispatch a claimed queue task by type."""
        if task.task_type == TaskType.THINKING_SEQUENCE_INSIGHTS.value:
            return await self.process_thinking_sequence_task(task)

        if task.task_type in (TaskType.MEMORY_BATCH.value, TaskType.CLUSTER_ANALYSIS.value):
            memories = self.load_memories(task.source_ids)
            if task.task_type == TaskType.CLUSTER_ANALYSIS.value:
                result = await self.analyze_clusters(memories, task.task_payload)
                stored = len(result["insights"])
                return {
                    "summary": {"message": f"Analyzed cluster of {len(memories)} memories"},
                    "insights_generated": stored,
                }

            result = await self.process_batch(memories, task.task_payload)
            if result["failed"]:
                raise InsightEngineError(
                    f"{result['failed']} of {len(memories)} memories failed to process"
                )
            summary = {"successful": result["successful"], "failed": result["failed"]}
            if "cluster_error" in result:
                summary["cluster_error"] = result["cluster_error"]
            return {
                "summary": summary,
                "insights_generated": len(result["insights"]),
            }

        logger.warning(f"Task processor for type {task.task_type} not implemented")
        return {"summary": {"message": "Task type not implemented"}, "insights_generated": 0}

    def load_memories(self, memory_ids: List[str]) -> List[Memory]:
        if not self.memory_repository:
            raise InsightEngineError("Memory repository is not configured")
        memories = self.memory_repository.get_many(memory_ids)
        if len(memories) < len(memory_ids):
            logger.warning(f"Loaded {len(memories)} of {len(memory_ids)} queued memories")
        return memories

    async def process_thinking_sequence_task(self, task: QueueTask) -> Dict[str, Any]:
        processor = await self.processor_registry.get_processor("thinking_sequence")
        if not processor:
            raise InsightEngineError("Thinking sequence processor not available")

        payload = task.task_payload or {}
        if payload.get("sequence"):
            sequence = ThinkingSequence(**payload["sequence"])
        elif self.memory_repository and task.source_ids:
            sequence = self.memory_repository.get_thinking_sequence(task.source_ids[0])
        else:
            sequence = None
        if not sequence:
            raise InsightEngineError(f"Thinking sequence for task {task.id} not found")

        drafts = processor.process_sequence(sequence, project_id=payload.get("project_id"))
        stored = self.storage_service.store_insights(self.accept(deduplicate(drafts)))
        self.metrics["insights_generated"] += len(stored)
        return {
            "summary": {
                "message": f"Processed thinking sequence {sequence.id}",
                "thought_count": len(sequence.thoughts),
                "insights_generated": len(stored),
            },
            "insights_generated": len(stored),
        }

    async def process_queue(self, max_tasks: Optional[int] = None) -> int:
        """Drain due tasks through the batch path. Returns how many were handled."""
        if not self.queue_service:
            raise InsightEngineError("Queue service is not configured")
        handled = 0
        while max_tasks is None or handled < max_tasks:
            task = await self.queue_service.process_next(self.handle_task)
            if not task:
                break
            handled += 1
        logger.info(f"Processed {handled} queue tasks")
        return handled

    def get_health(self) -> Dict[str, Any]:
        uptime = time.time() - self.metrics["start_time"]
        processed = self.metrics["processed"]
        errors = self.metrics["errors"]
        return {
            "status": "healthy" if self.initialized else "not_initialized",
            "uptime": round(uptime, 2),
            "metrics": {
                "processed": processed,
                "errors": errors,
                "insights_generated": self.metrics["insights_generated"],
                "processing_rate": round(processed / uptime, 2) if uptime > 0 else 0.0,
                "error_rate": f"{errors / max(1, processed) * 100:.2f}%",
            },
            "config": {
                "real_time_enabled": self.config.processing.real_time_enabled,
                "enrichment_enabled": any(self.config.enrichment.model_dump().values()),
                "queue_enabled": self.config.processing.queue_enabled,
            },
            "processors": self.processor_registry.available_processors(),
            "enrichers": self.enricher_registry.enabled_enrichers(),
        }
