"""
Base processor for the insight engine.

Supplies the shared builders every analysis strategy uses to assemble,
score and tag insight drafts, plus timing metrics and the uniform error
handler.
"""
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from insight_engine.domains.config import EngineConfig
from insight_engine.domains.details import ErrorDetails, InsightDetails
from insight_engine.domains.enums import CONFIDENCE_MINIMUM, InsightType, SourceType
from insight_engine.domains.insight import (
    Evidence,
    Insight,
    Pattern,
    Recommendation,
    Technology,
    as_list,
    as_text,
    clamp_confidence,
)
from insight_engine.domains.memory import Memory
from insight_engine.interfaces.processors.processor import Processor
from insight_engine.interfaces.providers.llm import LLMProvider
from insight_engine.repositories.memory import MemoryRepository
from insight_engine.repositories.template import TemplateRepository

logger = logging.getLogger(__name__)


@dataclass
class ProcessorDependencies:
    """Collaborators handed to every processor the registry builds."""
    llm_provider: Optional[LLMProvider] = None
    template_repository: Optional[TemplateRepository] = None
    memory_repository: Optional[MemoryRepository] = None
    config: EngineConfig = field(default_factory=EngineConfig)


def pattern_signature(category: str, name: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", f"{category}_{name}".lower())


def extract_snippet(text: str, max_length: int = 200) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as MongoDB returns them) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class BaseProcessor(Processor):
    """Common behaviour for concrete processors."""

    name = "base"
    detection_method = "manual"

    def __init__(self, dependencies: Optional[ProcessorDependencies] = None):
        self.deps = dependencies or ProcessorDependencies()
        self.llm_provider = self.deps.llm_provider
        self.config = self.deps.config
        self.initialized = False
        self.metrics = {
            "processed": 0,
            "insights_generated": 0,
            "errors": 0,
            "total_processing_time": 0.0,
        }

    def get_detection_method(self) -> str:
        return self.detection_method

    async def initialize(self) -> None:
        self.initialized = True

    async def run(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        """Guarded entry point used by the orchestrator.

        Skips memories the processor does not want, records metrics, and turns
        an unexpected exception into a diagnostic insight.
        """
        if not self.should_process(memory):
            logger.debug(f"{self.name} skipped memory {memory.id}")
            return []

        started = time.monotonic()
        try:
            insights = await self.process(memory, options or {})
            self.update_metrics(started, len(insights))
            return insights
        except Exception as e:
            logger.exception(f"{self.name} failed on memory {memory.id}: {e}")
            self.update_metrics(started, 0, error=True)
            return [self.handle_error(e, memory)]

    def create_insight(
        self,
        memory: Memory,
        details: Optional[InsightDetails] = None,
        **fields: Any,
    ) -> Insight:
        """Build a draft insight with defaults filled from the memory."""
        metadata = {
            "processor": self.name,
            "memory_type": memory.memory_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        metadata.update(fields.pop("detection_metadata", {}) or {})

        data: Dict[str, Any] = {
            "insight_type": InsightType.GENERAL.value,
            "insight_category": "general",
            "title": "Untitled Insight",
            "summary": "",
            "source_type": SourceType.MEMORY.value,
            "source_ids": [memory.id],
            "detection_method": self.get_detection_method(),
            "project_id": memory.project_id,
            "confidence_score": 0.5,
        }
        data.update(fields)
        data["detection_metadata"] = metadata
        data["confidence_score"] = clamp_confidence(data.get("confidence_score"))
        if details is not None:
            data["detailed_content"] = details.model_dump()
        return Insight(**data)

    @staticmethod
    def add_evidence(
        insight: Insight,
        content: str,
        type: str = "text",
        source: str = "memory",
        confidence: float = 0.5,
    ) -> Insight:
        insight.evidence.append(
            Evidence(type=type, content=content, source=source, confidence=confidence)
        )
        return insight

    @staticmethod
    def add_recommendation(
        insight: Insight,
        action: str,
        priority: str = "medium",
        reasoning: Optional[str] = None,
        impact: Optional[str] = None,
        type: str = "general",
    ) -> Insight:
        insight.recommendations.append(
            Recommendation(
                action=action, priority=priority, reasoning=reasoning, impact=impact, type=type
            )
        )
        return insight

    @staticmethod
    def add_pattern(insight: Insight, pattern: Union[Pattern, Dict[str, Any]]) -> Insight:
        """Attach a pattern unless one with the same signature is present."""
        if isinstance(pattern, dict):
            pattern = Pattern(**pattern)
        if not pattern.signature:
            pattern.signature = pattern_signature(pattern.category, pattern.name)
        if any(p.signature == pattern.signature for p in insight.patterns):
            return insight
        insight.patterns.append(pattern)
        return insight

    @staticmethod
    def add_technology(
        insight: Insight,
        name: str,
        category: str = "unknown",
        confidence: float = 0.5,
        version: Optional[str] = None,
        source: Optional[str] = None,
    ) -> Insight:
        """Attach a technology unless the same name and category is present."""
        name = as_text(name)
        category = as_text(category) or "unknown"
        if not name:
            return insight
        key = (name.lower(), category.lower())
        if any((t.name.lower(), t.category.lower()) == key for t in insight.technologies):
            return insight
        insight.technologies.append(
            Technology(
                name=name,
                category=category,
                confidence=confidence,
                version=version,
                source=source,
            )
        )
        return insight

    @staticmethod
    def add_tags(insight: Insight, tags: List[str]) -> Insight:
        for tag in as_list(tags):
            tag = as_text(tag)
            if tag and tag not in insight.tags:
                insight.tags.append(tag)
        return insight

    def update_metrics(self, started: float, insight_count: int, error: bool = False) -> None:
        self.metrics["processed"] += 1
        self.metrics["insights_generated"] += insight_count
        self.metrics["total_processing_time"] += time.monotonic() - started
        if error:
            self.metrics["errors"] += 1

    def get_health(self) -> Dict[str, Any]:
        processed = self.metrics["processed"]
        return {
            "name": self.name,
            "initialized": self.initialized,
            "processed": processed,
            "errors": self.metrics["errors"],
            "insights_generated": self.metrics["insights_generated"],
            "average_time": (
                self.metrics["total_processing_time"] / processed if processed else 0.0
            ),
        }

    def handle_error(self, error: Exception, memory: Memory) -> Insight:
        """Convert an unexpected failure into a low-confidence diagnostic insight."""
        return self.create_insight(
            memory,
            details=ErrorDetails(
                error=str(error), error_type=type(error).__name__, processor=self.name
            ),
            title=f"Processing Error in {self.name}",
            summary=f"{self.name} failed while analyzing memory {memory.id}: {error}",
            confidence_score=CONFIDENCE_MINIMUM,
            tags=["processing-error", f"processor:{self.name}"],
        )
