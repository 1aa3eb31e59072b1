"""
Processing strategy selection.

Maps a memory's type and the caller's options onto an ordered list of
processor names. Selection is total: every input yields at least one
processor.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from insight_engine.domains.config import EngineConfig
from insight_engine.domains.enums import Priority
from insight_engine.domains.memory import Memory

logger = logging.getLogger(__name__)

DEFAULT_PROCESSOR = "llm_category"
IMPORTANCE_THRESHOLD = 0.8

_REFERENCE_TYPES = (
    "progress", "summary", "prd", "insight", "project_brief", "project_brief_doc",
    "product_context", "project_prd", "project_plan", "requirements",
    "lessons_learned", "rule",
)
_TECHNICAL_TYPES = (
    "architecture", "tech_context", "tech_reference", "system_patterns",
    "implementation_notes", "pattern_library_v2",
)

TYPE_PROCESSORS: Dict[str, List[str]] = {
    "code": ["pattern_detector", "code_analyzer"],
    "bug": ["bug_analyzer", "pattern_detector"],
    "decision": ["decision_analyzer"],
    "general": ["llm_category", "pattern_detector"],
    "reasoning": ["pattern_detector", "llm_category"],
    "thinking_sequence": ["pattern_detector", "llm_category"],
    "design_decisions": ["decision_analyzer", "pattern_detector"],
    "task": ["llm_category"],
    "active_context": ["llm_category", "pattern_detector"],
    "release_version": ["pattern_detector"],
}
TYPE_PROCESSORS.update({t: ["pattern_detector", "code_analyzer"] for t in _TECHNICAL_TYPES})
TYPE_PROCESSORS.update({t: ["pattern_detector", "llm_category"] for t in _REFERENCE_TYPES})


@dataclass
class ProcessingStrategy:
    """Ordered processors to run for one memory."""
    processors: List[str] = field(default_factory=list)
    priority: str = Priority.NORMAL.value
    options: Dict[str, Any] = field(default_factory=dict)


def select_strategy(
    memory: Memory,
    options: Optional[Dict[str, Any]] = None,
    config: Optional[EngineConfig] = None,
) -> ProcessingStrategy:
    """Pick the processors for a memory.

    Args:
        memory: Memory being processed
        options: Caller options (``real_time``, ``comprehensive``)
        config: Engine configuration, supplies the real-time default

    Returns:
        Strategy with a non-empty, order-preserving, de-duplicated processor list
    """
    options = options or {}
    config = config or EngineConfig()

    real_time = bool(options.get("real_time") or config.processing.real_time_enabled)

    processors: List[str] = []
    if real_time:
        processors.append(DEFAULT_PROCESSOR)

    processors.extend(TYPE_PROCESSORS.get((memory.memory_type or "").lower(), []))

    importance = memory.importance_score or 0.0
    if options.get("comprehensive") or importance > IMPORTANCE_THRESHOLD:
        processors.append("template_processor")

    if not processors:
        processors = [DEFAULT_PROCESSOR]

    ordered = list(dict.fromkeys(processors))
    strategy = ProcessingStrategy(
        processors=ordered,
        priority=Priority.HIGH.value if real_time else Priority.NORMAL.value,
        options=options,
    )
    logger.debug(f"Strategy for {memory.memory_type} memory {memory.id}: {ordered}")
    return strategy
