import logging
import re
from typing import Any, Dict, List, Optional

from insight_engine.domains.details import PatternDetails
from insight_engine.domains.enums import DetectionMethod, InsightType
from insight_engine.domains.insight import Insight, Pattern
from insight_engine.domains.memory import Memory
from insight_engine.processors.base import BaseProcessor, pattern_signature

logger = logging.getLogger(__name__)

PATTERN_MATCHERS = [
    {
        "name": "Singleton",
        "category": "creational",
        "regex": re.compile(r"getInstance|singleton|private\s+constructor", re.IGNORECASE),
        "confidence": 0.8,
    },
    {
        "name": "Factory",
        "category": "creational",
        "regex": re.compile(r"factory|create[A-Z]\w+|build[A-Z]\w+", re.IGNORECASE),
        "confidence": 0.7,
    },
    {
        "name": "Observer",
        "category": "behavioral",
        "regex": re.compile(r"subscribe|unsubscribe|notify|observer|listener", re.IGNORECASE),
        "confidence": 0.7,
    },
    {
        "name": "Repository",
        "category": "architectural",
        "regex": re.compile(r"repository|findBy|save|delete|update.*entity", re.IGNORECASE),
        "confidence": 0.8,
    },
]


class PatternDetectorProcessor(BaseProcessor):
    """Regex-based detection of classic design patterns in code memories."""

    name = "pattern_detector"
    detection_method = DetectionMethod.PATTERN_MATCHING.value
    memory_types = ("code", "architecture", "refactor")

    def should_process(self, memory: Memory) -> bool:
        return memory.has_content() and memory.memory_type in self.memory_types

    async def process(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        if not self.should_process(memory):
            return []

        insights = []
        for pattern in self.detect_patterns(memory.content):
            insight = self.create_insight(
                memory,
                details=PatternDetails(
                    category=pattern.category,
                    patterns=[pattern.model_dump()],
                    evidence=pattern.evidence,
                ),
                insight_type=InsightType.PATTERN,
                insight_category="architectural",
                insight_subcategory=pattern.category,
                title=f"{pattern.name} Pattern Detected",
                summary=f"Detected {pattern.name} pattern in {memory.memory_type}",
                confidence_score=pattern.confidence,
                tags=[f"pattern:{pattern.name}", f"category:{pattern.category}"],
            )
            self.add_pattern(insight, pattern)
            insights.append(insight)

        logger.debug(f"Pattern detector found {len(insights)} patterns in memory {memory.id}")
        return insights

    @staticmethod
    def detect_patterns(content: str) -> List[Pattern]:
        lowered = content.lower()
        found = []
        for matcher in PATTERN_MATCHERS:
            if matcher["regex"].search(lowered):
                found.append(
                    Pattern(
                        name=matcher["name"],
                        category=matcher["category"],
                        signature=pattern_signature(matcher["category"], matcher["name"]),
                        confidence=matcher["confidence"],
                        evidence=[f"Detected keywords matching {matcher['name']} pattern"],
                    )
                )
        return found
