import logging
from typing import Any, Dict, List

from insight_engine.domains.insight import Insight
from insight_engine.domains.memory import Memory
from insight_engine.enrichers.base import BaseEnricher
from insight_engine.processors.base import pattern_signature
from insight_engine.repositories.knowledge import PatternLibraryRepository

logger = logging.getLogger(__name__)


class PatternMatchingEnricher(BaseEnricher):
    """Attaches known patterns from the pattern library."""

    name = "pattern_matching"

    def __init__(self, pattern_repository: PatternLibraryRepository):
        self.pattern_repository = pattern_repository

    def find_matching_patterns(self, insight: Insight) -> List[Dict[str, Any]]:
        return self.pattern_repository.find_matching(
            insight.insight_category, [t.name for t in insight.technologies]
        )

    async def enrich(self, insight: Insight, memory: Memory) -> Insight:
        if not memory.has_content() or not insight.summary:
            return insight

        matches = self.find_matching_patterns(insight)
        for match in matches:
            name = match.get("pattern_name")
            if not name:
                continue
            category = match.get("pattern_category") or "general"
            self.add_pattern(
                insight,
                {
                    "name": name,
                    "category": category,
                    "signature": match.get("pattern_signature")
                    or pattern_signature(category, name),
                    "confidence": match.get("confidence_score", 0.5),
                    "evidence": [f"Matched pattern: {name}"],
                    "description": match.get("description"),
                },
            )
            self.add_tags(insight, match.get("tags") or [])

        if matches:
            anti_pattern = any(m.get("pattern_type") == "anti-pattern" for m in matches)
            self.add_recommendation(
                insight,
                f"Consider reviewing {len(matches)} identified patterns for best practices",
                priority="high" if anti_pattern else "medium",
                type="pattern_review",
            )
            logger.debug(f"Matched {len(matches)} library patterns for insight {insight.id}")
        return insight
