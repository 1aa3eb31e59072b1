import logging
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from insight_engine.domains.insight import Insight
from insight_engine.domains.memory import Memory
from insight_engine.enrichers.base import BaseEnricher
from insight_engine.repositories.insight import InsightRepository

logger = logging.getLogger(__name__)

SUPERSEDE_MIN_CONFIDENCE = 0.7
SUPERSEDE_MIN_AGE = timedelta(days=7)
SUPERSEDES_KEY = "supersedes_candidates"


class RelationshipEnricher(BaseEnricher):
    """Links a draft insight to related, contradicting and superseded insights."""

    name = "relationship_finding"

    def __init__(self, insight_repository: InsightRepository, limit: int = 20):
        self.insight_repository = insight_repository
        self.limit = limit

    @staticmethod
    def classify(insight: Insight, other: Insight) -> Tuple[str, float]:
        """Relationship type and similarity score of ``other`` relative to ``insight``."""
        if other.insight_category == insight.insight_category:
            similarity = 0.8
        elif other.insight_subcategory == insight.insight_category:
            similarity = 0.6
        else:
            similarity = 0.4

        if (
            other.insight_type == insight.insight_type
            and other.insight_category == insight.insight_category
        ):
            relationship = "similar"
        elif other.confidence_score < 0.3 and insight.confidence_score > 0.7:
            relationship = "contradicts"
        else:
            relationship = "related"
        return relationship, similarity

    async def enrich(self, insight: Insight, memory: Memory) -> Insight:
        related = self.insight_repository.find_related(insight, limit=self.limit)

        contradictions: List[str] = []
        for other in related:
            relationship, similarity = self.classify(insight, other)
            if other.id not in insight.related_insight_ids:
                insight.related_insight_ids.append(other.id)
            self.add_evidence(
                insight,
                f"Related to: {other.title} ({relationship})",
                type="relationship",
                source=f"insight_{other.id}",
                confidence=similarity,
            )
            if relationship == "contradicts":
                contradictions.append(other.id)

        if contradictions:
            insight.contradicts_insight_ids = contradictions
            self.add_recommendation(
                insight,
                f"Review {len(contradictions)} potentially contradicting insights",
                priority="high",
                type="contradiction_review",
            )

        superseded = self.find_superseded(insight)
        if superseded:
            # applied by the storage service once this insight is persisted
            insight.custom_metadata[SUPERSEDES_KEY] = [old.id for old in superseded]
            self.add_evidence(
                insight,
                f"Supersedes {len(superseded)} older insights",
                type="supersession",
                confidence=0.8,
            )

        if related:
            logger.debug(f"Found {len(related)} related insights for {insight.id}")
        return insight

    def find_superseded(self, insight: Insight) -> List[Insight]:
        if insight.confidence_score < SUPERSEDE_MIN_CONFIDENCE:
            return []
        older_than = datetime.now(timezone.utc) - SUPERSEDE_MIN_AGE
        return self.insight_repository.find_supersedable(insight, older_than)
