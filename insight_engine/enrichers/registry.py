"""
Enricher pipeline for the insight engine.

Holds the enabled enrichers in a fixed order and runs every draft insight
through them. A failing enricher leaves the insight as it was before that
enricher ran.
"""
import logging
from typing import Dict, List, Optional

from insight_engine.domains.config import EnrichmentConfig
from insight_engine.domains.insight import Insight
from insight_engine.domains.memory import Memory
from insight_engine.enrichers.pattern_matching import PatternMatchingEnricher
from insight_engine.enrichers.relationship import RelationshipEnricher
from insight_engine.enrichers.technology_extraction import TechnologyExtractionEnricher
from insight_engine.interfaces.enrichers.enricher import Enricher
from insight_engine.repositories.insight import InsightRepository
from insight_engine.repositories.knowledge import (
    PatternLibraryRepository,
    TechnologyTrackingRepository,
)

logger = logging.getLogger(__name__)


class EnricherRegistry:
    """Ordered collection of enabled enrichers."""

    def __init__(self, enrichers: Optional[List[Enricher]] = None):
        self._enrichers: Dict[str, Enricher] = {}
        for enricher in enrichers or []:
            self.register(enricher)

    @classmethod
    def from_config(
        cls,
        config: EnrichmentConfig,
        insight_repository: Optional[InsightRepository] = None,
        pattern_repository: Optional[PatternLibraryRepository] = None,
        tracking_repository: Optional[TechnologyTrackingRepository] = None,
    ) -> "EnricherRegistry":
        """Build the pipeline from the enrichment flags.

        Args:
            config: Enrichment flags
            insight_repository: Needed by relationship finding
            pattern_repository: Needed by pattern matching
            tracking_repository: Optional technology usage tracking

        Returns:
            Registry holding every enabled enricher whose dependencies exist
        """
        enrichers: List[Enricher] = []
        if config.enable_pattern_matching and pattern_repository:
            enrichers.append(PatternMatchingEnricher(pattern_repository))
        if config.enable_relationship_finding and insight_repository:
            enrichers.append(RelationshipEnricher(insight_repository))
        if config.enable_technology_extraction:
            enrichers.append(TechnologyExtractionEnricher(tracking_repository))
        return cls(enrichers)

    def register(self, enricher: Enricher) -> None:
        if enricher.name in self._enrichers:
            logger.warning(f"Enricher {enricher.name} already registered, overwriting")
        self._enrichers[enricher.name] = enricher

    def get_enricher(self, name: str) -> Optional[Enricher]:
        return self._enrichers.get(name)

    def enabled_enrichers(self) -> List[str]:
        return list(self._enrichers.keys())

    async def initialize(self) -> None:
        for name, enricher in self._enrichers.items():
            try:
                await enricher.initialize()
            except Exception as e:
                logger.error(f"Failed to initialize enricher {name}: {e}")
        logger.info(f"Enricher pipeline ready: {self.enabled_enrichers()}")

    async def enrich(self, insight: Insight, memory: Memory) -> Insight:
        for name, enricher in self._enrichers.items():
            snapshot = insight.model_copy(deep=True)
            try:
                insight = await enricher.enrich(insight, memory)
            except Exception as e:
                logger.error(f"Enricher {name} failed for insight {insight.id}: {e}")
                insight = snapshot
        return insight

    async def enrich_all(self, insights: List[Insight], memory: Memory) -> List[Insight]:
        return [await self.enrich(insight, memory) for insight in insights]

    async def cleanup(self) -> None:
        for name, enricher in self._enrichers.items():
            cleanup = getattr(enricher, "cleanup", None)
            if cleanup is None:
                continue
            try:
                await cleanup()
            except Exception as e:
                logger.error(f"Error cleaning up enricher {name}: {e}")
