from abc import ABC, abstractmethod

from insight_engine.domains.insight import Insight
from insight_engine.domains.memory import Memory


class Enricher(ABC):
    """Interface for post-processing stages that add context to a draft insight."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the enricher name."""
        pass

    @abstractmethod
    async def enrich(self, insight: Insight, memory: Memory) -> Insight:
        """Return the insight with extra relations, patterns or technologies."""
        pass

    async def initialize(self) -> None:
        pass
