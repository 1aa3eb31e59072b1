from insight_engine.interfaces.enrichers.enricher import Enricher
from insight_engine.processors.base import BaseProcessor


class BaseEnricher(Enricher):
    """Common behaviour for enrichers.

    Enrichers share the insight builders of the base processor so entries
    they append are de-duplicated the same way.
    """

    name = "base"

    add_evidence = staticmethod(BaseProcessor.add_evidence)
    add_recommendation = staticmethod(BaseProcessor.add_recommendation)
    add_pattern = staticmethod(BaseProcessor.add_pattern)
    add_technology = staticmethod(BaseProcessor.add_technology)
    add_tags = staticmethod(BaseProcessor.add_tags)

    initialized = False

    async def initialize(self) -> None:
        self.initialized = True
