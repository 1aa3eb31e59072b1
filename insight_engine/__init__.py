"""
Insight Engine - turns captured project memories into scored insights.

This package provides a pluggable pipeline of analysis processors and
enrichers with deduplication, validation, storage and an async task queue.
"""

# Client interface (main entry point)
from insight_engine.client.insight_engine import InsightEngine

# Factory for creating the pipeline
from insight_engine.factories.engine_factory import InsightEngineFactory

# Pipeline building blocks
from insight_engine.domains.config import EngineConfig
from insight_engine.domains.insight import Insight
from insight_engine.domains.memory import Memory
from insight_engine.processors.base import BaseProcessor
from insight_engine.processors.registry import ProcessorRegistry
from insight_engine.enrichers.base import BaseEnricher
from insight_engine.services.orchestrator import InsightOrchestrator

# Package metadata
__all__ = [
    # Main client interfaces
    "InsightEngine",
    # Factories
    "InsightEngineFactory",
    # Models
    "EngineConfig",
    "Insight",
    "Memory",
    # Extension points
    "BaseProcessor",
    "BaseEnricher",
    "ProcessorRegistry",
    "InsightOrchestrator",
]
