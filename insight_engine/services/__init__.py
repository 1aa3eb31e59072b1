"""
Services for the insight engine.
"""
from insight_engine.services.orchestrator import InsightOrchestrator
from insight_engine.services.query import InsightQueryService
from insight_engine.services.queue import InsightQueueService
from insight_engine.services.storage import InsightStorageService
from insight_engine.services.strategy import ProcessingStrategy, select_strategy
from insight_engine.services.validator import InsightValidator

__all__ = [
    "InsightOrchestrator",
    "InsightQueryService",
    "InsightQueueService",
    "InsightStorageService",
    "InsightValidator",
    "ProcessingStrategy",
    "select_strategy",
]
