"""
Post-processing stages that add relationships and context to insight drafts.
"""
from insight_engine.enrichers.registry import EnricherRegistry

__all__ = ["EnricherRegistry"]
