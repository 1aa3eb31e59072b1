"""
Analysis strategies that turn memories into insight drafts.
"""
from insight_engine.processors.base import BaseProcessor, ProcessorDependencies
from insight_engine.processors.registry import BUILTIN_PROCESSORS, ProcessorRegistry

__all__ = ["BaseProcessor", "ProcessorDependencies", "ProcessorRegistry", "BUILTIN_PROCESSORS"]
