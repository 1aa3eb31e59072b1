"""
Processor registry for the insight engine.

Maps processor names to factories and hands out lazily created, cached
instances.
"""
import logging
from typing import Callable, Dict, List, Optional

from insight_engine.interfaces.processors.processor import Processor
from insight_engine.interfaces.processors.processor import (
    ProcessorRegistry as ProcessorRegistryInterface,
)
from insight_engine.processors.base import ProcessorDependencies
from insight_engine.processors.bug_analyzer import BugAnalyzerProcessor
from insight_engine.processors.clustering import ClusteringProcessor
from insight_engine.processors.code_analyzer import CodeAnalyzerProcessor
from insight_engine.processors.decision_analyzer import DecisionAnalyzerProcessor
from insight_engine.processors.llm_category import LLMCategoryProcessor
from insight_engine.processors.pattern_detector import PatternDetectorProcessor
from insight_engine.processors.template import TemplateProcessor
from insight_engine.processors.thinking_sequence import ThinkingSequenceProcessor

logger = logging.getLogger(__name__)

ProcessorFactory = Callable[[ProcessorDependencies], Processor]

BUILTIN_PROCESSORS: Dict[str, ProcessorFactory] = {
    "llm_category": LLMCategoryProcessor,
    "template_processor": TemplateProcessor,
    "pattern_detector": PatternDetectorProcessor,
    "clustering": ClusteringProcessor,
    "code_analyzer": CodeAnalyzerProcessor,
    "bug_analyzer": BugAnalyzerProcessor,
    "decision_analyzer": DecisionAnalyzerProcessor,
    "thinking_sequence": ThinkingSequenceProcessor,
}

PREWARMED = ("llm_category", "pattern_detector")


class ProcessorRegistry(ProcessorRegistryInterface):
    """Instance-based registry of processor factories and cached processors."""

    def __init__(
        self,
        dependencies: Optional[ProcessorDependencies] = None,
        factories: Optional[Dict[str, ProcessorFactory]] = None,
    ):
        """Initialize the registry.

        Args:
            dependencies: Collaborators passed to every processor factory
            factories: Name to factory mapping, defaults to the built-in processors
        """
        self.dependencies = dependencies or ProcessorDependencies()
        self._factories: Dict[str, ProcessorFactory] = dict(factories or BUILTIN_PROCESSORS)
        self._instances: Dict[str, Processor] = {}

    def register(self, name: str, factory: ProcessorFactory) -> None:
        if name in self._factories:
            logger.warning(f"Processor {name} already registered, overwriting")
        self._factories[name] = factory
        self._instances.pop(name, None)
        logger.debug(f"Registered processor: {name}")

    async def initialize(self) -> None:
        """Create the processors every strategy is likely to need."""
        for name in PREWARMED:
            await self.get_processor(name)
        logger.info(f"Processor registry initialized with {len(self._instances)} processors")

    async def get_processor(self, name: str) -> Optional[Processor]:
        if name in self._instances:
            return self._instances[name]

        factory = self._factories.get(name)
        if not factory:
            logger.warning(
                f"Unknown processor: {name}. Available processors: {list(self._factories)}"
            )
            return None

        try:
            processor = factory(self.dependencies)
            await processor.initialize()
        except Exception as e:
            logger.error(f"Failed to create processor {name}: {e}")
            return None

        self._instances[name] = processor
        logger.info(f"Created processor: {name}")
        return processor

    async def get_processors(self, names: List[str]) -> List[Processor]:
        processors = []
        for name in names:
            processor = await self.get_processor(name)
            if processor:
                processors.append(processor)
        logger.debug(f"Loaded {len(processors)} processors out of {len(names)} requested")
        return processors

    def available_processors(self) -> List[str]:
        return list(self._factories.keys())

    def has_processor(self, name: str) -> bool:
        return name in self._factories

    def loaded_processors(self) -> Dict[str, Processor]:
        return dict(self._instances)

    async def cleanup(self) -> None:
        for name, processor in self._instances.items():
            try:
                await processor.cleanup()
            except Exception as e:
                logger.error(f"Error cleaning up processor {name}: {e}")
        self._instances.clear()
