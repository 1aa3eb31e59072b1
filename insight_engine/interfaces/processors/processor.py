"""
Processor interfaces.

These interfaces define the contract for analysis strategies that turn a
memory (or a batch of memories) into insight drafts, and for the registry
that hands them out by name.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from insight_engine.domains.insight import Insight
from insight_engine.domains.memory import Memory


class Processor(ABC):
    """Interface for analysis processors."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the processor name."""
        pass

    @abstractmethod
    def get_detection_method(self) -> str:
        """Tag recorded on every insight this processor produces."""
        pass

    @abstractmethod
    async def process(
        self, memory: Memory, options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        """Analyze one memory. May return an empty list."""
        pass

    async def process_batch(
        self, memories: List[Memory], options: Optional[Dict[str, Any]] = None
    ) -> List[Insight]:
        """Analyze several memories jointly. Single-memory processors return nothing."""
        return []

    def should_process(self, memory: Memory) -> bool:
        """Whether this processor wants the memory at all."""
        return memory.has_content()

    async def initialize(self) -> None:
        """Optional startup hook."""
        pass

    async def cleanup(self) -> None:
        """Optional shutdown hook."""
        pass


class ProcessorRegistry(ABC):
    """Interface for the processor catalog."""

    @abstractmethod
    async def get_processor(self, name: str) -> Optional[Processor]:
        """Get (and lazily create) a processor by name."""
        pass

    @abstractmethod
    async def get_processors(self, names: List[str]) -> List[Processor]:
        """Resolve a list of names, skipping unknown ones."""
        pass

    @abstractmethod
    def available_processors(self) -> List[str]:
        """List registered processor names."""
        pass

    @abstractmethod
    def has_processor(self, name: str) -> bool:
        """Check whether a name is registered."""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up every cached processor instance."""
        pass
