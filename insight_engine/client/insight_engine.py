"""
Simplified client interface for the insight engine.

This module provides a clean API for callers that want to process
memories and read insights without wiring the pipeline themselves.
"""

import importlib.util
import json
from typing import Any, Dict, List, Optional, Union

from insight_engine.domains.memory import Memory
from insight_engine.domains.queue import QueueTask
from insight_engine.factories.engine_factory import InsightEngineFactory
from insight_engine.interfaces.client.client import InsightEngineClient


def load_config(config_path: str) -> Dict[str, Any]:
    """Load a configuration dictionary from a JSON or Python file."""
    if config_path.endswith(".json"):
        with open(config_path, "r") as f:
            return json.load(f)
    # Assume it's a Python file exposing ``config``
    spec = importlib.util.spec_from_file_location("config", config_path)
    config_module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(config_module)
    return config_module.config


class InsightEngine(InsightEngineClient):
    """Config-driven entry point to the insight pipeline."""

    def __init__(self, config_path: str = None, config: Dict[str, Any] = None):
        """Initialize the engine from config file or dictionary.

        Args:
            config_path: Path to configuration file (JSON or Python)
            config: Configuration dictionary
        """
        if not config and not config_path:
            raise ValueError("Either config or config_path must be provided")

        if config_path:
            config = load_config(config_path)

        self.orchestrator = InsightEngineFactory.create_from_config(config)

    @staticmethod
    def _memory(memory: Union[Memory, Dict[str, Any]]) -> Memory:
        return memory if isinstance(memory, Memory) else Memory(**memory)

    async def initialize(self) -> None:
        await self.orchestrator.initialize()

    async def shutdown(self) -> None:
        await self.orchestrator.shutdown()

    async def process(
        self, memory: Union[Memory, Dict[str, Any]], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Generate and store insights for a single memory."""
        return await self.orchestrator.process_memory(self._memory(memory), options)

    async def process_batch(
        self,
        memories: List[Union[Memory, Dict[str, Any]]],
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self.orchestrator.process_batch(
            [self._memory(m) for m in memories], options
        )

    def get_insights(
        self, analysis_type: str = "comprehensive", filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return self.orchestrator.get_insights(analysis_type, filters)

    def enqueue(
        self, task_type: str, source_ids: List[str], options: Optional[Dict[str, Any]] = None
    ) -> QueueTask:
        return self.orchestrator.queue_for_processing(task_type, source_ids, options)

    async def work(self, max_tasks: Optional[int] = None) -> int:
        """Drain due queue tasks."""
        return await self.orchestrator.process_queue(max_tasks)

    def health(self) -> Dict[str, Any]:
        return self.orchestrator.get_health()
