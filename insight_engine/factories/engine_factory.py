"""
Factory for creating and wiring components of the insight engine.

This module handles the creation and dependency injection for all
services, processors and enrichers used by the pipeline.
"""

import logging
from typing import Any, Dict

# Service imports
from insight_engine.services.orchestrator import InsightOrchestrator
from insight_engine.services.query import InsightQueryService
from insight_engine.services.queue import InsightQueueService
from insight_engine.services.storage import InsightStorageService
from insight_engine.services.validator import InsightValidator

# Repository imports
from insight_engine.repositories.insight import InsightRepository
from insight_engine.repositories.knowledge import (
    PatternLibraryRepository,
    TechnologyTrackingRepository,
)
from insight_engine.repositories.memory import MemoryRepository
from insight_engine.repositories.queue import QueueRepository
from insight_engine.repositories.template import TemplateRepository

# Adapter imports
from insight_engine.adapters.mongodb_adapter import MongoDBAdapter
from insight_engine.adapters.openai_adapter import OpenAIAdapter

# Domain, processor and enricher imports
from insight_engine.domains.config import EngineConfig
from insight_engine.enrichers.registry import EnricherRegistry
from insight_engine.processors.base import ProcessorDependencies
from insight_engine.processors.registry import ProcessorRegistry

# Setup logger for this module
logger = logging.getLogger(__name__)


class InsightEngineFactory:
    """Factory for creating and wiring components of the insight engine."""

    @staticmethod
    def create_llm_adapter(config: Dict[str, Any], engine_config: EngineConfig) -> OpenAIAdapter:
        # OpenAI is the only supported LLM provider
        if "openai" not in config or "api_key" not in config["openai"]:
            raise ValueError("OpenAI API key is required in config.")

        llm_model = config["openai"].get("model")
        if llm_model:
            logger.info(f"Using OpenAI as LLM provider with model: {llm_model}")
        else:
            logger.info("Using OpenAI as LLM provider")

        logfire_api_key = None
        if "logfire" in config:
            if "api_key" not in config["logfire"]:
                raise ValueError("Pydantic Logfire API key is required.")
            logfire_api_key = config["logfire"]["api_key"]

        return OpenAIAdapter(
            api_key=config["openai"]["api_key"],
            model=llm_model,
            logfire_api_key=logfire_api_key,
            timeout=engine_config.processing.timeout_ms / 1000,
        )

    @staticmethod
    def create_db_adapter(config: Dict[str, Any]) -> MongoDBAdapter:
        if "mongo" not in config:
            raise ValueError("MongoDB configuration is required.")
        if "connection_string" not in config["mongo"]:
            raise ValueError("MongoDB connection string is required.")
        if "database" not in config["mongo"]:
            raise ValueError("MongoDB database name is required.")
        return MongoDBAdapter(
            connection_string=config["mongo"]["connection_string"],
            database_name=config["mongo"]["database"],
        )

    @staticmethod
    def create_from_config(config: Dict[str, Any]) -> InsightOrchestrator:
        """Create the insight pipeline from configuration.

        Args:
            config: Configuration dictionary

        Returns:
            Configured InsightOrchestrator instance
        """
        engine_config = EngineConfig.from_dict(config.get("insights"))

        db_adapter = InsightEngineFactory.create_db_adapter(config)
        llm_adapter = InsightEngineFactory.create_llm_adapter(config, engine_config)

        # Create repositories
        memory_repository = MemoryRepository(db_adapter)
        insight_repository = InsightRepository(db_adapter)
        template_repository = TemplateRepository(db_adapter)
        queue_repository = QueueRepository(db_adapter)
        pattern_repository = PatternLibraryRepository(db_adapter)
        tracking_repository = TechnologyTrackingRepository(db_adapter)

        processor_registry = ProcessorRegistry(
            ProcessorDependencies(
                llm_provider=llm_adapter,
                template_repository=template_repository,
                memory_repository=memory_repository,
                config=engine_config,
            )
        )
        enricher_registry = EnricherRegistry.from_config(
            engine_config.enrichment,
            insight_repository=insight_repository,
            pattern_repository=pattern_repository,
            tracking_repository=tracking_repository,
        )
        logger.info(
            f"Registered {len(processor_registry.available_processors())} processors and "
            f"{len(enricher_registry.enabled_enrichers())} enrichers"
        )

        queue_service = None
        if engine_config.processing.queue_enabled:
            queue_service = InsightQueueService(queue_repository, engine_config.queue)

        return InsightOrchestrator(
            processor_registry=processor_registry,
            storage_service=InsightStorageService(insight_repository, engine_config.storage),
            query_service=InsightQueryService(insight_repository, engine_config.query),
            enricher_registry=enricher_registry,
            validator=InsightValidator(engine_config.quality),
            queue_service=queue_service,
            memory_repository=memory_repository,
            config=engine_config,
        )
