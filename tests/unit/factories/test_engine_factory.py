"""
Tests for the insight engine factory.
"""
from unittest.mock import MagicMock, patch

import pytest

from insight_engine.factories.engine_factory import InsightEngineFactory
from insight_engine.services.orchestrator import InsightOrchestrator

BASE_CONFIG = {
    "mongo": {"connection_string": "mongodb://localhost:27017", "database": "insights"},
    "openai": {"api_key": "test-key"},
}


@pytest.fixture
def patched_adapters():
    with patch(
        "insight_engine.factories.engine_factory.MongoDBAdapter"
    ) as mongo_cls, patch(
        "insight_engine.factories.engine_factory.OpenAIAdapter"
    ) as openai_cls:
        mongo_cls.return_value = MagicMock()
        openai_cls.return_value = MagicMock()
        yield mongo_cls, openai_cls


class TestCreateAdapters:
    """Adapter construction and config validation."""

    @pytest.mark.parametrize(
        "config,message",
        [
            ({}, "MongoDB configuration is required."),
            ({"mongo": {"database": "x"}}, "MongoDB connection string is required."),
            ({"mongo": {"connection_string": "mongodb://h"}}, "MongoDB database name is required."),
        ],
    )
    def test_db_adapter_errors(self, config, message):
        with pytest.raises(ValueError, match=message):
            InsightEngineFactory.create_db_adapter(config)

    def test_missing_openai_key(self, patched_adapters):
        config = {"mongo": BASE_CONFIG["mongo"]}
        with pytest.raises(ValueError, match="OpenAI API key is required in config."):
            InsightEngineFactory.create_from_config(config)

    def test_logfire_requires_key(self, patched_adapters):
        config = dict(BASE_CONFIG, logfire={})
        with pytest.raises(ValueError, match="Pydantic Logfire API key is required."):
            InsightEngineFactory.create_from_config(config)

    def test_llm_adapter_arguments(self, patched_adapters):
        _, openai_cls = patched_adapters
        config = dict(
            BASE_CONFIG,
            openai={"api_key": "k", "model": "gpt-4.1"},
            logfire={"api_key": "lf"},
            insights={"processing": {"timeout_ms": 45000}},
        )

        InsightEngineFactory.create_from_config(config)

        openai_cls.assert_called_once_with(
            api_key="k", model="gpt-4.1", logfire_api_key="lf", timeout=45.0
        )


class TestCreateFromConfig:
    """Full pipeline wiring."""

    def test_wires_orchestrator(self, patched_adapters):
        mongo_cls, _ = patched_adapters

        orchestrator = InsightEngineFactory.create_from_config(BASE_CONFIG)

        assert isinstance(orchestrator, InsightOrchestrator)
        mongo_cls.assert_called_once_with(
            connection_string="mongodb://localhost:27017", database_name="insights"
        )
        assert orchestrator.queue_service is not None
        assert orchestrator.memory_repository is not None
        assert "llm_category" in orchestrator.processor_registry.available_processors()
        assert orchestrator.enricher_registry.enabled_enrichers() == [
            "pattern_matching",
            "relationship_finding",
            "technology_extraction",
        ]

    def test_insights_section_applies(self, patched_adapters):
        config = dict(
            BASE_CONFIG,
            insights={
                "processing": {"queue_enabled": False},
                "enrichment": {"enable_relationship_finding": False},
                "quality": {"min_confidence_score": 0.6},
            },
        )

        orchestrator = InsightEngineFactory.create_from_config(config)

        assert orchestrator.queue_service is None
        assert "relationship_finding" not in orchestrator.enricher_registry.enabled_enrichers()
        assert orchestrator.config.quality.min_confidence_score == 0.6
