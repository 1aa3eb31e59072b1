"""
Tests for the stored-template processor.
"""
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from insight_engine.domains.memory import Memory
from insight_engine.domains.template import AnalysisTemplate
from insight_engine.processors.base import ProcessorDependencies
from insight_engine.processors.template import TemplateProcessor


def make_template(name, category="general", tags=None, description="", age_days=0, **extra):
    return AnalysisTemplate(
        id=name,
        template_name=name,
        template_category=category,
        template_content="Review this {memory_type} memory: {{content}}",
        description=description,
        tags=tags or [],
        created_at=datetime.now(timezone.utc) - timedelta(days=age_days),
        **extra,
    )


@pytest.fixture
def memory():
    return Memory(id="m1", memory_type="code", content="retry loop without backoff")


@pytest.fixture
def llm_provider():
    provider = MagicMock()
    provider.generate = AsyncMock()
    return provider


class TestRelevance:
    """Template selection for a memory type."""

    def test_relevance_rank(self):
        rank = TemplateProcessor.relevance_rank
        assert rank(make_template("a", tags=["code"]), "code") == 0
        assert rank(make_template("code_review", category="x"), "code") == 1
        assert rank(make_template("b", category="x", description="for code"), "code") == 2
        assert rank(make_template("c", category="development"), "code") == 3
        assert rank(make_template("d"), "code") == 4
        assert rank(make_template("e", category="planning"), "code") is None

    def test_templates_sorted_by_rank_then_newest(self, memory):
        repository = MagicMock()
        repository.find_active.return_value = [
            make_template("generic_old", age_days=5),
            make_template("generic_new", age_days=1),
            make_template("tagged", category="planning", tags=["code"]),
            make_template("irrelevant", category="planning"),
        ]
        processor = TemplateProcessor(ProcessorDependencies(template_repository=repository))

        names = [t.template_name for t in processor.get_templates_for_memory(memory)]

        assert names == ["tagged", "generic_new", "generic_old"]


class TestProcessWithTemplate:
    """LLM analysis through one template."""

    @pytest.mark.asyncio
    async def test_json_response(self, memory, llm_provider):
        llm_provider.generate.return_value = json.dumps(
            {
                "title": "Retry storm risk",
                "summary": "Retries hammer the upstream without delay.",
                "type": "performance_issue",
                "technologies": ["Redis"],
                "patterns": [{"name": "Retry", "category": "resilience"}],
                "recommendations": ["Add exponential backoff with jitter"],
            }
        )
        processor = TemplateProcessor(ProcessorDependencies(llm_provider=llm_provider))
        template = make_template("resilience_review", category="development")

        insight = await processor.process_with_template(memory, template)

        prompt = llm_provider.generate.await_args.args[0]
        assert prompt == "Review this code memory: retry loop without backoff"
        assert llm_provider.generate.await_args.kwargs["temperature"] == 0.7
        assert insight.title == "Retry storm risk"
        assert insight.insight_type == "performance_issue"
        assert insight.insight_category == "development"
        assert insight.insight_subcategory == "resilience_review"
        assert insight.confidence_score == pytest.approx(0.9)
        assert insight.tags == ["template:development", "tech:Redis", "pattern:Retry"]
        assert insight.detection_method == "llm_template"

    @pytest.mark.asyncio
    async def test_string_valued_list_fields(self, memory, llm_provider):
        """A bare string where a list is expected counts as one item."""
        llm_provider.generate.return_value = json.dumps(
            {
                "title": ["Retry storm", "risk"],
                "summary": "Retries hammer the upstream.",
                "technologies": "Redis",
                "patterns": {"name": "Retry", "description": ["no delay", "no cap"]},
                "recommendations": "Add exponential backoff",
            }
        )
        processor = TemplateProcessor(ProcessorDependencies(llm_provider=llm_provider))

        insight = await processor.process_with_template(memory, make_template("review"))

        assert insight.title == "Retry storm, risk"
        assert [t.name for t in insight.technologies] == ["Redis"]
        assert insight.patterns[0].description == "no delay, no cap"
        assert [r.action for r in insight.recommendations] == ["Add exponential backoff"]

    @pytest.mark.asyncio
    async def test_blank_response_yields_nothing(self, memory, llm_provider):
        llm_provider.generate.return_value = "   "
        processor = TemplateProcessor(ProcessorDependencies(llm_provider=llm_provider))
        assert await processor.process_with_template(memory, make_template("t")) is None

    def test_text_response_is_mined(self):
        parsed = TemplateProcessor.parse_template_response(
            "Service built with FastAPI and Postgres. We recommend adding a read replica."
        )
        assert parsed["technologies"][0]["name"] == "FastAPI"
        assert parsed["recommendations"][0]["text"] == "recommend adding a read replica."

    def test_calculate_confidence(self):
        assert TemplateProcessor.calculate_confidence({}) == 0.5
        assert TemplateProcessor.calculate_confidence(
            {"title": "t", "summary": "s", "patterns": ["p"]}
        ) == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_failing_template_is_skipped(self, memory, llm_provider):
        repository = MagicMock()
        repository.find_active.return_value = [
            make_template("first", tags=["code"]),
            make_template("second", tags=["code"], age_days=1),
        ]
        llm_provider.generate.side_effect = [RuntimeError("boom"), '{"title": "ok", "summary": "fine"}']
        processor = TemplateProcessor(
            ProcessorDependencies(llm_provider=llm_provider, template_repository=repository)
        )

        insights = await processor.process(memory)

        assert [i.title for i in insights] == ["ok"]
