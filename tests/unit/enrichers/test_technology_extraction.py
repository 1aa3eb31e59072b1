"""
Tests for technology extraction.
"""
from unittest.mock import MagicMock

import pytest

from insight_engine.domains.insight import Insight, Technology
from insight_engine.domains.memory import Memory
from insight_engine.enrichers.technology_extraction import TechnologyExtractionEnricher


def make_insight(summary="", **fields):
    return Insight(title="Frontend notes", summary=summary, source_ids=["m1"], **fields)


class TestExtractTechnologies:
    """Pattern-based technology detection."""

    def test_families_and_word_boundaries(self):
        memory = Memory(id="m1", content="The React app calls an Express API backed by PostgreSQL")
        found = TechnologyExtractionEnricher.extract_technologies(make_insight(), memory)
        pairs = [(t.name, t.category) for t in found]
        assert pairs == [
            ("react", "frameworks"),
            ("express", "frameworks"),
            ("postgresql", "databases"),
        ]
        assert all(t.source == "pattern_extraction" for t in found)
        assert all(t.confidence == 0.8 for t in found)

    def test_substrings_do_not_match(self):
        memory = Memory(id="m1", content="javascripted reactor goals")
        assert TechnologyExtractionEnricher.extract_technologies(make_insight(), memory) == []

    def test_plus_suffix_handled(self):
        memory = Memory(id="m1", content="legacy c++ module")
        found = TechnologyExtractionEnricher.extract_technologies(make_insight(), memory)
        assert [(t.name, t.category) for t in found] == [("c++", "languages")]

    def test_existing_categorized_technologies_kept(self):
        insight = make_insight(
            technologies=[
                Technology(name="Kafka", category="messaging"),
                Technology(name="Mystery", category="unknown"),
            ]
        )
        found = TechnologyExtractionEnricher.extract_technologies(
            insight, Memory(id="m1", content="nothing")
        )
        assert [t.name for t in found] == ["Kafka"]


class TestEnrich:
    """Attaching technologies and recommendations."""

    @pytest.mark.asyncio
    async def test_outdated_and_coherence_recommendations(self):
        memory = Memory(id="m1", project_id="p1", content="Mixing jquery widgets into react and vue")
        tracking = MagicMock()
        enricher = TechnologyExtractionEnricher(tracking)

        insight = await enricher.enrich(make_insight(), memory)

        assert {"tech:jquery", "tech:react", "tech:vue"} <= set(insight.tags)
        by_type = {r.type: r for r in insight.recommendations}
        assert by_type["technology_update"].action == "Consider updating jquery to newer alternatives"
        assert by_type["architecture"].action.startswith("Multiple frontend frameworks detected")
        assert tracking.record.call_count == 3
        tracking.record.assert_any_call("react", "frameworks", "p1")

    @pytest.mark.asyncio
    async def test_security_concerns(self):
        memory = Memory(id="m1", content="express server storing sessions in mongodb")
        insight = await TechnologyExtractionEnricher().enrich(make_insight(), memory)
        security = [r.action for r in insight.recommendations if r.type == "security"]
        assert security == [
            "Consider adding helmet.js for Express security headers",
            "Ensure proper MongoDB query sanitization without an ORM",
        ]
        assert all(r.priority == "high" for r in insight.recommendations if r.type == "security")

    @pytest.mark.asyncio
    async def test_tracking_failures_are_logged(self):
        tracking = MagicMock()
        tracking.record.side_effect = Exception("write conflict")
        memory = Memory(id="m1", content="python service")
        insight = await TechnologyExtractionEnricher(tracking).enrich(make_insight(), memory)
        assert insight.technologies[0].name == "python"
