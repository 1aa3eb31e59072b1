"""
Tests for pattern library matching.
"""
from unittest.mock import MagicMock

import pytest

from insight_engine.domains.insight import Insight, Technology
from insight_engine.domains.memory import Memory
from insight_engine.enrichers.pattern_matching import PatternMatchingEnricher


@pytest.fixture
def insight():
    return Insight(
        insight_category="security",
        title="Security Patterns Detected",
        summary="Token validation found",
        source_ids=["m1"],
        technologies=[Technology(name="jwt", category="library")],
    )


class TestPatternMatching:
    """Library pattern attachment."""

    @pytest.mark.asyncio
    async def test_matches_are_attached(self, insight):
        repository = MagicMock()
        repository.find_matching.return_value = [
            {
                "pattern_name": "Hardcoded Secret",
                "pattern_category": "security",
                "pattern_type": "anti-pattern",
                "confidence_score": 0.9,
                "tags": ["secrets"],
            },
            {"pattern_category": "security"},
        ]
        enricher = PatternMatchingEnricher(repository)

        result = await enricher.enrich(insight, Memory(id="m1", content="x"))

        repository.find_matching.assert_called_once_with("security", ["jwt"])
        assert [p.name for p in result.patterns] == ["Hardcoded Secret"]
        assert result.patterns[0].signature == "security_hardcoded_secret"
        assert "secrets" in result.tags
        assert result.recommendations[0].priority == "high"
        assert result.recommendations[0].type == "pattern_review"

    @pytest.mark.asyncio
    async def test_blank_memory_skips_lookup(self, insight):
        repository = MagicMock()
        await PatternMatchingEnricher(repository).enrich(insight, Memory(id="m1", content=" "))
        repository.find_matching.assert_not_called()
