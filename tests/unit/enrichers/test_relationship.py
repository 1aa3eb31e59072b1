"""
Tests for relationship finding.
"""
from unittest.mock import MagicMock

import pytest

from insight_engine.domains.insight import Insight
from insight_engine.domains.memory import Memory
from insight_engine.enrichers.relationship import SUPERSEDES_KEY, RelationshipEnricher


def make_insight(**fields):
    data = {
        "insight_type": "pattern",
        "insight_category": "architectural",
        "title": "Repository Pattern Detected",
        "summary": "Detected repository pattern",
        "source_ids": ["m1"],
        "confidence_score": 0.8,
    }
    data.update(fields)
    return Insight(**data)


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.find_related.return_value = []
    repo.find_supersedable.return_value = []
    return repo


@pytest.fixture
def memory():
    return Memory(id="m1", content="content")


class TestClassify:
    """Relationship typing between two insights."""

    def test_same_type_and_category_is_similar(self):
        assert RelationshipEnricher.classify(make_insight(), make_insight()) == ("similar", 0.8)

    def test_subcategory_match(self):
        other = make_insight(
            insight_type="bug", insight_category="debugging", insight_subcategory="architectural"
        )
        assert RelationshipEnricher.classify(make_insight(), other) == ("related", 0.6)

    def test_low_confidence_other_contradicts(self):
        other = make_insight(insight_type="anti_pattern", confidence_score=0.2)
        assert RelationshipEnricher.classify(make_insight(confidence_score=0.9), other) == (
            "contradicts",
            0.8,
        )

    def test_unrelated_category(self):
        other = make_insight(insight_type="bug", insight_category="debugging")
        assert RelationshipEnricher.classify(make_insight(), other) == ("related", 0.4)


class TestEnrich:
    """Linking draft insights to stored ones."""

    @pytest.mark.asyncio
    async def test_related_ids_and_evidence(self, repository, memory):
        other = make_insight(id="old-1", title="Older repository finding")
        repository.find_related.return_value = [other]
        enricher = RelationshipEnricher(repository)

        insight = await enricher.enrich(make_insight(), memory)

        assert insight.related_insight_ids == ["old-1"]
        assert insight.evidence[0].content == "Related to: Older repository finding (similar)"
        assert insight.evidence[0].source == "insight_old-1"
        assert insight.contradicts_insight_ids == []
        repository.find_related.assert_called_once_with(insight, limit=20)

    @pytest.mark.asyncio
    async def test_contradictions_get_review_recommendation(self, repository, memory):
        repository.find_related.return_value = [
            make_insight(id="weak", insight_type="anti_pattern", confidence_score=0.1)
        ]
        insight = await RelationshipEnricher(repository).enrich(
            make_insight(confidence_score=0.9), memory
        )
        assert insight.contradicts_insight_ids == ["weak"]
        assert insight.recommendations[0].type == "contradiction_review"
        assert insight.recommendations[0].priority == "high"

    @pytest.mark.asyncio
    async def test_supersession_candidates_recorded(self, repository, memory):
        repository.find_supersedable.return_value = [make_insight(id="stale")]
        insight = await RelationshipEnricher(repository).enrich(make_insight(), memory)

        assert insight.custom_metadata[SUPERSEDES_KEY] == ["stale"]
        assert insight.evidence[-1].content == "Supersedes 1 older insights"

    @pytest.mark.asyncio
    async def test_low_confidence_never_supersedes(self, repository, memory):
        repository.find_supersedable.return_value = [make_insight(id="stale")]
        insight = await RelationshipEnricher(repository).enrich(
            make_insight(confidence_score=0.5), memory
        )
        repository.find_supersedable.assert_not_called()
        assert SUPERSEDES_KEY not in insight.custom_metadata
