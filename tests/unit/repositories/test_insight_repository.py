"""
Tests for the MongoDB insight repository.
"""
from datetime import datetime, timedelta, timezone

import pytest

from insight_engine.domains.insight import Insight, Technology
from insight_engine.repositories.insight import InsightRepository


def make_insight(title="Retry Pattern", **fields):
    data = {
        "insight_type": "pattern",
        "insight_category": "design",
        "title": title,
        "summary": "Retries wrap every outbound call",
        "source_ids": ["m1"],
        "project_id": "p1",
        "confidence_score": 0.7,
    }
    data.update(fields)
    return Insight(**data)


@pytest.fixture
def repo(mongo_adapter):
    return InsightRepository(mongo_adapter)


class TestInsightRepository:
    """Insight persistence against mongomock."""

    def test_insert_and_get(self, repo):
        insight = make_insight()
        repo.insert(insight)

        loaded = repo.get(insight.id)
        assert loaded.title == "Retry Pattern"
        assert loaded.source_ids == ["m1"]
        assert repo.get("missing") is None

    def test_signature_is_stored(self, repo, mongo_adapter):
        insight = repo.insert(make_insight())
        doc = mongo_adapter.find_one("insights", {"_id": insight.id})
        assert doc["signature"] == "pattern_design_retry_pattern"

    def test_find_recent_by_signature(self, repo):
        now = datetime.now(timezone.utc)
        old = make_insight(created_at=now - timedelta(days=3))
        recent = make_insight(created_at=now - timedelta(hours=1))
        other_project = make_insight(project_id="p2", created_at=now)
        for insight in (old, recent, other_project):
            repo.insert(insight)

        found = repo.find_recent_by_signature(
            "pattern_design_retry_pattern", now - timedelta(hours=24), project_id="p1"
        )
        assert found.id == recent.id

        assert repo.find_recent_by_signature(
            "pattern_design_other", now - timedelta(hours=24)
        ) is None

    def test_add_source_ids_is_a_set_union(self, repo):
        insight = repo.insert(make_insight(source_ids=["m1", "m2"]))
        repo.add_source_ids(insight.id, ["m2", "m3"])
        assert repo.get(insight.id).source_ids == ["m1", "m2", "m3"]

    def test_update(self, repo):
        insight = repo.insert(make_insight())
        updated = repo.update(insight.id, {"confidence_score": 0.95})
        assert updated.confidence_score == 0.95

    def test_mark_superseded(self, repo):
        insight = repo.insert(make_insight())
        repo.mark_superseded(insight.id, "newer")
        assert repo.get(insight.id).superseded_by == "newer"

    def test_find_supersedable(self, repo):
        now = datetime.now(timezone.utc)
        weak = repo.insert(make_insight(confidence_score=0.4, created_at=now - timedelta(days=2)))
        repo.insert(make_insight(
            confidence_score=0.4,
            validation_status="validated",
            created_at=now - timedelta(days=2),
        ))
        repo.insert(make_insight(confidence_score=0.95, created_at=now - timedelta(days=2)))
        repo.insert(make_insight(
            confidence_score=0.3,
            superseded_by="x",
            created_at=now - timedelta(days=2),
        ))
        repo.insert(make_insight(insight_type="bug", confidence_score=0.2,
                                 created_at=now - timedelta(days=2)))
        newer = make_insight(confidence_score=0.9, created_at=now)

        found = repo.find_supersedable(newer, older_than=now - timedelta(days=1))

        assert [i.id for i in found] == [weak.id]

    def test_find_related(self, repo):
        base = make_insight(technologies=[Technology(name="redis")])
        same_category = repo.insert(make_insight(title="Other"))
        same_tech = repo.insert(make_insight(
            title="Cache", insight_category="performance", source_ids=["m9"],
            technologies=[Technology(name="redis")],
        ))
        repo.insert(make_insight(
            title="Elsewhere", insight_category="performance", source_ids=["m9"],
        ))
        repo.insert(make_insight(title="Foreign", project_id="p2"))
        repo.insert(base)

        related = {i.id for i in repo.find_related(base)}

        assert related == {same_category.id, same_tech.id}

    def test_search_and_count(self, repo):
        for score in (0.2, 0.9, 0.6):
            repo.insert(make_insight(title=f"t{score}", confidence_score=score))

        results = repo.search({}, sort=[("confidence_score", -1)], limit=2)

        assert [i.confidence_score for i in results] == [0.9, 0.6]
        assert repo.count({"confidence_score": {"$gte": 0.5}}) == 2

    def test_find_with_embeddings(self, repo):
        with_vector = repo.insert(make_insight(embedding=[0.1, 0.2]))
        repo.insert(make_insight(title="No vector"))
        assert [i.id for i in repo.find_with_embeddings()] == [with_vector.id]
        assert repo.find_with_embeddings(exclude_id=with_vector.id) == []

    def test_get_many(self, repo):
        a = repo.insert(make_insight(title="a"))
        b = repo.insert(make_insight(title="b"))
        assert {i.id for i in repo.get_many([a.id, b.id, "missing"])} == {a.id, b.id}
        assert repo.get_many([]) == []
