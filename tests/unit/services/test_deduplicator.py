"""
Tests for in-pass draft deduplication.
"""
from hypothesis import given, strategies as st

from insight_engine.domains.insight import Insight
from insight_engine.services.deduplicator import deduplicate


def draft(title, confidence=0.5, insight_type="pattern", category="design"):
    return Insight(
        insight_type=insight_type,
        insight_category=category,
        title=title,
        summary="a summary long enough",
        source_ids=["m1"],
        confidence_score=confidence,
    )


class TestDeduplicate:
    """Signature collapsing."""

    def test_first_survives_with_max_confidence(self):
        first = draft("Retry Pattern", 0.4)
        second = draft("retry pattern", 0.9)
        other = draft("Circuit Breaker", 0.6)

        result = deduplicate([first, second, other])

        assert result == [first, other]
        assert result[0].confidence_score == 0.9
        assert result[0].title == "Retry Pattern"

    def test_signature_includes_type_and_category(self):
        drafts = [draft("Same", category="design"), draft("Same", category="security")]
        assert len(deduplicate(drafts)) == 2

    def test_empty(self):
        assert deduplicate([]) == []

    @given(
        st.lists(
            st.tuples(
                st.sampled_from(["Alpha", "alpha", "Beta", "Gamma!"]),
                st.floats(min_value=0.0, max_value=1.0),
            ),
            max_size=12,
        )
    )
    def test_idempotent_and_unique(self, specs):
        once = deduplicate([draft(title, confidence) for title, confidence in specs])
        twice = deduplicate(once)
        assert [i.id for i in twice] == [i.id for i in once]
        signatures = [i.signature for i in once]
        assert len(signatures) == len(set(signatures))
