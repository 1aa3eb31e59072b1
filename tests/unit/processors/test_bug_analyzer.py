"""
Tests for the bug report analyzer.
"""
import pytest

from insight_engine.domains.memory import Memory
from insight_engine.processors.bug_analyzer import BugAnalyzerProcessor


class TestExtractBugInfo:
    """Keyword extraction from bug reports."""

    def test_title_from_first_line(self):
        info = BugAnalyzerProcessor.extract_bug_info("# Checkout page freezes\nmore text")
        assert info["title"] == "Checkout page freezes"

    def test_short_first_line_keeps_default_title(self):
        assert BugAnalyzerProcessor.extract_bug_info("oops\nbody")["title"] == "Unknown Bug"

    @pytest.mark.parametrize(
        "content,severity",
        [
            ("A critical outage in payments", "critical"),
            ("Major regression after deploy", "high"),
            ("Minor typo in footer", "low"),
            ("Something odd happens", "medium"),
        ],
    )
    def test_severity(self, content, severity):
        assert BugAnalyzerProcessor.extract_bug_info(content)["severity"] == severity

    def test_category_and_symptoms(self):
        info = BugAnalyzerProcessor.extract_bug_info("The app crashes and login is slow")
        assert info["category"] == "performance"
        assert "crashes" in info["symptoms"]


class TestBugAnalyzer:
    """End-to-end bug analysis."""

    @pytest.mark.asyncio
    async def test_analysis_insight(self):
        memory = Memory(
            id="b1",
            memory_type="bug",
            content="Login crashes with NoneType error\nCannot read user profile",
        )
        insights = await BugAnalyzerProcessor().process(memory)

        analysis = insights[0]
        assert analysis.title == "Bug Analysis: Login crashes with NoneType error"
        assert analysis.insight_type == "bug"
        assert analysis.insight_category == "debugging"
        assert analysis.confidence_score == 0.8
        assert len(analysis.action_items) == 2

        pattern = insights[1]
        assert pattern.insight_type == "bug_pattern"
        assert pattern.title == "Recurring Bug Pattern: null_reference"
        assert pattern.detailed_content["previous_occurrences"] == 5

    @pytest.mark.asyncio
    async def test_security_bug_gets_audit_recommendation(self):
        memory = Memory(
            id="b2", memory_type="bug", content="Critical security vulnerability in upload"
        )
        analysis = (await BugAnalyzerProcessor().process(memory))[0]
        actions = [r.action for r in analysis.recommendations]
        assert "Prioritize fixing this bug immediately" in actions
        assert "Conduct security audit and patch immediately" in actions

    @pytest.mark.asyncio
    async def test_non_bug_memory_skipped(self):
        memory = Memory(id="c1", memory_type="code", content="null pointer here")
        assert await BugAnalyzerProcessor().process(memory) == []
