"""
Tests for the command line interface.
"""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from insight_engine.cli import app
from insight_engine.domains.insight import Insight, Recommendation

runner = CliRunner()


def make_insight():
    return Insight(
        insight_type="code_smell",
        insight_category="quality",
        title="Deeply nested conditionals",
        summary="Nesting depth of 3 found",
        source_ids=["m1"],
        confidence_score=0.6,
        recommendations=[Recommendation(action="Use guard clauses", priority="high")],
    )


@pytest.fixture
def engine():
    mock = MagicMock()
    mock.initialize = AsyncMock()
    mock.shutdown = AsyncMock()
    with patch("insight_engine.cli.InsightEngine", return_value=mock):
        yield mock


class TestCLI:
    """Typer commands."""

    def test_process(self, engine, tmp_path):
        memory_file = tmp_path / "memory.json"
        memory_file.write_text(json.dumps({"id": "m1", "content": "if(a){if(b){}}"}))
        engine.process = AsyncMock(return_value={
            "processing_id": "proc_1_abc",
            "insights": [make_insight()],
            "metrics": {"duration_ms": 12},
        })

        result = runner.invoke(app, ["process", "--memory-file", str(memory_file)])

        assert result.exit_code == 0
        assert "proc_1_abc" in result.output
        engine.initialize.assert_awaited_once()
        engine.shutdown.assert_awaited_once()
        assert engine.process.call_args.args[1] == {"real_time": True, "comprehensive": False}

    def test_process_missing_memory_file(self, engine, tmp_path):
        result = runner.invoke(app, ["process", "--memory-file", str(tmp_path / "none.json")])
        assert result.exit_code == 1

    def test_processing_error_exits(self, engine, tmp_path):
        memory_file = tmp_path / "memory.json"
        memory_file.write_text(json.dumps({"id": "m1", "content": "x"}))
        engine.process = AsyncMock(side_effect=RuntimeError("db down"))

        result = runner.invoke(app, ["process", "--memory-file", str(memory_file)])

        assert result.exit_code == 1
        assert "db down" in result.output
        engine.shutdown.assert_awaited_once()

    def test_insights(self, engine):
        engine.get_insights.return_value = {
            "insights": [make_insight()],
            "metadata": {
                "total_found": 1,
                "confidence_distribution": {"high": 0, "medium": 1, "low": 0},
                "categories": ["quality"],
            },
            "recommendations": [Recommendation(action="Use guard clauses", priority="high")],
        }

        result = runner.invoke(
            app, ["insights", "--analysis-type", "quality", "--project-id", "p1"]
        )

        assert result.exit_code == 0
        engine.get_insights.assert_called_once_with("quality", {"limit": 50, "project_id": "p1"})
        assert "Use guard clauses" in result.output

    def test_enqueue_failure(self, engine):
        engine.enqueue.side_effect = RuntimeError("Queue service is not configured")
        result = runner.invoke(
            app, ["enqueue", "--task-type", "memory_batch", "--source-id", "m1"]
        )
        assert result.exit_code == 1

    def test_worker(self, engine):
        engine.work = AsyncMock(return_value=4)
        result = runner.invoke(app, ["worker", "--max-tasks", "4"])
        assert result.exit_code == 0
        assert "Processed 4 queue tasks" in result.output

    def test_bad_config(self):
        with patch("insight_engine.cli.InsightEngine", side_effect=ValueError("no key")):
            result = runner.invoke(app, ["health"])
        assert result.exit_code == 1
        assert "no key" in result.output
