"""
Tests for the InsightEngine client.
"""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from insight_engine.client.insight_engine import InsightEngine, load_config
from insight_engine.domains.memory import Memory

CONFIG = {
    "mongo": {"connection_string": "mongodb://localhost", "database": "insights"},
    "openai": {"api_key": "test-key"},
}


@pytest.fixture
def orchestrator():
    mock = MagicMock()
    mock.process_memory = AsyncMock(return_value={"success": True, "insights": []})
    mock.process_batch = AsyncMock(return_value={"successful": 2, "failed": 0})
    mock.process_queue = AsyncMock(return_value=3)
    mock.initialize = AsyncMock()
    mock.shutdown = AsyncMock()
    return mock


@pytest.fixture
def engine(orchestrator):
    with patch(
        "insight_engine.client.insight_engine.InsightEngineFactory.create_from_config",
        return_value=orchestrator,
    ):
        yield InsightEngine(config=CONFIG)


class TestConstruction:
    """Config loading."""

    def test_requires_config(self):
        with pytest.raises(ValueError, match="Either config or config_path must be provided"):
            InsightEngine()

    def test_load_json_config(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(CONFIG))
        assert load_config(str(path)) == CONFIG

    def test_load_python_config(self, tmp_path):
        path = tmp_path / "config.py"
        path.write_text("config = {'openai': {'api_key': 'py-key'}}\n")
        assert load_config(str(path))["openai"]["api_key"] == "py-key"

    def test_config_path_wins(self, tmp_path, orchestrator):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(CONFIG))
        with patch(
            "insight_engine.client.insight_engine.InsightEngineFactory.create_from_config",
            return_value=orchestrator,
        ) as create:
            InsightEngine(config_path=str(path), config={"ignored": True})
        create.assert_called_once_with(CONFIG)


class TestDelegation:
    """Client calls reach the orchestrator."""

    @pytest.mark.asyncio
    async def test_process_accepts_dicts(self, engine, orchestrator):
        await engine.process({"id": "m1", "content": "text"}, {"real_time": True})
        memory, options = orchestrator.process_memory.call_args.args
        assert isinstance(memory, Memory)
        assert memory.id == "m1"
        assert options == {"real_time": True}

    @pytest.mark.asyncio
    async def test_process_batch(self, engine, orchestrator):
        result = await engine.process_batch([{"id": "a"}, Memory(id="b")])
        memories = orchestrator.process_batch.call_args.args[0]
        assert [m.id for m in memories] == ["a", "b"]
        assert result["successful"] == 2

    @pytest.mark.asyncio
    async def test_lifecycle_and_work(self, engine, orchestrator):
        await engine.initialize()
        assert await engine.work(max_tasks=3) == 3
        await engine.shutdown()
        orchestrator.initialize.assert_awaited_once()
        orchestrator.process_queue.assert_awaited_once_with(3)
        orchestrator.shutdown.assert_awaited_once()

    def test_sync_calls(self, engine, orchestrator):
        engine.get_insights("quality", {"limit": 5})
        engine.enqueue("memory_batch", ["m1"])
        engine.health()
        orchestrator.get_insights.assert_called_once_with("quality", {"limit": 5})
        orchestrator.queue_for_processing.assert_called_once_with(
            "memory_batch", ["m1"], None
        )
        orchestrator.get_health.assert_called_once_with()
