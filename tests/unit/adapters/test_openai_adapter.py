"""
Tests for the OpenAI adapter with the client patched out.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from openai import OpenAIError

from insight_engine.adapters.openai_adapter import (
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_TEXT_MODEL,
    OpenAIAdapter,
)


@pytest.fixture
def adapter():
    with patch("insight_engine.adapters.openai_adapter.AsyncOpenAI") as client_cls:
        client = MagicMock()
        client.responses.create = AsyncMock(
            return_value=SimpleNamespace(output_text="generated")
        )
        client.embeddings.create = AsyncMock(
            return_value=SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2])])
        )
        client_cls.return_value = client
        yield OpenAIAdapter(api_key="test-key", timeout=12.0)


class TestOpenAIAdapter:
    """Text generation and embeddings."""

    def test_defaults(self, adapter):
        assert adapter.text_model == DEFAULT_TEXT_MODEL
        assert adapter.embedding_model == DEFAULT_EMBEDDING_MODEL
        assert adapter.logfire is False

    @pytest.mark.asyncio
    async def test_generate(self, adapter):
        result = await adapter.generate(
            "Analyze this", temperature=0.1, max_tokens=200, system_prompt="Be brief"
        )

        assert result == "generated"
        adapter.client.responses.create.assert_awaited_once_with(
            model=DEFAULT_TEXT_MODEL,
            input="Analyze this",
            temperature=0.1,
            max_output_tokens=200,
            instructions="Be brief",
        )

    @pytest.mark.asyncio
    async def test_generate_model_override(self, adapter):
        await adapter.generate("x", model="gpt-4.1")
        assert adapter.client.responses.create.call_args.kwargs["model"] == "gpt-4.1"
        assert "instructions" not in adapter.client.responses.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_generate_propagates_api_errors(self, adapter):
        adapter.client.responses.create.side_effect = OpenAIError("rate limited")
        with pytest.raises(OpenAIError):
            await adapter.generate("x")

    @pytest.mark.asyncio
    async def test_embed_text(self, adapter):
        vector = await adapter.embed_text("line one\nline two")
        assert vector == [0.1, 0.2]
        kwargs = adapter.client.embeddings.create.call_args.kwargs
        assert kwargs["input"] == ["line one line two"]

    @pytest.mark.asyncio
    async def test_embed_empty_text(self, adapter):
        with pytest.raises(ValueError):
            await adapter.embed_text("")

    def test_logfire_configuration(self):
        with patch("insight_engine.adapters.openai_adapter.AsyncOpenAI"), patch(
            "insight_engine.adapters.openai_adapter.logfire"
        ) as logfire_mock:
            adapter = OpenAIAdapter(api_key="k", logfire_api_key="lf")
        logfire_mock.configure.assert_called_once_with(token="lf")
        assert adapter.logfire is True

    def test_logfire_failure_is_logged(self):
        with patch("insight_engine.adapters.openai_adapter.AsyncOpenAI"), patch(
            "insight_engine.adapters.openai_adapter.logfire"
        ) as logfire_mock:
            logfire_mock.configure.side_effect = RuntimeError("bad token")
            adapter = OpenAIAdapter(api_key="k", logfire_api_key="lf")
        assert adapter.logfire is False
