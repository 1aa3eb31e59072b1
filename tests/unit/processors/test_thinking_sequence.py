"""
Tests for the reasoning-sequence processor.
"""
from unittest.mock import MagicMock

import pytest

from insight_engine.domains.memory import Memory, ThinkingSequence, Thought
from insight_engine.processors.base import ProcessorDependencies
from insight_engine.processors.thinking_sequence import ThinkingSequenceProcessor


@pytest.fixture
def sequence():
    return ThinkingSequence(
        id="seq1",
        goal="Choose caching strategy for React dashboard",
        summary="Use Redis",
        project_id="p1",
        thoughts=[
            Thought(
                thought_number=1,
                thought_type="question",
                content="Redis or in-memory cache for the React dashboard?",
            ),
            Thought(
                thought_number=2,
                thought_type="hypothesis",
                content="In-memory cache will not survive restarts",
                branch_id="b1",
            ),
            Thought(thought_number=3, thought_type="conclusion", content="Go with Redis"),
        ],
    )


class TestThinkingSequence:
    """Meta-learning insights from reasoning chains."""

    def test_process_sequence(self, sequence):
        insights = ThinkingSequenceProcessor().process_sequence(sequence)

        assert [i.title for i in insights] == [
            "Reasoning: Choose caching strategy for React dashboard",
            "Alternative Exploration Pattern",
            "Quick Decision - Consider More Analysis",
        ]
        reasoning = insights[0]
        assert reasoning.source_type == "thinking_sequence"
        assert reasoning.source_ids == ["seq1"]
        assert reasoning.project_id == "p1"
        assert [t.name for t in reasoning.technologies] == ["react", "redis"]
        assert reasoning.patterns[0].name == "question_first_approach"
        assert reasoning.tags[:3] == ["reasoning", "decision", "alternatives-explored"]
        assert reasoning.detailed_content["reasoning_depth"] == "shallow"

    def test_empty_sequence(self):
        assert ThinkingSequenceProcessor().process_sequence(ThinkingSequence(id="s")) == []

    @pytest.mark.asyncio
    async def test_process_loads_sequence_for_memory(self, sequence):
        repository = MagicMock()
        repository.get_thinking_sequence.return_value = sequence
        processor = ThinkingSequenceProcessor(ProcessorDependencies(memory_repository=repository))
        memory = Memory(id="m1", content="notes", thinking_sequence_id="seq1")

        insights = await processor.process(memory)

        repository.get_thinking_sequence.assert_called_once_with("seq1")
        assert len(insights) == 3

    def test_memory_without_sequence_is_skipped(self):
        assert not ThinkingSequenceProcessor().should_process(Memory(id="m", content="x"))
