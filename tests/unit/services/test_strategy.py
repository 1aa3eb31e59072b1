"""
Tests for processing strategy selection.

Covers the type table, real-time and comprehensive options, and a
property-based check that selection is total.
"""
import pytest
from hypothesis import given, strategies as st

from insight_engine.domains.config import EngineConfig, ProcessingConfig
from insight_engine.domains.memory import Memory
from insight_engine.services.strategy import TYPE_PROCESSORS, select_strategy

BATCH_CONFIG = EngineConfig(processing=ProcessingConfig(real_time_enabled=False))


def memory(memory_type="general", importance=None):
    return Memory(id="m1", memory_type=memory_type, content="x", importance_score=importance)


class TestSelectStrategy:
    """Processor choice for a single memory."""

    def test_real_time_default_puts_llm_category_first(self):
        strategy = select_strategy(memory("code"))
        assert strategy.processors == ["llm_category", "pattern_detector", "code_analyzer"]
        assert strategy.priority == "high"

    @pytest.mark.parametrize(
        "memory_type,expected",
        [
            ("code", ["pattern_detector", "code_analyzer"]),
            ("bug", ["bug_analyzer", "pattern_detector"]),
            ("decision", ["decision_analyzer"]),
            ("architecture", ["pattern_detector", "code_analyzer"]),
            ("progress", ["pattern_detector", "llm_category"]),
            ("release_version", ["pattern_detector"]),
        ],
    )
    def test_type_table_without_real_time(self, memory_type, expected):
        strategy = select_strategy(memory(memory_type), config=BATCH_CONFIG)
        assert strategy.processors == expected
        assert strategy.priority == "normal"

    def test_real_time_option_overrides_config(self):
        strategy = select_strategy(memory("bug"), {"real_time": True}, BATCH_CONFIG)
        assert strategy.processors[0] == "llm_category"

    def test_duplicates_keep_first_position(self):
        strategy = select_strategy(memory("general"))
        assert strategy.processors == ["llm_category", "pattern_detector"]

    def test_comprehensive_adds_template_processor(self):
        strategy = select_strategy(memory("decision"), {"comprehensive": True}, BATCH_CONFIG)
        assert strategy.processors == ["decision_analyzer", "template_processor"]

    def test_high_importance_adds_template_processor(self):
        strategy = select_strategy(memory("decision", importance=0.9), config=BATCH_CONFIG)
        assert strategy.processors[-1] == "template_processor"

    def test_importance_at_threshold_does_not(self):
        strategy = select_strategy(memory("decision", importance=0.8), config=BATCH_CONFIG)
        assert "template_processor" not in strategy.processors

    def test_unknown_type_falls_back(self):
        strategy = select_strategy(memory("whatever"), config=BATCH_CONFIG)
        assert strategy.processors == ["llm_category"]

    def test_options_carried(self):
        options = {"comprehensive": True, "source": "cli"}
        assert select_strategy(memory(), options).options is options

    @given(
        memory_type=st.one_of(st.sampled_from(sorted(TYPE_PROCESSORS)), st.text(max_size=20)),
        real_time=st.booleans(),
        comprehensive=st.booleans(),
        importance=st.one_of(st.none(), st.floats(min_value=0.0, max_value=1.0)),
    )
    def test_selection_is_total_and_unique(
        self, memory_type, real_time, comprehensive, importance
    ):
        strategy = select_strategy(
            memory(memory_type, importance),
            {"real_time": real_time, "comprehensive": comprehensive},
            BATCH_CONFIG,
        )
        assert strategy.processors
        assert len(strategy.processors) == len(set(strategy.processors))
        if real_time:
            assert strategy.processors[0] == "llm_category"
