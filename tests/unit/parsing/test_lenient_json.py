"""
Tests for lenient JSON extraction from model output.
"""
import json

import pytest

from insight_engine.parsing.lenient_json import (
    extract_json,
    extract_json_array,
    fallback_pattern,
    has_repeated_symbols,
    normalize,
    parse_patterns,
)


@pytest.fixture
def pattern_payload():
    """A well-formed pattern-detection response body."""
    return {
        "patterns": [
            {
                "name": "Repository Pattern",
                "category": "design",
                "confidence": 0.85,
                "evidence": ["class UserRepository"],
                "description": "Data access is isolated behind repositories",
            },
            {
                "name": "Retry With Backoff",
                "category": "api",
                "confidence": 0.7,
                "evidence": ["retry(3, backoff=2)"],
            },
        ]
    }


class TestExtractJson:
    """Repair passes of extract_json."""

    def test_plain_object(self):
        """A clean object parses on the first attempt."""
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_block_with_commentary(self):
        """Fenced JSON surrounded by prose is extracted."""
        text = 'Here you go:\n```json\n{"a": [1, 2]}\n```\nHope that helps!'
        assert extract_json(text) == {"a": [1, 2]}

    def test_trailing_commas(self):
        """Trailing commas are stripped."""
        assert extract_json('{"a": [1, 2,], "b": 2,}') == {"a": [1, 2], "b": 2}

    def test_single_quotes_and_bare_keys(self):
        """Single-quoted strings and bare keys are normalized."""
        assert extract_json("{name: 'cache', 'confidence': 0.5}") == {
            "name": "cache",
            "confidence": 0.5,
        }

    def test_raw_control_characters_in_strings(self):
        """Raw newlines inside string literals are escaped."""
        assert extract_json('{"text": "line one\nline two"}') == {"text": "line one\nline two"}

    def test_garbage_returns_default(self):
        """Unparseable text returns the default."""
        assert extract_json("no json here", default={}) == {}
        assert extract_json("{this is : not json at all", default="x") == "x"

    def test_empty_input(self):
        """Empty and whitespace-only input returns the default."""
        assert extract_json(None) is None
        assert extract_json("   ", default=[]) == []

    def test_repeated_symbols_rejected(self):
        """Responses with repeated symbol runs never reach the parser."""
        assert has_repeated_symbols('{"a": 1} ####################')
        assert extract_json('{"a": 1} ####################') is None

    def test_array_extraction(self):
        """Arrays are extracted when requested."""
        assert extract_json_array('Answer: ["detect_patterns", "general_insights"]') == [
            "detect_patterns",
            "general_insights",
        ]
        assert extract_json_array('{"not": "a list"}') is None

    def test_commentary_with_braces_after_object(self):
        """Text after the object is ignored even when it contains braces."""
        text = '{"title": "Token expiry", "confidence": 0.8}\nNote: see {config} for details.'
        assert extract_json(text) == {"title": "Token expiry", "confidence": 0.8}

    def test_braces_inside_strings_do_not_end_the_object(self):
        """Brackets inside string literals are not counted."""
        text = 'Result: {"summary": "use {name} and \\"}\\" carefully", "n": [1]} done }'
        assert extract_json(text) == {"summary": 'use {name} and "}" carefully', "n": [1]}

    def test_commentary_with_brackets_after_array(self):
        assert extract_json_array('["a", "b"] (see [1])') == ["a", "b"]

    def test_normalize_leaves_valid_json_parseable(self):
        """Normalization does not break valid JSON."""
        source = '{"a": "it is fine", "b": [1, 2]}'
        assert json.loads(normalize(source)) == {"a": "it is fine", "b": [1, 2]}


class TestParsePatterns:
    """Pattern list parsing and degradation."""

    def test_fenced_and_bare_responses_match(self, pattern_payload):
        """The same JSON parses identically with or without fences and padding."""
        body = json.dumps(pattern_payload)
        bare = parse_patterns(body)
        fenced = parse_patterns(f"```json\n{body}\n```")
        padded = parse_patterns(f"\n\n   {json.dumps(pattern_payload, indent=4)}   \n\n")
        assert len(bare) == 2
        assert bare == fenced == padded
        assert bare[0]["name"] == "Repository Pattern"
        assert bare[0]["category"] == "design"

    def test_top_level_array(self):
        """A bare array of patterns is accepted."""
        patterns = parse_patterns('[{"name": "Caching", "category": "Performance"}]')
        assert patterns[0]["category"] == "performance"
        assert patterns[0]["confidence"] == 0.7

    def test_compact_shape_is_mapped(self):
        """The confidence/key_findings/insight shape becomes one pattern."""
        text = json.dumps(
            {
                "confidence": 0.8,
                "key_findings": ["API rate limiting is missing"],
                "insight": "Endpoints accept unbounded traffic",
                "tags": ["api", "security"],
            }
        )
        patterns = parse_patterns(text)
        assert len(patterns) == 1
        assert patterns[0]["name"] == "API rate limiting is missing"
        assert patterns[0]["category"] == "api"
        assert patterns[0]["confidence"] == 0.8

    def test_compact_shape_followed_by_tip(self):
        """A trailing tip with braces does not degrade a valid response."""
        body = json.dumps(
            {
                "confidence": 0.8,
                "key_findings": "Retries have no backoff",
                "insight": "Upstream gets hammered on failure",
                "implications": ["higher load", "slower recovery"],
                "tags": "performance",
            }
        )
        patterns = parse_patterns(f"{body}\nTip: wrap calls as {{retry}}.")
        assert len(patterns) == 1
        assert patterns[0]["name"] == "Retries have no backoff"
        assert patterns[0]["category"] == "performance"
        assert patterns[0]["evidence"] == ["Retries have no backoff"]
        assert patterns[0]["implications"] == "higher load, slower recovery"

    def test_loosely_typed_pattern_fields(self):
        patterns = parse_patterns(
            '{"patterns": [{"name": 42, "category": ["Security"], "evidence": "one line"}]}'
        )
        assert patterns[0]["name"] == "42"
        assert patterns[0]["category"] == "security"
        assert patterns[0]["evidence"] == ["one line"]

    def test_repeated_symbols_yield_nothing(self):
        """A repeated-symbol response yields zero patterns and no exception."""
        assert parse_patterns('{"patterns": []} ####################') == []
        assert parse_patterns("@@@@@@@@@@@@@@@@@@@@ " * 5) == []

    def test_unparseable_substantial_response_degrades(self):
        """Long prose degrades to a single manual-review pattern."""
        text = "The code shows a number of interesting tendencies but I cannot format them. " * 2
        patterns = parse_patterns(text)
        assert len(patterns) == 1
        assert patterns[0]["name"] == fallback_pattern(text)["name"]
        assert patterns[0]["confidence"] == 0.3
        assert patterns[0]["implications"] == "Manual review recommended"

    def test_short_garbage_yields_nothing(self):
        """Short unparseable text yields no patterns."""
        assert parse_patterns("nope") == []
        assert parse_patterns("") == []

    def test_nameless_entries_are_dropped(self):
        """Entries without a name are skipped."""
        assert parse_patterns('{"patterns": [{"category": "design"}, "Observer"]}') == [
            {
                "name": "Observer",
                "category": "general",
                "confidence": 0.7,
                "evidence": [],
                "description": None,
                "implications": None,
            }
        ]
