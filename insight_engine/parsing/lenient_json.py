"""
Lenient JSON extraction for generative model output.

Model responses are free text that may wrap JSON in markdown fences, add
commentary, use single quotes or bare keys, embed raw control characters,
or be garbage outright. ``extract_json`` applies ordered repair passes:

1. Reject responses containing runs of repeated symbols (``[@#*]{5,}``).
2. Take the body of a fenced code block, else the response, and cut the
   balanced span starting at the first opener (then the greedy span).
3. Strict parse of the candidate as-is.
4. Normalize (trailing commas, single quotes, bare keys, control
   characters) and parse again.
5. Collapse control characters and whitespace aggressively, normalize and
   parse a final time.

When every pass fails ``extract_json`` returns its ``default``.
``parse_patterns`` builds on it and degrades to ``fallback_pattern`` for
substantial responses, never raising.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from insight_engine.domains.insight import as_list, as_text

logger = logging.getLogger(__name__)

REPEATED_SYMBOLS = re.compile(r"[@#*]{5,}")
_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?([\s\S]*?)\n?\s*```")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_SINGLE_QUOTED = re.compile(r"(?<=[{\[,:])(\s*)'([^'\\\n]*)'(?=\s*[:,}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][\w\-]*)(\s*):")
_CONTROL = re.compile(r"[\x00-\x1f]+")
_WHITESPACE = re.compile(r"\s+")

DEFAULT_PATTERN_CONFIDENCE = 0.7
FALLBACK_MIN_LENGTH = 50
FALLBACK_CONFIDENCE = 0.3


def has_repeated_symbols(text: str) -> bool:
    return bool(text) and REPEATED_SYMBOLS.search(text) is not None


def _balanced_span(text: str, opener: str, closer: str) -> Optional[str]:
    """Span from the first opener to its matching closer, skipping string literals."""
    start = text.find(opener)
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def _greedy_span(text: str, opener: str, closer: str) -> Optional[str]:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def extract_candidates(text: str, want: str = "object") -> List[str]:
    """Pull the JSON-looking parts out of a response, most precise first.

    The balanced span stops at the closer matching the first opener, so
    trailing commentary is ignored even when it contains brackets. The greedy
    span (first opener to last closer) is kept as a second candidate for
    output whose quoting confuses the balanced scan.

    Args:
        text: Raw model output
        want: ``"object"`` for ``{...}`` or ``"array"`` for ``[...]``
    """
    opener, closer = ("[", "]") if want == "array" else ("{", "}")
    fenced = _FENCE.search(text)
    sources = [fenced.group(1).strip(), text] if fenced else [text]

    candidates: List[str] = []
    for source in sources:
        for span in (
            _balanced_span(source, opener, closer),
            _greedy_span(source, opener, closer),
        ):
            if span and span not in candidates:
                candidates.append(span)
    return candidates


def _escape_control_chars(text: str) -> str:
    """Escape raw control characters that appear inside string literals."""
    out = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ord(ch) < 0x20:
                out.append({"\n": "\\n", "\r": "\\r", "\t": "\\t"}.get(ch, " "))
                continue
        elif ch == '"':
            in_string = True
        out.append(ch)
    return "".join(out)


def normalize(candidate: str) -> str:
    """Standard repair pass applied before the second parse attempt."""
    text = _TRAILING_COMMA.sub(r"\1", candidate)
    text = _SINGLE_QUOTED.sub(lambda m: f'{m.group(1)}"{m.group(2)}"', text)
    text = _BARE_KEY.sub(r'\1"\2"\3:', text)
    return _escape_control_chars(text)


def collapse(candidate: str) -> str:
    """Aggressive pass: flatten control characters and whitespace."""
    text = _CONTROL.sub(" ", candidate)
    return _WHITESPACE.sub(" ", text).strip()


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def extract_json(text: Optional[str], want: str = "object", default: Any = None) -> Any:
    """Parse the JSON object (or array) embedded in a model response."""
    if not text or not text.strip():
        return default
    if has_repeated_symbols(text):
        logger.warning("Rejected model response containing repeated symbols")
        return default

    for candidate in extract_candidates(text, want):
        for attempt in (
            lambda c: c,
            normalize,
            lambda c: normalize(collapse(c)),
        ):
            parsed = _loads(attempt(candidate))
            if parsed is not None:
                return parsed

    logger.debug(f"Unable to parse JSON from response: {text[:200]}")
    return default


def extract_json_array(text: Optional[str]) -> Optional[List[Any]]:
    parsed = extract_json(text, want="array")
    return parsed if isinstance(parsed, list) else None


def infer_category(text: str) -> str:
    """Map free-form tags or text to a pattern category."""
    lowered = (text or "").lower()
    if "api" in lowered or "integration" in lowered:
        return "api"
    if "architect" in lowered or "design" in lowered:
        return "architectural"
    if "debug" in lowered or "error" in lowered:
        return "debugging"
    if "perform" in lowered:
        return "performance"
    if "security" in lowered:
        return "security"
    if "gotcha" in lowered or "pitfall" in lowered:
        return "antipatterns"
    return "general"


def fallback_pattern(text: str) -> Dict[str, Any]:
    """Synthetic low-confidence pattern for unparseable but substantial output."""
    return {
        "name": "Content Analysis",
        "category": "general",
        "confidence": FALLBACK_CONFIDENCE,
        "evidence": [text[:200]],
        "description": "Model output could not be parsed",
        "implications": "Manual review recommended",
    }


def _is_compact_shape(data: Dict[str, Any]) -> bool:
    return "confidence" in data and "key_findings" in data and "insight" in data


def _from_compact(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    findings = [as_text(f) for f in as_list(data.get("key_findings")) if as_text(f)]
    tags = as_list(data.get("tags"))
    hint = " ".join(as_text(t) for t in tags) if tags else as_text(data.get("insight"))
    name = findings[0] if findings else (as_text(data.get("insight")) or "Insight")[:100]
    return [
        {
            "name": name,
            "category": infer_category(hint),
            "confidence": data.get("confidence", DEFAULT_PATTERN_CONFIDENCE),
            "evidence": findings,
            "description": as_text(data.get("insight")) or None,
            "implications": as_text(data.get("implications")) or None,
        }
    ]


def _normalize_pattern(raw: Any) -> Optional[Dict[str, Any]]:
    if isinstance(raw, str):
        raw = {"name": raw}
    if not isinstance(raw, dict):
        return None
    name = raw.get("name") or raw.get("pattern") or raw.get("title")
    if not name:
        return None
    evidence = as_list(raw.get("evidence"))
    confidence = raw.get("confidence")
    return {
        "name": as_text(name),
        "category": (as_text(raw.get("category")) or "general").lower(),
        "confidence": DEFAULT_PATTERN_CONFIDENCE if confidence is None else confidence,
        "evidence": evidence,
        "description": as_text(raw.get("description")) or None,
        "implications": as_text(raw.get("implications")) or None,
    }


def parse_patterns(text: Optional[str]) -> List[Dict[str, Any]]:
    """Parse a pattern-detection response into a list of pattern dicts.

    Returns ``[]`` for empty or repeated-symbol responses and a single
    ``fallback_pattern`` when a substantial response cannot be parsed.
    """
    if not text or not text.strip():
        return []
    if has_repeated_symbols(text):
        logger.warning("Pattern response rejected: repeated symbol run")
        return []

    fenced = _FENCE.search(text)
    body = fenced.group(1) if fenced else text
    first_brace, first_bracket = body.find("{"), body.find("[")
    shapes = ["object", "array"]
    if first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
        shapes.reverse()
    parsed = None
    for shape in shapes:
        parsed = extract_json(text, want=shape)
        if parsed is not None:
            break

    if isinstance(parsed, dict):
        if _is_compact_shape(parsed):
            return _from_compact(parsed)
        raw_patterns = parsed.get("patterns")
        if isinstance(raw_patterns, list):
            return [p for p in (_normalize_pattern(r) for r in raw_patterns) if p]
        return []
    if isinstance(parsed, list):
        return [p for p in (_normalize_pattern(r) for r in parsed) if p]

    if len(text.strip()) > FALLBACK_MIN_LENGTH:
        logger.warning("Pattern response unparseable, degrading to manual review pattern")
        return [fallback_pattern(text.strip())]
    return []
