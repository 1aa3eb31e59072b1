from insight_engine.parsing.lenient_json import extract_json, extract_json_array, parse_patterns

__all__ = ["extract_json", "extract_json_array", "parse_patterns"]
