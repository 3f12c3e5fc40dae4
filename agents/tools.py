from __future__ import annotations

import json
from typing import Any, Dict

from pydantic import ValidationError

try:
    from .schema import SummaryResult
except Exception:  # pragma: no cover - allow top-level import when package layout differs
    from agents.schema import SummaryResult  # type: ignore


class ParseFailure(ValueError):
    """Model output could not be turned into a valid summary."""

    kind = "parse_failure"

    def __init__(self, reason: str, raw_text: str):
        super().__init__(reason)
        self.reason = reason
        self.raw_text = raw_text


class InvalidJSON(ParseFailure):
    kind = "invalid_json"


class SchemaMismatch(ParseFailure):
    kind = "schema_mismatch"


def json_candidate(raw: Any) -> str:
    """Slice from the first '{' to the last '}' when both exist in order; otherwise return the text as-is.

    Heuristic only: a trailing '}' inside a string literal after the real
    object end is still taken as the closing brace.
    """
    text = "" if raw is None else str(raw)
    start = text.find("{")
    end = text.rfind("}")
    if 0 <= start < end:
        return text[start:end + 1]
    return text


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard constant {name}")


def extract_json(raw: Any) -> Any:
    """Strict parse of the brace-sliced candidate. Raises InvalidJSON."""
    text = "" if raw is None else str(raw)
    candidate = json_candidate(text)
    try:
        return json.loads(candidate, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        raise InvalidJSON(f"invalid JSON: {e}", text) from e


def _describe(err: ValidationError) -> str:
    parts = []
    for item in err.errors()[:5]:
        loc = ".".join(str(p) for p in item.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    more = len(err.errors()) - len(parts)
    if more > 0:
        parts.append(f"(+{more} more)")
    return "; ".join(parts)


def validate_summary(data: Any, raw_text: str = "") -> SummaryResult:
    """Check a parsed object against the summary shape. Raises SchemaMismatch."""
    if not isinstance(data, dict):
        raise SchemaMismatch(f"schema mismatch: expected a JSON object, got {type(data).__name__}", raw_text)
    try:
        return SummaryResult.model_validate(data)
    except ValidationError as e:
        raise SchemaMismatch(f"schema mismatch: {_describe(e)}", raw_text) from e


def coerce_summary(raw: Any) -> Dict[str, Any]:
    """extract_json + validate_summary; returns the parsed dict on success."""
    text = "" if raw is None else str(raw)
    data = extract_json(text)
    validate_summary(data, text)
    return data
