"""Best-effort JSON extraction from free-text LLM replies.

Models asked for "JSON only" still wrap answers in markdown fences, add a
sentence of preamble or leave trailing commas. Every LLM-backed feature goes
through these helpers and branches on `ParseResult.ok` instead of catching
`json.JSONDecodeError` itself.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


@dataclass(frozen=True)
class ParseResult:
    ok: bool
    value: Any = None
    error: str = ""

    @classmethod
    def success(cls, value: Any) -> "ParseResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ParseResult":
        return cls(ok=False, error=error)


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").replace("```", "").strip()


def _loads(blob: str) -> Optional[Any]:
    try:
        return json.loads(blob)
    except ValueError:
        pass
    # common model slip: trailing commas
    try:
        return json.loads(_TRAILING_COMMA_RE.sub(r"\1", blob))
    except ValueError:
        return None


def _outer_block(text: str, open_ch: str, close_ch: str) -> Optional[str]:
    start = text.find(open_ch)
    end = text.rfind(close_ch)
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def extract_json(text: str) -> ParseResult:
    """Parse the whole reply, or failing that the outermost [...] / {...} block."""
    cleaned = strip_fences(text)
    if not cleaned:
        return ParseResult.failure("empty response")

    value = _loads(cleaned)
    if value is not None:
        return ParseResult.success(value)

    # Try whichever bracket appears first so an array of objects is not cut down to its first object.
    def _pos(ch: str) -> int:
        i = cleaned.find(ch)
        return i if i != -1 else len(cleaned)

    for open_ch, close_ch in sorted([("[", "]"), ("{", "}")], key=lambda pair: _pos(pair[0])):
        blob = _outer_block(cleaned, open_ch, close_ch)
        if blob is None:
            continue
        value = _loads(blob)
        if value is not None:
            return ParseResult.success(value)

    return ParseResult.failure(f"no JSON found in response: {cleaned[:100]}")


def extract_object(text: str) -> ParseResult:
    res = extract_json(text)
    if not res.ok:
        return res
    if not isinstance(res.value, dict):
        return ParseResult.failure(f"expected JSON object, got {type(res.value).__name__}")
    return res


def extract_list(text: str, wrapper_keys: Iterable[str] = ("events", "data", "items")) -> ParseResult:
    """Accept a bare array or an object wrapping the array under a known key."""
    res = extract_json(text)
    if not res.ok:
        return res
    value = res.value
    if isinstance(value, list):
        return res
    if isinstance(value, dict):
        for key in wrapper_keys:
            inner = value.get(key)
            if isinstance(inner, list):
                return ParseResult.success(inner)
    return ParseResult.failure("expected JSON array")


def pick_str(data: Dict[str, Any], keys: Iterable[str], default: str) -> str:
    """First non-empty value among `keys`, as a stripped string."""
    for key in keys:
        v = data.get(key)
        if v is None:
            continue
        s = re.sub(r"\s+", " ", str(v)).strip()
        if s:
            return s
    return default


def only_dicts(items: List[Any]) -> List[Dict[str, Any]]:
    return [it for it in items if isinstance(it, dict)]
