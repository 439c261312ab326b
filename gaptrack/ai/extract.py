from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)
_LEADING_FENCE_RE = re.compile(r"^```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_TRAILING_FENCE_RE = re.compile(r"\r?\n?```\s*$")

# Keys a chat reply is usually wrapped under, in priority order.
REPLY_KEYS = ("response", "reply", "message", "answer", "text", "content", "output", "result")
MIN_REPLY_CHARS = 20
COLON_WINDOW = 50
_HEURISTIC_STRIP = "\"'{}` \t\r\n"


def _try_parse(text: str) -> dict[str, Any] | list[Any] | None:
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        return None
    if isinstance(value, (dict, list)):
        return value
    return None


def extract_structured(raw: str | None) -> dict[str, Any] | list[Any] | None:
    """Recover a JSON object or array from raw model output.

    Tries, in order: the whole trimmed text, the first fenced code block,
    then the span from the first ``{`` to the last ``}``. When a fence was
    found but did not parse, the brace search runs on the fence content
    instead of the full text. Returns None when nothing parses.
    """
    text = (raw or "").strip()
    if not text:
        return None

    parsed = _try_parse(text)
    if parsed is not None:
        return parsed

    candidate = text
    fence = _FENCE_RE.search(text)
    if fence:
        inner = fence.group(1).strip()
        parsed = _try_parse(inner)
        if parsed is not None:
            return parsed
        candidate = inner

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start != -1 and end > start:
        return _try_parse(candidate[start : end + 1])
    return None


def _reply_from_structure(parsed: dict[str, Any] | list[Any]) -> str | None:
    if isinstance(parsed, dict):
        for key in REPLY_KEYS:
            value = parsed.get(key)
            if isinstance(value, str) and value.strip():
                return value
        values = list(parsed.values())
    else:
        values = list(parsed)

    longest: str | None = None
    for value in values:
        if isinstance(value, str) and len(value) > MIN_REPLY_CHARS:
            if longest is None or len(value) > len(longest):
                longest = value
    return longest


def _reply_after_colon(text: str) -> str | None:
    colon = text.find(":")
    if colon == -1 or colon >= COLON_WINDOW:
        return None
    remainder = text[colon + 1 :].strip(_HEURISTIC_STRIP)
    if len(remainder) > MIN_REPLY_CHARS:
        return remainder
    return None


def _strip_fences(text: str) -> str:
    text = _LEADING_FENCE_RE.sub("", text.strip())
    return _TRAILING_FENCE_RE.sub("", text).strip()


def extract_plain_text(raw: str | None) -> str:
    """Return a prose reply even when the model answered with JSON or a fence."""
    text = (raw or "").strip()
    if not text.startswith("{") and not text.startswith("```"):
        return text

    reply: str | None = None
    parsed = extract_structured(text)
    if parsed is not None:
        reply = _reply_from_structure(parsed)
    else:
        reply = _reply_after_colon(text)

    cleaned = _strip_fences(reply if reply is not None else text)
    return cleaned or text
