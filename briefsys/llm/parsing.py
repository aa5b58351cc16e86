"""Pull assistant text out of completion envelopes and recover JSON from it."""

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass
from typing import Any, Callable


class ContentShape(enum.Enum):
    """Envelope variants the extractor understands, in matching order."""

    MESSAGE = "message"
    TEXT = "text"
    DELTA = "delta"


@dataclass(frozen=True, slots=True)
class ExtractedContent:
    shape: ContentShape
    text: str


def read_field(obj: Any, name: str) -> Any:
    """Read ``name`` from either a mapping or an attribute-style response object."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        # Multi-part content: keep text parts, whether plain strings or {"type": "text", "text": ...}
        parts: list[str] = []
        for part in content:
            text = part if isinstance(part, str) else read_field(part, "text")
            if isinstance(text, str) and text.strip():
                parts.append(text.strip())
        return "\n".join(parts)
    return ""


def _message_content(choice: Any) -> str:
    return _as_text(read_field(read_field(choice, "message"), "content"))


def _text_content(choice: Any) -> str:
    return _as_text(read_field(choice, "text"))


def _delta_content(choice: Any) -> str:
    return _as_text(read_field(read_field(choice, "delta"), "content"))


_CONTENT_MATCHERS: tuple[tuple[ContentShape, Callable[[Any], str]], ...] = (
    (ContentShape.MESSAGE, _message_content),
    (ContentShape.TEXT, _text_content),
    (ContentShape.DELTA, _delta_content),
)


def match_content(envelope: Any) -> ExtractedContent | None:
    """Return the first non-empty content found in ``envelope`` and its shape."""

    choices = read_field(envelope, "choices")
    if not isinstance(choices, (list, tuple)) or not choices:
        return None

    choice = choices[0]
    for shape, matcher in _CONTENT_MATCHERS:
        try:
            text = matcher(choice)
        except (AttributeError, TypeError):
            continue
        if text:
            return ExtractedContent(shape=shape, text=text)
    return None


def extract_content(envelope: Any) -> str:
    """Return the assistant text from ``envelope``, or ``""`` when there is none."""

    matched = match_content(envelope)
    return matched.text if matched else ""


_JSON_SPAN = re.compile(r"(\{[\s\S]*\}|\[[\s\S]*\])")


def parse_json_payload(text: Any) -> dict[str, Any] | list[Any] | None:
    """Parse model output as a JSON object or array.

    The whole string is tried first; failing that, the first greedy ``{...}``
    or ``[...]`` span (prose or code fences around the payload are common).
    Both attempts use the strict decoder. Returns ``None`` when neither works.
    """

    if not isinstance(text, str) or not text.strip():
        return None

    candidates = [text]
    match = _JSON_SPAN.search(text)
    if match:
        candidates.append(match.group(1))

    for candidate in candidates:
        try:
            payload = json.loads(candidate)
        except (json.JSONDecodeError, RecursionError):
            continue
        if isinstance(payload, (dict, list)):
            return payload
    return None


__all__ = [
    "ContentShape",
    "ExtractedContent",
    "extract_content",
    "match_content",
    "parse_json_payload",
    "read_field",
]
