"""Shared utilities for decoding LLM responses."""

from __future__ import annotations

import json
from typing import Any

from .errors import ParseError


def strip_code_fence(raw: str) -> str:
    """Remove one surrounding markdown code fence, if present.

    Only a fence that wraps the whole response is removed; text outside the
    fence is left in place so that the decode below rejects it.
    """
    text = raw.strip()
    if text.startswith("```") and text.endswith("```") and len(text) > 6:
        lines = text.split("\n")
        if len(lines) >= 2:
            return "\n".join(lines[1:-1]).strip()
    return text


def _decode(raw: str) -> Any:
    if not raw or not raw.strip():
        raise ParseError("Empty response", raw=raw)
    try:
        return json.loads(strip_code_fence(raw))
    except json.JSONDecodeError as e:
        raise ParseError(f"Response is not valid JSON: {e}", raw=raw) from e


def decode_json_object(raw: str) -> dict:
    """Strictly decode a JSON object from an LLM response.

    Raises:
        ParseError: when the response is empty, not JSON, or not an object
    """
    value = _decode(raw)
    if not isinstance(value, dict):
        raise ParseError(f"Expected a JSON object, got {type(value).__name__}", raw=raw)
    return value
