# Model output parsing: turn raw LLM text into a JSON object.
# Models wrap JSON in markdown fences, add prose around it, or leave trailing commas.

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

_FENCED_OBJECT = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")


class ModelOutputError(ValueError):
    """Raised when no JSON object can be recovered from model output."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


def strip_code_fences(raw: str) -> str:
    """Remove ```json / ``` markers and surrounding whitespace."""
    return raw.replace("```json", "").replace("```", "").strip()


def _loads_object(text: str) -> Optional[dict[str, Any]]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def _first_balanced_object(text: str) -> Optional[str]:
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """
    Recover a JSON object from arbitrary model text.

    Tries, in order: the text as-is, the text with code fences stripped, a
    fenced ```json block, the first balanced {...} object (with trailing
    commas removed), and finally the greedy first-"{"-to-last-"}" span.
    Returns None if nothing parses to an object.
    """
    if not isinstance(text, str) or not text.strip():
        return None

    for candidate in (text.strip(), strip_code_fences(text)):
        obj = _loads_object(candidate)
        if obj is not None:
            return obj

    m = _FENCED_OBJECT.search(text)
    if m:
        obj = _loads_object(m.group(1))
        if obj is not None:
            return obj

    balanced = _first_balanced_object(text)
    if balanced is not None:
        obj = _loads_object(_TRAILING_COMMA.sub(r"\1", balanced))
        if obj is not None:
            return obj

    m = _GREEDY_OBJECT.search(text)
    if m:
        return _loads_object(_TRAILING_COMMA.sub(r"\1", m.group(0)))
    return None


def parse_model_output(raw: str) -> dict[str, Any]:
    """
    Parse raw model output into a JSON object.

    Raises:
        ModelOutputError: if the output is empty or holds no JSON object.
    """
    obj = extract_json_object(raw)
    if obj is None:
        logger.warning("Model output is not valid JSON (first 200 chars): %r", (raw or "")[:200])
        raise ModelOutputError("Model did not return valid JSON.", raw=raw or "")
    logger.debug("Parsed model output: %d top-level key(s)", len(obj))
    return obj
