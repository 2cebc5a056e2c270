# Coercer interface (abstract base class): converts one vendor's raw JSON into the canonical shape.
# Concrete coercers (gpt, claude, codebert) subclass Coercer and implement coerce().

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import ValidationError

from auditai.findings.models import AnalysisResult

logger = logging.getLogger(__name__)


class CoercionError(ValueError):
    """The coerced payload still does not satisfy the canonical schema."""

    def __init__(self, message: str, issues: Any = None) -> None:
        super().__init__(message)
        self.issues = issues


class Coercer(ABC):
    """
    Abstract base class for vendor response coercion.

    Subclasses must define:
    - model: str (the model label this coercer serves, e.g. "OpenAI")
    - coerce(payload, fallback_file) -> dict, a plain dict shaped like
      AnalysisResult ({"findings": [...], "summary": {...}})

    Coercion is tolerant: missing fields get defaults, alternate key names
    are accepted, wrong types are converted or dropped. validate() then
    checks the result against the canonical pydantic models.
    """

    model: str

    @abstractmethod
    def coerce(self, payload: Any, fallback_file: str) -> dict[str, Any]:
        """
        Map a parsed vendor response onto the canonical shape.

        Args:
            payload: Whatever json.loads produced for the model output.
            fallback_file: File path used when the model omits summary.file.

        Returns:
            Dict with "findings" (list of finding dicts) and "summary".
        """
        ...

    def validate(self, normalized: dict[str, Any]) -> AnalysisResult:
        try:
            return AnalysisResult.model_validate(normalized)
        except ValidationError as exc:
            logger.warning("%s response failed validation: %d issue(s)", self.model, exc.error_count())
            raise CoercionError("Model response did not match the finding schema.", issues=exc.errors()) from exc

    def run(self, payload: Any, fallback_file: str) -> AnalysisResult:
        """Coerce then validate."""
        return self.validate(self.coerce(payload, fallback_file))


def as_record(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def first_present(record: dict[str, Any], *keys: str) -> Any:
    """Value of the first key that is present and not None."""
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def to_line_number(value: Any) -> Optional[int]:
    """Accept ints, finite floats (truncated) and numeric strings such as "12" or "12abc"."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        digits = ""
        for ch in value.strip():
            if ch.isdigit() or (ch in "+-" and not digits):
                digits += ch
            else:
                break
        try:
            return int(digits)
        except ValueError:
            return None
    return None


def normalize_lines(value: Any) -> list[int]:
    items = value if isinstance(value, list) else [value]
    lines = []
    for item in items:
        n = to_line_number(item)
        if n is not None:
            lines.append(n)
    return lines


def normalize_confidence(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str):
        try:
            num = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(num):
        return default
    return min(1.0, max(0.0, num))


def normalize_snippet(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "\n".join(str(v) for v in value)
    return ""


def normalize_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def normalize_optional_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def normalize_patch(value: Any) -> list[dict[str, Any]]:
    """Keep patch entries that carry at least one of line / insert_before / replace_with."""
    if not isinstance(value, list):
        return []
    patch = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        line = to_line_number(entry.get("line"))
        insert_before = entry.get("insert_before") if isinstance(entry.get("insert_before"), str) else None
        replace_with = entry.get("replace_with") if isinstance(entry.get("replace_with"), str) else None
        if line is None and insert_before is None and replace_with is None:
            continue
        patch.append({"line": line, "insert_before": insert_before, "replace_with": replace_with})
    return patch
