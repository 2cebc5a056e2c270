# Anthropic (Claude) response coercion. Claude tends to answer with a flatter shape:
# a single "line" per finding, a top-level "snippet" (or none at all, with the code
# quoted in the explanation), and summary keys like "high_severity".

from __future__ import annotations

import re
from typing import Any, Optional

from auditai.coercion.base import (
    Coercer,
    as_record,
    first_present,
    normalize_confidence,
    normalize_lines,
    normalize_optional_text,
    normalize_patch,
    normalize_text,
)
from auditai.coercion.gpt import normalize_severity
from auditai.findings.models import Severity
from auditai.findings.summary import build_summary, count_severities

_CODE_BLOCK = re.compile(r"```[a-zA-Z0-9]*\s*([\s\S]*?)```")
_INLINE_CODE = re.compile(r"`([^`]+)`")

# Claude's summary key -> canonical count bucket
_SUMMARY_KEYS = {
    "total_findings": "total",
    "high_severity": "high",
    "medium_severity": "medium",
    "low_severity": "low",
}


def _coerce_snippet(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    if isinstance(value, list):
        joined = "\n".join(str(v) for v in value).strip()
        return joined or None
    return None


def extract_snippet_from_text(text: Any) -> Optional[str]:
    """Pull the first fenced code block, else the first `inline` code span, out of prose."""
    if not isinstance(text, str):
        return None
    block = _CODE_BLOCK.search(text)
    if block and block.group(1).strip():
        return block.group(1).strip()
    inline = _INLINE_CODE.search(text)
    if inline and inline.group(1).strip():
        return inline.group(1).strip()
    return None


def derive_snippet(record: dict[str, Any]) -> str:
    evidence = as_record(record.get("evidence"))
    return (
        _coerce_snippet(evidence.get("snippet"))
        or _coerce_snippet(record.get("snippet"))
        or extract_snippet_from_text(record.get("explanation"))
        or extract_snippet_from_text(record.get("description"))
        or ""
    )


class ClaudeCoercer(Coercer):
    """Coerce Claude's flat finding shape; unknown severities fall to Low."""

    model = "Claude"

    def coerce(self, payload: Any, fallback_file: str) -> dict[str, Any]:
        raw = as_record(payload)
        raw_findings = [as_record(f) for f in raw.get("findings", [])] if isinstance(raw.get("findings"), list) else []
        findings = [self.coerce_finding(f) for f in raw_findings]
        return {"findings": findings, "summary": self.coerce_summary(raw, raw_findings, findings, fallback_file)}

    def coerce_finding(self, record: dict[str, Any]) -> dict[str, Any]:
        evidence = as_record(record.get("evidence"))
        fix = as_record(record.get("fix"))

        lines: list[int] = []
        if isinstance(evidence.get("lines"), list) and evidence["lines"]:
            lines = normalize_lines(evidence["lines"])
        elif record.get("line") is not None:
            lines = normalize_lines(record["line"])

        return {
            "id": str(record["id"]) if record.get("id") is not None else "UNKNOWN_ID",
            "severity": normalize_severity(record.get("severity"), default=Severity.LOW.value),
            "confidence": normalize_confidence(record.get("confidence"), default=1.0),
            "cwe": record.get("cwe") if isinstance(record.get("cwe"), str) else None,
            "owasp": record.get("owasp") if isinstance(record.get("owasp"), str) else None,
            "evidence": {"lines": lines, "snippet": derive_snippet(record)},
            "explanation": normalize_text(first_present(record, "explanation", "description")),
            "fix": {
                "patch": normalize_patch(fix.get("patch")),
                "notes": normalize_optional_text(fix.get("notes")),
            },
        }

    def coerce_summary(
        self,
        raw: dict[str, Any],
        raw_findings: list[dict[str, Any]],
        findings: list[dict[str, Any]],
        fallback_file: str,
    ) -> dict[str, Any]:
        summary = as_record(raw.get("summary"))
        file = summary.get("file")
        if not isinstance(file, str) or not file:
            first_file = raw_findings[0].get("file") if raw_findings else None
            file = first_file if isinstance(first_file, str) and first_file else fallback_file

        provided = dict(as_record(summary.get("counts")))
        for key, bucket in _SUMMARY_KEYS.items():
            if key in summary:
                provided[bucket] = summary[key]

        computed = count_severities(f["severity"] for f in findings)
        return build_summary(file, computed, provided=provided).model_dump()
