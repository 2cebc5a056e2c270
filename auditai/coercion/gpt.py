# Generic (OpenAI-style) response coercion: the model was asked for the full ModelResponse
# contract, but fields still arrive under alternate names or with the wrong types.

from __future__ import annotations

from typing import Any

from auditai.coercion.base import (
    Coercer,
    as_record,
    first_present,
    normalize_confidence,
    normalize_lines,
    normalize_optional_text,
    normalize_patch,
    normalize_snippet,
    normalize_text,
)
from auditai.findings.models import Severity
from auditai.findings.summary import build_summary, count_severities

_SEVERITIES = {s.value.lower(): s.value for s in Severity}


def normalize_severity(value: Any, default: str = Severity.MEDIUM.value) -> str:
    if isinstance(value, str):
        return _SEVERITIES.get(value.strip().lower(), default)
    return default


class GPTCoercer(Coercer):
    """Coerce responses that roughly follow the requested {findings, summary} contract."""

    model = "OpenAI"

    def coerce(self, payload: Any, fallback_file: str) -> dict[str, Any]:
        raw = as_record(payload)
        raw_findings = raw.get("findings") if isinstance(raw.get("findings"), list) else []
        findings = [self.coerce_finding(f, idx) for idx, f in enumerate(raw_findings)]
        return {"findings": findings, "summary": self.coerce_summary(raw.get("summary"), fallback_file, findings)}

    def coerce_finding(self, finding: Any, idx: int) -> dict[str, Any]:
        record = as_record(finding)
        evidence = as_record(record.get("evidence"))
        fix = as_record(record.get("fix"))

        lines_source = first_present(evidence, "lines")
        if lines_source is None:
            lines_source = first_present(record, "lines", "line", "locations", "line_numbers")

        snippet = first_present(evidence, "snippet")
        if snippet is None:
            snippet = first_present(record, "snippet", "code")

        raw_id = record.get("id")
        return {
            "id": str(raw_id) if raw_id is not None else f"finding-{idx + 1}",
            "severity": normalize_severity(record.get("severity")),
            "confidence": normalize_confidence(record.get("confidence"), default=0.5),
            "cwe": record.get("cwe") if isinstance(record.get("cwe"), str) else None,
            "owasp": record.get("owasp") if isinstance(record.get("owasp"), str) else None,
            "evidence": {
                "lines": normalize_lines(lines_source) if lines_source is not None else [],
                "snippet": normalize_snippet(snippet),
            },
            "explanation": normalize_text(first_present(record, "explanation", "details", "summary")),
            "fix": {
                "patch": normalize_patch(first_present(fix, "patch") or first_present(record, "patch", "remediation")),
                "notes": normalize_optional_text(
                    first_present(fix, "notes") or first_present(record, "fix_notes", "remediation_notes")
                ),
            },
        }

    def coerce_summary(self, summary: Any, fallback_file: str, findings: list[dict[str, Any]]) -> dict[str, Any]:
        base = as_record(summary)
        file = base.get("file") if isinstance(base.get("file"), str) and base.get("file") else fallback_file
        computed = count_severities(f["severity"] for f in findings)
        return build_summary(file, computed, provided=as_record(base.get("counts"))).model_dump()
