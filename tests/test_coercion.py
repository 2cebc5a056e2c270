"""Unit tests for vendor response coercion (OpenAI, Claude, CodeBert shapes)."""

import pytest

from auditai.coercion.base import CoercionError, normalize_lines, to_line_number
from auditai.coercion.claude import ClaudeCoercer, extract_snippet_from_text
from auditai.coercion.codebert import CodeBertCoercer
from auditai.coercion.gpt import GPTCoercer
from auditai.config import get_coercer
from auditai.findings.models import Severity


class TestHelpers:
    def test_to_line_number(self):
        assert to_line_number(12) == 12
        assert to_line_number(12.9) == 12
        assert to_line_number("  7 ") == 7
        assert to_line_number("12abc") == 12
        assert to_line_number("abc") is None
        assert to_line_number(True) is None
        assert to_line_number(float("nan")) is None

    def test_normalize_lines_accepts_scalars_and_lists(self):
        assert normalize_lines(5) == [5]
        assert normalize_lines(["3", 4, None, "x"]) == [3, 4]


class TestGPTCoercer:
    def test_well_formed_response(self):
        payload = {
            "findings": [
                {
                    "id": "SQL_INJECTION",
                    "severity": "High",
                    "confidence": 0.9,
                    "cwe": "CWE-89",
                    "evidence": {"lines": [3], "snippet": "db.query(sql)"},
                    "explanation": "bad",
                    "fix": {"patch": [{"line": 3, "replace_with": "db.query($1)"}], "notes": "bind"},
                }
            ],
            "summary": {"file": "app.ts", "counts": {"total": 1, "high": 1, "medium": 0, "low": 0}},
        }
        result = GPTCoercer().run(payload, "fallback.ts")
        f = result.findings[0]
        assert f.id == "SQL_INJECTION"
        assert f.severity == Severity.HIGH
        assert f.evidence.lines == [3]
        assert f.fix.patch[0].replace_with == "db.query($1)"
        assert f.fix.notes == "bind"
        assert result.summary.file == "app.ts"

    def test_alternate_keys_and_bad_types(self):
        payload = {
            "findings": [
                {
                    "severity": "CRITICAL",
                    "confidence": "1.7",
                    "line_numbers": ["8", "9"],
                    "code": ["a();", "b();"],
                    "details": "why",
                    "remediation": [{"line": "8"}, {"nothing": True}, "junk"],
                    "remediation_notes": "fix it",
                    "cwe": 79,
                }
            ]
        }
        f = GPTCoercer().run(payload, "x.js").findings[0]
        assert f.id == "finding-1"
        assert f.severity == Severity.CRITICAL
        assert f.confidence == 1.0
        assert f.evidence.lines == [8, 9]
        assert f.evidence.snippet == "a();\nb();"
        assert f.explanation == "why"
        assert [p.line for p in f.fix.patch] == [8]
        assert f.fix.notes == "fix it"
        assert f.cwe is None

    def test_defaults_for_missing_fields(self):
        f = GPTCoercer().run({"findings": [{"id": 7, "severity": "spicy"}]}, "x.py").findings[0]
        assert f.id == "7"
        assert f.severity == Severity.MEDIUM
        assert f.confidence == 0.5
        assert f.evidence.lines == []
        assert f.evidence.snippet == ""
        assert f.fix.patch == []

    def test_summary_counts_computed_when_missing(self):
        payload = {
            "findings": [
                {"id": "A", "severity": "Critical"},
                {"id": "B", "severity": "High"},
                {"id": "C", "severity": "Low"},
            ],
            "summary": {"counts": {"total": "three", "medium": 4}},
        }
        summary = GPTCoercer().run(payload, "f.ts").summary
        assert summary.file == "f.ts"
        assert summary.counts.total == 3
        assert summary.counts.high == 2
        assert summary.counts.medium == 4
        assert summary.counts.low == 1

    def test_non_object_payload(self):
        result = GPTCoercer().run(["not", "an", "object"], "f.ts")
        assert result.findings == []
        assert result.summary.file == "f.ts"


class TestClaudeCoercer:
    def test_flat_shape(self):
        payload = {
            "findings": [
                {"id": "XSS", "severity": "medium", "line": "12", "snippet": "el.innerHTML = q;", "description": "d"}
            ],
            "summary": {"file": "page.tsx", "total_findings": 1, "medium_severity": 1},
        }
        result = ClaudeCoercer().run(payload, "fallback")
        f = result.findings[0]
        assert f.severity == Severity.MEDIUM
        assert f.confidence == 1.0
        assert f.evidence.lines == [12]
        assert f.evidence.snippet == "el.innerHTML = q;"
        assert f.explanation == "d"
        assert result.summary.file == "page.tsx"
        assert result.summary.counts.total == 1
        assert result.summary.counts.medium == 1

    def test_evidence_lines_preferred_over_line(self):
        payload = {"findings": [{"id": "X", "line": 1, "evidence": {"lines": [4, 5], "snippet": "a\nb"}}]}
        f = ClaudeCoercer().run(payload, "f").findings[0]
        assert f.evidence.lines == [4, 5]

    def test_unknown_severity_falls_to_low(self):
        f = ClaudeCoercer().run({"findings": [{"id": "X", "severity": "severe"}]}, "f").findings[0]
        assert f.severity == Severity.LOW

    def test_missing_id(self):
        f = ClaudeCoercer().run({"findings": [{}]}, "f").findings[0]
        assert f.id == "UNKNOWN_ID"

    def test_snippet_recovered_from_explanation(self):
        payload = {
            "findings": [
                {"id": "X", "explanation": "The call ```js\neval(input)\n``` runs user code."},
                {"id": "Y", "explanation": "Uses `Math.random()` for tokens."},
            ]
        }
        findings = ClaudeCoercer().run(payload, "f").findings
        assert findings[0].evidence.snippet == "eval(input)"
        assert findings[1].evidence.snippet == "Math.random()"

    def test_summary_file_falls_back_to_finding_file(self):
        payload = {"findings": [{"id": "X", "file": "src/a.js"}]}
        assert ClaudeCoercer().run(payload, "fallback").summary.file == "src/a.js"

    def test_extract_snippet_from_text_none(self):
        assert extract_snippet_from_text("no code here") is None
        assert extract_snippet_from_text(None) is None


def test_codebert_uses_generic_shape():
    f = CodeBertCoercer().run({"findings": [{"id": "A", "lines": 2, "snippet": "x"}]}, "f").findings[0]
    assert f.evidence.lines == [2]
    assert f.severity == Severity.MEDIUM


def test_get_coercer_is_case_insensitive():
    assert isinstance(get_coercer("claude"), ClaudeCoercer)
    assert isinstance(get_coercer("OpenAI"), GPTCoercer)
    assert get_coercer("codebert").model == "CodeBert"
    with pytest.raises(KeyError):
        get_coercer("gemini")


def test_validate_rejects_schema_violations():
    bad = {"findings": [{"id": "X", "severity": "Bogus", "confidence": 2}], "summary": {"file": "f"}}
    with pytest.raises(CoercionError) as exc:
        GPTCoercer().validate(bad)
    assert exc.value.issues
