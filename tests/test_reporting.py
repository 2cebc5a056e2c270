"""Tests for auditai.reporting: console rendering and report export."""

import io
import json
from datetime import datetime

import pytest
from rich.console import Console

from auditai.context import FileContext
from auditai.findings.models import (
    AnalysisResult,
    Evidence,
    Finding,
    Fix,
    ModelRunError,
    ModelRunSuccess,
    PatchEntry,
    Severity,
    Summary,
    SummaryCounts,
)
from auditai.reporting.console import (
    print_annotated_source,
    print_comparison,
    print_findings,
    print_summary,
    render_annotated_line,
    severity_style,
)
from auditai.reporting.export import (
    MAX_CODE_CHARS,
    TRUNCATED_MARKER,
    export_report,
    report_filename,
    safe_report_name,
)

SOURCE = "line1\nline2\nconst q = db.query(sql);\nline4"
EXPORTED_AT = datetime(2024, 5, 1, 12, 30, 0)


def _console() -> Console:
    return Console(record=True, file=io.StringIO(), width=120, color_system=None)


def _finding(**kwargs) -> Finding:
    defaults = dict(
        id="SQL_INJECTION",
        severity=Severity.HIGH,
        confidence=0.9,
        cwe="CWE-89",
        evidence=Evidence(lines=[3], snippet="db.query(sql)"),
        explanation="Query built from request data.",
        fix=Fix(patch=[PatchEntry(line=3, replace_with="db.query($1, [id])")], notes="Use placeholders."),
    )
    defaults.update(kwargs)
    return Finding(**defaults)


def _result(findings=None, file="src/app.ts") -> AnalysisResult:
    findings = [_finding()] if findings is None else findings
    return AnalysisResult(findings=findings, summary=Summary(file=file, counts=SummaryCounts(total=len(findings), high=len(findings))))


class TestConsole:
    def test_severity_badge_styles(self):
        assert severity_style(Severity.CRITICAL) == severity_style(Severity.HIGH) == "bold red"
        assert severity_style(Severity.MEDIUM) == "bold yellow"
        assert severity_style(Severity.LOW) == "bold dim"

    def test_render_annotated_line_underlines_segment(self):
        text = render_annotated_line("const q = db.query(sql);", [_finding()], 3)
        assert text.plain == "const q = db.query(sql);"
        styled = [text.plain[span.start:span.end] for span in text.spans]
        assert styled == ["db.query(sql)"]

    def test_render_annotated_line_without_findings(self):
        text = render_annotated_line("plain", [], 1)
        assert text.plain == "plain"
        assert text.spans == []

    def test_annotated_source_marks_finding_line(self):
        console = _console()
        print_annotated_source(FileContext("a.ts", SOURCE, "ts"), [_finding()], console)
        out = console.export_text()
        assert "3 | const q = db.query(sql);" in out
        assert "^ [SQL_INJECTION] High" in out
        assert out.count("[SQL_INJECTION]") == 1

    def test_print_findings(self):
        console = _console()
        print_findings(FileContext("src/app.ts", SOURCE, "ts"), _result(), "OpenAI", console, show_code=False, verbose=True)
        out = console.export_text()
        assert "src/app.ts" in out
        assert "SQL_INJECTION (CWE-89)" in out
        assert "HIGH" in out
        assert "90%" in out
        assert "Use placeholders." in out
        assert "line 3: db.query($1, [id])" in out
        assert "1 finding" in out

    def test_print_findings_empty(self):
        console = _console()
        print_findings(FileContext("a.ts", SOURCE, "ts"), _result([]), "Claude", console)
        assert "No findings reported by the model." in console.export_text()

    def test_summary_folds_critical_into_high(self):
        console = _console()
        print_summary([_finding(severity=Severity.CRITICAL), _finding(severity=Severity.LOW)], console)
        out = console.export_text()
        assert "2 findings" in out
        assert "1 high" in out
        assert "1 low" in out

    def test_print_comparison(self):
        console = _console()
        result = _result()
        runs = {
            "OpenAI": ModelRunSuccess(findings=result.findings, summary=result.summary),
            "Claude": ModelRunError(error="rate limited"),
        }
        print_comparison("src/app.ts", runs, console)
        out = console.export_text()
        assert "OK" in out and "ERROR" in out
        assert "rate limited" in out
        assert "SQL_INJECTION" in out


class TestExport:
    def test_safe_report_name(self):
        assert safe_report_name("src/app (1).ts") == "src_app_1_.ts"
        assert report_filename(_result(file="a/b.py"), "html") == "security-report-a_b.py.html"

    def test_export_text(self, tmp_path):
        path = export_report(_result(), "OpenAI", tmp_path, fmt="text", file_content=SOURCE, exported_at=EXPORTED_AT)
        body = path.read_text()
        assert path.name == "security-report-src_app.ts.txt"
        assert "Audit AI Report" in body
        assert "Model: OpenAI" in body
        assert "Exported: 2024-05-01 12:30:00" in body
        assert "High/Critical: 1" in body
        assert "1. SQL_INJECTION - CWE-89" in body
        assert "db.query($1, [id])" in body
        assert "   3  const q = db.query(sql);" in body

    def test_export_truncates_code(self, tmp_path):
        long_source = "x" * (MAX_CODE_CHARS + 10)
        body = export_report(_result([]), "Claude", tmp_path, fmt="text", file_content=long_source).read_text()
        assert TRUNCATED_MARKER.strip() in body
        assert "No findings reported by the model." in body

    def test_export_json(self, tmp_path):
        path = export_report(_result(), "Claude", tmp_path, fmt="json", exported_at=EXPORTED_AT)
        data = json.loads(path.read_text())
        assert data["model"] == "Claude"
        assert data["exported"] == "2024-05-01T12:30:00"
        assert data["findings"][0]["evidence"]["lines"] == [3]
        assert data["summary"]["file"] == "src/app.ts"

    def test_export_html(self, tmp_path):
        path = export_report(_result(), "CodeBert", tmp_path)
        body = path.read_text()
        assert path.suffix == ".html"
        assert "<html" in body.lower()
        assert "SQL_INJECTION" in body

    def test_unknown_format(self, tmp_path):
        with pytest.raises(ValueError):
            export_report(_result(), "OpenAI", tmp_path, fmt="pdf")
