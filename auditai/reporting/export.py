# Report export: write one model's analysis of one file to text, HTML, or JSON.

from __future__ import annotations

import io
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.text import Text

from auditai.findings.models import AnalysisResult

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("text", "html", "json")
EXTENSIONS = {"text": "txt", "html": "html", "json": "json"}

MAX_CODE_CHARS = 4000
TRUNCATED_MARKER = "\n\n[...truncated...]"

_UNSAFE_NAME = re.compile(r"[^\w.-]+")


def safe_report_name(name: str) -> str:
    return _UNSAFE_NAME.sub("_", name)


def report_filename(result: AnalysisResult, fmt: str, file_name: Optional[str] = None) -> str:
    base = safe_report_name(result.summary.file or file_name or "unknown")
    return f"security-report-{base}.{EXTENSIONS[fmt]}"


def _code_excerpt(file_content: str) -> list[str]:
    code = file_content
    if len(code) > MAX_CODE_CHARS:
        code = code[:MAX_CODE_CHARS] + TRUNCATED_MARKER
    return [f"{i:>4}  {line}" for i, line in enumerate(code.split("\n"), start=1)]


def render_report(
    result: AnalysisResult,
    model: str,
    console: Console,
    file_name: Optional[str] = None,
    file_content: Optional[str] = None,
    exported_at: Optional[datetime] = None,
) -> None:
    """Print the full report (header, summary, findings, optional code) to console."""
    exported_at = exported_at or datetime.now()
    indent = "    "

    console.print(Text("Audit AI Report", style="bold"))
    console.print()
    console.print(f"File: {result.summary.file or file_name or 'unknown'}", markup=False)
    console.print(f"Model: {model}", markup=False)
    console.print(f"Exported: {exported_at.strftime('%Y-%m-%d %H:%M:%S')}", markup=False)
    console.print()

    counts = result.summary.counts
    console.print(Text("Summary", style="bold"))
    for label, value in (
        ("Total findings", counts.total),
        ("High/Critical", counts.high),
        ("Medium", counts.medium),
        ("Low", counts.low),
    ):
        console.print(f"{indent}{label}: {value}", markup=False)
    console.print()

    console.print(Text("Findings", style="bold"))
    if not result.findings:
        console.print(f"{indent}No findings reported by the model.", markup=False)

    for index, f in enumerate(result.findings, start=1):
        console.print()
        console.print(Text(f"{index}. {f.id}" + (f" - {f.cwe}" if f.cwe else ""), style="bold"))
        console.print(f"{indent}Severity: {f.severity.value}", markup=False)
        console.print(f"{indent}Confidence: {f.confidence * 100:.0f}%", markup=False)
        console.print(f"{indent}Lines: {', '.join(str(n) for n in f.evidence.lines)}", markup=False)
        console.print(Text(f"{indent}Explanation:", style="bold"))
        console.print(f"{indent * 2}{f.explanation}", markup=False)
        console.print(Text(f"{indent}Evidence snippet:", style="bold"))
        for line in f.evidence.snippet.split("\n"):
            console.print(f"{indent * 2}{line}", markup=False)
        if f.fix.notes:
            console.print(Text(f"{indent}Fix notes:", style="bold"))
            console.print(f"{indent * 2}{f.fix.notes}", markup=False)
        changes = [p.replace_with or p.insert_before for p in f.fix.patch if p.replace_with or p.insert_before]
        if changes:
            console.print(Text(f"{indent}Patch suggestion(s):", style="bold"))
            for change in changes:
                console.print(f"{indent * 2}{change}", markup=False)

    if file_content:
        console.print()
        console.print(Text("Original Code (truncated)", style="bold"))
        for line in _code_excerpt(file_content):
            console.print(f"{indent}{line}", markup=False, highlight=False)


def report_to_dict(
    result: AnalysisResult,
    model: str,
    exported_at: Optional[datetime] = None,
) -> dict:
    exported_at = exported_at or datetime.now()
    return {
        "model": model,
        "exported": exported_at.isoformat(timespec="seconds"),
        **result.model_dump(mode="json"),
    }


def export_report(
    result: AnalysisResult,
    model: str,
    out_dir: Path,
    fmt: str = "html",
    file_name: Optional[str] = None,
    file_content: Optional[str] = None,
    exported_at: Optional[datetime] = None,
) -> Path:
    """
    Write the report into out_dir and return the written path.

    Raises:
        ValueError: for an unknown format.
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format {fmt!r}; expected one of {', '.join(EXPORT_FORMATS)}")

    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / report_filename(result, fmt, file_name)

    if fmt == "json":
        payload = report_to_dict(result, model, exported_at)
        target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    else:
        console = Console(record=True, file=io.StringIO(), width=100, color_system=None, soft_wrap=True)
        render_report(result, model, console, file_name, file_content, exported_at)
        body = console.export_html() if fmt == "html" else console.export_text()
        target.write_text(body, encoding="utf-8")

    logger.info("Exported %s report to %s", fmt, target)
    return target
