# Line-to-finding index and highlight extraction for the annotated code view.

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from auditai.context import normalize_newlines, split_lines
from auditai.findings.models import Finding, Severity

# Severity -> underline class for the matched segment
UNDERLINE_STYLE = {
    Severity.CRITICAL: "underline-high",
    Severity.HIGH: "underline-high",
    Severity.MEDIUM: "underline-medium",
    Severity.LOW: "underline-low",
}

# Severity -> badge class
SEVERITY_COLOR = {
    Severity.CRITICAL: "severity-high",
    Severity.HIGH: "severity-high",
    Severity.MEDIUM: "severity-medium",
    Severity.LOW: "severity-low",
}


def severity_underline(severity: Severity) -> str:
    return UNDERLINE_STYLE.get(severity, "underline-low")


def severity_color(severity: Severity) -> str:
    return SEVERITY_COLOR.get(severity, "severity-low")


@dataclass(frozen=True)
class HighlightParts:
    """One rendered line split around the highlighted segment. match is None when nothing is highlighted."""

    before: str
    match: Optional[str]
    after: str
    style: Optional[str]


def _snippet_lines(finding: Finding) -> list[str]:
    snippet = normalize_newlines(finding.evidence.snippet or "").strip()
    if not snippet:
        return []
    return snippet.split("\n")


def _applies_by_snippet(finding: Finding, line_text: str) -> bool:
    for s in _snippet_lines(finding):
        trimmed = s.strip()
        if len(trimmed) >= 2 and trimmed in line_text:
            return True
    return False


def _applies(finding: Finding, line_text: str, line_number: int) -> bool:
    if finding.evidence.lines:
        return line_number in finding.evidence.lines
    return _applies_by_snippet(finding, line_text)


def findings_for_line(
    findings: Sequence[Finding],
    file_content: str,
    line_number: int,
) -> list[Finding]:
    """
    Return the findings that apply to 1-based display line `line_number`, in input order.

    A finding with lines applies only to those lines. A finding without
    lines falls back to its snippet: it applies wherever one of its trimmed
    snippet lines (at least 2 characters) appears literally.
    """
    lines = split_lines(file_content)
    line_text = lines[line_number - 1] if 1 <= line_number <= len(lines) else ""
    return [f for f in findings if _applies(f, line_text, line_number)]


def build_line_index(findings: Sequence[Finding], file_content: str) -> dict[int, list[Finding]]:
    """Map every line number that has at least one applicable finding to those findings."""
    index: dict[int, list[Finding]] = {}
    for number, text in enumerate(split_lines(file_content), start=1):
        hits = [f for f in findings if _applies(f, text, number)]
        if hits:
            index[number] = hits
    return index


def compute_highlight(line_text: str, finding: Finding, line_number: int) -> HighlightParts:
    """
    Split line_text into the part to underline for finding and the parts around it.

    When the finding's lines line up one-to-one with its snippet lines, the
    snippet line at the same position is used; otherwise the first snippet
    line found in line_text. A segment that cannot be located (the code was
    reformatted) highlights the whole line instead of nothing.
    """
    snippet_lines = _snippet_lines(finding)
    if not snippet_lines:
        return HighlightParts(before=line_text, match=None, after="", style=None)

    style = severity_underline(finding.severity)
    lines = finding.evidence.lines

    segment: Optional[str] = None
    if len(lines) == len(snippet_lines) and line_number in lines:
        segment = snippet_lines[lines.index(line_number)].strip()
    else:
        for s in snippet_lines:
            trimmed = s.strip()
            if trimmed and trimmed in line_text:
                segment = trimmed
                break

    idx = line_text.find(segment) if segment else -1
    if idx == -1:
        return HighlightParts(before="", match=line_text, after="", style=style)

    end = idx + len(segment)
    return HighlightParts(
        before=line_text[:idx],
        match=line_text[idx:end],
        after=line_text[end:],
        style=style,
    )
