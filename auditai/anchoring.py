# Line re-anchoring engine: recover where a model-reported finding really lives in the file.
# Models quote code verbatim-ish but routinely get line numbers wrong or leave them out,
# so the snippet is searched for in the actual file text and the lines are recomputed.

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from auditai.context import normalize_newlines, split_lines
from auditai.findings.models import Finding

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def canonical(text: str) -> str:
    """Drop all whitespace and lower-case, for indentation- and case-blind comparison."""
    return _WHITESPACE.sub("", text).lower()


def loose_match(file_line: str, snippet_line: str) -> bool:
    """
    True if `snippet_line` occurs in `file_line`, literally or after canonical reduction.

    Character order is preserved; this is substring containment, not a fuzzy
    or edit-distance match.
    """
    needle = snippet_line.strip()
    if not needle:
        return False
    if needle in file_line:
        return True
    canon = canonical(needle)
    return bool(canon) and canon in canonical(file_line)


def _expected_line(finding: Finding) -> Optional[int]:
    if finding.evidence.lines:
        return finding.evidence.lines[0]
    return finding.patch_line_hint()


def _closest(starts: Sequence[int], hint: Optional[int]) -> int:
    """Pick the candidate start nearest to hint; ties and no-hint both go to the earliest."""
    if hint is None:
        return starts[0]
    return min(starts, key=lambda s: (abs(s - hint), s))


def _line_range(start: int, length: int, line_count: int) -> list[int]:
    return list(range(start, min(start + length, line_count + 1)))


def _valid_lines(lines: Sequence[int], line_count: int) -> list[int]:
    return [n for n in lines if 1 <= n <= line_count]


def _with_evidence(finding: Finding, lines: list[int], snippet: Optional[str] = None) -> Finding:
    updated = finding.model_copy(deep=True)
    updated.evidence.lines = lines
    if snippet is not None:
        updated.evidence.snippet = snippet
    return updated


def _exact_starts(text: str, snippet: str) -> list[int]:
    """1-based start lines of every verbatim occurrence of snippet in text, in one pass over text."""
    starts: list[int] = []
    start, counted = 1, 0
    pos = text.find(snippet)
    while pos != -1:
        start += text.count("\n", counted, pos)
        counted = pos
        if not starts or starts[-1] != start:
            starts.append(start)
        pos = text.find(snippet, pos + 1)
    return starts


def _window_starts(file_lines: Sequence[str], wanted: Sequence[str]) -> list[int]:
    width = len(wanted)
    starts: list[int] = []
    for offset in range(len(file_lines) - width + 1):
        if all(loose_match(file_lines[offset + k], wanted[k]) for k in range(width)):
            starts.append(offset + 1)
    return starts


def _signature(snippet_lines: Sequence[str]) -> tuple[int, str]:
    """Index and text of the longest non-blank snippet line (first wins on ties)."""
    best_idx, best = -1, ""
    for idx, line in enumerate(snippet_lines):
        stripped = line.strip()
        if len(stripped) > len(best):
            best_idx, best = idx, stripped
    return best_idx, best


def _fallback(finding: Finding, line_count: int) -> Finding:
    """Nothing matched: keep whatever in-range location the model gave, never invent one."""
    kept = _valid_lines(finding.evidence.lines, line_count)
    if kept:
        return _with_evidence(finding, kept)
    hint = finding.patch_line_hint()
    if not finding.evidence.lines and hint is not None and 1 <= hint <= line_count:
        return _with_evidence(finding, [hint])
    if kept != finding.evidence.lines:
        return _with_evidence(finding, kept)
    return finding.model_copy(deep=True)


def reanchor(file_content: str, finding: Finding) -> Finding:
    """
    Return a copy of finding whose evidence.lines match its real location in file_content.

    Strategies, strongest first: verbatim match of the whole snippet, a
    loose window match of its non-blank lines, then a loose match of its
    longest line alone. When several places qualify, the one closest to the
    model's own line number (evidence.lines[0], else a fix.patch line) wins.
    Never raises; a finding that cannot be located keeps its original,
    in-range lines.
    """
    text = normalize_newlines(file_content)
    file_lines = split_lines(text)
    line_count = len(file_lines)
    snippet = normalize_newlines(finding.evidence.snippet or "").strip()
    hint = _expected_line(finding)

    if not snippet:
        given = _valid_lines(finding.evidence.lines, line_count)
        if given:
            derived = "\n".join(file_lines[n - 1] for n in given)
            return _with_evidence(finding, given, derived)
        patch_line = finding.patch_line_hint()
        if patch_line is not None and 1 <= patch_line <= line_count:
            return _with_evidence(finding, [patch_line], file_lines[patch_line - 1])
        logger.debug("Finding %s has no snippet and no usable line; left unchanged", finding.id)
        return _fallback(finding, line_count)

    snippet_lines = snippet.split("\n")

    exact = _exact_starts(text, snippet)
    if exact:
        start = _closest(exact, hint)
        logger.debug("Finding %s: exact match at line %d", finding.id, start)
        return _with_evidence(finding, _line_range(start, len(snippet_lines), line_count))

    meaningful = [line for line in snippet_lines if line.strip()]
    if len(meaningful) >= 2:
        windows = _window_starts(file_lines, meaningful)
        if windows:
            start = _closest(windows, hint)
            logger.debug("Finding %s: loose window match at line %d", finding.id, start)
            return _with_evidence(finding, _line_range(start, len(meaningful), line_count))

    sig_idx, sig = _signature(snippet_lines)
    starts = []
    for idx, line in enumerate(file_lines):
        if loose_match(line, sig):
            start = max(1, idx + 1 - sig_idx)
            if start not in starts:
                starts.append(start)
    if starts:
        start = _closest(starts, hint)
        logger.debug("Finding %s: signature match, range starts at line %d", finding.id, start)
        return _with_evidence(finding, _line_range(start, len(snippet_lines), line_count))

    logger.debug("Finding %s: snippet not found in file", finding.id)
    return _fallback(finding, line_count)


def reanchor_findings(file_content: str, findings: Sequence[Finding]) -> list[Finding]:
    """Re-anchor every finding against the same file, preserving order."""
    return [reanchor(file_content, f) for f in findings]
