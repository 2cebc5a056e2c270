"""
Evaluation harness: score re-anchored findings against labelled fixtures.

A prediction matches an expected finding when the ids are equal and the
line sets overlap. An empty line set on either side counts as overlapping,
so a fixture that does not pin lines only checks the id.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from auditai.analyzers import analyze_file
from auditai.config import Config
from auditai.context import create_context
from auditai.findings.models import AuditFile, Finding
from auditai.providers.base import BaseProvider

logger = logging.getLogger(__name__)


class FixtureFinding(BaseModel):
    id: str
    lines: Optional[list[int]] = None
    severity: Optional[str] = None


class FixtureFile(BaseModel):
    path: str
    language: str


class Fixture(BaseModel):
    id: str
    description: Optional[str] = None
    file: FixtureFile
    expected_findings: list[FixtureFinding] = Field(default_factory=list)


@dataclass
class Score:
    tp: int = 0
    fp: int = 0
    fn: int = 0
    missing: list[FixtureFinding] = field(default_factory=list)
    extras: list[Finding] = field(default_factory=list)


@dataclass
class FixtureResult:
    fixture: Fixture
    score: Score
    predicted: int


@dataclass
class EvaluationReport:
    results: list[FixtureResult] = field(default_factory=list)
    tp: int = 0
    fp: int = 0
    fn: int = 0

    @property
    def precision(self) -> float:
        return precision(self.tp, self.fp)

    @property
    def recall(self) -> float:
        return recall(self.tp, self.fn)

    @property
    def f1(self) -> float:
        return f1(self.precision, self.recall)


def load_fixtures(path: Path) -> list[Fixture]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    return [Fixture.model_validate(item) for item in raw]


def has_line_overlap(a: Optional[Sequence[int]], b: Optional[Sequence[int]]) -> bool:
    if not a or not b:
        return True
    wanted = set(b)
    return any(line in wanted for line in a)


def score_findings(predictions: Sequence[Finding], expected: Sequence[FixtureFinding]) -> Score:
    """Greedily pair each expected finding with the first unclaimed matching prediction."""
    claimed: set[int] = set()
    missing: list[FixtureFinding] = []

    for exp in expected:
        match = next(
            (
                idx
                for idx, pred in enumerate(predictions)
                if idx not in claimed and pred.id == exp.id and has_line_overlap(pred.evidence.lines, exp.lines)
            ),
            None,
        )
        if match is None:
            missing.append(exp)
        else:
            claimed.add(match)

    extras = [p for idx, p in enumerate(predictions) if idx not in claimed]
    return Score(
        tp=len(expected) - len(missing),
        fp=len(extras),
        fn=len(missing),
        missing=missing,
        extras=extras,
    )


def precision(tp: int, fp: int) -> float:
    return 1.0 if tp + fp == 0 else tp / (tp + fp)


def recall(tp: int, fn: int) -> float:
    return 1.0 if tp + fn == 0 else tp / (tp + fn)


def f1(p: float, r: float) -> float:
    return 0.0 if p + r == 0 else 2 * p * r / (p + r)


def evaluate_fixtures(
    fixtures: Sequence[Fixture],
    base_dir: Path,
    model: str = "OpenAI",
    config: Optional[Config] = None,
    provider: Optional[BaseProvider] = None,
) -> EvaluationReport:
    """
    Run the analysis pipeline on every fixture file and aggregate the scores.

    Fixture file paths are resolved against base_dir. Unreadable fixture
    files are logged and skipped. AnalysisError propagates: a broken model
    run should stop the evaluation, not be scored as all-missed.
    """
    report = EvaluationReport()
    for fixture in fixtures:
        ctx = create_context(base_dir / fixture.file.path)
        if ctx is None:
            continue
        audit = AuditFile(path=fixture.file.path, language=fixture.file.language, content=ctx.content)
        result = analyze_file(audit, model=model, config=config, provider=provider)
        score = score_findings(result.findings, fixture.expected_findings)
        logger.info("Fixture %s: TP=%d FP=%d FN=%d", fixture.id, score.tp, score.fp, score.fn)

        report.results.append(FixtureResult(fixture=fixture, score=score, predicted=len(result.findings)))
        report.tp += score.tp
        report.fp += score.fp
        report.fn += score.fn
    return report
