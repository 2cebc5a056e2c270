# Severity bucket counts for a list of findings. Critical is counted in the "high" bucket.

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from auditai.findings.models import Finding, Severity, Summary, SummaryCounts

_BUCKETS = ("total", "high", "medium", "low")


def count_severities(severities: Iterable[Union[Severity, str]]) -> SummaryCounts:
    counts = SummaryCounts()
    for sev in severities:
        value = Severity(sev)
        counts.total += 1
        if value == Severity.LOW:
            counts.low += 1
        elif value == Severity.MEDIUM:
            counts.medium += 1
        else:
            counts.high += 1
    return counts


def count_by_severity(findings: Sequence[Finding]) -> SummaryCounts:
    return count_severities(f.severity for f in findings)


def build_summary(
    file: str,
    computed: SummaryCounts,
    provided: Optional[Mapping[str, Any]] = None,
) -> Summary:
    """
    Build a Summary, preferring counts the model supplied.

    Any bucket in `provided` that is a real number overrides the computed
    value; everything else comes from `computed`.
    """
    values = computed.model_dump()
    if provided:
        for key in _BUCKETS:
            value = provided.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                values[key] = int(value)
    return Summary(file=file, counts=SummaryCounts(**values))
