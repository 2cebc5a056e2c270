# Pydantic data models for LLM-reported findings: Finding, Evidence, Fix, Severity, Summary.

from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

MODEL_GUESS_ID = "MODEL_GUESS"


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class Evidence(BaseModel):
    """Where the model says the issue is: 1-based line numbers plus a code excerpt."""

    lines: list[int] = Field(default_factory=list, description="1-based line numbers")
    snippet: str = ""


class PatchEntry(BaseModel):
    line: Optional[int] = None
    insert_before: Optional[str] = None
    replace_with: Optional[str] = None


class Fix(BaseModel):
    patch: list[PatchEntry] = Field(default_factory=list)
    notes: Optional[str] = None


class Finding(BaseModel):
    """A single issue reported by a model (e.g. SQL injection at line 42)."""

    id: str
    severity: Severity
    confidence: float = Field(..., ge=0, le=1)
    cwe: Optional[str] = None
    owasp: Optional[str] = None
    evidence: Evidence = Field(default_factory=Evidence)
    explanation: str = ""
    fix: Fix = Field(default_factory=Fix)

    def patch_line_hint(self) -> Optional[int]:
        """First line number mentioned by the fix patch, if any."""
        for entry in self.fix.patch:
            if entry.line is not None:
                return entry.line
        return None


class AuditFile(BaseModel):
    """The source file sent for analysis: path, language tag, raw text."""

    path: str
    language: str = "unknown"
    content: str


class SummaryCounts(BaseModel):
    total: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class Summary(BaseModel):
    file: str
    counts: SummaryCounts = Field(default_factory=SummaryCounts)


class AnalysisResult(BaseModel):
    findings: list[Finding] = Field(default_factory=list)
    summary: Summary


class ModelRunSuccess(AnalysisResult):
    ok: Literal[True] = True


class ModelRunError(BaseModel):
    ok: Literal[False] = False
    error: str


ModelRunResult = Union[ModelRunSuccess, ModelRunError]
