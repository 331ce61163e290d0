# Pydantic data models for audit results: Severity, Confidence, SecurityFinding, ScanResult.

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

SNIPPET_MAX_LENGTH = 100


class Severity(str, Enum):
    """Ordinal risk level of a finding."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Integer ranking used by the build-failure policy (info=0 .. critical=4)."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

# Reporting order, most severe first.
SEVERITY_ORDER: tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
    Severity.INFO,
)


class Confidence(str, Enum):
    """How sure the engine is that a finding is a true positive."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SecurityFinding(BaseModel):
    """A single issue reported by a rule (e.g. hardcoded secret at line 42)."""

    rule_id: str
    severity: Severity
    message: str
    file: Optional[str] = None
    line: Optional[int] = Field(None, ge=1, description="1-based line number")
    column: Optional[int] = Field(None, ge=1, description="1-based column number")
    code: Optional[str] = Field(None, max_length=SNIPPET_MAX_LENGTH)
    remediation: str = ""
    confidence: Confidence = Confidence.MEDIUM

    model_config = {"frozen": True}

    @property
    def location(self) -> str:
        """Return ``file:line`` (or just the file) for display."""
        if self.file is None:
            return ""
        if self.line is not None:
            return f"{self.file}:{self.line}"
        return self.file


def _zero_filled() -> Dict[Severity, int]:
    return {severity: 0 for severity in SEVERITY_ORDER}


def category_of(rule_id: str) -> str:
    """Return the category token of a rule id (``OWASP-A03-001`` -> ``A03``)."""
    parts = rule_id.split("-")
    if len(parts) > 1 and parts[1]:
        return parts[1]
    return "OTHER"


class ScanSummary(BaseModel):
    """Aggregate finding counts."""

    total: int = 0
    by_severity: Dict[Severity, int] = Field(default_factory=_zero_filled)
    by_category: Dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_findings(cls, findings: Iterable[SecurityFinding]) -> "ScanSummary":
        by_severity = _zero_filled()
        by_category: Dict[str, int] = {}
        total = 0
        for finding in findings:
            total += 1
            by_severity[finding.severity] += 1
            category = category_of(finding.rule_id)
            by_category[category] = by_category.get(category, 0) + 1
        return cls(total=total, by_severity=by_severity, by_category=by_category)

    def count(self, severity: Severity) -> int:
        return self.by_severity.get(severity, 0)


class ScanResult(BaseModel):
    """Outcome of one audit: surviving findings plus summary and non-fatal errors."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    findings: List[SecurityFinding] = Field(default_factory=list)
    summary: ScanSummary = Field(default_factory=ScanSummary)
    scanned_files: int = Field(0, ge=0, description="Distinct files with at least one finding before suppression")
    duration: float = Field(0.0, ge=0, description="Wall-clock duration in milliseconds")
    errors: List[str] = Field(default_factory=list)

    def findings_by_severity(self) -> Dict[Severity, List[SecurityFinding]]:
        """Group findings by severity, in ``SEVERITY_ORDER``."""
        grouped: Dict[Severity, List[SecurityFinding]] = {s: [] for s in SEVERITY_ORDER}
        for finding in self.findings:
            grouped[finding.severity].append(finding)
        return grouped
