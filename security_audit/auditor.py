"""
Audit orchestration: run the enabled scanners, drop suppressed findings, rank
what is left and decide whether the result should fail the build.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import List, Optional

from security_audit.config import SecurityAuditConfig, get_default_config
from security_audit.findings.models import (
    SEVERITY_ORDER,
    ScanResult,
    ScanSummary,
    SecurityFinding,
    Severity,
)
from security_audit.scanners.base import AuditContext, SecurityScanner
from security_audit.scanners.code import CodeScanner
from security_audit.scanners.configuration import ConfigurationScanner
from security_audit.scanners.dependencies import DependencyScanner
from security_audit.suppressions import SuppressionMatcher

logger = logging.getLogger(__name__)

_SEVERITY_POSITION = {severity: index for index, severity in enumerate(SEVERITY_ORDER)}


class SecurityAuditError(RuntimeError):
    """
    The audit completed but its findings meet the build-failure threshold.

    The full ScanResult is attached so callers can still render reports.
    """

    def __init__(self, message: str, result: ScanResult) -> None:
        super().__init__(message)
        self.result = result


def finding_sort_key(finding: SecurityFinding) -> tuple:
    """Most severe first, then by file, line and column."""
    return (
        _SEVERITY_POSITION[finding.severity],
        finding.file or "",
        finding.line or 0,
        finding.column or 0,
        finding.rule_id,
    )


def count_affected_files(findings: List[SecurityFinding]) -> int:
    return len({f.file for f in findings if f.file})


class SecurityAuditor:
    """Run a configured security audit over a project tree."""

    def __init__(self, config: SecurityAuditConfig) -> None:
        self.config = config
        self.scanners: List[SecurityScanner] = self._initialize_scanners()
        self.matcher = SuppressionMatcher(config.suppressions)
        logger.info("SecurityAuditor: initialized %d security scanner(s)", len(self.scanners))

    @staticmethod
    def get_default_config() -> SecurityAuditConfig:
        return get_default_config()

    def _initialize_scanners(self) -> List[SecurityScanner]:
        scanners: List[SecurityScanner] = []
        scanner_config = self.config.scanners
        if scanner_config.code.enabled:
            scanners.append(CodeScanner(scanner_config.code))
        if scanner_config.dependencies.enabled:
            scanners.append(DependencyScanner(scanner_config.dependencies))
        if scanner_config.configuration.enabled:
            scanners.append(ConfigurationScanner(scanner_config.configuration))
        return scanners

    def audit(self, project_root: Optional[str | Path] = None) -> ScanResult:
        """
        Audit ``project_root`` (default: the current directory).

        Raises:
            SecurityAuditError: if should_fail_build() says the findings are
                severe enough; the exception carries the result.
        """
        root = Path(project_root if project_root is not None else os.getcwd()).resolve()
        start = time.perf_counter()

        if not self.config.enabled:
            logger.info("SecurityAuditor: auditing is disabled, skipping %s", root)
            return ScanResult(duration=_elapsed_ms(start))

        logger.info("SecurityAuditor: starting security audit of %s", root)
        self.matcher.project_root = root
        context = AuditContext(project_root=root)

        raw_findings: List[SecurityFinding] = []
        errors: List[str] = []
        for scanner in self.scanners:
            try:
                raw_findings.extend(scanner.scan(context))
            except Exception as e:
                message = f"Scanner {scanner.name} failed: {e}"
                logger.error("SecurityAuditor: %s", message)
                errors.append(message)
            for error in scanner.errors:
                if error not in errors:
                    errors.append(error)

        findings = sorted(self.filter_suppressed(raw_findings), key=finding_sort_key)
        result = ScanResult(
            findings=findings,
            summary=ScanSummary.from_findings(findings),
            scanned_files=count_affected_files(raw_findings),
            duration=_elapsed_ms(start),
            errors=errors,
        )

        logger.info(
            "SecurityAuditor: audit completed: %d finding(s) (%d suppressed) in %.1fms",
            result.summary.total,
            len(raw_findings) - len(findings),
            result.duration,
        )

        if self.should_fail_build(result):
            summary = result.summary
            raise SecurityAuditError(
                f"Security audit failed: {summary.count(Severity.CRITICAL)} critical, "
                f"{summary.count(Severity.HIGH)} high severity issues found",
                result,
            )
        return result

    def filter_suppressed(self, findings: List[SecurityFinding]) -> List[SecurityFinding]:
        return [f for f in findings if not self.matcher.should_suppress(f.rule_id, f.file)]

    def should_fail_build(self, result: ScanResult) -> bool:
        """
        True if any finding is at or above ``reporting.fail_on_severity``.

        Override to plug in a different policy.
        """
        threshold = self.config.reporting.fail_on_severity
        if threshold is None:
            return False
        return any(f.severity.rank >= threshold.rank for f in result.findings)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0
