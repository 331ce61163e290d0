"""Tests for SecurityAuditor: scanner orchestration, suppression, ordering and build policy."""

from pathlib import Path
from typing import List

import pytest

from security_audit.auditor import (
    SecurityAuditError,
    SecurityAuditor,
    count_affected_files,
    finding_sort_key,
)
from security_audit.config import SecurityAuditConfig, get_default_config
from security_audit.findings.models import ScanResult, SecurityFinding, Severity
from security_audit.scanners.base import AuditContext, SecurityScanner
from security_audit.scanners.code import CodeScanner
from security_audit.suppressions import Suppression

SECRET_LINE = 'const apiKey = "sk-1234567890abcdef1234567890abcdef";\n'


def _write(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def _config(fail_on=None, suppressions=(), rules=("OWASP-Top-10",)) -> SecurityAuditConfig:
    config = SecurityAuditConfig(suppressions=list(suppressions))
    config.scanners.code.rules = list(rules)
    config.scanners.dependencies.enabled = False
    config.scanners.configuration.enabled = False
    config.reporting.fail_on_severity = fail_on
    return config


class BrokenScanner(SecurityScanner):
    name = "BrokenScanner"

    def scan(self, context: AuditContext) -> List[SecurityFinding]:
        raise RuntimeError("kaboom")


class LenientAuditor(SecurityAuditor):
    def should_fail_build(self, result: ScanResult) -> bool:
        return False


@pytest.fixture
def secret_project(tmp_path):
    _write(tmp_path, "src/config.ts", SECRET_LINE)
    return tmp_path


class TestScenarios:
    def test_hardcoded_secret(self, secret_project):
        """The default rule sets flag the secret as a critical OWASP-A01-001 finding."""
        config = get_default_config()
        config.reporting.fail_on_severity = None
        result = SecurityAuditor(config).audit(secret_project)

        secrets = [f for f in result.findings if f.rule_id == "OWASP-A01-001"]
        assert len(secrets) >= 1
        assert secrets[0].severity == Severity.CRITICAL
        assert secrets[0].file == "src/config.ts"

    def test_suppressed_secret(self, secret_project):
        """A suppressed secret is dropped and the build passes."""
        suppression = Suppression(rule="OWASP-A01-001", file="*", reason="Fixture key used only in local demos")
        result = SecurityAuditor(_config(suppressions=[suppression])).audit(secret_project)

        assert [f for f in result.findings if f.rule_id == "OWASP-A01-001"] == []

    def test_build_failure(self, secret_project):
        """A critical finding at a high threshold raises SecurityAuditError."""
        config = get_default_config()
        config.reporting.fail_on_severity = Severity.CRITICAL

        with pytest.raises(SecurityAuditError, match=r"Security audit failed: 1 critical, 0 high severity issues found"):
            SecurityAuditor(config).audit(secret_project)

    def test_failure_carries_result(self, secret_project):
        """The raised error exposes the full scan result."""
        with pytest.raises(SecurityAuditError) as excinfo:
            SecurityAuditor(_config(fail_on=Severity.CRITICAL)).audit(secret_project)

        result = excinfo.value.result
        assert result.summary.count(Severity.CRITICAL) == 1
        assert result.findings[0].rule_id == "OWASP-A01-001"

    def test_unset_threshold_never_fails(self, secret_project):
        """Without a threshold the build never fails."""
        result = SecurityAuditor(_config(fail_on=None)).audit(secret_project)
        assert result.summary.count(Severity.CRITICAL) == 1

    def test_overridden_policy(self, secret_project):
        """Subclasses can replace the build-failure policy."""
        result = LenientAuditor(_config(fail_on=Severity.CRITICAL)).audit(secret_project)
        assert result.summary.total == 1

    def test_empty_tree(self, tmp_path):
        """An empty project yields an empty, passing result."""
        result = SecurityAuditor(_config()).audit(tmp_path)

        assert result.findings == []
        assert result.summary.total == 0
        assert result.duration >= 0
        assert result.scanned_files == 0


class TestPolicy:
    @pytest.mark.parametrize(
        "threshold, expected",
        [
            (Severity.CRITICAL, False),
            (Severity.HIGH, True),
            (Severity.LOW, True),
            (None, False),
        ],
    )
    def test_threshold_comparison(self, threshold, expected):
        """Findings below the threshold do not fail the build."""
        auditor = SecurityAuditor(_config(fail_on=threshold))
        result = ScanResult(
            findings=[SecurityFinding(rule_id="OWASP-A07-001", severity=Severity.HIGH, message="m")]
        )
        assert auditor.should_fail_build(result) is expected

    def test_high_threshold_includes_critical(self, secret_project):
        """A high threshold also trips on critical findings."""
        with pytest.raises(SecurityAuditError):
            SecurityAuditor(_config(fail_on=Severity.HIGH)).audit(secret_project)


class TestAggregation:
    def test_findings_sorted_by_severity_then_location(self, tmp_path):
        """Findings come back by severity, then file and line."""
        _write(tmp_path, "src/a.ts", "const h = md5(x);\n")
        _write(tmp_path, "src/b.ts", "const h = sha1(y);\n" + SECRET_LINE)
        result = SecurityAuditor(_config()).audit(tmp_path)

        assert [(f.rule_id, f.file, f.line) for f in result.findings] == [
            ("OWASP-A01-001", "src/b.ts", 2),
            ("OWASP-A07-001", "src/a.ts", 1),
            ("OWASP-A07-001", "src/b.ts", 1),
        ]

    def test_summary_counts(self, tmp_path):
        """Summary counts cover every severity and category."""
        _write(tmp_path, "src/a.ts", "const h = md5(x);\n")
        _write(tmp_path, "src/b.ts", SECRET_LINE)
        result = SecurityAuditor(_config()).audit(tmp_path)

        assert result.summary.total == 2
        assert result.summary.count(Severity.CRITICAL) == 1
        assert result.summary.count(Severity.HIGH) == 1
        assert result.summary.count(Severity.MEDIUM) == 0
        assert result.summary.by_category == {"A01": 1, "A07": 1}
        assert result.scanned_files == 2

    def test_suppressed_files_still_count(self, tmp_path):
        """Files are counted before suppressions are applied."""
        _write(tmp_path, "src/a.ts", "const h = md5(x);\n")
        _write(tmp_path, "src/b.ts", SECRET_LINE)
        suppression = Suppression(rule="*", file="src/b.ts", reason="Generated fixture, never shipped")
        result = SecurityAuditor(_config(suppressions=[suppression])).audit(tmp_path)

        assert result.scanned_files == 2
        assert [f.file for f in result.findings] == ["src/a.ts"]
        assert result.summary.total == 1

    def test_fully_suppressed_tree_still_counts_files(self, tmp_path):
        """Suppressing every finding leaves the flagged file count intact."""
        _write(tmp_path, "src/b.ts", SECRET_LINE)
        suppression = Suppression(rule="*", file="*", reason="Everything here is a demo fixture")
        result = SecurityAuditor(_config(suppressions=[suppression])).audit(tmp_path)

        assert result.findings == []
        assert result.scanned_files == 1

    def test_sort_key_and_file_count(self):
        """Test the sort key and distinct file counting helpers."""
        low = SecurityFinding(rule_id="X-1", severity=Severity.LOW, message="m", file="a.ts", line=1)
        crit = SecurityFinding(rule_id="X-2", severity=Severity.CRITICAL, message="m", file="z.ts", line=9)
        assert sorted([low, crit], key=finding_sort_key) == [crit, low]
        assert count_affected_files([low, crit, low]) == 2


class TestOrchestration:
    def test_disabled_audit_returns_empty_result(self, secret_project):
        """A disabled audit skips scanning entirely."""
        config = _config(fail_on=Severity.INFO)
        config.enabled = False
        result = SecurityAuditor(config).audit(secret_project)

        assert result.findings == []
        assert result.summary.total == 0

    def test_scanner_selection(self):
        """Only enabled scanners are constructed."""
        config = get_default_config()
        assert [s.name for s in SecurityAuditor(config).scanners] == [
            "CodeScanner",
            "DependencyScanner",
            "ConfigurationScanner",
        ]

        config.scanners.dependencies.enabled = False
        config.scanners.configuration.enabled = False
        scanners = SecurityAuditor(config).scanners
        assert len(scanners) == 1
        assert isinstance(scanners[0], CodeScanner)

    def test_scanner_exception_is_recorded(self, secret_project):
        """A scanner that raises is recorded and the audit continues."""
        auditor = SecurityAuditor(_config())
        auditor.scanners.append(BrokenScanner())
        result = auditor.audit(secret_project)

        assert result.summary.total == 1
        assert result.errors == ["Scanner BrokenScanner failed: kaboom"]

    def test_file_errors_are_collected(self, tmp_path):
        """Per-file read errors surface in the result."""
        config = _config()
        config.scanners.code.max_file_size = 10
        _write(tmp_path, "src/big.ts", SECRET_LINE)
        result = SecurityAuditor(config).audit(tmp_path)

        assert result.findings == []
        assert len(result.errors) == 1
        assert "exceeds limit" in result.errors[0]

    def test_default_config_via_class(self):
        """The auditor exposes the default configuration."""
        config = SecurityAuditor.get_default_config()
        assert config.reporting.fail_on_severity == Severity.HIGH
        assert len(config.suppressions) > 0
