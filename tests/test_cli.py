"""Tests for the Typer CLI."""

import json

import pytest
from typer.testing import CliRunner

from security_audit.main import app

runner = CliRunner()

SECRET_LINE = 'const apiKey = "sk-1234567890abcdef1234567890abcdef";\n'


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "config.ts").write_text(SECRET_LINE)
    return root


@pytest.fixture
def clean_project(tmp_path):
    root = tmp_path / "clean"
    (root / "src").mkdir(parents=True)
    (root / "src" / "math.ts").write_text("export const add = (a: number, b: number) => a + b;\n")
    return root


class TestAuditCommand:
    def test_clean_project_passes(self, clean_project):
        """A clean project exits 0 with the all-clear message."""
        result = runner.invoke(app, ["audit", str(clean_project), "--format", "console"])
        assert result.exit_code == 0
        assert "No security issues found!" in result.output

    def test_failure_exits_one_after_report(self, project):
        """A failing audit prints the report, then exits 1."""
        result = runner.invoke(app, ["audit", str(project), "--format", "console"])

        assert result.exit_code == 1
        assert "OWASP-A01-001" in result.output
        assert "Security audit failed: 1 critical" in result.output

    def test_fail_on_none(self, project):
        """--fail-on none reports findings without failing."""
        result = runner.invoke(app, ["audit", str(project), "--format", "console", "--fail-on", "none"])
        assert result.exit_code == 0
        assert "OWASP-A01-001" in result.output

    def test_json_to_stdout(self, project):
        """JSON goes to stdout when no output directory is given."""
        result = runner.invoke(app, ["audit", str(project), "--format", "json", "--fail-on", "none"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["findings"][0]["rule_id"] == "OWASP-A01-001"

    def test_reports_written_to_output_dir(self, project, tmp_path):
        """Markdown and JSON reports are written to --output-dir."""
        out = tmp_path / "reports"
        result = runner.invoke(
            app,
            [
                "audit",
                str(project),
                "-f",
                "markdown",
                "-f",
                "json",
                "--output-dir",
                str(out),
                "--fail-on",
                "none",
            ],
        )

        assert result.exit_code == 0
        assert "## Recommendations" in (out / "security-audit-report.md").read_text()
        data = json.loads((out / "security-audit-report.json").read_text())
        assert data["summary"]["total"] == 1

    def test_config_file(self, project, tmp_path):
        """A YAML config file supplies policy and suppressions."""
        config = tmp_path / "audit.yml"
        config.write_text(
            "reporting:\n"
            "  failOnSeverity: critical\n"
            "suppressions:\n"
            "  - rule: OWASP-A01-001\n"
            "    reason: Fixture key used only in local demos\n"
        )
        result = runner.invoke(app, ["audit", str(project), "--config", str(config), "--format", "console"])

        assert result.exit_code == 0
        assert "OWASP-A01-001" not in result.output

    def test_invalid_config_exits_two(self, project, tmp_path):
        """An unparseable config exits 2."""
        config = tmp_path / "audit.json"
        config.write_text("{ broken")
        result = runner.invoke(app, ["audit", str(project), "--config", str(config)])

        assert result.exit_code == 2
        assert "Failed to parse config" in result.output

    def test_unknown_format(self, project):
        """An unknown report format is a usage error."""
        result = runner.invoke(app, ["audit", str(project), "--format", "pdf"])
        assert result.exit_code == 2

    def test_unknown_fail_on(self, project):
        """An unknown severity for --fail-on is a usage error."""
        result = runner.invoke(app, ["audit", str(project), "--fail-on", "catastrophic"])
        assert result.exit_code == 2


class TestValidateSuppressionsCommand:
    def test_default_suppressions_are_valid(self):
        """The built-in suppression list validates cleanly."""
        result = runner.invoke(app, ["validate-suppressions"])
        assert result.exit_code == 0
        assert "suppression(s) valid" in result.output

    def test_invalid_suppressions_exit_two(self, tmp_path):
        """Invalid suppressions are listed and exit 2."""
        config = tmp_path / "audit.json"
        config.write_text(
            json.dumps({"suppressions": [{"rule": "bad-rule", "file": "src/a.ts", "reason": "short"}]})
        )
        result = runner.invoke(app, ["validate-suppressions", "--config", str(config)])

        assert result.exit_code == 2
        assert "naming convention" in result.output
        assert "2 suppression error(s) found." in result.output


class TestRulesCommand:
    def test_lists_all_rule_sets(self):
        """The rules command lists rules from every set."""
        result = runner.invoke(app, ["rules"])

        assert result.exit_code == 0
        for rule_id in ("OWASP-A01-001", "CWE-798-001", "DMCP-SEC-006"):
            assert rule_id in result.output
