from __future__ import annotations

"""
Typer CLI for the security audit.

Commands:
- audit: scan a project tree, print the console report, optionally write
  Markdown/JSON reports, and exit non-zero when the build-failure policy trips
- validate-suppressions: check the configured suppression list
- rules: list the rules of every registered rule set

The engine never writes files; this module is the only place reports reach disk.
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from security_audit.auditor import SecurityAuditError, SecurityAuditor
from security_audit.config import REPORT_FORMATS, ConfigError, SecurityAuditConfig, get_default_config, load_config
from security_audit.findings.models import ScanResult, Severity
from security_audit.reporting.console import ConsoleReporter, severity_label
from security_audit.reporting.factory import REPORT_EXTENSIONS, get_reporter
from security_audit.rules.base import CheckRule
from security_audit.rules.registry import RULE_SETS
from security_audit.suppressions import SuppressionMatcher

logger = logging.getLogger(__name__)

app = typer.Typer(help="Security audit - pattern-based static security scanner for source trees.")

REPORT_BASENAME = "security-audit-report"

EXIT_AUDIT_FAILED = 1
EXIT_INVALID_CONFIG = 2


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(config_path: Optional[Path]) -> SecurityAuditConfig:
    if config_path is None:
        return get_default_config()
    try:
        return load_config(config_path)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=EXIT_INVALID_CONFIG)


def _parse_fail_on(value: str) -> Optional[Severity]:
    normalized = value.strip().lower()
    if normalized == "none":
        return None
    try:
        return Severity(normalized)
    except ValueError:
        choices = ", ".join([s.value for s in Severity] + ["none"])
        raise typer.BadParameter(f"expected one of: {choices}", param_hint="--fail-on") from None


def _write_reports(result: ScanResult, formats: List[str], output_dir: Optional[Path]) -> None:
    """Write file-based formats to output_dir, or echo them to stdout without one."""
    for fmt in formats:
        if fmt == "console":
            continue
        text = get_reporter(fmt, result).generate()
        if output_dir is None:
            typer.echo(text)
            continue
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / f"{REPORT_BASENAME}.{REPORT_EXTENSIONS[fmt]}"
        path.write_text(text, encoding="utf-8")
        typer.echo(f"Wrote {fmt} report to {path}")


@app.command()
def audit(
    root: Path = typer.Argument(
        Path("."),
        exists=True,
        file_okay=False,
        resolve_path=True,
        help="Project root to audit.",
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="JSON or YAML audit config."
    ),
    formats: Optional[List[str]] = typer.Option(
        None, "--format", "-f", help="Report format (console, markdown, json); repeatable."
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", file_okay=False, help="Directory for Markdown/JSON reports."
    ),
    fail_on: Optional[str] = typer.Option(
        None, "--fail-on", help="Fail on findings at or above this severity (or 'none')."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """
    Audit a project tree.

    Exits 1 when findings meet the build-failure threshold; the console report
    is still printed first.
    """
    setup_logging(verbose)
    config = _load(config_path)
    logger.debug("Auditing %s (config: %s)", root, config_path or "defaults")

    if fail_on is not None:
        config.reporting.fail_on_severity = _parse_fail_on(fail_on)

    selected = list(formats) if formats else list(config.reporting.formats)
    unknown = [fmt for fmt in selected if fmt not in REPORT_FORMATS]
    if unknown:
        raise typer.BadParameter(
            f"unknown format(s): {', '.join(unknown)}; expected {', '.join(REPORT_FORMATS)}",
            param_hint="--format",
        )

    failure: Optional[str] = None
    try:
        result = SecurityAuditor(config).audit(root)
    except SecurityAuditError as e:
        result = e.result
        failure = str(e)

    if "console" in selected:
        ConsoleReporter(result).print(Console(highlight=False))
    _write_reports(result, selected, output_dir)

    if failure is not None:
        typer.echo(failure, err=True)
        raise typer.Exit(code=EXIT_AUDIT_FAILED)


@app.command("validate-suppressions")
def validate_suppressions(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="JSON or YAML audit config."
    ),
) -> None:
    """Check the configured suppression list for malformed or duplicate entries."""
    config = _load(config_path)
    matcher = SuppressionMatcher(config.suppressions)
    errors = matcher.validate()

    if errors:
        for error in errors:
            typer.echo(error, err=True)
        typer.echo(f"{len(errors)} suppression error(s) found.", err=True)
        raise typer.Exit(code=EXIT_INVALID_CONFIG)

    stats = matcher.stats()
    typer.echo(f"{stats.total} suppression(s) valid.")
    for category, count in sorted(stats.by_category.items()):
        typer.echo(f"  {category}: {count}")


@app.command()
def rules() -> None:
    """List every rule in the registered rule sets."""
    table = Table(title="Security rules")
    table.add_column("ID", style="bold", no_wrap=True)
    table.add_column("Set")
    table.add_column("Severity")
    table.add_column("Kind")
    table.add_column("Name")

    for set_name, loader in RULE_SETS.items():
        for rule in loader():
            kind = "check" if isinstance(rule, CheckRule) else "pattern"
            table.add_row(rule.id, set_name, severity_label(rule.severity), kind, rule.name)

    Console(highlight=False).print(table)


def main() -> None:
    """Entry point for `python -m security_audit.main` and the security-audit script."""
    app()


if __name__ == "__main__":
    main()
