# Rich console output: severity-grouped, colorized audit report for terminals.

from __future__ import annotations

import io
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from security_audit.findings.models import SEVERITY_ORDER, SecurityFinding, Severity
from security_audit.reporting.base import Reporter

# Severity -> Rich style
SEVERITY_STYLE = {
    Severity.CRITICAL: "bold white on red",
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "bold yellow",
    Severity.LOW: "bold blue",
    Severity.INFO: "dim",
}

DEFAULT_WIDTH = 100


def severity_label(severity: Severity) -> Text:
    return Text(f" {severity.value.upper()} ", style=SEVERITY_STYLE[severity])


def _count_style(count: int) -> str:
    if count == 0:
        return "green"
    if count < 10:
        return "yellow"
    return "red"


class ConsoleReporter(Reporter):
    """
    Human-oriented report.

    generate() returns the report as a string (ANSI-colored unless color=False);
    print() writes it straight to a Rich console.
    """

    def generate(self, color: bool = True, width: int = DEFAULT_WIDTH) -> str:
        console = Console(
            file=io.StringIO(),
            record=True,
            width=width,
            force_terminal=color,
            color_system="standard" if color else None,
            highlight=False,
        )
        self._render(console)
        return console.export_text(styles=color)

    def print(self, console: Optional[Console] = None) -> None:
        self._render(console or Console(highlight=False))

    def format_summary(self) -> Table:
        """Summary table: totals plus one row per severity level."""
        summary = self.result.summary
        table = Table(show_header=False, box=box.SIMPLE, padding=(0, 1))
        table.add_column("Label")
        table.add_column("Value", justify="right")
        table.add_row("Total findings", Text(str(summary.total), style=_count_style(summary.total)))
        table.add_row("Files flagged before suppression", str(self.result.scanned_files))
        for severity in SEVERITY_ORDER:
            table.add_row(severity_label(severity), str(summary.count(severity)))
        return table

    def _render(self, console: Console) -> None:
        console.print(
            Panel(
                Text("Security Audit Report", style="bold blue"),
                box=box.ROUNDED,
                border_style="blue",
            )
        )
        console.print(Text("Summary", style="bold"))
        console.print(self.format_summary())

        if self.result.findings:
            console.print(Text("Findings", style="bold"))
            console.print()
            for severity, findings in self.result.findings_by_severity().items():
                if findings:
                    self._render_section(console, severity, findings)
        else:
            console.print(Text("No security issues found!", style="bold green"))
            console.print()

        if self.result.errors:
            console.print(Text("Errors", style="bold red"))
            for error in self.result.errors:
                console.print(Text(f"  - {error}"), soft_wrap=True)
            console.print()

        console.print(Rule(style="dim"))
        console.print(Text(f"Scan completed in {self.result.duration:.0f}ms", style="dim"))

    def _render_section(self, console: Console, severity: Severity, findings: List[SecurityFinding]) -> None:
        console.print(Text.assemble(severity_label(severity), f" ({len(findings)})"))
        console.print()
        for finding in findings:
            for line in self._format_finding(finding):
                console.print(line, soft_wrap=True)
            console.print()

    def _format_finding(self, finding: SecurityFinding) -> List[Text]:
        lines = [Text.assemble("  * ", (finding.message, "bold"))]
        if finding.file:
            lines.append(Text.assemble("    at ", (finding.location, "cyan")))
        if finding.code:
            lines.append(Text.assemble("    | ", (finding.code, "dim")))
        if finding.remediation:
            lines.append(Text.assemble("    fix: ", (finding.remediation, "yellow")))
        lines.append(
            Text.assemble(
                "    ",
                (finding.rule_id, "dim"),
                f" ({finding.confidence.value} confidence)",
            )
        )
        return lines
