# Markdown report, suitable for committing, attaching to CI runs or posting on a PR.

from __future__ import annotations

import re
from typing import List

from security_audit.findings.models import SEVERITY_ORDER, SecurityFinding, Severity
from security_audit.reporting.base import Reporter
from security_audit.rules.registry import get_rule

SEVERITY_HEADING = {
    Severity.CRITICAL: "Critical",
    Severity.HIGH: "High",
    Severity.MEDIUM: "Medium",
    Severity.LOW: "Low",
    Severity.INFO: "Info",
}

_BACKTICK_RUN = re.compile(r"`+")

RECOMMENDATIONS = [
    "Fix critical and high severity findings before merging",
    "Keep secrets in environment variables or a secrets manager, never in source",
    "Validate and normalize all user input at the boundary",
    "Record every suppression with a specific, reviewable reason",
    "Re-run the audit after dependency or configuration changes",
]


def code_fence(code: str) -> str:
    """A backtick fence longer than any backtick run inside ``code``."""
    longest = max((len(run) for run in _BACKTICK_RUN.findall(code)), default=0)
    return "`" * max(3, longest + 1)


class MarkdownReporter(Reporter):
    def generate(self) -> str:
        lines: List[str] = ["# Security Audit Report", ""]
        lines.append(f"Generated: {self.result.timestamp.isoformat()}")
        lines.append("")
        lines.extend(self._summary_section())

        if self.result.findings:
            lines.append("## Findings")
            lines.append("")
            for severity, findings in self.result.findings_by_severity().items():
                if findings:
                    lines.extend(self._severity_section(severity, findings))
        else:
            lines.append("No security issues found!")
            lines.append("")

        if self.result.errors:
            lines.append("## Errors")
            lines.append("")
            lines.extend(f"- {error}" for error in self.result.errors)
            lines.append("")

        lines.append("## Recommendations")
        lines.append("")
        lines.extend(f"{i}. {text}" for i, text in enumerate(RECOMMENDATIONS, start=1))
        lines.append("")
        return "\n".join(lines)

    def _summary_section(self) -> List[str]:
        summary = self.result.summary
        lines = [
            "## Summary",
            "",
            "| Severity | Count |",
            "|----------|-------|",
        ]
        for severity in SEVERITY_ORDER:
            lines.append(f"| {SEVERITY_HEADING[severity]} | {summary.count(severity)} |")
        lines.append(f"| **Total** | **{summary.total}** |")
        lines.append("")
        lines.append(f"- Files flagged before suppression: {self.result.scanned_files}")
        lines.append(f"- Scan duration: {self.result.duration:.0f}ms")
        lines.append("")
        return lines

    def _severity_section(self, severity: Severity, findings: List[SecurityFinding]) -> List[str]:
        lines = [f"### {SEVERITY_HEADING[severity]} ({len(findings)})", ""]
        for finding in findings:
            lines.extend(self._format_finding(finding))
        return lines

    def _format_finding(self, finding: SecurityFinding) -> List[str]:
        lines = [f"#### {finding.rule_id}: {finding.message}", ""]
        if finding.file:
            lines.append(f"- **File:** `{finding.file}`")
        if finding.line is not None:
            lines.append(f"- **Line:** {finding.line}")
        lines.append(f"- **Confidence:** {finding.confidence.value}")
        if finding.remediation:
            lines.append(f"- **Remediation:** {finding.remediation}")

        rule = get_rule(finding.rule_id)
        if rule is not None and rule.references:
            lines.append("- **References:** " + ", ".join(rule.references))

        if finding.code:
            fence = code_fence(finding.code)
            lines.extend(["", fence, finding.code, fence])
        lines.append("")
        return lines
