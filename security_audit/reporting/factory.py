# Map report format names to reporter classes.

from __future__ import annotations

from typing import Dict, Type

from security_audit.findings.models import ScanResult
from security_audit.reporting.base import Reporter
from security_audit.reporting.console import ConsoleReporter
from security_audit.reporting.json_report import JsonReporter
from security_audit.reporting.markdown import MarkdownReporter

REPORTERS: Dict[str, Type[Reporter]] = {
    "console": ConsoleReporter,
    "markdown": MarkdownReporter,
    "json": JsonReporter,
}

# File extension written by the CLI for each non-console format
REPORT_EXTENSIONS = {
    "markdown": "md",
    "json": "json",
}


def get_reporter(format_name: str, result: ScanResult) -> Reporter:
    try:
        reporter_cls = REPORTERS[format_name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown report format {format_name!r} (expected one of: {', '.join(REPORTERS)})"
        ) from None
    return reporter_cls(result)
