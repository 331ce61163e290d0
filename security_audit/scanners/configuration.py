# Configuration scanner: insecure settings in root-level config files
# (debug mode left on, wildcard CORS, TLS verification disabled).

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

from security_audit.config import ConfigurationScannerConfig
from security_audit.context import FileReadError, create_context, read_source
from security_audit.findings.models import SecurityFinding, Severity
from security_audit.globs import compile_glob
from security_audit.rules.base import PatternRule
from security_audit.scanners.base import AuditContext, SecurityScanner
from security_audit.scanners.code import find_pattern_matches

logger = logging.getLogger(__name__)

CONFIGURATION_RULES: List[PatternRule] = [
    PatternRule(
        id="CFG-SEC-001",
        name="Debug Mode Enabled",
        description="Debug mode is enabled in configuration",
        severity=Severity.MEDIUM,
        category="configuration",
        pattern=r"^\s*[\"']?debug[\"']?\s*[:=]\s*[\"']?(?:true|1|yes|on)\b",
        flags=re.IGNORECASE | re.MULTILINE,
        remediation="Disable debug mode outside local development",
    ),
    PatternRule(
        id="CFG-SEC-002",
        name="Wildcard CORS Origin",
        description="CORS allows requests from any origin",
        severity=Severity.MEDIUM,
        category="configuration",
        pattern=(
            r"(?:cors|origin|allow[_-]?origins?|Access-Control-Allow-Origin)[\"']?"
            r"\s*[:=]\s*\[?\s*[\"']\*[\"']"
        ),
        flags=re.IGNORECASE,
        remediation="Restrict allowed origins to the hosts that need access",
    ),
    PatternRule(
        id="CFG-SEC-003",
        name="TLS Verification Disabled",
        description="TLS certificate verification is turned off",
        severity=Severity.HIGH,
        category="configuration",
        pattern=(
            r"(?:ssl[_-]?verify|verify[_-]?ssl|tls[_-]?verify|rejectUnauthorized|strictSSL)[\"']?"
            r"\s*[:=]\s*[\"']?(?:false|0|no|off)\b"
        ),
        flags=re.IGNORECASE,
        remediation="Keep certificate verification enabled; trust a private CA instead of disabling checks",
    ),
]


class ConfigurationScanner(SecurityScanner):
    name = "ConfigurationScanner"

    def __init__(self, config: ConfigurationScannerConfig) -> None:
        super().__init__()
        self.config = config

    def _candidate_files(self, root: Path) -> List[Path]:
        patterns = [compile_glob(p) for p in self.config.check_files]
        try:
            entries = sorted(root.iterdir(), key=lambda p: p.name)
        except OSError as e:
            self.errors.append(f"Failed to list {root}: {e}")
            return []
        return [p for p in entries if p.is_file() and any(rx.match(p.name) for rx in patterns)]

    def scan(self, context: AuditContext) -> List[SecurityFinding]:
        self.errors = []
        root = Path(context.project_root).resolve()
        findings: List[SecurityFinding] = []

        for path in self._candidate_files(root):
            file_context = create_context(path, root)
            try:
                content = read_source(path)
            except FileReadError as e:
                logger.warning("Skipping %s: %s", file_context.relative_path, e)
                self.errors.append(str(e))
                continue
            for rule in CONFIGURATION_RULES:
                findings.extend(find_pattern_matches(rule, content, file_context))

        logger.info("ConfigurationScanner: %d finding(s)", len(findings))
        return findings
