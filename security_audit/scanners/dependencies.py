# Dependency scanner: unpinned dependency versions and disallowed licenses in package.json.

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from security_audit.config import DependencyScannerConfig
from security_audit.findings.models import Confidence, SecurityFinding, Severity
from security_audit.scanners.base import AuditContext, SecurityScanner

logger = logging.getLogger(__name__)

MANIFEST = "package.json"
DEPENDENCY_SECTIONS = ("dependencies", "devDependencies", "optionalDependencies", "peerDependencies")

_WILDCARD_VERSIONS = {"", "*", "x", "latest"}
_OPEN_RANGE = re.compile(r"^\s*>=?\s*[\w.\-]+\s*$")


def version_risk(spec: str) -> Optional[Severity]:
    """
    Severity of a version spec that accepts any future release, or None.

    ``*``, ``x``, ``latest`` or an empty string accept anything (high); a bare
    lower bound such as ``>=1.2.0`` accepts every later major (medium). Caret and
    tilde ranges, exact versions, URLs and tags are fine.
    """
    value = spec.strip().lower()
    if value in _WILDCARD_VERSIONS:
        return Severity.HIGH
    if _OPEN_RANGE.match(value):
        return Severity.MEDIUM
    return None


class DependencyScanner(SecurityScanner):
    name = "DependencyScanner"

    def __init__(self, config: DependencyScannerConfig) -> None:
        super().__init__()
        self.config = config

    def scan(self, context: AuditContext) -> List[SecurityFinding]:
        self.errors = []
        manifest_path = Path(context.project_root) / MANIFEST
        manifest = self._load_manifest(manifest_path)
        if manifest is None:
            return []

        findings: List[SecurityFinding] = []
        for section in DEPENDENCY_SECTIONS:
            deps = manifest.get(section) or {}
            if not isinstance(deps, dict):
                continue
            for package, version in deps.items():
                if not isinstance(version, str):
                    continue
                risk = version_risk(version)
                if risk is not None:
                    findings.append(
                        SecurityFinding(
                            rule_id="DEP-VER-001",
                            severity=risk,
                            message=f"Unpinned dependency: {package}@{version or '<empty>'} in {section}",
                            file=MANIFEST,
                            remediation="Pin dependencies to a version range with an upper bound (e.g. ^1.2.3)",
                            confidence=Confidence.HIGH,
                        )
                    )

        if self.config.check_licenses:
            license_name = manifest.get("license")
            if isinstance(license_name, str) and license_name not in self.config.allowed_licenses:
                findings.append(
                    SecurityFinding(
                        rule_id="DEP-LIC-001",
                        severity=Severity.LOW,
                        message=f"Project license '{license_name}' is not in the allowed list",
                        file=MANIFEST,
                        remediation="Use an approved license or extend allowed_licenses deliberately",
                        confidence=Confidence.HIGH,
                    )
                )

        threshold = self.config.severity_threshold.rank
        kept = [f for f in findings if f.severity.rank >= threshold]
        logger.info(
            "DependencyScanner: %d finding(s), %d at or above %s",
            len(findings),
            len(kept),
            self.config.severity_threshold.value,
        )
        return kept

    def _load_manifest(self, path: Path) -> Optional[Dict[str, Any]]:
        if not path.is_file():
            logger.debug("No %s at %s", MANIFEST, path.parent)
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            message = f"Failed to parse {MANIFEST}: {e}"
            logger.warning(message)
            self.errors.append(message)
            return None
        if not isinstance(data, dict):
            self.errors.append(f"{MANIFEST} is not a JSON object")
            return None
        return data
