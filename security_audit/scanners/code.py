# Code scanner: walk the project, apply every enabled rule to each file's text.

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Sequence, Tuple

from security_audit.config import CodeScannerConfig
from security_audit.context import FileReadError, ScanContext, create_context, read_source
from security_audit.findings.models import SNIPPET_MAX_LENGTH, Confidence, SecurityFinding
from security_audit.rules.base import (
    TAG_HIGH_CONFIDENCE,
    TAG_TEST_ONLY,
    CheckRule,
    PatternRule,
    SecurityRule,
)
from security_audit.rules.registry import load_rules
from security_audit.scanners.base import AuditContext, SecurityScanner
from security_audit.traversal import find_source_files

logger = logging.getLogger(__name__)

FALSE_POSITIVE_HINTS = ("example", "test", "demo")


def line_and_column(content: str, offset: int) -> Tuple[int, int]:
    """Convert a character offset into a 1-based (line, column)."""
    line = content.count("\n", 0, offset) + 1
    line_start = content.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


def extract_snippet(lines: Sequence[str], line: int) -> str:
    """Trimmed source line, cut to SNIPPET_MAX_LENGTH characters."""
    if 1 <= line <= len(lines):
        return lines[line - 1].strip()[:SNIPPET_MAX_LENGTH]
    return ""


def compute_confidence(rule: SecurityRule, snippet: str, context: ScanContext) -> Confidence:
    """
    Confidence of a pattern match.

    high   rule tagged high-confidence
    low    test file, or the snippet looks like example/test/demo code
    medium everything else
    """
    if rule.has_tag(TAG_HIGH_CONFIDENCE):
        return Confidence.HIGH
    if context.is_test:
        return Confidence.LOW
    lowered = snippet.lower()
    if any(hint in lowered for hint in FALSE_POSITIVE_HINTS):
        return Confidence.LOW
    return Confidence.MEDIUM


def find_pattern_matches(rule: PatternRule, content: str, context: ScanContext) -> List[SecurityFinding]:
    """One finding per non-overlapping match of the rule's expression."""
    findings: List[SecurityFinding] = []
    lines = content.split("\n")
    for match in rule.compiled().finditer(content):
        line, column = line_and_column(content, match.start())
        snippet = extract_snippet(lines, line)
        findings.append(
            SecurityFinding(
                rule_id=rule.id,
                severity=rule.severity,
                message=f"{rule.name}: {rule.description}",
                file=context.relative_path,
                line=line,
                column=column,
                code=snippet,
                remediation=rule.remediation,
                confidence=compute_confidence(rule, snippet, context),
            )
        )
    return findings


class CodeScanner(SecurityScanner):
    """Pattern and heuristic scanner over source, JSON and YAML files."""

    name = "CodeScanner"

    def __init__(self, config: CodeScannerConfig) -> None:
        super().__init__()
        self.config = config
        self.rules: List[SecurityRule] = load_rules(config.rules)
        logger.debug("CodeScanner loaded %d rule(s) from %s", len(self.rules), config.rules)

    def scan(self, context: AuditContext) -> List[SecurityFinding]:
        self.errors = []
        root = Path(context.project_root).resolve()
        files = find_source_files(root, extensions=self.config.extensions, exclude=self.config.exclude)
        if not files:
            return []

        findings: List[SecurityFinding] = []
        workers = min(self.config.max_workers, len(files))
        # map() yields in submission order, so output order never depends on scheduling.
        with ThreadPoolExecutor(max_workers=workers) as executor:
            for file_findings, file_errors in executor.map(lambda p: self._scan_path(p, root), files):
                findings.extend(file_findings)
                self.errors.extend(file_errors)

        logger.info("CodeScanner scanned %d file(s), %d finding(s)", len(files), len(findings))
        return findings

    def _scan_path(self, path: Path, root: Path) -> Tuple[List[SecurityFinding], List[str]]:
        context = create_context(path, root)
        try:
            content = read_source(path, max_size=self.config.max_file_size)
        except FileReadError as e:
            logger.warning("Skipping %s: %s", context.relative_path, e)
            return [], [str(e)]
        return self.scan_content(content, context)

    def scan_content(self, content: str, context: ScanContext) -> Tuple[List[SecurityFinding], List[str]]:
        """Apply every rule to one file's text; rule failures are reported, not raised."""
        findings: List[SecurityFinding] = []
        errors: List[str] = []

        for rule in self.rules:
            if rule.has_tag(TAG_TEST_ONLY) and not context.is_test:
                continue
            try:
                if isinstance(rule, PatternRule):
                    findings.extend(find_pattern_matches(rule, content, context))
                elif isinstance(rule, CheckRule):
                    findings.extend(
                        f if f.file else f.model_copy(update={"file": context.relative_path})
                        for f in rule.run(content, context)
                    )
                else:
                    logger.debug("Rule %s has no detection mechanism", rule.id)
            except re.error as e:
                message = f"Rule {rule.id} has a malformed pattern: {e}"
                logger.warning(message)
                errors.append(message)
            except Exception as e:
                message = f"Rule {rule.id} failed on {context.relative_path}: {e}"
                logger.warning(message)
                errors.append(message)

        return findings, errors
