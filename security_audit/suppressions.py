"""
Suppressions: configured exceptions that drop known false positives from a report.

A suppression names a rule id (or ``*`` for every rule) and a file, which is an
exact project-relative path, a glob (``*`` within a segment, ``**`` across
segments) or ``*`` for every file. Every suppression carries a reason so the
exception list documents itself.

Matching is done by SuppressionMatcher, which normalizes incoming paths so the
same finding is suppressed regardless of platform separators or the absolute
location of the checkout, and caches answers per ``(rule_id, file_path)``.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from security_audit.globs import compile_glob, glob_problem, is_glob

logger = logging.getLogger(__name__)

WILDCARD = "*"

MIN_REASON_LENGTH = 10

RULE_ID_PATTERN = re.compile(r"^(DMCP-SEC-\d{3}|(?:DEP|CFG)-[A-Z]{3}-\d{3}|OWASP-[A-Z]\d{2}-\d{3}|CWE-\d+-\d{3}|\*)$")

# Top-level project directories. An absolute path is cut just before the first of
# these so /home/runner/work/x/x/src/a.ts and C:\work\x\src\a.ts both become src/a.ts.
DEFAULT_ROOT_MARKERS: Tuple[str, ...] = (
    "src",
    "__tests__",
    "tests",
    "test",
    "scripts",
    "lib",
    "docs",
)

_SLASH_RUNS = re.compile(r"/{2,}")
_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:/")


class Suppression(BaseModel):
    """One exception: which rule, which file(s), and why."""

    rule: str
    file: str = WILDCARD
    reason: str

    model_config = {"frozen": True}


class SuppressionStats(BaseModel):
    total: int
    by_rule: Dict[str, int] = Field(default_factory=dict)
    by_category: Dict[str, int] = Field(default_factory=dict)


def _entry(rule: str, file: str, reason: str) -> Suppression:
    return Suppression(rule=rule, file=file, reason=reason)


DEFAULT_SUPPRESSIONS: List[Suppression] = [
    # SQL injection false positives
    _entry(
        "CWE-89-001",
        "src/update/UpdateManager.ts",
        'False positive - "Update Failed" is a UI message, not SQL. The codebase does not use SQL.',
    ),
    # Test files
    _entry("*", "__tests__/**/*", "Test files may contain intentional security patterns for testing"),
    _entry("*", "**/*.test.ts", "Test files may contain intentional security patterns for testing"),
    _entry("*", "**/*.spec.ts", "Test files may contain intentional security patterns for testing"),
    # YAML parsing
    _entry(
        "DMCP-SEC-005",
        "src/security/yamlValidator.ts",
        "YamlValidator is the security validation layer itself - it needs direct yaml.load access",
    ),
    _entry(
        "DMCP-SEC-005",
        "src/security/secureYamlParser.ts",
        "SecureYamlParser is the security wrapper that validates YAML before parsing",
    ),
    # Rule definition files
    _entry(
        "OWASP-A03-004",
        "src/security/audit/rules/SecurityRules.ts",
        "This is a regex pattern definition for detecting innerHTML usage, not actual usage",
    ),
    # Persona loading
    _entry(
        "DMCP-SEC-001",
        "src/persona/PersonaLoader.ts",
        "PersonaLoader validates personas through SecureYamlParser and ContentValidator",
    ),
    # Unicode normalization
    _entry("DMCP-SEC-004", "src/types/*.ts", "Type definition files do not process user input"),
    _entry("DMCP-SEC-004", "src/errors/*.ts", "Error classes do not process user input"),
    _entry("DMCP-SEC-004", "src/config/*.ts", "Configuration files do not process user input directly"),
    _entry("DMCP-SEC-004", "src/constants/*.ts", "Constant definition files do not process user input"),
    _entry(
        "DMCP-SEC-004",
        "src/utils/*.ts",
        "Utility functions receive already-normalized input from ServerSetup",
    ),
    _entry("DMCP-SEC-004", "src/cache/*.ts", "Cache layer receives already-normalized input"),
    _entry(
        "DMCP-SEC-004",
        "src/security/**/*.ts",
        "Security modules handle validation and normalization themselves",
    ),
    _entry(
        "DMCP-SEC-004",
        "src/index.ts",
        "Main entry point delegates to ServerSetup which normalizes all inputs",
    ),
    _entry(
        "DMCP-SEC-004",
        "src/server/ServerSetup.ts",
        "This is where Unicode normalization is implemented for all tool inputs",
    ),
    _entry(
        "DMCP-SEC-004",
        "src/marketplace/**",
        "Marketplace modules receive normalized input from tool handlers",
    ),
    _entry(
        "DMCP-SEC-004",
        "src/persona/**/*.ts",
        "Persona modules receive normalized input from tool handlers",
    ),
    _entry(
        "DMCP-SEC-004",
        "src/update/*.ts",
        "Update modules receive normalized input from tool handlers",
    ),
    # Audit logging
    _entry("DMCP-SEC-006", "src/types/*.ts", "Type definition files do not perform security operations"),
    _entry("DMCP-SEC-006", "src/constants/*.ts", "Constant files do not perform security operations"),
    _entry("DMCP-SEC-006", "src/config/*.ts", "Configuration files do not perform security operations"),
    _entry("DMCP-SEC-006", "src/errors/*.ts", "Error classes are not security operations requiring audit"),
    _entry("DMCP-SEC-006", "*.json", "JSON files cannot contain executable code"),
    _entry("DMCP-SEC-006", "scripts/**/*", "Build scripts do not perform runtime security operations"),
    _entry(
        "DMCP-SEC-006",
        "src/security/**/*.ts",
        "Security modules are infrastructure, not operations requiring audit",
    ),
    _entry(
        "DMCP-SEC-006",
        "src/marketplace/**",
        "Marketplace operations are not security-sensitive requiring audit",
    ),
    _entry(
        "DMCP-SEC-006",
        "src/persona/**/*.ts",
        "Persona operations are validated at entry point, not security operations",
    ),
    _entry(
        "DMCP-SEC-006",
        "src/server/tools/**/*.ts",
        "Tool implementations delegate to services that handle security",
    ),
    # Documentation and non-code files
    _entry("*", "**/*.md", "Markdown documentation files are not executable code"),
    _entry("*", "LICENSE", "License file is legal text, not code"),
    _entry("*", ".gitignore", "Git configuration file is not executable code"),
    _entry("*", "**/*.yml", "YAML configuration files are data, not code"),
    _entry("*", "**/*.yaml", "YAML configuration files are data, not code"),
]


def normalize_separators(file_path: str) -> str:
    """Forward slashes only, no repeated slashes, no trailing slash."""
    path = _SLASH_RUNS.sub("/", file_path.replace("\\", "/"))
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def _is_absolute(path: str) -> bool:
    return path.startswith("/") or bool(_DRIVE_PREFIX.match(path))


def normalize_path(
    file_path: str,
    project_root: Optional[str] = None,
    root_markers: Sequence[str] = DEFAULT_ROOT_MARKERS,
) -> str:
    """
    Reduce ``file_path`` to a project-relative posix path where possible.

    ``project_root`` wins when the path lies beneath it. Otherwise an absolute
    path is cut just before its first root-marker segment. Relative paths and
    absolute paths with no marker are returned with separators normalized only.
    """
    path = normalize_separators(file_path)

    if project_root:
        root = normalize_separators(project_root)
        if path == root:
            return ""
        if path.startswith(root + "/"):
            return path[len(root) + 1 :]

    if _is_absolute(path):
        segments = path.split("/")
        for index, segment in enumerate(segments):
            if segment in root_markers:
                return "/".join(segments[index:])
    return path


def marker_suffixes(path: str, root_markers: Sequence[str] = DEFAULT_ROOT_MARKERS) -> List[str]:
    """
    Every tail of an absolute ``path`` that starts at a root-marker segment.

    ``/var/lib/jenkins/ws/src/a.ts`` gives ``lib/jenkins/ws/src/a.ts`` and
    ``src/a.ts``, so a marker name inside the checkout prefix cannot hide the
    real project-relative path.
    """
    path = normalize_separators(path)
    if not _is_absolute(path):
        return []
    segments = path.split("/")
    return ["/".join(segments[index:]) for index, segment in enumerate(segments) if segment in root_markers]


def rule_category(rule: str) -> str:
    """``DMCP-SEC-004`` -> ``DMCP``; the rule wildcard is its own category."""
    if rule == WILDCARD:
        return WILDCARD
    return rule.split("-", 1)[0]


class SuppressionMatcher:
    """
    Decide whether a finding is suppressed.

    Suppressions are ORed: a pair is suppressed if any entry matches, regardless
    of declaration order. Answers are cached per ``(rule_id, file_path)``; the
    cache is guarded by a lock so concurrent lookups never observe a partial
    write, and it only ever saves recomputation.
    """

    def __init__(
        self,
        suppressions: Iterable[Suppression] = (),
        project_root: Optional[str | Path] = None,
        root_markers: Sequence[str] = DEFAULT_ROOT_MARKERS,
    ) -> None:
        self.suppressions: Tuple[Suppression, ...] = tuple(suppressions)
        self.root_markers = tuple(root_markers)
        self._project_root = str(project_root) if project_root is not None else None
        self._cache: Dict[Tuple[str, str], bool] = {}
        self._lock = threading.Lock()

    @property
    def project_root(self) -> Optional[str]:
        return self._project_root

    @project_root.setter
    def project_root(self, value: Optional[str | Path]) -> None:
        new_root = str(value) if value is not None else None
        if new_root != self._project_root:
            self._project_root = new_root
            # Cached answers were computed against the old root.
            self.clear_cache()

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def should_suppress(self, rule_id: str, file_path: Optional[str]) -> bool:
        """True if any suppression covers ``rule_id`` in ``file_path``."""
        if not file_path:
            return False

        key = (rule_id, file_path)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = self._compute(rule_id, file_path)
        with self._lock:
            self._cache[key] = result
        return result

    def _compute(self, rule_id: str, file_path: str) -> bool:
        raw = normalize_separators(file_path)
        relative = normalize_path(file_path, self._project_root, self.root_markers)
        candidates: List[str] = [relative]
        for candidate in [raw, *marker_suffixes(raw, self.root_markers)]:
            if candidate not in candidates:
                candidates.append(candidate)

        for suppression in self.suppressions:
            if suppression.rule != WILDCARD and suppression.rule != rule_id:
                continue
            if suppression.file == WILDCARD:
                return True
            if not is_glob(suppression.file):
                if suppression.file in candidates:
                    return True
                continue
            try:
                regex = compile_glob(suppression.file)
            except re.error as e:
                logger.warning("Skipping malformed suppression pattern %r: %s", suppression.file, e)
                continue
            if any(regex.match(candidate) for candidate in candidates):
                return True
        return False

    def validate(self) -> List[str]:
        """Return human-readable configuration errors; an empty list means valid."""
        errors: List[str] = []
        seen_exact: Dict[Tuple[str, str], int] = {}

        for index, suppression in enumerate(self.suppressions):
            label = f"Suppression #{index + 1} ({suppression.rule} -> {suppression.file})"

            if not RULE_ID_PATTERN.match(suppression.rule):
                errors.append(f"{label}: rule id '{suppression.rule}' does not follow the naming convention")

            if len(suppression.reason.strip()) <= MIN_REASON_LENGTH:
                errors.append(f"{label}: reason must be longer than {MIN_REASON_LENGTH} characters")

            if suppression.file != WILDCARD and is_glob(suppression.file):
                problem = glob_problem(suppression.file)
                if problem:
                    errors.append(f"{label}: invalid glob pattern: {problem}")
            elif not suppression.file:
                errors.append(f"{label}: invalid glob pattern: empty pattern")
            else:
                key = (suppression.rule, suppression.file)
                if key in seen_exact:
                    errors.append(f"{label}: duplicate of suppression #{seen_exact[key] + 1}")
                else:
                    seen_exact[key] = index

        return errors

    def stats(self) -> SuppressionStats:
        by_rule: Dict[str, int] = {}
        by_category: Dict[str, int] = {}
        for suppression in self.suppressions:
            by_rule[suppression.rule] = by_rule.get(suppression.rule, 0) + 1
            category = rule_category(suppression.rule)
            by_category[category] = by_category.get(category, 0) + 1
        return SuppressionStats(total=len(self.suppressions), by_rule=by_rule, by_category=by_category)


_default_matcher = SuppressionMatcher(DEFAULT_SUPPRESSIONS)


def should_suppress(rule_id: str, file_path: Optional[str]) -> bool:
    """Check against the built-in suppression list."""
    return _default_matcher.should_suppress(rule_id, file_path)


def clear_suppression_cache() -> None:
    _default_matcher.clear_cache()


def validate_suppressions() -> List[str]:
    return _default_matcher.validate()


def get_suppression_stats() -> SuppressionStats:
    return _default_matcher.stats()
