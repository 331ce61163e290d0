# Rule definitions: the two kinds of SecurityRule the scanner knows how to apply.
# PatternRule carries a regular expression; CheckRule carries a function that looks
# at the whole file and returns findings itself.

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Pattern, Tuple

from security_audit.context import ScanContext
from security_audit.findings.models import SecurityFinding, Severity

TAG_HIGH_CONFIDENCE = "high-confidence"
TAG_TEST_ONLY = "test-only"

CheckFn = Callable[[str, ScanContext], List[SecurityFinding]]


@dataclass(frozen=True, kw_only=True)
class SecurityRule:
    """
    Common fields of every rule.

    Rules are immutable and live in the registry for the lifetime of the process.
    Concrete rules are either PatternRule or CheckRule; the scanner dispatches on
    the type.
    """

    id: str
    name: str
    description: str
    severity: Severity
    remediation: str
    category: str = "code"
    references: Tuple[str, ...] = ()
    tags: FrozenSet[str] = field(default_factory=frozenset)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


@dataclass(frozen=True, kw_only=True)
class PatternRule(SecurityRule):
    """Rule that reports one finding per non-overlapping regex match."""

    pattern: str
    flags: int = 0

    def compiled(self) -> Pattern[str]:
        """
        Compile the rule's expression.

        Compilation is deferred to scan time so one malformed expression raises
        ``re.error`` for that rule only; the ``re`` module caches the result.
        """
        return re.compile(self.pattern, self.flags)


@dataclass(frozen=True, kw_only=True)
class CheckRule(SecurityRule):
    """Rule backed by a function of (content, context) returning findings without a file."""

    check: CheckFn
    category: str = "custom"

    def run(self, content: str, context: ScanContext) -> List[SecurityFinding]:
        return list(self.check(content, context))
