# Scanner interface (abstract base class): the contract every scanner implements.
# The auditor calls scan() once per audit and collects non-fatal errors afterwards.

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List

from security_audit.findings.models import SecurityFinding


@dataclass(frozen=True)
class AuditContext:
    """Inputs shared by all scanners for one audit."""

    project_root: Path


class SecurityScanner(ABC):
    """
    Abstract base class for all scanners.

    Subclasses define:
    - name: str, shown in logs and error messages
    - scan(context) -> list[SecurityFinding]

    Problems that should not stop the audit (an unreadable file, a broken rule)
    are appended to ``errors``, which each scan() call resets.
    """

    name: str

    def __init__(self) -> None:
        self.errors: List[str] = []

    @abstractmethod
    def scan(self, context: AuditContext) -> List[SecurityFinding]:
        """
        Scan the project and return findings.

        Findings carry a project-relative ``file`` where one applies. Return an
        empty list if nothing was found.
        """
        ...
