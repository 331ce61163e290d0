# Reporter interface: turn a finished ScanResult into text for one kind of consumer.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from security_audit.findings.models import ScanResult, ScanSummary, SecurityFinding


class Reporter(ABC):
    """Stateless view over a ScanResult. Reporters never write files or print on their own."""

    def __init__(self, result: ScanResult) -> None:
        self.result = result

    @abstractmethod
    def generate(self) -> str:
        ...

    def get_summary(self) -> ScanSummary:
        return self.result.summary

    def get_findings(self) -> List[SecurityFinding]:
        return list(self.result.findings)
