# CWE Top 25 rule set.

from __future__ import annotations

import re
from typing import List

from security_audit.findings.models import Severity
from security_audit.rules.base import PatternRule, SecurityRule

SET_NAME = "CWE-Top-25"


def _cwe_ref(number: int) -> str:
    return f"https://cwe.mitre.org/data/definitions/{number}.html"


def get_cwe_rules() -> List[SecurityRule]:
    """Return the CWE Top 25 rules in registration order."""
    return [
        PatternRule(
            id="CWE-79-001",
            name="Reflected XSS",
            description="User input reflected without encoding",
            severity=Severity.HIGH,
            pattern=r"res\.(?:send|write|end)\s*\([^)]*(?:req\.(?:query|params|body)|request\.)",
            remediation="Encode all user input before reflecting in responses",
            references=(_cwe_ref(79),),
        ),
        PatternRule(
            id="CWE-89-001",
            name="SQL String Concatenation",
            description="SQL query built using string concatenation",
            severity=Severity.CRITICAL,
            pattern=r"[\"'](?:SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER).*[\"']\s*\+",
            flags=re.IGNORECASE,
            remediation="Use parameterized queries instead of string concatenation",
            references=(_cwe_ref(89),),
        ),
        PatternRule(
            id="CWE-22-001",
            name="Path Manipulation",
            description="File path constructed from user input",
            severity=Severity.HIGH,
            pattern=r"path\.join\s*\([^)]*(?:req\.|request\.|params|query|body)",
            remediation="Validate paths against an allowlist and use path.resolve()",
            references=(_cwe_ref(22),),
        ),
        PatternRule(
            id="CWE-798-001",
            name="Hardcoded Credentials",
            description="Credentials hardcoded in source",
            severity=Severity.CRITICAL,
            pattern=(
                r"(?:username|user|login)\s*[:=]\s*[\"'][^\"']+[\"']"
                r".*(?:password|pass|pwd)\s*[:=]\s*[\"'][^\"']+[\"']"
            ),
            flags=re.IGNORECASE,
            remediation="Store credentials in environment variables or secure vaults",
            references=(_cwe_ref(798),),
        ),
    ]
