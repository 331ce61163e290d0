# OWASP Top 10 rule set: secrets, injection, XSS, TLS misconfiguration, weak hashing.

from __future__ import annotations

import re
from typing import List

from security_audit.findings.models import Severity
from security_audit.rules.base import TAG_HIGH_CONFIDENCE, PatternRule, SecurityRule

SET_NAME = "OWASP-Top-10"

_INJECTION_REF = "https://owasp.org/Top10/A03_2021-Injection/"


def get_owasp_rules() -> List[SecurityRule]:
    """Return the OWASP Top 10 rules in registration order."""
    return [
        PatternRule(
            id="OWASP-A01-001",
            name="Hardcoded Secrets",
            description="Potential hardcoded secret or API key detected",
            severity=Severity.CRITICAL,
            # Secret values commonly carry '-' and '_' (sk-..., ghp_...).
            pattern=(
                r"(?:api[_-]?key|secret|password|token|private[_-]?key)"
                r"\s*[:=]\s*[\"'][a-zA-Z0-9+/=_\-]{16,}[\"']"
            ),
            flags=re.IGNORECASE,
            remediation=(
                "Use environment variables or secure key management services "
                "instead of hardcoding secrets"
            ),
            references=("https://owasp.org/Top10/A01_2021-Broken_Access_Control/",),
            tags=frozenset({TAG_HIGH_CONFIDENCE}),
        ),
        PatternRule(
            id="OWASP-A03-001",
            name="SQL Injection",
            description="Potential SQL injection vulnerability",
            severity=Severity.CRITICAL,
            pattern=(
                r"(?:query|execute)\s*\(\s*['\"`].*\$\{[^}]+\}.*['\"`]"
                r"|['\"`].*\+\s*[a-zA-Z_]\w*\s*\+.*['\"`]\s*\)"
            ),
            remediation="Use parameterized queries or prepared statements",
            references=(_INJECTION_REF,),
        ),
        PatternRule(
            id="OWASP-A03-002",
            name="Command Injection",
            description="Potential command injection vulnerability",
            severity=Severity.CRITICAL,
            pattern=(
                r"(?:exec|spawn|execSync|spawnSync)\s*\([^)]*\$\{[^}]+\}"
                r"|(?:exec|spawn|execSync|spawnSync)\s*\([^)]*\+\s*[a-zA-Z_]\w*"
            ),
            remediation="Validate and sanitize all user input before using in system commands",
            references=(_INJECTION_REF,),
        ),
        PatternRule(
            id="OWASP-A03-003",
            name="Path Traversal",
            description="Potential path traversal vulnerability",
            severity=Severity.HIGH,
            pattern=r"(?:readFile|writeFile|readdir|mkdir|rm|unlink).*\$\{[^}]+\}|\.\./|\.\.\\",
            remediation=(
                "Validate and sanitize file paths, use path.resolve() and check "
                "against allowed directories"
            ),
            references=(_INJECTION_REF,),
        ),
        PatternRule(
            id="OWASP-A03-004",
            name="XSS - Direct HTML Injection",
            description="Potential XSS vulnerability through direct HTML injection",
            severity=Severity.HIGH,
            pattern=r"innerHTML\s*=\s*[^'\"`]*\$\{|dangerouslySetInnerHTML",
            remediation="Use textContent or proper HTML escaping functions",
            references=(_INJECTION_REF,),
        ),
        PatternRule(
            id="OWASP-A05-001",
            name="Insecure Configuration",
            description="Security-sensitive configuration detected",
            severity=Severity.MEDIUM,
            pattern=(
                r"(?:NODE_TLS_REJECT_UNAUTHORIZED|strictSSL|rejectUnauthorized)"
                r"\s*[:=]\s*(?:false|0|[\"']false[\"']|[\"']0[\"'])"
            ),
            flags=re.IGNORECASE,
            remediation="Enable SSL/TLS certificate validation in production",
            references=("https://owasp.org/Top10/A05_2021-Security_Misconfiguration/",),
        ),
        PatternRule(
            id="OWASP-A07-001",
            name="Weak Authentication",
            description="Potential weak authentication mechanism",
            severity=Severity.HIGH,
            pattern=r"(?:md5|sha1)\s*\(",
            flags=re.IGNORECASE,
            remediation="Use strong hashing algorithms like bcrypt, scrypt, or Argon2 for passwords",
            references=(
                "https://owasp.org/Top10/A07_2021-Identification_and_Authentication_Failures/",
            ),
        ),
    ]
