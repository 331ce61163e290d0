# Application-specific rule set (DollhouseMCP): persona loading, token handling,
# rate limiting, Unicode normalization, YAML parsing and security audit logging.
# Three of these rules look at the file as a whole rather than at a single match.

from __future__ import annotations

import re
from typing import List

from security_audit.context import ScanContext
from security_audit.findings.models import Confidence, SecurityFinding, Severity
from security_audit.rules.base import CheckRule, PatternRule, SecurityRule

SET_NAME = "DollhouseMCP-Security"

_GUIDELINES = "DollhouseMCP Security Guidelines"

_TOOL_HANDLER = re.compile(r"name:\s*[\"']([^\"']+)[\"'].*handle:", re.DOTALL)
_RATE_LIMIT = re.compile(r"rateLimiter|checkRateLimit|tokenBucket", re.IGNORECASE)

_USER_INPUT = re.compile(r"(?:req\.|request\.|params|query|body|content)")
_UNICODE_CHECK = re.compile(r"UnicodeValidator|normalizeUnicode", re.IGNORECASE)

_SECURITY_OPS = re.compile(
    r"(?:authenticate|authorize|validate|sanitize|encrypt|decrypt)", re.IGNORECASE
)
_SECURITY_LOGGING = re.compile(r"SecurityMonitor\.log|logSecurityEvent", re.IGNORECASE)


def check_rate_limiting(content: str, context: ScanContext) -> List[SecurityFinding]:
    """MCP tool handlers defined in a file that never mentions a rate limiter."""
    if context.is_test:
        return []
    if not _TOOL_HANDLER.search(content) or _RATE_LIMIT.search(content):
        return []
    return [
        SecurityFinding(
            rule_id="DMCP-SEC-003",
            severity=Severity.MEDIUM,
            message="MCP tool handler without rate limiting",
            remediation="Add rate limiting to prevent abuse",
            confidence=Confidence.HIGH,
        )
    ]


def check_unicode_normalization(content: str, context: ScanContext) -> List[SecurityFinding]:
    """User input handled in a file that never normalizes Unicode."""
    if context.is_test:
        return []
    if not _USER_INPUT.search(content) or _UNICODE_CHECK.search(content):
        return []
    return [
        SecurityFinding(
            rule_id="DMCP-SEC-004",
            severity=Severity.MEDIUM,
            message="User input processed without Unicode normalization",
            remediation="Use UnicodeValidator.normalize() on all user input",
            confidence=Confidence.MEDIUM,
        )
    ]


def check_security_logging(content: str, context: ScanContext) -> List[SecurityFinding]:
    """Security operations in a file with no audit logging call."""
    if context.is_test:
        return []
    if not _SECURITY_OPS.search(content) or _SECURITY_LOGGING.search(content):
        return []
    return [
        SecurityFinding(
            rule_id="DMCP-SEC-006",
            severity=Severity.LOW,
            message="Security operation without audit logging",
            remediation="Add SecurityMonitor.logSecurityEvent() for audit trail",
            confidence=Confidence.MEDIUM,
        )
    ]


def get_application_rules() -> List[SecurityRule]:
    """Return the DollhouseMCP rules in registration order."""
    return [
        PatternRule(
            id="DMCP-SEC-001",
            name="Unsafe Persona Loading",
            description="Persona loaded without validation",
            severity=Severity.HIGH,
            category="custom",
            pattern=r"loadPersona\s*\([^)]*\)\s*(?!.*validate)",
            remediation="Always validate personas before loading using PersonaValidator",
            references=(_GUIDELINES,),
        ),
        PatternRule(
            id="DMCP-SEC-002",
            name="Token Validation Bypass",
            description="Token used without validation",
            severity=Severity.CRITICAL,
            category="custom",
            # token/auth usage with no validate/verify/check before the end of the statement
            pattern=r"(?:token|auth)(?![^;]*(?:validate|verify|check))[^;]*",
            flags=re.IGNORECASE,
            remediation="Always validate tokens using TokenManager.validateToken()",
            references=(_GUIDELINES,),
        ),
        CheckRule(
            id="DMCP-SEC-003",
            name="Rate Limiting Missing",
            description="API endpoint without rate limiting",
            severity=Severity.MEDIUM,
            check=check_rate_limiting,
            remediation="Implement rate limiting for all MCP tools",
            references=("Issue #174 - Rate Limiting Implementation",),
        ),
        CheckRule(
            id="DMCP-SEC-004",
            name="Unicode Validation Missing",
            description="User input processed without Unicode normalization",
            severity=Severity.MEDIUM,
            check=check_unicode_normalization,
            remediation="Apply Unicode normalization to prevent bypass attacks",
            references=("Issue #162 - Unicode Normalization",),
        ),
        PatternRule(
            id="DMCP-SEC-005",
            name="Unvalidated YAML Content",
            description="YAML content parsed without security validation",
            severity=Severity.HIGH,
            category="custom",
            pattern=r"yaml\.load\s*\(|parse\s*\([^)]*\.ya?ml",
            flags=re.IGNORECASE,
            remediation="Use SecureYamlParser for all YAML parsing",
            references=(_GUIDELINES,),
        ),
        CheckRule(
            id="DMCP-SEC-006",
            name="Security Event Not Logged",
            description="Security-relevant operation without logging",
            severity=Severity.LOW,
            check=check_security_logging,
            remediation="Log all security-relevant operations for audit trail",
            references=(_GUIDELINES,),
        ),
    ]
