"""Unit tests for the rule registry and the individual rule sets."""

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from security_audit.context import ScanContext
from security_audit.rules import application, cwe, owasp
from security_audit.rules.base import TAG_HIGH_CONFIDENCE, CheckRule, PatternRule
from security_audit.rules.registry import ALL_RULE_SETS, RULE_SETS, get_rule, load_rules


def _context(relative_path: str = "src/app.ts") -> ScanContext:
    root = Path("/project")
    return ScanContext(
        project_root=root,
        file_path=root / relative_path,
        relative_path=relative_path,
        file_type=Path(relative_path).suffix,
        is_test="test" in relative_path,
    )


def _matches(rule_id: str, source: str) -> bool:
    rule = get_rule(rule_id)
    assert isinstance(rule, PatternRule)
    return rule.compiled().search(source) is not None


class TestRegistry:
    def test_known_sets(self):
        """All three rule sets are registered."""
        assert ALL_RULE_SETS == ("OWASP-Top-10", "CWE-Top-25", "DollhouseMCP-Security")
        assert set(RULE_SETS) == set(ALL_RULE_SETS)

    def test_load_rules_preserves_requested_order(self):
        """Rules load in the order the sets were requested."""
        rules = load_rules(["CWE-Top-25", "OWASP-Top-10"])
        ids = [r.id for r in rules]
        assert ids[0] == "CWE-79-001"
        assert ids.index("CWE-798-001") < ids.index("OWASP-A01-001")
        assert len(rules) == len(cwe.get_cwe_rules()) + len(owasp.get_owasp_rules())

    def test_unknown_sets_are_ignored(self):
        """Unknown set names are skipped."""
        assert load_rules(["No-Such-Set"]) == []
        assert [r.id for r in load_rules(["No-Such-Set", "CWE-Top-25"])] == [
            r.id for r in cwe.get_cwe_rules()
        ]

    def test_rule_ids_are_unique(self):
        """No two rules share an id."""
        ids = [r.id for r in load_rules(ALL_RULE_SETS)]
        assert len(ids) == len(set(ids)) == 17

    def test_get_rule(self):
        """Rules are looked up by id."""
        rule = get_rule("OWASP-A01-001")
        assert rule is not None
        assert rule.has_tag(TAG_HIGH_CONFIDENCE)
        assert get_rule("NOPE-001") is None

    def test_rules_are_immutable(self):
        """Rule definitions cannot be changed at runtime."""
        rule = get_rule("CWE-89-001")
        with pytest.raises(FrozenInstanceError):
            rule.severity = "low"

    def test_application_check_rules(self):
        """The application set carries three whole-file checks."""
        checks = [r.id for r in application.get_application_rules() if isinstance(r, CheckRule)]
        assert checks == ["DMCP-SEC-003", "DMCP-SEC-004", "DMCP-SEC-006"]


class TestOwaspRules:
    def test_hardcoded_secret(self):
        """Literal keys and passwords are detected."""
        assert _matches("OWASP-A01-001", 'const apiKey = "sk-1234567890abcdef1234567890abcdef";')
        assert _matches("OWASP-A01-001", "PASSWORD: 'aB3dE5gH7jK9mN1pQ3'")

    def test_secret_from_environment_not_flagged(self):
        """Secrets read from the environment are not flagged."""
        assert not _matches("OWASP-A01-001", "const apiKey = process.env.API_KEY;")
        assert not _matches("OWASP-A01-001", 'const token = "short";')

    def test_sql_injection_template(self):
        """Interpolated SQL templates are detected."""
        assert _matches("OWASP-A03-001", "db.query(`SELECT * FROM users WHERE id = ${id}`)")

    def test_command_injection(self):
        """Interpolated shell commands are detected."""
        assert _matches("OWASP-A03-002", "exec(`rm -rf ${dir}`)")
        assert _matches("OWASP-A03-002", "execSync('ls ' + userDir)")

    def test_path_traversal(self):
        """Relative traversal and interpolated paths are detected."""
        assert _matches("OWASP-A03-003", "const p = '../../etc/passwd';")
        assert _matches("OWASP-A03-003", "readFile(`/data/${name}`)")

    def test_xss(self):
        """dangerouslySetInnerHTML is detected."""
        assert _matches("OWASP-A03-004", "<div dangerouslySetInnerHTML={{ __html: html }} />")

    def test_insecure_tls_configuration(self):
        """Disabled certificate checks are detected."""
        assert _matches("OWASP-A05-001", "rejectUnauthorized: false")
        assert _matches("OWASP-A05-001", "NODE_TLS_REJECT_UNAUTHORIZED = '0'")

    def test_weak_hash(self):
        """MD5 is flagged, SHA-256 is not."""
        assert _matches("OWASP-A07-001", "const h = md5(password);")
        assert not _matches("OWASP-A07-001", "const h = sha256(password);")


class TestCweRules:
    def test_reflected_xss(self):
        """Request data echoed into a response is detected."""
        assert _matches("CWE-79-001", "res.send(req.query.name)")

    def test_sql_concatenation(self):
        """Concatenated SQL is detected."""
        assert _matches("CWE-89-001", 'const q = "SELECT * FROM users WHERE id = " + id;')
        assert not _matches("CWE-89-001", 'showError("Update Failed");')

    def test_path_manipulation(self):
        """Request parameters joined into paths are detected."""
        assert _matches("CWE-22-001", "path.join(base, req.params.file)")

    def test_hardcoded_credentials(self):
        """Inline usernames and passwords are detected."""
        assert _matches("CWE-798-001", 'const user = "admin", password = "hunter2";')


class TestApplicationRules:
    def test_unsafe_persona_loading(self):
        """Persona loads without validation are detected."""
        assert _matches("DMCP-SEC-001", "const p = loadPersona(file);")
        assert not _matches("DMCP-SEC-001", "loadPersona(file); validate(p);")

    def test_token_without_validation(self):
        """Tokens used without verification are detected."""
        assert _matches("DMCP-SEC-002", "const t = token;")
        assert not _matches("DMCP-SEC-002", "session.token.verify();")

    def test_unvalidated_yaml(self):
        """Raw YAML parsing is detected."""
        assert _matches("DMCP-SEC-005", "const data = yaml.load(text);")
        assert _matches("DMCP-SEC-005", "parse('persona.yaml')")

    def test_rate_limiting_check(self):
        """Tool handlers without rate limiting are reported."""
        handler = "server.tool({ name: 'create_persona', handle: async () => {} })"
        findings = application.check_rate_limiting(handler, _context())
        assert [f.rule_id for f in findings] == ["DMCP-SEC-003"]
        assert findings[0].file is None

        assert application.check_rate_limiting(handler + "\nrateLimiter.check();", _context()) == []
        assert application.check_rate_limiting("const x = 1;", _context()) == []

    def test_unicode_normalization_check(self):
        """User input without Unicode normalization is reported."""
        source = "const name = req.body.name;"
        findings = application.check_unicode_normalization(source, _context())
        assert findings[0].message == "User input processed without Unicode normalization"

        normalized = source + "\nUnicodeValidator.normalize(name);"
        assert application.check_unicode_normalization(normalized, _context()) == []

    def test_security_logging_check(self):
        """Security operations without audit logging are reported."""
        source = "await authenticate(user);"
        findings = application.check_security_logging(source, _context())
        assert [f.rule_id for f in findings] == ["DMCP-SEC-006"]
        assert findings[0].severity.value == "low"

        logged = source + "\nSecurityMonitor.logSecurityEvent({ type: 'login' });"
        assert application.check_security_logging(logged, _context()) == []

    @pytest.mark.parametrize(
        "check",
        [
            application.check_rate_limiting,
            application.check_unicode_normalization,
            application.check_security_logging,
        ],
    )
    def test_checks_skip_test_files(self, check):
        """Whole-file checks ignore test files."""
        source = "name: 'x', handle: authenticate(req.body)"
        assert check(source, _context("__tests__/unit/app.test.ts")) == []
