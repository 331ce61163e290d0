from __future__ import annotations

"""
Audit configuration: which scanners run, which rule sets they load, how results
are reported and when the build should fail.

Configs are pydantic models. Field names are snake_case but the camelCase keys
used by existing JSON/YAML audit configs (``failOnSeverity``, ``checkFiles`` ...)
are accepted as aliases, so those files load unchanged through load_config().
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from security_audit.findings.models import Severity
from security_audit.rules.registry import ALL_RULE_SETS
from security_audit.suppressions import DEFAULT_SUPPRESSIONS, Suppression
from security_audit.traversal import DEFAULT_EXCLUDES, DEFAULT_EXTENSIONS
from security_audit.context import DEFAULT_MAX_FILE_SIZE

logger = logging.getLogger(__name__)

REPORT_FORMATS = ("console", "markdown", "json")

_MODEL_CONFIG = {"populate_by_name": True, "extra": "ignore"}


class ConfigError(ValueError):
    """Raised when a config file cannot be read or does not validate."""


class CodeScannerConfig(BaseModel):
    enabled: bool = True
    rules: List[str] = Field(default_factory=lambda: list(ALL_RULE_SETS))
    exclude: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    extensions: List[str] = Field(default_factory=lambda: sorted(DEFAULT_EXTENSIONS))
    max_file_size: Optional[int] = Field(DEFAULT_MAX_FILE_SIZE, alias="maxFileSize", ge=1)
    max_workers: int = Field(4, alias="maxWorkers", ge=1)

    model_config = _MODEL_CONFIG


class DependencyScannerConfig(BaseModel):
    enabled: bool = True
    severity_threshold: Severity = Field(Severity.HIGH, alias="severityThreshold")
    check_licenses: bool = Field(True, alias="checkLicenses")
    allowed_licenses: List[str] = Field(
        default_factory=lambda: ["MIT", "Apache-2.0", "BSD-3-Clause", "ISC", "AGPL-3.0"],
        alias="allowedLicenses",
    )

    model_config = _MODEL_CONFIG


class ConfigurationScannerConfig(BaseModel):
    enabled: bool = True
    check_files: List[str] = Field(
        default_factory=lambda: ["*.yml", "*.yaml", "*.json", ".env.example"],
        alias="checkFiles",
    )

    model_config = _MODEL_CONFIG


class ScannersConfig(BaseModel):
    code: CodeScannerConfig = Field(default_factory=CodeScannerConfig)
    dependencies: DependencyScannerConfig = Field(default_factory=DependencyScannerConfig)
    configuration: ConfigurationScannerConfig = Field(default_factory=ConfigurationScannerConfig)


class ReportingConfig(BaseModel):
    formats: List[str] = Field(default_factory=lambda: ["console", "markdown"])
    create_issues: bool = Field(False, alias="createIssues")
    comment_on_pr: bool = Field(False, alias="commentOnPr")
    # None disables the build-failure policy.
    fail_on_severity: Optional[Severity] = Field(None, alias="failOnSeverity")

    model_config = _MODEL_CONFIG

    @field_validator("fail_on_severity", mode="before")
    @classmethod
    def _none_disables(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value in ("", "none"):
                return None
        return value

    @field_validator("formats")
    @classmethod
    def _known_formats(cls, value: List[str]) -> List[str]:
        unknown = [fmt for fmt in value if fmt not in REPORT_FORMATS]
        if unknown:
            raise ValueError(f"unknown report format(s): {', '.join(unknown)}")
        return value


class SecurityAuditConfig(BaseModel):
    """Top-level audit configuration."""

    enabled: bool = True
    scanners: ScannersConfig = Field(default_factory=ScannersConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)
    suppressions: List[Suppression] = Field(default_factory=list)


def get_default_config() -> SecurityAuditConfig:
    """
    Return the default configuration.

    All scanners and rule sets are enabled, the built-in suppression list is
    applied and the build fails on any high or critical finding.
    """
    return SecurityAuditConfig(
        reporting=ReportingConfig(
            formats=["console", "markdown"],
            create_issues=True,
            comment_on_pr=True,
            fail_on_severity=Severity.HIGH,
        ),
        suppressions=list(DEFAULT_SUPPRESSIONS),
    )


def load_config(path: Path) -> SecurityAuditConfig:
    """
    Load a SecurityAuditConfig from a JSON or YAML file.

    The format is chosen by extension (``.json`` vs anything else, parsed as
    YAML). Keys absent from the file take the model defaults.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config {path}: {e}") from e

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse config {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config at {path} is not a mapping")

    try:
        config = SecurityAuditConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e

    logger.info("Loaded audit config from %s", path)
    return config
