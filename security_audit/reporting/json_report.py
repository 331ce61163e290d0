# JSON report: the full ScanResult, serialized losslessly via pydantic.

from __future__ import annotations

from typing import Any, Dict

from security_audit.reporting.base import Reporter


class JsonReporter(Reporter):
    def generate(self) -> str:
        return self.result.model_dump_json(indent=2)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible dict (enums as strings, timestamp in ISO 8601)."""
        return self.result.model_dump(mode="json")
