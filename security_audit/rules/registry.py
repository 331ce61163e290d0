# Rule registry: resolve named rule sets into SecurityRule lists.

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from security_audit.rules import application, cwe, owasp
from security_audit.rules.base import SecurityRule

logger = logging.getLogger(__name__)

RULE_SETS: Dict[str, Callable[[], List[SecurityRule]]] = {
    owasp.SET_NAME: owasp.get_owasp_rules,
    cwe.SET_NAME: cwe.get_cwe_rules,
    application.SET_NAME: application.get_application_rules,
}

ALL_RULE_SETS: tuple[str, ...] = tuple(RULE_SETS)


def load_rules(names: Iterable[str]) -> List[SecurityRule]:
    """
    Return the rules of the named sets, concatenated in the order requested.

    Unknown set names are skipped so configs written for newer rule sets still
    load. Within a set, rules keep their registration order.
    """
    rules: List[SecurityRule] = []
    for name in names:
        loader = RULE_SETS.get(name)
        if loader is None:
            logger.debug("Ignoring unknown rule set %r", name)
            continue
        rules.extend(loader())
    return rules


def get_rule(rule_id: str) -> Optional[SecurityRule]:
    """Look up a single rule by id across all known sets."""
    for rule in load_rules(ALL_RULE_SETS):
        if rule.id == rule_id:
            return rule
    return None
