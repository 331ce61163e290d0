# Glob-to-regex translation shared by file enumeration and suppression matching.
#
#   *    any run of characters within one path segment
#   **   any run of characters across segments
#   **/  zero or more leading directories
#
# Everything else is literal, so "test[1].md" is matched character for character.

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional, Pattern

GLOB_CHARS = "*"


def is_glob(pattern: str) -> bool:
    return GLOB_CHARS in pattern


def glob_to_regex(pattern: str) -> str:
    """Translate a path glob into an anchored regular expression string."""
    out = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        else:
            out.append(re.escape(ch))
        i += 1
    return "^" + "".join(out) + "$"


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> Pattern[str]:
    """Compile a glob once; repeated calls return the cached pattern."""
    return re.compile(glob_to_regex(pattern))


def glob_problem(pattern: str) -> Optional[str]:
    """Return a description of what is wrong with ``pattern``, or None if it is usable."""
    if not pattern:
        return "empty pattern"
    if "***" in pattern:
        return "contains three or more consecutive '*'"
    for segment in pattern.split("/"):
        if "**" in segment and segment != "**":
            return f"'**' must be a whole path segment (found '{segment}')"
    try:
        re.compile(glob_to_regex(pattern))
    except re.error as e:
        return f"does not compile: {e}"
    return None


def matches(pattern: str, path: str) -> bool:
    return compile_glob(pattern).match(path) is not None
