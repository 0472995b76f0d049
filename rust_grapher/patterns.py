"""Wildcard name matching used by every include/exclude filter.

Only ``*`` is special and it stands for zero or more characters. This is
intentionally not ``fnmatch``: ``?`` and ``[...]`` are literal, and the
fragment scan below is greedy-leftmost rather than backtracking.
"""

from __future__ import annotations

from typing import Iterable

WILDCARD = "*"


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    """Return True when *name* matches at least one of *patterns*."""
    return any(matches(name, pattern) for pattern in patterns)


def matches(name: str, pattern: str) -> bool:
    if WILDCARD not in pattern:
        return name == pattern

    parts = pattern.split(WILDCARD)

    if len(parts) == 2:
        prefix, suffix = parts
        return (
            name.startswith(prefix)
            and name.endswith(suffix)
            and len(name) >= len(prefix) + len(suffix)
        )

    pos = 0
    for index, part in enumerate(parts):
        if not part:
            continue
        found = name.find(part, pos)
        if found < 0:
            return False
        # only the leading fragment is anchored
        if index == 0 and found != 0:
            return False
        pos = found + len(part)

    return pattern.endswith(WILDCARD) or pos == len(name)


def sanitize_name(name: str) -> str:
    """Make a package or function name usable as a Mermaid/DOT identifier."""
    return name.replace("-", "_").replace(".", "_")
