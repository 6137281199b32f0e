"""Allow-list normalization and matching.

Allow-lists come from configuration as loosely typed values (absent, a
single pattern, a comma-separated string, a JSON array string or a list).
They are normalized once into a tuple of patterns; matching is a pure
function over ``(patterns, candidate)``.

Pattern forms:
    ``https://author.example.com``  exact match
    ``https://author.example.com/*`` prefix match (trailing wildcard)
    ``*.example.com``                suffix match (leading wildcard)
    ``*``                            matches everything
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any
from typing import Optional

WILDCARD = "*"

AllowList = tuple[str, ...]


def normalize_patterns(value: Any) -> AllowList:
    """Normalize a configured allow-list into a tuple of patterns.

    Args:
        value: ``None``, a string (single pattern, comma-separated
            patterns or a JSON array) or an iterable of strings.

    Returns:
        A tuple of non-empty, stripped patterns. Empty means open.

    Raises:
        ValueError: If the value is neither a string nor an iterable of
            strings, or if a JSON array string cannot be parsed.
    """
    if value is None:
        return ()

    if isinstance(value, str):
        raw = value.strip()
        if raw.startswith("["):
            try:
                value = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid allow-list JSON: {e.msg}") from e
        else:
            value = raw.split(",")

    if not isinstance(value, Iterable) or isinstance(value, (bytes, dict)):
        raise ValueError("Allow-list must be a string or a list of strings")

    patterns: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError("Allow-list entries must be strings")
        item = item.strip()
        if item and item not in patterns:
            patterns.append(item)
    return tuple(patterns)


def _matches(pattern: str, candidate: str) -> bool:
    if pattern == candidate:
        return True
    if pattern.endswith(WILDCARD):
        return candidate.startswith(pattern[: -len(WILDCARD)])
    if pattern.startswith(WILDCARD):
        return candidate.endswith(pattern[len(WILDCARD) :])
    return False


def is_allowed(patterns: AllowList, candidate: str) -> bool:
    """Return True if the candidate is permitted by the allow-list.

    An empty allow-list permits everything.
    """
    if not patterns:
        return True
    return any(_matches(pattern, candidate) for pattern in patterns)


def check_in_allowlist(patterns: AllowList, candidate: str) -> Optional[str]:
    """Check a candidate against an allow-list.

    Args:
        patterns: Normalized allow-list patterns.
        candidate: The origin hostname or destination URL to check.

    Returns:
        None if the candidate is permitted, otherwise a message naming
        the candidate and the allow-list.
    """
    if is_allowed(patterns, candidate):
        return None
    entries = ", ".join(f"'{pattern}'" for pattern in patterns)
    return f"'{candidate}' is not in the allow list [{entries}]"
