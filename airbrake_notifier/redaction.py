"""Key-based redaction of sensitive values in nested mappings."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

FILTERED = "[FILTERED]"


def _is_blocked(key: Any, patterns: Iterable[re.Pattern[str]]) -> bool:
    if not isinstance(key, str):
        return False
    return any(pattern.search(key) for pattern in patterns)


def _redact_value(value: Any, patterns: list[re.Pattern[str]]) -> Any:
    if isinstance(value, Mapping):
        return redact(value, patterns)
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, patterns) for item in value]
    return value


def redact(data: Mapping[str, Any], patterns: Iterable[re.Pattern[str]]) -> dict[str, Any]:
    """Return a copy of ``data`` with blocked keys replaced by ``[FILTERED]``.

    A value under a blocked key is replaced wholesale, even when it is a
    mapping itself. Mappings nested under other keys, including inside
    lists and tuples, are redacted recursively. The input is never modified.
    """
    patterns = list(patterns)
    result: dict[str, Any] = {}
    for key, value in data.items():
        if _is_blocked(key, patterns):
            result[key] = FILTERED
        else:
            result[key] = _redact_value(value, patterns)
    return result
