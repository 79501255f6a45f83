"""
Request payload sanitization.
Removes script tags, ``javascript:`` URIs and inline event-handler
assignments from every string leaf of a nested payload.
"""

import re
from typing import Any, Mapping

SCRIPT_TAG_PATTERN = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
JAVASCRIPT_URI_PATTERN = re.compile(r"javascript:", re.IGNORECASE)
EVENT_HANDLER_PATTERN = re.compile(r"\bon\w+\s*=", re.IGNORECASE)

PATTERNS = (SCRIPT_TAG_PATTERN, JAVASCRIPT_URI_PATTERN, EVENT_HANDLER_PATTERN)


def sanitize_string(value: str) -> str:
    """
    Strip dangerous fragments from one string.

    Removal repeats until nothing matches, so fragments re-assembled by an
    earlier removal are caught and a second pass is a no-op.
    """
    while True:
        cleaned = value
        for pattern in PATTERNS:
            cleaned = pattern.sub("", cleaned)
        if cleaned == value:
            return cleaned
        value = cleaned


def sanitize(value: Any) -> Any:
    """
    Return a sanitized copy of ``value``.

    Mappings and lists/tuples are rebuilt recursively; other non-string
    values are returned unchanged. The input is never mutated.
    """
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, Mapping):
        return {key: sanitize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [sanitize(item) for item in value]
    if isinstance(value, tuple):
        return tuple(sanitize(item) for item in value)
    return value
