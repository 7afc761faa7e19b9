"""Escaping for iCalendar TEXT values (RFC 5545 section 3.3.11)."""

import re

_SPECIALS = re.compile(r"([\\,;])")
_ESCAPED = re.compile(r"\\([\\,;nN])")


def escape(value: str) -> str:
    """Escape backslashes, commas, semicolons and newlines for the wire."""
    return _SPECIALS.sub(r"\\\1", value).replace("\n", "\\n")


def unescape(value: str) -> str:
    """Reverse :func:`escape` in a single pass."""

    def replace(match: re.Match[str]) -> str:
        char = match.group(1)
        return "\n" if char in "nN" else char

    return _ESCAPED.sub(replace, value)
