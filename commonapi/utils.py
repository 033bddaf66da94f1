"""Small string helpers used when reading configuration data."""

from __future__ import annotations

_C_WHITESPACE = " \t\n\v\f\r"


def split(text: str, delim: str) -> list[str]:
    """Split ``text`` at every ``delim``.

    A trailing delimiter does not produce a final empty element, and an
    empty string yields no elements at all.
    """
    if len(delim) != 1:
        raise ValueError("delimiter must be a single character")
    parts = text.split(delim)
    if parts[-1] == "":
        parts.pop()
    return parts


def trim(text: str) -> str:
    """Return ``text`` without leading and trailing whitespace."""
    return text.strip(_C_WHITESPACE)