from __future__ import annotations

import re
from typing import Optional

_NON_ALNUM = re.compile(r"[^0-9A-Za-z]")
_BLANK_CHARS = " \t\n\r"


# PUBLIC_INTERFACE
def normalize_code(value: str) -> str:
    """
    Return the ASCII alphanumeric-only projection of a classification code.

    Example:
        normalize_code("123.45-AB") -> "12345AB"
    """
    return _NON_ALNUM.sub("", value)


# PUBLIC_INTERFACE
def is_null_or_whitespace(value: Optional[str]) -> bool:
    """True when value is None, empty, or made only of spaces, tabs and line breaks."""
    return value is None or not value.strip(_BLANK_CHARS)
