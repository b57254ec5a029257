"""Normalization rules for builder payload values.

All functions accept a raw scalar (str, int, float, bool) or None and return
the appropriate type or None.  None of them raise on malformed input: a bad
value resolves to None so that one field cannot abort a whole submission.
"""

from __future__ import annotations

import re
from typing import Any

# Strings the builder (and its JS glue code) emits for "no value".
ABSENT_SENTINELS = frozenset({"null", "undefined"})

_INT_RE = re.compile(r"[+-]?\d+")
# Digit-group separators seen in price fields: plain, non-breaking and
# narrow non-breaking spaces ("5 000").
_GROUP_SEPARATORS = re.compile(r"(?<=\d)[ \u00a0\u202f](?=\d{3}(?!\d))")

# Numeric columns are INTEGER (int4); anything wider cannot be stored.
INT_MIN = -2**31
INT_MAX = 2**31 - 1


# ---------------------------------------------------------------------------
# Rule 1: trim
# ---------------------------------------------------------------------------

def trim(value: str | None) -> str | None:
    """Strip leading/trailing whitespace; treat empty string as None."""
    if value is None:
        return None
    v = value.strip()
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 2: is_absent
# ---------------------------------------------------------------------------

def is_absent(value: Any) -> bool:
    """Return True for None, blank strings and the 'null'/'undefined' sentinels."""
    if value is None:
        return True
    if isinstance(value, str):
        v = trim(value)
        return v is None or v in ABSENT_SENTINELS
    return False


# ---------------------------------------------------------------------------
# Rule 3: parse_int
# ---------------------------------------------------------------------------

def parse_int(value: Any) -> int | None:
    """Parse a whole number, returning None on failure (never 0 by default).

    Accepts an optional sign and digit groups separated by single spaces
    ("5 000").  Fractional or otherwise non-numeric text resolves to None,
    and so does a whole number outside INT_MIN..INT_MAX.  Booleans are not
    numbers here.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        n = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        n = int(value)
    elif isinstance(value, str) and not is_absent(value):
        v = _GROUP_SEPARATORS.sub("", value.strip())
        if not _INT_RE.fullmatch(v):
            return None
        n = int(v)
    else:
        return None
    return n if INT_MIN <= n <= INT_MAX else None


# ---------------------------------------------------------------------------
# Rule 4: coerce_text
# ---------------------------------------------------------------------------

def coerce_text(value: Any) -> str | None:
    """Pass text through unchanged; absent sentinels become None.

    Non-string scalars are stringified so a JSON number typed into a text
    slot survives ("42").
    """
    if is_absent(value):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ---------------------------------------------------------------------------
# Rule 5: coerce_identifier
# ---------------------------------------------------------------------------

def coerce_identifier(value: Any) -> str | None:
    """Like coerce_text, but identifiers are compared exactly, so trim them."""
    v = coerce_text(value)
    return trim(v)
