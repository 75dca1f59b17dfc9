"""Memory limit parsing and headroom check."""
from __future__ import annotations

import re
import sys

UNLIMITED = sys.maxsize

_LEADING_INT = re.compile(r"[+-]?\d+")

# Each suffix also applies the multipliers of the smaller ones.
_SUFFIX_ORDER = ("g", "m", "k")


def _leading_int(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group()) if match else 0


# PUBLIC_INTERFACE
def parse_memory_limit(limit: str) -> int:
    """Convert a memory limit such as ``"512M"`` to bytes.

    ``"-1"`` means unlimited and returns ``UNLIMITED``. The numeric part is
    the leading integer of the trimmed value (``"1.5G"`` reads as 1,
    garbage as 0). Suffixes are case-insensitive: ``G`` multiplies by 1024
    three times, ``M`` twice and ``K`` once. Other trailing characters apply
    no multiplier.
    """
    if limit == "-1":
        return UNLIMITED
    limit = limit.strip()
    if not limit:
        return 0
    value = _leading_int(limit)
    last = limit[-1].lower()
    if last in _SUFFIX_ORDER:
        for _ in _SUFFIX_ORDER[_SUFFIX_ORDER.index(last):]:
            value *= 1024
    return value


# PUBLIC_INTERFACE
def has_headroom(usage: int, limit: int, threshold: float = 0.9) -> bool:
    """Return True when usage stays below ``threshold`` of the limit."""
    return usage < limit * threshold
