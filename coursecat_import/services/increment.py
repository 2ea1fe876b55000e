from __future__ import annotations

import re
from collections.abc import Callable

"""Deterministic incrementing of category names and ID numbers (createall mode).

    "Physics"   -> "Physics_2" -> "Physics_3" ...
    "Physics_9" -> "Physics_10"
    "0042"      -> "0043"  (zero padding kept)
"""

_SUFFIX_RE = re.compile(r"^(.*?)_([0-9]+)$")


def increment_name(name: str) -> str:
    m = _SUFFIX_RE.match(name)
    if m is None:
        return f"{name}_2"
    return f"{m.group(1)}_{int(m.group(2)) + 1}"


def increment_idnumber(idnumber: str) -> str:
    return str(int(idnumber) + 1).zfill(len(idnumber))


def next_free(value: str, step: Callable[[str], str], is_taken: Callable[[str], bool]) -> str:
    """Apply `step` until `is_taken` reports a free value (at least once)."""
    candidate = step(value)
    while is_taken(candidate):
        candidate = step(candidate)
    return candidate
