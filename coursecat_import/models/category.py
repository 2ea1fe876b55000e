from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""Course category entity and field helpers.

A category is identified by its (name, parent) pair; `name` is the leaf segment
only. `idnumber` is an optional external key that must be unique across all
categories.
"""

__all__ = [
    "ROOT_ID",
    "UNRESOLVED_PARENT",
    "VALID_FIELDS",
    "PERSISTED_FIELDS",
    "CategoryEntity",
    "is_set",
    "is_truthy",
    "coerce_field",
]

ROOT_ID = 0  # parent id of top level categories
UNRESOLVED_PARENT = -1  # parent hierarchy could not be resolved

# Columns accepted from the import file
VALID_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "idnumber",
    "visible",
    "deleted",
    "theme",
    "oldname",
)

# Columns written to the store (plus "parent"); deleted / oldname are directives
PERSISTED_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "idnumber",
    "visible",
    "theme",
)

_FALSE_STRINGS = {"", "0", "false", "no", "off", "n"}


@dataclass(frozen=True)
class CategoryEntity:
    """Persisted course category."""
    id: int
    name: str
    parent: int = ROOT_ID
    idnumber: str | None = None
    description: str | None = None
    visible: bool = True
    theme: str | None = None

    def value_of(self, field: str) -> Any:
        """Field value by import column name; directives have no stored value."""
        return getattr(self, field, None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "parent": self.parent,
            "idnumber": self.idnumber,
            "description": self.description,
            "visible": self.visible,
            "theme": self.theme,
        }


def is_set(value: Any) -> bool:
    """True when a raw value carries data (None and blank strings do not)."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() not in _FALSE_STRINGS


def coerce_field(field: str, value: Any) -> Any:
    """Normalize a raw column value for the plan.

    visible / deleted become booleans, everything else a stripped string.
    """
    if field in ("visible", "deleted"):
        return is_truthy(value)
    if value is None:
        return None
    return str(value).strip()
