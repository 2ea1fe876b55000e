from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

"""Run-wide import policy for the course category uploader.

The policy is built once at startup (CLI options merged over config/import.yml)
and is read-only for the rest of the run. Every CategoryRecord receives the same
instance; ancestors created on the fly use a createnew policy of their own.
"""

__all__ = [
    "ImportMode",
    "UpdateMode",
    "ImportPolicy",
]


class ImportMode(Enum):
    """Which of create/update operations are permitted at all.

    - CREATE_NEW: only create categories that do not exist yet
    - CREATE_ALL: always create, incrementing the name of existing categories
    - CREATE_OR_UPDATE: create missing categories, update existing ones
    - UPDATE_ONLY: only update existing categories
    """
    CREATE_NEW = "createnew"
    CREATE_ALL = "createall"
    CREATE_OR_UPDATE = "createorupdate"
    UPDATE_ONLY = "update"

    @classmethod
    def from_option(cls, value: str) -> ImportMode:
        try:
            return cls(value.strip().lower())
        except (AttributeError, ValueError) as e:
            raise ValueError(f"invalid import mode: {value!r}") from e


class UpdateMode(Enum):
    """How existing categories are merged with incoming data.

    - NOTHING: never update
    - DATA_ONLY: overwrite with values from the file
    - DATA_OR_DEFAULTS: values from the file, else configured defaults
    - MISSING_ONLY: only fill fields that are empty on the existing category
    """
    NOTHING = "nothing"
    DATA_ONLY = "dataonly"
    DATA_OR_DEFAULTS = "dataordefaults"
    MISSING_ONLY = "missingonly"

    @classmethod
    def from_option(cls, value: str) -> UpdateMode:
        try:
            return cls(value.strip().lower())
        except (AttributeError, ValueError) as e:
            raise ValueError(f"invalid update mode: {value!r}") from e


@dataclass(frozen=True)
class ImportPolicy:
    """Immutable options shared by the processor and every category record."""
    mode: ImportMode
    update_mode: UpdateMode = UpdateMode.NOTHING
    allow_deletes: bool = False
    allow_renames: bool = False
    standardise: bool = False
    create_missing: bool = False  # create missing parents in the hierarchy
    root_alias: str = "Top"  # localized name of the root category
    defaults: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # defaults は読み取り専用ビューにしておく
        object.__setattr__(self, "defaults", MappingProxyType(dict(self.defaults)))

    def can_create(self) -> bool:
        return self.mode in (
            ImportMode.CREATE_NEW,
            ImportMode.CREATE_ALL,
            ImportMode.CREATE_OR_UPDATE,
        )

    def can_update(self) -> bool:
        return (
            self.mode in (ImportMode.UPDATE_ONLY, ImportMode.CREATE_OR_UPDATE)
            and self.update_mode is not UpdateMode.NOTHING
        )

    def use_defaults(self) -> bool:
        return self.update_mode in (UpdateMode.DATA_OR_DEFAULTS, UpdateMode.MISSING_ONLY)

    def missing_only(self) -> bool:
        return self.update_mode is UpdateMode.MISSING_ONLY
