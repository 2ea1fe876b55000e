from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from ..db.store import CategoryStore, StoreError
from ..models.category import (
    ROOT_ID,
    UNRESOLVED_PARENT,
    VALID_FIELDS,
    CategoryEntity,
    coerce_field,
    is_set,
    is_truthy,
)
from ..models.codes import ErrorCode, StatusCode
from ..models.import_policy import ImportMode, ImportPolicy, UpdateMode
from .hierarchy import ancestor_segments, leaf_name, resolve_parent
from .increment import increment_idnumber, increment_name, next_free
from .text_clean import clean_multilang

"""One row of the import file turned into a create / update / delete plan.

Lifecycle:
    record = CategoryRecord(policy, rawdata, store)
    if record.prepare():     # validation + plan, read-only except missing parents
        record.proceed()     # exactly one store write
    record.errors / record.statuses / record.get_id()

prepare() and proceed() may each run once. Breaking that contract raises
CodingError; row problems are reported through `errors`, never raised.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "CodingError",
    "Operation",
    "CategoryRecord",
]

_IDNUMBER_RE = re.compile(r"^[0-9]+$")


class CodingError(Exception):
    """Caller broke the record or processor contract (fatal for the run)."""


class Operation(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class CategoryRecord:
    """Validation and execution state of one imported category row."""

    def __init__(
        self,
        policy: ImportPolicy,
        rawdata: Mapping[str, Any],
        store: CategoryStore,
        *,
        parent_id: int = ROOT_ID,
    ) -> None:
        if not isinstance(policy.mode, ImportMode):
            raise CodingError(f"Incorrect mode: {policy.mode!r}")
        if not isinstance(policy.update_mode, UpdateMode):
            raise CodingError(f"Incorrect update mode: {policy.update_mode!r}")

        self.policy = policy
        self.rawdata: dict[str, Any] = dict(rawdata)
        self._store = store
        self._start_parent_id = parent_id

        self.name: str | None = None
        if is_set(self.rawdata.get("name")):
            self.name = leaf_name(str(self.rawdata["name"]))
        self.parent_id = parent_id
        self.options = {
            "deleted": is_truthy(self.rawdata.get("deleted")),
            "oldname": str(self.rawdata["oldname"]).strip() if is_set(self.rawdata.get("oldname")) else None,
        }

        self.existing: CategoryEntity | None = None
        self.do: Operation | None = None
        self.finaldata: dict[str, Any] = {}
        self.errors: dict[ErrorCode, str] = {}
        self.statuses: dict[StatusCode, str] = {}
        self.id: int | None = None

        self._prepared = False
        self._process_started = False

    # -- bookkeeping -----------------------------------------------------

    def error(self, code: ErrorCode, detail: str | None = None) -> None:
        message = code.message()
        self.errors[code] = f"{message}: {detail}" if detail else message

    def set_status(self, code: StatusCode, **params: Any) -> None:
        if code in self.statuses:
            raise CodingError(f"Status code already defined: {code}")
        self.statuses[code] = code.message(**params)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def get_id(self) -> int | None:
        if not self._process_started:
            raise CodingError("The category has not been processed yet")
        return self.id

    # -- lookups -----------------------------------------------------------

    def exists(self, name: str | None = None, parent_id: int | None = None) -> CategoryEntity | None:
        """Existing category with this (name, parent), defaults to the record's own."""
        if name is None:
            name = self.name
        if parent_id is None:
            parent_id = self.parent_id
        if name is None:
            return None
        return self._store.find_one(name, parent_id)

    def _resolve(self, segments: list[str], start_parent_id: int, create_missing: bool) -> int:
        return resolve_parent(
            self._store,
            segments,
            start_parent_id,
            create_missing,
            root_alias=self.policy.root_alias,
            defaults=self.policy.defaults,
        )

    def _standardise(self, name: str) -> str:
        if self.policy.standardise:
            return clean_multilang(name).strip()
        return name

    # -- preparation ---------------------------------------------------------

    def prepare(self) -> bool:
        """Validate the row and compute `do` / `finaldata`.

        Returns False (with one entry in `errors`) at the first failed check.
        """
        if self._prepared:
            raise CodingError("The category has already been prepared")
        self._prepared = True
        policy = self.policy

        if not self.name:
            self.error(ErrorCode.MISSING_MANDATORY_FIELDS)
            return False

        idnumber = self.rawdata.get("idnumber")
        if is_set(idnumber) and not _IDNUMBER_RE.match(str(idnumber).strip()):
            self.error(ErrorCode.IDNUMBER_NOT_A_NUMBER)
            return False

        self.name = self._standardise(self.name)
        if not self.name:
            self.error(ErrorCode.MISSING_MANDATORY_FIELDS)
            return False

        self.parent_id = self._resolve(
            ancestor_segments(str(self.rawdata["name"])), self._start_parent_id, policy.create_missing
        )
        if self.parent_id == UNRESOLVED_PARENT:
            self.error(ErrorCode.MISSING_CATEGORY_PARENT)
            return False

        self.existing = self.exists()

        if self.options["deleted"]:
            if self.existing is None:
                self.error(ErrorCode.CANNOT_DELETE_NOT_EXIST)
                return False
            if not policy.allow_deletes:
                self.error(ErrorCode.DELETION_NOT_ALLOWED)
                return False
            # 削除は name と parent だけで十分
            self.do = Operation.DELETE
            return True

        if self.existing is not None:
            if policy.mode is ImportMode.CREATE_NEW:
                self.error(ErrorCode.EXISTS_AND_UPLOAD_NOT_ALLOWED)
                return False
        elif (
            not policy.can_create()
            and policy.mode is ImportMode.UPDATE_ONLY
            and self.options["oldname"] is None
        ):
            self.error(ErrorCode.NOT_EXIST_AND_CREATE_NOT_ALLOWED)
            return False

        finaldata: dict[str, Any] = {
            field: coerce_field(field, value)
            for field, value in self.rawdata.items()
            if field in VALID_FIELDS and is_set(value)
        }
        finaldata["name"] = self.name

        if self.options["oldname"]:
            return self._prepare_rename(finaldata)

        if self.existing is not None and policy.mode is ImportMode.CREATE_ALL:
            original = self.name
            self.name = next_free(self.name, increment_name, lambda n: self.exists(n) is not None)
            # 新規カテゴリとして作成する
            self.existing = None
            if self.name != original:
                self.set_status(StatusCode.RENAMED, **{"from": original, "to": self.name})
                if "idnumber" in finaldata:
                    finaldata["idnumber"] = next_free(
                        finaldata["idnumber"], increment_idnumber, self._store.exists_by_idnumber
                    )

        if (
            self.existing is None
            and "idnumber" in finaldata
            and self._store.exists_by_idnumber(finaldata["idnumber"])
        ):
            self.error(ErrorCode.IDNUMBER_NOT_UNIQUE)
            return False

        if policy.mode in (ImportMode.CREATE_NEW, ImportMode.CREATE_ALL):
            if self.existing is not None:
                self.error(ErrorCode.EXISTS_AND_UPLOAD_NOT_ALLOWED)
                return False
        else:
            if policy.mode is ImportMode.UPDATE_ONLY and self.existing is None:
                self.error(ErrorCode.NOT_EXIST_AND_CREATE_NOT_ALLOWED)
                return False
            if self.existing is not None and policy.update_mode is UpdateMode.NOTHING:
                self.error(ErrorCode.UPDATE_MODE_NOTHING)
                return False

        if self.existing is not None:
            finaldata = self.get_final_update_data(
                finaldata, self.existing, policy.use_defaults(), policy.missing_only()
            )
            if finaldata["id"] == ROOT_ID:
                self.error(ErrorCode.CANNOT_UPDATE_FRONT_PAGE)
                return False
            new_idnumber = finaldata.get("idnumber")
            if (
                new_idnumber
                and new_idnumber != self.existing.idnumber
                and self._store.exists_by_idnumber(new_idnumber)
            ):
                self.error(ErrorCode.IDNUMBER_ALREADY_EXISTS)
                return False
            self.do = Operation.UPDATE
        else:
            finaldata = self.get_final_create_data(finaldata)
            self.do = Operation.CREATE

        self.finaldata = finaldata
        logger.debug("prepared name=%s parent=%s do=%s", self.name, self.parent_id, self.do.value)
        return True

    def _prepare_rename(self, finaldata: dict[str, Any]) -> bool:
        policy = self.policy
        old_path = str(self.options["oldname"])
        old_name = self._standardise(leaf_name(old_path))
        # 旧パスは常にルートから、欠落親の作成は行わない
        old_parent_id = self._resolve(ancestor_segments(old_path), ROOT_ID, False)
        old = None
        if old_parent_id != UNRESOLVED_PARENT:
            old = self.exists(old_name, old_parent_id)

        # a case-only rename finds the old category under its new name
        if self.existing is not None and (old is None or self.existing.id != old.id):
            self.error(ErrorCode.RENAME_NAME_IN_USE)
            return False
        self.existing = old

        if old_parent_id == UNRESOLVED_PARENT:
            self.error(ErrorCode.OLD_HIERARCHY_NOT_EXIST)
            return False
        if not policy.can_update():
            self.error(ErrorCode.RENAME_ONLY_IN_UPDATE_MODE)
            return False
        if old is None:
            self.error(ErrorCode.RENAME_OLD_NOT_EXIST)
            return False
        if not policy.allow_renames:
            self.error(ErrorCode.RENAMING_NOT_ALLOWED)
            return False
        new_idnumber = finaldata.get("idnumber")
        if (
            new_idnumber is not None
            and old.idnumber != new_idnumber
            and self._store.exists_by_idnumber(new_idnumber)
        ):
            self.error(ErrorCode.IDNUMBER_ALREADY_EXISTS)
            return False
        # the category keeps its parent, so the new name must be free there too
        if old.parent != self.parent_id:
            clash = self.exists(self.name, old.parent)
            if clash is not None and clash.id != old.id:
                self.error(ErrorCode.RENAME_NAME_IN_USE)
                return False

        self.finaldata = self.get_final_update_data(finaldata, old)
        self.do = Operation.UPDATE
        self.set_status(StatusCode.RENAMED, **{"from": old_name, "to": self.name})
        return True

    def get_final_update_data(
        self,
        data: Mapping[str, Any],
        existing: CategoryEntity,
        use_defaults: bool = False,
        missing_only: bool = False,
    ) -> dict[str, Any]:
        """Merge incoming values into an update of `existing`.

        Args:
            data: projected row values
            existing: category being updated
            use_defaults: fall back to configured defaults for absent values
            missing_only: skip fields the existing category already has a value for
        """
        defaults = self.policy.defaults
        newdata: dict[str, Any] = {}
        for field in VALID_FIELDS:
            if missing_only and is_set(existing.value_of(field)):
                continue
            if field in data and is_set(data[field]):
                newdata[field] = data[field]
            elif use_defaults and field in defaults:
                newdata[field] = defaults[field]
        newdata["id"] = existing.id
        return newdata

    def get_final_create_data(self, data: Mapping[str, Any]) -> dict[str, Any]:
        newdata = dict(data)
        for field in VALID_FIELDS:
            if field not in newdata and field in self.policy.defaults:
                newdata[field] = self.policy.defaults[field]
        newdata["parent"] = self.parent_id
        # createall で名前が変わっている場合がある
        newdata["name"] = self.name
        return newdata

    # -- execution -----------------------------------------------------------

    def proceed(self) -> None:
        """Apply the prepared plan with a single store call.

        Store failures become row errors; contract violations raise CodingError.
        """
        if not self._prepared:
            raise CodingError("The category has not been prepared")
        if self.has_errors():
            raise CodingError("Cannot proceed, errors were detected")
        if self._process_started:
            raise CodingError("The process has already been started")
        self._process_started = True

        if self.do is Operation.DELETE:
            if self.existing is None:
                raise CodingError("No existing category to delete")
            try:
                self._store.delete_recursive(self.existing.id)
            except StoreError as e:
                logger.debug("delete failed id=%s: %s", self.existing.id, e)
                self.error(ErrorCode.DELETE_FAILED, str(e))
                return
            self.id = self.existing.id
            self.set_status(StatusCode.DELETED)
        elif self.do is Operation.CREATE:
            try:
                created = self._store.create(self.finaldata)
            except StoreError as e:
                logger.debug("create failed name=%s: %s", self.name, e)
                self.error(ErrorCode.CREATE_FAILED, str(e))
                return
            self.id = created.id
            self.set_status(StatusCode.CREATED)
        elif self.do is Operation.UPDATE:
            try:
                updated = self._store.update(self.finaldata["id"], self.finaldata)
            except StoreError as e:
                logger.debug("update failed id=%s: %s", self.finaldata["id"], e)
                self.error(ErrorCode.UPDATE_FAILED, str(e))
                return
            self.id = updated.id
            self.set_status(StatusCode.UPDATED)
        else:  # pragma: no cover - prepare() always decides
            raise CodingError("Nothing to do for this category")
