from __future__ import annotations

from enum import Enum
from typing import Any

"""Error and status codes reported per imported row.

Each code carries a human readable template. Templates with placeholders
(e.g. {from} / {to}) are rendered through `message(**params)`.
"""

__all__ = [
    "ErrorCode",
    "StatusCode",
]


class _Code(str, Enum):
    template: str

    def __new__(cls, code: str, template: str) -> _Code:
        obj = str.__new__(cls, code)
        obj._value_ = code
        obj.template = template
        return obj

    def message(self, **params: Any) -> str:
        return self.template.format(**params) if params else self.template

    def __str__(self) -> str:
        return self.value


class ErrorCode(_Code):
    """Reasons a row is rejected (validation) or fails while being applied (store)."""
    MISSING_MANDATORY_FIELDS = (
        "missingmandatoryfields", "Missing value for mandatory fields: name")
    IDNUMBER_NOT_A_NUMBER = (
        "idnumbernotanumber", "The category ID number must be a number")
    MISSING_CATEGORY_PARENT = (
        "missingcategoryparent", "One of the parent categories does not exist")
    CANNOT_DELETE_NOT_EXIST = (
        "cannotdeletecategorynotexist", "Cannot delete a category that does not exist")
    DELETION_NOT_ALLOWED = (
        "categorydeletionnotallowed", "Category deletion is not allowed")
    EXISTS_AND_UPLOAD_NOT_ALLOWED = (
        "categoryexistsanduploadnotallowed",
        "The category already exists and the import mode does not allow updates")
    NOT_EXIST_AND_CREATE_NOT_ALLOWED = (
        "categorydoesnotexistandcreatenotallowed",
        "The category does not exist and the import mode does not allow creation")
    RENAME_NAME_IN_USE = (
        "cannotrenamenamealreadyinuse", "Cannot rename the category, the name is already in use")
    OLD_HIERARCHY_NOT_EXIST = (
        "oldcategoryhierarchydoesnotexist", "The hierarchy of the old category does not exist")
    RENAME_ONLY_IN_UPDATE_MODE = (
        "canonlyrenameinupdatemode", "Categories can only be renamed when updates are allowed")
    RENAME_OLD_NOT_EXIST = (
        "cannotrenameoldcategorynotexist",
        "Cannot rename the category, the old category does not exist")
    RENAMING_NOT_ALLOWED = (
        "categoryrenamingnotallowed", "Category renaming is not allowed")
    IDNUMBER_ALREADY_EXISTS = (
        "idnumberalreadyexists", "The ID number is already used by another category")
    IDNUMBER_NOT_UNIQUE = (
        "idnumbernotunique", "The ID number is already used by another category")
    UPDATE_MODE_NOTHING = (
        "updatemodedoessettonothing", "The update mode does not allow anything to be updated")
    CANNOT_UPDATE_FRONT_PAGE = (
        "cannotupdatefrontpage", "The root category cannot be modified")
    DELETE_FAILED = (
        "errorwhiledeletingcourse", "Error while deleting the category")
    CREATE_FAILED = (
        "errorwhilecreatingcourse", "Error while creating the category")
    UPDATE_FAILED = (
        "errorwhileupdatingcourse", "Error while updating the category")


class StatusCode(_Code):
    """Informational outcome of a successfully processed row."""
    RENAMED = ("coursecategoryrenamed", "Category renamed from '{from}' to '{to}'")
    CREATED = ("coursecategoriescreated", "Category created")
    UPDATED = ("coursecategoryupdated", "Category updated")
    DELETED = ("coursecategorydeleted", "Category deleted")
