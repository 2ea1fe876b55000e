"""Domain models for the course category uploader.

Policy, entity, per-row codes and run results shared by the services layer.
"""

from .category import ROOT_ID, UNRESOLVED_PARENT, VALID_FIELDS, CategoryEntity
from .codes import ErrorCode, StatusCode
from .error_record import ErrorRecord
from .import_policy import ImportMode, ImportPolicy, UpdateMode
from .processing_result import ImportResult

__all__ = [
    # Policy
    "ImportMode",
    "ImportPolicy",
    "UpdateMode",
    # Categories
    "CategoryEntity",
    "ROOT_ID",
    "UNRESOLVED_PARENT",
    "VALID_FIELDS",
    # Outcomes
    "ErrorCode",
    "StatusCode",
    "ErrorRecord",
    "ImportResult",
]
