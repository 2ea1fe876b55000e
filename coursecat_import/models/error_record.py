from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the rejected-row log.

Each row that fails validation or cannot be written to the store produces one
ErrorRecord, serialized as one JSON line. `line` is the 1-based data line of the
import file; -1 is used for run-level problems where no line applies.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: import file name
        line: data line number (1-based), -1 when unknown
        error_code: row error code (e.g. "idnumbernotunique")
        message: human readable message
    """
    timestamp: str  # ISO8601 UTC
    file: str
    line: int
    error_code: str
    message: str

    @staticmethod
    def create(file: str, line: int, error_code: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            line=line,
            error_code=str(error_code),
            message=message,
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
