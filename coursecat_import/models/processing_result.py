from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Run totals returned by ImportProcessor.execute().

The counters mirror what the tracker prints at the end of a run. Categories
created implicitly as missing parents are not counted.
"""

__all__ = [
    "ImportResult",
]


@dataclass(frozen=True)
class ImportResult:
    """Aggregated outcome of one import run."""
    total: int  # 処理した行数
    created: int
    updated: int
    deleted: int
    errors: int  # rejected or failed rows
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float

    @property
    def succeeded(self) -> int:
        return self.created + self.updated + self.deleted
