from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

from ..db.store import CategoryStore
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.codes import StatusCode
from ..models.import_policy import ImportPolicy
from ..models.processing_result import ImportResult
from .category import CategoryRecord
from .progress import ProgressTracker
from .tracker import Tracker

"""Import run orchestration.

ImportProcessor walks the decoded rows one at a time (later rows may depend on
categories created by earlier ones), turns each into a CategoryRecord, applies
it, and aggregates the run counters.

Row problems never stop the run: they are reported to the tracker and the
error log. ProcessingError (bad header, re-entry) and CodingError abort it.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ProcessingError",
    "RowReader",
    "ImportProcessor",
]


class ProcessingError(Exception):
    """Run-level failure of the processor."""
    pass


class RowReader(Protocol):
    columns: list[str]

    def init(self) -> None: ...

    def next(self) -> Sequence[Any] | None: ...


class ImportProcessor:
    def __init__(
        self,
        reader: RowReader,
        policy: ImportPolicy,
        store: CategoryStore,
        *,
        file_name: str = "",
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.policy = policy
        self.file_name = file_name
        self._reader = reader
        self._store = store
        self._error_log = error_log if error_log is not None else ErrorLogBuffer()
        self.columns = [str(c) for c in (reader.columns or [])]
        if not self.columns:
            raise ProcessingError("cannot_read_tmp_file")
        self._linenum = 0
        self._process_started = False
        self._reader.init()

    def parse_line(self, line: Sequence[Any]) -> dict[str, Any]:
        """Map a row of values to lower-cased, trimmed column names."""
        return {column.strip().lower(): value for column, value in zip(self.columns, line)}

    def execute(self, tracker: Tracker | None = None) -> ImportResult:
        """Import every row of the reader.

        Args:
            tracker: receives one report per row and the final totals

        Returns:
            ImportResult with the run counters

        Raises:
            ProcessingError: when called a second time
        """
        if self._process_started:
            raise ProcessingError("process_already_started")
        self._process_started = True

        start_time = datetime.now(UTC)
        total = created = updated = deleted = errors = 0
        if tracker is not None:
            tracker.start()

        with ProgressTracker(len(self._reader) if hasattr(self._reader, "__len__") else 0) as progress:
            while (line := self._reader.next()) is not None:
                self._linenum += 1
                total += 1
                data = self.parse_line(line)

                record = CategoryRecord(self.policy, data, self._store)
                if record.prepare():
                    record.proceed()

                if record.has_errors():
                    errors += 1
                    self._log_rejected(record)
                    if tracker is not None:
                        tracker.output(self._linenum, False, record.errors, data)
                else:
                    if StatusCode.CREATED in record.statuses:
                        created += 1
                    elif StatusCode.UPDATED in record.statuses:
                        updated += 1
                    elif StatusCode.DELETED in record.statuses:
                        deleted += 1
                    if tracker is not None:
                        merged = {**data, **record.finaldata, "name": record.name, "id": record.get_id()}
                        tracker.output(self._linenum, True, record.statuses, merged)

                progress.advance()
                progress.set_postfix(created=created, updated=updated, deleted=deleted, errors=errors)

        try:
            path = self._error_log.flush()
        except OSError as e:
            # ログ書き込み失敗で実行全体は止めない
            logger.warning("failed to write error log: %s", e)
        else:
            if path is not None and errors:
                logger.info("rejected rows written to %s", path)

        if tracker is not None:
            tracker.results(total, created, updated, deleted, errors)

        end_time = datetime.now(UTC)
        elapsed_seconds = (end_time - start_time).total_seconds()
        throughput_rps = total / elapsed_seconds if elapsed_seconds > 0 else 0.0
        return ImportResult(
            total=total,
            created=created,
            updated=updated,
            deleted=deleted,
            errors=errors,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=elapsed_seconds,
            throughput_rows_per_sec=throughput_rps,
        )

    def _log_rejected(self, record: CategoryRecord) -> None:
        for code, message in record.errors.items():
            logger.debug("line %s rejected: %s", self._linenum, code)
            self._error_log.append(
                ErrorRecord.create(
                    file=self.file_name,
                    line=self._linenum,
                    error_code=str(code),
                    message=message,
                )
            )
