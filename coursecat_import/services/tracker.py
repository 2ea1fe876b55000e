from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, TextIO

"""Plain text per-row report of an import run.

    line    result  name    idnumber        id
    1       OK      Science N/A     12
      Category created
    2       NOK     Physics 0042
      ID number is already used by another category

The tracker only prints what it is given; it makes no decisions.
"""

__all__ = [
    "OutputMode",
    "Tracker",
]

COLUMNS = ("line", "result", "name", "idnumber", "id")


class OutputMode(Enum):
    NONE = 0
    PLAIN = 1


class Tracker:
    def __init__(self, output_mode: OutputMode = OutputMode.PLAIN, stream: TextIO | None = None) -> None:
        self.output_mode = output_mode
        self._stream = stream  # None = sys.stdout at print time

    def _print(self, text: str, depth: int = 0) -> None:
        print("  " * depth + text, file=self._stream)

    def start(self) -> None:
        if self.output_mode is OutputMode.NONE:
            return
        self._print("\t".join(COLUMNS))

    def output(self, line: int, outcome: bool, status: Mapping[Any, str] | Iterable[str], data: Mapping[str, Any]) -> None:
        """Print one row result followed by its status / error messages."""
        if self.output_mode is OutputMode.NONE:
            return
        idnumber = data.get("idnumber")
        fields = [
            str(line),
            "OK" if outcome else "NOK",
            str(data.get("name") or ""),
            str(idnumber) if idnumber not in (None, "") else "N/A",
            str(data.get("id") if data.get("id") is not None else ""),
        ]
        self._print("\t".join(fields))
        messages = status.values() if isinstance(status, Mapping) else status
        for message in messages:
            self._print(message, depth=1)

    def results(self, total: int, created: int, updated: int, deleted: int, errors: int) -> None:
        if self.output_mode is OutputMode.NONE:
            return
        for text in (
            "",
            f"Course categories created: {created}",
            f"Course categories updated: {updated}",
            f"Course categories deleted: {deleted}",
            "",
            f"Total: {total}",
            f"Errors: {errors}",
        ):
            self._print(text)
