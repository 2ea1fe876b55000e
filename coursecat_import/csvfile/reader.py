from __future__ import annotations

import codecs
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

"""Delimited text reader feeding the import processor.

The whole file is read with pandas (every cell as a string, no NA conversion)
and then handed out row by row through `next()`, mirroring a cursor-style
reader: `columns` holds the header, `next()` returns the next row of values or
None at the end, `init()` rewinds.
"""

__all__ = [
    "DELIMITERS",
    "CsvReadError",
    "CsvImportReader",
    "read_csv_file",
]

DELIMITERS: dict[str, str] = {
    "comma": ",",
    "semicolon": ";",
    "colon": ":",
    "tab": "\t",
    "cfg": ",",  # site default
}


class CsvReadError(Exception):
    """Raised when the file cannot be decoded into a header and rows."""


@dataclass
class CsvImportReader:
    columns: list[str]
    rows: list[list[str]] = field(default_factory=list)
    _position: int = 0

    def init(self) -> None:
        """Rewind to the first data row."""
        self._position = 0

    def next(self) -> list[str] | None:
        if self._position >= len(self.rows):
            return None
        row = self.rows[self._position]
        self._position += 1
        return row

    def __len__(self) -> int:
        return len(self.rows)

    @classmethod
    def from_path(cls, path: Path, delimiter: str = "comma", encoding: str = "UTF-8") -> CsvImportReader:
        return read_csv_file(path, delimiter=delimiter, encoding=encoding)


def read_csv_file(path: Path, delimiter: str = "comma", encoding: str = "UTF-8") -> CsvImportReader:
    """Read a delimited file into a CsvImportReader.

    Parameters
    ----------
    path: file to read
    delimiter: one of DELIMITERS (comma, semicolon, colon, tab, cfg)
    encoding: any codec name known to Python

    Raises
    ------
    CsvReadError: unknown delimiter/encoding, empty file or malformed content
    """
    if delimiter not in DELIMITERS:
        raise CsvReadError(f"invalid delimiter: {delimiter}")
    try:
        codecs.lookup(encoding)
    except LookupError as e:
        raise CsvReadError(f"invalid encoding: {encoding}") from e

    try:
        df = pd.read_csv(
            path,
            sep=DELIMITERS[delimiter],
            encoding=encoding,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as e:
        raise CsvReadError(f"csvemptyfile: {path}") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise CsvReadError(f"csvfileerror: {e}") from e
    except OSError as e:
        raise CsvReadError(f"cannot read file: {e}") from e

    # BOM 付き UTF-8 の先頭列名を補正
    columns = [str(c).lstrip("\ufeff").strip() for c in df.columns]
    rows = [list(values) for values in df.itertuples(index=False, name=None)]
    return CsvImportReader(columns=columns, rows=rows)
