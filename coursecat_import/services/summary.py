from __future__ import annotations

from ..models.processing_result import ImportResult

"""SUMMARY line rendering.

    SUMMARY rows=N created=C updated=U deleted=D errors=E elapsed_sec=S throughput_rps=R
"""

__all__ = [
    "render_summary_line",
    "format_number",
]


def format_number(value: float) -> str:
    """Integers without decimals, tiny values without scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line of a run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ImportResult(
        ...     total=10, created=6, updated=2, deleted=1, errors=1,
        ...     start_time=start, end_time=end,
        ...     elapsed_seconds=2.0, throughput_rows_per_sec=5.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY rows=10 created=6 updated=2 deleted=1 errors=1 elapsed_sec=2 throughput_rps=5'
    """
    return (
        f"SUMMARY rows={result.total} "
        f"created={result.created} "
        f"updated={result.updated} "
        f"deleted={result.deleted} "
        f"errors={result.errors} "
        f"elapsed_sec={format_number(result.elapsed_seconds)} "
        f"throughput_rps={format_number(result.throughput_rows_per_sec)}"
    )
