"""
CSV export of record lists.

The header row holds the column labels; every data field is double-quoted
with embedded quotes doubled, so commas and newlines inside values are safe.
"""

from __future__ import annotations

import csv
import io
import logging
import os
import time
from typing import Any, Iterable, List, Optional, Sequence

from quickfolio.table.columns import DEFAULT_DATE_FORMAT, Column, EntityType

logger = logging.getLogger("quickfolio.table.export")


def to_csv(
    records: Iterable[Any],
    columns: Sequence[Column],
    date_format: str = DEFAULT_DATE_FORMAT,
) -> str:
    """
    Render ``records`` as a CSV document. The header is always present and
    lines are joined by ``\\n`` with no newline after the last one.
    """
    buffer = io.StringIO()

    header = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    header.writerow([column.label for column in columns])

    rows = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for record in records:
        rows.writerow([column.format(record, date_format) for column in columns])

    return buffer.getvalue().removesuffix("\n")


def export_filename(entity: EntityType, now: Optional[float] = None) -> str:
    """``<entities>-export-<unix ms>.csv``; ``now`` is a unix timestamp in seconds."""
    timestamp = time.time() if now is None else now
    return f"{EntityType(entity).plural}-export-{int(timestamp * 1000)}.csv"


def write_csv(
    path: str,
    records: Iterable[Any],
    columns: Sequence[Column],
    date_format: str = DEFAULT_DATE_FORMAT,
) -> int:
    """Write the CSV document to ``path`` (UTF-8). Returns the data row count."""
    records: List[Any] = list(records)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(to_csv(records, columns, date_format))

    logger.info(f"Exported {len(records)} rows to {path}")
    return len(records)
