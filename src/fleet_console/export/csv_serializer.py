"""CSV serialization of exported records."""

import csv
import io
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from ..config.logging_config import get_logger
from .columns import Column
from .download import DownloadSurface
from .formatters import is_missing

logger = get_logger("csv")

MISSING = "N/A"
CSV_MIME_TYPE = "text/csv;charset=utf-8;"


def render_cell(value: Any, default: str = MISSING) -> str:
    """Text for one cell; missing values become the column default."""
    if is_missing(value):
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_csv(records: Iterable[Mapping[str, Any]], columns: Sequence[Column]) -> str:
    """
    Serialize records to CSV text.

    Every cell, the header included, is double-quoted with embedded quotes
    doubled. Rows are joined with "\\n" and there is no trailing newline.

    Args:
        records: Records to serialize, in output order.
        columns: Column specs (header and extractor).

    Returns:
        CSV text.
    """
    headers = [column.header for column in columns]
    rows = [
        [render_cell(column.extract(record), column.default) for column in columns]
        for record in records
    ]
    df = pd.DataFrame(rows, columns=headers, dtype=object)

    with io.StringIO() as buffer:
        df.to_csv(buffer, index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
        text = buffer.getvalue()
    return text[:-1] if text.endswith("\n") else text


def generate_filename(entity: str, count: Optional[int] = None, today: Optional[date] = None) -> str:
    """Generate export filename: <entity>_export_<ISODate>[_<count>_entries].csv"""
    stamp = (today or date.today()).isoformat()
    if count is not None:
        return f"{entity}_export_{stamp}_{count}_entries.csv"
    return f"{entity}_export_{stamp}.csv"


class CsvSerializer:
    """Turns records into CSV and hands the bytes to a download surface."""

    def __init__(self, columns: Sequence[Column], surface: DownloadSurface):
        self.columns: List[Column] = list(columns)
        self.surface = surface

    def to_csv(self, records: Iterable[Mapping[str, Any]]) -> str:
        return to_csv(records, self.columns)

    def download(
        self,
        records: Sequence[Mapping[str, Any]],
        entity: str,
        include_count: bool = False,
        today: Optional[date] = None,
    ) -> str:
        """
        Serialize and save records as a download.

        Args:
            records: Records to export.
            entity: Filename prefix.
            include_count: Append the record count to the filename.
            today: Date used in the filename (defaults to today).

        Returns:
            The download filename.
        """
        filename = generate_filename(entity, len(records) if include_count else None, today)
        data = self.to_csv(records).encode("utf-8")
        self.surface.save(data, CSV_MIME_TYPE, filename)
        logger.info(f"Exported {len(records):,} records to {filename}")
        return filename
