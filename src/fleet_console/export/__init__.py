"""CSV export: column specs, serialization, download surfaces and orchestration."""

from .columns import Column, field_column, get_columns, COLUMN_SPECS
from .csv_serializer import (
    CsvSerializer,
    to_csv,
    render_cell,
    generate_filename,
    CSV_MIME_TYPE,
    MISSING,
)
from .download import DownloadSurface, FileDownloadSurface
from .orchestrator import (
    ExportOrchestrator,
    ExportOutcome,
    ExportState,
    ExportJob,
    JobPhase,
)

__all__ = [
    # Columns
    "Column",
    "field_column",
    "get_columns",
    "COLUMN_SPECS",
    # Serialization
    "CsvSerializer",
    "to_csv",
    "render_cell",
    "generate_filename",
    "CSV_MIME_TYPE",
    "MISSING",
    # Download
    "DownloadSurface",
    "FileDownloadSurface",
    # Orchestration
    "ExportOrchestrator",
    "ExportOutcome",
    "ExportState",
    "ExportJob",
    "JobPhase",
]
