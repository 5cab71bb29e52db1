"""File writers for the export framework."""

from procexport.export.writers.export_file_writer import (
    ExportFileWriter,
    format_cell,
)

__all__ = [
    "ExportFileWriter",
    "format_cell",
]
