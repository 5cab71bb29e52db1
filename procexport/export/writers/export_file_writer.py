"""ExportFileWriter for writing query results to spreadsheet and delimited files."""

from __future__ import annotations

import asyncio
import csv
import logging
import math
import os
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

import pandas as pd
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from procexport.export.common.cancellation import CancellationToken, check_cancelled
from procexport.export.common.constants import (
    CANCELLATION_CHECK_INTERVAL,
    DEFAULT_BATCH_SIZE,
    EXCEL_MAX_DATA_ROWS,
    ErrorKind,
    ExecutionStatus,
    FileFormat,
    OperationMode,
)
from procexport.export.common.exceptions import ExportCancelledError
from procexport.export.common.file_utils import (
    generate_ad_hoc_file_name,
    generate_batch_file_name,
)
from procexport.export.common.results import ExportErrorInfo, ExportOutcome
from procexport.logging_utils import correlation_logger

logger = logging.getLogger(__name__)

FORMAT_LABELS = {
    FileFormat.XLSX: "Excel",
    FileFormat.CSV: "CSV",
    FileFormat.TXT: "TXT",
}

HEADER_FONT = Font(bold=True, size=11)

# Excel rejects these in sheet titles and caps them at 31 characters
_INVALID_SHEET_CHARS = set('[]:*?/\\')
_MAX_SHEET_NAME = 31
_MAX_COLUMN_WIDTH = 60
_COLUMN_SAMPLE_ROWS = 100


@dataclass
class WriteProgress:
    """Rows flushed so far, readable after a cancelled write."""

    rows_written: int = 0


def format_cell(value: Any) -> str:
    """Render a cell for delimited output. Missing values become ``""``."""
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def excel_row_limit_message(row_count: int) -> str:
    return (
        f"Excel format supports maximum {EXCEL_MAX_DATA_ROWS:,} data rows. "
        f"Current data has {row_count:,} rows. Please use CSV format or filter the data."
    )


def _sheet_name(table_name: str) -> str:
    cleaned = "".join("_" if ch in _INVALID_SHEET_CHARS else ch for ch in table_name)
    return (cleaned or "Sheet1")[:_MAX_SHEET_NAME]


class ExportFileWriter:
    """Writes one table's result set to a single file.

    Features:
    - Spreadsheet (xlsx) output with a hard row ceiling checked up front
    - Comma (csv) and tab (txt) delimited output with chunked cancellation polling
    - Batch (EX_JAN25_01-31_1.csv) and ad-hoc (Orders_20250131_142530.csv) naming
    - Failures are returned as outcomes, never raised
    """

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize ExportFileWriter.

        Args:
            batch_size: Row interval for progress logging on large writes.
            clock: Source of "now" for timestamped file names.
        """
        self.batch_size = batch_size
        self._clock = clock

    # -------------------------------------------------------------------------
    # Public Interface
    # -------------------------------------------------------------------------

    def build_file_name(
        self,
        table_name: str,
        export_format: FileFormat,
        sequence: int = 1,
        mode: OperationMode = OperationMode.EXPORT,
        period_start: Optional[str] = None,
        period_end: Optional[str] = None,
        ad_hoc: bool = False,
    ) -> str:
        if ad_hoc:
            return generate_ad_hoc_file_name(table_name, export_format, now=self._clock())
        return generate_batch_file_name(
            mode, export_format, period_start, period_end, sequence, now=self._clock()
        )

    async def write(
        self,
        table_name: str,
        destination_dir: str | os.PathLike,
        rows: pd.DataFrame,
        export_format: FileFormat,
        sequence: int = 1,
        *,
        mode: OperationMode = OperationMode.EXPORT,
        period_start: Optional[str] = None,
        period_end: Optional[str] = None,
        ad_hoc: bool = False,
        cancellation: Optional[CancellationToken] = None,
        correlation_id: Optional[str] = None,
    ) -> ExportOutcome:
        """Write ``rows`` to ``destination_dir`` in ``export_format``.

        Args:
            table_name: Source table, used for ad-hoc names and the sheet title
            destination_dir: Output directory, created if missing
            rows: Result set to write
            export_format: xlsx, csv or txt
            sequence: 1-based position of the table within its batch
            mode: Export or import, selects the EX/IM prefix
            period_start: YYYYMMDD start token for the file name
            period_end: YYYYMMDD end token for the file name
            ad_hoc: Use ``{table}_{timestamp}`` naming instead of the batch pattern
            cancellation: Token polled between phases and row chunks
            correlation_id: Included in log lines only

        Returns:
            ExportOutcome describing the written file or the failure
        """
        export_format = FileFormat(export_format)
        start_time = time.monotonic()
        write_logger = correlation_logger(logger, correlation_id, table_name)
        row_count = len(rows)

        file_name = self.build_file_name(
            table_name, export_format, sequence, mode, period_start, period_end, ad_hoc
        )
        full_path = Path(destination_dir) / file_name

        # Checked before any directory, workbook or buffer is created
        if export_format == FileFormat.XLSX and row_count > EXCEL_MAX_DATA_ROWS:
            message = excel_row_limit_message(row_count)
            write_logger.error(message)
            return ExportOutcome(
                success=False,
                format=export_format,
                message=message,
                file_name=file_name,
                elapsed=time.monotonic() - start_time,
                status=ExecutionStatus.ERROR,
                error=ExportErrorInfo(kind=ErrorKind.ROW_LIMIT_EXCEEDED, message=message),
                table_name=table_name,
            )

        label = FORMAT_LABELS[export_format]
        progress = WriteProgress()
        try:
            check_cancelled(cancellation)
            os.makedirs(destination_dir, exist_ok=True)
            write_logger.info(f"Starting {label} export with {row_count:,} rows...")

            if export_format == FileFormat.XLSX:
                written = await asyncio.to_thread(
                    self._write_xlsx, full_path, table_name, rows, cancellation
                )
            else:
                written = await asyncio.to_thread(
                    self._write_delimited, full_path, rows, export_format, cancellation, progress
                )

            elapsed = time.monotonic() - start_time
            file_size = full_path.stat().st_size
            write_logger.info(
                f"{label} export completed: {file_name} "
                f"({written:,} rows, {file_size / 1024.0 / 1024.0:.2f} MB, {elapsed:.2f}s)"
            )
            return ExportOutcome(
                success=True,
                format=export_format,
                message=f"Successfully exported {written:,} records to {label} in {elapsed:.2f}s",
                file_path=str(full_path),
                file_name=file_name,
                file_size_bytes=file_size,
                records_exported=written,
                elapsed=elapsed,
                status=ExecutionStatus.SUCCESS,
                table_name=table_name,
            )

        except ExportCancelledError as e:
            # The partial file stays on disk for the caller to inspect
            elapsed = time.monotonic() - start_time
            write_logger.warning(
                f"{label} export cancelled after {progress.rows_written:,} rows ({elapsed:.2f}s)"
            )
            return ExportOutcome(
                success=False,
                format=export_format,
                message=e.message,
                file_path=str(full_path) if full_path.exists() else None,
                file_name=file_name,
                records_exported=progress.rows_written,
                elapsed=elapsed,
                status=ExecutionStatus.CANCELLED,
                error=ExportErrorInfo.from_exception(ErrorKind.CANCELLED, e),
                table_name=table_name,
            )

        except Exception as e:
            return self._handle_write_error(e, table_name, export_format, file_name, start_time, write_logger)

    # -------------------------------------------------------------------------
    # Format Writers
    # -------------------------------------------------------------------------

    def _write_xlsx(
        self,
        path: Path,
        table_name: str,
        rows: pd.DataFrame,
        cancellation: Optional[CancellationToken],
    ) -> int:
        """Write a workbook with one sheet. Cancellation is checked per phase."""
        sheet = _sheet_name(table_name)

        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            rows.to_excel(writer, sheet_name=sheet, index=False)
            check_cancelled(cancellation)  # load

            worksheet = writer.sheets[sheet]
            for cell in worksheet[1]:
                cell.font = HEADER_FONT
            check_cancelled(cancellation)  # header

            self._size_columns(worksheet, rows)
            check_cancelled(cancellation)  # columns

            logger.info(f"Writing Excel file to disk: {path.name}")

        return len(rows)

    def _size_columns(self, worksheet, rows: pd.DataFrame) -> None:
        sample = rows.head(_COLUMN_SAMPLE_ROWS)
        for index, column in enumerate(rows.columns, start=1):
            longest = max(
                [len(str(column))] + [len(format_cell(v)) for v in sample.iloc[:, index - 1]]
            )
            worksheet.column_dimensions[get_column_letter(index)].width = min(longest + 2, _MAX_COLUMN_WIDTH)

    def _write_delimited(
        self,
        path: Path,
        rows: pd.DataFrame,
        export_format: FileFormat,
        cancellation: Optional[CancellationToken],
        progress: Optional[WriteProgress] = None,
    ) -> int:
        """Write csv or tab-delimited text, polling cancellation every chunk.

        ``progress.rows_written`` tracks the data rows already emitted so a
        cancelled write can report how much of the file is on disk.
        """
        if progress is None:
            progress = WriteProgress()
        total = len(rows)
        total_batches = max(1, math.ceil(total / self.batch_size))
        written = 0

        with open(path, "w", encoding="utf-8", newline="") as handle:
            if export_format == FileFormat.CSV:
                csv_writer = csv.writer(handle, delimiter=",", quotechar='"', lineterminator="\n")

                def emit(values):
                    csv_writer.writerow(values)
            else:
                def emit(values):
                    handle.write("\t".join(values) + "\n")

            emit([str(column) for column in rows.columns])

            for start in range(0, total, CANCELLATION_CHECK_INTERVAL):
                check_cancelled(cancellation)
                chunk = rows.iloc[start:start + CANCELLATION_CHECK_INTERVAL]
                for record in chunk.itertuples(index=False, name=None):
                    emit([format_cell(value) for value in record])
                written += len(chunk)
                progress.rows_written = written

                if written % self.batch_size == 0 or written == total:
                    current_batch = math.ceil(written / self.batch_size)
                    logger.debug(f"Processed batch {current_batch}/{total_batches} ({written:,} of {total:,})")

        return written

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------

    def _handle_write_error(
        self,
        error: Exception,
        table_name: str,
        export_format: FileFormat,
        file_name: str,
        start_time: float,
        write_logger: logging.LoggerAdapter,
    ) -> ExportOutcome:
        """Convert an unexpected write error into a failed outcome."""
        elapsed = time.monotonic() - start_time
        write_logger.exception(f"Failed to export to {FORMAT_LABELS[export_format]}: {error}")
        return ExportOutcome(
            success=False,
            format=export_format,
            message=str(error),
            file_name=file_name,
            elapsed=elapsed,
            status=ExecutionStatus.ERROR,
            error=ExportErrorInfo.from_exception(ErrorKind.WRITE_FAILED, error),
            table_name=table_name,
        )
