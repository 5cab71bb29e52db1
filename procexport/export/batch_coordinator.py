"""BatchExportCoordinator for exporting a list of tables one after another."""

from __future__ import annotations

import inspect
import logging
import os
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from procexport.database.interface import DatabaseInterface
from procexport.export.common.cancellation import CancellationToken, check_cancelled
from procexport.export.common.constants import (
    ErrorKind,
    ExecutionStatus,
    FileFormat,
    OperationMode,
)
from procexport.export.common.exceptions import (
    ErrorContext,
    ExportCancelledError,
    TableExportError,
)
from procexport.export.common.results import ExportErrorInfo, ExportOutcome
from procexport.export.correlation import CorrelationTracker
from procexport.export.export_logger import ExportLogger
from procexport.export.writers.export_file_writer import ExportFileWriter
from procexport.logging_utils import correlation_logger

logger = logging.getLogger(__name__)

ZeroRecordCallback = Callable[[str], Union[bool, Awaitable[bool]]]

SKIPPED_MESSAGE = "Skipped (zero records)"


class BatchExportCoordinator:
    """
    Queries and writes each table of a batch in order.

    Handles:
    - One correlation id per batch, always completed
    - Cancellation checks before every table query
    - Optional zero-record decision per empty table
    - Containing single-table failures so the batch carries on

    Only one table's result set is held at a time.
    """

    def __init__(
        self,
        database: DatabaseInterface,
        writer: Optional[ExportFileWriter] = None,
        tracker: Optional[CorrelationTracker] = None,
        export_logger: Optional[ExportLogger] = None,
    ):
        """
        Initialize BatchExportCoordinator.

        Args:
            database: Source of table result sets
            writer: File writer (a default ExportFileWriter if not provided)
            tracker: Correlation store shared with the caller
            export_logger: Outcome logger
        """
        self.database = database
        self.writer = writer if writer is not None else ExportFileWriter()
        self.tracker = tracker if tracker is not None else CorrelationTracker()
        self.export_logger = export_logger if export_logger is not None else ExportLogger()

    # -------------------------------------------------------------------------
    # Public Interface
    # -------------------------------------------------------------------------

    async def export_all(
        self,
        tables: Sequence[str],
        export_format: FileFormat,
        destination_dir: str | os.PathLike,
        period_start: Optional[str],
        period_end: Optional[str],
        mode: OperationMode,
        cancellation: Optional[CancellationToken] = None,
        zero_record_callback: Optional[ZeroRecordCallback] = None,
    ) -> List[ExportOutcome]:
        """Export every table in ``tables`` and return one outcome per table.

        The caller decides overall success from the returned list. Cancellation
        observed before a table query or during a write raises ExportCancelledError.
        """
        export_format = FileFormat(export_format)
        correlation_id = self.tracker.begin("EXPORT_BATCH")
        outcomes: List[ExportOutcome] = []
        finished = False
        batch_logger = correlation_logger(logger, correlation_id)

        batch_logger.info(
            f"Exporting {len(tables)} table(s) as {export_format} to {destination_dir}"
        )
        try:
            check_cancelled(cancellation)

            for sequence, table in enumerate(tables, start=1):
                check_cancelled(cancellation)
                outcome = await self._export_table(
                    table,
                    export_format,
                    destination_dir,
                    sequence,
                    period_start,
                    period_end,
                    mode,
                    cancellation,
                    zero_record_callback,
                    correlation_id,
                )
                outcomes.append(outcome)
                self.export_logger.log_export_outcome(table, outcome, mode, correlation_id)

                # A write stopped mid-file ends the batch like a stop between tables
                if outcome.is_cancelled:
                    raise ExportCancelledError(
                        outcome.message,
                        context=ErrorContext(
                            table_name=table,
                            correlation_id=correlation_id,
                            operation="export_table",
                        ),
                    )

            finished = True
            succeeded = sum(1 for o in outcomes if o.success)
            batch_logger.info(f"Batch finished: {succeeded}/{len(outcomes)} tables exported")
            return outcomes

        except ExportCancelledError:
            batch_logger.warning(
                f"Batch cancelled after {len(outcomes)} of {len(tables)} tables"
            )
            raise

        finally:
            self.tracker.complete(
                correlation_id, success=finished and all(o.success for o in outcomes)
            )

    async def export_single(
        self,
        table: str,
        export_format: FileFormat,
        destination_dir: str | os.PathLike,
        cancellation: Optional[CancellationToken] = None,
        mode: OperationMode = OperationMode.EXPORT,
    ) -> ExportOutcome:
        """Ad-hoc download of one table as ``{table}_{timestamp}.{ext}``."""
        export_format = FileFormat(export_format)
        correlation_id = self.tracker.begin("EXPORT_TABLE")
        start_time = time.monotonic()
        success = False
        try:
            check_cancelled(cancellation)
            try:
                rows = await self.database.query_table(table, cancellation)
                outcome = await self.writer.write(
                    table,
                    destination_dir,
                    rows,
                    export_format,
                    mode=mode,
                    ad_hoc=True,
                    cancellation=cancellation,
                    correlation_id=correlation_id,
                )
                del rows
            except ExportCancelledError:
                raise
            except Exception as e:
                correlation_logger(logger, correlation_id, table).exception(f"Export failed: {e}")
                outcome = self._failed_outcome(table, export_format, e, start_time, correlation_id)

            success = outcome.success
            self.export_logger.log_export_outcome(table, outcome, mode, correlation_id)
            return outcome
        finally:
            self.tracker.complete(correlation_id, success=success)

    # -------------------------------------------------------------------------
    # Per-table Processing
    # -------------------------------------------------------------------------

    async def _export_table(
        self,
        table: str,
        export_format: FileFormat,
        destination_dir: str | os.PathLike,
        sequence: int,
        period_start: Optional[str],
        period_end: Optional[str],
        mode: OperationMode,
        cancellation: Optional[CancellationToken],
        zero_record_callback: Optional[ZeroRecordCallback],
        correlation_id: str,
    ) -> ExportOutcome:
        start_time = time.monotonic()
        table_logger = correlation_logger(logger, correlation_id, table)
        try:
            rows = await self.database.query_table(table, cancellation)
            try:
                row_count = len(rows)
                table_logger.info(f"Queried {row_count:,} rows")

                if row_count == 0 and zero_record_callback is not None:
                    proceed = zero_record_callback(table)
                    if inspect.isawaitable(proceed):
                        proceed = await proceed
                    if not proceed:
                        table_logger.info("Skipping: zero records")
                        return self._skipped_outcome(table, export_format, start_time)

                return await self.writer.write(
                    table,
                    destination_dir,
                    rows,
                    export_format,
                    sequence,
                    mode=mode,
                    period_start=period_start,
                    period_end=period_end,
                    cancellation=cancellation,
                    correlation_id=correlation_id,
                )
            finally:
                # Release the result set before the next table is queried
                del rows

        except ExportCancelledError:
            raise

        except Exception as e:
            table_logger.exception(f"Export failed: {e}")
            return self._failed_outcome(table, export_format, e, start_time, correlation_id)

    def _failed_outcome(
        self,
        table: str,
        export_format: FileFormat,
        cause: Exception,
        start_time: float,
        correlation_id: str,
    ) -> ExportOutcome:
        error = TableExportError(
            str(cause),
            context=ErrorContext(
                table_name=table,
                correlation_id=correlation_id,
                operation="export_table",
            ),
        )
        return ExportOutcome(
            success=False,
            format=export_format,
            message=f"Failed to export {table}: {cause}",
            elapsed=time.monotonic() - start_time,
            status=ExecutionStatus.ERROR,
            error=ExportErrorInfo(
                kind=ErrorKind.TABLE_EXPORT_FAILED,
                message=str(error),
                exception_type=type(cause).__name__,
            ),
            table_name=table,
        )

    def _skipped_outcome(
        self, table: str, export_format: FileFormat, start_time: float
    ) -> ExportOutcome:
        return ExportOutcome(
            success=True,
            format=export_format,
            message=SKIPPED_MESSAGE,
            file_name=f"{table}_skipped",
            records_exported=0,
            elapsed=time.monotonic() - start_time,
            status=ExecutionStatus.SKIPPED,
            table_name=table,
        )
