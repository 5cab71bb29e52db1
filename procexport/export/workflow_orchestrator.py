"""WorkflowOrchestrator for execute-then-export runs."""

from __future__ import annotations

import logging
import os
import time
from typing import Optional, Sequence

from procexport.database.interface import DatabaseInterface
from procexport.export.batch_coordinator import BatchExportCoordinator, ZeroRecordCallback
from procexport.export.common.cancellation import CancellationToken, check_cancelled
from procexport.export.common.catalog import ProcedureSpec
from procexport.export.common.constants import ErrorKind, FileFormat, OperationMode
from procexport.export.common.exceptions import (
    ExportCancelledError,
    ExportValidationError,
    ParameterBindingError,
)
from procexport.export.common.param_resolver import bind_parameters
from procexport.export.common.results import (
    ExecutionOutcome,
    ExportErrorInfo,
    WorkflowOutcome,
)
from procexport.export.correlation import CorrelationTracker
from procexport.export.export_logger import ExportLogger
from procexport.export.export_validator import ExportValidator
from procexport.logging_utils import correlation_logger

logger = logging.getLogger(__name__)


class WorkflowOrchestrator:
    """
    Runs a stored procedure and then exports the tables it populated.

    Handles:
    - Positional binding of the period tokens
    - Skipping export entirely when execution fails
    - Spreadsheet row-limit validation before any file is written
    - Aggregating per-table outcomes into one WorkflowOutcome
    """

    def __init__(
        self,
        database: DatabaseInterface,
        coordinator: Optional[BatchExportCoordinator] = None,
        validator: Optional[ExportValidator] = None,
        tracker: Optional[CorrelationTracker] = None,
        export_logger: Optional[ExportLogger] = None,
    ):
        """
        Initialize WorkflowOrchestrator.

        Args:
            database: Database used for the execution step
            coordinator: Batch coordinator for the export step
            validator: Pre-flight validator (built from ``database`` if not provided)
            tracker: Correlation store shared with the coordinator
            export_logger: Outcome logger shared with the coordinator
        """
        self.database = database
        self.tracker = tracker if tracker is not None else CorrelationTracker()
        self.export_logger = export_logger if export_logger is not None else ExportLogger()
        if coordinator is None:
            coordinator = BatchExportCoordinator(
                database, tracker=self.tracker, export_logger=self.export_logger
            )
        self.coordinator = coordinator
        self.validator = validator if validator is not None else ExportValidator(database)

    async def execute(
        self,
        procedure: ProcedureSpec,
        period_start: Optional[str],
        period_end: Optional[str],
        mode: OperationMode,
        cancellation: Optional[CancellationToken] = None,
        correlation_id: Optional[str] = None,
    ) -> ExecutionOutcome:
        """Bind parameters and run the procedure. Binding errors become a failed outcome."""
        start_time = time.monotonic()
        try:
            parameters = bind_parameters(procedure, period_start, period_end)
        except ParameterBindingError as e:
            outcome = ExecutionOutcome(
                success=False,
                message=e.message,
                elapsed=time.monotonic() - start_time,
                error=ExportErrorInfo.from_exception(ErrorKind.EXECUTION_FAILED, e),
            )
            self.export_logger.log_execution_outcome(procedure.name, outcome, mode, correlation_id)
            return outcome

        self.export_logger.log_execution_start(procedure.name, parameters, mode, correlation_id)
        outcome = await self.database.execute_procedure(procedure.name, parameters, cancellation)
        self.export_logger.log_execution_outcome(procedure.name, outcome, mode, correlation_id)
        return outcome

    async def run_workflow(
        self,
        procedure: ProcedureSpec,
        period_start: Optional[str],
        period_end: Optional[str],
        tables: Sequence[str],
        export_format: FileFormat,
        destination_dir: str | os.PathLike,
        mode: OperationMode,
        cancellation: Optional[CancellationToken] = None,
        zero_record_callback: Optional[ZeroRecordCallback] = None,
    ) -> WorkflowOutcome:
        """Execute ``procedure`` then export ``tables``.

        Raises:
            ExportValidationError: If a spreadsheet export would exceed the row ceiling
            ExportCancelledError: If the run is cancelled
        """
        export_format = FileFormat(export_format)
        correlation_id = self.tracker.begin("WORKFLOW")
        outcome = WorkflowOutcome(correlation_id=correlation_id)
        start_time = time.monotonic()
        workflow_logger = correlation_logger(logger, correlation_id)

        workflow_logger.info(
            f"Starting workflow: {procedure.name} "
            f"({period_start} - {period_end}), {len(tables)} table(s) as {export_format}"
        )
        try:
            check_cancelled(cancellation)

            execution = await self.execute(
                procedure, period_start, period_end, mode, cancellation, correlation_id
            )
            outcome.execution_outcome = execution
            if not execution.success:
                outcome.success = False
                outcome.error_message = execution.message
                return outcome

            if not tables:
                outcome.success = True
                outcome.summary = (
                    f"WORKFLOW COMPLETE: execution only | "
                    f"{execution.records_affected:,} records affected"
                )
                return outcome

            if export_format == FileFormat.XLSX:
                validation = await self.validator.validate_for_format(tables, export_format)
                self.export_logger.log_validation_outcome(validation, mode, correlation_id)
                validation.raise_if_invalid()

            outcome.export_outcomes = await self.coordinator.export_all(
                tables,
                export_format,
                destination_dir,
                period_start,
                period_end,
                mode,
                cancellation,
                zero_record_callback,
            )

            outcome.success = outcome.successful_exports > 0
            outcome.summary = (
                f"WORKFLOW COMPLETE: {outcome.successful_exports}/{len(tables)} tables | "
                f"{outcome.total_records:,} records | Path: {destination_dir}"
            )
            if not outcome.success:
                outcome.error_message = "No tables were exported successfully"
            return outcome

        except (ExportCancelledError, ExportValidationError):
            outcome.success = False
            raise

        except Exception as e:
            workflow_logger.exception(f"Workflow failed: {e}")
            outcome.success = False
            outcome.error_message = str(e)
            return outcome

        finally:
            elapsed = time.monotonic() - start_time
            workflow_logger.info(f"Workflow finished in {elapsed:.2f}s (success={outcome.success})")
            self.tracker.complete(correlation_id, success=outcome.success)
            self.export_logger.log_workflow_outcome(outcome, mode)
