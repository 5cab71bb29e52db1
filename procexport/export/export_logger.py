"""ExportLogger for recording execution and export outcomes."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from procexport.export.common.constants import OperationMode
from procexport.export.common.results import (
    ExecutionOutcome,
    ExportOutcome,
    ValidationOutcome,
    WorkflowOutcome,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEntry:
    """One recorded activity line."""

    timestamp: datetime
    level: int
    mode: Optional[OperationMode]
    message: str
    correlation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": logging.getLevelName(self.level),
            "mode": str(self.mode) if self.mode else None,
            "message": self.message,
            "correlation_id": self.correlation_id,
        }


class ExportLogger:
    """
    Records pipeline activity to the standard logger and an in-memory history.

    Tracks:
    - Stored procedure execution (start and outcome)
    - Per-table export outcomes
    - Validation rejections
    - Workflow summaries

    Logging never fails an operation: any error raised while recording is
    dropped after a debug line.
    """

    def __init__(self, max_entries: int = 1000):
        """
        Initialize ExportLogger.

        Args:
            max_entries: Size of the in-memory history kept for callers
        """
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries)
        self.logger = logger

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def _record(
        self,
        level: int,
        message: str,
        mode: Optional[OperationMode] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        try:
            prefix = f"[{correlation_id}] " if correlation_id else ""
            self.logger.log(level, f"{prefix}{message}")
            self._entries.append(
                LogEntry(
                    timestamp=datetime.now(),
                    level=level,
                    mode=mode,
                    message=message,
                    correlation_id=correlation_id,
                )
            )
        except Exception as e:
            self.logger.debug(f"Dropped log entry: {e}")

    def log_execution_start(
        self,
        procedure_name: str,
        parameters: Dict[str, Any],
        mode: OperationMode,
        correlation_id: Optional[str] = None,
    ):
        self._record(
            logging.INFO,
            f"Executing stored procedure: {procedure_name} with parameters {parameters}",
            mode,
            correlation_id,
        )

    def log_execution_outcome(
        self,
        procedure_name: str,
        outcome: ExecutionOutcome,
        mode: OperationMode,
        correlation_id: Optional[str] = None,
    ):
        """
        Log the result of a stored procedure run.

        Args:
            procedure_name: Procedure that ran
            outcome: ExecutionOutcome returned by the database
            mode: Operation mode of the run
            correlation_id: Workflow correlation id
        """
        if outcome.success:
            self._record(
                logging.INFO,
                f"Stored procedure {procedure_name} completed: "
                f"{outcome.records_affected:,} records affected in {outcome.elapsed:.2f}s",
                mode,
                correlation_id,
            )
        else:
            self._record(
                logging.ERROR,
                f"Stored procedure {procedure_name} failed: {outcome.message}",
                mode,
                correlation_id,
            )

    def log_export_outcome(
        self,
        table_name: str,
        outcome: ExportOutcome,
        mode: OperationMode,
        correlation_id: Optional[str] = None,
    ):
        """
        Log one table's export result.

        Args:
            table_name: Exported table
            outcome: ExportOutcome from the writer or coordinator
            mode: Operation mode of the run
            correlation_id: Batch correlation id
        """
        if outcome.success:
            self._record(
                logging.INFO,
                f"{table_name}: {outcome.message} ({outcome.file_name})",
                mode,
                correlation_id,
            )
        elif outcome.is_cancelled:
            self._record(logging.WARNING, f"{table_name}: {outcome.message}", mode, correlation_id)
        else:
            self._record(
                logging.ERROR,
                f"{table_name}: export failed: {outcome.message}",
                mode,
                correlation_id,
            )

    def log_validation_outcome(
        self,
        outcome: ValidationOutcome,
        mode: OperationMode,
        correlation_id: Optional[str] = None,
    ):
        if outcome.valid:
            return
        suggestions = "; ".join(outcome.suggestions)
        self._record(
            logging.ERROR,
            f"{outcome.error_message}\nSuggestions: {suggestions}",
            mode,
            correlation_id,
        )

    def log_workflow_outcome(
        self,
        outcome: WorkflowOutcome,
        mode: OperationMode,
    ):
        if outcome.success:
            self._record(logging.INFO, outcome.summary or "Workflow complete", mode, outcome.correlation_id)
        else:
            self._record(
                logging.ERROR,
                f"Workflow failed: {outcome.error_message or outcome.summary}",
                mode,
                outcome.correlation_id,
            )
