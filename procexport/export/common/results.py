"""Result dataclasses for the export framework."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from procexport.export.common.constants import (
    EXCEL_MAX_DATA_ROWS,
    ErrorKind,
    ExecutionStatus,
    FileFormat,
)
from procexport.export.common.exceptions import ExportValidationError


@dataclass(frozen=True)
class ExportErrorInfo:
    """Error attached to a failed outcome."""

    kind: ErrorKind
    message: str
    exception_type: Optional[str] = None

    @classmethod
    def from_exception(cls, kind: ErrorKind, exc: BaseException) -> ExportErrorInfo:
        return cls(kind=kind, message=str(exc), exception_type=type(exc).__name__)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": str(self.kind),
            "message": self.message,
            "exception_type": self.exception_type,
        }


@dataclass(frozen=True)
class ExportOutcome:
    """Result of exporting one table to one format.

    ``elapsed`` is in seconds. ``records_exported`` counts rows actually written.
    """

    success: bool
    format: FileFormat
    message: str = ""
    file_path: Optional[str] = None
    file_name: Optional[str] = None
    file_size_bytes: int = 0
    records_exported: int = 0
    elapsed: float = 0.0
    status: ExecutionStatus = ExecutionStatus.SUCCESS
    error: Optional[ExportErrorInfo] = None
    table_name: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == ExecutionStatus.CANCELLED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "status": str(self.status),
            "table_name": self.table_name,
            "format": str(self.format),
            "file_path": self.file_path,
            "file_name": self.file_name,
            "file_size_bytes": self.file_size_bytes,
            "records_exported": self.records_exported,
            "elapsed": round(self.elapsed, 3),
            "message": self.message,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of running the parameterized stored procedure."""

    success: bool
    message: str = ""
    records_affected: int = 0
    elapsed: float = 0.0
    error: Optional[ExportErrorInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "message": self.message,
            "records_affected": self.records_affected,
            "elapsed": round(self.elapsed, 3),
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class WorkflowOutcome:
    """Aggregate of one execute-then-export run. Built up by the orchestrator."""

    success: bool = False
    error_message: Optional[str] = None
    execution_outcome: Optional[ExecutionOutcome] = None
    export_outcomes: List[ExportOutcome] = field(default_factory=list)
    correlation_id: Optional[str] = None
    summary: Optional[str] = None

    @property
    def successful_exports(self) -> int:
        return sum(1 for outcome in self.export_outcomes if outcome.success)

    @property
    def total_records(self) -> int:
        return sum(outcome.records_exported for outcome in self.export_outcomes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "error_message": self.error_message,
            "correlation_id": self.correlation_id,
            "summary": self.summary,
            "execution_outcome": self.execution_outcome.to_dict() if self.execution_outcome else None,
            "export_outcomes": [outcome.to_dict() for outcome in self.export_outcomes],
        }


@dataclass(frozen=True)
class TableRowIssue:
    """A table whose row count exceeds the format ceiling."""

    table_name: str
    row_count: int
    limit: int = EXCEL_MAX_DATA_ROWS

    def describe(self) -> str:
        return f"{self.table_name}: {self.row_count:,} rows (exceeds Excel limit of {self.limit:,})"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a pre-flight format check."""

    valid: bool
    error_message: Optional[str] = None
    per_table_issues: List[TableRowIssue] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def raise_if_invalid(self) -> None:
        if not self.valid:
            raise ExportValidationError(self.error_message or "Export validation failed", outcome=self)
