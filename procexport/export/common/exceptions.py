"""Custom exceptions for the export framework"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from procexport.export.common.results import ValidationOutcome


@dataclass
class ErrorContext:
    """Structured context for errors"""

    table_name: Optional[str] = None
    procedure_name: Optional[str] = None
    correlation_id: Optional[str] = None
    file_path: Optional[str] = None
    operation: Optional[str] = None
    additional_info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging"""
        result = {}
        if self.table_name:
            result["table_name"] = self.table_name
        if self.procedure_name:
            result["procedure_name"] = self.procedure_name
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        if self.file_path:
            result["file_path"] = self.file_path
        if self.operation:
            result["operation"] = self.operation
        if self.additional_info:
            result.update(self.additional_info)
        return result

    def __str__(self) -> str:
        """Format context for error messages"""
        parts = []
        if self.table_name:
            parts.append(f"table={self.table_name}")
        if self.procedure_name:
            parts.append(f"procedure={self.procedure_name}")
        if self.file_path:
            parts.append(f"file={self.file_path}")
        if self.operation:
            parts.append(f"operation={self.operation}")
        return ", ".join(parts) if parts else "no context"


class ProcExportError(Exception):
    """Base exception for all export framework errors"""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.context = context or ErrorContext()
        self.error_code = error_code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context"""
        parts = [self.message]
        if self.context and str(self.context) != "no context":
            parts.append(f"[{self.context}]")
        if self.error_code:
            parts.append(f"(code: {self.error_code})")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging"""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
        }
        if self.error_code:
            result["error_code"] = self.error_code
        result.update(self.context.to_dict())
        return result


class ExportValidationError(ProcExportError):
    """Pre-flight validation rejected the batch before any file was written."""

    def __init__(
        self,
        message: str,
        outcome: Optional["ValidationOutcome"] = None,
        context: Optional[ErrorContext] = None,
    ):
        self.outcome = outcome
        super().__init__(message, context=context, error_code="VALIDATION_FAILED")


class TableExportError(ProcExportError):
    """A single table failed to export. Contained in the outcome list."""

    pass


class ProcedureExecutionError(ProcExportError):
    """The stored procedure step failed."""

    pass


class ParameterBindingError(ProcedureExecutionError):
    """A period token could not be bound to a declared procedure parameter."""

    pass


class ExportCancelledError(ProcExportError):
    """Cooperative cancellation was observed."""

    def __init__(self, message: str = "Operation cancelled by user", context: Optional[ErrorContext] = None):
        super().__init__(message, context=context, error_code="CANCELLED")


class DatabaseConnectionError(ProcExportError):
    """Could not reach or authenticate against the database."""

    pass


class ConfigurationError(ProcExportError):
    """Error in project configuration or catalog."""

    pass
