"""Common utilities for the export framework."""

from procexport.export.common.cancellation import CancellationToken
from procexport.export.common.catalog import (
    Catalog,
    ParameterSpec,
    ProcedureSpec,
    TableSpec,
)
from procexport.export.common.constants import (
    EXCEL_MAX_DATA_ROWS,
    CorrelationStatus,
    ErrorKind,
    ExecutionStatus,
    FileFormat,
    OperationMode,
    ParameterKind,
)
from procexport.export.common.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    ErrorContext,
    ExportCancelledError,
    ExportValidationError,
    ParameterBindingError,
    ProcedureExecutionError,
    ProcExportError,
    TableExportError,
)
from procexport.export.common.results import (
    ExecutionOutcome,
    ExportErrorInfo,
    ExportOutcome,
    TableRowIssue,
    ValidationOutcome,
    WorkflowOutcome,
)

__all__ = [
    # Cancellation
    "CancellationToken",
    # Catalog
    "Catalog",
    "ParameterSpec",
    "ProcedureSpec",
    "TableSpec",
    # Constants
    "EXCEL_MAX_DATA_ROWS",
    "CorrelationStatus",
    "ErrorKind",
    "ExecutionStatus",
    "FileFormat",
    "OperationMode",
    "ParameterKind",
    # Exceptions
    "ConfigurationError",
    "DatabaseConnectionError",
    "ErrorContext",
    "ExportCancelledError",
    "ExportValidationError",
    "ParameterBindingError",
    "ProcedureExecutionError",
    "ProcExportError",
    "TableExportError",
    # Results
    "ExecutionOutcome",
    "ExportErrorInfo",
    "ExportOutcome",
    "TableRowIssue",
    "ValidationOutcome",
    "WorkflowOutcome",
]
