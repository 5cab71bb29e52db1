"""Constants for the export framework."""

from enum import StrEnum

# Excel worksheets hold 1,048,576 rows; one is reserved for the header.
EXCEL_MAX_DATA_ROWS = 1_048_575

# Tables above this fraction of the Excel ceiling are logged as warnings.
EXCEL_WARNING_THRESHOLD = 0.9

# Delimited writers poll cancellation once per chunk of this many rows.
CANCELLATION_CHECK_INTERVAL = 10_000

DEFAULT_BATCH_SIZE = 50_000

# Command timeouts in seconds
PROCEDURE_TIMEOUT_SECONDS = 300
QUERY_TIMEOUT_SECONDS = 600
PROCEDURE_CHECK_TIMEOUT_SECONDS = 10

PERIOD_TOKEN_LENGTH = 8
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class ExecutionStatus(StrEnum):
    """Status values for export execution."""

    # Operational states (transient)
    PENDING = "pending"
    RUNNING = "running"

    # Outcome states (final)
    SUCCESS = "success"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"
    ERROR = "error"


class FileFormat(StrEnum):
    """Supported output file formats."""

    XLSX = "xlsx"
    CSV = "csv"
    TXT = "txt"


class OperationMode(StrEnum):
    """Whether a run belongs to the export or the import catalog."""

    EXPORT = "export"
    IMPORT = "import"

    @property
    def prefix(self) -> str:
        return "EX" if self is OperationMode.EXPORT else "IM"


class ParameterKind(StrEnum):
    """Binding kind for a stored procedure parameter, decided at catalog load."""

    INT = "int"
    TEXT = "text"
    DATE = "date"
    DECIMAL = "decimal"


class CorrelationStatus(StrEnum):
    """Lifecycle of a correlation context."""

    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class ErrorKind(StrEnum):
    """Error kinds carried on outcomes."""

    CANCELLED = "cancelled"
    WRITE_FAILED = "write_failed"
    ROW_LIMIT_EXCEEDED = "row_limit_exceeded"
    TABLE_EXPORT_FAILED = "table_export_failed"
    EXECUTION_FAILED = "execution_failed"
