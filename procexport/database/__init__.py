"""Database access for the export pipeline."""

from procexport.database.database_service import DatabaseService, format_database_error
from procexport.database.interface import ConnectionTestOutcome, DatabaseInterface
from procexport.database.procedure_validator import (
    ProcedureValidationOutcome,
    StoredProcedureValidator,
)
from procexport.database.sql_templates import SQLTemplates

__all__ = [
    "ConnectionTestOutcome",
    "DatabaseInterface",
    "DatabaseService",
    "ProcedureValidationOutcome",
    "SQLTemplates",
    "StoredProcedureValidator",
    "format_database_error",
]
