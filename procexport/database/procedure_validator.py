"""Checks that a configured stored procedure exists before it is run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from procexport.database.interface import DatabaseInterface

if TYPE_CHECKING:
    from procexport.project_config import DatabaseConfig

logger = logging.getLogger(__name__)

MISSING_PROCEDURE_MESSAGE = (
    "Stored procedure does not exist in the database. Please verify the stored "
    "procedure name and ensure it exists in the connected database."
)


@dataclass(frozen=True)
class ProcedureValidationOutcome:
    is_valid: bool
    error_message: Optional[str] = None


class StoredProcedureValidator:
    """Looks a procedure up in INFORMATION_SCHEMA.ROUTINES."""

    def __init__(self, database: DatabaseInterface, config: Optional[DatabaseConfig] = None):
        self.database = database
        self.config = config

    async def validate(self, procedure_name: str) -> ProcedureValidationOutcome:
        if not procedure_name or not procedure_name.strip():
            return ProcedureValidationOutcome(False, "Stored procedure name is required.")

        if self.config is not None and not self.config.is_configured:
            return ProcedureValidationOutcome(
                False, "Database is not properly configured. Please check connection settings."
            )

        try:
            exists = await self.database.procedure_exists(procedure_name.strip())
        except Exception as e:
            logger.warning(f"Could not validate stored procedure {procedure_name}: {e}")
            return ProcedureValidationOutcome(False, f"Database error: {e}")

        if not exists:
            logger.info(f"Stored procedure not found: {procedure_name}")
            return ProcedureValidationOutcome(False, MISSING_PROCEDURE_MESSAGE)

        return ProcedureValidationOutcome(True)
