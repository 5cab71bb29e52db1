"""
Standard interface for the database collaborator.

The export pipeline only talks to the database through this interface so that
tests and alternative backends can stand in for the ODBC implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

import pandas as pd

if TYPE_CHECKING:
    from procexport.export.common.cancellation import CancellationToken
    from procexport.export.common.results import ExecutionOutcome


@dataclass(frozen=True)
class ConnectionTestOutcome:
    """Result of a connectivity check."""

    success: bool
    message: str
    elapsed: float = 0.0


class DatabaseInterface(ABC):
    """Abstract interface for the source database."""

    @abstractmethod
    async def test_connection(self) -> ConnectionTestOutcome:
        """
        Open a connection and run a trivial query.

        Returns:
            ConnectionTestOutcome with a user-facing message
        """
        pass

    @abstractmethod
    async def execute_procedure(
        self,
        name: str,
        parameters: Dict[str, Any],
        cancellation: Optional[CancellationToken] = None,
    ) -> ExecutionOutcome:
        """
        Execute a stored procedure.

        Args:
            name: Procedure name
            parameters: Bound parameters keyed by ``@name`` in declaration order
            cancellation: Token checked before the call is issued

        Returns:
            ExecutionOutcome; failures are reported, not raised
        """
        pass

    @abstractmethod
    async def query_table(
        self,
        name: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> pd.DataFrame:
        """
        Read every row of a table.

        Args:
            name: Table name, optionally schema-qualified
            cancellation: Token checked before and after the query

        Returns:
            DataFrame with the table's columns and rows
        """
        pass

    @abstractmethod
    async def get_row_count(self, name: str) -> int:
        """Get the number of rows in a table."""
        pass

    @abstractmethod
    async def procedure_exists(self, name: str) -> bool:
        """Check whether a user stored procedure with this name exists."""
        pass
