from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Sequence

import pandas as pd

from procexport.database.interface import ConnectionTestOutcome, DatabaseInterface
from procexport.database.sql_templates import SQLTemplates
from procexport.export.common.cancellation import CancellationToken, check_cancelled
from procexport.export.common.constants import (
    PROCEDURE_CHECK_TIMEOUT_SECONDS,
    PROCEDURE_TIMEOUT_SECONDS,
    QUERY_TIMEOUT_SECONDS,
    ErrorKind,
)
from procexport.export.common.exceptions import (
    DatabaseConnectionError,
    ErrorContext,
    ExportCancelledError,
)
from procexport.export.common.results import ExecutionOutcome, ExportErrorInfo

if TYPE_CHECKING:
    from procexport.project_config import DatabaseConfig

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = [
    'connection reset',
    'connection lost',
    'timeout',
    'connection refused',
    'deadlock',
    'lock wait timeout',
    'connection closed',
    'broken pipe',
    'network error',
    'temporary failure',
]

FRIENDLY_ERROR_MESSAGES = {
    2: "Server not found. Please check the server name and ensure it's accessible.",
    4060: "Database not found. Please verify the database name is correct.",
    18456: "Login failed. Please check your credentials or Windows authentication settings.",
    -2: "Connection timeout. The server may be busy or unreachable.",
    53: "Network path not found. Please check server name and network connectivity.",
}

_ERROR_NUMBER_PATTERN = re.compile(r"\((-?\d+)\)")


def _error_text(error: Exception) -> str:
    # pyodbc errors carry (sqlstate, message) in args
    if len(getattr(error, "args", ())) >= 2:
        return str(error.args[1])
    return str(error)


def format_database_error(error: Exception) -> str:
    """Map a driver error to a message safe to show to users."""
    text = _error_text(error)
    sqlstate = str(error.args[0]) if getattr(error, "args", None) else ""
    if sqlstate == "HYT00" or "timeout expired" in text.lower():
        return FRIENDLY_ERROR_MESSAGES[-2]
    for match in _ERROR_NUMBER_PATTERN.finditer(text):
        number = int(match.group(1))
        if number in FRIENDLY_ERROR_MESSAGES:
            return FRIENDLY_ERROR_MESSAGES[number]
    return f"Database connection error: {text}"


class DatabaseService(DatabaseInterface):
    """SQL Server access over pyodbc.

    Blocking driver calls run in worker threads so the pipeline's event loop
    stays responsive. Each call opens its own connection.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        sql: Optional[SQLTemplates] = None,
        connection_factory: Optional[Callable[[], Any]] = None,
        max_retries: int = 3,
    ):
        self.config = config
        self.sql = sql if sql is not None else SQLTemplates()
        self._connection_factory = connection_factory
        self.max_retries = max_retries

    def get_connection(self, timeout: int = QUERY_TIMEOUT_SECONDS):
        """Open a connection with the given command timeout.

        Raises:
            DatabaseConnectionError: With a user-facing message if the connect fails
        """
        try:
            if self._connection_factory is not None:
                conn = self._connection_factory()
            else:
                import pyodbc

                conn = pyodbc.connect(
                    self.config.connection_string,
                    timeout=self.config.connection_timeout,
                    autocommit=True,
                )
        except Exception as e:
            raise DatabaseConnectionError(
                format_database_error(e),
                context=ErrorContext(operation="connect"),
            ) from e
        conn.timeout = timeout
        return conn

    def execute_query(
        self,
        query: str,
        params: Sequence[Any] | None = None,
        timeout: int = QUERY_TIMEOUT_SECONDS,
    ) -> pd.DataFrame | None:
        """Execute a query and return results as a DataFrame when possible.

        Transient failures are retried with exponential backoff (0.5s, 1s, 2s).

        Args:
            query: SQL query to execute
            params: Positional ``?`` parameters
            timeout: Command timeout in seconds
        """
        for attempt in range(self.max_retries + 1):
            conn = None
            try:
                logger.debug(f"Executing query (attempt {attempt + 1}/{self.max_retries + 1}): {query}")
                conn = self.get_connection(timeout)
                cursor = conn.cursor()
                if params:
                    cursor.execute(query, list(params))
                else:
                    cursor.execute(query)

                if cursor.description:
                    rows = cursor.fetchall()
                    columns = [d[0] for d in cursor.description]
                    # object dtype keeps driver values as-is; NULLs must not turn ints into floats
                    return pd.DataFrame([tuple(row) for row in rows], columns=columns, dtype=object)
                return None

            except Exception as e:
                error_str = str(e).lower()
                is_retryable = any(err in error_str for err in RETRYABLE_ERRORS)

                if attempt < self.max_retries and is_retryable:
                    delay = 0.5 * (2 ** attempt)
                    logger.warning(f"Retryable error on attempt {attempt + 1}: {e}")
                    logger.warning(f"Retrying in {delay:.1f} seconds...")
                    time.sleep(delay)
                    continue

                if attempt == self.max_retries and is_retryable:
                    logger.error(f"Max retries ({self.max_retries}) exceeded for query: {query}")
                else:
                    logger.error(f"Non-retryable error for query: {query}. Error: {e}")
                raise

            finally:
                if conn is not None:
                    conn.close()

    def _execute_procedure_sync(self, statement: str, values: list) -> int:
        conn = self.get_connection(PROCEDURE_TIMEOUT_SECONDS)
        try:
            cursor = conn.cursor()
            cursor.execute(statement, values)
            records_affected = 0
            while True:
                if cursor.rowcount and cursor.rowcount > 0:
                    records_affected += cursor.rowcount
                if not cursor.nextset():
                    break
            return records_affected
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # DatabaseInterface
    # -------------------------------------------------------------------------

    async def test_connection(self) -> ConnectionTestOutcome:
        start_time = time.monotonic()
        if not self.config.server:
            return ConnectionTestOutcome(success=False, message="Server name is required")
        if not self.config.database:
            return ConnectionTestOutcome(success=False, message="Database name is required")

        try:
            await asyncio.to_thread(
                self.execute_query, self.sql.render("test_connection"), None, self.config.connection_timeout
            )
        except DatabaseConnectionError as e:
            message = e.message
            logger.error(f"Connection test failed: {message}")
            return ConnectionTestOutcome(
                success=False, message=message, elapsed=time.monotonic() - start_time
            )
        except Exception as e:
            message = format_database_error(e)
            logger.error(f"Connection test failed: {message}")
            return ConnectionTestOutcome(
                success=False, message=message, elapsed=time.monotonic() - start_time
            )

        elapsed = time.monotonic() - start_time
        logger.info(f"Connected to {self.config.server}\\{self.config.database} in {elapsed:.2f}s")
        return ConnectionTestOutcome(
            success=True,
            message=f"Successfully connected to {self.config.server}\\{self.config.database}",
            elapsed=elapsed,
        )

    async def execute_procedure(
        self,
        name: str,
        parameters: Dict[str, Any],
        cancellation: Optional[CancellationToken] = None,
    ) -> ExecutionOutcome:
        check_cancelled(cancellation)
        start_time = time.monotonic()
        statement = self.sql.render(
            "exec_procedure", procedure_name=name, parameter_names=list(parameters)
        )
        logger.info(f"Executing stored procedure {name} with {parameters}")

        try:
            records_affected = await asyncio.to_thread(
                self._execute_procedure_sync, statement, list(parameters.values())
            )
        except ExportCancelledError:
            raise
        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.error(f"Stored procedure {name} failed after {elapsed:.2f}s: {e}")
            return ExecutionOutcome(
                success=False,
                message=_error_text(e),
                elapsed=elapsed,
                error=ExportErrorInfo.from_exception(ErrorKind.EXECUTION_FAILED, e),
            )

        elapsed = time.monotonic() - start_time
        return ExecutionOutcome(
            success=True,
            message=f"Stored procedure '{name}' executed successfully",
            records_affected=records_affected,
            elapsed=elapsed,
        )

    async def query_table(
        self,
        name: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> pd.DataFrame:
        check_cancelled(cancellation)
        query = self.sql.render("select_all_from_table", table_name=name)
        result = await asyncio.to_thread(self.execute_query, query, None, QUERY_TIMEOUT_SECONDS)
        check_cancelled(cancellation)
        if result is None:
            return pd.DataFrame()
        logger.debug(f"Queried {len(result):,} rows from {name}")
        return result

    async def get_row_count(self, name: str) -> int:
        query = self.sql.render("get_table_row_count", table_name=name)
        result = await asyncio.to_thread(self.execute_query, query, None, QUERY_TIMEOUT_SECONDS)
        if result is not None and not result.empty:
            return int(result.iloc[0, 0])
        return 0

    async def procedure_exists(self, name: str) -> bool:
        # INFORMATION_SCHEMA stores the bare routine name
        routine_name = name.split(".")[-1].strip("[]")
        query = self.sql.render("check_procedure_exists")
        result = await asyncio.to_thread(
            self.execute_query, query, [routine_name], PROCEDURE_CHECK_TIMEOUT_SECONDS
        )
        if result is not None and not result.empty:
            return int(result.iloc[0, 0]) > 0
        return False
