from unittest import mock

import pandas as pd
import pytest

from procexport.database.database_service import (
    FRIENDLY_ERROR_MESSAGES,
    DatabaseService,
    format_database_error,
)
from procexport.export.common.cancellation import CancellationToken
from procexport.export.common.constants import ErrorKind, FileFormat
from procexport.export.common.exceptions import DatabaseConnectionError, ExportCancelledError
from procexport.project_config import DatabaseConfig


class FakeDriverError(Exception):
    """Mimics pyodbc's (sqlstate, message) error args."""


def _cursor(rows=None, columns=None, rowcounts=None):
    cursor = mock.MagicMock()
    if columns is None:
        cursor.description = None
    else:
        cursor.description = [(c, None, None, None, None, None, None) for c in columns]
    cursor.fetchall.return_value = rows or []
    if rowcounts is not None:
        counts = list(rowcounts)
        cursor.rowcount = counts[0]

        def nextset():
            counts.pop(0)
            if not counts:
                return False
            cursor.rowcount = counts[0]
            return True

        cursor.nextset.side_effect = nextset
    return cursor


def _service(cursor, **config):
    conn = mock.MagicMock()
    conn.cursor.return_value = cursor
    settings = {"server": "sql01", "database": "Trade"}
    settings.update(config)
    service = DatabaseService(DatabaseConfig(**settings), connection_factory=lambda: conn)
    return service, conn


def test_get_connection_uses_pyodbc():
    pytest.importorskip("pyodbc")
    service = DatabaseService(DatabaseConfig(server="sql01", database="Trade"))
    mock_conn = mock.MagicMock()
    with mock.patch("pyodbc.connect", return_value=mock_conn) as connect:
        assert service.get_connection(42) is mock_conn

    connect.assert_called_once_with(
        service.config.connection_string, timeout=30, autocommit=True
    )
    assert mock_conn.timeout == 42


def test_execute_query_returns_dataframe():
    cursor = _cursor(rows=[(1, "a"), (2, "b")], columns=["id", "name"])
    service, conn = _service(cursor)

    result = service.execute_query("SELECT id, name FROM t", ["x"])

    cursor.execute.assert_called_once_with("SELECT id, name FROM t", ["x"])
    assert list(result.columns) == ["id", "name"]
    assert len(result) == 2
    conn.close.assert_called_once()


def test_execute_query_without_result_set():
    service, conn = _service(_cursor())
    assert service.execute_query("UPDATE t SET a = 1") is None
    conn.close.assert_called_once()


def test_execute_query_retries_transient_errors():
    cursor = _cursor(rows=[(1,)], columns=["one"])
    cursor.execute.side_effect = [Exception("Connection reset by peer"), None]
    service, conn = _service(cursor)

    with mock.patch("procexport.database.database_service.time.sleep") as sleep:
        result = service.execute_query("SELECT 1")

    assert result.iloc[0, 0] == 1
    sleep.assert_called_once_with(0.5)
    assert conn.close.call_count == 2


def test_execute_query_gives_up_after_max_retries():
    cursor = _cursor()
    cursor.execute.side_effect = Exception("deadlock detected")
    service, _ = _service(cursor)

    with mock.patch("procexport.database.database_service.time.sleep") as sleep:
        with pytest.raises(Exception, match="deadlock"):
            service.execute_query("SELECT 1")

    assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0, 2.0]
    assert cursor.execute.call_count == 4


def test_execute_query_non_retryable_raises_immediately():
    cursor = _cursor()
    cursor.execute.side_effect = Exception("Invalid object name 'Nope'")
    service, _ = _service(cursor)

    with mock.patch("procexport.database.database_service.time.sleep") as sleep:
        with pytest.raises(Exception, match="Invalid object name"):
            service.execute_query("SELECT * FROM Nope")

    sleep.assert_not_called()


@pytest.mark.parametrize(
    "error, expected",
    [
        (FakeDriverError("08001", "[08001] Named Pipes Provider: Could not open (2) (SQLDriverConnect)"), 2),
        (FakeDriverError("42000", "Cannot open database \"Trade\" requested by the login. (4060)"), 4060),
        (FakeDriverError("28000", "Login failed for user 'exporter'. (18456)"), 18456),
        (FakeDriverError("HYT00", "Login timeout expired"), -2),
        (FakeDriverError("08001", "Network path was not found (53)"), 53),
    ],
)
def test_format_database_error_known_codes(error, expected):
    assert format_database_error(error) == FRIENDLY_ERROR_MESSAGES[expected]


def test_format_database_error_fallback():
    error = FakeDriverError("IM002", "Data source name not found")
    assert format_database_error(error) == "Database connection error: Data source name not found"


@pytest.mark.asyncio
async def test_connection_requires_server_and_database():
    service = DatabaseService(DatabaseConfig(database="Trade"))
    outcome = await service.test_connection()
    assert outcome.success is False
    assert outcome.message == "Server name is required"

    service = DatabaseService(DatabaseConfig(server="sql01"))
    outcome = await service.test_connection()
    assert outcome.message == "Database name is required"


@pytest.mark.asyncio
async def test_connection_success():
    service, _ = _service(_cursor(rows=[(1,)], columns=[""]))
    outcome = await service.test_connection()
    assert outcome.success is True
    assert outcome.message == "Successfully connected to sql01\\Trade"


@pytest.mark.asyncio
async def test_connection_failure_is_friendly():
    cursor = _cursor()
    cursor.execute.side_effect = FakeDriverError("28000", "Login failed for user 'x'. (18456)")
    service, _ = _service(cursor)

    outcome = await service.test_connection()

    assert outcome.success is False
    assert outcome.message == FRIENDLY_ERROR_MESSAGES[18456]


@pytest.mark.asyncio
async def test_execute_procedure_sums_rowcounts():
    cursor = _cursor(rowcounts=[3, -1, 4])
    service, conn = _service(cursor)

    outcome = await service.execute_procedure(
        "dbo.usp_BuildMonthlyTrade", {"@StartDate": "20250101", "@EndDate": "20250131"}
    )

    assert outcome.success is True
    assert outcome.records_affected == 7
    assert outcome.message == "Stored procedure 'dbo.usp_BuildMonthlyTrade' executed successfully"
    cursor.execute.assert_called_once_with(
        "EXEC [dbo].[usp_BuildMonthlyTrade] @StartDate = ?, @EndDate = ?;",
        ["20250101", "20250131"],
    )
    assert conn.timeout == 300
    conn.close.assert_called_once()


@pytest.mark.asyncio
async def test_execute_procedure_failure_is_reported():
    cursor = _cursor()
    cursor.execute.side_effect = FakeDriverError("42000", "Divide by zero error encountered.")
    service, _ = _service(cursor)

    outcome = await service.execute_procedure("usp_Bad", {"@A": 1})

    assert outcome.success is False
    assert outcome.message == "Divide by zero error encountered."
    assert outcome.error.kind == ErrorKind.EXECUTION_FAILED


@pytest.mark.asyncio
async def test_execute_procedure_cancelled_before_start():
    service, conn = _service(_cursor())
    token = CancellationToken()
    token.cancel()

    with pytest.raises(ExportCancelledError):
        await service.execute_procedure("usp_A", {}, token)

    conn.cursor.assert_not_called()


@pytest.mark.asyncio
async def test_query_table():
    cursor = _cursor(rows=[(1, "Acme")], columns=["id", "name"])
    service, _ = _service(cursor)

    frame = await service.query_table("dbo.Orders")

    assert isinstance(frame, pd.DataFrame)
    assert frame.to_dict("records") == [{"id": 1, "name": "Acme"}]
    cursor.execute.assert_called_once_with("SELECT *\nFROM [dbo].[Orders];")


@pytest.mark.asyncio
async def test_get_row_count():
    service, _ = _service(_cursor(rows=[(1_500_000,)], columns=["row_count"]))
    assert await service.get_row_count("Orders") == 1_500_000


@pytest.mark.asyncio
async def test_procedure_exists_strips_schema():
    cursor = _cursor(rows=[(1,)], columns=[""])
    service, _ = _service(cursor)

    assert await service.procedure_exists("[dbo].[usp_BuildMonthlyTrade]") is True
    assert cursor.execute.call_args.args[1] == ["usp_BuildMonthlyTrade"]


@pytest.mark.asyncio
async def test_procedure_missing():
    service, _ = _service(_cursor(rows=[(0,)], columns=[""]))
    assert await service.procedure_exists("usp_Nope") is False


def test_connect_failure_raises_friendly_error():
    def refuse():
        raise FakeDriverError("08001", "Named Pipes Provider: Network path was not found (53)")

    service = DatabaseService(DatabaseConfig(server="sql01", database="Trade"), connection_factory=refuse)

    with mock.patch("procexport.database.database_service.time.sleep") as sleep:
        with pytest.raises(DatabaseConnectionError) as exc_info:
            service.execute_query("SELECT 1")

    assert exc_info.value.message == FRIENDLY_ERROR_MESSAGES[53]
    assert isinstance(exc_info.value.__cause__, FakeDriverError)
    sleep.assert_not_called()


@pytest.mark.asyncio
async def test_connection_refused_uses_friendly_message():
    def refuse():
        raise FakeDriverError("HYT00", "Login timeout expired")

    service = DatabaseService(DatabaseConfig(server="sql01", database="Trade"), connection_factory=refuse)

    with mock.patch("procexport.database.database_service.time.sleep"):
        outcome = await service.test_connection()

    assert outcome.success is False
    assert outcome.message == FRIENDLY_ERROR_MESSAGES[-2]


@pytest.mark.asyncio
async def test_query_table_keeps_integers_next_to_nulls(writer, tmp_path):
    cursor = _cursor(rows=[(1, 9007199254740993), (None, 2)], columns=["qty", "big_id"])
    service, _ = _service(cursor)

    frame = await service.query_table("dbo.Stock")
    outcome = await writer.write("Stock", tmp_path, frame, FileFormat.CSV, 1)

    assert frame.dtypes["qty"] == object
    assert pd.isna(frame.iloc[1, 0])
    assert frame.iloc[0, 1] == 9007199254740993
    with open(outcome.file_path, encoding="utf-8", newline="") as handle:
        assert handle.read() == "qty,big_id\n1,9007199254740993\n,2\n"


@pytest.mark.asyncio
async def test_query_table_without_rows_keeps_columns():
    service, _ = _service(_cursor(rows=[], columns=["id", "name"]))

    frame = await service.query_table("dbo.Empty")

    assert list(frame.columns) == ["id", "name"]
    assert len(frame) == 0
