from unittest.mock import AsyncMock

import pytest

from procexport.database.interface import DatabaseInterface
from procexport.database.procedure_validator import (
    MISSING_PROCEDURE_MESSAGE,
    StoredProcedureValidator,
)
from procexport.project_config import DatabaseConfig


@pytest.fixture
def database():
    database = AsyncMock(spec=DatabaseInterface)
    database.procedure_exists.return_value = True
    return database


@pytest.mark.asyncio
async def test_existing_procedure_is_valid(database):
    outcome = await StoredProcedureValidator(database).validate("  usp_BuildMonthlyTrade ")
    assert outcome.is_valid is True
    assert outcome.error_message is None
    database.procedure_exists.assert_awaited_once_with("usp_BuildMonthlyTrade")


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["", "   ", None])
async def test_blank_name(database, name):
    outcome = await StoredProcedureValidator(database).validate(name)
    assert outcome.is_valid is False
    assert outcome.error_message == "Stored procedure name is required."
    database.procedure_exists.assert_not_called()


@pytest.mark.asyncio
async def test_unconfigured_database(database):
    validator = StoredProcedureValidator(database, DatabaseConfig())
    outcome = await validator.validate("usp_A")
    assert outcome.is_valid is False
    assert "not properly configured" in outcome.error_message


@pytest.mark.asyncio
async def test_missing_procedure(database):
    database.procedure_exists.return_value = False
    outcome = await StoredProcedureValidator(database).validate("usp_Nope")
    assert outcome.is_valid is False
    assert outcome.error_message == MISSING_PROCEDURE_MESSAGE


@pytest.mark.asyncio
async def test_database_error(database):
    database.procedure_exists.side_effect = RuntimeError("Login failed")
    outcome = await StoredProcedureValidator(database).validate("usp_A")
    assert outcome.is_valid is False
    assert outcome.error_message == "Database error: Login failed"
