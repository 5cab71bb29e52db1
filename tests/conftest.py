"""Pytest fixtures shared across the test suite."""

from datetime import datetime
from unittest.mock import AsyncMock

import pandas as pd
import pytest

from procexport.database.interface import DatabaseInterface
from procexport.export.common.catalog import ParameterSpec, ProcedureSpec
from procexport.export.common.constants import ParameterKind
from procexport.export.common.results import ExecutionOutcome
from procexport.export.correlation import CorrelationTracker
from procexport.export.export_logger import ExportLogger
from procexport.export.writers.export_file_writer import ExportFileWriter

FIXED_NOW = datetime(2025, 1, 31, 14, 25, 30)


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def orders_frame():
    """Small result set with mixed types and missing values."""
    return pd.DataFrame(
        {
            "order_id": [1, 2, 3],
            "customer": ["Acme, Ltd", "Globex", None],
            "amount": [1234.5, 0.1, 1000000.25],
        }
    )


@pytest.fixture
def lines_frame():
    return pd.DataFrame({"line_id": [10, 11], "order_id": [1, 1], "sku": ["A-1", "B-2"]})


@pytest.fixture
def empty_frame():
    return pd.DataFrame({"id": pd.Series([], dtype="int64"), "name": pd.Series([], dtype="object")})


@pytest.fixture
def table_data(orders_frame, lines_frame, empty_frame):
    return {"Orders": orders_frame, "Lines": lines_frame, "Empty": empty_frame}


@pytest.fixture
def monthly_procedure():
    return ProcedureSpec(
        name="usp_BuildMonthlyTrade",
        display_name="Monthly trade",
        parameters=[
            ParameterSpec(name="StartDate", type="varchar(8)", kind=ParameterKind.TEXT),
            ParameterSpec(name="EndDate", type="varchar(8)", kind=ParameterKind.TEXT),
        ],
        output_tables=["Orders", "Lines"],
    )


# ============================================================================
# Component Fixtures
# ============================================================================

@pytest.fixture
def mock_database(table_data):
    """Database double backed by ``table_data``. Unknown tables raise."""
    database = AsyncMock(spec=DatabaseInterface)

    def query_table(name, cancellation=None):
        if name not in table_data:
            raise RuntimeError(f"Invalid object name '{name}'")
        return table_data[name].copy()

    def get_row_count(name):
        if name not in table_data:
            raise RuntimeError(f"Invalid object name '{name}'")
        return len(table_data[name])

    database.query_table.side_effect = query_table
    database.get_row_count.side_effect = get_row_count
    database.execute_procedure.return_value = ExecutionOutcome(
        success=True, message="Stored procedure executed successfully", records_affected=5
    )
    database.procedure_exists.return_value = True
    return database


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def writer(fixed_clock):
    return ExportFileWriter(clock=fixed_clock)


@pytest.fixture
def tracker():
    return CorrelationTracker()


@pytest.fixture
def export_logger():
    return ExportLogger()
