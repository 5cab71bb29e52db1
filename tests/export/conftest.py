"""Pytest fixtures for export pipeline tests."""

import pytest

from procexport.export.batch_coordinator import BatchExportCoordinator
from procexport.export.common.cancellation import CancellationToken
from procexport.export.workflow_orchestrator import WorkflowOrchestrator


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def token():
    return CancellationToken()


@pytest.fixture
def coordinator(mock_database, writer, tracker, export_logger):
    return BatchExportCoordinator(
        mock_database, writer=writer, tracker=tracker, export_logger=export_logger
    )


@pytest.fixture
def orchestrator(mock_database, coordinator, tracker, export_logger):
    return WorkflowOrchestrator(
        mock_database, coordinator=coordinator, tracker=tracker, export_logger=export_logger
    )


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "exports"
