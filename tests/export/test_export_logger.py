"""Tests for ExportLogger."""

import logging

from procexport.export.common.constants import ExecutionStatus, FileFormat, OperationMode
from procexport.export.common.results import (
    ExecutionOutcome,
    ExportOutcome,
    TableRowIssue,
    ValidationOutcome,
    WorkflowOutcome,
)
from procexport.export.export_logger import ExportLogger


class TestExportLogger:
    """Tests for outcome logging."""

    def test_execution_outcome_levels(self, export_logger):
        """Test success logs INFO and failure logs ERROR."""
        export_logger.log_execution_outcome(
            "usp_A", ExecutionOutcome(success=True, records_affected=1200), OperationMode.EXPORT
        )
        export_logger.log_execution_outcome(
            "usp_A", ExecutionOutcome(success=False, message="timeout"), OperationMode.EXPORT
        )

        first, second = export_logger.entries
        assert first.level == logging.INFO
        assert "1,200 records affected" in first.message
        assert second.level == logging.ERROR
        assert second.message == "Stored procedure usp_A failed: timeout"

    def test_export_outcome_levels(self, export_logger):
        """Test cancelled exports log WARNING and failures log ERROR."""
        export_logger.log_export_outcome(
            "Orders",
            ExportOutcome(success=True, format=FileFormat.CSV, message="ok", file_name="a.csv"),
            OperationMode.EXPORT,
        )
        export_logger.log_export_outcome(
            "Orders",
            ExportOutcome(
                success=False, format=FileFormat.CSV, message="stopped", status=ExecutionStatus.CANCELLED
            ),
            OperationMode.EXPORT,
        )
        export_logger.log_export_outcome(
            "Orders",
            ExportOutcome(success=False, format=FileFormat.CSV, message="disk full", status=ExecutionStatus.ERROR),
            OperationMode.IMPORT,
        )

        assert [e.level for e in export_logger.entries] == [logging.INFO, logging.WARNING, logging.ERROR]
        assert export_logger.entries[0].message == "Orders: ok (a.csv)"
        assert export_logger.entries[2].mode == OperationMode.IMPORT

    def test_valid_validation_is_not_logged(self, export_logger):
        """Test passing validations produce no entry."""
        export_logger.log_validation_outcome(ValidationOutcome(valid=True), OperationMode.EXPORT)
        assert export_logger.entries == []

    def test_invalid_validation_includes_suggestions(self, export_logger):
        """Test rejections list the suggestions."""
        outcome = ValidationOutcome(
            valid=False,
            error_message="Cannot export to Excel",
            per_table_issues=[TableRowIssue("Huge", 2_000_000)],
            suggestions=["Switch to CSV format (supports unlimited rows)"],
        )
        export_logger.log_validation_outcome(outcome, OperationMode.EXPORT, "WORKFLOW-1")

        (entry,) = export_logger.entries
        assert "Suggestions: Switch to CSV format" in entry.message
        assert entry.correlation_id == "WORKFLOW-1"

    def test_workflow_outcome(self, export_logger):
        """Test workflow outcomes use the summary or the error."""
        export_logger.log_workflow_outcome(
            WorkflowOutcome(success=True, summary="WORKFLOW COMPLETE: 1/1 tables"), OperationMode.EXPORT
        )
        export_logger.log_workflow_outcome(
            WorkflowOutcome(success=False, error_message="No tables were exported successfully"),
            OperationMode.EXPORT,
        )

        first, second = export_logger.entries
        assert first.message == "WORKFLOW COMPLETE: 1/1 tables"
        assert second.message == "Workflow failed: No tables were exported successfully"

    def test_history_is_bounded(self):
        """Test only the most recent entries are kept."""
        export_logger = ExportLogger(max_entries=2)
        for index in range(5):
            export_logger.log_execution_start(f"usp_{index}", {}, OperationMode.EXPORT)

        assert [e.message.split()[3] for e in export_logger.entries] == ["usp_3", "usp_4"]

    def test_logging_errors_are_swallowed(self, export_logger, monkeypatch):
        """Test a failing handler never breaks the caller."""

        def broken_log(*args, **kwargs):
            raise ValueError("handler exploded")

        monkeypatch.setattr(export_logger.logger, "log", broken_log)

        export_logger.log_execution_start("usp_A", {"@StartDate": "20250101"}, OperationMode.EXPORT)

        assert export_logger.entries == []

    def test_entry_to_dict(self, export_logger):
        """Test entries serialize to plain values."""
        export_logger.log_execution_start("usp_A", {}, OperationMode.EXPORT, "EXECUTE-1")
        result = export_logger.entries[0].to_dict()
        assert result["level"] == "INFO"
        assert result["mode"] == "export"
        assert result["correlation_id"] == "EXECUTE-1"
