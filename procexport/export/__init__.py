"""Export pipeline: execute a stored procedure, then write its tables to files."""

from procexport.export.batch_coordinator import BatchExportCoordinator
from procexport.export.correlation import CorrelationContext, CorrelationTracker
from procexport.export.export_logger import ExportLogger, LogEntry
from procexport.export.export_validator import ExportValidator
from procexport.export.path_resolver import OutputPathResolver
from procexport.export.workflow_orchestrator import WorkflowOrchestrator
from procexport.export.writers.export_file_writer import ExportFileWriter

__all__ = [
    # Orchestration
    "BatchExportCoordinator",
    "WorkflowOrchestrator",
    # Components
    "CorrelationContext",
    "CorrelationTracker",
    "ExportFileWriter",
    "ExportLogger",
    "ExportValidator",
    "LogEntry",
    "OutputPathResolver",
]
