from __future__ import annotations

import asyncio
import signal
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from procexport.cli_utils.console_styles import ConsoleStyles
from procexport.database.database_service import DatabaseService
from procexport.database.procedure_validator import StoredProcedureValidator
from procexport.export.batch_coordinator import BatchExportCoordinator, ZeroRecordCallback
from procexport.export.common.cancellation import CancellationToken
from procexport.export.common.constants import FileFormat, OperationMode
from procexport.export.common.exceptions import (
    ConfigurationError,
    ExportCancelledError,
    ExportValidationError,
)
from procexport.export.common.results import ExportOutcome
from procexport.export.correlation import CorrelationTracker
from procexport.export.export_logger import ExportLogger
from procexport.export.path_resolver import OutputPathResolver
from procexport.export.workflow_orchestrator import WorkflowOrchestrator
from procexport.export.writers.export_file_writer import ExportFileWriter
from procexport.logging_utils import configure_logging
from procexport.project_config import ProjectConfig, load_project_config_object


class ZeroRecordPolicy(str, Enum):
    """What to do with tables that return no rows."""
    export = "export"
    skip = "skip"
    ask = "ask"


def _load_config(config_dir: Optional[Path]) -> ProjectConfig:
    try:
        config = load_project_config_object(config_dir)
    except ConfigurationError as e:
        ConsoleStyles.print_error(Console(), f"Configuration error: {e.message}")
        raise typer.Exit(code=1)
    configure_logging(log_dir=config.paths.logs)
    return config


def _build_coordinator(
    config: ProjectConfig,
    database: DatabaseService,
    tracker: CorrelationTracker,
    export_logger: ExportLogger,
) -> BatchExportCoordinator:
    writer = ExportFileWriter(batch_size=config.export.batch_size)
    return BatchExportCoordinator(
        database, writer=writer, tracker=tracker, export_logger=export_logger
    )


def _zero_record_callback(policy: ZeroRecordPolicy) -> Optional[ZeroRecordCallback]:
    if policy == ZeroRecordPolicy.skip:
        return lambda table: False
    if policy == ZeroRecordPolicy.ask:
        return lambda table: typer.confirm(
            f"{table} returned zero records. Export an empty file anyway?", default=True
        )
    return None


async def _with_interrupt(coro, token: CancellationToken):
    """Run ``coro`` with Ctrl-C wired to the cancellation token."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        # Not available on Windows event loops
        pass
    try:
        return await coro
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


def _render_outcomes(console: Console, outcomes: List[ExportOutcome]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Table", style="cyan")
    table.add_column("Status")
    table.add_column("File", style="green")
    table.add_column("Records", justify="right")
    table.add_column("Size (KB)", justify="right")
    table.add_column("Message", style="dim")

    for outcome in outcomes:
        status_color = "green" if outcome.success else ("yellow" if outcome.is_cancelled else "red")
        table.add_row(
            outcome.table_name or "",
            f"[{status_color}]{outcome.status}[/{status_color}]",
            outcome.file_name or "",
            f"{outcome.records_exported:,}",
            f"{outcome.file_size_bytes / 1024:.1f}",
            outcome.message,
        )
    console.print(table)


# -------------------------------------------------------------------------
# Catalog
# -------------------------------------------------------------------------


def list_procedures(mode: OperationMode, config_dir: Optional[Path] = None) -> None:
    console = Console()
    config = _load_config(config_dir)
    catalog = config.catalog(mode)

    if not catalog.procedures:
        ConsoleStyles.print_warning(console, f"No {mode} procedures configured.")
        return

    table = Table(show_header=True, header_style="bold magenta", title=f"{mode.value.title()} procedures")
    table.add_column("Name", style="cyan")
    table.add_column("Display name", style="green")
    table.add_column("Parameters", style="yellow")
    table.add_column("Output tables")
    for procedure in catalog.procedures:
        params = ", ".join(f"{p.name} ({p.type})" for p in procedure.parameters)
        table.add_row(procedure.name, procedure.display_name, params, ", ".join(procedure.output_tables))
    console.print(table)


def list_tables(mode: OperationMode, config_dir: Optional[Path] = None) -> None:
    console = Console()
    config = _load_config(config_dir)
    catalog = config.catalog(mode)

    if not catalog.tables:
        ConsoleStyles.print_warning(console, f"No {mode} tables configured.")
        return

    table = Table(show_header=True, header_style="bold magenta", title=f"{mode.value.title()} tables")
    table.add_column("Name", style="cyan")
    table.add_column("Display name", style="green")
    table.add_column("Description", style="dim")
    for spec in catalog.tables:
        table.add_row(spec.name, spec.display_name, spec.description)
    console.print(table)


# -------------------------------------------------------------------------
# Database
# -------------------------------------------------------------------------


def test_connection(config_dir: Optional[Path] = None) -> None:
    console = Console()
    config = _load_config(config_dir)
    database = DatabaseService(config.database)

    outcome = asyncio.run(database.test_connection())
    if outcome.success:
        ConsoleStyles.print_success(console, f"✓ {outcome.message} ({outcome.elapsed:.2f}s)")
    else:
        ConsoleStyles.print_error(console, f"✗ {outcome.message}")
        raise typer.Exit(code=1)


def validate_procedure(name: str, config_dir: Optional[Path] = None) -> None:
    console = Console()
    config = _load_config(config_dir)
    validator = StoredProcedureValidator(DatabaseService(config.database), config.database)

    outcome = asyncio.run(validator.validate(name))
    if outcome.is_valid:
        ConsoleStyles.print_success(console, f"✓ Stored procedure {name} exists")
    else:
        ConsoleStyles.print_error(console, f"✗ {outcome.error_message}")
        raise typer.Exit(code=1)


# -------------------------------------------------------------------------
# Export
# -------------------------------------------------------------------------


def run_workflow(
    procedure: str,
    start: str,
    end: str,
    tables: Optional[List[str]] = None,
    export_format: Optional[FileFormat] = None,
    mode: OperationMode = OperationMode.EXPORT,
    output: Optional[Path] = None,
    on_empty: ZeroRecordPolicy = ZeroRecordPolicy.export,
    config_dir: Optional[Path] = None,
) -> None:
    """Execute a configured procedure and export its tables."""
    console = Console()
    config = _load_config(config_dir)
    export_format = FileFormat(export_format or config.export.default_format)

    try:
        procedure_spec = config.catalog(mode).get_procedure(procedure)
    except ConfigurationError as e:
        ConsoleStyles.print_error(console, e.message)
        raise typer.Exit(code=1)

    table_names = list(tables) if tables else list(procedure_spec.output_tables)
    destination = OutputPathResolver(config.paths).resolve(mode, str(output) if output else None)

    database = DatabaseService(config.database)
    tracker = CorrelationTracker()
    export_logger = ExportLogger()
    orchestrator = WorkflowOrchestrator(
        database,
        coordinator=_build_coordinator(config, database, tracker, export_logger),
        tracker=tracker,
        export_logger=export_logger,
    )
    token = CancellationToken()

    ConsoleStyles.print_title(
        console, f"Running {procedure_spec.display_name} for {start} - {end} ({export_format})"
    )
    try:
        outcome = asyncio.run(
            _with_interrupt(
                orchestrator.run_workflow(
                    procedure_spec,
                    start,
                    end,
                    table_names,
                    export_format,
                    destination,
                    mode,
                    token,
                    _zero_record_callback(on_empty),
                ),
                token,
            )
        )
    except ExportValidationError as e:
        ConsoleStyles.print_error(console, e.message)
        if e.outcome is not None:
            for suggestion in e.outcome.suggestions:
                ConsoleStyles.print_info(console, f"  • {suggestion}")
        raise typer.Exit(code=1)
    except ExportCancelledError:
        ConsoleStyles.print_warning(console, "⚠ Export cancelled. Partially written files were left in place.")
        raise typer.Exit(code=1)

    if outcome.export_outcomes:
        _render_outcomes(console, outcome.export_outcomes)

    if outcome.success:
        ConsoleStyles.print_success(console, outcome.summary or "Workflow complete")
    else:
        ConsoleStyles.print_error(console, f"Workflow failed: {outcome.error_message}")
        raise typer.Exit(code=1)


def export_table(
    table: str,
    export_format: Optional[FileFormat] = None,
    mode: OperationMode = OperationMode.EXPORT,
    output: Optional[Path] = None,
    config_dir: Optional[Path] = None,
) -> None:
    """Download a single table as ``{table}_{timestamp}.{ext}``."""
    console = Console()
    config = _load_config(config_dir)
    export_format = FileFormat(export_format or config.export.default_format)
    destination = OutputPathResolver(config.paths).resolve(mode, str(output) if output else None)

    database = DatabaseService(config.database)
    coordinator = _build_coordinator(config, database, CorrelationTracker(), ExportLogger())
    token = CancellationToken()

    try:
        outcome = asyncio.run(
            _with_interrupt(
                coordinator.export_single(table, export_format, destination, token, mode),
                token,
            )
        )
    except ExportCancelledError:
        ConsoleStyles.print_warning(console, "⚠ Export cancelled.")
        raise typer.Exit(code=1)

    _render_outcomes(console, [outcome])
    if not outcome.success:
        raise typer.Exit(code=1)
