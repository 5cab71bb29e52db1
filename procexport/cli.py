from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from procexport.cli_utils import export_commands
from procexport.cli_utils.export_commands import ZeroRecordPolicy
from procexport.export.common.constants import FileFormat, OperationMode

# Create main app and sub-apps
app = typer.Typer(no_args_is_help=True, pretty_exceptions_show_locals=False)
catalog_app = typer.Typer()
db_app = typer.Typer()
export_app = typer.Typer()

app.add_typer(
    catalog_app, name="catalog", help="Commands for listing configured procedures and tables."
)
app.add_typer(db_app, name="db", help="Commands for checking the database connection.")
app.add_typer(
    export_app,
    name="export",
    help="Commands for running stored procedures and exporting their tables.",
)

ConfigDirOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config-dir",
        "-c",
        help="Directory containing project.yml (defaults to $PROCEXPORT_CONFIG or the current directory)",
    ),
]
ModeOption = Annotated[
    OperationMode, typer.Option("--mode", "-m", help="Catalog to use: export or import")
]


# Catalog commands
@catalog_app.command()
def procedures(
    mode: ModeOption = OperationMode.EXPORT,
    config_dir: ConfigDirOption = None,
):
    """List configured stored procedures."""
    export_commands.list_procedures(mode, config_dir)


@catalog_app.command()
def tables(
    mode: ModeOption = OperationMode.EXPORT,
    config_dir: ConfigDirOption = None,
):
    """List configured output tables."""
    export_commands.list_tables(mode, config_dir)


# Database commands
@db_app.command("test")
def test_connection(config_dir: ConfigDirOption = None):
    """Test the configured database connection."""
    export_commands.test_connection(config_dir)


@db_app.command("validate-procedure")
def validate_procedure(
    name: Annotated[str, typer.Argument(help="Stored procedure name")],
    config_dir: ConfigDirOption = None,
):
    """Check that a stored procedure exists in the connected database."""
    export_commands.validate_procedure(name, config_dir)


# Export commands
@export_app.command("run")
def run(
    procedure: Annotated[str, typer.Option("--procedure", "-p", help="Configured procedure name")],
    start: Annotated[str, typer.Option("--start", "-s", help="Period start (YYYYMMDD)")],
    end: Annotated[str, typer.Option("--end", "-e", help="Period end (YYYYMMDD)")],
    table: Annotated[
        Optional[List[str]],
        typer.Option("--table", "-t", help="Table to export; repeat for several (defaults to the procedure's output tables)"),
    ] = None,
    export_format: Annotated[
        Optional[FileFormat], typer.Option("--format", "-f", help="Output format")
    ] = None,
    mode: ModeOption = OperationMode.EXPORT,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Custom output directory")
    ] = None,
    on_empty: Annotated[
        ZeroRecordPolicy,
        typer.Option("--on-empty", help="What to do with tables that return no rows"),
    ] = ZeroRecordPolicy.export,
    config_dir: ConfigDirOption = None,
):
    """Execute a stored procedure and export its tables."""
    export_commands.run_workflow(
        procedure, start, end, table, export_format, mode, output, on_empty, config_dir
    )


@export_app.command("table")
def export_table(
    name: Annotated[str, typer.Argument(help="Table to download")],
    export_format: Annotated[
        Optional[FileFormat], typer.Option("--format", "-f", help="Output format")
    ] = None,
    mode: ModeOption = OperationMode.EXPORT,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Custom output directory")
    ] = None,
    config_dir: ConfigDirOption = None,
):
    """Download a single table without running a procedure."""
    export_commands.export_table(name, export_format, mode, output, config_dir)


if __name__ == "__main__":
    app()
