# schema-migrations-sdk/schema_migrations_sdk/cli/main.py
"""
Command Line Interface for Schema Migrations SDK.
"""

import asyncio
import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..exceptions import ConfigurationError, SchemaSDKError
from ..generation.bootstrap import SchemaDdlGenerator
from ..generation.splitter import render_script
from ..migrations.config import MigrationConfig
from ..migrations.manager import MigrationManager, discover_migrations
from ..schema.builder import SchemaModelBuilder
from ..schema.config import SchemaBuilderConfig
from ..schema.entities import find_entities
from ..version import __version__, get_version_info

app = typer.Typer(
    name="schema-migrations",
    help="Schema Migrations SDK CLI",
    add_completion=False
)
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    """Generate schema DDL and apply migrations."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)]
        )


def _load_module(target: str):
    """Import a dotted module name or a ``.py`` file path."""
    path = Path(target)
    if path.suffix == ".py":
        if not path.is_file():
            raise typer.BadParameter(f"File not found: {target}")
        spec = importlib.util.spec_from_file_location(path.stem, path)
        module = importlib.util.module_from_spec(spec)
        sys.modules[path.stem] = module
        spec.loader.exec_module(module)
        return module
    return importlib.import_module(target)


def _emit(script: str, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(script, nl=False)
    else:
        output.write_text(script, encoding="utf-8")
        rprint(f"✅ [green]Script written to {escape(str(output))}[/green]")


def _fail(error: Exception) -> None:
    rprint(f"❌ [red]{escape(str(error))}[/red]")
    raise typer.Exit(1)


def _config(dsn: Optional[str], history_schema: str, history_table: str,
            lock_scope: str, lock_timeout: int) -> MigrationConfig:
    try:
        return MigrationConfig(
            dsn=dsn,
            history_schema=history_schema,
            history_table=history_table,
            lock_scope=lock_scope,
            lock_timeout_ms=lock_timeout,
        )
    except ValidationError as e:
        details = "; ".join(err["msg"] for err in e.errors())
        raise ConfigurationError(f"Invalid configuration: {details}", original_error=e) from e


@app.command()
def version():
    """Show SDK version information."""
    info = get_version_info()
    rprint(f"Schema Migrations SDK [cyan]{__version__}[/cyan]")
    rprint(f"Product version: {info['product_version']}")


@app.command("script-schema")
def script_schema(
    module: str = typer.Argument(..., help="Module (dotted name or .py file) defining @table entities"),
    default_schema: str = typer.Option("dbo", help="Schema for entities without one"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the script to a file"),
):
    """Print the idempotent bootstrap script for every @table entity in a module."""
    try:
        entities = find_entities(_load_module(module))
        if not entities:
            rprint(f"❌ [red]No @table entities found in {escape(module)}[/red]")
            raise typer.Exit(1)

        builder = SchemaModelBuilder(SchemaBuilderConfig(default_schema=default_schema))
        model = builder.build(*entities)
        _emit(render_script(SchemaDdlGenerator().generate(model)), output)
    except SchemaSDKError as e:
        _fail(e)


@app.command("script-migrations")
def script_migrations(
    directory: Path = typer.Argument(..., help="Directory containing migration files"),
    applied: Optional[List[str]] = typer.Option(None, "--applied", help="Ids to treat as already applied"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the script to a file"),
):
    """Print the SQL pending migrations would execute, without connecting."""
    try:
        manager = MigrationManager()
        parts = []
        for migration, batches in manager.script(discover_migrations(directory), applied or ()):
            parts.append(f"-- Migration {migration.id}: {migration.name}\n")
            parts.append(render_script(batches))
        _emit("".join(parts), output)
    except SchemaSDKError as e:
        _fail(e)


@app.command()
def migrate(
    directory: Path = typer.Argument(..., help="Directory containing migration files"),
    dsn: str = typer.Option(..., envvar="SCHEMA_MIGRATIONS_DSN", help="ODBC connection string"),
    history_schema: str = typer.Option("dbo", help="Schema of the history table"),
    history_table: str = typer.Option("__SchemaMigrationsHistory", help="History table name"),
    lock_scope: str = typer.Option("SchemaMigrations", help="Advisory lock resource name"),
    lock_timeout: int = typer.Option(30000, help="Lock timeout in milliseconds"),
):
    """Apply pending migrations."""
    try:
        config = _config(dsn, history_schema, history_table, lock_scope, lock_timeout)
        manager = MigrationManager(config)
        results = asyncio.run(manager.migrate(discover_migrations(directory)))
    except SchemaSDKError as e:
        _fail(e)
        return

    if not results:
        rprint("✅ [green]Database is up to date[/green]")
        return

    table = Table(title="Applied Migrations")
    table.add_column("Id", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Batches", justify="right")
    table.add_column("Duration (s)", justify="right")
    for result in results:
        table.add_row(result.migration_id, result.name, str(result.batches_executed),
                      f"{result.duration or 0:.2f}")
    console.print(table)


@app.command()
def status(
    directory: Path = typer.Argument(..., help="Directory containing migration files"),
    dsn: str = typer.Option(..., envvar="SCHEMA_MIGRATIONS_DSN", help="ODBC connection string"),
    history_schema: str = typer.Option("dbo", help="Schema of the history table"),
    history_table: str = typer.Option("__SchemaMigrationsHistory", help="History table name"),
):
    """Show applied and pending migrations."""
    try:
        config = _config(dsn, history_schema, history_table, "SchemaMigrations", 30000)
        report = asyncio.run(MigrationManager(config).get_status(discover_migrations(directory)))
    except SchemaSDKError as e:
        _fail(e)
        return

    table = Table(title="Migration Status")
    table.add_column("Id", style="cyan")
    table.add_column("Status")
    for migration_id in report.applied:
        table.add_row(migration_id, "[green]applied[/green]")
    for migration_id in report.pending:
        table.add_row(migration_id, "[yellow]pending[/yellow]")
    for migration_id in report.unknown:
        table.add_row(migration_id, "[red]applied, not in catalog[/red]")
    console.print(table)


@app.command()
def bootstrap(
    module: str = typer.Argument(..., help="Module (dotted name or .py file) defining @table entities"),
    dsn: str = typer.Option(..., envvar="SCHEMA_MIGRATIONS_DSN", help="ODBC connection string"),
    default_schema: str = typer.Option("dbo", help="Schema for entities without one"),
    lock_scope: str = typer.Option("SchemaMigrations", help="Advisory lock resource name"),
    lock_timeout: int = typer.Option(30000, help="Lock timeout in milliseconds"),
):
    """Create every missing schema object for the @table entities in a module."""
    try:
        entities = find_entities(_load_module(module))
        model = SchemaModelBuilder(SchemaBuilderConfig(default_schema=default_schema)).build(*entities)
        config = _config(dsn, "dbo", "__SchemaMigrationsHistory", lock_scope, lock_timeout)
        count = asyncio.run(MigrationManager(config).bootstrap(model))
    except SchemaSDKError as e:
        _fail(e)
        return

    rprint(f"✅ [green]Executed {count} bootstrap batches[/green]")


if __name__ == "__main__":
    app()
