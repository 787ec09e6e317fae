"""
Tiercache Typer CLI Application

Operator commands for a cache database: inspect it, run maintenance now,
or empty it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from tiercache import __version__
from tiercache.cli.error_handler import handle_cli_error
from tiercache.config.loader import load_settings
from tiercache.config.models.settings import TierCacheSettings
from tiercache.core.maintenance import Maintenance, MaintenancePolicy
from tiercache.services.object_cache import open_cache
from tiercache.services.sqlite_cache.codec import get_codec
from tiercache.services.sqlite_cache.store import DurableStore
from tiercache.shared.constants import CLICommands, CLIHelp, CLIMessages
from tiercache.shared.errors import ErrorCode, ErrorContext, StoreUnavailableError
from tiercache.shared.logging import setup_structured_logger

console = Console()


@dataclass
class CliContext:
    """Options shared by every command."""

    settings: TierCacheSettings


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(CLIHelp.VERSION_TEXT.format(version=__version__))
        raise typer.Exit


app = typer.Typer(
    name=CLIHelp.APP_NAME,
    help=CLIHelp.APP_DESCRIPTION,
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    directory: Annotated[
        Optional[Path],
        typer.Option("--directory", "-d", help=CLIHelp.DIRECTORY_HELP, file_okay=False),
    ] = None,
    filename: Annotated[
        Optional[str], typer.Option("--filename", "-f", help=CLIHelp.FILENAME_HELP)
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help=CLIHelp.CONFIG_HELP, dir_okay=False),
    ] = None,
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help=CLIHelp.LOG_LEVEL_HELP)
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help=CLIHelp.VERSION_HELP,
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Load settings and apply the common options."""
    try:
        settings = load_settings(config)
        setup_structured_logger(
            level=log_level or settings.logging.level,
            log_file=settings.logging.file,
            use_rich_console=settings.logging.console_output,
        )
        overrides: dict[str, object] = {}
        if directory is not None:
            overrides["directory"] = directory
        if filename is not None:
            overrides["filename"] = filename
        if overrides:
            settings = settings.model_copy(
                update={"store": settings.store.model_copy(update=overrides)}
            )
    except Exception as e:  # noqa: BLE001
        raise typer.Exit(handle_cli_error(e, "main-callback")) from e

    ctx.obj = CliContext(settings=settings)


def _open_store(settings: TierCacheSettings) -> DurableStore:
    return DurableStore.from_settings(settings.store, codec=get_codec(settings.codec))


@app.command(CLICommands.INFO, help=CLIHelp.INFO_HELP)
def info_command(ctx: typer.Context) -> None:
    settings = ctx.obj.settings
    try:
        store = _open_store(settings)
        try:
            counts = store.row_counts()
            version = store.sqlite_version()
        finally:
            store.close()
    except Exception as e:  # noqa: BLE001
        raise typer.Exit(handle_cli_error(e, CLICommands.INFO)) from e

    table = Table(title="Cache database", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Path", str(store.path))
    table.add_row("SQLite version", version)
    table.add_row("File size", f"{store.file_size:,} bytes")
    table.add_row("Rows", str(counts["total"]))
    table.add_row("Expired rows", str(counts["expired"]))
    table.add_row("Samples", str(counts["samples"]))
    console.print(table)


@app.command(CLICommands.CLEANUP, help=CLIHelp.CLEANUP_HELP)
def cleanup_command(
    ctx: typer.Context,
    retention: Annotated[
        Optional[int], typer.Option("--retention", "-r", min=0, help=CLIHelp.RETENTION_HELP)
    ] = None,
    vacuum: Annotated[bool, typer.Option("--vacuum", help=CLIHelp.VACUUM_HELP)] = False,
) -> None:
    settings = ctx.obj.settings
    maintenance = Maintenance(MaintenancePolicy.from_settings(settings.maintenance))
    try:
        store = _open_store(settings)
        try:
            result = maintenance.clean_up(store, retention, vacuum=vacuum)
        finally:
            store.close()
    except Exception as e:  # noqa: BLE001
        raise typer.Exit(handle_cli_error(e, CLICommands.CLEANUP)) from e

    console.print(CLIMessages.CLEANUP_DONE.format(expired=result.expired, stale=result.stale))
    if result.vacuumed:
        console.print(CLIMessages.VACUUM_DONE)


@app.command(CLICommands.FLUSH, help=CLIHelp.FLUSH_HELP)
def flush_command(
    ctx: typer.Context,
    keep_samples: Annotated[
        bool, typer.Option("--keep-samples", help=CLIHelp.KEEP_SAMPLES_HELP)
    ] = False,
    vacuum: Annotated[bool, typer.Option("--vacuum", help=CLIHelp.VACUUM_HELP)] = False,
) -> None:
    settings = ctx.obj.settings.model_copy(update={"preload": []})
    try:
        with open_cache(
            settings=settings,
            degrade_on_unavailable=False,
            maintenance_policy=MaintenancePolicy.never(),
        ) as cache:
            store = cache.store
            if store is None:
                raise StoreUnavailableError(
                    ErrorCode.STORE_UNAVAILABLE,
                    "No cache store to flush",
                    ErrorContext(operation=CLICommands.FLUSH),
                )
            before = store.row_counts()["total"]
            if not cache.flush(keep_samples=keep_samples, vacuum=vacuum):
                raise StoreUnavailableError(
                    ErrorCode.STORE_BUSY,
                    "Cache store was busy, nothing was flushed",
                    ErrorContext(operation=CLICommands.FLUSH, file_path=str(store.path)),
                )
            after = store.row_counts()["total"]
    except Exception as e:  # noqa: BLE001
        raise typer.Exit(handle_cli_error(e, CLICommands.FLUSH)) from e

    console.print(CLIMessages.FLUSH_DONE.format(removed=before - after))
