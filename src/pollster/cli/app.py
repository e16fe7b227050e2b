"""Main CLI application.

Click commands for the pollster service: serve, check-config, migrate.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import click

from pollster import __version__
from pollster.config.loader import check_startup, load_config
from pollster.core.errors import ConfigError

if TYPE_CHECKING:
    from pollster.config.schema import LoggingConfig, PollsterConfig


# ── Helpers ──────────────────────────────────────────────────────


def _error(msg: str) -> None:
    """Print an error message to stderr and exit."""
    click.echo(f"Error: {msg}", err=True)
    sys.exit(1)


def _load_config(config_path: str | None) -> PollsterConfig:
    """Load config with user-friendly error handling."""
    try:
        return load_config(path=config_path)
    except ConfigError as e:
        _error(str(e))
        raise  # unreachable, keeps mypy happy


def _configure_logging(config: LoggingConfig) -> None:
    """Configure root logging once for the process."""
    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    if config.structured:
        fmt = (
            '{"time": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}'
        )
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    logging.basicConfig(level=config.level.upper(), format=fmt, handlers=handlers)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# ── CLI group ────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="pollster")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """pollster - polls with role-based access.

    Serves the poll API in front of a hosted auth + database backend.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ── check-config ────────────────────────────────────────────────


@cli.command("check-config")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Validate required settings without starting the server."""
    from rich.console import Console
    from rich.table import Table

    config = _load_config(ctx.obj["config_path"])
    check = check_startup(config)

    table = Table(title="pollster configuration")
    table.add_column("Setting")
    table.add_column("Status")
    rows = [
        (config.backend.url_env or "backend.url", bool(config.backend.url)),
        (
            config.backend.anon_key_env or "backend.anon_key",
            bool(config.backend.anon_key),
        ),
    ]
    for name, present in rows:
        table.add_row(name, "[green]set[/green]" if present else "[red]missing[/red]")
    Console().print(table)

    if not check.ok:
        _error(check.describe())
    click.echo("Configuration OK.")


# ── serve ───────────────────────────────────────────────────────


@cli.command()
@click.option("--host", default=None, help="Bind address (default from config).")
@click.option("--port", type=int, default=None, help="Port (default from config).")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on changes.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the HTTP API server."""
    import uvicorn

    from pollster.api.app import create_app

    config = _load_config(ctx.obj["config_path"])
    _configure_logging(config.logging)

    check = check_startup(config)
    if not check.ok:
        _error(check.describe())

    app = create_app(config)
    uvicorn.run(
        app,
        host=host or config.api.host,
        port=port or config.api.port,
        reload=reload,
    )


# ── migrate ─────────────────────────────────────────────────────


@cli.command()
@click.option("--revision", default="head", show_default=True, help="Target revision.")
@click.option(
    "--alembic-ini",
    default="alembic.ini",
    show_default=True,
    type=click.Path(exists=True),
    help="Alembic config file.",
)
@click.pass_context
def migrate(ctx: click.Context, revision: str, alembic_ini: str) -> None:
    """Provision the store schema (tables, constraints, RLS policies)."""
    from alembic import command
    from alembic.config import Config

    config = _load_config(ctx.obj["config_path"])
    cfg = Config(alembic_ini)
    cfg.set_main_option("sqlalchemy.url", config.database.url)
    command.upgrade(cfg, revision)
    click.echo(f"Schema at revision {revision}.")
