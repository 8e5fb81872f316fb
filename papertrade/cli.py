"""Command-line interface for the users schema."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import click
from alembic import command
from alembic.config import Config as AlembicConfig
from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError

from papertrade import __version__
from papertrade.config import get_settings
from papertrade.database import get_engine
from papertrade.errors import SchemaError, classify_error
from papertrade.schema import (
    USERS_TABLE,
    ensure_schema,
    render_reset_script,
    reset_schema,
    verify_schema,
)

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    """Set a simple, readable log format on the root logger."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    root.setLevel(level.upper())
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@contextmanager
def _connect(ctx: click.Context) -> Iterator[Engine]:
    """Yield an engine for the selected database and report schema errors as CLI errors."""
    engine = get_engine(ctx.obj["database_url"])
    try:
        yield engine
    except SchemaError as e:
        raise click.ClickException(e.message) from e
    finally:
        engine.dispose()


@click.group()
@click.version_option(__version__)
@click.option(
    "--database-url",
    default=None,
    help="Database URL (default: DATABASE_URL from settings).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, database_url: str | None, verbose: bool) -> None:
    """Manage the paper-trading users table.

    Use `reset` on disposable databases only; `ensure` and `upgrade` keep
    existing data.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        raise click.ClickException(f"Invalid settings: {messages}") from e
    _configure_logging("DEBUG" if verbose else settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url or settings.database_url


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.option("--atomic", is_flag=True, help="Run all steps in a single transaction.")
@click.option("--force", is_flag=True, help="Allow running in production.")
@click.pass_context
def reset(ctx: click.Context, yes: bool, atomic: bool, force: bool) -> None:
    """Drop and recreate the users table. ALL ROWS ARE LOST.

    Ensures the uuid-ossp extension, drops `users` if present and creates
    it again, empty.

    Examples:

        papertrade-db reset --yes

        # Keep the old table if creation fails
        papertrade-db reset --yes --atomic
    """
    if get_settings().is_production and not force:
        raise click.ClickException("Refusing to reset in production (use --force to override).")
    if not yes:
        click.confirm(f"Drop table '{USERS_TABLE.name}' and all of its rows?", abort=True)

    with _connect(ctx) as engine:
        reset_schema(engine, atomic=atomic)
    click.echo(click.style(f"Table '{USERS_TABLE.name}' reset.", fg="green"))


@cli.command()
@click.pass_context
def ensure(ctx: click.Context) -> None:
    """Create the users table if it does not exist, keeping existing rows."""
    with _connect(ctx) as engine:
        created = ensure_schema(engine)
    if created:
        click.echo(click.style(f"Table '{USERS_TABLE.name}' created.", fg="green"))
    else:
        click.echo(f"Table '{USERS_TABLE.name}' already exists.")


@cli.command()
@click.pass_context
def verify(ctx: click.Context) -> None:
    """Check the live users table against its declared shape."""
    with _connect(ctx) as engine:
        problems = verify_schema(engine)
    if not problems:
        click.echo(click.style(f"Table '{USERS_TABLE.name}' matches.", fg="green"))
        return

    click.echo(click.style(f"Table '{USERS_TABLE.name}' differs:", fg="red", bold=True))
    for problem in problems:
        click.echo(f"  - {problem}")
    ctx.exit(1)


@cli.command()
def sql() -> None:
    """Print the reset script as PostgreSQL SQL."""
    click.echo(render_reset_script(), nl=False)


@cli.command()
@click.argument("revision", default="head")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default="alembic.ini",
    show_default=True,
    help="Alembic configuration file.",
)
@click.pass_context
def upgrade(ctx: click.Context, revision: str, config_path: str) -> None:
    """Apply Alembic migrations up to REVISION (default: head)."""
    alembic_cfg = AlembicConfig(config_path)
    # set_main_option interpolates, so a percent-encoded password needs %%
    alembic_cfg.set_main_option("sqlalchemy.url", ctx.obj["database_url"].replace("%", "%%"))
    logger.info(f"Upgrading database to {revision}")
    try:
        command.upgrade(alembic_cfg, revision)
    except DBAPIError as e:
        raise click.ClickException(classify_error(e).message) from e
    click.echo(click.style(f"Upgraded to {revision}.", fg="green"))


def main() -> None:
    """Entry point for the papertrade-db CLI."""
    cli()
