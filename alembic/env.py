"""Alembic environment for the users schema."""

import logging
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import make_url

from papertrade.config import get_settings
from papertrade.database import Base
from papertrade import models  # noqa: F401

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name, disable_existing_loggers=False)
logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata

# A URL set programmatically (papertrade-db upgrade) wins over settings
db_url = config.get_main_option("sqlalchemy.url") or get_settings().database_url
if not make_url(db_url).drivername.startswith("postgresql"):
    raise RuntimeError(f"Unsupported database for migrations: {make_url(db_url).drivername}")
config.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))
logger.info(f"Alembic using {make_url(db_url).render_as_string(hide_password=True)}")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (emit SQL, no DB connection)."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    section: dict[str, Any] = dict(config.get_section(config.config_ini_section) or {})
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
