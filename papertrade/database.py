"""Database engine and declarative base."""

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from papertrade.config import get_settings

Base: Any = declarative_base()


def get_engine(database_url: str | None = None) -> Engine:
    """Create an engine for the configured (or given) database URL."""
    settings = get_settings()
    return create_engine(
        database_url or settings.database_url,
        pool_pre_ping=True,
        connect_args={"connect_timeout": settings.connect_timeout},
    )
