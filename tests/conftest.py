"""Pytest configuration and fixtures."""

import os
from pathlib import Path

import pytest
from alembic.config import Config as AlembicConfig
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url

from papertrade.config import get_settings
from papertrade.schema import reset_schema

# Database tests need PostgreSQL (uuid-ossp); they run against <name>_test
if os.getenv("DATABASE_URL"):
    _url = make_url(os.getenv("DATABASE_URL"))
    TEST_DATABASE_URL = _url.set(database=f"{_url.database}_test").render_as_string(
        hide_password=False
    )
else:
    TEST_DATABASE_URL = None

ALEMBIC_INI = str(Path(__file__).resolve().parents[1] / "alembic.ini")


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test read settings afresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def engine():
    """Engine bound to the PostgreSQL test database."""
    if TEST_DATABASE_URL is None:
        pytest.skip("DATABASE_URL not set; PostgreSQL tests skipped")

    from sqlalchemy_utils import create_database, database_exists

    if not database_exists(TEST_DATABASE_URL):
        create_database(TEST_DATABASE_URL)

    test_engine = create_engine(TEST_DATABASE_URL, pool_pre_ping=True)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def users_table(engine):
    """A freshly reset, empty users table."""
    reset_schema(engine)
    return engine


@pytest.fixture
def make_alembic_config():
    """Build an Alembic config for a URL; offline SQL goes to ``buffer``."""

    def _make(url, buffer=None):
        alembic_cfg = AlembicConfig(ALEMBIC_INI, output_buffer=buffer)
        alembic_cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
        return alembic_cfg

    return _make
