"""Schema initializer for the users table.

``reset_schema`` is the destructive path meant for disposable databases:
it ensures the ``uuid-ossp`` extension, drops ``users`` and recreates it
empty. ``ensure_schema`` is the additive path that keeps existing rows.
"""

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import inspect, text
from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.schema import CreateTable, DropTable

from papertrade.errors import SchemaMissingError, classify_error
from papertrade.models.user import DEFAULT_PAPER_AMOUNT, User

logger = logging.getLogger(__name__)

UUID_EXTENSION = "uuid-ossp"
USERS_TABLE = User.__table__

CREATE_EXTENSION_SQL = f'CREATE EXTENSION IF NOT EXISTS "{UUID_EXTENSION}"'

_CAST_RE = re.compile(r"(::[a-z_][a-z0-9_ ]*(\[\])?)+$", re.IGNORECASE)
_SCHEMA_PREFIX_RE = re.compile(r"^[a-z_][a-z0-9_]*\.(?=[a-z_][a-z0-9_]*\()", re.IGNORECASE)


@dataclass(frozen=True)
class ColumnInfo:
    """Shape of one column of the users table."""

    name: str
    type_name: str
    nullable: bool
    default: str | None = None
    primary_key: bool = False
    unique: bool = False


EXPECTED_COLUMNS: tuple[ColumnInfo, ...] = (
    ColumnInfo("id", "UUID", False, "uuid_generate_v4()", primary_key=True),
    ColumnInfo("email", "TEXT", False, unique=True),
    ColumnInfo("name", "TEXT", False),
    ColumnInfo("hashed_password", "TEXT", False),
    ColumnInfo("paper_amount", "INTEGER", False, str(DEFAULT_PAPER_AMOUNT)),
)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Re-raise driver errors as SchemaError subclasses."""
    try:
        yield
    except DBAPIError as e:
        error = classify_error(e)
        logger.error(f"{action} failed ({error.sqlstate or 'no sqlstate'}): {error.message}")
        raise error from e


def ensure_uuid_extension(connection: Connection) -> None:
    """Make uuid_generate_v4() available. No-op when the extension exists."""
    logger.info(f'Ensuring extension "{UUID_EXTENSION}"')
    with _translate_errors("Create extension"):
        connection.execute(text(CREATE_EXTENSION_SQL))


def drop_users_table(connection: Connection) -> None:
    """Drop the users table and all its rows, if present.

    Dependent objects are not cascaded, so a view over ``users`` makes this
    fail with DependencyConflictError.
    """
    logger.info(f"Dropping table {USERS_TABLE.name} if it exists")
    with _translate_errors("Drop table"):
        connection.execute(DropTable(USERS_TABLE, if_exists=True))


def create_users_table(connection: Connection) -> None:
    """Create the users table."""
    logger.info(f"Creating table {USERS_TABLE.name}")
    with _translate_errors("Create table"):
        connection.execute(CreateTable(USERS_TABLE))


RESET_STEPS = (ensure_uuid_extension, drop_users_table, create_users_table)


def reset_schema(engine: Engine, atomic: bool = False) -> None:
    """Destructively reinitialize the users table.

    Each step commits on its own unless ``atomic`` is set, in which case the
    three steps share one transaction and a failure keeps the old table.
    """
    logger.warning(f"Resetting table {USERS_TABLE.name}: all rows will be lost")
    with _translate_errors("Reset schema"):
        if atomic:
            with engine.begin() as connection:
                for step in RESET_STEPS:
                    step(connection)
        else:
            for step in RESET_STEPS:
                with engine.begin() as connection:
                    step(connection)
    logger.info(f"Table {USERS_TABLE.name} reset")


def ensure_schema(engine: Engine) -> bool:
    """Create the users table only if missing. Returns True if it was created."""
    with _translate_errors("Ensure schema"), engine.begin() as connection:
        ensure_uuid_extension(connection)
        if inspect(connection).has_table(USERS_TABLE.name):
            logger.info(f"Table {USERS_TABLE.name} already exists, leaving it untouched")
            return False
        create_users_table(connection)
    return True


def describe_users_table(engine: Engine) -> list[ColumnInfo]:
    """Introspect the live users table, columns in ordinal order."""
    name = USERS_TABLE.name
    with _translate_errors("Describe table"), engine.connect() as connection:
        inspector = inspect(connection)
        if not inspector.has_table(name):
            raise SchemaMissingError(f'relation "{name}" does not exist')

        primary_key = set(inspector.get_pk_constraint(name).get("constrained_columns") or [])
        unique = set()
        for constraint in inspector.get_unique_constraints(name):
            if len(constraint["column_names"]) == 1:
                unique.add(constraint["column_names"][0])

        return [
            ColumnInfo(
                name=column["name"],
                type_name=str(column["type"]),
                nullable=column["nullable"],
                default=column.get("default"),
                primary_key=column["name"] in primary_key,
                unique=column["name"] in unique,
            )
            for column in inspector.get_columns(name)
        ]


def normalize_default(default: str | None) -> str | None:
    """Strip the schema prefix and type casts PostgreSQL adds to reflected defaults.

    ``public.uuid_generate_v4()`` becomes ``uuid_generate_v4()`` and
    ``'10000'::integer`` becomes ``10000``.
    """
    if default is None:
        return None
    value = _CAST_RE.sub("", default.strip())
    value = _SCHEMA_PREFIX_RE.sub("", value)
    if len(value) >= 2 and value[0] == value[-1] == "'" and value[1:-1].lstrip("-").isdigit():
        value = value[1:-1]
    return value


def compare_columns(actual: list[ColumnInfo]) -> list[str]:
    """List every difference between ``actual`` and EXPECTED_COLUMNS."""
    problems = []
    by_name = {column.name: column for column in actual}
    expected_names = {column.name for column in EXPECTED_COLUMNS}

    for expected in EXPECTED_COLUMNS:
        column = by_name.get(expected.name)
        if column is None:
            problems.append(f"missing column {expected.name}")
            continue
        if column.type_name.upper() != expected.type_name:
            problems.append(
                f"column {expected.name}: type {column.type_name}, expected {expected.type_name}"
            )
        if column.nullable != expected.nullable:
            wanted = "nullable" if expected.nullable else "NOT NULL"
            problems.append(f"column {expected.name}: expected {wanted}")
        if expected.default is None:
            if column.default is not None:
                problems.append(f"column {expected.name}: unexpected default {column.default!r}")
        elif normalize_default(column.default) != expected.default:
            problems.append(
                f"column {expected.name}: default {column.default!r}, expected {expected.default!r}"
            )
        if expected.primary_key and not column.primary_key:
            problems.append(f"column {expected.name}: not the primary key")
        if expected.unique and not column.unique:
            problems.append(f"column {expected.name}: missing unique constraint")

    for column in actual:
        if column.name not in expected_names:
            problems.append(f"unexpected column {column.name}")
    return problems


def verify_schema(engine: Engine) -> list[str]:
    """Compare the live users table with the declared shape. Empty means it matches."""
    problems = compare_columns(describe_users_table(engine))
    if problems:
        logger.warning(f"Table {USERS_TABLE.name} differs from its declaration: {problems}")
    return problems


def render_reset_script() -> str:
    """Render the reset sequence as PostgreSQL SQL without touching a database."""
    dialect = postgresql.dialect()
    statements = [
        CREATE_EXTENSION_SQL,
        str(DropTable(USERS_TABLE, if_exists=True).compile(dialect=dialect)).strip(),
        str(CreateTable(USERS_TABLE).compile(dialect=dialect)).strip(),
    ]
    return "\n\n".join(f"{statement};" for statement in statements) + "\n"
