"""Error taxonomy for schema operations."""

from sqlalchemy.exc import DBAPIError


class SchemaError(Exception):
    """Base class for failures raised while managing the users schema."""

    sqlstate: str | None = None

    def __init__(self, message: str = "", *, sqlstate: str | None = None):
        super().__init__(message)
        if sqlstate is not None:
            self.sqlstate = sqlstate
        self.message = message or self.__class__.__name__


class PrivilegeError(SchemaError):
    """Caller may not create the extension or modify schema objects."""

    sqlstate = "42501"


class DependencyConflictError(SchemaError):
    """Another object (e.g. a view) depends on the table being dropped."""

    sqlstate = "2BP01"


class UniqueViolationError(SchemaError):
    """A write repeats an email that is already stored."""

    sqlstate = "23505"


class NotNullViolationError(SchemaError):
    """A write leaves a required column empty."""

    sqlstate = "23502"


class SchemaMissingError(SchemaError):
    """The users table does not exist."""


_BY_SQLSTATE: dict[str, type[SchemaError]] = {
    cls.sqlstate: cls
    for cls in (PrivilegeError, DependencyConflictError, UniqueViolationError, NotNullViolationError)
}


def get_sqlstate(exc: BaseException) -> str | None:
    """Return the SQLSTATE carried by a driver error, if any."""
    orig = getattr(exc, "orig", exc)
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def classify_error(exc: DBAPIError) -> SchemaError:
    """Map a driver error to the matching SchemaError, keeping its message verbatim."""
    sqlstate = get_sqlstate(exc)
    message = str(getattr(exc, "orig", None) or exc).strip()
    error_cls = _BY_SQLSTATE.get(sqlstate or "", SchemaError)
    return error_cls(message, sqlstate=sqlstate)
