"""Tests for the declarative users table."""

from sqlalchemy import CheckConstraint
from sqlalchemy.dialects.postgresql import UUID

from papertrade.models import DEFAULT_PAPER_AMOUNT, User
from papertrade.schema import EXPECTED_COLUMNS

table = User.__table__


def test_table_name():
    """The model maps to the users table."""
    assert table.name == "users"


def test_column_set_and_order():
    """Exactly the five declared columns, in order."""
    assert [c.name for c in table.columns] == [
        "id",
        "email",
        "name",
        "hashed_password",
        "paper_amount",
    ]


def test_id_is_uuid_primary_key_with_server_default():
    """id is a UUID primary key generated by the database."""
    column = table.c.id
    assert isinstance(column.type, UUID)
    assert column.primary_key
    assert str(column.server_default.arg) == "uuid_generate_v4()"


def test_email_unique_and_required():
    """email is unique and NOT NULL."""
    assert table.c.email.unique
    assert not table.c.email.nullable


def test_required_text_columns():
    """name and hashed_password are NOT NULL without defaults."""
    for name in ("name", "hashed_password"):
        column = table.c[name]
        assert not column.nullable
        assert column.server_default is None


def test_paper_amount_default():
    """paper_amount defaults to 10000 and has no check constraint."""
    column = table.c.paper_amount
    assert DEFAULT_PAPER_AMOUNT == 10000
    assert not column.nullable
    assert str(column.server_default.arg) == "10000"
    assert not [c for c in table.constraints if isinstance(c, CheckConstraint)]


def test_expected_columns_match_model():
    """The verification reference agrees with the model."""
    assert [c.name for c in EXPECTED_COLUMNS] == [c.name for c in table.columns]
    for expected in EXPECTED_COLUMNS:
        column = table.c[expected.name]
        assert column.nullable == expected.nullable
        assert column.primary_key == expected.primary_key
        assert bool(column.unique) == expected.unique
