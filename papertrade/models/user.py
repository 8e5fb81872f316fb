"""User model."""

from sqlalchemy import Column, Integer, Text, text
from sqlalchemy.dialects.postgresql import UUID

from papertrade.database import Base

DEFAULT_PAPER_AMOUNT = 10000


class User(Base):
    """Paper-trading account. Passwords are stored already hashed."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("uuid_generate_v4()"))
    email = Column(Text, unique=True, nullable=False)
    name = Column(Text, nullable=False)
    hashed_password = Column(Text, nullable=False)
    # Unbounded: negative balances are representable.
    paper_amount = Column(Integer, nullable=False, server_default=text(str(DEFAULT_PAPER_AMOUNT)))
