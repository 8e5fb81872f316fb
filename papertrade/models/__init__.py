"""SQLAlchemy models."""

from papertrade.models.user import DEFAULT_PAPER_AMOUNT, User

__all__ = [
    "User",
    "DEFAULT_PAPER_AMOUNT",
]
