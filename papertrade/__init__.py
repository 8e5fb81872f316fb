"""Schema tooling for the paper-trading users table."""

__version__ = "0.1.0"
