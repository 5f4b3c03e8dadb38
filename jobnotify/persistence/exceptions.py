"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError so callers can catch
storage failures with a single except clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""


class DatabaseConnectionError(PersistenceError):
    """Database initialization failed, or it was used before init_database()."""


class DataIntegrityError(PersistenceError):
    """A database constraint was violated (e.g. duplicate subscription id)."""
