"""Persistence layer exceptions.

Every store failure surfaces as a PersistenceError subclass so callers can
catch store problems with a single except clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the database cannot be initialised or reached.

    Examples:
    - Invalid database URL
    - Database file not accessible
    - get_session() called before init_database()
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised by operations that require an existing row (e.g. watermark updates).

    Optional lookups return None instead.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations such as a duplicate e-mail or unknown owner."""

    pass
