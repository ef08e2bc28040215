"""DB-specific exceptions. code matches the retry classifier's vocabulary."""


class DbError(Exception):
    """Base exception for DB layer errors."""

    code = "DB_ERROR"


class NotFoundError(DbError):
    """Requested entity was not found."""

    code = "NOT_FOUND"


class ConflictError(DbError):
    """Uniqueness or constraint violation (e.g. duplicate key)."""

    code = "CONFLICT"
