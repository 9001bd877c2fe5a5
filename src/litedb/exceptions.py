"""
Database-specific exception classes.
"""
import re
import sqlite3


class DatabaseError(Exception):
    """Base class for all litedb errors.

    Carries the native SQLite result code (when there is one) and the SQL
    text that was being prepared or executed.
    """

    def __init__(self, message: str, code: int | None = None, sql: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.sql = sql

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f'{self.message} (code {self.code})'


class OpenFailed(DatabaseError):
    """Error opening the database file.
    """


class CloseFailed(DatabaseError):
    """Error closing the database handle.
    """


class RemoveFailed(DatabaseError):
    """Error removing the database file.
    """


class InvalidHandle(DatabaseError):
    """Statement or connection handle is no longer usable.
    """


class InvalidQuery(DatabaseError):
    """Missing or malformed SQL text.
    """


class DatabaseNotOpened(DatabaseError):
    """Operation attempted on a closed session.
    """


class PrepareFailed(DatabaseError):
    """Statement could not be prepared, or its parameters do not match.
    """


class BindFailed(DatabaseError):
    """Parameter could not be bound, even as NULL.
    """


class ExecuteFailed(DatabaseError):
    """Statement failed while stepping.
    """


class NoPrimaryKey(DatabaseError):
    """Update or delete attempted without a usable primary key.
    """


class SchemaError(DatabaseError):
    """Record declaration that cannot be mapped to a table.
    """


class UnknownColumnType(SchemaError, ValueError):
    """Declared type name outside the supported set.
    """


def error_code(exc: BaseException) -> int | None:
    """Extract the native SQLite result code from a driver exception."""
    if isinstance(exc, sqlite3.Error):
        return getattr(exc, 'sqlite_errorcode', None)
    orig = getattr(exc, 'orig', None)
    if isinstance(orig, sqlite3.Error):
        return getattr(orig, 'sqlite_errorcode', None)
    return None


PREPARE_PATTERNS = [
    r'syntax error',
    r'^near ',
    r'incomplete input',
    r'unrecognized token',
    r'no such (table|column|function)',
    r'has no column',
    r'one statement at a time',
]

_PREPARE_REGEX = re.compile('|'.join(PREPARE_PATTERNS), re.IGNORECASE)


def is_prepare_error(exc: BaseException) -> bool:
    """Check if a driver error was raised while compiling the statement.

    SQLite compiles a statement on first execution, so errors such as bad
    syntax or unknown tables surface there rather than at prepare time.
    """
    return bool(_PREPARE_REGEX.search(str(exc)))
