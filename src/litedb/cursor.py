"""
Statement handle over a sqlite3 cursor.

A Statement holds the SQL text, its positional parameter slots and, once
stepped, the cursor producing its rows. It exposes the step/column accessor
protocol the row mapper drives:

    statement = session.prepare('SELECT * from person WHERE age > ?', [30])
    while statement.step() == SQLITE_ROW:
        statement.column_name(0), statement.column_value(0)
    statement.finalize()
"""
import logging
import sqlite3
import time
from collections.abc import Mapping
from functools import wraps
from typing import TYPE_CHECKING, Any

from litedb.exceptions import ExecuteFailed, InvalidHandle, PrepareFailed
from litedb.exceptions import error_code, is_prepare_error
from litedb.sql import count_placeholders
from litedb.types import SQLITE_DONE, SQLITE_OK, SQLITE_RANGE, SQLITE_ROW
from litedb.types import Affinity, storage_affinity

if TYPE_CHECKING:
    from litedb.connection import Database

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL statements and parameters."""
    @wraps(func)
    def wrapper(self: 'Statement', *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{self.sql}\nargs: {self.parameters}')
        try:
            return func(self, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{self.sql}\nargs: {self.parameters}')
            raise
        finally:
            elapsed = time.time() - start
            self.session.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Statement:
    """One prepared SQL statement.

    Parameter indexes are 1-based, column indexes 0-based, matching SQLite.
    """

    def __init__(self, session: 'Database', sql: str,
                 declared_types: Mapping[str, str] | None = None) -> None:
        self.session = session
        self.sql = sql
        self.declared_types = dict(declared_types or {})
        self.parameter_count = count_placeholders(sql)
        self._params: list[Any] = [None] * self.parameter_count
        self._cursor: sqlite3.Cursor | None = None
        self._row: tuple | None = None
        self._finalized = False

    def __repr__(self) -> str:
        return f'Statement({self.sql!r}, parameters={self._params!r})'

    @property
    def parameters(self) -> tuple:
        return tuple(self._params)

    def bind(self, index: int, value: Any) -> int:
        """Store a native value in a parameter slot and return the result code."""
        if not 1 <= index <= self.parameter_count:
            return SQLITE_RANGE
        self._params[index - 1] = value
        return SQLITE_OK

    def bind_null(self, index: int) -> int:
        return self.bind(index, None)

    @dumpsql
    def _execute(self) -> None:
        handle = self.session.handle
        if handle is None:
            raise InvalidHandle(f'Connection handle is closed: {self.sql}', sql=self.sql)
        self._cursor = handle.cursor()
        self._cursor.execute(self.sql, self._params)

    def step(self) -> int:
        """Advance to the next row.

        Returns
            SQLITE_ROW when a row is available, SQLITE_DONE otherwise

        Raises
            PrepareFailed: The store could not compile the statement
            ExecuteFailed: The store rejected the statement
        """
        if self._finalized:
            raise InvalidHandle(f'Statement already finalized: {self.sql}', sql=self.sql)
        first = self._cursor is None
        try:
            if first:
                self._execute()
            row = self._cursor.fetchone() if self._cursor.description else None
        except (sqlite3.Error, sqlite3.Warning) as e:
            if first and is_prepare_error(e):
                raise PrepareFailed(f'Unable to prepare statement: {self.sql}, {e}',
                                    code=error_code(e), sql=self.sql) from e
            raise ExecuteFailed(f'Unable to execute sql: {self.sql}, Error : {e}',
                                code=error_code(e), sql=self.sql) from e
        self._row = row
        return SQLITE_ROW if row is not None else SQLITE_DONE

    def finalize(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
        self._finalized = True

    @property
    def column_count(self) -> int:
        if self._cursor is None or self._cursor.description is None:
            return 0
        return len(self._cursor.description)

    def column_name(self, index: int) -> str:
        return self._cursor.description[index][0]

    def column_declared_type(self, index: int) -> str | None:
        """Declared type of a result column, when the source table is known."""
        return self.declared_types.get(self.column_name(index))

    def column_runtime_type(self, index: int) -> Affinity:
        """Storage class of the value in the current row."""
        return storage_affinity(self.column_value(index))

    def column_value(self, index: int) -> Any:
        if self._row is None:
            raise InvalidHandle(f'No current row: {self.sql}', sql=self.sql)
        return self._row[index]

    @property
    def last_inserted_row_id(self) -> int | None:
        return self._cursor.lastrowid if self._cursor is not None else None

    @property
    def changes(self) -> int:
        if self._cursor is None or self._cursor.rowcount < 0:
            return 0
        return self._cursor.rowcount
