"""
Database session handling.

This module provides:
1. The `connect()` function for opening a session on a SQLite file
2. The `Database` class: one session per database file, owning the native
   connection and the execution queue every statement passes through

SQLAlchemy is used for engine and connection management; statements run
directly on the underlying sqlite3 connection in auto-commit mode.

The Database is the primary client, providing methods like:
- execute(sql, params) - Execute SQL and return an ExecuteResult
- query(sql, params) - Execute a query and return decoded rows
- query_records(factory, sql, params) - Execute a query and build records
- total_rows(sql, params) - Execute a scalar count query
- table_exists(name) - Look a table up in the catalog
"""
import itertools
import logging
import os
import pathlib
import sqlite3
import weakref
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Self, TypeVar

import sqlalchemy as sa
from litedb.cache import Cache, get_table_info_cache
from litedb.cursor import Statement
from litedb.exceptions import CloseFailed, DatabaseNotOpened, ExecuteFailed
from litedb.exceptions import InvalidQuery, OpenFailed, RemoveFailed, error_code
from litedb.execution import ExecutionQueue
from litedb.options import DatabaseOptions
from litedb.params import bind_parameters
from litedb.row import ExecuteResult, Resolver, collect_result, map_result_set
from litedb.row import materialize_row
from litedb.sql import render_table_exists, standardize_placeholders
from litedb.types import SQLITE_ROW, Value
from sqlalchemy.pool import NullPool

__all__ = [
    'Database',
    'connect',
    'configure_connection',
    'create_url_from_options',
]

logger = logging.getLogger(__name__)

R = TypeVar('R')

_session_ids = itertools.count(1)


def create_url_from_options(options: DatabaseOptions) -> sa.URL:
    """Convert DatabaseOptions to a SQLAlchemy URL.
    """
    return sa.URL.create(drivername='sqlite', database=options.path)


def configure_connection(handle: sqlite3.Connection) -> None:
    """Configure a raw sqlite3 connection.

    Statements commit as they execute; there are no explicit transactions.
    """
    handle.isolation_level = None
    handle.execute('PRAGMA foreign_keys = ON')


def quote_identifier(identifier: str) -> str:
    """Quote a table or column name."""
    return '"' + identifier.replace('"', '""') + '"'


class Database:
    """Session on one SQLite database file.

    All statement preparation and execution is serialized through the
    session's ExecutionQueue. Pass the session explicitly to the records
    that use it; its lifecycle belongs to the caller.
    """

    def __init__(self, options: DatabaseOptions | dict | str | None = None, **kw: Any) -> None:
        self.options = DatabaseOptions.from_value(options, **kw)
        self.engine: sa.Engine | None = None
        self.sa_connection: sa.Connection | None = None
        self.handle: sqlite3.Connection | None = None
        self.queue = ExecutionQueue(f'litedb-{pathlib.Path(self.options.database).name}')
        self.session_id = next(_session_ids)
        self.calls = 0
        self.time = 0
        weakref.finalize(self, Cache.get_instance().forget_session, self.session_id)

    def __repr__(self) -> str:
        state = 'open' if self.is_open else 'closed'
        return f'Database({self.options.path!r}, {state})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        try:
            self.close()
        except CloseFailed as e:
            if exc_type is None:
                raise
            logger.warning(f'Error closing database while handling {exc_type.__name__}: {e}')
            return
        logger.debug('Closed database via context manager')

    @property
    def is_open(self) -> bool:
        return self.handle is not None

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    # Lifecycle

    def open(self) -> Self:
        """Open (or reopen) the database file.

        Raises
            OpenFailed: The file could not be opened
        """
        try:
            self.queue.run(self._open)
        except OpenFailed:
            self.queue.shutdown()
            raise
        return self

    def _open(self) -> None:
        self._close()
        url = create_url_from_options(self.options)
        try:
            engine = sa.create_engine(
                url, poolclass=NullPool,
                connect_args={'timeout': self.options.timeout, 'check_same_thread': False})
            sa_connection = engine.connect()
            handle = sa_connection.connection.dbapi_connection
            configure_connection(handle)
        except (sa.exc.SQLAlchemyError, sqlite3.Error) as e:
            raise OpenFailed(f'Failed to open database {self.options.path}: {e}',
                             code=error_code(e)) from e
        self.engine, self.sa_connection, self.handle = engine, sa_connection, handle
        logger.info(f'Database {self.options.path} successfully opened')

    def close(self) -> None:
        """Close the database. Closing a closed session does nothing.

        Raises
            CloseFailed: The native handle could not be closed
        """
        if not self.is_open:
            return
        try:
            self.queue.run(self._close)
        finally:
            self.queue.shutdown()

    def _close(self) -> None:
        if self.handle is None:
            return
        try:
            self.sa_connection.close()
            self.engine.dispose()
        except (sa.exc.SQLAlchemyError, sqlite3.Error) as e:
            raise CloseFailed(f'Unable to close database {self.options.path}: {e}',
                              code=error_code(e)) from e
        finally:
            self.handle = self.sa_connection = self.engine = None
            Cache.get_instance().forget_session(self.session_id)
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1, self.calls):.3f}s per query)')

    def remove(self) -> None:
        """Close the session and delete the database file.

        Raises
            RemoveFailed: The file exists but could not be deleted
        """
        self.close()
        if self.options.in_memory:
            return
        path = pathlib.Path(self.options.path)
        try:
            if path.exists():
                path.unlink()
                logger.info(f'File {path} removed')
        except OSError as e:
            raise RemoveFailed(f'Error removing database {path}: {e}') from e

    # Execution

    def _require_open(self) -> None:
        if self.handle is None:
            raise DatabaseNotOpened('Database not opened')

    def run(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        """Run a unit of work on the session's execution queue.

        Use this to drive `prepare` and `Statement.step` directly.
        """
        self._require_open()
        return self.queue.run(fn, *args, **kwargs)

    def prepare(self, sql: str, params: Sequence[Any] | None = None,
                declared_types: Mapping[str, str] | None = None) -> Statement:
        """Prepare a statement and bind its parameters.

        Must run on the execution queue (see `run`).

        Raises
            DatabaseNotOpened: Session is closed
            InvalidQuery: SQL text is empty
            PrepareFailed: Parameter count mismatch
            BindFailed: A parameter could not be bound, even as NULL
        """
        self._require_open()
        if not sql or not sql.strip():
            raise InvalidQuery('SQL is empty', sql=sql)
        statement = Statement(self, standardize_placeholders(sql), declared_types)
        bind_parameters(statement, params)
        return statement

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> ExecuteResult:
        """Execute a statement and return its execution statistics.
        """
        self._require_open()
        return self.queue.run(self._execute, sql, params)

    def _execute(self, sql: str, params: Sequence[Any] | None) -> ExecuteResult:
        statement = self.prepare(sql, params)
        try:
            result = statement.step()
            stats = collect_result(statement, result)
        finally:
            statement.finalize()
        logger.debug(f'Executed statement: {stats.total_rows_affected} rows affected, '
                     f'last row id {stats.last_inserted_row_id}')
        return stats

    def _query_rows(self, sql: str, params: Sequence[Any] | None, table: str | None,
                    resolver: Resolver | Mapping[str, Any] | None,
                    ) -> tuple[list[dict[str, Value]], list[str], dict[str, str]]:
        declared = self._column_types(table) if table else {}
        statement = self.prepare(sql, params, declared)
        try:
            rows = list(map_result_set(statement, resolver))
            columns = [statement.column_name(i) for i in range(statement.column_count)]
        finally:
            statement.finalize()
        logger.debug(f'Query returned {len(rows)} rows')
        return rows, columns, declared

    def query(self, sql: str, params: Sequence[Any] | None = None,
              table: str | None = None,
              resolver: Resolver | Mapping[str, Any] | None = None) -> Any:
        """Execute a query and return its decoded rows.

        Args:
            sql: Query text with `?` (or `%s`) placeholders
            params: Positional parameters
            table: Source table; its declared column types steer decoding
            resolver: Column name to declared type, consulted first

        Returns
            Rows as shaped by the configured data loader (default: list of dicts)
        """
        self._require_open()
        rows, columns, declared = self.queue.run(self._query_rows, sql, params, table, resolver)
        return self.options.data_loader(rows, columns, column_types=declared)

    def query_records(self, factory: Callable[[], R], sql: str,
                      params: Sequence[Any] | None = None,
                      resolver: Resolver | Mapping[str, Any] | None = None,
                      setters: Mapping[str, Any] | None = None) -> list[R]:
        """Execute a query and build one record per row with `factory`."""
        self._require_open()
        rows, _, _ = self.queue.run(self._query_rows, sql, params, None, resolver)
        return [materialize_row(factory, row, setters) for row in rows]

    def total_rows(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """Execute a query whose first column is a row count.

        Raises
            ExecuteFailed: The query produced no row
        """
        self._require_open()
        return self.queue.run(self._total_rows, sql, params)

    def _total_rows(self, sql: str, params: Sequence[Any] | None) -> int:
        statement = self.prepare(sql, params)
        try:
            result = statement.step()
            if result != SQLITE_ROW:
                raise ExecuteFailed(f'Error: {sql}', code=result, sql=sql)
            return int(statement.column_value(0) or 0)
        finally:
            statement.finalize()

    # Catalog

    def table_exists(self, name: str) -> bool:
        """Check whether a table exists, ignoring case."""
        self._require_open()
        rows, _, _ = self.queue.run(self._query_rows, render_table_exists(), [name.lower()], None, None)
        return len(rows) > 0

    def column_types(self, table: str) -> dict[str, str]:
        """Declared column types of a table, by column name."""
        self._require_open()
        return self.queue.run(self._column_types, table)

    def _column_types(self, table: str) -> dict[str, str]:
        cache = get_table_info_cache(self.session_id)
        key = table.lower()
        if key in cache:
            logger.debug(f'Cache hit for table info({table})')
            return cache[key]
        statement = self.prepare(f'PRAGMA table_info({quote_identifier(table)})')
        try:
            declared = {}
            while statement.step() == SQLITE_ROW:
                if statement.column_value(2):
                    declared[statement.column_value(1)] = statement.column_value(2)
        finally:
            statement.finalize()
        cache[key] = declared
        return declared

    def forget_table(self, table: str) -> None:
        """Drop cached metadata for a table, e.g. after creating it."""
        Cache.get_instance().forget_table(table)


def connect(options: DatabaseOptions | dict | str | os.PathLike | None = None,
            **kw: Any) -> Database:
    """Open a database session.

    Args:
        options: Can be:
                - DatabaseOptions object
                - Dictionary of options
                - Path of the database file (or `:memory:`)
        **kw: Additional keyword arguments to override options

    Returns
        An open Database
    """
    return Database(options, **kw).open()
