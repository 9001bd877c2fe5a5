"""
Table records.

Subclass Table and declare Column attributes to map a class onto a table:

    class Person(Table):
        __tablename__ = 'person'
        id = Column(primary_key=True, auto_increment=True)
        name = Column(column_type=ColumnType.TEXT)
        age = Column(column_type=ColumnType.INTEGER)

    with connect('people.db') as db:
        ada = Person(db, name='Ada', age=30)
        ada.insert()
        ada.age = 31
        ada.update()
        adults = ada.select('age >= ?', 18)

A record is bound to one session; every CRUD operation runs on that
session's execution queue. A record's column slots are plain attributes
and are not safe to mutate from several threads at once.
"""
import logging
from collections.abc import Callable
from typing import Any, Self

from litedb.column import Column
from litedb.connection import Database
from litedb.exceptions import DatabaseError, DatabaseNotOpened
from litedb.schema import TableSchema, reflect
from litedb.sql import bind_delete, bind_insert, bind_update, render_count
from litedb.sql import render_create_table, render_delete, render_insert
from litedb.sql import render_select, render_update
from litedb.types import Value

logger = logging.getLogger(__name__)


class Table:
    """Base class for records backed by a SQLite table.

    The table name defaults to the lower-cased class name; set
    `__tablename__` to override it.
    """

    __tablename__: str = 'table'
    __schema__: TableSchema = TableSchema('table', {})

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        tablename = cls.__dict__.get('__tablename__') or cls.__name__.lower()
        cls.__tablename__ = tablename
        cls.__schema__ = TableSchema.from_class(cls, tablename)

    def __init__(self, db: Database | None = None, **values: Value) -> None:
        if type(self) is Table:
            raise TypeError('Table must be subclassed')
        self._columns = self.__schema__.new_columns()
        self._db: Database | None = None
        for name, value in values.items():
            if self.__schema__.field_for(name) is None:
                raise TypeError(f'{type(self).__name__} has no column {name!r}')
            self[name] = value
        if db is not None:
            self.bind(db)

    def __repr__(self) -> str:
        fields = ', '.join(f'{field}={column.value!r}' for field, column in self._columns.items())
        return f'{type(self).__name__}({fields})'

    def __getitem__(self, name: str) -> Value:
        return self._columns[self._field(name)].value

    def __setitem__(self, name: str, value: Value) -> None:
        column = self._columns[self._field(name)]
        column.value = column.coerce(value)

    def _field(self, name: str) -> str:
        field = self.__schema__.field_for(name)
        if field is None:
            raise KeyError(name)
        return field

    @property
    def tablename(self) -> str:
        return self.__tablename__

    @property
    def db(self) -> Database | None:
        return self._db

    def bind(self, db: Database) -> Self:
        """Attach a session, creating the table if it is absent.

        Table creation here is best effort: failures are logged and the
        record stays usable.
        """
        self._db = db
        if db.is_open and db.options.auto_create:
            self._ensure_table()
        return self

    def _ensure_table(self) -> None:
        try:
            if not self.create_table():
                logger.debug(f'Table {self.tablename} already created')
        except DatabaseError as e:
            logger.error(f'Could not create table {self.tablename}: {e}')

    def _session(self) -> Database:
        db = self._db
        if db is None or not db.is_open:
            raise DatabaseNotOpened('Database not opened')
        return db

    def columns(self) -> dict[str, Column]:
        """This record's columns in canonical order, keyed by field name."""
        return reflect(self)

    def to_dict(self) -> dict[str, Value]:
        return {column.name: column.value for column in self._columns.values()}

    def _statement(self, db: Database, render: Callable, bind: Callable) -> tuple[str, list | None]:
        columns = self.columns()
        sql = render(self.tablename, columns)
        if db.options.inline_literals:
            return sql, None
        logger.debug(sql)
        return bind(self.tablename, columns)

    # CRUD

    def create_table(self) -> bool:
        """Create the table unless it already exists.

        Returns
            True if the table was created
        """
        db = self._session()
        return db.run(self._create_if_absent, db)

    def _create_if_absent(self, db: Database) -> bool:
        if db.table_exists(self.tablename):
            return False
        db.execute(render_create_table(self.tablename, self.columns()))
        db.forget_table(self.tablename)
        logger.info(f'Table {self.tablename} successfully created')
        return True

    def insert(self) -> int:
        """Insert this record and return the new row id.

        Auto-increment columns are sent as NULL; afterwards the new row id
        is written into the primary key and any auto-increment column.
        """
        db = self._session()
        sql, params = self._statement(db, render_insert, bind_insert)
        row_id = db.execute(sql, params).last_inserted_row_id
        for column in self._columns.values():
            if column.is_primary_key or column.is_auto_increment:
                column.value = row_id
        return row_id or 0

    def update(self) -> int:
        """Write every column back to the row with this record's key.

        Raises
            NoPrimaryKey: No key column, or the key value is unset
        """
        db = self._session()
        sql, params = self._statement(db, render_update, bind_update)
        return db.execute(sql, params).total_rows_affected or 0

    def delete(self) -> int:
        """Delete the row with this record's key.

        Raises
            NoPrimaryKey: No key column, or the key value is unset
        """
        db = self._session()
        sql, params = self._statement(db, render_delete, bind_delete)
        return db.execute(sql, params).total_rows_affected or 0

    def _factory(self, db: Database) -> Callable[[], Self]:
        cls = type(self)

        def factory() -> Self:
            record = cls()
            record._db = db
            return record
        return factory

    def _fetch(self, sql: str, params: list | tuple | None) -> list[Self]:
        db = self._session()
        return db.query_records(self._factory(db), sql, params,
                                resolver=self.__schema__.column_kinds,
                                setters=self.__schema__.setters)

    def rows(self, where: str | None = None,
             callback: Callable[[Self], Any] | None = None) -> list[Self]:
        """All rows of the table, optionally filtered, as new records.

        Args:
            where: SQL condition appended after WHERE
            callback: Called once per record, in row order
        """
        records = self._fetch(render_select(self.tablename, where), None)
        if callback is not None:
            for record in records:
                callback(record)
        return records

    def select(self, where: str, *params: Value) -> list[Self]:
        """Rows matching a condition with `?` placeholders."""
        return self._fetch(render_select(self.tablename, where), params)

    def count(self, where: str | None = None, *params: Value) -> int:
        """Number of rows, optionally filtered."""
        return self._session().total_rows(render_count(self.tablename, where), params)
