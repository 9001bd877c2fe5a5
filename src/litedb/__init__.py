"""
Lightweight record mapping over embedded SQLite.

Declare a Table subclass with Column attributes, open a session with
connect(), and call insert/update/delete/rows on records bound to it:

    from litedb import Column, ColumnType, Table, connect

    class Person(Table):
        id = Column(primary_key=True, auto_increment=True)
        name = Column(column_type=ColumnType.TEXT)

    db = connect('people.db')
    Person(db, name='Ada').insert()
"""
__version__ = '0.1.0'

from litedb.column import Column
from litedb.connection import Database, connect
from litedb.exceptions import BindFailed, CloseFailed, DatabaseError
from litedb.exceptions import DatabaseNotOpened, ExecuteFailed, InvalidHandle
from litedb.exceptions import InvalidQuery, NoPrimaryKey, OpenFailed
from litedb.exceptions import PrepareFailed, RemoveFailed, SchemaError
from litedb.exceptions import UnknownColumnType
from litedb.options import DatabaseOptions, iterdict_data_loader
from litedb.options import pandas_data_loader
from litedb.row import ExecuteResult
from litedb.table import Table
from litedb.types import Affinity, ColumnType, ValueKind

__all__ = [
    'Affinity',
    'BindFailed',
    'CloseFailed',
    'Column',
    'ColumnType',
    'Database',
    'DatabaseError',
    'DatabaseNotOpened',
    'DatabaseOptions',
    'ExecuteFailed',
    'ExecuteResult',
    'InvalidHandle',
    'InvalidQuery',
    'NoPrimaryKey',
    'OpenFailed',
    'PrepareFailed',
    'RemoveFailed',
    'SchemaError',
    'Table',
    'UnknownColumnType',
    'ValueKind',
    'connect',
    'iterdict_data_loader',
    'pandas_data_loader',
]
