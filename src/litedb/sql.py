"""
SQL statement generation for table records.

Render functions are pure: given a table name and its columns they return
SQL text, iterating columns in canonical order (ascending field name).
Two forms are produced for each data statement:

- render_*: values inlined as literals, e.g.
  `INSERT INTO person ( age,id,name ) VALUES ( 30,NULL,'Ada' )`
- bind_*: the same statement with `?` placeholders plus the parameter list,
  e.g. `INSERT INTO person ( age,id,name ) VALUES ( ?,?,? )`, [30, None, 'Ada']

The literal form is the stable, logged shape; the bound form is what gets
executed unless inline literals are configured.

Placeholder helpers at the end of the module count and rewrite `?`/`%s`
markers outside string literals.
"""
import datetime
import re
from collections.abc import Iterable, Mapping
from typing import Any

from litedb.column import Column
from litedb.exceptions import NoPrimaryKey, SchemaError
from litedb.schema import primary_key, sorted_columns
from litedb.types import Affinity, TypeConverter, Value, format_datetime

Columns = Mapping[str, Column] | Iterable[Column]

KEY_CONSTRAINT = ' PRIMARY KEY AUTOINCREMENT NOT NULL UNIQUE'
TABLE_EXISTS_SQL = "SELECT name FROM sqlite_master WHERE type='table' AND lower(name) = ?"


# Literals

def _natural(value: Any) -> str:
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, datetime.date):
        return format_datetime(value)
    return str(value)


def format_literal(affinity: Affinity, value: Value) -> str:
    """Render a value as an SQL literal for a column of the given affinity.

    Values are normalised as for binding first, so NaN and NumPy scalars
    render as they would be stored. Text-like affinities (TEXT, DATE,
    DATETIME) are single-quoted with embedded quotes doubled. Binary values
    are hex blob literals.
    """
    value = TypeConverter.convert_value(value)
    if value is None:
        return 'NULL'
    if isinstance(value, bytes | bytearray | memoryview):
        return f"X'{bytes(value).hex().upper()}'"
    text = _natural(value)
    if affinity.is_quoted:
        return "'" + text.replace("'", "''") + "'"
    return text


def _default_value(column: Column, value: Value) -> Value:
    return column.default if value is None else value


def _insert_value(column: Column) -> Value:
    # the store assigns auto-increment ids
    value = None if column.is_auto_increment else column.value
    return _default_value(column, value)


def _column_literal(column: Column, value: Value) -> str:
    return format_literal(column.affinity, value)


def _require_columns(table: str, columns: Columns) -> list[Column]:
    ordered = sorted_columns(columns)
    if not ordered:
        raise SchemaError(f'Table {table} has no columns')
    for column in ordered:
        if not column.name:
            raise SchemaError(f'Table {table} has a column without a name')
    return ordered


def _require_key(table: str, columns: Columns, action: str) -> Column:
    key = primary_key(columns)
    if key is None:
        raise NoPrimaryKey(f'Cannot {action}. No primary key defined in [{table}]')
    if key.value is None:
        raise NoPrimaryKey(f"Cannot {action}. Primary key '{key.name}' defined in [{table}] is None")
    return key


# Schema statements

def column_definition(column: Column) -> str:
    """Render one column of a CREATE TABLE statement."""
    sql = f'{column.name} {column.affinity.keyword}'
    if column.is_primary_key or column.is_auto_increment:
        sql += KEY_CONSTRAINT
    if column.default is not None:
        sql += f' DEFAULT {_column_literal(column, column.default)}'
    return sql


def render_create_table(table: str, columns: Columns) -> str:
    """Generate the CREATE TABLE statement for a record's columns."""
    ordered = _require_columns(table, columns)
    body = ','.join(column_definition(column) for column in ordered)
    return f'CREATE TABLE {table} ( {body} )'


def render_table_exists() -> str:
    """Parameterized catalog lookup; bind the lower-cased table name."""
    return TABLE_EXISTS_SQL


# Data statements

def render_insert(table: str, columns: Columns) -> str:
    """Generate an INSERT statement with inlined values."""
    ordered = _require_columns(table, columns)
    fields = ','.join(column.name for column in ordered)
    values = ','.join(_column_literal(column, _insert_value(column)) for column in ordered)
    return f'INSERT INTO {table} ( {fields} ) VALUES ( {values} )'


def bind_insert(table: str, columns: Columns) -> tuple[str, list[Value]]:
    """Generate an INSERT statement with placeholders and its parameters."""
    ordered = _require_columns(table, columns)
    fields = ','.join(column.name for column in ordered)
    placeholders = ','.join('?' * len(ordered))
    params = [_insert_value(column) for column in ordered]
    return f'INSERT INTO {table} ( {fields} ) VALUES ( {placeholders} )', params


def render_update(table: str, columns: Columns) -> str:
    """Generate an UPDATE statement keyed by the primary key.

    Raises
        NoPrimaryKey: No primary key column, or its value is None
    """
    ordered = _require_columns(table, columns)
    key = _require_key(table, columns, 'update')
    pairs = ','.join(
        f'{column.name} = {_column_literal(column, _default_value(column, column.value))}'
        for column in ordered)
    return f'UPDATE {table} SET {pairs} where {key.name} = {_column_literal(key, key.value)}'


def bind_update(table: str, columns: Columns) -> tuple[str, list[Value]]:
    """Generate a placeholder UPDATE statement and its parameters."""
    ordered = _require_columns(table, columns)
    key = _require_key(table, columns, 'update')
    pairs = ','.join(f'{column.name} = ?' for column in ordered)
    params = [_default_value(column, column.value) for column in ordered]
    params.append(key.value)
    return f'UPDATE {table} SET {pairs} where {key.name} = ?', params


def render_delete(table: str, columns: Columns) -> str:
    """Generate a DELETE statement keyed by the primary key.

    Raises
        NoPrimaryKey: No primary key column, or its value is None
    """
    key = _require_key(table, columns, 'delete')
    return f'DELETE FROM {table} where {key.name} = {_column_literal(key, key.value)}'


def bind_delete(table: str, columns: Columns) -> tuple[str, list[Value]]:
    """Generate a placeholder DELETE statement and its parameters."""
    key = _require_key(table, columns, 'delete')
    return f'DELETE FROM {table} where {key.name} = ?', [key.value]


def render_select(table: str, where: str | None = None) -> str:
    """Generate `SELECT * from <table>` with an optional filter."""
    sql = f'SELECT * from {table}'
    if where:
        sql += f' WHERE {where}'
    return sql


def render_count(table: str, where: str | None = None) -> str:
    """Generate a row count query with an optional filter."""
    sql = f'SELECT COUNT(*) from {table}'
    if where:
        sql += f' WHERE {where}'
    return sql


# Placeholders

_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<percent_s>%s)
    |(?P<qmark>\?)
""", re.VERBOSE)

_HAS_PLACEHOLDER = re.compile(r'%s|\?')


def has_placeholders(sql: str | None) -> bool:
    """Quick check whether SQL may contain placeholders."""
    if not sql:
        return False
    return bool(_HAS_PLACEHOLDER.search(sql))


def count_placeholders(sql: str | None) -> int:
    """Count positional placeholders outside string literals."""
    if not has_placeholders(sql):
        return 0
    return sum(1 for match in _TOKENIZE.finditer(sql) if match.lastgroup != 'string')


def standardize_placeholders(sql: str) -> str:
    """Convert `%s` placeholders outside string literals to `?`."""
    if not sql or '%s' not in sql:
        return sql
    return _TOKENIZE.sub(
        lambda m: '?' if m.lastgroup == 'percent_s' else m.group(0), sql)
