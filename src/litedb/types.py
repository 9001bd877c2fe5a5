"""
Value model and declared-type handling.

This module provides:
- Affinity: SQLite storage classes plus the synthetic DATE/DATETIME kinds
- ColumnType: the closed set of declared type names and their affinities
- ValueKind: classification of Python values for binding and decoding
- format_datetime/parse_datetime: the persisted date/time encoding
- TypeConverter: normalise NumPy and Pandas values before binding
"""
import datetime
import decimal
import logging
import math
import re
from enum import Enum
from typing import Any, Self

import dateutil.parser
import numpy as np
import pandas as pd
from litedb.exceptions import UnknownColumnType

logger = logging.getLogger(__name__)

# Native result codes
SQLITE_OK = 0
SQLITE_MISUSE = 21
SQLITE_MISMATCH = 20
SQLITE_RANGE = 25
SQLITE_ROW = 100
SQLITE_DONE = 101

Value = str | int | float | decimal.Decimal | bool | datetime.datetime | datetime.date | bytes | None

INT32_MIN = -2**31
INT32_MAX = 2**31 - 1

DATE_FORMAT = "yyyy-MM-dd'T'HH:mm:ss.SSSZ"
_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}[+-]\d{4}$')


class Affinity(Enum):
    """Storage class a declared type maps onto.

    DATE and DATETIME are persisted as TEXT; they only select formatting
    and decoding.
    """
    TEXT = 'TEXT'
    INTEGER = 'INTEGER'
    FLOAT = 'FLOAT'
    BLOB = 'BLOB'
    NULL = 'NULL'
    DATE = 'DATE'
    DATETIME = 'DATETIME'

    @property
    def keyword(self) -> str:
        """Type keyword used in CREATE TABLE."""
        return _KEYWORDS[self]

    @property
    def is_quoted(self) -> bool:
        """Whether literals of this affinity are single-quoted."""
        return self in {Affinity.TEXT, Affinity.DATE, Affinity.DATETIME}

    @property
    def kind(self) -> 'ValueKind':
        """Value kind used to decode a column known only by its affinity."""
        return _AFFINITY_KINDS[self]


class ValueKind(Enum):
    """Kinds of storable scalar values.

    DATETIME decodes to aware datetimes, LOCAL_DATETIME to naive local ones.
    """
    TEXT = 'text'
    INT = 'int'
    INT64 = 'int64'
    DOUBLE = 'double'
    DECIMAL = 'decimal'
    BOOL = 'bool'
    DATE = 'date'
    DATETIME = 'datetime'
    LOCAL_DATETIME = 'local_datetime'
    BLOB = 'blob'
    NULL = 'null'

    @classmethod
    def of(cls, value: Any) -> Self | None:
        """Classify a Python value, or return None for unsupported types."""
        if value is None:
            return cls.NULL
        if isinstance(value, bool):
            return cls.BOOL
        if isinstance(value, int):
            return cls.INT if INT32_MIN <= value <= INT32_MAX else cls.INT64
        if isinstance(value, float):
            return cls.DOUBLE
        if isinstance(value, decimal.Decimal):
            return cls.DECIMAL
        if isinstance(value, datetime.datetime):
            return cls.DATETIME
        if isinstance(value, datetime.date):
            return cls.DATE
        if isinstance(value, bytes | bytearray | memoryview):
            return cls.BLOB
        if isinstance(value, str):
            return cls.TEXT
        return None


class ColumnType(Enum):
    """Declared SQL type names.
    """
    BINARY = 'BINARY'
    BLOB = 'BLOB'
    VARBINARY = 'VARBINARY'
    NCHAR = 'NCHAR'
    NVARCHAR = 'NVARCHAR'
    TEXT = 'TEXT'
    VARCHAR = 'VARCHAR'
    VARIANT = 'VARIANT'
    VARYINGCHARACTER = 'VARYING CHARACTER'
    CHAR = 'CHAR'
    CHARACTER = 'CHARACTER'
    CLOB = 'CLOB'
    NATIONALVARYINGCHARACTER = 'NATIONAL VARYING CHARACTER'
    NATIVECHARACTER = 'NATIVE CHARACTER'
    DATE = 'DATE'
    DATETIME = 'DATETIME'
    TIME = 'TIME'
    TIMESTAMP = 'TIMESTAMP'
    BIGINT = 'BIGINT'
    BIT = 'BIT'
    BOOL = 'BOOL'
    BOOLEAN = 'BOOLEAN'
    INT = 'INT'
    INT2 = 'INT2'
    INT8 = 'INT8'
    INTEGER = 'INTEGER'
    MEDIUMINT = 'MEDIUMINT'
    SMALLINT = 'SMALLINT'
    TINYINT = 'TINYINT'
    NULL = 'NULL'
    DECIMAL = 'DECIMAL'
    DOUBLE = 'DOUBLE'
    DOUBLEPRECISION = 'DOUBLE PRECISION'
    FLOAT = 'FLOAT'
    NUMERIC = 'NUMERIC'
    REAL = 'REAL'

    @property
    def affinity(self) -> Affinity:
        return _AFFINITIES[self]

    @property
    def kind(self) -> ValueKind:
        """Value kind a column of this type decodes to."""
        return _TYPE_KINDS.get(self, self.affinity.kind)

    @classmethod
    def lookup(cls, name: str | None) -> Self | None:
        """Find the declared type for a name, ignoring case, spacing and size.

        `VARCHAR(20)` and `double  precision` both resolve. Returns None for
        names outside the set.
        """
        if not name:
            return None
        base = ' '.join(name.split('(')[0].upper().split())
        try:
            return cls(base)
        except ValueError:
            return None

    @classmethod
    def parse(cls, name: 'ColumnType | str') -> Self:
        """Resolve a declared type, failing on unknown names."""
        if isinstance(name, cls):
            return name
        column_type = cls.lookup(name) if isinstance(name, str) else None
        if column_type is None:
            raise UnknownColumnType(f'Unknown column type: {name!r}')
        return column_type


_KEYWORDS: dict[Affinity, str] = {
    Affinity.INTEGER: 'INTEGER',
    Affinity.TEXT: 'TEXT',
    Affinity.DATE: 'DATE',
    Affinity.DATETIME: 'DATETIME',
    Affinity.FLOAT: 'TEXT',
    Affinity.BLOB: 'BINARY',
    Affinity.NULL: 'TEXT',
}

_AFFINITY_KINDS: dict[Affinity, ValueKind] = {
    Affinity.INTEGER: ValueKind.INT64,
    Affinity.TEXT: ValueKind.TEXT,
    Affinity.DATE: ValueKind.DATE,
    Affinity.DATETIME: ValueKind.DATETIME,
    Affinity.FLOAT: ValueKind.DOUBLE,
    Affinity.BLOB: ValueKind.BLOB,
    Affinity.NULL: ValueKind.TEXT,
}

_AFFINITIES: dict[ColumnType, Affinity] = {}

for t in (ColumnType.BINARY, ColumnType.BLOB, ColumnType.VARBINARY):
    _AFFINITIES[t] = Affinity.BLOB

for t in (ColumnType.NCHAR, ColumnType.NVARCHAR, ColumnType.TEXT, ColumnType.VARCHAR,
          ColumnType.VARIANT, ColumnType.VARYINGCHARACTER, ColumnType.CHAR,
          ColumnType.CHARACTER, ColumnType.CLOB, ColumnType.NATIONALVARYINGCHARACTER,
          ColumnType.NATIVECHARACTER):
    _AFFINITIES[t] = Affinity.TEXT

_AFFINITIES[ColumnType.DATE] = Affinity.DATE

for t in (ColumnType.DATETIME, ColumnType.TIME, ColumnType.TIMESTAMP):
    _AFFINITIES[t] = Affinity.DATETIME

for t in (ColumnType.BIGINT, ColumnType.BIT, ColumnType.BOOL, ColumnType.BOOLEAN,
          ColumnType.INT, ColumnType.INT2, ColumnType.INT8, ColumnType.INTEGER,
          ColumnType.MEDIUMINT, ColumnType.SMALLINT, ColumnType.TINYINT):
    _AFFINITIES[t] = Affinity.INTEGER

_AFFINITIES[ColumnType.NULL] = Affinity.NULL

for t in (ColumnType.DECIMAL, ColumnType.DOUBLE, ColumnType.DOUBLEPRECISION,
          ColumnType.FLOAT, ColumnType.NUMERIC, ColumnType.REAL):
    _AFFINITIES[t] = Affinity.FLOAT

_TYPE_KINDS: dict[ColumnType, ValueKind] = {
    ColumnType.BIT: ValueKind.BOOL,
    ColumnType.BOOL: ValueKind.BOOL,
    ColumnType.BOOLEAN: ValueKind.BOOL,
    ColumnType.INT: ValueKind.INT,
    ColumnType.INT2: ValueKind.INT,
    ColumnType.INTEGER: ValueKind.INT,
    ColumnType.MEDIUMINT: ValueKind.INT,
    ColumnType.SMALLINT: ValueKind.INT,
    ColumnType.TINYINT: ValueKind.INT,
    ColumnType.DECIMAL: ValueKind.DECIMAL,
}


def storage_affinity(raw: Any) -> Affinity:
    """Storage class of a value as returned by the driver."""
    if raw is None:
        return Affinity.NULL
    if isinstance(raw, int):
        return Affinity.INTEGER
    if isinstance(raw, float):
        return Affinity.FLOAT
    if isinstance(raw, bytes | memoryview):
        return Affinity.BLOB
    return Affinity.TEXT


# Date/time encoding

def format_datetime(value: datetime.date) -> str:
    """Render a date or datetime in the persisted format.

    Dates are stored as local midnight and naive values are taken as local
    time. Sub-millisecond precision is truncated.
    """
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time())
    if value.tzinfo is None:
        value = value.astimezone()
    return (f'{value.year:04d}-{value.month:02d}-{value.day:02d}'
            f'T{value.hour:02d}:{value.minute:02d}:{value.second:02d}'
            f'.{value.microsecond // 1000:03d}'
            f"{value.strftime('%z')}")


def parse_datetime(text: Any) -> datetime.datetime | None:
    """Parse text in the persisted format, or return None."""
    if isinstance(text, bytes):
        try:
            text = text.decode()
        except UnicodeDecodeError:
            return None
    if not isinstance(text, str) or not _DATE_PATTERN.match(text):
        return None
    try:
        return dateutil.parser.isoparse(text)
    except (ValueError, OverflowError) as e:
        logger.debug(f'Unparseable date/time {text!r}: {e}')
        return None


def to_local_naive(value: datetime.datetime) -> datetime.datetime:
    """Local wall-clock time of an aware datetime, without tzinfo."""
    return value.astimezone().replace(tzinfo=None)


def normalize_temporal(value: Any, kind: ValueKind) -> Any:
    """Coerce a date/time value to what a column of `kind` reads back.

    DATE columns hold dates, DATETIME columns aware datetimes and
    LOCAL_DATETIME columns naive local datetimes, all at millisecond
    precision. Other values pass through.
    """
    if not isinstance(value, datetime.date):
        return value
    if kind is ValueKind.DATE:
        return value.date() if isinstance(value, datetime.datetime) else value
    if kind not in {ValueKind.DATETIME, ValueKind.LOCAL_DATETIME}:
        return value
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time())
    value = value.replace(microsecond=value.microsecond // 1000 * 1000)
    if kind is ValueKind.DATETIME:
        return value if value.tzinfo is not None else value.astimezone()
    return value if value.tzinfo is None else to_local_naive(value)


# Type Converter - Normalise third-party scalars before binding

def _convert_numpy_value(val: Any) -> Any:
    """Convert NumPy value to Python type."""
    if isinstance(val, np.floating) and np.isnan(val):
        return None

    if isinstance(val, np.datetime64):
        if np.isnat(val):
            return None
        return pd.Timestamp(val).to_pydatetime()

    return val.item()


class TypeConverter:
    """Normalise parameter values to the Value model.

    Handles NumPy scalars, Pandas timestamps and missing-value markers.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a bindable Python value."""
        if value is None or value is pd.NA:
            return None

        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None

        if isinstance(value, type(pd.NaT)):
            return None

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        if isinstance(value, np.generic):
            return _convert_numpy_value(value)

        return value
