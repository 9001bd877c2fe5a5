"""
Column descriptor for table records.

A Column declared as a class attribute of a Table subclass serves as the
template for that field. Every record instance owns its own copy of each
column, and attribute access on the record reads and writes the value slot
of that copy:

    class Person(Table):
        id = Column(column_type=ColumnType.INTEGER, primary_key=True, auto_increment=True)
        name = Column(column_type='TEXT')

    person = Person(name='Ada')
    person.name                     # 'Ada'
    person.columns()['name'].value  # 'Ada', same slot

Date/time values assigned through the record are coerced to what the
column reads back: dates for DATE columns, naive local datetimes for
DATETIME columns (aware ones with `timezone=True`), at millisecond
precision.

Value slots are mutated in place and are not safe for concurrent use from
several threads without external locking.
"""
import copy
from typing import Any, Self

from litedb.types import Affinity, ColumnType, Value, ValueKind
from litedb.types import normalize_temporal


class Column:
    """Metadata and value slot for one table column.
    """

    def __init__(self, name: str | None = None,
                 column_type: ColumnType | str = ColumnType.TEXT,
                 default: Value = None,
                 primary_key: bool = False,
                 auto_increment: bool = False,
                 timezone: bool = False) -> None:
        self.name = name
        self.field = name
        self._type = ColumnType.parse(column_type)
        self._primary_key = bool(primary_key)
        self._auto_increment = bool(auto_increment)
        self._timezone = bool(timezone)
        # row ids are always integers
        if self._primary_key or self._auto_increment:
            self._type = ColumnType.INTEGER
        self._default = self.coerce(default)
        self.value: Value = None

    def __set_name__(self, owner: type, field: str) -> None:
        self.field = field
        if self.name is None:
            self.name = field

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance._columns[self.field].value

    def __set__(self, instance: Any, value: Value) -> None:
        instance._columns[self.field].value = self.coerce(value)

    def __repr__(self) -> str:
        flags = ''
        if self._primary_key:
            flags += ', primary_key=True'
        if self._auto_increment:
            flags += ', auto_increment=True'
        if self._timezone:
            flags += ', timezone=True'
        return (f'Column(name={self.name!r}, column_type={self._type.value!r}'
                f'{flags}, value={self.value!r})')

    @property
    def column_type(self) -> ColumnType:
        return self._type

    @property
    def affinity(self) -> Affinity:
        return self._type.affinity

    @property
    def kind(self) -> ValueKind:
        """Value kind this column decodes to."""
        if self.affinity is Affinity.DATETIME:
            return ValueKind.DATETIME if self._timezone else ValueKind.LOCAL_DATETIME
        return self._type.kind

    @property
    def default(self) -> Value:
        return self._default

    @property
    def is_primary_key(self) -> bool:
        return self._primary_key

    @property
    def is_auto_increment(self) -> bool:
        return self._auto_increment

    @property
    def is_timezone_aware(self) -> bool:
        return self._timezone

    def coerce(self, value: Value) -> Value:
        """Value as this column stores and reads it back."""
        return normalize_temporal(value, self.kind)

    def copy(self) -> Self:
        """Return an independent column with the same metadata and an empty slot."""
        column = copy.copy(self)
        column.value = None
        return column
