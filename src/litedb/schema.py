"""
Schema reflection for table records.

Columns are registered once per Table subclass when the class is created.
The registry fixes the canonical column order (ascending by field name)
and builds the setter table used to write decoded row values into a
record's column slots. Reflecting an instance returns its own column
objects, so repeated reflection always aliases the same value slots.
"""
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from litedb.column import Column
from litedb.exceptions import SchemaError
from litedb.types import Value, ValueKind

logger = logging.getLogger(__name__)

Setter = Callable[[Any, Value], None]


def copy_value(value: Value) -> Value:
    """Return a value that shares no mutable storage with the input."""
    if isinstance(value, bytearray | memoryview):
        return bytes(value)
    return value


def _make_setter(field: str) -> Setter:
    def setter(record: Any, value: Value) -> None:
        record._columns[field].value = copy_value(value)
    return setter


class TableSchema:
    """Column registry for one Table subclass.

    Attributes
        tablename: Name of the backing table
        templates: Declared columns keyed by field name, sorted by field name
        primary_key: Field name of the primary-key column, if any
        setters: Column name (and field name) to setter function
    """

    def __init__(self, tablename: str, templates: Mapping[str, Column]) -> None:
        self.tablename = tablename
        self.templates = dict(sorted(templates.items()))

        keys = [field for field, column in self.templates.items() if column.is_primary_key]
        if len(keys) > 1:
            raise SchemaError(f'Table {tablename} declares more than one primary key: {keys}')
        self.primary_key = keys[0] if keys else None

        self.setters: dict[str, Setter] = {}
        for field, column in self.templates.items():
            self.setters[column.name] = _make_setter(field)
        for field in self.templates:
            self.setters.setdefault(field, _make_setter(field))

    def __repr__(self) -> str:
        return f'TableSchema({self.tablename!r}, fields={list(self.templates)})'

    @classmethod
    def from_class(cls, owner: type, tablename: str) -> 'TableSchema':
        """Collect the Column attributes of a class and its bases."""
        templates: dict[str, Column] = {}
        for klass in reversed(owner.__mro__):
            for field, attr in vars(klass).items():
                if isinstance(attr, Column):
                    templates[field] = attr
        if not templates:
            logger.debug(f'Table {tablename} declares no columns')
        return cls(tablename, templates)

    @property
    def column_kinds(self) -> dict[str, ValueKind]:
        """Decoded value kind of each column, by column name."""
        return {column.name: column.kind for column in self.templates.values()}

    def new_columns(self) -> dict[str, Column]:
        """Fresh, independent column slots for a new record."""
        return {field: column.copy() for field, column in self.templates.items()}

    def field_for(self, name: str) -> str | None:
        """Field name for a field or column name."""
        if name in self.templates:
            return name
        for field, column in self.templates.items():
            if column.name == name:
                return field
        return None


def reflect(record: Any) -> dict[str, Column]:
    """Ordered mapping of field name to the record's own Column objects."""
    return dict(record._columns)


def sorted_columns(columns: Mapping[str, Column] | Iterable[Column]) -> list[Column]:
    """Columns in canonical order: ascending by field name."""
    if isinstance(columns, Mapping):
        return [column for _, column in sorted(columns.items())]
    return sorted(columns, key=lambda column: column.field or column.name)


def primary_key(columns: Mapping[str, Column] | Iterable[Column]) -> Column | None:
    """Return the primary-key column, if one is declared."""
    for column in sorted_columns(columns):
        if column.is_primary_key:
            return column
    return None
