"""Result-set mapping: decode statement rows into dictionaries and records."""
import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from litedb.params import decode_value
from litedb.schema import Setter
from litedb.types import SQLITE_ROW, ColumnType, Value, ValueKind

if TYPE_CHECKING:
    from litedb.cursor import Statement

logger = logging.getLogger(__name__)

R = TypeVar('R')

Resolver = Callable[[str], ValueKind | ColumnType | str | None]


@dataclass
class ExecuteResult:
    """Outcome of one executed statement.
    """
    result_code: int
    last_inserted_row_id: int | None = None
    total_rows_affected: int | None = None
    sql: str | None = None


def as_resolver(resolver: Resolver | Mapping[str, Any] | None) -> Resolver | None:
    """Accept a callable or a mapping of column name to declared type or kind."""
    if resolver is None or callable(resolver):
        return resolver
    return resolver.get


def _declared_kind(statement: 'Statement', index: int, resolver: Resolver | None) -> ValueKind | None:
    """Kind from the declared type, or None to decode by each value's storage class.

    The resolver's answer wins over the statement's own metadata; names
    outside the declared type set are treated as absent.
    """
    name = statement.column_name(index)
    for declared in (resolver(name) if resolver else None,
                     statement.column_declared_type(index)):
        if declared is None:
            continue
        if isinstance(declared, ValueKind):
            return declared
        column_type = declared if isinstance(declared, ColumnType) else ColumnType.lookup(declared)
        if column_type is not None:
            return column_type.kind
        logger.debug(f'Unrecognized declared type {declared!r} for column {name}')
    return None


def map_result_set(statement: 'Statement',
                   resolver: Resolver | Mapping[str, Any] | None = None) -> Iterator[dict[str, Value]]:
    """Yield one decoded row per result row of the statement.

    Column names and declared kinds are captured on the first row and
    reused for the rest. The iterator is bound to this single execution.
    """
    resolve = as_resolver(resolver)
    names: list[str] | None = None
    kinds: list[ValueKind | None] = []

    while statement.step() == SQLITE_ROW:
        if names is None:
            count = statement.column_count
            names = [statement.column_name(i) for i in range(count)]
            kinds = [_declared_kind(statement, i, resolve) for i in range(count)]

        row: dict[str, Value] = {}
        for index, (name, kind) in enumerate(zip(names, kinds)):
            if kind is None:
                kind = statement.column_runtime_type(index).kind
            row[name] = decode_value(statement.column_value(index), kind)
        yield row


def materialize_row(factory: Callable[[], R], row: Mapping[str, Value],
                    setters: Mapping[str, Setter] | None = None) -> R:
    """Build a record from a decoded row.

    Each column name is looked up in the setter table and its value copied
    into the matching column slot. Unknown names are ignored.
    """
    record = factory()
    if setters is None:
        setters = record.__schema__.setters
    for name, value in row.items():
        setter = setters.get(name)
        if setter is None:
            continue
        setter(record, value)
    return record


def collect_result(statement: 'Statement', result_code: int) -> ExecuteResult:
    """Execution statistics for a finished statement."""
    return ExecuteResult(
        result_code=result_code,
        last_inserted_row_id=statement.last_inserted_row_id,
        total_rows_affected=statement.changes,
        sql=statement.sql,
    )
