"""
Typed parameter binding and column decoding.

Each value kind has a handler with two halves:

- bind(value, statement, index) converts a Python value to the native form
  the driver stores and places it in a statement parameter slot, returning
  a SQLite result code
- decode(raw) turns a stored column value back into a typed value, or None
  when the stored text cannot be read as that kind

Dates are stored as text in the fixed `yyyy-MM-dd'T'HH:mm:ss.SSSZ` format
and exact decimals as their string form.
"""
import decimal
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from litedb.exceptions import BindFailed, PrepareFailed
from litedb.types import INT32_MAX, INT32_MIN, SQLITE_MISMATCH, SQLITE_OK
from litedb.types import TypeConverter, Value, ValueKind, format_datetime
from litedb.types import parse_datetime, to_local_naive

if TYPE_CHECKING:
    from litedb.cursor import Statement

logger = logging.getLogger(__name__)

_HANDLER_REGISTRY: dict[ValueKind, 'ParameterHandler'] = {}


def register_handler(kind: ValueKind):
    """Decorator to register the handler for a value kind.

    Usage:
        @register_handler(ValueKind.TEXT)
        class TextHandler(ParameterHandler):
            ...
    """
    def decorator(cls: type['ParameterHandler']) -> type['ParameterHandler']:
        _HANDLER_REGISTRY[kind] = cls()
        return cls
    return decorator


def get_handler(kind: ValueKind) -> 'ParameterHandler':
    return _HANDLER_REGISTRY[kind]


class ParameterHandler:
    """Bind/decode pair for one value kind.
    """

    def to_native(self, value: Any) -> Any:
        raise NotImplementedError

    def from_native(self, raw: Any) -> Value:
        raise NotImplementedError

    def bind(self, value: Any, statement: 'Statement', index: int) -> int:
        try:
            native = self.to_native(value)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            logger.debug(f'{type(self).__name__} cannot bind {value!r}: {e}')
            return SQLITE_MISMATCH
        return statement.bind(index, native)

    def decode(self, raw: Any) -> Value:
        if raw is None:
            return None
        try:
            return self.from_native(raw)
        except (TypeError, ValueError, OverflowError, ArithmeticError, OSError) as e:
            logger.debug(f'{type(self).__name__} cannot decode {raw!r}: {e}')
            return None


@register_handler(ValueKind.NULL)
class NullHandler(ParameterHandler):

    def to_native(self, value: Any) -> None:
        return None

    def from_native(self, raw: Any) -> None:
        return None


@register_handler(ValueKind.TEXT)
class TextHandler(ParameterHandler):

    def to_native(self, value: Any) -> str:
        if not isinstance(value, str):
            raise TypeError(f'Expected str, got {type(value).__name__}')
        return value

    def from_native(self, raw: Any) -> str:
        if isinstance(raw, bytes | memoryview):
            return bytes(raw).decode()
        return str(raw)


def _as_int(raw: Any) -> int:
    if isinstance(raw, int):
        return int(raw)
    if isinstance(raw, float):
        return int(raw)
    return int(decimal.Decimal(str(raw).strip()))


@register_handler(ValueKind.INT)
class IntHandler(ParameterHandler):

    def to_native(self, value: Any) -> int:
        value = int(value)
        if not INT32_MIN <= value <= INT32_MAX:
            raise OverflowError(f'{value} does not fit in 32 bits')
        return value

    def from_native(self, raw: Any) -> int:
        return _as_int(raw)


@register_handler(ValueKind.INT64)
class Int64Handler(ParameterHandler):

    def to_native(self, value: Any) -> int:
        return int(value)

    def from_native(self, raw: Any) -> int:
        return _as_int(raw)


@register_handler(ValueKind.BOOL)
class BoolHandler(ParameterHandler):

    def to_native(self, value: Any) -> int:
        return 1 if value else 0

    def from_native(self, raw: Any) -> bool:
        return _as_int(raw) > 0


@register_handler(ValueKind.DOUBLE)
class DoubleHandler(ParameterHandler):

    def to_native(self, value: Any) -> float:
        return float(value)

    def from_native(self, raw: Any) -> float:
        if isinstance(raw, int | float):
            return float(raw)
        return float(decimal.Decimal(str(raw).strip()))


@register_handler(ValueKind.DECIMAL)
class DecimalHandler(ParameterHandler):
    """Exact decimals are stored as text."""

    def to_native(self, value: Any) -> str:
        if not isinstance(value, decimal.Decimal):
            value = decimal.Decimal(str(value))
        return str(value)

    def from_native(self, raw: Any) -> decimal.Decimal:
        return decimal.Decimal(str(raw).strip())


@register_handler(ValueKind.DATE)
class DateHandler(ParameterHandler):
    """Dates are stored as local midnight in the date/time format."""

    def to_native(self, value: Any) -> str:
        return format_datetime(value)

    def from_native(self, raw: Any) -> Value:
        parsed = parse_datetime(raw)
        return parsed.date() if parsed is not None else None


@register_handler(ValueKind.DATETIME)
class DateTimeHandler(ParameterHandler):

    def to_native(self, value: Any) -> str:
        return format_datetime(value)

    def from_native(self, raw: Any) -> Value:
        return parse_datetime(raw)


@register_handler(ValueKind.LOCAL_DATETIME)
class LocalDateTimeHandler(DateTimeHandler):
    """Decodes to naive local time."""

    def from_native(self, raw: Any) -> Value:
        parsed = parse_datetime(raw)
        return to_local_naive(parsed) if parsed is not None else None



@register_handler(ValueKind.BLOB)
class BlobHandler(ParameterHandler):

    def to_native(self, value: Any) -> bytes:
        return bytes(value)

    def from_native(self, raw: Any) -> bytes:
        if isinstance(raw, str):
            return raw.encode()
        return bytes(raw)


def bind_value(value: Any, statement: 'Statement', index: int) -> int:
    """Bind one value by its kind and return the result code."""
    value = TypeConverter.convert_value(value)
    kind = ValueKind.of(value)
    if kind is None:
        logger.debug(f'No parameter handler for {type(value).__name__}')
        return SQLITE_MISMATCH
    return get_handler(kind).bind(value, statement, index)


def bind_parameters(statement: 'Statement', params: Sequence[Any] | None) -> None:
    """Bind all positional parameters of a statement.

    A parameter that fails to bind is bound as NULL instead.

    Raises
        PrepareFailed: Parameter count does not match the placeholders
        BindFailed: Even the NULL bind failed
    """
    params = list(params or [])
    if len(params) != statement.parameter_count:
        raise PrepareFailed(
            f'Unable to prepare statement: Mismatched parameters {statement.sql}, parameters: {params}',
            code=statement.parameter_count, sql=statement.sql)

    for index, parameter in enumerate(params, start=1):
        result = bind_value(parameter, statement, index)
        if result == SQLITE_OK:
            continue
        logger.warning(f'Could not bind {parameter!r} at index {index - 1} (code {result}), binding NULL')
        result = statement.bind_null(index)
        if result != SQLITE_OK:
            raise BindFailed(
                f'Unable to bind parameter to sql: {statement.sql}, parameter: {parameter!r} at index {index - 1}',
                code=result, sql=statement.sql)


def decode_value(raw: Any, kind: ValueKind) -> Value:
    """Decode a stored value as the given kind."""
    return get_handler(kind).decode(raw)
