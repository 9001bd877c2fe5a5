import dataclasses
import os
import pathlib
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Self

import pandas as pd

__all__ = [
    'DatabaseOptions',
    'iterdict_data_loader',
    'pandas_data_loader',
]

MEMORY = ':memory:'


def iterdict_data_loader(rows, columns, **kwargs) -> list[dict]:
    """Minimal data loader.

    Accepts additional keyword arguments (like column_types) for
    compatibility with other data loaders, but doesn't use them.
    """
    if not rows:
        return []
    return list(rows)


def pandas_data_loader(rows, columns, **kwargs) -> pd.DataFrame:
    """Pandas DataFrame loader.

    Always returns a DataFrame, with columns preserved for empty results.
    Declared column types are kept in DataFrame.attrs['column_types'].
    """
    if rows:
        df = pd.DataFrame.from_records(list(rows), columns=columns)
    else:
        df = pd.DataFrame(columns=columns)
    df.attrs['column_types'] = dict(kwargs.get('column_types') or {})
    return df


@dataclass
class DatabaseOptions:
    """Options

    database: file path of the database, or `:memory:`
    directory: base directory for a relative `database` path
    timeout: seconds to wait on a locked database file
    inline_literals: execute CRUD statements with values inlined as SQL
        literals instead of bound parameters
    auto_create: create a record's table when it is first bound to a session
    data_loader: shapes `Database.query` results (default: list of dicts)
    """
    database: str = None
    directory: str | None = None
    timeout: float = 5.0
    inline_literals: bool = False
    auto_create: bool = True
    data_loader: Callable[..., Any] | None = None

    def __post_init__(self):
        if not self.database:
            raise ValueError(f'database must be a file path or {MEMORY}')
        self.database = os.fspath(self.database)
        if self.timeout is None or self.timeout < 0:
            raise ValueError('timeout must be a non-negative number of seconds')
        if self.data_loader is None:
            self.data_loader = iterdict_data_loader

    @property
    def in_memory(self) -> bool:
        return self.database == MEMORY

    @property
    def path(self) -> str:
        """Resolved location of the database file."""
        if self.in_memory:
            return MEMORY
        path = pathlib.Path(self.database).expanduser()
        if self.directory and not path.is_absolute():
            path = pathlib.Path(self.directory).expanduser() / path
        return str(path)

    @classmethod
    def from_value(cls, options: 'DatabaseOptions | dict | str | os.PathLike | None' = None,
                   **kw: Any) -> Self:
        """Build options from an options object, a dict, or a database path.

        Keyword arguments override the values from `options`.
        """
        if isinstance(options, cls):
            return dataclasses.replace(options, **kw) if kw else options
        if isinstance(options, str | os.PathLike):
            kw = {'database': os.fspath(options)} | kw
        elif isinstance(options, dict):
            kw = options | kw
        elif options is not None:
            raise TypeError(f'Cannot build DatabaseOptions from {type(options).__name__}')

        known = {field.name for field in dataclasses.fields(cls)}
        unknown = set(kw) - known
        if unknown:
            raise ValueError(f'Unknown database options: {sorted(unknown)}')
        return cls(**kw)
