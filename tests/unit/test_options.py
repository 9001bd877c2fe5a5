import pathlib

import pandas as pd
import pytest
from litedb.options import DatabaseOptions, iterdict_data_loader
from litedb.options import pandas_data_loader


def test_init_defaults():
    """Test default initialization"""
    options = DatabaseOptions(database='app.db')

    assert options.directory is None
    assert options.timeout == 5.0
    assert options.inline_literals is False
    assert options.auto_create is True
    assert options.data_loader == iterdict_data_loader
    assert options.in_memory is False
    assert options.path == 'app.db'


def test_memory_database():
    options = DatabaseOptions(database=':memory:', directory='/tmp')
    assert options.in_memory is True
    assert options.path == ':memory:'


def test_directory_resolution(tmp_path):
    options = DatabaseOptions(database='app.db', directory=str(tmp_path))
    assert options.path == str(tmp_path / 'app.db')

    absolute = tmp_path / 'other.db'
    options = DatabaseOptions(database=str(absolute), directory='/elsewhere')
    assert options.path == str(absolute)


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        DatabaseOptions()
    with pytest.raises(ValueError):
        DatabaseOptions(database='')
    with pytest.raises(ValueError):
        DatabaseOptions(database='app.db', timeout=-1)


def test_from_value():
    """Test building options from paths, dicts and option objects"""
    options = DatabaseOptions.from_value('app.db')
    assert options.database == 'app.db'

    options = DatabaseOptions.from_value(pathlib.Path('data') / 'app.db')
    assert options.database == str(pathlib.Path('data') / 'app.db')

    options = DatabaseOptions.from_value({'database': 'app.db', 'timeout': 1}, inline_literals=True)
    assert options.timeout == 1
    assert options.inline_literals is True

    base = DatabaseOptions(database='app.db')
    assert DatabaseOptions.from_value(base) is base
    assert DatabaseOptions.from_value(base, auto_create=False).auto_create is False
    assert base.auto_create is True

    assert DatabaseOptions.from_value(None, database=':memory:').in_memory


def test_from_value_rejects_unknown_options():
    with pytest.raises(ValueError, match='hostname'):
        DatabaseOptions.from_value({'database': 'app.db', 'hostname': 'localhost'})
    with pytest.raises(TypeError):
        DatabaseOptions.from_value(42)


def test_iterdict_data_loader():
    rows = [{'a': 1}, {'a': 2}]
    assert iterdict_data_loader(rows, ['a'], column_types={'a': 'INTEGER'}) == rows
    assert iterdict_data_loader([], ['a']) == []


def test_pandas_data_loader():
    """Test the DataFrame loader keeps columns and declared types"""
    df = pandas_data_loader([{'a': 1, 'b': 'x'}], ['a', 'b'], column_types={'a': 'INTEGER'})
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ['a', 'b']
    assert df.attrs['column_types'] == {'a': 'INTEGER'}

    empty = pandas_data_loader([], ['a', 'b'])
    assert len(empty) == 0
    assert list(empty.columns) == ['a', 'b']
    assert empty.attrs['column_types'] == {}


if __name__ == '__main__':
    __import__('pytest').main([__file__])
