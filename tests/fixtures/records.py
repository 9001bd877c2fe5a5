"""
Record classes shared by the unit and integration tests.
"""
import pytest
from litedb import Column, ColumnType, Table


class Person(Table):
    __tablename__ = 'person'
    age = Column(column_type=ColumnType.INTEGER)
    id = Column(primary_key=True, auto_increment=True)
    name = Column(column_type=ColumnType.TEXT)


class Gadget(Table):
    """One column of every value kind."""
    big = Column(column_type=ColumnType.BIGINT)
    count = Column(column_type=ColumnType.INT)
    day = Column(column_type=ColumnType.DATE)
    flag = Column(column_type=ColumnType.BOOLEAN)
    label = Column(column_type=ColumnType.VARCHAR)
    made = Column(column_type=ColumnType.DATETIME, timezone=True)
    noted = Column(column_type=ColumnType.TIMESTAMP)
    payload = Column(column_type=ColumnType.BLOB)
    price = Column(column_type=ColumnType.DECIMAL)
    ratio = Column(column_type=ColumnType.DOUBLE)
    uid = Column(primary_key=True)


class Note(Table):
    """No primary key."""
    body = Column(column_type=ColumnType.TEXT)


class Empty(Table):
    pass


@pytest.fixture
def person():
    return Person(name='Ada', age=30)
