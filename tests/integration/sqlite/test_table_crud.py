"""
Table record CRUD against SQLite.
"""
import logging

import pytest
from litedb import Column, ColumnType, DatabaseNotOpened, NoPrimaryKey, Table, connect

from tests.fixtures.records import Empty, Note, Person


def test_auto_create_on_bind(sl_db):
    """Test binding a record creates its table once"""
    assert not sl_db.table_exists('person')
    Person(sl_db)
    assert sl_db.table_exists('person')
    assert Person(sl_db).create_table() is False


def test_auto_create_disabled():
    with connect(':memory:', auto_create=False) as db:
        person = Person(db)
        assert not db.table_exists('person')
        assert person.create_table() is True
        assert person.create_table() is False


def test_auto_create_failure_is_logged(sl_db, caplog):
    """Test a table that cannot be created does not fail construction"""
    with caplog.at_level(logging.ERROR, logger='litedb.table'):
        record = Empty(sl_db)
    assert record.db is sl_db
    assert 'Could not create table empty' in caplog.text


def test_insert_populates_key(sl_db):
    """Test the new row id is written back into the key column"""
    ada = Person(sl_db, name='Ada', age=30)
    assert ada.insert() == 1
    assert ada.id == 1

    grace = Person(sl_db, name='Grace', age=45)
    assert grace.insert() == 2
    assert grace.id == 2


def test_insert_ignores_auto_increment_value(sl_db):
    Person(sl_db, name='Ada', age=30).insert()
    bob = Person(sl_db, name='Bob', age=20, id=99)
    assert bob.insert() == 2
    assert bob.id == 2
    assert [p.id for p in bob.rows()] == [1, 2]


def test_rows(sl_db):
    """Test rows returns one new record per row"""
    Person(sl_db, name='Ada', age=30).insert()
    Person(sl_db, name='Grace', age=45).insert()

    people = Person(sl_db).rows()
    assert [(p.id, p.name, p.age) for p in people] == [(1, 'Ada', 30), (2, 'Grace', 45)]
    assert all(p.db is sl_db for p in people)

    older = Person(sl_db).rows('age > 40')
    assert [p.name for p in older] == ['Grace']


def test_rows_callback(sl_db):
    Person(sl_db, name='Ada', age=30).insert()
    Person(sl_db, name='Grace', age=45).insert()
    seen = []
    Person(sl_db).rows(callback=lambda p: seen.append(p.name))
    assert seen == ['Ada', 'Grace']


def test_rows_empty_table(sl_db):
    assert Person(sl_db).rows() == []
    assert Person(sl_db).count() == 0


def test_select_and_count(sl_db):
    for name, age in [('Ada', 30), ('Grace', 45), ('Alan', 41)]:
        Person(sl_db, name=name, age=age).insert()

    finder = Person(sl_db)
    assert [p.name for p in finder.select('age > ? AND name LIKE ?', 40, 'A%')] == ['Alan']
    assert finder.count() == 3
    assert finder.count('age > ?', 40) == 2


def test_update(sl_db):
    ada = Person(sl_db, name='Ada', age=30)
    ada.insert()
    ada.age = 31
    ada['name'] = 'Ada L.'
    assert ada.update() == 1

    stored = Person(sl_db).rows()[0]
    assert stored.to_dict() == {'age': 31, 'id': 1, 'name': 'Ada L.'}


def test_delete(sl_db):
    ada = Person(sl_db, name='Ada', age=30)
    ada.insert()
    Person(sl_db, name='Grace', age=45).insert()
    assert ada.delete() == 1
    assert [p.name for p in Person(sl_db).rows()] == ['Grace']


def test_update_missing_row(sl_db):
    ghost = Person(sl_db, name='Nobody', age=1, id=42)
    assert ghost.update() == 0
    assert ghost.delete() == 0


def test_update_without_primary_key(sl_db):
    """Test update and delete need a declared key"""
    note = Note(sl_db, body='hello')
    note.insert()
    with pytest.raises(NoPrimaryKey, match='No primary key'):
        note.update()
    with pytest.raises(NoPrimaryKey, match='No primary key'):
        note.delete()


def test_update_with_unset_key(sl_db):
    """Test update and delete need a key value"""
    person = Person(sl_db, name='Ada', age=30)
    with pytest.raises(NoPrimaryKey, match="Primary key 'id'"):
        person.update()
    with pytest.raises(NoPrimaryKey, match='is None'):
        person.delete()


def test_operations_without_session(person):
    """Test every operation requires an open session"""
    for operation in (person.create_table, person.insert, person.update,
                      person.delete, person.rows, person.count):
        with pytest.raises(DatabaseNotOpened):
            operation()


def test_operations_after_close():
    db = connect(':memory:')
    person = Person(db, name='Ada', age=30)
    db.close()
    with pytest.raises(DatabaseNotOpened):
        person.insert()


def test_inline_literals(sl_inline_db):
    """Test CRUD with values inlined into the SQL text"""
    ada = Person(sl_inline_db, name="O'Neil", age=30)
    assert ada.insert() == 1
    ada.age = 31
    assert ada.update() == 1
    stored = Person(sl_inline_db).rows()[0]
    assert (stored.name, stored.age) == ("O'Neil", 31)
    assert ada.delete() == 1
    assert Person(sl_inline_db).count() == 0


def test_file_database_persists(tmp_path):
    path = tmp_path / 'people.db'
    with connect(path) as db:
        Person(db, name='Ada', age=30).insert()
    with connect(path) as db:
        assert [p.name for p in Person(db).rows()] == ['Ada']


def test_custom_column_names(sl_db):
    class Account(Table):
        __tablename__ = 'accounts'
        key = Column('account_id', primary_key=True)
        owner = Column('owner_name', column_type=ColumnType.TEXT)

    account = Account(sl_db, owner='Ada')
    account.insert()
    assert account.key == 1
    assert sl_db.query('SELECT * FROM accounts') == [{'account_id': 1, 'owner_name': 'Ada'}]

    stored = Account(sl_db).rows()[0]
    assert (stored.key, stored.owner) == (1, 'Ada')
    assert stored['owner_name'] == 'Ada'


def test_unknown_field():
    with pytest.raises(TypeError):
        Person(nickname='A')
    with pytest.raises(KeyError):
        Person()['nickname']


def test_table_base_not_instantiable():
    with pytest.raises(TypeError):
        Table()


if __name__ == '__main__':
    __import__('pytest').main([__file__])
