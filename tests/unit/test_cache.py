"""
Unit tests for table metadata caching.
"""
import gc

from litedb import connect
from litedb.cache import Cache, get_table_info_cache


def test_cache_singleton():
    """Test that Cache is a singleton"""
    assert Cache.get_instance() is Cache.get_instance()


def test_table_info_per_session():
    first = get_table_info_cache(1)
    first['person'] = {'id': 'INTEGER'}

    assert get_table_info_cache(1) is first
    assert 'person' not in get_table_info_cache(2)


def test_forget_session():
    get_table_info_cache(1)['person'] = {}
    get_table_info_cache(2)['person'] = {}

    Cache.get_instance().forget_session(1)

    assert 'person' not in get_table_info_cache(1)
    assert 'person' in get_table_info_cache(2)


def test_forget_table():
    """Test a table's entries are dropped from every session"""
    get_table_info_cache(1)['person'] = {'id': 'INTEGER'}
    get_table_info_cache(1)['personal'] = {'id': 'INTEGER'}
    get_table_info_cache(2)['person'] = {'id': 'INTEGER'}

    Cache.get_instance().forget_table('PERSON')

    assert 'person' not in get_table_info_cache(1)
    assert 'person' not in get_table_info_cache(2)
    assert 'personal' in get_table_info_cache(1)


def test_clear_all():
    get_table_info_cache(1)['person'] = {}
    Cache.get_instance().clear_all()
    assert len(get_table_info_cache(1)) == 0


def test_session_close_drops_entries(sl_db):
    sl_db.execute('CREATE TABLE t (a INTEGER)')
    assert sl_db.column_types('t') == {'a': 'INTEGER'}
    session_id = sl_db.session_id
    assert 't' in get_table_info_cache(session_id)

    sl_db.close()
    assert 't' not in get_table_info_cache(session_id)


def test_session_ids_are_unique(sl_db):
    other = connect(':memory:')
    try:
        assert other.session_id != sl_db.session_id
    finally:
        other.close()


def test_collected_session_drops_entries():
    """Test entries of a session dropped without close are released"""
    db = connect(':memory:')
    db.execute('CREATE TABLE t (a INTEGER)')
    db.column_types('t')
    session_id = db.session_id
    assert 't' in get_table_info_cache(session_id)

    db.close()
    get_table_info_cache(session_id)['t'] = {'a': 'INTEGER'}
    del db
    gc.collect()
    assert 't' not in get_table_info_cache(session_id)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
