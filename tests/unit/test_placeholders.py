"""
Unit tests for placeholder detection and conversion.
"""
from litedb.sql import count_placeholders, has_placeholders
from litedb.sql import standardize_placeholders


def test_has_placeholders():
    assert has_placeholders('SELECT * FROM t WHERE a = ?')
    assert has_placeholders('SELECT * FROM t WHERE a = %s')
    assert not has_placeholders('SELECT * FROM t')
    assert not has_placeholders('')
    assert not has_placeholders(None)


def test_count_placeholders():
    assert count_placeholders('INSERT INTO t VALUES (?, ?, ?)') == 3
    assert count_placeholders('SELECT * FROM t') == 0
    assert count_placeholders('SELECT * FROM t WHERE a = %s AND b = ?') == 2


def test_count_ignores_string_literals():
    """Test markers inside quoted text are not parameters"""
    assert count_placeholders("SELECT * FROM t WHERE a = '?' AND b = ?") == 1
    assert count_placeholders("SELECT 'it''s ?' WHERE x = ?") == 1
    assert count_placeholders('SELECT "col?" FROM t') == 0


def test_standardize_placeholders():
    assert standardize_placeholders('SELECT * FROM t WHERE a = %s') == 'SELECT * FROM t WHERE a = ?'
    assert standardize_placeholders("SELECT '%s' WHERE a = %s") == "SELECT '%s' WHERE a = ?"
    assert standardize_placeholders('SELECT 1') == 'SELECT 1'


if __name__ == '__main__':
    __import__('pytest').main([__file__])
