"""
liteorm - Result Cursor Unit Tests

Tests cursor positioning, value access and closing.
"""

import pytest

from liteorm import ResultCursor


@pytest.fixture
def cursor():
    """
    Cursor over three user rows.

    Returns:
        ResultCursor positioned before the first row
    """
    return ResultCursor(['id', 'name'], [(1, 'Ann'), (2, 'Bob'), (3, 'Cara')])


class TestPositioning:
    """Test cursor movement."""

    def test_starts_before_first_row(self, cursor):
        """A new cursor should not be positioned on a row."""
        assert cursor.row_count == 3
        assert cursor.is_ended is True
        with pytest.raises(IndexError):
            cursor.get_value(0)

    def test_iterates_forward(self, cursor):
        """go_to_first_row()/go_to_next_row() should walk every row then end."""
        names = []
        assert cursor.go_to_first_row() is True
        while not cursor.is_ended:
            names.append(cursor.get_value(cursor.get_column_index('name')))
            cursor.go_to_next_row()

        assert names == ['Ann', 'Bob', 'Cara']
        assert cursor.go_to_next_row() is False

    def test_go_to_last_row(self, cursor):
        """go_to_last_row() should position on the final row."""
        assert cursor.go_to_last_row() is True
        assert cursor.get_row() == {'id': 3, 'name': 'Cara'}

    def test_empty_cursor(self):
        """An empty cursor should refuse to move."""
        empty = ResultCursor(['id'], [])

        assert empty.go_to_first_row() is False
        assert empty.go_to_last_row() is False
        assert empty.is_ended is True


class TestAccess:
    """Test column lookup and row access."""

    def test_column_index(self, cursor):
        """get_column_index() should return -1 for unknown columns."""
        assert cursor.get_column_index('id') == 0
        assert cursor.get_column_index('email') == -1
        assert cursor.column_names == ['id', 'name']

    def test_get_row(self, cursor):
        """get_row() should map column names to the current values."""
        cursor.go_to_first_row()

        assert cursor.get_row() == {'id': 1, 'name': 'Ann'}

    def test_close(self, cursor):
        """A closed cursor should report ended and refuse to move."""
        cursor.go_to_first_row()
        cursor.close()

        assert cursor.is_closed is True
        assert cursor.is_ended is True
        assert cursor.go_to_first_row() is False
