"""
liteorm - Adapter Contract
The only boundary between the ORM engine and the storage engine.

Every component talks to storage through DatabaseAdapter; results come back
as a ResultCursor positioned before the first row.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence


class ResultCursor:
    """
    Forward-moving, closeable cursor over a materialized result set.

    Usage mirrors a native result set:
        >>> if cursor.go_to_first_row():
        ...     while not cursor.is_ended:
        ...         name = cursor.get_value(cursor.get_column_index('name'))
        ...         cursor.go_to_next_row()
        >>> cursor.close()
    """

    def __init__(self, column_names: Sequence[str], rows: Sequence[Sequence[Any]]):
        self._column_names = list(column_names)
        self._rows = [tuple(row) for row in rows]
        self._position = -1
        self._closed = False

    @property
    def row_count(self) -> int:
        return len(self._rows)

    @property
    def column_names(self) -> List[str]:
        return list(self._column_names)

    @property
    def is_ended(self) -> bool:
        return self._closed or self._position >= len(self._rows) or self._position < 0

    @property
    def is_closed(self) -> bool:
        return self._closed

    def go_to_first_row(self) -> bool:
        return self._move_to(0)

    def go_to_next_row(self) -> bool:
        return self._move_to(self._position + 1)

    def go_to_last_row(self) -> bool:
        return self._move_to(len(self._rows) - 1)

    def _move_to(self, position: int) -> bool:
        if self._closed:
            return False
        if 0 <= position < len(self._rows):
            self._position = position
            return True
        self._position = len(self._rows)
        return False

    def get_column_index(self, name: str) -> int:
        """Index of a column by name, -1 when absent."""
        try:
            return self._column_names.index(name)
        except ValueError:
            return -1

    def get_value(self, column_index: int) -> Any:
        if self.is_ended:
            raise IndexError("Cursor is not positioned on a row")
        return self._rows[self._position][column_index]

    def get_row(self) -> Dict[str, Any]:
        """Current row as a column-name keyed dict."""
        if self.is_ended:
            raise IndexError("Cursor is not positioned on a row")
        return dict(zip(self._column_names, self._rows[self._position]))

    def close(self) -> None:
        self._closed = True
        self._rows = []


class DatabaseAdapter(ABC):
    """
    Contract a storage engine must satisfy.

    Statements use '?' positional parameters. Identifiers are never bound as
    parameters; callers interpolate only validated names.
    """

    @abstractmethod
    def execute_sql(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        """Execute a statement that returns no rows."""

    @abstractmethod
    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> ResultCursor:
        """Execute a statement and return its rows."""

    @abstractmethod
    def insert(self, table: str, values: Dict[str, Any]) -> int:
        """Insert one row and return the generated row id."""

    @abstractmethod
    def batch_insert(self, table: str, rows: List[Dict[str, Any]]) -> int:
        """Insert rows and return how many were inserted."""

    @abstractmethod
    def update(self, table: str, values: Dict[str, Any], where: str = '',
               where_params: Optional[Sequence[Any]] = None) -> int:
        """Update matching rows and return the affected count."""

    @abstractmethod
    def delete(self, table: str, where: str = '', where_params: Optional[Sequence[Any]] = None) -> int:
        """Delete matching rows and return the affected count."""

    @abstractmethod
    def begin_transaction(self) -> None:
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        pass
