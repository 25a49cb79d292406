"""
Storage Adapters
================

- base.py: DatabaseAdapter contract and ResultCursor
- sqlite.py: SQLiteAdapter on a SQLAlchemy engine
"""

from .base import DatabaseAdapter, ResultCursor
from .sqlite import SQLiteAdapter

__all__ = ["DatabaseAdapter", "ResultCursor", "SQLiteAdapter"]
