"""
Query Building
==============

- conditions.py: flat AND/OR condition list and operator rendering
- mapping.py: rows <-> entities
- builder.py: QueryBuilder
"""

from .builder import EXCLUDE_TRASHED, ONLY_TRASHED, WITH_TRASHED, QueryBuilder
from .conditions import Condition, render_conditions

__all__ = [
    "QueryBuilder", "Condition", "render_conditions",
    "EXCLUDE_TRASHED", "ONLY_TRASHED", "WITH_TRASHED",
]
