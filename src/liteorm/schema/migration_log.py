"""
liteorm - Migration Log Entries
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..utils.timestamps import get_local_time_string


class MigrationAction(str, Enum):
    CREATE_TABLE = 'create_table'
    ADD_COLUMN = 'add_column'
    DROP_COLUMN = 'drop_column'
    MODIFY_COLUMN = 'modify_column'


@dataclass
class MigrationLog:
    """One executed schema change."""
    table_name: str
    action: MigrationAction
    sql: str
    column_name: Optional[str] = None
    executed_at: str = field(default_factory=get_local_time_string)

    def __post_init__(self):
        self.action = MigrationAction(self.action)
