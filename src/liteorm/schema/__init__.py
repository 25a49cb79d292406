"""
Schema Sync
===========

- migrator.py: SchemaMigrator (create/add column, rebuilds, rollback SQL)
- migration_log.py: MigrationLog entries
"""

from .migration_log import MigrationAction, MigrationLog
from .migrator import MIGRATIONS_TABLE, SchemaMigrator

__all__ = ["MigrationAction", "MigrationLog", "MIGRATIONS_TABLE", "SchemaMigrator"]
