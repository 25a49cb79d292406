"""
liteorm - Schema Migrator
Brings the database schema in line with registered entity metadata.

migrate() is additive and idempotent: missing tables are created (including
many-to-many join tables) and missing columns are added. Dropping or retyping
a column needs a full table rebuild (shadow table, copy with CAST, drop,
rename), which runs inside one transaction.

Every change is appended to an in-memory log and persisted to the
__orm_migrations table.
"""

from typing import Any, Dict, List, Optional, Union

from ..adapter.base import DatabaseAdapter
from ..errors import ErrorCode, MigrationError, get_message
from ..metadata.registry import MetadataRegistry
from ..metadata.types import ColumnMetadata, ColumnType, EntityMetadata, ManyToMany
from ..query.mapping import read_rows
from ..relation.keys import resolve_keys
from ..transaction import TransactionManager
from ..utils.logger import log_database_error, log_migration, logger
from ..utils.sql import quote_identifier, quote_list, validate_identifier
from .migration_log import MigrationAction, MigrationLog

MIGRATIONS_TABLE = '__orm_migrations'
SHADOW_SUFFIX = '__shadow'

# Matches the local wall-clock stamps written by the ORM
LOCAL_TIME_DEFAULT = "DEFAULT (datetime('now', 'localtime'))"

_HISTORY_DDL = (
    f'CREATE TABLE IF NOT EXISTS "{MIGRATIONS_TABLE}" ('
    '"id" INTEGER PRIMARY KEY AUTOINCREMENT, '
    '"table_name" TEXT NOT NULL, '
    '"action" TEXT NOT NULL, '
    '"column_name" TEXT, '
    '"sql" TEXT NOT NULL, '
    '"executed_at" TEXT NOT NULL)'
)


def sql_literal(value: Any) -> str:
    """Render a constant for a DEFAULT clause."""
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, bytes):
        return f"X'{value.hex()}'"
    text = str(value).replace("'", "''")
    return f"'{text}'"


class SchemaMigrator:
    """
    Creates and evolves tables from metadata.

    Example:
        >>> migrator = SchemaMigrator(adapter, registry)
        >>> migrator.migrate(User, Order)
        >>> migrator.drop_column(User, 'nickname')
        >>> for statement in migrator.generate_all_rollback_sql():
        ...     print(statement)
    """

    def __init__(self, adapter: DatabaseAdapter, registry: MetadataRegistry,
                 transactions: Optional[TransactionManager] = None):
        self.adapter = adapter
        self.registry = registry
        self.transactions = transactions or TransactionManager(adapter)
        self._logs: List[MigrationLog] = []
        self._history_ready = False

    # =========================================================================
    # SYNC
    # =========================================================================

    def migrate(self, *entity_classes: type) -> List[MigrationLog]:
        """
        Create missing tables and columns for the given entities.

        Returns:
            Log entries for the changes made by this call

        Raises:
            MigrationError: If any DDL statement fails
        """
        before = len(self._logs)
        for entity_class in entity_classes:
            meta = self.registry.get(entity_class)
            self._sync_table(meta)
            for relation in meta.relations:
                if isinstance(relation, ManyToMany):
                    self._sync_join_table(relation, meta)
        return self._logs[before:]

    def _sync_table(self, meta: EntityMetadata) -> None:
        if not self.has_table(meta.table_name):
            sql = self.build_create_table_sql(meta)
            self._execute_ddl(sql, meta.table_name)
            self._record(meta.table_name, MigrationAction.CREATE_TABLE, sql)
            return

        existing = {info['name'] for info in self.get_table_info(meta.table_name)}
        for column in meta.columns:
            if column.column_name in existing:
                continue
            sql = (f"ALTER TABLE {quote_identifier(meta.table_name)} "
                   f"ADD COLUMN {self._column_definition(column, inline_pk=False, altering=True)}")
            self._execute_ddl(sql, meta.table_name)
            self._record(meta.table_name, MigrationAction.ADD_COLUMN, sql, column.column_name)

    def _sync_join_table(self, relation: ManyToMany, meta: EntityMetadata) -> None:
        keys = resolve_keys(relation, meta, self.registry.get(relation.target_class))
        if self.has_table(keys.through):
            return
        owner_column = quote_identifier(keys.through_owner_column)
        target_column = quote_identifier(keys.through_target_column)
        sql = (f"CREATE TABLE IF NOT EXISTS {quote_identifier(keys.through)} ("
               f"{owner_column} INTEGER NOT NULL, {target_column} INTEGER NOT NULL, "
               f"PRIMARY KEY ({owner_column}, {target_column}))")
        self._execute_ddl(sql, keys.through)
        self._record(keys.through, MigrationAction.CREATE_TABLE, sql)

    def build_create_table_sql(self, meta: EntityMetadata) -> str:
        """
        CREATE TABLE statement for an entity.

        Single-column keys are declared inline (with AUTOINCREMENT for
        auto-increment INTEGER keys); composite keys get a table constraint.
        """
        composite = len(meta.primary_keys) > 1
        definitions = [self._column_definition(c, inline_pk=not composite) for c in meta.columns]
        if composite:
            pk_columns = [meta.get_column(name).column_name for name in meta.primary_keys]
            definitions.append(f"PRIMARY KEY ({quote_list(pk_columns)})")
        return f"CREATE TABLE IF NOT EXISTS {quote_identifier(meta.table_name)} ({', '.join(definitions)})"

    def _column_definition(self, column: ColumnMetadata, inline_pk: bool = True, altering: bool = False) -> str:
        parts = [quote_identifier(column.column_name), column.type.value]

        if column.primary_key and inline_pk:
            parts.append('PRIMARY KEY')
            if column.auto_increment and column.type == ColumnType.INTEGER:
                parts.append('AUTOINCREMENT')
        elif column.not_null and not (altering and column.default is None):
            # ADD COLUMN cannot be NOT NULL without a constant default
            parts.append('NOT NULL')

        if column.default is not None:
            parts.append(f"DEFAULT {sql_literal(column.default)}")
        elif (column.auto_create_time or column.auto_update_time) and not altering:
            parts.append(LOCAL_TIME_DEFAULT)
        return ' '.join(parts)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def _table_name(self, target: Union[str, type]) -> str:
        if isinstance(target, str):
            return validate_identifier(target)
        return self.registry.get(target).table_name

    def has_table(self, target: Union[str, type]) -> bool:
        table = self._table_name(target)
        rows = read_rows(self.adapter.query(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", [table]))
        return bool(rows)

    def get_table_info(self, target: Union[str, type]) -> List[Dict[str, Any]]:
        """
        Column descriptions from PRAGMA table_info.

        Returns:
            Dicts with cid, name, type, notnull, dflt_value, pk (empty if no table)
        """
        table = self._table_name(target)
        return read_rows(self.adapter.query(f"PRAGMA table_info({quote_identifier(table)})"))

    def has_column(self, target: Union[str, type], column_name: str) -> bool:
        if not isinstance(target, str):
            column_name = self.registry.get(target).column_name_for(column_name)
        return any(info['name'] == column_name for info in self.get_table_info(target))

    # =========================================================================
    # REBUILDS
    # =========================================================================

    def drop_column(self, target: Union[str, type], column_name: str) -> MigrationLog:
        """
        Remove a column by rebuilding the table.

        Raises:
            MigrationError: Unknown table or column, or the last remaining column
        """
        table = self._table_name(target)
        columns = self._require_columns(table, column_name)
        remaining = [info for info in columns if info['name'] != column_name]
        if not remaining:
            raise MigrationError(message=f"Cannot drop the only column of {table}", table=table)
        return self._rebuild(table, remaining, MigrationAction.DROP_COLUMN, column_name)

    def modify_column(self, target: Union[str, type], column_name: str, column_type: ColumnType,
                      not_null: Optional[bool] = None) -> MigrationLog:
        """
        Change a column's storage type (and optionally its NOT NULL flag) by
        rebuilding the table. Existing values are CAST to the new type.

        Raises:
            MigrationError: Unknown table or column
        """
        table = self._table_name(target)
        columns = self._require_columns(table, column_name)
        modified = []
        for info in columns:
            info = dict(info)
            if info['name'] == column_name:
                info['type'] = ColumnType(column_type).value
                if not_null is not None:
                    info['notnull'] = 1 if not_null else 0
            modified.append(info)
        return self._rebuild(table, modified, MigrationAction.MODIFY_COLUMN, column_name)

    def _require_columns(self, table: str, column_name: str) -> List[Dict[str, Any]]:
        columns = self.get_table_info(table)
        if not columns:
            raise MigrationError(message=f"{get_message(ErrorCode.TABLE_NOT_EXISTS)}: {table}", table=table)
        if not any(info['name'] == column_name for info in columns):
            raise MigrationError(
                message=f"{get_message(ErrorCode.COLUMN_NOT_EXISTS)}: {table}.{column_name}",
                table=table
            )
        return columns

    def _uses_autoincrement(self, table: str) -> bool:
        rows = read_rows(self.adapter.query(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", [table]))
        return bool(rows) and 'AUTOINCREMENT' in (rows[0]['sql'] or '').upper()

    def _rebuild(self, table: str, columns: List[Dict[str, Any]], action: MigrationAction,
                 column_name: str) -> MigrationLog:
        shadow = f"{table}{SHADOW_SUFFIX}"
        autoincrement = self._uses_autoincrement(table)
        pk_columns = sorted((info for info in columns if info['pk']), key=lambda info: info['pk'])

        definitions = []
        for info in columns:
            parts = [quote_identifier(info['name'])]
            if info['type']:
                parts.append(info['type'])
            if info['pk'] and len(pk_columns) == 1:
                parts.append('PRIMARY KEY')
                if autoincrement and (info['type'] or '').upper() == 'INTEGER':
                    parts.append('AUTOINCREMENT')
            elif info['notnull']:
                parts.append('NOT NULL')
            # PRAGMA reports expression defaults without their parentheses
            if info['dflt_value'] is not None:
                parts.append(f"DEFAULT ({info['dflt_value']})")
            definitions.append(' '.join(parts))
        if len(pk_columns) > 1:
            definitions.append(f"PRIMARY KEY ({quote_list(info['name'] for info in pk_columns)})")

        names = quote_list(info['name'] for info in columns)
        selected = ', '.join(
            f"CAST({quote_identifier(info['name'])} AS {info['type']})" if info['type']
            else quote_identifier(info['name'])
            for info in columns
        )
        statements = [
            f"CREATE TABLE {quote_identifier(shadow)} ({', '.join(definitions)})",
            f"INSERT INTO {quote_identifier(shadow)} ({names}) SELECT {selected} FROM {quote_identifier(table)}",
            f"DROP TABLE {quote_identifier(table)}",
            f"ALTER TABLE {quote_identifier(shadow)} RENAME TO {quote_identifier(table)}",
        ]

        self._ensure_history_table()
        with self.transactions.atomic():
            for statement in statements:
                self._execute_ddl(statement, table)
            return self._record(table, action, '; '.join(statements), column_name)

    # =========================================================================
    # LOG
    # =========================================================================

    def _execute_ddl(self, sql: str, table: str) -> None:
        try:
            self.adapter.execute_sql(sql)
        except MigrationError:
            raise
        except Exception as e:
            log_database_error(e, sql)
            raise MigrationError(table=table, cause=e, sql=sql) from e

    def _ensure_history_table(self) -> None:
        if not self._history_ready:
            self._execute_ddl(_HISTORY_DDL, MIGRATIONS_TABLE)
            self._history_ready = True

    def _record(self, table: str, action: MigrationAction, sql: str,
                column_name: Optional[str] = None) -> MigrationLog:
        entry = MigrationLog(table_name=table, action=action, sql=sql, column_name=column_name)
        self._ensure_history_table()
        try:
            self.adapter.execute_sql(
                f'INSERT INTO "{MIGRATIONS_TABLE}" ("table_name", "action", "column_name", "sql", "executed_at") '
                'VALUES (?, ?, ?, ?, ?)',
                [entry.table_name, entry.action.value, entry.column_name, entry.sql, entry.executed_at]
            )
        except Exception as e:
            log_database_error(e, "Failed to persist migration log")
            raise MigrationError(table=table, cause=e) from e

        self._logs.append(entry)
        log_migration(table, action.value, sql, column_name)
        return entry

    def get_migration_logs(self) -> List[MigrationLog]:
        """Changes made through this migrator, oldest first."""
        return list(self._logs)

    def clear_migration_logs(self) -> None:
        """Forget the in-memory log; the persisted history is kept."""
        self._logs.clear()

    def get_migration_history(self, table_name: Optional[str] = None) -> List[MigrationLog]:
        """Persisted migration history, newest first."""
        self._ensure_history_table()
        sql = (f'SELECT "table_name", "action", "column_name", "sql", "executed_at" '
               f'FROM "{MIGRATIONS_TABLE}"')
        params = []
        if table_name:
            sql += ' WHERE "table_name" = ?'
            params.append(table_name)
        sql += ' ORDER BY "id" DESC'
        return [
            MigrationLog(
                table_name=row['table_name'],
                action=row['action'],
                sql=row['sql'],
                column_name=row['column_name'],
                executed_at=row['executed_at'],
            )
            for row in read_rows(self.adapter.query(sql, params))
        ]

    def generate_rollback_sql(self, log: MigrationLog) -> str:
        """
        Statement undoing one log entry.

        Only create_table is safely reversible; other actions yield a comment
        because undoing them needs a data backup.
        """
        if log.action == MigrationAction.CREATE_TABLE:
            return f"DROP TABLE IF EXISTS {quote_identifier(log.table_name)};"
        target = f"{log.table_name}.{log.column_name}" if log.column_name else log.table_name
        return f"-- Cannot automatically roll back {log.action.value} on {target}; restore from backup"

    def generate_all_rollback_sql(self, logs: Optional[List[MigrationLog]] = None) -> List[str]:
        """Rollback statements for the given (or in-memory) logs, newest first."""
        entries = self._logs if logs is None else logs
        statements = [self.generate_rollback_sql(log) for log in reversed(entries)]
        logger.debug("Rollback SQL generated", extra={
            "event_type": "migration",
            "statements": len(statements)
        })
        return statements
