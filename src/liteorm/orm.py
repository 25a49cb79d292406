"""
liteorm - ORM Facade
Wires the registry, adapter, query builder, relation engine, migrator,
validator and transaction manager together.

Usage:
    from liteorm import ORM, SQLiteAdapter, primary_key, column

    orm = ORM(SQLiteAdapter(':memory:'))
    orm.register(User, columns=[primary_key(), column('name', not_null=True)])
    orm.migrate(User)

    user = User(name='Ann')
    orm.insert(user)              # user.id is set
    orm.query(User).where('name', 'Ann').first()
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator, Iterable, List, Optional, Sequence, Union

from .adapter.base import DatabaseAdapter
from .errors import ConfigurationError, ErrorCode, set_error_locale, statement_errors
from .metadata.registry import MetadataRegistry
from .metadata.types import ColumnMetadata, ColumnType, EntityMetadata, Relation
from .query.builder import QueryBuilder
from .relation.cascade import CascadeHandler
from .schema.migration_log import MigrationLog
from .schema.migrator import SchemaMigrator
from .transaction import TransactionManager
from .utils.cache import QueryCache
from .utils.config import (
    CACHE_ENABLED, CACHE_MAX_SIZE, CACHE_TTL_SECONDS, ERROR_LOCALE, LOG_LEVEL, TIME_FORMAT, config
)
from .utils.logger import logger, set_log_level
from .utils.records import get_field
from .utils.timestamps import set_time_format
from .validation.validator import ValidationResult, Validator


@dataclass
class ORMConfig:
    """
    Runtime settings for one ORM instance.

    Defaults come from the LITEORM_* environment settings.
    """
    name: str = 'default'
    debug: bool = False
    log_level: str = field(default_factory=lambda: LOG_LEVEL)
    cache_enabled: bool = field(default_factory=lambda: CACHE_ENABLED)
    cache_ttl_seconds: int = field(default_factory=lambda: CACHE_TTL_SECONDS)
    cache_max_size: int = field(default_factory=lambda: CACHE_MAX_SIZE)
    error_locale: str = field(default_factory=lambda: ERROR_LOCALE)
    time_format: str = field(default_factory=lambda: TIME_FORMAT)

    @classmethod
    def from_env(cls) -> 'ORMConfig':
        """Build a config from the current environment (re-read, not cached)."""
        return cls(
            name=config.get('LITEORM_NAME', 'default'),
            debug=config.get_bool('LITEORM_DEBUG', False),
            log_level=config.get('LITEORM_LOG_LEVEL', 'WARNING'),
            cache_enabled=config.get_bool('LITEORM_CACHE_ENABLED', False),
            cache_ttl_seconds=config.get_int('LITEORM_CACHE_TTL_SECONDS', 60),
            cache_max_size=config.get_int('LITEORM_CACHE_MAX_SIZE', 1000),
            error_locale=config.get('LITEORM_ERROR_LOCALE', 'en'),
            time_format=config.get('LITEORM_TIME_FORMAT', 'datetime'),
        )


class ORM:
    """
    Entry point for applications.

    Attributes:
        adapter: Storage adapter (one shared connection)
        registry: Entity metadata
        cache: Result cache for plain find() calls
        transactions: Depth-counted transaction manager
        migrator: Schema migrator
        cascade: Cascade handler for relation writes
        validator: Field rule validator
    """

    def __init__(self, adapter: DatabaseAdapter, registry: Optional[MetadataRegistry] = None,
                 config: Optional[ORMConfig] = None, validator: Optional[Validator] = None):
        if adapter is None:
            raise ConfigurationError(ErrorCode.ADAPTER_NOT_SET)

        self.adapter = adapter
        self.registry = registry if registry is not None else MetadataRegistry()
        self.config = config or ORMConfig()

        set_log_level('DEBUG' if self.config.debug else self.config.log_level)
        set_error_locale(self.config.error_locale)
        set_time_format(self.config.time_format)

        self.cache = QueryCache(
            enabled=self.config.cache_enabled,
            ttl_seconds=self.config.cache_ttl_seconds,
            max_size=self.config.cache_max_size,
        )
        self.transactions = TransactionManager(adapter)
        self.migrator = SchemaMigrator(adapter, self.registry, self.transactions)
        self.cascade = CascadeHandler(adapter, self.registry, self.cache)
        self.validator = validator if validator is not None else Validator()

        logger.info("ORM initialized", extra={
            "event_type": "orm",
            "name": self.config.name,
            "cache_enabled": self.config.cache_enabled
        })

    # =========================================================================
    # REGISTRATION & QUERIES
    # =========================================================================

    def register(self, entity_class: type, table_name: Optional[str] = None,
                 columns: Iterable[ColumnMetadata] = (), relations: Iterable[Relation] = ()) -> EntityMetadata:
        return self.registry.register_entity(entity_class, table_name, columns, relations)

    def query(self, entity_class: type) -> QueryBuilder:
        return QueryBuilder(self.adapter, self.registry, self.cache).from_entity(entity_class)

    def table(self, name: str) -> QueryBuilder:
        return QueryBuilder(self.adapter, self.registry, self.cache).table(name)

    def find_by_id(self, entity_class: type, id_value: Any) -> Optional[Any]:
        meta = self._require_primary_key(self.registry.get(entity_class))
        return self.query(entity_class).where(meta.primary_key.property_name, id_value).first()

    # =========================================================================
    # WRITES
    # =========================================================================

    def _meta_for(self, entity: Any, entity_class: Optional[type]) -> EntityMetadata:
        return self.registry.get(entity_class or type(entity))

    def _require_primary_key(self, meta: EntityMetadata) -> EntityMetadata:
        if meta.primary_key is None:
            raise ConfigurationError(
                ErrorCode.PRIMARY_KEY_MISSING,
                table=meta.table_name,
                suggestion="Register a primary_key() column for the entity"
            )
        return meta

    def _primary_value(self, entity: Any, meta: EntityMetadata) -> Any:
        value = get_field(entity, self._require_primary_key(meta).primary_key.property_name)
        if value is None:
            raise ConfigurationError(
                ErrorCode.PRIMARY_KEY_MISSING,
                table=meta.table_name,
                field=meta.primary_key.property_name,
                suggestion="The entity needs a primary key value for this operation"
            )
        return value

    def insert(self, entity: Any, entity_class: Optional[type] = None) -> Union[int, List[int]]:
        """
        Insert one entity or a list of them, writing generated keys back.

        Returns:
            Row id, or a list of row ids for a list
        """
        if isinstance(entity, (list, tuple)):
            return [self.insert(item, entity_class) for item in entity]
        return self.cascade.insert_entity(entity, self._meta_for(entity, entity_class))

    def save(self, entity: Any, entity_class: Optional[type] = None) -> int:
        """
        Update the entity when its primary key is set, insert it otherwise.

        Returns:
            Affected row count for updates, the new row id for inserts
        """
        meta = self._meta_for(entity, entity_class)
        pk = meta.primary_key
        if pk is None or get_field(entity, pk.property_name) is None:
            return self.cascade.insert_entity(entity, meta)
        return self.cascade.update_entity(entity, meta)

    def delete(self, entity: Any, entity_class: Optional[type] = None) -> int:
        """
        Physically delete one entity by primary key.

        Raises:
            ConfigurationError: If the entity has no primary key (value)
        """
        meta = self._meta_for(entity, entity_class)
        value = self._primary_value(entity, meta)
        return (QueryBuilder(self.adapter, self.registry, self.cache)
                .from_entity(meta.entity_class)
                .where(meta.primary_key.property_name, value)
                .force_delete())

    def delete_by_id(self, entity_class: type, ids: Union[Any, Sequence[Any]]) -> int:
        meta = self._require_primary_key(self.registry.get(entity_class))
        builder = self.query(entity_class)
        if isinstance(ids, (list, tuple, set)):
            builder.where_in(meta.primary_key.property_name, list(ids))
        else:
            builder.where(meta.primary_key.property_name, ids)
        return builder.force_delete()

    def insert_with_relations(self, entity: Any, entity_class: Optional[type] = None) -> int:
        """
        Insert an entity together with its create-cascading relations.

        BelongsTo owners are written first, then the entity, then children
        and join rows. Not atomic on its own; wrap in transaction().
        """
        meta = self._meta_for(entity, entity_class)
        self.cascade.cascade_create_owners(entity, meta)
        row_id = self.cascade.insert_entity(entity, meta)
        self.cascade.cascade_create(entity, meta)
        return row_id

    def save_with_relations(self, entity: Any, entity_class: Optional[type] = None) -> int:
        """Save an entity and propagate to its update-cascading relations."""
        meta = self._meta_for(entity, entity_class)
        pk = meta.primary_key
        if pk is None or get_field(entity, pk.property_name) is None:
            return self.insert_with_relations(entity, entity_class)
        affected = self.cascade.update_entity(entity, meta)
        self.cascade.cascade_update(entity, meta)
        return affected

    def delete_with_relations(self, entity: Any, entity_class: Optional[type] = None, soft: bool = False) -> int:
        """
        Delete an entity after its delete-cascading dependents.

        With soft=True both the dependents and the entity are soft deleted.

        Raises:
            ConfigurationError: Missing primary key, or soft=True without a soft-delete column
        """
        meta = self._meta_for(entity, entity_class)
        value = self._primary_value(entity, meta)
        builder = (QueryBuilder(self.adapter, self.registry, self.cache)
                   .from_entity(meta.entity_class)
                   .where(meta.primary_key.property_name, value))
        if soft:
            if meta.soft_delete_column is None:
                raise ConfigurationError(
                    ErrorCode.SOFT_DELETE_NOT_CONFIGURED,
                    table=meta.table_name,
                    suggestion="Register a soft_delete() column for the entity"
                )
            self.cascade.cascade_soft_delete(entity, meta)
            return builder.soft_delete()
        self.cascade.cascade_delete(entity, meta)
        return builder.force_delete()

    def validate(self, entity: Any, entity_class: Optional[type] = None) -> ValidationResult:
        return self.validator.validate(entity, entity_class)

    def execute_sql(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        """Run a raw statement; every cached result is dropped afterwards."""
        with statement_errors(sql, params):
            self.adapter.execute_sql(sql, params)
        self.cache.invalidate()

    # =========================================================================
    # SCHEMA
    # =========================================================================

    def migrate(self, *entity_classes: type) -> List[MigrationLog]:
        return self.migrator.migrate(*entity_classes)

    def has_table(self, target: Union[str, type]) -> bool:
        return self.migrator.has_table(target)

    def has_column(self, target: Union[str, type], column_name: str) -> bool:
        return self.migrator.has_column(target, column_name)

    def get_table_info(self, target: Union[str, type]) -> List[dict]:
        return self.migrator.get_table_info(target)

    def drop_column(self, target: Union[str, type], column_name: str) -> MigrationLog:
        self.cache.invalidate()
        return self.migrator.drop_column(target, column_name)

    def modify_column(self, target: Union[str, type], column_name: str, column_type: ColumnType,
                      not_null: Optional[bool] = None) -> MigrationLog:
        self.cache.invalidate()
        return self.migrator.modify_column(target, column_name, column_type, not_null)

    def get_migration_logs(self) -> List[MigrationLog]:
        return self.migrator.get_migration_logs()

    def clear_migration_logs(self) -> None:
        self.migrator.clear_migration_logs()

    def get_migration_history(self, table_name: Optional[str] = None) -> List[MigrationLog]:
        return self.migrator.get_migration_history(table_name)

    def generate_rollback_sql(self, log: MigrationLog) -> str:
        return self.migrator.generate_rollback_sql(log)

    def generate_all_rollback_sql(self) -> List[str]:
        return self.migrator.generate_all_rollback_sql()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def begin_transaction(self) -> None:
        self.transactions.begin()

    def _closes_as_rollback(self) -> bool:
        """Whether closing the current level will physically roll back."""
        return self.transactions.depth == 1 and self.transactions.is_rollback_only

    def commit(self) -> None:
        """Close one level; an outermost close after an inner rollback discards the cache too."""
        discarded = self._closes_as_rollback()
        self.transactions.commit()
        if discarded:
            self.cache.invalidate()

    def rollback(self) -> None:
        self.transactions.rollback()
        self.cache.invalidate()

    def get_transaction_depth(self) -> int:
        return self.transactions.depth

    @contextmanager
    def transaction(self) -> Generator['ORM', None, None]:
        """
        Run a block atomically.

        Example:
            >>> with orm.transaction():
            ...     orm.insert_with_relations(user)
        """
        try:
            with self.transactions.atomic():
                yield self
                discarded = self._closes_as_rollback()
        except BaseException:
            self.cache.invalidate()
            raise
        if discarded:
            self.cache.invalidate()

    def close(self) -> None:
        self.cache.invalidate()
        self.adapter.close()
        logger.info("ORM closed", extra={"event_type": "orm", "name": self.config.name})


# Process-wide handle
_orm: Optional[ORM] = None


def init_orm(adapter: DatabaseAdapter, config: Optional[ORMConfig] = None,
             registry: Optional[MetadataRegistry] = None) -> ORM:
    """Create the process-wide ORM."""
    global _orm
    _orm = ORM(adapter, registry=registry, config=config)
    return _orm


def get_orm() -> ORM:
    """
    The process-wide ORM.

    Raises:
        ConfigurationError: If init_orm() has not been called
    """
    if _orm is None:
        raise ConfigurationError(
            ErrorCode.INIT_FAILED,
            message="ORM not initialized",
            suggestion="Call init_orm() first"
        )
    return _orm


def set_orm(orm: Optional[ORM]) -> None:
    global _orm
    _orm = orm
