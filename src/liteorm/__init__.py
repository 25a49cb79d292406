"""
liteorm
=======

Object-relational mapping over a single-file SQLite store.

Components:
- metadata/: entity registration (tables, columns, relations)
- adapter/: storage contract and the SQLAlchemy-backed SQLite adapter
- query/: fluent query builder
- relation/: preload, lazy resolution and cascades
- schema/: schema sync and migration log
- validation/: declarative field rules
- orm.py: the ORM facade tying it together

Usage:
    from liteorm import ORM, SQLiteAdapter, HasMany, primary_key, column

    orm = ORM(SQLiteAdapter(':memory:'))
    orm.register(User, columns=[primary_key(), column('name')],
                 relations=[HasMany('orders', lambda: Order)])
    orm.migrate(User)
"""

from .adapter import DatabaseAdapter, ResultCursor, SQLiteAdapter
from .errors import (
    ConfigurationError,
    ErrorCode,
    MigrationError,
    ORMError,
    QueryError,
    ValidationError,
    get_error_locale,
    set_error_locale,
)
from .metadata import (
    BelongsTo,
    CascadeType,
    ColumnMetadata,
    ColumnType,
    EntityMetadata,
    HasMany,
    HasOne,
    ManyToMany,
    MetadataRegistry,
    column,
    created_at,
    primary_key,
    soft_delete,
    updated_at,
)
from .orm import ORM, ORMConfig, get_orm, init_orm, set_orm
from .query import QueryBuilder
from .relation import CascadeHandler, LazyRelations, RelationLoader, lazy_relations
from .schema import MigrationAction, MigrationLog, SchemaMigrator
from .transaction import TransactionManager
from .utils.naming import camel_to_snake, snake_to_camel
from .utils.timestamps import get_time_format, set_time_format
from .validation import ValidationResult, Validator

__version__ = "0.4.0"

__all__ = [
    "DatabaseAdapter", "ResultCursor", "SQLiteAdapter",
    "ConfigurationError", "ErrorCode", "MigrationError", "ORMError", "QueryError",
    "ValidationError", "get_error_locale", "set_error_locale",
    "BelongsTo", "CascadeType", "ColumnMetadata", "ColumnType", "EntityMetadata",
    "HasMany", "HasOne", "ManyToMany", "MetadataRegistry",
    "column", "created_at", "primary_key", "soft_delete", "updated_at",
    "ORM", "ORMConfig", "get_orm", "init_orm", "set_orm",
    "QueryBuilder", "CascadeHandler", "LazyRelations", "RelationLoader", "lazy_relations",
    "MigrationAction", "MigrationLog", "SchemaMigrator", "TransactionManager",
    "camel_to_snake", "snake_to_camel", "get_time_format", "set_time_format",
    "ValidationResult", "Validator",
]
