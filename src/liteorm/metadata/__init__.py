"""
Entity Metadata
===============

Declarative description of how entities map onto tables.

Modules:
- types.py: ColumnMetadata, relation kinds, EntityMetadata
- registry.py: MetadataRegistry plus column builder helpers

Usage:
    from liteorm.metadata import MetadataRegistry, primary_key, column, HasMany

    registry = MetadataRegistry()
    registry.register_entity(User, columns=[primary_key(), column('name')],
                             relations=[HasMany('orders', Order)])
"""

from .registry import (
    MetadataRegistry,
    column,
    created_at,
    infer_column_type,
    primary_key,
    soft_delete,
    updated_at,
)
from .types import (
    BelongsTo,
    CascadeType,
    ColumnMetadata,
    ColumnType,
    EntityMetadata,
    HasMany,
    HasOne,
    ManyToMany,
    Relation,
    TargetRef,
)

__all__ = [
    "MetadataRegistry", "column", "created_at", "infer_column_type", "primary_key",
    "soft_delete", "updated_at", "BelongsTo", "CascadeType", "ColumnMetadata",
    "ColumnType", "EntityMetadata", "HasMany", "HasOne", "ManyToMany", "Relation",
    "TargetRef",
]
