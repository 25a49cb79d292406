"""
liteorm - Relation Keys
Works out which fields and columns join an owner to a relation target.

Foreign-key inference when a relation names none:
- BelongsTo: the key lives on the owner as a property, so the default is the
  target table in mixedCase plus 'Id' ('user' -> 'userId').
- HasOne / HasMany / ManyToMany: the key lives on the target (or join) table
  as a column, so the default is the owner table plus '_id' ('user' -> 'user_id').

Given names are resolved against metadata, property name first and then
column name.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..metadata.types import BelongsTo, EntityMetadata, ManyToMany, Relation
from ..utils.naming import snake_to_camel


@dataclass
class RelationKeys:
    """
    Join description for one relation.

    Attributes:
        owner_property / owner_column: Field on the owner supplying the join value
        target_property / target_column: Field on the target matched against it
        through: Join table (ManyToMany only)
        through_owner_column: Join column referencing the owner
        through_target_column: Join column referencing the target
    """
    owner_property: str
    owner_column: str
    target_property: str
    target_column: str
    through: Optional[str] = None
    through_owner_column: Optional[str] = None
    through_target_column: Optional[str] = None


def infer_foreign_key(relation: Relation, owner_table: str, target_table: str) -> str:
    if isinstance(relation, BelongsTo):
        return snake_to_camel(target_table) + 'Id'
    return owner_table + '_id'


def _primary_property(meta: EntityMetadata) -> str:
    pk = meta.primary_key
    return pk.property_name if pk else 'id'


def _resolve(meta: EntityMetadata, name: str) -> Tuple[str, str]:
    """(property, column) for a property or column name."""
    column = meta.resolve_column(name)
    if column is None:
        return name, name
    return column.property_name, column.column_name


def default_through_table(owner_table: str, target_table: str) -> str:
    return f"{owner_table}_{target_table}"


def resolve_keys(relation: Relation, owner_meta: EntityMetadata, target_meta: EntityMetadata) -> RelationKeys:
    """Join description for a relation between two registered entities."""
    owner_table = owner_meta.table_name
    target_table = target_meta.table_name

    if isinstance(relation, BelongsTo):
        foreign_key = relation.foreign_key or infer_foreign_key(relation, owner_table, target_table)
        owner_property, owner_column = _resolve(owner_meta, foreign_key)
        target_property, target_column = _resolve(target_meta, relation.local_key or _primary_property(target_meta))
        return RelationKeys(owner_property, owner_column, target_property, target_column)

    owner_property, owner_column = _resolve(owner_meta, relation.local_key or _primary_property(owner_meta))

    if isinstance(relation, ManyToMany):
        target_property, target_column = _resolve(target_meta, _primary_property(target_meta))
        return RelationKeys(
            owner_property, owner_column, target_property, target_column,
            through=relation.through or default_through_table(owner_table, target_table),
            through_owner_column=(relation.through_foreign_key or relation.foreign_key
                                  or infer_foreign_key(relation, owner_table, target_table)),
            through_target_column=relation.through_other_key or target_table + '_id',
        )

    foreign_key = relation.foreign_key or infer_foreign_key(relation, owner_table, target_table)
    target_property, target_column = _resolve(target_meta, foreign_key)
    return RelationKeys(owner_property, owner_column, target_property, target_column)
