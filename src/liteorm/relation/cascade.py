"""
liteorm - Cascade Handler
Propagates create/update/delete from an entity to its related entities.

Cascades stop at the first failing statement and do not undo rows already
written; run them inside a transaction (ORM.transaction()) to make the whole
graph write atomic.
"""

from typing import Any, List, Optional, Sequence

from ..adapter.base import DatabaseAdapter
from ..errors import ConfigurationError, ErrorCode, statement_errors
from ..metadata.registry import MetadataRegistry
from ..metadata.types import BelongsTo, CascadeType, EntityMetadata, ManyToMany, Relation
from ..query.mapping import prepare_insert_values, prepare_update_values
from ..utils.cache import QueryCache
from ..utils.logger import logger
from ..utils.records import get_field, set_field
from ..utils.sql import quote_identifier
from ..utils.timestamps import get_local_time_string
from .keys import RelationKeys, resolve_keys


def _as_list(data: Any) -> List[Any]:
    if isinstance(data, (list, tuple)):
        return list(data)
    return [data]


class CascadeHandler:
    """
    Writes related entities alongside their owner.

    Example:
        >>> handler = CascadeHandler(adapter, registry)
        >>> handler.cascade_create_owners(order, order_meta)
        >>> order_id = adapter.insert('order', values)
        >>> handler.cascade_create(order, order_meta)
    """

    def __init__(self, adapter: DatabaseAdapter, registry: MetadataRegistry,
                 cache: Optional[QueryCache] = None):
        self.adapter = adapter
        self.registry = registry
        self.cache = cache

    def _cascading(self, meta: EntityMetadata, cascade_type: CascadeType):
        """(relation, target metadata, keys) for each relation propagating the write."""
        for relation in meta.relations:
            if not relation.cascades(cascade_type):
                continue
            target_meta = self.registry.get(relation.target_class)
            yield relation, target_meta, resolve_keys(relation, meta, target_meta)

    def _invalidate(self, table_name: str) -> None:
        if self.cache is not None:
            self.cache.invalidate_by_table(table_name)

    def _owner_value(self, entity: Any, meta: EntityMetadata, keys: RelationKeys, relation: Relation) -> Any:
        value = get_field(entity, keys.owner_property)
        if value is None:
            raise ConfigurationError(
                ErrorCode.PRIMARY_KEY_MISSING,
                table=meta.table_name,
                field=keys.owner_property,
                suggestion=f"Insert the {meta.class_name} before cascading '{relation.property_name}'"
            )
        return value

    def insert_entity(self, entity: Any, meta: EntityMetadata) -> int:
        """Insert one entity row and write a generated primary key back onto it."""
        values = prepare_insert_values(entity, meta)
        with statement_errors(f"INSERT INTO {meta.table_name}", list(values.values()), meta.table_name):
            row_id = self.adapter.insert(meta.table_name, values)

        pk = meta.primary_key
        if pk is not None and pk.auto_increment and get_field(entity, pk.property_name) is None:
            set_field(entity, pk.property_name, row_id)
        self._invalidate(meta.table_name)
        return row_id

    def update_entity(self, entity: Any, meta: EntityMetadata) -> int:
        """Update one entity's own columns by primary key; entities without one are skipped."""
        pk = meta.primary_key
        if pk is None:
            return 0
        pk_value = get_field(entity, pk.property_name)
        if pk_value is None:
            return 0

        values = prepare_update_values(entity, meta)
        if not values:
            return 0

        where = f"{quote_identifier(pk.column_name)} = ?"
        with statement_errors(f"UPDATE {meta.table_name}", list(values.values()) + [pk_value], meta.table_name):
            affected = self.adapter.update(meta.table_name, values, where, [pk_value])
        self._invalidate(meta.table_name)
        return affected

    def cascade_create_owners(self, entity: Any, meta: EntityMetadata) -> None:
        """
        Insert create-cascading BelongsTo targets that have no key yet and
        point the entity's foreign key at them.

        Runs before the entity row itself is written.
        """
        for relation, target_meta, keys in self._cascading(meta, CascadeType.CREATE):
            if not isinstance(relation, BelongsTo):
                continue
            owner = get_field(entity, relation.property_name)
            if owner is None:
                continue

            if get_field(owner, keys.target_property) is None:
                self.insert_entity(owner, target_meta)
            set_field(entity, keys.owner_property, get_field(owner, keys.target_property))

    def cascade_create(self, entity: Any, meta: EntityMetadata) -> None:
        """
        Insert related entities held by a freshly inserted entity.

        HasOne/HasMany children get their foreign key set to the entity's key
        and their generated primary keys written back. ManyToMany targets are
        inserted when they have no key yet, then linked through the join table.

        Raises:
            ConfigurationError: If the entity has no key value to cascade from
        """
        for relation, target_meta, keys in self._cascading(meta, CascadeType.CREATE):
            if isinstance(relation, BelongsTo):
                continue
            data = get_field(entity, relation.property_name)
            if data is None:
                continue

            parent_value = self._owner_value(entity, meta, keys, relation)

            if isinstance(relation, ManyToMany):
                self._link_many_to_many(_as_list(data), keys, target_meta, parent_value)
                continue

            for child in _as_list(data):
                set_field(child, keys.target_property, parent_value)
                self.insert_entity(child, target_meta)

            logger.debug("Cascade create", extra={
                "event_type": "cascade",
                "relation": relation.property_name,
                "table": target_meta.table_name
            })

    def cascade_update(self, entity: Any, meta: EntityMetadata) -> None:
        """
        Write related entities held by an updated entity.

        ManyToMany associations are replaced: every join row for the entity is
        removed and the current set is linked again. Other kinds update each
        related entity's own columns by primary key.
        """
        for relation, target_meta, keys in self._cascading(meta, CascadeType.UPDATE):
            data = get_field(entity, relation.property_name)
            if data is None:
                continue

            if isinstance(relation, ManyToMany):
                parent_value = self._owner_value(entity, meta, keys, relation)
                self._unlink_many_to_many(keys, parent_value)
                self._link_many_to_many(_as_list(data), keys, target_meta, parent_value)
                continue

            for related in _as_list(data):
                self.update_entity(related, target_meta)

    def cascade_delete(self, entity: Any, meta: EntityMetadata) -> None:
        """
        Physically delete dependents of an entity about to be deleted.

        BelongsTo targets are never deleted. ManyToMany only loses its join
        rows; the related entities stay.
        """
        for relation, target_meta, keys in self._cascading(meta, CascadeType.DELETE):
            if isinstance(relation, BelongsTo):
                continue
            parent_value = get_field(entity, keys.owner_property)
            if parent_value is None:
                continue

            if isinstance(relation, ManyToMany):
                self._unlink_many_to_many(keys, parent_value)
                continue

            where = f"{quote_identifier(keys.target_column)} = ?"
            with statement_errors(f"DELETE FROM {target_meta.table_name}", [parent_value], target_meta.table_name):
                deleted = self.adapter.delete(target_meta.table_name, where, [parent_value])
            self._invalidate(target_meta.table_name)

            logger.debug("Cascade delete", extra={
                "event_type": "cascade",
                "relation": relation.property_name,
                "table": target_meta.table_name,
                "rows": deleted
            })

    def cascade_soft_delete(self, entity: Any, meta: EntityMetadata) -> None:
        """
        Stamp the soft-delete column of dependents of an entity being soft
        deleted.

        Skips BelongsTo, ManyToMany and targets without a soft-delete column.
        """
        for relation, target_meta, keys in self._cascading(meta, CascadeType.DELETE):
            if isinstance(relation, (BelongsTo, ManyToMany)):
                continue
            soft_column = target_meta.soft_delete_column
            if soft_column is None:
                continue
            parent_value = get_field(entity, keys.owner_property)
            if parent_value is None:
                continue

            where = (f"{quote_identifier(keys.target_column)} = ? "
                     f"AND {quote_identifier(soft_column.column_name)} IS NULL")
            values = {soft_column.column_name: get_local_time_string()}
            with statement_errors(f"UPDATE {target_meta.table_name}", [parent_value], target_meta.table_name):
                self.adapter.update(target_meta.table_name, values, where, [parent_value])
            self._invalidate(target_meta.table_name)

    def _link_many_to_many(self, items: Sequence[Any], keys: RelationKeys,
                           target_meta: EntityMetadata, parent_value: Any) -> None:
        sql = (f"INSERT OR IGNORE INTO {quote_identifier(keys.through)} "
               f"({quote_identifier(keys.through_owner_column)}, {quote_identifier(keys.through_target_column)}) "
               f"VALUES (?, ?)")
        for item in items:
            if get_field(item, keys.target_property) is None:
                self.insert_entity(item, target_meta)
            target_value = get_field(item, keys.target_property)
            if target_value is None:
                continue
            params = [parent_value, target_value]
            with statement_errors(sql, params, keys.through):
                self.adapter.execute_sql(sql, params)
        self._invalidate(keys.through)

    def _unlink_many_to_many(self, keys: RelationKeys, parent_value: Any) -> None:
        where = f"{quote_identifier(keys.through_owner_column)} = ?"
        with statement_errors(f"DELETE FROM {keys.through}", [parent_value], keys.through):
            self.adapter.delete(keys.through, where, [parent_value])
        self._invalidate(keys.through)
