"""
liteorm - Relation Loader
Batched eager loading of relations onto already-fetched entities.

Each relation on a path costs exactly one query regardless of how many
parents were fetched: distinct join values are collected across all parents
and looked up with a single IN (...) clause, then the results are
partitioned back onto their parents client side.
"""

from collections import OrderedDict
from typing import Any, Dict, List, Sequence

from ..adapter.base import DatabaseAdapter
from ..errors import ErrorCode, ORMError, statement_errors
from ..metadata.registry import MetadataRegistry
from ..metadata.types import EntityMetadata, ManyToMany, Relation
from ..query.mapping import read_rows, row_to_entity
from ..utils.logger import logger
from ..utils.records import get_field, set_field
from ..utils.sql import placeholders, quote_identifier
from .keys import RelationKeys, resolve_keys

OWNER_KEY_ALIAS = '__owner_key'


def parse_paths(paths: Sequence[str]) -> Dict[str, dict]:
    """
    Turn dotted preload paths into a nested tree.

    Example:
        >>> parse_paths(['orders', 'orders.items', 'profile'])
        {'orders': {'items': {}}, 'profile': {}}
    """
    tree: Dict[str, dict] = OrderedDict()
    for path in paths:
        node = tree
        for name in path.split('.'):
            name = name.strip()
            if name:
                node = node.setdefault(name, OrderedDict())
    return tree


def _flatten(parents: Sequence[Any], property_name: str) -> List[Any]:
    attached = []
    for parent in parents:
        value = get_field(parent, property_name)
        if isinstance(value, list):
            attached.extend(value)
        elif value is not None:
            attached.append(value)
    return attached


class RelationLoader:
    """
    Loads relation data for entities of one registry.

    Example:
        >>> loader = RelationLoader(adapter, registry)
        >>> loader.preload(users, ['orders.items'], registry.get(User))
    """

    def __init__(self, adapter: DatabaseAdapter, registry: MetadataRegistry):
        self.adapter = adapter
        self.registry = registry

    def relation_for(self, meta: EntityMetadata, name: str) -> Relation:
        relation = meta.get_relation(name)
        if relation is None:
            raise ORMError(
                ErrorCode.RELATION_NOT_FOUND,
                message=f"Relation '{name}' is not defined on {meta.class_name}",
                table=meta.table_name,
                field=name
            )
        return relation

    def preload(self, parents: Sequence[Any], paths: Sequence[str], meta: EntityMetadata) -> None:
        """
        Attach every relation named by the (possibly dotted) paths.

        Args:
            parents: Entities to attach onto
            paths: Relation paths such as 'orders' or 'orders.items'
            meta: Metadata of the parents
        """
        if not parents:
            return
        self._preload_tree(list(parents), parse_paths(paths), meta)

    def _preload_tree(self, parents: List[Any], tree: Dict[str, dict], meta: EntityMetadata) -> None:
        for name, children in tree.items():
            relation = self.relation_for(meta, name)
            target_meta = self.registry.get(relation.target_class)
            self.load_relation(parents, relation, meta, target_meta)

            if children:
                attached = _flatten(parents, relation.property_name)
                if attached:
                    self._preload_tree(attached, children, target_meta)

    def load_relation(self, parents: Sequence[Any], relation: Relation,
                      owner_meta: EntityMetadata, target_meta: EntityMetadata) -> None:
        """Attach one relation onto every parent with a single query."""
        keys = resolve_keys(relation, owner_meta, target_meta)
        values = list(OrderedDict.fromkeys(
            v for v in (get_field(p, keys.owner_property) for p in parents) if v is not None
        ))

        grouped = self._fetch_grouped(relation, keys, target_meta, values) if values else {}

        for parent in parents:
            related = grouped.get(get_field(parent, keys.owner_property), [])
            if relation.is_many:
                set_field(parent, relation.property_name, list(related))
            else:
                set_field(parent, relation.property_name, related[0] if related else None)

        logger.debug("Relation preloaded", extra={
            "event_type": "relation",
            "relation": relation.property_name,
            "kind": relation.kind,
            "parents": len(parents),
            "keys": len(values)
        })

    def resolve_one(self, parent: Any, relation: Relation, owner_meta: EntityMetadata) -> Any:
        """
        Fetch one relation for one parent without attaching it.

        Returns:
            A list for to-many relations, the related entity or None otherwise
        """
        target_meta = self.registry.get(relation.target_class)
        keys = resolve_keys(relation, owner_meta, target_meta)
        value = get_field(parent, keys.owner_property)

        related = []
        if value is not None:
            related = self._fetch_grouped(relation, keys, target_meta, [value]).get(value, [])

        if relation.is_many:
            return list(related)
        return related[0] if related else None

    def _fetch_grouped(self, relation: Relation, keys: RelationKeys, target_meta: EntityMetadata,
                       values: List[Any]) -> Dict[Any, List[Any]]:
        """Run the single batched query and group targets by join value."""
        target_table = quote_identifier(target_meta.table_name)
        soft_delete = target_meta.soft_delete_column

        if isinstance(relation, ManyToMany):
            through = quote_identifier(keys.through)
            owner_key = quote_identifier(f"j.{keys.through_owner_column}")
            sql = (
                f"SELECT t.*, {owner_key} AS {OWNER_KEY_ALIAS} FROM {target_table} t "
                f"INNER JOIN {through} j ON {quote_identifier(f'j.{keys.through_target_column}')} = "
                f"{quote_identifier(f't.{keys.target_column}')} "
                f"WHERE {owner_key} IN ({placeholders(len(values))})"
            )
            if soft_delete:
                sql += f" AND {quote_identifier(f't.{soft_delete.column_name}')} IS NULL"
        else:
            sql = (f"SELECT * FROM {target_table} "
                   f"WHERE {quote_identifier(keys.target_column)} IN ({placeholders(len(values))})")
            if soft_delete:
                sql += f" AND {quote_identifier(soft_delete.column_name)} IS NULL"

        with statement_errors(sql, values, target_meta.table_name):
            rows = read_rows(self.adapter.query(sql, values))

        grouped: Dict[Any, List[Any]] = {}
        for row in rows:
            if isinstance(relation, ManyToMany):
                group_key = row.pop(OWNER_KEY_ALIAS)
                entity = row_to_entity(row, target_meta)
            else:
                entity = row_to_entity(row, target_meta)
                group_key = row.get(keys.target_column)
            grouped.setdefault(group_key, []).append(entity)
        return grouped
