"""
liteorm - Metadata Registry
Maps entity classes to their table, columns, primary keys and relations.

Registration is explicit: application start-up code (or test fixtures) calls
register_table / register_column / register_relation on a constructed
registry, usually through register_entity.

Example:
    registry = MetadataRegistry()
    registry.register_entity(User, columns=[
        primary_key('id'),
        column('name', ColumnType.TEXT, not_null=True),
        column('age', ColumnType.INTEGER),
    ])
"""

from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..errors import ConfigurationError, ErrorCode
from ..utils.logger import logger
from ..utils.naming import class_to_table
from .types import ColumnMetadata, ColumnType, EntityMetadata, Relation


def infer_column_type(property_name: str) -> ColumnType:
    """Guess a storage class from common property naming conventions."""
    lower = property_name.lower()
    if lower == 'id' or lower.endswith('id') or lower.endswith('count') or lower in ('age', 'status', 'level'):
        return ColumnType.INTEGER
    if any(word in lower for word in ('price', 'amount', 'rate', 'score')):
        return ColumnType.REAL
    return ColumnType.TEXT


def column(property_name: str, type: Optional[ColumnType] = None, **options) -> ColumnMetadata:
    """
    Build a column definition.

    Args:
        property_name: Attribute name on the entity
        type: Storage class; inferred from the name when omitted
        **options: Any other ColumnMetadata field (column_name, not_null, default, ...)

    Returns:
        ColumnMetadata
    """
    if type is None:
        type = infer_column_type(property_name)
    return ColumnMetadata(property_name=property_name, type=type, **options)


def primary_key(property_name: str = 'id', type: ColumnType = ColumnType.INTEGER,
                auto_increment: bool = True, **options) -> ColumnMetadata:
    if type != ColumnType.INTEGER:
        auto_increment = False
    return ColumnMetadata(property_name=property_name, type=type, primary_key=True,
                          auto_increment=auto_increment, **options)


def created_at(property_name: str = 'createdAt', **options) -> ColumnMetadata:
    return ColumnMetadata(property_name=property_name, type=ColumnType.TEXT, auto_create_time=True, **options)


def updated_at(property_name: str = 'updatedAt', **options) -> ColumnMetadata:
    return ColumnMetadata(property_name=property_name, type=ColumnType.TEXT, auto_update_time=True, **options)


def soft_delete(property_name: str = 'deletedAt', **options) -> ColumnMetadata:
    return ColumnMetadata(property_name=property_name, type=ColumnType.TEXT, soft_delete=True, **options)


class MetadataRegistry:
    """
    Process-lifetime store of entity metadata.

    Entries are keyed by class identity and by class name; a lookup that only
    matches by name (a re-created or wrapped class) is cached under the new
    identity.
    """

    def __init__(self):
        self._by_class: Dict[type, EntityMetadata] = {}
        self._by_name: Dict[str, EntityMetadata] = {}
        self._pending_not_null: Set[Tuple[str, str]] = set()

    def _get_or_create(self, entity_class: type) -> EntityMetadata:
        meta = self.lookup(entity_class)
        if meta is None:
            meta = EntityMetadata(entity_class=entity_class, table_name=class_to_table(entity_class.__name__))
            self._by_class[entity_class] = meta
            self._by_name[entity_class.__name__] = meta
        return meta

    def register_table(self, entity_class: type, table_name: Optional[str] = None) -> EntityMetadata:
        """
        Register (or re-register) the table for an entity class.

        An 'id' column registered without any primary key is promoted to an
        auto-increment INTEGER primary key.

        Args:
            entity_class: The entity class
            table_name: Storage name; snake_case of the class name when omitted

        Returns:
            The entity's metadata
        """
        meta = self._get_or_create(entity_class)
        if table_name:
            if meta.table_name != table_name and meta.table_name != class_to_table(entity_class.__name__):
                logger.warning("Table name changed after registration", extra={
                    "event_type": "metadata",
                    "entity": entity_class.__name__,
                    "previous_table": meta.table_name,
                    "table": table_name
                })
            meta.table_name = table_name

        if not meta.primary_keys:
            id_column = meta.get_column('id')
            if id_column is not None:
                id_column.primary_key = True
                id_column.auto_increment = True
                id_column.type = ColumnType.INTEGER
                meta.primary_keys.append('id')

        logger.debug("Table registered", extra={
            "event_type": "metadata",
            "entity": entity_class.__name__,
            "table": meta.table_name
        })
        return meta

    def register_column(self, entity_class: type, column_meta: ColumnMetadata) -> ColumnMetadata:
        """
        Register a column, replacing any previous definition for the property.

        Pending not-null markers for the property are applied and discarded.
        """
        meta = self._get_or_create(entity_class)
        name = column_meta.property_name

        pending = (entity_class.__name__, name)
        if pending in self._pending_not_null:
            column_meta.not_null = True
            self._pending_not_null.discard(pending)

        for index, existing in enumerate(meta.columns):
            if existing.property_name == name:
                meta.columns[index] = column_meta
                break
        else:
            meta.columns.append(column_meta)

        if column_meta.primary_key and name not in meta.primary_keys:
            meta.primary_keys.append(name)
        elif not column_meta.primary_key and name in meta.primary_keys:
            meta.primary_keys.remove(name)

        return column_meta

    def register_relation(self, entity_class: type, relation: Relation) -> Relation:
        """Register a relation, replacing any previous one for the property."""
        meta = self._get_or_create(entity_class)
        for index, existing in enumerate(meta.relations):
            if existing.property_name == relation.property_name:
                meta.relations[index] = relation
                break
        else:
            meta.relations.append(relation)
        return relation

    def mark_not_null(self, entity_class: type, property_name: str) -> None:
        """
        Flag a property NOT NULL.

        May be called before the column itself is registered; the flag is then
        held and applied at column registration.
        """
        meta = self.lookup(entity_class)
        existing = meta.get_column(property_name) if meta else None
        if existing is not None:
            existing.not_null = True
        else:
            self._pending_not_null.add((entity_class.__name__, property_name))

    def lookup(self, entity_class: type) -> Optional[EntityMetadata]:
        """Metadata for a class, by identity then by class name."""
        meta = self._by_class.get(entity_class)
        if meta is not None:
            return meta
        meta = self._by_name.get(getattr(entity_class, '__name__', ''))
        if meta is not None:
            self._by_class[entity_class] = meta
        return meta

    def get(self, entity_class: type) -> EntityMetadata:
        """
        Metadata for a class that must be registered.

        Raises:
            ConfigurationError: If the class was never registered
        """
        meta = self.lookup(entity_class)
        if meta is None:
            name = getattr(entity_class, '__name__', repr(entity_class))
            raise ConfigurationError(
                ErrorCode.TABLE_NOT_SET,
                message=f"Entity {name} is not registered",
                suggestion="Call register_entity() for the class before using it"
            )
        return meta

    def find_by_table(self, table_name: str) -> Optional[EntityMetadata]:
        for meta in self._by_name.values():
            if meta.table_name == table_name:
                return meta
        return None

    def register_entity(self, entity_class: type, table_name: Optional[str] = None,
                        columns: Iterable[ColumnMetadata] = (),
                        relations: Iterable[Relation] = ()) -> EntityMetadata:
        """
        Register columns, relations and then the table for an entity class.

        Returns:
            The entity's metadata
        """
        for column_meta in columns:
            self.register_column(entity_class, column_meta)
        for relation in relations:
            self.register_relation(entity_class, relation)
        return self.register_table(entity_class, table_name)

    def entities(self) -> List[EntityMetadata]:
        return list(self._by_name.values())

    def clear(self) -> None:
        self._by_class.clear()
        self._by_name.clear()
        self._pending_not_null.clear()
