"""
liteorm - Lazy Relations
Per-instance cache for relations resolved on first use.

Entities fetched with QueryBuilder.lazy() get a LazyRelations value attached.
resolve(name) runs one query scoped to that instance the first time and
returns the cached value afterwards.

Example:
    >>> user = orm.query(User).lazy().first()
    >>> orders = lazy_relations(user).resolve('orders')   # one query
    >>> user.orders is orders                              # cached on the instance
    True
"""

from typing import Any, Dict, Optional, Set

from ..errors import ErrorCode, ORMError
from ..metadata.types import EntityMetadata, ManyToMany
from ..utils.logger import logger
from ..utils.records import get_field, get_own_field, remove_field, set_field
from .loader import RelationLoader

LAZY_ATTRIBUTE = '_lazy_relations'


class LazyRelations:
    """
    Relation values already resolved for one entity.

    Owned by the entity it is attached to and discarded with it.
    """

    def __init__(self, entity: Any, meta: EntityMetadata, loader: RelationLoader):
        self._entity = entity
        self._meta = meta
        self._loader = loader
        self._values: Dict[str, Any] = {}
        self._loaded: Set[str] = set()

    def resolve(self, name: str) -> Any:
        """
        Value of a relation, querying only on the first call.

        A value already written to the entity attribute (before the first
        resolve, or over a cached value) counts as loaded and is returned
        as is. ManyToMany relations are not resolved lazily and always yield
        an empty list; preload them instead.

        Raises:
            ORMError: RELATION_NOT_FOUND if the relation is not defined,
                INVALID_QUERY if it was declared with lazy=False
        """
        relation = self._loader.relation_for(self._meta, name)
        if not relation.lazy:
            raise ORMError(
                ErrorCode.INVALID_QUERY,
                message=f"Relation '{name}' is not lazy; load it with preload('{name}')",
                table=self._meta.table_name,
                field=name
            )

        current = get_own_field(self._entity, name)
        if name in self._loaded:
            if current is not self._values[name]:
                self._values[name] = current
            return self._values[name]
        if current is not None:
            self._values[name] = current
            self._loaded.add(name)
            return current

        if isinstance(relation, ManyToMany):
            logger.debug("Lazy loading not supported for many-to-many relation", extra={
                "event_type": "relation",
                "relation": name,
                "table": self._meta.table_name
            })
            value = []
        else:
            value = self._loader.resolve_one(self._entity, relation, self._meta)

        self.assign(name, value)
        return value

    def assign(self, name: str, value: Any) -> None:
        """Overwrite a relation value and mark it loaded."""
        self._values[name] = value
        self._loaded.add(name)
        set_field(self._entity, name, value)

    def is_loaded(self, name: str) -> bool:
        return name in self._loaded

    def clear(self, name: Optional[str] = None) -> None:
        """Forget one (or every) cached relation so the next resolve re-queries."""
        names = list(self._loaded) if name is None else [name]
        for relation_name in names:
            self._values.pop(relation_name, None)
            self._loaded.discard(relation_name)
            remove_field(self._entity, relation_name)


def attach_lazy(entity: Any, meta: EntityMetadata, loader: RelationLoader) -> LazyRelations:
    lazy = LazyRelations(entity, meta, loader)
    set_field(entity, LAZY_ATTRIBUTE, lazy)
    return lazy


def lazy_relations(entity: Any) -> Optional[LazyRelations]:
    """The LazyRelations attached to an entity, if it was fetched lazily."""
    return get_field(entity, LAZY_ATTRIBUTE)
