"""
liteorm - Metadata Types
Describes the persisted shape of an entity: its table, columns and relations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, FrozenSet, Iterable, List, Optional, Union

from ..utils.naming import property_to_column


class ColumnType(str, Enum):
    """Storage classes understood by the embedded store."""
    INTEGER = 'INTEGER'
    REAL = 'REAL'
    TEXT = 'TEXT'
    BLOB = 'BLOB'


class CascadeType(str, Enum):
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'
    ALL = 'all'


@dataclass
class ColumnMetadata:
    """
    One persisted field.

    Attributes:
        property_name: Attribute name on the entity
        column_name: Storage name (defaults to snake_case of the property)
        type: Storage class
        primary_key: Part of the primary key
        auto_increment: Generated by the store on insert
        not_null: Rejects NULL
        auto_create_time: Stamped with the local time on insert
        auto_update_time: Stamped with the local time on insert and update
        soft_delete: Deletion marker; NULL means the row is live
        default: Default value used in DDL
    """
    property_name: str
    column_name: str = ''
    type: ColumnType = ColumnType.TEXT
    primary_key: bool = False
    auto_increment: bool = False
    not_null: bool = False
    auto_create_time: bool = False
    auto_update_time: bool = False
    soft_delete: bool = False
    default: Any = None

    def __post_init__(self):
        if not self.column_name:
            self.column_name = property_to_column(self.property_name)
        self.type = ColumnType(self.type)


class TargetRef:
    """
    Reference to a relation's target entity class.

    Holds either the class itself or a zero-argument resolver returning it, so
    two entities can refer to each other before both are defined. The resolved
    class is memoized.
    """

    def __init__(self, target: Union[type, Callable[[], type]]):
        self._target = target
        self._resolved: Optional[type] = target if isinstance(target, type) else None

    def resolve(self) -> type:
        if self._resolved is None:
            resolved = self._target()
            if not isinstance(resolved, type):
                raise TypeError(f"Relation target resolver returned {resolved!r}, expected a class")
            self._resolved = resolved
        return self._resolved

    @property
    def is_resolved(self) -> bool:
        return self._resolved is not None

    def __repr__(self):
        if self._resolved is not None:
            return f"TargetRef({self._resolved.__name__})"
        return "TargetRef(<deferred>)"


def _normalize_cascade(cascade: Any) -> FrozenSet[CascadeType]:
    if cascade is None:
        return frozenset()
    if isinstance(cascade, (str, CascadeType)):
        cascade = [cascade]
    return frozenset(CascadeType(c) for c in cascade)


@dataclass
class Relation:
    """
    Association from the owning entity to a target entity.

    Attributes:
        property_name: Attribute on the owner holding the related data
        target: Target class or a resolver returning it
        foreign_key: Foreign key name; inferred when omitted
        local_key: Key on the owning side of the join; the primary key when omitted
        cascade: Cascade kinds ('create', 'update', 'delete', 'all')
        lazy: Resolve on first access rather than eagerly
    """
    property_name: str
    target: Any
    foreign_key: Optional[str] = None
    local_key: Optional[str] = None
    cascade: Iterable[Any] = field(default_factory=frozenset)
    lazy: bool = True

    kind = 'relation'
    is_many = False

    def __post_init__(self):
        if not isinstance(self.target, TargetRef):
            self.target = TargetRef(self.target)
        self.cascade = _normalize_cascade(self.cascade)

    @property
    def target_class(self) -> type:
        return self.target.resolve()

    def cascades(self, cascade_type: CascadeType) -> bool:
        """Whether this relation propagates the given kind of write."""
        return CascadeType.ALL in self.cascade or CascadeType(cascade_type) in self.cascade


@dataclass
class HasOne(Relation):
    """Target row carries a foreign key pointing at the owner; at most one."""
    kind = 'has_one'


@dataclass
class HasMany(Relation):
    """Target rows carry a foreign key pointing at the owner."""
    kind = 'has_many'
    is_many = True


@dataclass
class BelongsTo(Relation):
    """Owner carries a foreign key pointing at the target."""
    kind = 'belongs_to'


@dataclass
class ManyToMany(Relation):
    """
    Pairwise association recorded in a join table.

    Attributes:
        through: Join table name
        through_foreign_key: Join column referencing the owner
        through_other_key: Join column referencing the target
    """
    through: str = ''
    through_foreign_key: Optional[str] = None
    through_other_key: Optional[str] = None

    kind = 'many_to_many'
    is_many = True


@dataclass
class EntityMetadata:
    """Everything the engine knows about one entity type."""
    entity_class: Optional[type]
    table_name: str
    columns: List[ColumnMetadata] = field(default_factory=list)
    relations: List[Relation] = field(default_factory=list)
    primary_keys: List[str] = field(default_factory=list)

    @property
    def class_name(self) -> str:
        return self.entity_class.__name__ if self.entity_class else self.table_name

    @property
    def primary_key(self) -> Optional[ColumnMetadata]:
        """The single-column primary key, or the first column of a composite one."""
        if not self.primary_keys:
            return None
        return self.get_column(self.primary_keys[0])

    def get_column(self, property_name: str) -> Optional[ColumnMetadata]:
        for column in self.columns:
            if column.property_name == property_name:
                return column
        return None

    def get_column_by_name(self, column_name: str) -> Optional[ColumnMetadata]:
        for column in self.columns:
            if column.column_name == column_name:
                return column
        return None

    def resolve_column(self, name: str) -> Optional[ColumnMetadata]:
        """Find a column by property name first, then by storage name."""
        return self.get_column(name) or self.get_column_by_name(name)

    def column_name_for(self, name: str) -> str:
        """Storage name for a property or column name; unknown names pass through."""
        column = self.resolve_column(name)
        return column.column_name if column else name

    def get_relation(self, property_name: str) -> Optional[Relation]:
        for relation in self.relations:
            if relation.property_name == property_name:
                return relation
        return None

    @property
    def soft_delete_column(self) -> Optional[ColumnMetadata]:
        return next((c for c in self.columns if c.soft_delete), None)

    @property
    def create_time_column(self) -> Optional[ColumnMetadata]:
        return next((c for c in self.columns if c.auto_create_time), None)

    @property
    def update_time_column(self) -> Optional[ColumnMetadata]:
        return next((c for c in self.columns if c.auto_update_time), None)
