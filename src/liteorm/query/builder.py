"""
liteorm - Query Builder
Fluent, single-table query and mutation construction.

A builder accumulates configuration through chained calls and renders it to a
parameterized statement when a terminal method (find, first, count, update,
...) runs. Builders are cheap, stateful and not meant to be shared between
threads; create one per query with ORM.query(...) or ORM.table(...).

Clause order is fixed: soft-delete filter, user conditions (flat AND/OR list,
left to right), GROUP BY, ORDER BY, LIMIT, OFFSET.

Example:
    adults = (
        orm.query(User)
        .where({'age': {'gte': 18}})
        .order_by('name')
        .limit(10)
        .find()
    )
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..adapter.base import DatabaseAdapter
from ..errors import ConfigurationError, ErrorCode, ORMError, statement_errors
from ..metadata.registry import MetadataRegistry
from ..metadata.types import ColumnMetadata, EntityMetadata
from ..relation.lazy import attach_lazy
from ..relation.loader import RelationLoader
from ..utils.cache import QueryCache, generate_cache_key
from ..utils.records import get_field, set_field
from ..utils.sql import quote_identifier, validate_identifier
from ..utils.timestamps import get_local_time_string
from .conditions import AND, OR, Condition, normalize_operator, parse_operator_object, render_conditions
from .mapping import patch_to_values, prepare_insert_values, read_rows, rows_to_entities

# Soft-delete visibility modes
EXCLUDE_TRASHED = 'exclude'
WITH_TRASHED = 'include'
ONLY_TRASHED = 'only'


class QueryBuilder:
    """
    Builds and runs statements against one table.

    Attributes:
        adapter: Storage adapter statements run on
        registry: Metadata registry used to resolve entities and relations
        cache: Optional result cache for plain find() calls
    """

    def __init__(self, adapter: DatabaseAdapter, registry: MetadataRegistry,
                 cache: Optional[QueryCache] = None):
        self.adapter = adapter
        self.registry = registry
        self.cache = cache
        self._meta: Optional[EntityMetadata] = None
        self._table: Optional[str] = None
        self.reset()

    # =========================================================================
    # TARGET
    # =========================================================================

    def from_entity(self, entity_class: type) -> 'QueryBuilder':
        """Query a registered entity; results are instances of the class."""
        self._meta = self.registry.get(entity_class)
        self._table = self._meta.table_name
        return self

    def table(self, name: str) -> 'QueryBuilder':
        """Query a table by name; results are column-keyed dicts."""
        self._table = validate_identifier(name)
        self._meta = None
        return self

    @property
    def table_name(self) -> Optional[str]:
        return self._table

    @property
    def metadata(self) -> Optional[EntityMetadata]:
        return self._meta

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def select(self, *fields: str) -> 'QueryBuilder':
        for field in fields:
            validate_identifier(field)
        self._select.extend(fields)
        return self

    def where(self, field_or_conditions: Any, *args: Any) -> 'QueryBuilder':
        """
        Add conditions.

        Accepted forms:
            where({'name': 'Ann'})                      equality
            where({'age': {'gte': 18, 'lt': 65}})       operator object
            where('name', 'Ann')                        equality
            where('age', '>=', 18)                      explicit operator

        A list value with implicit equality becomes IN, None becomes IS NULL.

        Raises:
            ORMError: INVALID_QUERY for malformed arguments or operators
        """
        if isinstance(field_or_conditions, dict):
            if args:
                raise ORMError(ErrorCode.INVALID_QUERY, message="where(dict) takes no further arguments")
            for field, value in field_or_conditions.items():
                if isinstance(value, dict):
                    for term_field, operator, operand in parse_operator_object(field, value):
                        self._add_condition(term_field, operator, operand)
                else:
                    self._add_equality(field, value)
        elif len(args) == 1:
            self._add_equality(field_or_conditions, args[0])
        elif len(args) == 2:
            self._add_condition(field_or_conditions, normalize_operator(args[0]), args[1])
        else:
            raise ORMError(
                ErrorCode.INVALID_QUERY,
                message="where() expects a condition dict, (field, value) or (field, operator, value)"
            )
        return self

    def where_not(self, field: str, value: Any) -> 'QueryBuilder':
        self._add_condition(field, 'ne', value)
        return self

    def where_in(self, field: str, values: Sequence[Any]) -> 'QueryBuilder':
        self._add_condition(field, 'in', list(values))
        return self

    def where_not_in(self, field: str, values: Sequence[Any]) -> 'QueryBuilder':
        self._add_condition(field, 'not_in', list(values))
        return self

    def where_null(self, field: str) -> 'QueryBuilder':
        self._add_condition(field, 'is_null')
        return self

    def where_not_null(self, field: str) -> 'QueryBuilder':
        self._add_condition(field, 'is_not_null')
        return self

    def where_between(self, field: str, low: Any, high: Any) -> 'QueryBuilder':
        self._add_condition(field, 'between', (low, high))
        return self

    def where_like(self, field: str, pattern: str) -> 'QueryBuilder':
        self._add_condition(field, 'like', pattern)
        return self

    def where_gt(self, field: str, value: Any) -> 'QueryBuilder':
        self._add_condition(field, 'gt', value)
        return self

    def where_gte(self, field: str, value: Any) -> 'QueryBuilder':
        self._add_condition(field, 'gte', value)
        return self

    def where_lt(self, field: str, value: Any) -> 'QueryBuilder':
        self._add_condition(field, 'lt', value)
        return self

    def where_lte(self, field: str, value: Any) -> 'QueryBuilder':
        self._add_condition(field, 'lte', value)
        return self

    def or_(self) -> 'QueryBuilder':
        """Join the next condition with OR (later ones go back to AND)."""
        self._next_conjunction = OR
        return self

    def and_(self) -> 'QueryBuilder':
        self._next_conjunction = AND
        return self

    def order_by(self, field: str, direction: str = 'ASC') -> 'QueryBuilder':
        direction = direction.upper()
        if direction not in ('ASC', 'DESC'):
            raise ORMError(ErrorCode.INVALID_QUERY, message=f"Invalid order direction: {direction!r}")
        validate_identifier(field)
        self._order.append((field, direction))
        return self

    def limit(self, count: int) -> 'QueryBuilder':
        self._limit = self._non_negative(count, 'limit')
        return self

    def offset(self, count: int) -> 'QueryBuilder':
        self._offset = self._non_negative(count, 'offset')
        return self

    def group_by(self, *fields: str) -> 'QueryBuilder':
        for field in fields:
            validate_identifier(field)
        self._group.extend(fields)
        return self

    def preload(self, *paths: str) -> 'QueryBuilder':
        """Eagerly load relations ('orders', 'orders.items') on find()."""
        self._preloads.extend(paths)
        return self

    with_ = preload

    def lazy(self, enabled: bool = True) -> 'QueryBuilder':
        """Attach lazily resolving relations to fetched entities."""
        self._lazy = enabled
        return self

    def with_trashed(self) -> 'QueryBuilder':
        self._visibility = WITH_TRASHED
        return self

    def only_trashed(self) -> 'QueryBuilder':
        self._visibility = ONLY_TRASHED
        return self

    def reset(self) -> 'QueryBuilder':
        """Clear accumulated configuration, keeping the target table."""
        self._select: List[str] = []
        self._conditions: List[Condition] = []
        self._order: List[Tuple[str, str]] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._group: List[str] = []
        self._preloads: List[str] = []
        self._lazy = False
        self._visibility = EXCLUDE_TRASHED
        self._next_conjunction = AND
        return self

    # =========================================================================
    # READS
    # =========================================================================

    def find(self) -> List[Any]:
        """
        Run the query.

        Returns:
            Entities (or dicts for table queries) with requested relations attached

        Raises:
            ConfigurationError: If no table is set
            QueryError: If the statement fails
        """
        self._require_table()
        sql, params = self.to_sql()
        results = rows_to_entities(self._fetch_rows(sql, params), self._meta)

        if self._meta is not None and results:
            if self._preloads:
                self._loader().preload(results, self._preloads, self._meta)
            if self._lazy:
                loader = self._loader()
                for entity in results:
                    attach_lazy(entity, self._meta, loader)
        return results

    def first(self) -> Optional[Any]:
        previous = self._limit
        self._limit = 1
        try:
            results = self.find()
        finally:
            self._limit = previous
        return results[0] if results else None

    def last(self) -> Optional[Any]:
        results = self.find()
        return results[-1] if results else None

    def count(self) -> int:
        self._require_table()
        sql = f"SELECT COUNT(*) AS count FROM {quote_identifier(self._table)}"
        where, params = self._where_clause()
        if where:
            sql += f" WHERE {where}"
        rows = self._fetch_rows(sql, params)
        return int(rows[0]['count']) if rows else 0

    def exists(self) -> bool:
        return self.count() > 0

    def to_sql(self) -> Tuple[str, List[Any]]:
        """Render the SELECT statement and its positional parameters."""
        self._require_table()
        columns = ', '.join(self._column_sql(f) for f in self._select) if self._select else '*'
        sql = f"SELECT {columns} FROM {quote_identifier(self._table)}"

        where, params = self._where_clause()
        if where:
            sql += f" WHERE {where}"
        if self._group:
            sql += f" GROUP BY {', '.join(self._column_sql(f) for f in self._group)}"
        if self._order:
            sql += f" ORDER BY {', '.join(f'{self._column_sql(f)} {d}' for f, d in self._order)}"
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        if self._offset is not None:
            if self._limit is None:
                sql += " LIMIT -1"
            sql += f" OFFSET {self._offset}"
        return sql, params

    # =========================================================================
    # WRITES
    # =========================================================================

    def insert(self, data: Any) -> int:
        """
        Insert one entity (or a list, see insert_many).

        Returns:
            Generated row id (inserted count for lists)
        """
        self._require_table()
        if isinstance(data, (list, tuple)):
            return self.insert_many(data)

        values = prepare_insert_values(data, self._meta)
        with statement_errors(f"INSERT INTO {self._table}", list(values.values()), self._table):
            row_id = self.adapter.insert(self._table, values)

        pk = self._meta.primary_key if self._meta else None
        if pk is not None and pk.auto_increment and get_field(data, pk.property_name) is None:
            set_field(data, pk.property_name, row_id)
        self._invalidate()
        return row_id

    def insert_many(self, items: Sequence[Any]) -> int:
        """Insert several entities in one adapter call; returns the inserted count."""
        self._require_table()
        rows = [prepare_insert_values(item, self._meta) for item in items]
        if not rows:
            return 0
        with statement_errors(f"INSERT INTO {self._table}", [], self._table):
            inserted = self.adapter.batch_insert(self._table, rows)
        self._invalidate()
        return inserted

    def update(self, values: Dict[str, Any]) -> int:
        """
        Update every matching row.

        Args:
            values: Property (or column) name -> new value

        Returns:
            Affected row count
        """
        self._require_table()
        bucket = patch_to_values(values, self._meta)
        update_column = self._meta.update_time_column if self._meta else None
        if update_column is not None:
            bucket[update_column.column_name] = get_local_time_string()
        return self._update_rows(bucket, self._where_clause())

    def delete(self) -> int:
        """Physically delete matching rows visible under the current soft-delete mode."""
        self._require_table()
        return self._delete_rows(self._where_clause())

    def soft_delete(self) -> int:
        """
        Stamp the soft-delete column of matching live rows.

        Raises:
            ConfigurationError: If the entity has no soft-delete column
        """
        self._require_table()
        column = self._require_soft_delete()
        return self._update_rows({column.column_name: get_local_time_string()}, self._where_clause())

    def restore(self) -> int:
        """
        Clear the soft-delete column of matching deleted rows.

        Raises:
            ConfigurationError: If the entity has no soft-delete column
        """
        self._require_table()
        column = self._require_soft_delete()
        return self._update_rows({column.column_name: None}, self._where_clause(ONLY_TRASHED))

    def force_delete(self) -> int:
        """Physically delete matching rows whether soft deleted or not."""
        self._require_table()
        return self._delete_rows(self._where_clause(WITH_TRASHED))

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _require_table(self) -> None:
        if not self._table:
            raise ConfigurationError(ErrorCode.TABLE_NOT_SET)

    def _require_soft_delete(self) -> ColumnMetadata:
        column = self._meta.soft_delete_column if self._meta else None
        if column is None:
            raise ConfigurationError(
                ErrorCode.SOFT_DELETE_NOT_CONFIGURED,
                table=self._table,
                suggestion="Register a soft_delete() column for the entity"
            )
        return column

    @staticmethod
    def _non_negative(value: int, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ORMError(ErrorCode.INVALID_QUERY, message=f"{name} must be a non-negative integer")
        return value

    def _add_equality(self, field: str, value: Any) -> None:
        if isinstance(value, (list, tuple, set, frozenset)):
            self._add_condition(field, 'in', list(value))
        else:
            self._add_condition(field, 'eq', value)

    def _add_condition(self, field: str, operator: str, value: Any = None) -> None:
        validate_identifier(field)
        self._conditions.append(Condition(field, operator, value, self._next_conjunction))
        self._next_conjunction = AND

    def _column_sql(self, field: str) -> str:
        return quote_identifier(self._meta.column_name_for(field) if self._meta else field)

    def _where_clause(self, visibility: Optional[str] = None) -> Tuple[str, List[Any]]:
        """WHERE body (without the keyword) and params, soft-delete filter first."""
        visibility = visibility or self._visibility
        conditions = []
        soft_column = self._meta.soft_delete_column if self._meta else None
        if soft_column is not None and visibility != WITH_TRASHED:
            operator = 'is_null' if visibility == EXCLUDE_TRASHED else 'is_not_null'
            conditions.append(Condition(soft_column.property_name, operator))
        conditions.extend(self._conditions)
        return render_conditions(conditions, self._column_sql)

    def _fetch_rows(self, sql: str, params: List[Any]) -> List[Dict[str, Any]]:
        def run_query():
            with statement_errors(sql, params, self._table):
                return read_rows(self.adapter.query(sql, params))

        if self.cache is None or not self.cache.enabled or self._preloads or self._lazy:
            return run_query()

        key = generate_cache_key(self._table, sql, params)
        rows = self.cache.get_or_compute(key, run_query)
        return [dict(row) for row in rows]

    def _update_rows(self, values: Dict[str, Any], where: Tuple[str, List[Any]]) -> int:
        where_sql, where_params = where
        with statement_errors(f"UPDATE {self._table}", list(values.values()) + where_params, self._table):
            affected = self.adapter.update(self._table, values, where_sql, where_params)
        self._invalidate()
        return affected

    def _delete_rows(self, where: Tuple[str, List[Any]]) -> int:
        where_sql, where_params = where
        with statement_errors(f"DELETE FROM {self._table}", where_params, self._table):
            affected = self.adapter.delete(self._table, where_sql, where_params)
        self._invalidate()
        return affected

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.invalidate_by_table(self._table)

    def _loader(self) -> RelationLoader:
        return RelationLoader(self.adapter, self.registry)
