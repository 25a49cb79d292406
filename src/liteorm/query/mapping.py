"""
liteorm - Row Mapping
Turns cursor rows into entity instances (or plain dicts) and entities into
column-keyed value buckets.
"""

from typing import Any, Dict, List, Optional

from ..adapter.base import ResultCursor
from ..metadata.types import EntityMetadata
from ..utils.records import MISSING, get_field, iter_fields, new_instance, set_field
from ..utils.timestamps import get_local_time_string


def read_rows(cursor: ResultCursor) -> List[Dict[str, Any]]:
    """Drain a cursor into column-name keyed dicts and close it."""
    rows = []
    try:
        if cursor.row_count > 0 and cursor.go_to_first_row():
            while not cursor.is_ended:
                rows.append(cursor.get_row())
                cursor.go_to_next_row()
    finally:
        cursor.close()
    return rows


def row_to_entity(row: Dict[str, Any], meta: Optional[EntityMetadata]) -> Any:
    """
    Map one storage row onto an entity.

    Columns known to the metadata are renamed to their property names; any
    other column (aggregates, aliases) keeps its storage name. Without
    metadata the row is returned as a dict.
    """
    if meta is None:
        return dict(row)

    values = {}
    for column_name, value in row.items():
        column = meta.get_column_by_name(column_name)
        values[column.property_name if column else column_name] = value

    if meta.entity_class is None:
        return values
    return new_instance(meta.entity_class, values)


def rows_to_entities(rows: List[Dict[str, Any]], meta: Optional[EntityMetadata]) -> List[Any]:
    return [row_to_entity(row, meta) for row in rows]


def entity_to_values(entity: Any, meta: Optional[EntityMetadata]) -> Dict[str, Any]:
    """
    Column-keyed values for the persisted fields of an entity.

    With metadata only registered columns are read (relation properties and
    other attributes are ignored); property or column names are accepted on
    dict entities. Without metadata every public field is passed through.
    """
    if meta is None:
        return dict(iter_fields(entity))

    values = {}
    for column in meta.columns:
        value = get_field(entity, column.property_name, MISSING)
        if value is MISSING and column.column_name != column.property_name:
            value = get_field(entity, column.column_name, MISSING)
        if value is not MISSING:
            values[column.column_name] = value
    return values


def patch_to_values(data: Dict[str, Any], meta: Optional[EntityMetadata]) -> Dict[str, Any]:
    """Column-keyed values for a partial property->value mapping."""
    if meta is None:
        return dict(data)
    return {meta.column_name_for(name): value for name, value in data.items()}


def prepare_insert_values(entity: Any, meta: Optional[EntityMetadata]) -> Dict[str, Any]:
    """
    Values for inserting an entity.

    Auto-increment primary keys without a value are left to the store, and
    empty auto-create/auto-update timestamp columns are stamped with the local
    time (the stamp is written back onto the entity).
    """
    values = entity_to_values(entity, meta)
    if meta is None:
        return values

    now = None
    for column in meta.columns:
        name = column.column_name
        if column.primary_key and column.auto_increment and values.get(name) is None:
            values.pop(name, None)
        elif (column.auto_create_time or column.auto_update_time) and values.get(name) is None:
            now = now or get_local_time_string()
            values[name] = now
            set_field(entity, column.property_name, now)
        elif column.default is not None and values.get(name) is None:
            values.pop(name, None)
    return values


def prepare_update_values(entity: Any, meta: EntityMetadata) -> Dict[str, Any]:
    """Non-key column values of an entity, with the auto-update column stamped."""
    values = entity_to_values(entity, meta)
    for column in meta.columns:
        if column.primary_key:
            values.pop(column.column_name, None)
        elif column.auto_update_time:
            now = get_local_time_string()
            values[column.column_name] = now
            set_field(entity, column.property_name, now)
    return values
