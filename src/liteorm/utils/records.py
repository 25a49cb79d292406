"""
liteorm - Record Access Helpers
Entities may be plain dicts or ordinary objects; these helpers read and write
fields on either shape.
"""

from typing import Any, Dict, Iterator, Tuple

MISSING = object()


def get_field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def set_field(record: Any, name: str, value: Any) -> None:
    if isinstance(record, dict):
        record[name] = value
    else:
        setattr(record, name, value)


def get_own_field(record: Any, name: str) -> Any:
    """Value stored on the record itself, ignoring class attributes."""
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, '__dict__', {}).get(name)


def remove_field(record: Any, name: str) -> None:
    if isinstance(record, dict):
        record.pop(name, None)
    elif name in getattr(record, '__dict__', {}):
        delattr(record, name)


def iter_fields(record: Any) -> Iterator[Tuple[str, Any]]:
    """Yield (name, value) for public fields of a dict or object."""
    if isinstance(record, dict):
        items = record.items()
    else:
        items = vars(record).items()
    for name, value in items:
        if not name.startswith('_'):
            yield name, value


def new_instance(entity_class: type, values: Dict[str, Any]) -> Any:
    """
    Build an entity from mapped row values.

    Tries the no-argument constructor first so instance defaults are set, then
    falls back to allocating without __init__ for classes with required
    arguments (dataclasses, for example).
    """
    try:
        instance = entity_class()
    except TypeError:
        instance = entity_class.__new__(entity_class)
    for name, value in values.items():
        setattr(instance, name, value)
    return instance
