"""
liteorm - Naming Conventions
Converts between mixedCase property names and snake_case storage names.

Both directions are total over arbitrary strings. The round trip is lossy for
all-uppercase names and names with digit boundaries (camel_to_snake('ID') is
'id', which maps back to 'id', not 'ID').
"""

import re

_ACRONYM_ONLY = re.compile(r'^[A-Z]+$')
_WORD_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')
_ACRONYM_BOUNDARY = re.compile(r'([A-Z]+)([A-Z][a-z])')
_UNDERSCORE_LETTER = re.compile(r'_([a-z])')


def camel_to_snake(name: str) -> str:
    """
    Convert a mixedCase identifier to snake_case.

    Examples:
        >>> camel_to_snake('createdAt')
        'created_at'
        >>> camel_to_snake('userID')
        'user_id'
        >>> camel_to_snake('XMLParser')
        'xml_parser'
    """
    if not name:
        return ''

    if _ACRONYM_ONLY.match(name):
        return name.lower()

    result = _WORD_BOUNDARY.sub(r'_\1', name)
    result = _ACRONYM_BOUNDARY.sub(r'\1_\2', result)
    return result.lower()


def snake_to_camel(name: str) -> str:
    """
    Convert a snake_case identifier to mixedCase.

    Example:
        >>> snake_to_camel('created_at')
        'createdAt'
    """
    if not name:
        return ''
    return _UNDERSCORE_LETTER.sub(lambda m: m.group(1).upper(), name)


def lower_first(name: str) -> str:
    if not name:
        return ''
    return name[0].lower() + name[1:]


def upper_first(name: str) -> str:
    if not name:
        return ''
    return name[0].upper() + name[1:]


def class_to_table(class_name: str) -> str:
    """Default table name for an entity class ('UserProfile' -> 'user_profile')."""
    return camel_to_snake(class_name)


def property_to_column(property_name: str) -> str:
    """Default column name for an entity property ('createdAt' -> 'created_at')."""
    return camel_to_snake(property_name)
