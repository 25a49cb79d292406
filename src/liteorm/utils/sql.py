"""
liteorm - Statement Text Helpers
Identifier validation and quoting for hand-assembled statements.

Only identifiers resolved from metadata (or passed explicitly by the caller as
table/column names) are ever interpolated; values always travel as '?'
parameters.
"""

import re
from typing import Iterable

from ..errors import ErrorCode, ORMError

_IDENTIFIER = re.compile(r'^(?:[A-Za-z_][A-Za-z0-9_]*\.)?[A-Za-z_][A-Za-z0-9_]*$')


def validate_identifier(name: str) -> str:
    """
    Check that a table or column name is safe to interpolate.

    Accepts 'name' or 'alias.name'.

    Raises:
        ORMError: INVALID_QUERY for anything else
    """
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ORMError(
            ErrorCode.INVALID_QUERY,
            message=f"Invalid identifier: {name!r}",
            field=str(name),
            suggestion="Identifiers may contain letters, digits and underscores only"
        )
    return name


def quote_identifier(name: str) -> str:
    """Validate and double-quote an identifier ('a.b' -> '"a"."b"')."""
    validate_identifier(name)
    return '.'.join(f'"{part}"' for part in name.split('.'))


def quote_list(names: Iterable[str]) -> str:
    return ', '.join(quote_identifier(name) for name in names)


def placeholders(count: int) -> str:
    """'?, ?, ?' for count parameters."""
    return ', '.join('?' for _ in range(count))
