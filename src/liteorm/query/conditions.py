"""
Query Conditions
================

WHERE clause building blocks for the query builder.

Conditions form a flat list. Each one carries the conjunction (AND/OR) that
joins it to everything before it; there is no parenthesization, so

    where(a=1).or_().where(b=2).where(c=3)

renders as ``a = ? OR b = ? AND c = ?`` and the store applies its normal
precedence (AND binds tighter than OR).

Supported operators and their bound parameter counts:
- eq, ne, gt, gte, lt, lte, like: 1
- in, not_in: one per value (an empty list renders a constant)
- between: 2
- is_null, is_not_null: 0
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Tuple

from ..errors import ErrorCode, ORMError

AND = 'AND'
OR = 'OR'

COMPARISON_SQL = {
    'eq': '=',
    'ne': '!=',
    'gt': '>',
    'gte': '>=',
    'lt': '<',
    'lte': '<=',
    'like': 'LIKE',
}

OPERATOR_ALIASES = {
    '=': 'eq',
    '==': 'eq',
    '!=': 'ne',
    '<>': 'ne',
    '>': 'gt',
    '>=': 'gte',
    '<': 'lt',
    '<=': 'lte',
    'notIn': 'not_in',
    'not in': 'not_in',
    'isNull': 'is_null',
    'isNotNull': 'is_not_null',
}

OPERATORS = frozenset(COMPARISON_SQL) | {'in', 'not_in', 'between', 'is_null', 'is_not_null'}


@dataclass
class Condition:
    """One WHERE clause term."""
    field: str
    operator: str
    value: Any = None
    conjunction: str = AND


def normalize_operator(operator: str) -> str:
    """
    Canonical operator name.

    Raises:
        ORMError: INVALID_QUERY for unknown operators
    """
    name = OPERATOR_ALIASES.get(operator, operator)
    if name not in OPERATORS:
        name = OPERATOR_ALIASES.get(name.lower(), name.lower())
    if name not in OPERATORS:
        raise ORMError(
            ErrorCode.INVALID_QUERY,
            message=f"Unknown operator: {operator!r}",
            suggestion=f"Use one of {sorted(OPERATORS)}"
        )
    return name


def parse_operator_object(field: str, spec: Dict[str, Any]) -> List[Tuple[str, str, Any]]:
    """
    Expand a per-field operator object into (field, operator, value) triples.

    Example:
        >>> parse_operator_object('age', {'gte': 18, 'lt': 65})
        [('age', 'gte', 18), ('age', 'lt', 65)]
        >>> parse_operator_object('deletedAt', {'isNull': False})
        [('deletedAt', 'is_not_null', None)]
    """
    terms = []
    for operator, value in spec.items():
        name = normalize_operator(operator)
        if name == 'is_null':
            terms.append((field, 'is_null' if value else 'is_not_null', None))
        else:
            terms.append((field, name, value))
    return terms


def render_condition(condition: Condition, column_sql: str) -> Tuple[str, List[Any]]:
    """
    Render one condition against an already-quoted column.

    Returns:
        (sql, params)
    """
    operator = condition.operator
    value = condition.value

    if operator in ('eq', 'ne') and value is None:
        return f"{column_sql} {'IS NULL' if operator == 'eq' else 'IS NOT NULL'}", []

    if operator in COMPARISON_SQL:
        return f"{column_sql} {COMPARISON_SQL[operator]} ?", [value]

    if operator == 'is_null':
        return f"{column_sql} IS NULL", []

    if operator == 'is_not_null':
        return f"{column_sql} IS NOT NULL", []

    if operator in ('in', 'not_in'):
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set, frozenset)):
            raise ORMError(
                ErrorCode.INVALID_QUERY,
                message=f"Operator '{operator}' expects a list of values",
                field=condition.field
            )
        values = list(value)
        if not values:
            # IN () never matches, NOT IN () always does
            return ('0 = 1' if operator == 'in' else '1 = 1'), []
        keyword = 'IN' if operator == 'in' else 'NOT IN'
        return f"{column_sql} {keyword} ({', '.join('?' for _ in values)})", values

    if operator == 'between':
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ORMError(
                ErrorCode.INVALID_QUERY,
                message="Operator 'between' expects exactly two values",
                field=condition.field
            )
        return f"{column_sql} BETWEEN ? AND ?", [value[0], value[1]]

    raise ORMError(ErrorCode.INVALID_QUERY, message=f"Unknown operator: {operator!r}")


def render_conditions(conditions: Sequence[Condition],
                      column_sql: Callable[[str], str]) -> Tuple[str, List[Any]]:
    """
    Render a flat condition list, left to right.

    Args:
        conditions: Conditions in the order they were added
        column_sql: Maps a field name to its quoted column reference

    Returns:
        (sql without the WHERE keyword, params)
    """
    parts: List[str] = []
    params: List[Any] = []
    for condition in conditions:
        sql, values = render_condition(condition, column_sql(condition.field))
        if parts:
            parts.append(f"{condition.conjunction} {sql}")
        else:
            parts.append(sql)
        params.extend(values)
    return ' '.join(parts), params
