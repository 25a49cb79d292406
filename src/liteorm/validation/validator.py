"""
liteorm - Entity Validation
Declarative per-field rules checked before writes.

Rules are registered per entity class and checked by validate(), which
returns a ValidationResult rather than raising. Callers that want failures
to be fatal call result.raise_for_errors().

Usage:
    validator = Validator()
    validator.required(User, 'name')
    validator.length(User, 'name', 2, 50)
    validator.email(User, 'email')

    result = validator.validate(user)
    if not result.valid:
        for error in result.errors:
            print(error.field, error.message)
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Union

from ..errors import ValidationError, get_rule_message
from ..utils.records import get_field

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


@dataclass
class FieldError:
    """One failed rule."""
    field: str
    message: str
    rule: str


@dataclass
class ValidationResult:
    """Outcome of validating one entity."""
    valid: bool
    errors: List[FieldError] = field(default_factory=list)

    def raise_for_errors(self, table: Optional[str] = None) -> None:
        """
        Raises:
            ValidationError: If any rule failed
        """
        if not self.valid:
            raise ValidationError(self.errors, table=table)


@dataclass
class Rule:
    name: str
    params: tuple = ()
    message: Optional[str] = None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Validator:
    """
    Holds validation rules keyed by entity class.

    Type-specific rules (length, pattern, email on strings; range, min_value,
    max_value on numbers) ignore values of other types, so combine them with
    required() to reject missing values.
    """

    def __init__(self):
        self._rules: Dict[type, Dict[str, List[Rule]]] = {}

    def add_rule(self, entity_class: type, property_name: str, rule: Rule) -> 'Validator':
        self._rules.setdefault(entity_class, {}).setdefault(property_name, []).append(rule)
        return self

    def required(self, entity_class: type, property_name: str, message: Optional[str] = None) -> 'Validator':
        return self.add_rule(entity_class, property_name, Rule('required', (), message))

    def length(self, entity_class: type, property_name: str, min_length: int,
               max_length: Optional[int] = None, message: Optional[str] = None) -> 'Validator':
        return self.add_rule(entity_class, property_name, Rule('length', (min_length, max_length), message))

    def value_range(self, entity_class: type, property_name: str, minimum: float, maximum: float,
                    message: Optional[str] = None) -> 'Validator':
        return self.add_rule(entity_class, property_name, Rule('range', (minimum, maximum), message))

    def pattern(self, entity_class: type, property_name: str, regex: Union[str, Pattern],
                message: Optional[str] = None) -> 'Validator':
        compiled = re.compile(regex) if isinstance(regex, str) else regex
        return self.add_rule(entity_class, property_name, Rule('pattern', (compiled,), message))

    def email(self, entity_class: type, property_name: str, message: Optional[str] = None) -> 'Validator':
        return self.add_rule(entity_class, property_name, Rule('email', (), message))

    def min_value(self, entity_class: type, property_name: str, minimum: float,
                  message: Optional[str] = None) -> 'Validator':
        return self.add_rule(entity_class, property_name, Rule('min', (minimum,), message))

    def max_value(self, entity_class: type, property_name: str, maximum: float,
                  message: Optional[str] = None) -> 'Validator':
        return self.add_rule(entity_class, property_name, Rule('max', (maximum,), message))

    def has_rules(self, entity_class: type) -> bool:
        return bool(self._rules.get(entity_class))

    def clear(self, entity_class: Optional[type] = None) -> None:
        if entity_class is None:
            self._rules.clear()
        else:
            self._rules.pop(entity_class, None)

    def validate(self, entity: Any, entity_class: Optional[type] = None) -> ValidationResult:
        """
        Check every rule registered for the entity's class.

        Args:
            entity: Object (or dict, with entity_class given) to check
            entity_class: Class whose rules apply; defaults to type(entity)

        Returns:
            ValidationResult with one FieldError per failed rule
        """
        rules = self._rules.get(entity_class or type(entity), {})
        errors = []
        for property_name, field_rules in rules.items():
            value = get_field(entity, property_name)
            for rule in field_rules:
                error = self._check(property_name, value, rule)
                if error is not None:
                    errors.append(error)
        return ValidationResult(valid=not errors, errors=errors)

    def _check(self, property_name: str, value: Any, rule: Rule) -> Optional[FieldError]:
        failed = False
        params: Dict[str, Any] = {'field': property_name}
        rule_key = rule.name

        if rule.name == 'required':
            failed = value is None or value == ''

        elif rule.name == 'length' and isinstance(value, str):
            min_length, max_length = rule.params
            failed = len(value) < min_length or (max_length is not None and len(value) > max_length)
            params.update(min=min_length, max=max_length)
            if max_length is None:
                rule_key = 'min_length'

        elif rule.name == 'range' and _is_number(value):
            minimum, maximum = rule.params
            failed = value < minimum or value > maximum
            params.update(min=minimum, max=maximum)

        elif rule.name == 'pattern' and isinstance(value, str):
            failed = rule.params[0].search(value) is None

        elif rule.name == 'email' and isinstance(value, str):
            failed = EMAIL_PATTERN.match(value) is None

        elif rule.name == 'min' and _is_number(value):
            failed = value < rule.params[0]
            params.update(value=rule.params[0])

        elif rule.name == 'max' and _is_number(value):
            failed = value > rule.params[0]
            params.update(value=rule.params[0])

        if not failed:
            return None
        message = rule.message or get_rule_message(rule_key, **params)
        return FieldError(field=property_name, message=message, rule=rule.name)
