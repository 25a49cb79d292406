from .validator import FieldError, Rule, ValidationResult, Validator

__all__ = ["FieldError", "Rule", "ValidationResult", "Validator"]
