"""
liteorm - Error Types
Locale-aware error hierarchy shared by every component.

Message text is looked up from a fixed code -> message table keyed by the
current locale ('en' is the canonical fallback).
"""

from contextlib import contextmanager
from enum import IntEnum
from typing import Any, Dict, Generator, List, Optional, Sequence

from .utils.config import ERROR_LOCALE
from .utils.logger import log_database_error

SUPPORTED_LOCALES = ('en', 'zh')
DEFAULT_LOCALE = 'en'

_current_locale = ERROR_LOCALE if ERROR_LOCALE in SUPPORTED_LOCALES else DEFAULT_LOCALE


def set_error_locale(locale: str) -> None:
    """
    Select the language used for error and validation messages.

    Unknown locales fall back to the canonical locale.
    """
    global _current_locale
    _current_locale = locale if locale in SUPPORTED_LOCALES else DEFAULT_LOCALE


def get_error_locale() -> str:
    return _current_locale


class ErrorCode(IntEnum):
    # Initialization 1xxx
    INIT_FAILED = 1001
    ADAPTER_NOT_SET = 1002
    DATABASE_NOT_FOUND = 1003

    # Query 2xxx
    TABLE_NOT_SET = 2001
    INVALID_QUERY = 2002
    QUERY_FAILED = 2003

    # Data 3xxx
    TYPE_MISMATCH = 3001
    REQUIRED_FIELD_MISSING = 3002
    PRIMARY_KEY_MISSING = 3003
    VALIDATION_FAILED = 3004

    # Migration 4xxx
    MIGRATION_FAILED = 4001
    TABLE_NOT_EXISTS = 4002
    COLUMN_NOT_EXISTS = 4003

    # Relation 5xxx
    RELATION_NOT_FOUND = 5001
    FOREIGN_KEY_MISSING = 5002
    CASCADE_FAILED = 5003

    # Transaction 6xxx
    TRANSACTION_FAILED = 6001
    ROLLBACK_FAILED = 6002

    # Soft delete 7xxx
    SOFT_DELETE_NOT_CONFIGURED = 7001


ERROR_MESSAGES: Dict[ErrorCode, Dict[str, str]] = {
    ErrorCode.INIT_FAILED: {'en': 'ORM initialization failed', 'zh': 'ORM 初始化失败'},
    ErrorCode.ADAPTER_NOT_SET: {'en': 'Database adapter not set', 'zh': '未设置数据库适配器'},
    ErrorCode.DATABASE_NOT_FOUND: {'en': 'Database connection not established', 'zh': '数据库连接未建立'},
    ErrorCode.TABLE_NOT_SET: {'en': 'Table not set, call from_entity() or table() first', 'zh': '未设置数据表，请先调用 from_entity() 或 table()'},
    ErrorCode.INVALID_QUERY: {'en': 'Invalid query condition', 'zh': '无效的查询条件'},
    ErrorCode.QUERY_FAILED: {'en': 'Query execution failed', 'zh': '查询执行失败'},
    ErrorCode.TYPE_MISMATCH: {'en': 'Field type mismatch', 'zh': '字段类型不匹配'},
    ErrorCode.REQUIRED_FIELD_MISSING: {'en': 'Required field missing', 'zh': '必填字段缺失'},
    ErrorCode.PRIMARY_KEY_MISSING: {'en': 'Primary key value missing', 'zh': '主键值缺失'},
    ErrorCode.VALIDATION_FAILED: {'en': 'Data validation failed', 'zh': '数据验证失败'},
    ErrorCode.MIGRATION_FAILED: {'en': 'Database migration failed', 'zh': '数据库迁移失败'},
    ErrorCode.TABLE_NOT_EXISTS: {'en': 'Table does not exist', 'zh': '数据表不存在'},
    ErrorCode.COLUMN_NOT_EXISTS: {'en': 'Column does not exist', 'zh': '字段不存在'},
    ErrorCode.RELATION_NOT_FOUND: {'en': 'Relation not found', 'zh': '关联关系未找到'},
    ErrorCode.FOREIGN_KEY_MISSING: {'en': 'Foreign key value missing', 'zh': '外键值缺失'},
    ErrorCode.CASCADE_FAILED: {'en': 'Cascade operation failed', 'zh': '级联操作失败'},
    ErrorCode.TRANSACTION_FAILED: {'en': 'Transaction failed', 'zh': '事务执行失败'},
    ErrorCode.ROLLBACK_FAILED: {'en': 'Transaction rollback failed', 'zh': '事务回滚失败'},
    ErrorCode.SOFT_DELETE_NOT_CONFIGURED: {'en': 'Soft delete not configured', 'zh': '软删除未配置'},
}

# Default messages for validation rules, formatted with field/min/max/value
RULE_MESSAGES: Dict[str, Dict[str, str]] = {
    'required': {'en': '{field} is required', 'zh': '{field} 不能为空'},
    'length': {'en': '{field} length must be between {min} and {max}', 'zh': '{field} 长度应在 {min}-{max} 之间'},
    'min_length': {'en': '{field} length must be at least {min}', 'zh': '{field} 长度至少 {min}'},
    'range': {'en': '{field} must be between {min} and {max}', 'zh': '{field} 应在 {min}-{max} 之间'},
    'pattern': {'en': '{field} has an invalid format', 'zh': '{field} 格式不正确'},
    'email': {'en': '{field} is not a valid email address', 'zh': '{field} 邮箱格式不正确'},
    'min': {'en': '{field} must not be less than {value}', 'zh': '{field} 不能小于 {value}'},
    'max': {'en': '{field} must not be greater than {value}', 'zh': '{field} 不能大于 {value}'},
}

_LABELS = {
    'en': {'error': 'Error', 'table': 'Table', 'field': 'Field', 'suggestion': 'Suggestion', 'cause': 'Cause'},
    'zh': {'error': '错误', 'table': '表', 'field': '字段', 'suggestion': '建议', 'cause': '原因'},
}


def get_message(code: ErrorCode) -> str:
    """Message for an error code in the current locale."""
    messages = ERROR_MESSAGES.get(code)
    if not messages:
        return 'Unknown error'
    return messages.get(_current_locale) or messages[DEFAULT_LOCALE]


def get_rule_message(rule: str, **params: Any) -> str:
    """Default validation message for a rule in the current locale."""
    messages = RULE_MESSAGES[rule]
    template = messages.get(_current_locale) or messages[DEFAULT_LOCALE]
    return template.format(**params)


class ORMError(Exception):
    """
    Base error for every liteorm failure.

    Attributes:
        code: ErrorCode identifying the failure kind
        table: Table involved, if any
        field: Field involved, if any
        suggestion: Hint for fixing the problem
        cause: Underlying exception, if any
    """

    def __init__(self, code: ErrorCode, message: Optional[str] = None, table: Optional[str] = None,
                 field: Optional[str] = None, suggestion: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        self.code = code
        self.table = table
        self.field = field
        self.suggestion = suggestion
        self.cause = cause
        self.message = message or get_message(code)
        super().__init__(self.message)

    def format(self) -> str:
        """Multi-line, human readable description in the current locale."""
        labels = _LABELS.get(_current_locale, _LABELS[DEFAULT_LOCALE])
        parts = [f"{labels['error']}: {self.message}"]
        if self.table:
            parts.append(f"{labels['table']}: {self.table}")
        if self.field:
            parts.append(f"{labels['field']}: {self.field}")
        if self.suggestion:
            parts.append(f"{labels['suggestion']}: {self.suggestion}")
        if self.cause:
            parts.append(f"{labels['cause']}: {self.cause}")
        return '\n'.join(parts)


class ConfigurationError(ORMError):
    """Raised when the ORM is used without the configuration an operation needs."""
    pass


class ValidationError(ORMError):
    """Raised when a caller asks for a failed validation result to be fatal."""

    def __init__(self, errors: List[Any], table: Optional[str] = None):
        self.errors = list(errors)
        detail = '; '.join(getattr(e, 'message', str(e)) for e in self.errors)
        super().__init__(
            ErrorCode.VALIDATION_FAILED,
            message=f"{get_message(ErrorCode.VALIDATION_FAILED)}: {detail}",
            table=table,
        )


class QueryError(ORMError):
    """Raised when the adapter fails to execute a statement."""

    def __init__(self, sql: Optional[str] = None, params: Optional[Sequence[Any]] = None,
                 message: Optional[str] = None, table: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        self.sql = sql
        self.params = list(params) if params is not None else []
        if message is None and cause is not None:
            message = f"{get_message(ErrorCode.QUERY_FAILED)}: {cause}"
        super().__init__(ErrorCode.QUERY_FAILED, message=message, table=table, cause=cause)


class MigrationError(ORMError):
    """Raised when schema synchronization fails."""

    def __init__(self, message: Optional[str] = None, table: Optional[str] = None,
                 cause: Optional[BaseException] = None, sql: Optional[str] = None):
        self.sql = sql
        if message is None and cause is not None:
            message = f"{get_message(ErrorCode.MIGRATION_FAILED)}: {cause}"
        super().__init__(ErrorCode.MIGRATION_FAILED, message=message, table=table, cause=cause)


@contextmanager
def statement_errors(sql: str, params: Optional[Sequence[Any]] = None,
                     table: Optional[str] = None) -> Generator[None, None, None]:
    """
    Wrap adapter failures raised inside the block in a QueryError.

    The attempted statement and its parameters are attached for diagnosis.
    ORMError subclasses pass through untouched.

    Example:
        >>> with statement_errors(sql, params, table="user"):
        ...     cursor = adapter.query(sql, params)
    """
    try:
        yield
    except ORMError:
        raise
    except Exception as e:
        log_database_error(e, sql)
        raise QueryError(sql=sql, params=params, table=table, cause=e) from e
