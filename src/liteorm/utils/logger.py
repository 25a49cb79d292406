"""
liteorm - Structured Logging
Provides JSON-formatted logging for statements, migrations and transactions.
"""

import logging
import sys
import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Sequence
from pythonjsonlogger import jsonlogger

from .config import LOG_LEVEL, SQL_LOG_MAX


def setup_logger(name: str = __name__, level: Optional[str] = None) -> logging.Logger:
    """
    Configure structured JSON logger.

    Args:
        name: Logger name (typically __name__ from calling module)
        level: Level name overriding LITEORM_LOG_LEVEL

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger(__name__)
        >>> logger.info("Table created", extra={
        ...     "table": "user",
        ...     "columns": 3
        ... })
    """
    logger = logging.getLogger(name)

    # Prevent duplicate handlers
    if logger.hasHandlers():
        return logger

    level_value = getattr(logging, (level or LOG_LEVEL).upper(), logging.WARNING)
    logger.setLevel(level_value)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)

    # JSON formatter for structured logs
    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%S'
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


def set_log_level(level: str) -> None:
    """Change the level of the package logger at runtime."""
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))


# Global logger instance
logger = setup_logger('liteorm')

# Bounded history of executed statements, newest last
_sql_history: Deque[Dict[str, Any]] = deque(maxlen=SQL_LOG_MAX)


def log_sql(sql: str, params: Optional[Sequence[Any]] = None, duration_ms: Optional[float] = None):
    """Record an executed statement and log it at DEBUG level."""
    entry = {
        "sql": sql,
        "params": list(params) if params else [],
        "duration_ms": duration_ms,
        "timestamp": time.time(),
    }
    _sql_history.append(entry)

    logger.debug("SQL executed", extra={
        "event_type": "sql",
        "sql": sql,
        "params": entry["params"],
        "duration_ms": duration_ms
    })


def get_sql_logs() -> List[Dict[str, Any]]:
    """Return a copy of the recorded statement history."""
    return list(_sql_history)


def clear_sql_logs() -> None:
    """Forget the recorded statement history."""
    _sql_history.clear()


def log_migration(table_name: str, action: str, sql: str, column_name: Optional[str] = None):
    """Log a schema change."""
    logger.info("Schema migrated", extra={
        "event_type": "migration",
        "table": table_name,
        "action": action,
        "column": column_name,
        "sql": sql
    })


def log_transaction(event: str, depth: int):
    """Log transaction boundary events (begin/commit/rollback)."""
    logger.debug("Transaction event", extra={
        "event_type": "transaction",
        "transaction_event": event,
        "depth": depth
    })


def log_database_error(error: Exception, query_context: str = None):
    """Log database error with context."""
    logger.error("Database error", extra={
        "event_type": "database_error",
        "error_type": type(error).__name__,
        "error_message": str(error),
        "query_context": query_context
    }, exc_info=True)
