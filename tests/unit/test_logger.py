"""
liteorm - Logger Unit Tests

Tests structured JSON logging functionality:
- Logger setup and configuration
- SQL statement logging and bounded history
- Migration and transaction logging
- Database error logging
"""

import logging

from liteorm.utils.config import SQL_LOG_MAX
from liteorm.utils.logger import (
    clear_sql_logs,
    get_sql_logs,
    log_database_error,
    log_migration,
    log_sql,
    log_transaction,
    logger,
    set_log_level,
    setup_logger,
)


def _records(caplog, message):
    return [r for r in caplog.records if r.getMessage() == message]


class TestSetupLogger:
    """Test logger setup and configuration."""

    def test_setup_logger_returns_logger_instance(self):
        """setup_logger() should return a logging.Logger instance."""
        test_logger = setup_logger("liteorm_test_logger")

        assert isinstance(test_logger, logging.Logger)
        assert test_logger.name == "liteorm_test_logger"

    def test_setup_logger_prevents_duplicate_handlers(self):
        """setup_logger() should not add duplicate handlers."""
        test_logger = setup_logger("liteorm_test_duplicate")
        handler_count_1 = len(test_logger.handlers)

        test_logger = setup_logger("liteorm_test_duplicate")
        handler_count_2 = len(test_logger.handlers)

        assert handler_count_1 == handler_count_2

    def test_global_logger_exists(self):
        """Global logger instance should be initialized."""
        assert logger is not None
        assert isinstance(logger, logging.Logger)
        assert logger.name == "liteorm"

    def test_set_log_level(self):
        """set_log_level() should change the package logger level by name."""
        set_log_level('debug')
        assert logger.level == logging.DEBUG

        set_log_level('ERROR')
        assert logger.level == logging.ERROR

    def test_set_log_level_unknown_name(self):
        """An unknown level name should fall back to WARNING."""
        set_log_level('chatty')

        assert logger.level == logging.WARNING


class TestSqlLogging:
    """Test statement logging and history."""

    def test_log_sql_records_history(self):
        """log_sql() should append the statement to the history."""
        clear_sql_logs()
        log_sql('SELECT * FROM "user" WHERE "id" = ?', [1], 0.42)

        history = get_sql_logs()
        assert len(history) == 1
        assert history[0]['sql'] == 'SELECT * FROM "user" WHERE "id" = ?'
        assert history[0]['params'] == [1]
        assert history[0]['duration_ms'] == 0.42

    def test_history_is_bounded(self):
        """The history should keep only the newest statements."""
        clear_sql_logs()
        for i in range(SQL_LOG_MAX + 5):
            log_sql(f'SELECT {i}')

        history = get_sql_logs()
        assert len(history) == SQL_LOG_MAX
        assert history[0]['sql'] == 'SELECT 5'
        assert history[-1]['sql'] == f'SELECT {SQL_LOG_MAX + 4}'

    def test_clear_sql_logs(self):
        """clear_sql_logs() should empty the history."""
        log_sql('SELECT 1')
        clear_sql_logs()

        assert get_sql_logs() == []

    def test_log_sql_emits_debug_record(self, liteorm_logs):
        """log_sql() should log the statement at DEBUG level."""
        log_sql('SELECT 1', None, 1.0)

        records = _records(liteorm_logs, "SQL executed")
        assert records
        assert records[-1].levelname == "DEBUG"
        assert records[-1].sql == 'SELECT 1'
        assert records[-1].event_type == 'sql'


class TestEventLogging:
    """Test migration, transaction and error logging."""

    def test_log_migration(self, liteorm_logs):
        """log_migration() should log an INFO record with the table and action."""
        log_migration('user', 'add_column', 'ALTER TABLE "user" ADD COLUMN "age" INTEGER', 'age')

        records = _records(liteorm_logs, "Schema migrated")
        assert records
        assert records[-1].levelname == "INFO"
        assert records[-1].table == 'user'
        assert records[-1].action == 'add_column'
        assert records[-1].column == 'age'

    def test_log_transaction(self, liteorm_logs):
        """log_transaction() should log the event and depth."""
        log_transaction('begin', 2)

        records = _records(liteorm_logs, "Transaction event")
        assert records
        assert records[-1].transaction_event == 'begin'
        assert records[-1].depth == 2

    def test_log_database_error(self, liteorm_logs):
        """log_database_error() should log ERROR with exception details."""
        try:
            raise ValueError("database is locked")
        except ValueError as error:
            log_database_error(error, query_context='INSERT INTO "user" DEFAULT VALUES')

        records = _records(liteorm_logs, "Database error")
        assert records
        assert records[-1].levelname == "ERROR"
        assert records[-1].error_type == 'ValueError'
        assert records[-1].query_context == 'INSERT INTO "user" DEFAULT VALUES'
        assert records[-1].exc_info is not None
