"""
liteorm - SQLite Adapter
Runs statements against an embedded SQLite file (or in-memory database)
through a SQLAlchemy Core engine.

The pysqlite driver's own transaction handling is switched off and BEGIN is
emitted from the engine's begin event, so DDL takes part in transactions.
Outside an explicit transaction every statement is committed immediately.
"""

import time
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, CursorResult, Engine, Transaction, URL
from sqlalchemy.pool import StaticPool

from ..errors import ErrorCode, ORMError, statement_errors
from ..utils.config import DB_PATH
from ..utils.logger import log_database_error, log_sql, logger
from ..utils.sql import placeholders, quote_identifier, quote_list
from .base import DatabaseAdapter, ResultCursor

MEMORY_DATABASE = ':memory:'


def _disable_driver_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


class SQLiteAdapter(DatabaseAdapter):
    """
    DatabaseAdapter over a single shared SQLite connection.

    Features:
    - One engine with a StaticPool (one DBAPI connection per adapter)
    - '?' positional parameters passed straight to the driver
    - Explicit BEGIN/COMMIT/ROLLBACK, transactional DDL

    Example:
        >>> adapter = SQLiteAdapter(':memory:')
        >>> adapter.execute_sql('CREATE TABLE "user" ("id" INTEGER PRIMARY KEY, "name" TEXT)')
        >>> adapter.insert('user', {'name': 'Ann'})
        1
    """

    def __init__(self, database: str = DB_PATH):
        self.database = database or MEMORY_DATABASE
        self._engine: Optional[Engine] = None
        self._connection: Optional[Connection] = None
        self._transaction: Optional[Transaction] = None

    def get_engine(self) -> Engine:
        """
        Get or create the SQLAlchemy engine.

        Returns:
            SQLAlchemy Engine instance

        Raises:
            ORMError: INIT_FAILED if the engine cannot be created
        """
        if self._engine is None:
            try:
                connection_url = URL.create(
                    drivername="sqlite",
                    database=None if self.database == MEMORY_DATABASE else self.database,
                )

                engine = create_engine(
                    connection_url,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                    echo=False,
                    hide_parameters=True,
                )
                event.listen(engine, "connect", _disable_driver_transactions)
                event.listen(engine, "begin", _emit_begin)
                self._engine = engine

                logger.info("SQLite engine initialized", extra={
                    "event_type": "adapter",
                    "database": self.database
                })

            except Exception as e:
                log_database_error(e, "Failed to create database engine")
                raise ORMError(ErrorCode.INIT_FAILED, cause=e) from e

        return self._engine

    def get_connection(self) -> Connection:
        """
        Shared connection, opened on first use.

        Raises:
            ORMError: DATABASE_NOT_FOUND if the database cannot be opened
        """
        if self._connection is None or self._connection.closed:
            try:
                self._connection = self.get_engine().connect()
            except ORMError:
                raise
            except Exception as e:
                log_database_error(e, f"Failed to open database {self.database}")
                raise ORMError(ErrorCode.DATABASE_NOT_FOUND, cause=e) from e
        return self._connection

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None and self._transaction.is_active

    def _execute(self, sql: str, params: Optional[Sequence[Any]] = None,
                 table: Optional[str] = None) -> CursorResult:
        conn = self.get_connection()
        start = time.perf_counter()
        with statement_errors(sql, params, table):
            try:
                if params:
                    result = conn.exec_driver_sql(sql, tuple(params))
                else:
                    result = conn.exec_driver_sql(sql)
            except Exception:
                if not self.in_transaction and conn.in_transaction():
                    conn.rollback()
                raise
        log_sql(sql, params, round((time.perf_counter() - start) * 1000, 3))
        return result

    def _autocommit(self) -> None:
        conn = self._connection
        if conn is not None and not self.in_transaction and conn.in_transaction():
            conn.commit()

    def execute_sql(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        self._execute(sql, params)
        self._autocommit()

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> ResultCursor:
        result = self._execute(sql, params)
        if result.returns_rows:
            cursor = ResultCursor(list(result.keys()), result.fetchall())
        else:
            cursor = ResultCursor([], [])
        self._autocommit()
        return cursor

    def insert(self, table: str, values: Dict[str, Any]) -> int:
        if values:
            columns = list(values.keys())
            sql = (f"INSERT INTO {quote_identifier(table)} ({quote_list(columns)}) "
                   f"VALUES ({placeholders(len(columns))})")
            params = [values[c] for c in columns]
        else:
            sql = f"INSERT INTO {quote_identifier(table)} DEFAULT VALUES"
            params = []
        result = self._execute(sql, params, table)
        row_id = result.lastrowid
        self._autocommit()
        return row_id

    def batch_insert(self, table: str, rows: List[Dict[str, Any]]) -> int:
        inserted = 0
        for values in rows:
            self.insert(table, values)
            inserted += 1
        return inserted

    def update(self, table: str, values: Dict[str, Any], where: str = '',
               where_params: Optional[Sequence[Any]] = None) -> int:
        # Build dynamic SET clause from provided columns
        set_clauses = [f"{quote_identifier(c)} = ?" for c in values]
        if not set_clauses:
            return 0

        sql = f"UPDATE {quote_identifier(table)} SET {', '.join(set_clauses)}"
        if where:
            sql += f" WHERE {where}"
        params = list(values.values()) + list(where_params or [])
        result = self._execute(sql, params, table)
        affected = result.rowcount
        self._autocommit()
        return affected

    def delete(self, table: str, where: str = '', where_params: Optional[Sequence[Any]] = None) -> int:
        sql = f"DELETE FROM {quote_identifier(table)}"
        if where:
            sql += f" WHERE {where}"
        result = self._execute(sql, where_params, table)
        affected = result.rowcount
        self._autocommit()
        return affected

    def begin_transaction(self) -> None:
        conn = self.get_connection()
        if conn.in_transaction():
            conn.commit()
        self._transaction = conn.begin()

    def commit(self) -> None:
        if self._transaction is not None:
            transaction, self._transaction = self._transaction, None
            transaction.commit()

    def rollback(self) -> None:
        if self._transaction is not None:
            transaction, self._transaction = self._transaction, None
            transaction.rollback()

    def close(self) -> None:
        """Roll back any open transaction and release the engine."""
        if self._transaction is not None:
            self.rollback()
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.closed
