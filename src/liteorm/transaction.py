"""
liteorm - Transactions
Nested transaction emulation over a store without savepoints.

Only the outermost begin() opens a physical transaction. Inner begin/commit
pairs just move a depth counter. A rollback at any depth marks the whole unit
rollback-only: when the outermost level closes, everything is rolled back,
including work done before the inner rollback.
"""

from contextlib import contextmanager
from typing import Generator

from .adapter.base import DatabaseAdapter
from .errors import ErrorCode, ORMError
from .utils.logger import log_database_error, log_transaction


class TransactionManager:
    """
    Depth-counted transaction control for one adapter.

    Example:
        >>> with transactions.atomic():
        ...     orm.insert(order)
        ...     orm.insert(invoice)
    """

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter
        self._depth = 0
        self._rollback_only = False

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @property
    def is_rollback_only(self) -> bool:
        return self._rollback_only

    def begin(self) -> None:
        if self._depth == 0:
            try:
                self.adapter.begin_transaction()
            except ORMError:
                raise
            except Exception as e:
                log_database_error(e, "Failed to begin transaction")
                raise ORMError(ErrorCode.TRANSACTION_FAILED, cause=e) from e
            self._rollback_only = False
        self._depth += 1
        log_transaction('begin', self._depth)

    def commit(self) -> None:
        """
        Close one level. The outermost level commits, or rolls back if any
        inner level rolled back. No-op outside a transaction.
        """
        if self._depth == 0:
            return
        self._depth -= 1
        log_transaction('commit', self._depth)
        if self._depth == 0:
            if self._rollback_only:
                self._finish_rollback()
            else:
                try:
                    self.adapter.commit()
                except ORMError:
                    raise
                except Exception as e:
                    log_database_error(e, "Failed to commit transaction")
                    raise ORMError(ErrorCode.TRANSACTION_FAILED, cause=e) from e

    def rollback(self) -> None:
        """Close one level and mark the whole unit rollback-only. No-op outside a transaction."""
        if self._depth == 0:
            return
        self._depth -= 1
        self._rollback_only = True
        log_transaction('rollback', self._depth)
        if self._depth == 0:
            self._finish_rollback()

    def _finish_rollback(self) -> None:
        self._rollback_only = False
        try:
            self.adapter.rollback()
        except ORMError:
            raise
        except Exception as e:
            log_database_error(e, "Failed to roll back transaction")
            raise ORMError(ErrorCode.ROLLBACK_FAILED, cause=e) from e

    @contextmanager
    def atomic(self) -> Generator['TransactionManager', None, None]:
        """
        Run a block in a (possibly nested) transaction.

        Commits on success; rolls back and re-raises on error.
        """
        self.begin()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()
