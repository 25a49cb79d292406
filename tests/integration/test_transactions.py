"""
liteorm - Transaction Integration Tests

Tests nested transactions against a real database:
- Outermost commit persists, rollback discards
- An inner rollback poisons the whole unit
- transaction() context manager behavior
"""

import pytest

from liteorm import QueryError


class TestExplicitTransactions:
    """Test begin/commit/rollback through the facade."""

    def test_commit_persists(self, orm, models):
        """Rows written before the outermost commit should persist."""
        orm.begin_transaction()
        orm.insert(models.Tag(name='a'))
        orm.commit()

        assert orm.get_transaction_depth() == 0
        assert orm.query(models.Tag).count() == 1

    def test_rollback_discards(self, orm, models):
        """Rows written before a rollback should disappear."""
        orm.begin_transaction()
        orm.insert(models.Tag(name='a'))
        orm.rollback()

        assert orm.query(models.Tag).count() == 0

    def test_inner_rollback_discards_outer_work(self, orm, models):
        """An inner rollback should roll back the outer unit on its final commit."""
        orm.begin_transaction()
        orm.insert(models.Tag(name='outer'))
        orm.begin_transaction()
        orm.insert(models.Tag(name='inner'))
        assert orm.get_transaction_depth() == 2

        orm.rollback()
        assert orm.get_transaction_depth() == 1
        orm.commit()

        assert orm.get_transaction_depth() == 0
        assert orm.query(models.Tag).count() == 0

    def test_inner_commit_defers(self, orm, models):
        """Inner commits should only take effect with the outermost one."""
        orm.begin_transaction()
        orm.begin_transaction()
        orm.insert(models.Tag(name='a'))
        orm.commit()
        assert orm.adapter.in_transaction is True

        orm.commit()

        assert orm.adapter.in_transaction is False
        assert orm.query(models.Tag).count() == 1

    def test_commit_outside_transaction_is_noop(self, orm):
        """commit() and rollback() at depth 0 should do nothing."""
        orm.commit()
        orm.rollback()

        assert orm.get_transaction_depth() == 0


class TestTransactionBlock:
    """Test the transaction() context manager."""

    def test_commits_on_success(self, orm, models):
        """A block that completes should commit."""
        with orm.transaction() as tx_orm:
            tx_orm.insert_with_relations(models.User(name='Ann', orders=[models.Order(amount=1.0)]))

        assert orm.query(models.User).count() == 1
        assert orm.query(models.Order).count() == 1

    def test_rolls_back_on_error(self, orm, models):
        """A block that raises should roll back and re-raise."""
        with pytest.raises(RuntimeError):
            with orm.transaction():
                orm.insert(models.Tag(name='a'))
                raise RuntimeError("boom")

        assert orm.query(models.Tag).count() == 0
        assert orm.get_transaction_depth() == 0

    def test_failed_statement_rolls_back_cascade(self, orm, models):
        """A failing cascade write should leave nothing behind inside a block."""
        user = models.User(name='Ann', orders=[models.Order(amount=1.0)])

        with pytest.raises(QueryError):
            with orm.transaction():
                orm.insert_with_relations(user)
                orm.execute_sql('INSERT INTO "ghost" VALUES (1)')

        assert orm.query(models.User).with_trashed().count() == 0
        assert orm.query(models.Order).count() == 0

    def test_caught_inner_failure_still_rolls_back(self, orm, models):
        """A nested block that fails should poison the outer block even when caught."""
        with orm.transaction():
            orm.insert(models.Tag(name='outer'))
            try:
                with orm.transaction():
                    orm.insert(models.Tag(name='inner'))
                    raise ValueError("inner failure")
            except ValueError:
                pass

        assert orm.query(models.Tag).count() == 0
        assert orm.get_transaction_depth() == 0
