"""
liteorm - ORM CRUD Integration Tests

End-to-end reads and writes through the ORM facade and query builder:
- Insert with key write-back and timestamp stamping
- Filtering, ordering, paging, counting
- Soft delete visibility, restore and force delete
- save / delete / delete_by_id / find_by_id
- Raw SQL and table queries
- Process-wide ORM handle
"""

import pytest
from freezegun import freeze_time

from liteorm import (
    ORM,
    ConfigurationError,
    ErrorCode,
    QueryError,
    SQLiteAdapter,
    get_orm,
    init_orm,
    set_orm,
)


@pytest.fixture
def people(orm, models):
    """
    Four users inserted in name order.

    Returns:
        List of inserted User entities
    """
    users = [
        models.User(name='Ann', email='ann@example.com', age=30),
        models.User(name='Bob', email='bob@example.com', age=15),
        models.User(name='Cara', email='cara@example.com', age=42),
        models.User(name='Dan', age=18),
    ]
    orm.insert(users)
    return users


class TestInsert:
    """Test inserting entities."""

    def test_insert_writes_key_back(self, orm, models):
        """insert() should return the row id and set it on the entity."""
        user = models.User(name='Ann', age=30)

        row_id = orm.insert(user)

        assert row_id == 1
        assert user.id == 1

    @freeze_time("2024-02-29 09:15:00")
    def test_insert_stamps_timestamps(self, orm, models):
        """Create/update timestamp columns should be stamped and written back."""
        user = models.User(name='Ann')
        orm.insert(user)

        stored = orm.find_by_id(models.User, user.id)
        assert user.createdAt == '2024-02-29 09:15:00'
        assert stored.createdAt == '2024-02-29 09:15:00'
        assert stored.updatedAt == '2024-02-29 09:15:00'
        assert stored.deletedAt is None

    def test_insert_list_returns_ids(self, orm, models):
        """insert() with a list should return one id per entity."""
        tags = [models.Tag(name='a'), models.Tag(name='b')]

        assert orm.insert(tags) == [1, 2]
        assert [t.id for t in tags] == [1, 2]

    def test_insert_explicit_key(self, orm, models):
        """An explicit primary key value should be kept."""
        orm.insert(models.Tag(id=40, name='forty'))

        assert orm.find_by_id(models.Tag, 40).name == 'forty'

    def test_builder_insert_many(self, orm, models):
        """QueryBuilder.insert() with a list should insert every item."""
        inserted = orm.query(models.Tag).insert([models.Tag(name='x'), models.Tag(name='y')])

        assert inserted == 2
        assert orm.query(models.Tag).count() == 2

    def test_column_default_applies(self, orm, models):
        """Omitted defaulted columns should take their DEFAULT value."""
        order = models.Order(amount=3.5)
        orm.insert(order)

        assert orm.find_by_id(models.Order, order.id).status == 0

    def test_unregistered_entity(self, orm):
        """Writing an unregistered class should raise ConfigurationError."""
        class Stranger:
            pass

        with pytest.raises(ConfigurationError):
            orm.insert(Stranger())


class TestReads:
    """Test querying."""

    def test_filter_by_operator_object(self, orm, models, people):
        """where({'age': {'gte': 18}}) should return adults only."""
        adults = orm.query(models.User).where({'age': {'gte': 18}}).order_by('name').find()

        assert [u.name for u in adults] == ['Ann', 'Cara', 'Dan']
        assert all(isinstance(u, models.User) for u in adults)

    def test_or_condition(self, orm, models, people):
        """or_() should widen the match."""
        found = orm.query(models.User).where('name', 'Ann').or_().where('name', 'Bob').find()

        assert sorted(u.name for u in found) == ['Ann', 'Bob']

    def test_like_and_null(self, orm, models, people):
        """where_like() and where_null() should run against real data."""
        assert [u.name for u in orm.query(models.User).where_like('email', 'c%').find()] == ['Cara']
        assert [u.name for u in orm.query(models.User).where_null('email').find()] == ['Dan']

    def test_in_list(self, orm, models, people):
        """A list value should match any of its members."""
        found = orm.query(models.User).where('age', [15, 18]).order_by('age').find()

        assert [u.name for u in found] == ['Bob', 'Dan']

    def test_paging(self, orm, models, people):
        """limit() and offset() should page through ordered results."""
        page = orm.query(models.User).order_by('age', 'DESC').limit(2).offset(1).find()

        assert [u.name for u in page] == ['Ann', 'Dan']

    def test_offset_only(self, orm, models, people):
        """offset() without limit() should skip rows and return the rest."""
        rest = orm.query(models.User).order_by('id').offset(3).find()

        assert [u.name for u in rest] == ['Dan']

    def test_first_last_count_exists(self, orm, models, people):
        """Terminal helpers should agree with the data."""
        query = orm.query(models.User).order_by('age')

        assert query.first().name == 'Bob'
        assert query.last().name == 'Cara'
        assert orm.query(models.User).count() == 4
        assert orm.query(models.User).where('name', 'Zed').exists() is False
        assert orm.query(models.User).where('name', 'Zed').first() is None

    def test_first_does_not_keep_limit(self, orm, models, people):
        """first() should not leave a LIMIT behind on the builder."""
        query = orm.query(models.User)
        query.first()

        assert len(query.find()) == 4

    def test_select_columns(self, orm, models, people):
        """select() should fetch only the named columns."""
        user = orm.query(models.User).select('name').where('age', 30).first()

        assert user.name == 'Ann'
        assert not hasattr(user, 'email')

    def test_group_by(self, orm, models):
        """group_by() should aggregate rows."""
        orm.insert([models.Order(amount=1.0, status=1), models.Order(amount=2.0, status=1),
                    models.Order(amount=3.0, status=2)])

        rows = orm.table('order').select('status').group_by('status').order_by('status').find()

        assert rows == [{'status': 1}, {'status': 2}]

    def test_find_by_id(self, orm, models, people):
        """find_by_id() should return the entity or None."""
        assert orm.find_by_id(models.User, people[2].id).name == 'Cara'
        assert orm.find_by_id(models.User, 999) is None

    def test_table_query_returns_dicts(self, orm, models, people):
        """table() queries should return column-keyed dicts."""
        row = orm.table('user').where('name', 'Ann').first()

        assert isinstance(row, dict)
        assert row['email'] == 'ann@example.com'
        assert 'created_at' in row

    def test_query_error_on_missing_table(self, orm):
        """Querying a missing table should raise QueryError."""
        with pytest.raises(QueryError) as exc_info:
            orm.table('ghost').find()

        assert exc_info.value.code == ErrorCode.QUERY_FAILED
        assert exc_info.value.sql == 'SELECT * FROM "ghost"'


class TestUpdate:
    """Test updating rows."""

    def test_builder_update(self, orm, models, people):
        """update() should change matching rows and return the count."""
        affected = orm.query(models.User).where('age', '<', 20).update({'email': 'minor@example.com'})

        assert affected == 2
        assert orm.query(models.User).where('email', 'minor@example.com').count() == 2

    def test_update_stamps_update_time(self, orm, models):
        """update() should refresh the update timestamp."""
        with freeze_time("2024-01-01 00:00:00"):
            user = models.User(name='Ann')
            orm.insert(user)

        with freeze_time("2024-05-01 12:00:00"):
            orm.query(models.User).where('id', user.id).update({'age': 31})

        stored = orm.find_by_id(models.User, user.id)
        assert stored.age == 31
        assert stored.createdAt == '2024-01-01 00:00:00'
        assert stored.updatedAt == '2024-05-01 12:00:00'

    def test_save_inserts_then_updates(self, orm, models):
        """save() should insert new entities and update existing ones."""
        user = models.User(name='Ann', age=30)
        assert orm.save(user) == 1

        user.age = 31
        assert orm.save(user) == 1

        assert orm.find_by_id(models.User, user.id).age == 31
        assert orm.query(models.User).count() == 1


class TestSoftDelete:
    """Test soft delete visibility."""

    def test_full_lifecycle(self, orm, models, people):
        """Soft-deleted rows should hide, reappear when restored, and vanish when forced."""
        ann = people[0]

        assert orm.query(models.User).where('id', ann.id).soft_delete() == 1
        assert orm.query(models.User).count() == 3
        assert orm.query(models.User).with_trashed().count() == 4

        trashed = orm.query(models.User).only_trashed().find()
        assert [u.name for u in trashed] == ['Ann']
        assert trashed[0].deletedAt is not None
        assert orm.find_by_id(models.User, ann.id) is None

        assert orm.query(models.User).where('name', 'Ann').restore() == 1
        assert orm.query(models.User).count() == 4
        assert orm.find_by_id(models.User, ann.id).deletedAt is None

        assert orm.query(models.User).where('id', ann.id).force_delete() == 1
        assert orm.query(models.User).with_trashed().count() == 3

    def test_soft_delete_skips_already_deleted(self, orm, models, people):
        """soft_delete() should only stamp live rows."""
        orm.query(models.User).where('name', 'Ann').soft_delete()

        assert orm.query(models.User).where('name', 'Ann').soft_delete() == 0

    def test_restore_only_touches_deleted_rows(self, orm, models, people):
        """restore() should not count live rows."""
        assert orm.query(models.User).restore() == 0

    def test_delete_respects_visibility(self, orm, models, people):
        """delete() should not remove soft-deleted rows unless asked."""
        orm.query(models.User).where('name', 'Ann').soft_delete()

        assert orm.query(models.User).delete() == 3
        assert orm.query(models.User).with_trashed().count() == 1
        assert orm.query(models.User).only_trashed().delete() == 1


class TestDelete:
    """Test physical deletes through the facade."""

    def test_delete_entity(self, orm, models, people):
        """delete() should physically remove one entity by key."""
        assert orm.delete(people[0]) == 1
        assert orm.query(models.User).with_trashed().count() == 3

    def test_delete_without_key_raises(self, orm, models):
        """delete() on an unsaved entity should raise PRIMARY_KEY_MISSING."""
        with pytest.raises(ConfigurationError) as exc_info:
            orm.delete(models.User(name='ghost'))

        assert exc_info.value.code == ErrorCode.PRIMARY_KEY_MISSING

    def test_delete_by_id(self, orm, models, people):
        """delete_by_id() should accept one id or a list."""
        assert orm.delete_by_id(models.User, people[0].id) == 1
        assert orm.delete_by_id(models.User, [people[1].id, people[2].id]) == 2
        assert [u.name for u in orm.query(models.User).find()] == ['Dan']


class TestFacade:
    """Test facade-level helpers."""

    def test_requires_adapter(self):
        """ORM(None) should raise ADAPTER_NOT_SET."""
        with pytest.raises(ConfigurationError) as exc_info:
            ORM(None)

        assert exc_info.value.code == ErrorCode.ADAPTER_NOT_SET

    def test_execute_sql(self, orm, models, people):
        """execute_sql() should run raw statements."""
        orm.execute_sql('UPDATE "user" SET "age" = ? WHERE "name" = ?', [99, 'Bob'])

        assert orm.query(models.User).where('name', 'Bob').first().age == 99

    def test_execute_sql_failure(self, orm):
        """A failing raw statement should raise QueryError."""
        with pytest.raises(QueryError):
            orm.execute_sql('DELETE FROM "ghost"')

    def test_validate(self, orm, models):
        """validate() should use the ORM's validator."""
        orm.validator.required(models.User, 'name').email(models.User, 'email')

        result = orm.validate(models.User(name='', email='nope'))

        assert result.valid is False
        assert [e.field for e in result.errors] == ['name', 'email']

    def test_global_handle(self):
        """init_orm() should install the handle get_orm() returns."""
        set_orm(None)
        with pytest.raises(ConfigurationError):
            get_orm()

        adapter = SQLiteAdapter(':memory:')
        try:
            created = init_orm(adapter)
            assert get_orm() is created
        finally:
            set_orm(None)
            adapter.close()
