"""
liteorm - pytest Configuration and Fixtures

Provides shared test fixtures for:
- Sample entity classes and their registration
- An in-memory SQLite adapter and a migrated ORM
- Log capture for the package logger

Entity classes are exposed through the `models` fixture so test modules
never import from conftest directly.
"""

import logging
from types import SimpleNamespace

import pytest

from liteorm import (
    ORM,
    BelongsTo,
    ColumnType,
    HasMany,
    HasOne,
    ManyToMany,
    MetadataRegistry,
    ORMConfig,
    SQLiteAdapter,
    column,
    created_at,
    primary_key,
    soft_delete,
    updated_at,
)
from liteorm.errors import set_error_locale
from liteorm.utils.config import LOG_LEVEL
from liteorm.utils.logger import clear_sql_logs, logger, set_log_level
from liteorm.utils.timestamps import set_time_format


# ============================================================================
# Sample Entities
# ============================================================================

class Entity:
    """Plain entity base: keyword arguments become attributes."""

    def __init__(self, **fields):
        for name, value in fields.items():
            setattr(self, name, value)

    def __repr__(self):
        return f"{type(self).__name__}({vars(self)!r})"


class User(Entity):
    pass


class Profile(Entity):
    pass


class Order(Entity):
    pass


class OrderItem(Entity):
    pass


class Article(Entity):
    pass


class Tag(Entity):
    pass


class Comment(Entity):
    pass


ALL_MODELS = (User, Profile, Order, OrderItem, Article, Tag, Comment)


def register_models(orm: ORM) -> None:
    """Register every sample entity on the ORM's registry."""
    orm.register(User, columns=[
        primary_key(),
        column('name', ColumnType.TEXT, not_null=True),
        column('email'),
        column('age', ColumnType.INTEGER),
        created_at(),
        updated_at(),
        soft_delete(),
    ], relations=[
        HasMany('orders', lambda: Order, cascade='all'),
        HasOne('profile', lambda: Profile, cascade='all'),
    ])

    orm.register(Profile, columns=[
        primary_key(),
        column('userId'),
        column('bio'),
    ])

    # 'order' is a reserved word; every identifier is quoted
    orm.register(Order, columns=[
        primary_key(),
        column('userId'),
        column('amount', ColumnType.REAL),
        column('status', ColumnType.INTEGER, default=0),
    ], relations=[
        BelongsTo('user', User, cascade='all'),
        HasMany('items', lambda: OrderItem, cascade='all'),
    ])

    orm.register(OrderItem, columns=[
        primary_key(),
        column('orderId'),
        column('sku'),
        column('quantity', ColumnType.INTEGER),
    ])

    orm.register(Article, columns=[
        primary_key(),
        column('title', not_null=True),
        soft_delete(),
    ], relations=[
        ManyToMany('tags', lambda: Tag, cascade='all'),
        HasMany('comments', lambda: Comment, cascade=['delete']),
    ])

    orm.register(Tag, columns=[
        primary_key(),
        column('name'),
    ])

    orm.register(Comment, columns=[
        primary_key(),
        column('articleId'),
        column('body'),
        soft_delete(),
    ])


# ============================================================================
# Global State
# ============================================================================

@pytest.fixture(autouse=True)
def reset_global_state():
    """Restore process-wide settings (locale, time format, log level) after each test."""
    yield
    set_error_locale('en')
    set_time_format('datetime')
    set_log_level(LOG_LEVEL)
    clear_sql_logs()


@pytest.fixture
def liteorm_logs(caplog):
    """
    Capture records from the package logger at DEBUG level.

    The package logger does not propagate, so the capture handler is
    attached to it directly.

    Returns:
        The caplog fixture
    """
    logger.addHandler(caplog.handler)
    previous = logger.level
    logger.setLevel(logging.DEBUG)
    yield caplog
    logger.removeHandler(caplog.handler)
    logger.setLevel(previous)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def models():
    """
    Sample entity classes.

    Returns:
        Namespace with User, Profile, Order, OrderItem, Article, Tag, Comment
    """
    return SimpleNamespace(**{cls.__name__: cls for cls in ALL_MODELS}, Entity=Entity)


@pytest.fixture
def adapter():
    """
    Fresh in-memory SQLite adapter.

    Returns:
        SQLiteAdapter, closed after the test
    """
    sqlite_adapter = SQLiteAdapter(':memory:')
    yield sqlite_adapter
    sqlite_adapter.close()


@pytest.fixture
def registry():
    """Empty metadata registry."""
    return MetadataRegistry()


@pytest.fixture
def model_registry(registry):
    """
    Registry with every sample entity registered (no database involved).

    Returns:
        MetadataRegistry
    """
    orm_stub = SimpleNamespace(register=registry.register_entity)
    register_models(orm_stub)
    return registry


@pytest.fixture
def orm(adapter, registry):
    """
    ORM over an in-memory database with every sample table created.

    Returns:
        ORM with result caching disabled
    """
    instance = ORM(adapter, registry=registry, config=ORMConfig(cache_enabled=False))
    register_models(instance)
    instance.migrate(*ALL_MODELS)
    yield instance
    instance.close()


@pytest.fixture
def cached_orm(adapter, registry):
    """
    ORM like `orm` but with the result cache enabled.

    Returns:
        ORM with caching enabled (60s TTL)
    """
    instance = ORM(adapter, registry=registry,
                   config=ORMConfig(cache_enabled=True, cache_ttl_seconds=60))
    register_models(instance)
    instance.migrate(*ALL_MODELS)
    yield instance
    instance.close()
