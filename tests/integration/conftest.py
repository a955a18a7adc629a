"""
Fixtures for tests that need a real PostgreSQL.

Set TEST_DATABASE_URL to a disposable database to run them; every table is
dropped and recreated for the session and truncated between tests.
"""

import os

import pytest

from db.connection import close_pool, execute_write, init_pool
from db.init_db import create_tables, drop_tables
from models.category import CategoryCreate
from models.item import ItemCreate
from models.user import UserCreate
from repositories.category_repo import CategoryRepository
from repositories.item_repo import ItemRepository
from repositories.user_repo import UserRepository


@pytest.fixture(scope="session")
def database():
    if not os.environ.get("TEST_DATABASE_URL"):
        pytest.skip("TEST_DATABASE_URL not set")
    init_pool()
    drop_tables()
    create_tables()
    yield
    drop_tables()
    close_pool()


@pytest.fixture(autouse=True)
def clean_tables(database):
    yield
    execute_write(
        "TRUNCATE refresh_tokens, reviews, messages, loans, item_images, items, categories, users CASCADE;"
    )


@pytest.fixture
def make_user(database):
    repo = UserRepository()
    counter = iter(range(1, 1000))

    def _make(**overrides):
        n = next(counter)
        data = dict(
            email=f"user{n}@example.com", password="Secret12!",
            first_name=f"User{n}", last_name="Teste",
        )
        data.update(overrides)
        return repo.create(UserCreate(**data))

    return _make


@pytest.fixture
def category(database):
    return CategoryRepository().create(CategoryCreate(name="Ferramentas", icon="wrench"))


@pytest.fixture
def make_item(database, category):
    repo = ItemRepository()

    def _make(owner, **overrides):
        data = dict(
            category_id=category.id, title="Furadeira", description="Furadeira de impacto",
            condition_rating=4, daily_rate=10.0,
        )
        data.update(overrides)
        return repo.create(ItemCreate(**data), owner.id)

    return _make
