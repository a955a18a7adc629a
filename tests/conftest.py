"""
Shared fixtures.

Repositories are exercised against `fake_db`, a recording stand-in for the
two execution primitives. It hands out queued results in call order and
checks on every call that the number of ``%s`` placeholders matches the
number of bound parameters. Recorded SQL has its whitespace collapsed.
"""

import os
from collections import deque

# Cheap bcrypt for the test run; must be set before config is imported.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-123")
if os.environ.get("TEST_DATABASE_URL"):
    os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]

import pytest  # noqa: E402

REPOSITORY_MODULES = (
    "repositories.base_repo",
    "repositories.item_repo",
    "repositories.loan_repo",
    "repositories.message_repo",
    "repositories.review_repo",
    "repositories.refresh_token_repo",
    "repositories.category_repo",
    "repositories.user_repo",
)


class FakeDB:
    def __init__(self):
        self.calls: list[tuple[str, str, list]] = []
        self._rows: deque = deque()
        self._rowcounts: deque = deque()

    # Queue results for upcoming calls, in order.
    def add_rows(self, *batches: list[dict]) -> None:
        self._rows.extend(batches)

    def add_rowcounts(self, *counts: int) -> None:
        self._rowcounts.extend(counts)

    def _record(self, kind: str, sql: str, params) -> None:
        params = list(params or [])
        assert sql.count("%s") == len(params), (
            f"{sql.count('%s')} placeholders but {len(params)} params in:\n{sql}"
        )
        self.calls.append((kind, " ".join(sql.split()), params))

    def execute_query(self, sql, params=None):
        self._record("query", sql, params)
        return self._rows.popleft() if self._rows else []

    def execute_write(self, sql, params=None):
        self._record("write", sql, params)
        return self._rowcounts.popleft() if self._rowcounts else 1

    @property
    def queries(self) -> list[tuple[str, list]]:
        return [(sql, params) for kind, sql, params in self.calls if kind == "query"]

    @property
    def writes(self) -> list[tuple[str, list]]:
        return [(sql, params) for kind, sql, params in self.calls if kind == "write"]


@pytest.fixture
def fake_db(monkeypatch):
    import importlib

    db = FakeDB()
    for name in REPOSITORY_MODULES:
        module = importlib.import_module(name)
        monkeypatch.setattr(module, "execute_query", db.execute_query)
        if hasattr(module, "execute_write"):
            monkeypatch.setattr(module, "execute_write", db.execute_write)
    return db
