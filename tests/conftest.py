"""Shared fixtures: small ledgers, stores and an isolated environment."""

from datetime import date
from decimal import Decimal

import pytest

from smartfinance.config import get_settings
from smartfinance.models import (
    AppState,
    Category,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from smartfinance.services.local import InMemoryStore
from smartfinance.services.sync import InMemoryRemote


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep tests away from the developer's .env and home directory."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "SYNC_BACKEND",
        "SYNC_AUTO_PUSH_MANUAL",
        "SYNC_DOCUMENT_ID",
        "APP_DEFAULT_CURRENCY",
        "APP_BACKUP_DIRECTORY",
        "APP_EVENT_HISTORY_SIZE",
        "LOCAL_STORE_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APP_BACKUP_DIRECTORY", str(tmp_path / "backups"))
    monkeypatch.setenv("LOCAL_STORE_PATH", str(tmp_path / "store.json"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def two_categories() -> list[Category]:
    return [
        Category(id="c1", name="Salary", type=TransactionType.INCOME),
        Category(id="c3", name="Food", type=TransactionType.EXPENSE),
    ]


@pytest.fixture
def empty_state(two_categories) -> AppState:
    """c1 (income) and c3 (expense), no transactions."""
    return AppState(transactions=[], categories=two_categories, currency="USD")


@pytest.fixture
def lunch_draft() -> TransactionDraft:
    return TransactionDraft(
        date=date(2024, 1, 5),
        amount=Decimal("50"),
        type=TransactionType.EXPENSE,
        category_id="c3",
        note="lunch",
    )


def _transaction(tid: str, amount: str = "10", note: str = "") -> Transaction:
    return Transaction(
        id=tid,
        date=date(2024, 1, 1),
        amount=Decimal(amount),
        type=TransactionType.EXPENSE,
        category_id="c3",
        note=note,
    )


@pytest.fixture
def make_transaction():
    """Factory: make_transaction(id, amount="10", note="")."""
    return _transaction


@pytest.fixture
def ledger(two_categories) -> AppState:
    """Three transactions, newest first."""
    return AppState(
        transactions=[
            _transaction("3", "30", "dinner"),
            _transaction("2", "20", "bus"),
            _transaction("1", "10", "coffee"),
        ],
        categories=two_categories,
        currency="EUR",
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def remote() -> InMemoryRemote:
    return InMemoryRemote()
