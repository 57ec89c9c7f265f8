"""Tests for the state mutator."""

from datetime import date, datetime, timezone
from decimal import Decimal

from smartfinance.models import Category, DEFAULT_CATEGORIES, AppState, TransactionType
from smartfinance.mutations import (
    add_category,
    add_transaction,
    delete_category,
    delete_transaction,
    new_transaction_id,
    replace_state,
    set_currency,
    update_category,
    update_transaction,
)


NOW = datetime(2024, 1, 5, 12, 0, tzinfo=timezone.utc)
NOW_MS = str(int(NOW.timestamp() * 1000))


class TestTransactionIds:
    """Tests for creation-time ids."""

    def test_id_is_epoch_milliseconds(self, empty_state):
        assert new_transaction_id(empty_state, NOW) == NOW_MS

    def test_id_bumped_on_collision(self, empty_state, lunch_draft):
        state, first = add_transaction(empty_state, lunch_draft, NOW)
        state, second = add_transaction(state, lunch_draft, NOW)
        assert first.id == NOW_MS
        assert second.id == str(int(NOW_MS) + 1)


class TestTransactionMutations:
    """Tests for add/update/delete of transactions."""

    def test_add_then_delete_restores_list(self, ledger, lunch_draft):
        """Adding then deleting the added id gives back the original list."""
        state, added = add_transaction(ledger, lunch_draft)
        assert len(state.transactions) == 4
        restored = delete_transaction(state, added.id)
        assert restored.transactions == ledger.transactions

    def test_add_prepends(self, ledger, lunch_draft):
        state, added = add_transaction(ledger, lunch_draft)
        assert state.transactions[0] == added

    def test_add_does_not_touch_input(self, ledger, lunch_draft):
        add_transaction(ledger, lunch_draft)
        assert len(ledger.transactions) == 3

    def test_lunch_scenario(self, empty_state, lunch_draft):
        """c1/c3 state plus one lunch expense gives exactly one transaction."""
        state, added = add_transaction(empty_state, lunch_draft)
        assert len(state.transactions) == 1
        assert state.transactions[0].category_id == "c3"
        assert added.amount == Decimal("50")
        assert added.note == "lunch"
        assert added.date == date(2024, 1, 5)

    def test_update_replaces_by_id(self, ledger, make_transaction):
        edited = make_transaction("2", "25", "taxi")
        state = update_transaction(ledger, edited)
        assert state.find_transaction("2").note == "taxi"
        assert [t.id for t in state.transactions] == ["3", "2", "1"]

    def test_update_missing_id_is_noop(self, ledger, make_transaction):
        """Updating an unknown id leaves the list unchanged."""
        state = update_transaction(ledger, make_transaction("99"))
        assert state is ledger
        assert state.transactions == ledger.transactions

    def test_delete_missing_id_is_noop(self, ledger):
        assert delete_transaction(ledger, "99") is ledger

    def test_delete_keeps_order(self, ledger):
        state = delete_transaction(ledger, "2")
        assert [t.id for t in state.transactions] == ["3", "1"]


class TestCategoryMutations:
    """Tests for add/update/delete of categories."""

    def test_add_category_appends(self, empty_state):
        category = Category(id="c99", name="Pets", type=TransactionType.EXPENSE, is_custom=True)
        state = add_category(empty_state, category)
        assert state.categories[-1] == category

    def test_add_duplicate_category_is_noop(self, empty_state):
        duplicate = Category(id="c1", name="Other", type=TransactionType.INCOME)
        assert add_category(empty_state, duplicate) is empty_state

    def test_update_category(self, empty_state):
        renamed = Category(id="c3", name="Groceries", type=TransactionType.EXPENSE)
        state = update_category(empty_state, renamed)
        assert state.find_category("c3").name == "Groceries"

    def test_update_missing_category_is_noop(self, empty_state):
        missing = Category(id="c99", name="X", type=TransactionType.EXPENSE)
        assert update_category(empty_state, missing) is empty_state

    def test_delete_category_leaves_dangling_references(self, ledger):
        """Transactions keep pointing at a deleted category."""
        state = delete_category(ledger, "c3")
        assert state.find_category("c3") is None
        assert all(t.category_id == "c3" for t in state.transactions)

    def test_delete_last_category_of_type_allowed(self, empty_state):
        state = delete_category(empty_state, "c1")
        assert [c.id for c in state.categories] == ["c3"]

    def test_delete_only_category_is_noop(self, empty_state):
        state = delete_category(empty_state, "c1")
        assert delete_category(state, "c3") is state

    def test_delete_missing_category_is_noop(self, empty_state):
        assert delete_category(empty_state, "c99") is empty_state


class TestCurrency:
    """Tests for set_currency."""

    def test_set_currency(self, empty_state):
        assert set_currency(empty_state, "MMK").currency == "MMK"

    def test_surrounding_whitespace_stripped(self, empty_state):
        assert set_currency(empty_state, "  EUR ").currency == "EUR"
        assert set_currency(empty_state, " USD ") is empty_state

    def test_blank_currency_ignored(self, empty_state):
        assert set_currency(empty_state, "   ") is empty_state
        assert set_currency(empty_state, "") is empty_state

    def test_same_currency_is_noop(self, empty_state):
        assert set_currency(empty_state, "USD") is empty_state


class TestReplaceState:
    """Tests for last-writer-wins replacement."""

    def test_incoming_wins(self, ledger, empty_state, lunch_draft):
        local, _ = add_transaction(empty_state, lunch_draft)
        state = replace_state(local, ledger)
        assert state.transactions == ledger.transactions
        assert state.categories == ledger.categories
        assert state.currency == "EUR"

    def test_empty_incoming_categories_get_seed(self, ledger):
        incoming = AppState(transactions=[], categories=[], currency="USD")
        state = replace_state(ledger, incoming)
        assert state.categories == list(DEFAULT_CATEGORIES)
        assert state.transactions == []
