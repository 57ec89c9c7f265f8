"""State mutation package."""

from smartfinance.mutations.mutator import (
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

__all__ = [
    "add_category",
    "add_transaction",
    "delete_category",
    "delete_transaction",
    "new_transaction_id",
    "replace_state",
    "set_currency",
    "update_category",
    "update_transaction",
]
