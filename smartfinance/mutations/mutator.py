"""
State Mutator

The single authority for transforming AppState. One pure function per
logical edit: each takes the current AppState and returns the next one.
Nothing here touches storage or the network; the orchestrator feeds the
result into persistence.

RULES:
1. Never mutate the input. Always return a new snapshot (or the same
   object when nothing changed).
2. Never raise for well-formed input. Edits that reference an unknown
   id are silent no-ops so the UI layer stays simple.
3. Referential integrity between transactions and categories is NOT
   enforced. Deleting a category in use leaves dangling references.
"""

from datetime import datetime, timezone
from typing import Optional

from smartfinance.models.state import (
    DEFAULT_CATEGORIES,
    AppState,
    Category,
    Transaction,
    TransactionDraft,
)


# =============================================================================
# TRANSACTIONS
# =============================================================================

def new_transaction_id(state: AppState, now: Optional[datetime] = None) -> str:
    """
    Derive a transaction id from the creation time.

    Milliseconds since the epoch, bumped forward when an entry created in
    the same millisecond already holds it.
    """
    now = now or datetime.now(timezone.utc)
    candidate = int(now.timestamp() * 1000)
    taken = {t.id for t in state.transactions}
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


def add_transaction(
    state: AppState,
    draft: TransactionDraft,
    now: Optional[datetime] = None,
) -> tuple[AppState, Transaction]:
    """
    Add a transaction built from a draft.

    Returns:
        (new_state, added_transaction) - the new entry is first in the list
    """
    transaction = Transaction(
        id=new_transaction_id(state, now),
        **draft.model_dump(exclude={"id"}),
    )
    new_state = state.model_copy(
        update={"transactions": [transaction, *state.transactions]}
    )
    return new_state, transaction


def update_transaction(state: AppState, transaction: Transaction) -> AppState:
    """Replace the transaction with the same id. No-op if absent."""
    if state.find_transaction(transaction.id) is None:
        return state
    return state.model_copy(update={
        "transactions": [
            transaction if t.id == transaction.id else t
            for t in state.transactions
        ]
    })


def delete_transaction(state: AppState, transaction_id: str) -> AppState:
    """Remove the transaction with this id. No-op if absent."""
    if state.find_transaction(transaction_id) is None:
        return state
    return state.model_copy(update={
        "transactions": [t for t in state.transactions if t.id != transaction_id]
    })


# =============================================================================
# CATEGORIES
# =============================================================================

def add_category(state: AppState, category: Category) -> AppState:
    """Append a category. No-op if the id is already taken."""
    if state.find_category(category.id) is not None:
        return state
    return state.model_copy(
        update={"categories": [*state.categories, category]}
    )


def update_category(state: AppState, category: Category) -> AppState:
    """Replace the category with the same id. No-op if absent."""
    if state.find_category(category.id) is None:
        return state
    return state.model_copy(update={
        "categories": [
            category if c.id == category.id else c
            for c in state.categories
        ]
    })


def delete_category(state: AppState, category_id: str) -> AppState:
    """
    Remove the category with this id.

    Removing the last category of a type is allowed. Removing the only
    remaining category is a no-op: the category list is never empty.
    """
    if state.find_category(category_id) is None:
        return state
    if len(state.categories) == 1:
        return state
    return state.model_copy(update={
        "categories": [c for c in state.categories if c.id != category_id]
    })


# =============================================================================
# SETTINGS CARRIED IN STATE
# =============================================================================

def set_currency(state: AppState, code: str) -> AppState:
    """Change the display currency. Surrounding whitespace is stripped; blank codes are ignored."""
    code = (code or "").strip()
    if not code or code == state.currency:
        return state
    return state.model_copy(update={"currency": code})


# =============================================================================
# WHOLE-SNAPSHOT REPLACEMENT
# =============================================================================

def replace_state(state: AppState, incoming: AppState) -> AppState:
    """
    Last-writer-wins replacement with an incoming snapshot.

    transactions, categories and currency are all taken from `incoming`.
    There is no per-record merge: local edits not yet pushed are lost.
    An incoming snapshot without categories gets the default seed.
    """
    categories = incoming.categories or list(DEFAULT_CATEGORIES)
    return state.model_copy(update={
        "transactions": list(incoming.transactions),
        "categories": list(categories),
        "currency": incoming.currency,
    })
