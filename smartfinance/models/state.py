"""
Core Domain Models for Smart Finance

These models define the application state that is persisted locally,
exported to backups and synchronized with the cloud:
1. Transaction - a single income or expense entry
2. Category - a label transactions are filed under
3. AppState - the whole ledger, read and written as one unit

DESIGN DECISION: Every model is a frozen Pydantic v2 model.
State is never edited in place; each change produces a new AppState
snapshot via model_copy(). Wire names (categoryId, isCustom) are kept
as aliases so documents written by other clients still load.
"""

import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money flow. Categories carry the same type."""
    INCOME = "income"
    EXPENSE = "expense"


# Amounts travel as JSON numbers, the way every existing backup stores them.
Amount = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(float, return_type=float, when_used="json"),
]


# =============================================================================
# LEDGER ENTRIES
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction as entered by the user, before it has an id.

    The id is assigned by the mutator when the draft is added.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    date: datetime.date
    amount: Amount
    type: TransactionType
    category_id: str = Field(..., alias="categoryId")
    note: str = ""


class Transaction(TransactionDraft):
    """
    A recorded transaction.

    Immutable once created. Edits replace the whole entry by id.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque id derived from the creation time"
    )


class Category(BaseModel):
    """
    A transaction category.

    Note: category_id references from transactions are not enforced.
    Deleting a category that is still in use leaves dangling references.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(..., min_length=1)
    name: str
    type: TransactionType
    color: Optional[str] = Field(
        default=None,
        description="Display hint only (e.g. '#10b981')"
    )
    is_custom: Optional[bool] = Field(default=None, alias="isCustom")


# =============================================================================
# APPLICATION STATE
# =============================================================================

class AppState(BaseModel):
    """
    The single unit of truth.

    Every persistence and sync operation reads or writes this wholesale.
    There is no per-transaction incremental sync.

    Transactions are kept newest-first by convention; categories keep
    their insertion order.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    transactions: list[Transaction] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    currency: str = Field(default="USD", min_length=1)

    @field_validator("transactions")
    @classmethod
    def transaction_ids_unique(cls, v: list[Transaction]) -> list[Transaction]:
        seen: set[str] = set()
        for transaction in v:
            if transaction.id in seen:
                raise ValueError(f"Duplicate transaction id: {transaction.id}")
            seen.add(transaction.id)
        return v

    @field_validator("categories")
    @classmethod
    def category_ids_unique(cls, v: list[Category]) -> list[Category]:
        seen: set[str] = set()
        for category in v:
            if category.id in seen:
                raise ValueError(f"Duplicate category id: {category.id}")
            seen.add(category.id)
        return v

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Look up a transaction by id."""
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def find_category(self, category_id: str) -> Optional[Category]:
        """Look up a category by id."""
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def to_document(self) -> dict:
        """Serialize to the JSON-ready mapping used on the wire."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# DEFAULT SEED
# =============================================================================

DEFAULT_CURRENCY = "USD"


def _seed(category_id: str, name: str, type_: TransactionType, color: str) -> Category:
    return Category(id=category_id, name=name, type=type_, color=color)


_IN = TransactionType.INCOME
_OUT = TransactionType.EXPENSE

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    # Income
    _seed("c1", "Salary", _IN, "#10b981"),
    _seed("c2", "Freelance", _IN, "#34d399"),
    _seed("c7", "Saving", _IN, "#2dd4bf"),
    _seed("c8", "Pine", _IN, "#ec4899"),
    _seed("c9", "Han", _IN, "#fb923c"),
    # Expense
    _seed("c3", "Food", _OUT, "#f87171"),
    _seed("c4", "Transport", _OUT, "#fbbf24"),
    _seed("c5", "Utilities", _OUT, "#60a5fa"),
    _seed("c6", "Entertainment", _OUT, "#a78bfa"),
    _seed("c10", "ဝန်ထမ်းလစာ", _OUT, "#ef4444"),
    _seed("c11", "ဈေးဖိုး", _OUT, "#f97316"),
    _seed("c12", "Service_Sparepart", _OUT, "#84cc16"),
    _seed("c13", "မီတာခ", _OUT, "#14b8a6"),
    _seed("c14", "လျှပ်စစ်ပစ္စည်းဝယ်", _OUT, "#06b6d4"),
    _seed("c15", "တန်ဆာခ", _OUT, "#3b82f6"),
    _seed("c16", "ခလေးမုန့်ဖိုး", _OUT, "#6366f1"),
    _seed("c17", "အလှပြင်ပစ္စည်းဝယ်", _OUT, "#8b5cf6"),
    _seed("c18", "Accessories_Company", _OUT, "#d946ef"),
    _seed("c19", "Buy_Handset", _OUT, "#f43f5e"),
    _seed("c20", "ဆေးခန်း _ဆေးဝယ်", _OUT, "#ef4444"),
    _seed("c21", "အခွန်", _OUT, "#f59e0b"),
    _seed("c22", "BuySecondHandset", _OUT, "#10b981"),
    _seed("c23", "မနက်စာ", _OUT, "#0ea5e9"),
    _seed("c24", "လူမှု့ရေး", _OUT, "#818cf8"),
    _seed("c25", "အလှူခံ", _OUT, "#a855f7"),
    _seed("c26", "ASM", _OUT, "#ec4899"),
    _seed("c27", "B2B", _OUT, "#64748b"),
    _seed("c28", "NweNweWin", _OUT, "#78716c"),
    _seed("c29", "KoWaiYan", _OUT, "#dc2626"),
    _seed("c30", "MSN", _OUT, "#ea580c"),
    _seed("c31", "Popular_Cover", _OUT, "#d97706"),
    _seed("c32", "HOCO", _OUT, "#65a30d"),
    _seed("c33", "REMAX", _OUT, "#059669"),
    _seed("c34", "SKY_HELDEN", _OUT, "#0891b2"),
    _seed("c35", "KS", _OUT, "#2563eb"),
    _seed("c36", "OoPoppi", _OUT, "#4f46e5"),
    _seed("c37", "Daw_Khan_Yin", _OUT, "#7c3aed"),
    _seed("c38", "ဆီဖိုး", _OUT, "#c026d3"),
    _seed("c39", "စာရေးကိရိယာ", _OUT, "#db2777"),
    _seed("c40", "ရေဘူး", _OUT, "#e11d48"),
    _seed("c41", "K_PAY", _OUT, "#f87171"),
    _seed("c42", "ချိုရည်", _OUT, "#fbbf24"),
    _seed("c43", "ကျူရှင်လခ", _OUT, "#4ade80"),
    _seed("c44", "Wifi", _OUT, "#60a5fa"),
)


def default_state(currency: str = DEFAULT_CURRENCY) -> AppState:
    """The state a fresh install starts from."""
    return AppState(
        transactions=[],
        categories=list(DEFAULT_CATEGORIES),
        currency=currency,
    )
