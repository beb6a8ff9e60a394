"""Pydantic domain models for Household Ledger."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from .exceptions import SplitValidationError
from .money import to_decimal

TransactionKind = Literal["income", "expense"]


class SplitMode(str, Enum):
    """How per-member amounts are derived from the transaction total."""

    EQUAL = "equal"
    MANUAL = "manual"


# ============================================================================
# Split Models
# ============================================================================


class ShareInput(BaseModel):
    """A member's requested share before allocation."""

    user_id: str = Field(min_length=1)
    amount: Decimal | None = None  # required in manual mode

    @classmethod
    def parse(cls, user_id: str, raw_amount: object = None) -> "ShareInput":
        """Build a share from raw user input, rejecting non-numeric amounts."""
        if not user_id:
            raise SplitValidationError("Share is missing a member id")
        amount = None if raw_amount is None else to_decimal(raw_amount)
        return cls(user_id=user_id, amount=amount)


class SplitShare(BaseModel):
    """One member's allocated share of a main household transaction.

    amount is authoritative; percentage is informational and recomputed
    every time the allocator runs.
    """

    user_id: str
    amount: Decimal
    percentage: Decimal


# ============================================================================
# Transaction Models
# ============================================================================


class Transaction(BaseModel):
    """A stored income or expense record.

    Exactly one of three shapes:
    - personal: no household_id
    - main household: household_id set, split_info optional
    - split portion: household_id, is_split_portion and main_transaction_id
      set, never its own split_info
    """

    id: str
    amount: Decimal = Field(gt=0)
    description: str = Field(min_length=1)
    date: datetime
    category_id: str = ""
    user_id: str = Field(min_length=1)
    kind: TransactionKind = "expense"
    household_id: str | None = None
    split_info: list[SplitShare] | None = None
    is_split_portion: bool = False
    main_transaction_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> "Transaction":
        if self.is_split_portion:
            if not self.household_id or not self.main_transaction_id:
                raise ValueError(
                    "split portion requires household_id and main_transaction_id"
                )
            if self.split_info:
                raise ValueError("split portion cannot carry split_info")
        elif self.split_info and not self.household_id:
            raise ValueError("split_info requires household_id")
        return self

    @property
    def is_personal(self) -> bool:
        return self.household_id is None

    @property
    def is_main(self) -> bool:
        """True for a household transaction that is not a split portion."""
        return self.household_id is not None and not self.is_split_portion

    @property
    def has_split(self) -> bool:
        return self.is_main and bool(self.split_info)


class TransactionDraft(BaseModel):
    """Input for creating a transaction.

    split_info holds the requested shares; the allocator turns them into
    SplitShare records according to split_mode.
    """

    amount: Decimal = Field(gt=0)
    description: str = Field(min_length=1)
    date: datetime = Field(default_factory=datetime.now)
    category_id: str = ""
    user_id: str = Field(min_length=1)
    kind: TransactionKind = "expense"
    household_id: str | None = None
    split_info: list[ShareInput] | None = None
    split_mode: SplitMode = SplitMode.MANUAL


class TransactionUpdate(BaseModel):
    """Partial update for a transaction.

    Only fields explicitly set are applied. Setting household_id or
    split_info to None removes them from the stored document.
    """

    amount: Decimal | None = Field(default=None, gt=0)
    description: str | None = None
    date: datetime | None = None
    category_id: str | None = None
    kind: TransactionKind | None = None
    household_id: str | None = None
    split_info: list[ShareInput] | None = None
    split_mode: SplitMode = SplitMode.MANUAL

    def provided(self) -> set[str]:
        """Names of fields the caller explicitly set (split_mode excluded)."""
        return set(self.model_fields_set) - {"split_mode"}


# ============================================================================
# Reference Models
# ============================================================================


class Category(BaseModel):
    """A user's transaction category."""

    id: str
    name: str
    emoji: str = "❓"
    user_id: str
    is_default: bool = False
    color: str | None = None


UNKNOWN_CATEGORY_ID = "unknown"


def unknown_category(user_id: str = "") -> Category:
    """Placeholder for transactions whose category no longer exists."""
    return Category(
        id=UNKNOWN_CATEGORY_ID, name="Unknown", emoji="❓", user_id=user_id, color="#999"
    )


class Household(BaseModel):
    """A group of members sharing expenses."""

    id: str
    name: str
    owner_id: str
    members: list[str] = Field(default_factory=list)
    invited_emails: list[str] = Field(default_factory=list)


# ============================================================================
# View Models
# ============================================================================


class FilterOptions(BaseModel):
    """Predicates for the transaction view; all of them are ANDed."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    kind: Literal["income", "expense", "all"] = "all"
    household_id: str | None = None
    category_ids: list[str] | None = None
    search: str | None = None


class TransactionWithCategory(BaseModel):
    """A transaction joined with its category for display."""

    transaction: Transaction
    category: Category


class CategoryStats(BaseModel):
    """Expense total for one category."""

    category: Category
    total_amount: Decimal
    percentage: Decimal


class MonthlyStats(BaseModel):
    """Totals over a set of transactions."""

    total_expenses: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    categories_stats: list[CategoryStats] = Field(default_factory=list)
