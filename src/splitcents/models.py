"""Pydantic domain models for splitcents."""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, StrictInt, model_validator

UserId = str

# ============================================================================
# Allocation policies
# ============================================================================


class SplitKind(str, Enum):
    """Canonical names of the allocation policies."""

    EQUAL = "equal"
    EXACT_AMOUNTS = "exact_amounts"
    PERCENTAGES = "percentages"
    SHARES = "shares"


class EqualPolicy(BaseModel):
    """Split the total evenly; the remainder goes to the first participants."""

    kind: Literal["equal"] = "equal"


class ExactAmountsPolicy(BaseModel):
    """Caller-supplied cents per user (missing users owe nothing)."""

    kind: Literal["exact_amounts"] = "exact_amounts"
    amounts: dict[UserId, int]


class PercentagesPolicy(BaseModel):
    """Percent of the total per user."""

    kind: Literal["percentages"] = "percentages"
    percentages: dict[UserId, Decimal]


class SharesPolicy(BaseModel):
    """Integer share counts per user."""

    kind: Literal["shares"] = "shares"
    shares: dict[UserId, StrictInt]


AllocationPolicy = Annotated[
    EqualPolicy | ExactAmountsPolicy | PercentagesPolicy | SharesPolicy,
    Field(discriminator="kind"),
]


# ============================================================================
# Allocations and expenses
# ============================================================================


class AllocationEntry(BaseModel):
    """One user's portion of an expense."""

    user_id: UserId
    amount_cents: int


class Allocation(BaseModel):
    """Per-user cent breakdown of an expense total, in participant order."""

    total_cents: int
    entries: list[AllocationEntry]

    @property
    def allocated_cents(self) -> int:
        """Sum of all entries."""
        return sum(entry.amount_cents for entry in self.entries)

    def as_dict(self) -> dict[UserId, int]:
        """Entries as an ordered user -> cents mapping."""
        return {entry.user_id: entry.amount_cents for entry in self.entries}


class Expense(BaseModel):
    """A shared expense together with the allocation computed for it.

    The allocation is owned by the expense. Editing an expense produces a new
    Expense with a freshly computed allocation; allocations are never patched.
    """

    model_config = {"frozen": True}

    id: str
    total_cents: int = Field(gt=0)
    payer: UserId
    policy: AllocationPolicy
    allocation: Allocation
    currency_code: str = "USD"
    description: str = ""


# ============================================================================
# Settlements
# ============================================================================


class SettlementStatus(str, Enum):
    """Lifecycle of a recorded payment."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SettlementRecord(BaseModel):
    """A payment that was actually made between two users."""

    id: str
    from_user: UserId
    to_user: UserId
    amount_cents: int = Field(gt=0)
    status: SettlementStatus = SettlementStatus.COMPLETED

    @model_validator(mode="after")
    def _distinct_users(self) -> "SettlementRecord":
        if self.from_user == self.to_user:
            raise ValueError("from_user and to_user cannot be the same")
        return self


class SettlementInstruction(BaseModel):
    """A suggested payment from a debtor to a creditor.

    Range checks live in the settlement validator so that externally merged
    lists can be checked and reported on rather than rejected on construction.
    """

    from_user: UserId
    to_user: UserId
    amount_cents: int
    description: str | None = None


class SettlementSummary(BaseModel):
    """Aggregate statistics over a list of settlement instructions."""

    total_transactions: int = 0
    total_amount_cents: int = 0
    average_transaction_cents: int = 0
    largest_transaction_cents: int = 0
    smallest_transaction_cents: int = 0
