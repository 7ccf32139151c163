"""JSON ledger files: a group's members, expenses and recorded payments.

Stands in for the expense/settlement repository so the CLI and MCP server
can run the engine over a snapshot on disk.
"""

import logging
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from .engine.params import SplitParam
from .engine.service import SplitService
from .exceptions import LedgerFormatError
from .models import Expense, SettlementRecord, UserId
from .money import to_cents

logger = logging.getLogger(__name__)


class ExpenseEntry(BaseModel):
    """An expense as written in a ledger file.

    Exactly one of `total` (major units, e.g. "12.34") or `total_cents`
    must be given.
    """

    id: str
    description: str = ""
    total: Decimal | None = None
    total_cents: int | None = None
    payer: UserId
    participants: list[UserId]
    split_type: str = "equal"
    splits: list[SplitParam] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_total(self) -> "ExpenseEntry":
        if (self.total is None) == (self.total_cents is None):
            raise ValueError("Exactly one of total or total_cents is required")
        return self

    def cents(self, currency_code: str) -> int:
        """Expense total in minor units."""
        if self.total_cents is None:
            return to_cents(self.total, currency_code)
        return self.total_cents


class Ledger(BaseModel):
    """Snapshot of one group's history."""

    currency_code: str = "USD"
    members: list[UserId]
    expenses: list[ExpenseEntry] = Field(default_factory=list)
    settlements: list[SettlementRecord] = Field(default_factory=list)

    def build_expenses(self, service: SplitService) -> list[Expense]:
        """Allocate every ledger entry into an Expense."""
        return [
            service.create_expense_from_params(
                expense_id=entry.id,
                total_cents=entry.cents(self.currency_code),
                payer=entry.payer,
                participants=entry.participants,
                split_type=entry.split_type,
                per_user_params=entry.splits,
                currency_code=self.currency_code,
                description=entry.description,
            )
            for entry in self.expenses
        ]


def load_ledger(path: Path) -> Ledger:
    """
    Read and parse a ledger file.

    Raises:
        LedgerFormatError: If the file is missing, unreadable or malformed
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise LedgerFormatError(f"Cannot read ledger {path}: {e}") from e

    try:
        ledger = Ledger.model_validate_json(raw)
    except ValidationError as e:
        raise LedgerFormatError(f"Invalid ledger {path}:\n{e}") from e

    logger.info(
        f"Loaded ledger {path.name}: {len(ledger.members)} members, "
        f"{len(ledger.expenses)} expenses, {len(ledger.settlements)} settlements"
    )
    return ledger
