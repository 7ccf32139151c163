"""splitcents - Exact-cent expense splitting and debt settlement."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .engine import (
    SplitService,
    aggregate_balances,
    allocate,
    plan_settlements,
    validate_settlements,
    validate_split,
)
from .models import (
    Allocation,
    EqualPolicy,
    ExactAmountsPolicy,
    Expense,
    PercentagesPolicy,
    SettlementInstruction,
    SettlementRecord,
    SharesPolicy,
)
from .money import format_money, to_cents

__all__ = [
    "Settings",
    "load_settings",
    "SplitService",
    "aggregate_balances",
    "allocate",
    "plan_settlements",
    "validate_settlements",
    "validate_split",
    "Allocation",
    "EqualPolicy",
    "ExactAmountsPolicy",
    "Expense",
    "PercentagesPolicy",
    "SettlementInstruction",
    "SettlementRecord",
    "SharesPolicy",
    "format_money",
    "to_cents",
]
