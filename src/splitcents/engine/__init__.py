"""Split allocation, balance aggregation and settlement planning."""

from .allocator import allocate, allocate_equal, repair_rounding
from .balances import BalanceCache, aggregate_balances, ensure_balanced
from .params import normalize_split_type, policy_from_params, split_summary_text
from .planner import optimize_settlements, plan_settlements, summarize_settlements
from .service import SplitService
from .validation import (
    ensure_valid_settlements,
    reconcile_exact_amounts,
    validate_settlements,
    validate_split,
)

__all__ = [
    "allocate",
    "allocate_equal",
    "repair_rounding",
    "BalanceCache",
    "aggregate_balances",
    "ensure_balanced",
    "normalize_split_type",
    "policy_from_params",
    "split_summary_text",
    "optimize_settlements",
    "plan_settlements",
    "summarize_settlements",
    "SplitService",
    "ensure_valid_settlements",
    "reconcile_exact_amounts",
    "validate_settlements",
    "validate_split",
]
