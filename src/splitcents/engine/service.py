"""Service layer that composes allocation, aggregation and planning.

The engine functions are pure; this layer applies configured tolerances,
runs validation before allocation and checks plans after planning.
"""

import logging
from collections.abc import Iterable, Sequence

from ..config import Settings
from ..exceptions import SplitValidationError
from ..models import (
    Allocation,
    AllocationPolicy,
    ExactAmountsPolicy,
    Expense,
    SettlementInstruction,
    SettlementRecord,
    SplitKind,
    UserId,
)
from ..money import format_money
from .allocator import allocate
from .balances import BalanceCache, aggregate_balances, ensure_balanced
from .params import SplitParam, policy_from_params
from .planner import optimize_settlements, plan_settlements
from .validation import (
    ensure_valid_settlements,
    reconcile_exact_amounts,
    validate_split,
)

logger = logging.getLogger(__name__)


class SplitService:
    """Entry point for expense-management callers."""

    def __init__(self, settings: Settings, cache: BalanceCache | None = None):
        """Initialize the split service."""
        self.settings = settings
        self.cache = cache

    def check_split(
        self,
        total_cents: int,
        policy: AllocationPolicy,
        participants: Sequence[UserId] | None = None,
    ) -> list[str]:
        """Validate a split with the configured tolerances."""
        return validate_split(
            total_cents,
            policy,
            participants,
            exact_tolerance_cents=self.settings.exact_amount_tolerance_cents,
            percentage_tolerance=self.settings.percentage_tolerance,
        )

    def allocate_split(
        self,
        total_cents: int,
        participants: Sequence[UserId],
        policy: AllocationPolicy,
    ) -> Allocation:
        """
        Validate and allocate a split.

        Exact amounts within the configured tolerance are reconciled before
        allocation; the allocator itself only ever sees an exact map.

        Raises:
            SplitValidationError: If validation reports problems
            InputError: Other malformed input caught by the allocator
            ConservationError: If allocation could not conserve cents
        """
        errors = self.check_split(total_cents, policy, participants)
        if errors:
            logger.info(f"Rejected split: {errors}")
            raise SplitValidationError(errors)

        if isinstance(policy, ExactAmountsPolicy):
            policy = ExactAmountsPolicy(
                amounts=reconcile_exact_amounts(
                    total_cents,
                    policy.amounts,
                    self.settings.exact_amount_tolerance_cents,
                )
            )

        return allocate(
            total_cents,
            participants,
            policy,
            percentage_tolerance=self.settings.percentage_tolerance,
        )

    def create_expense(
        self,
        expense_id: str,
        total_cents: int,
        payer: UserId,
        participants: Sequence[UserId],
        policy: AllocationPolicy,
        currency_code: str | None = None,
        description: str = "",
    ) -> Expense:
        """
        Validate, allocate and assemble a new expense.

        The stored policy is the one given; reconciliation of exact amounts
        only affects the allocation.

        Raises:
            SplitValidationError, InputError, ConservationError: see
                `allocate_split`
        """
        allocation = self.allocate_split(total_cents, participants, policy)
        expense = Expense(
            id=expense_id,
            total_cents=total_cents,
            payer=payer,
            policy=policy,
            allocation=allocation,
            currency_code=currency_code or self.settings.default_currency,
            description=description,
        )

        logger.info(
            f"Created expense {expense_id}: "
            f"{format_money(total_cents, expense.currency_code)} "
            f"split {policy.kind} among {len(allocation.entries)}"
        )
        return expense

    def create_expense_from_params(
        self,
        expense_id: str,
        total_cents: int,
        payer: UserId,
        participants: Sequence[UserId],
        split_type: str | SplitKind,
        per_user_params: Sequence[SplitParam | dict] | None = None,
        currency_code: str | None = None,
        description: str = "",
    ) -> Expense:
        """
        Create an expense from the loose boundary shape.

        Manual entry and parsed drafts both arrive as
        (total_cents, split_type, per_user_params); this is their common path.
        """
        policy = policy_from_params(split_type, per_user_params)
        return self.create_expense(
            expense_id=expense_id,
            total_cents=total_cents,
            payer=payer,
            participants=participants,
            policy=policy,
            currency_code=currency_code,
            description=description,
        )

    def revise_expense(
        self,
        expense: Expense,
        *,
        total_cents: int | None = None,
        payer: UserId | None = None,
        participants: Sequence[UserId] | None = None,
        policy: AllocationPolicy | None = None,
        description: str | None = None,
    ) -> Expense:
        """
        Return an edited copy of an expense with a freshly computed allocation.

        The original expense and its allocation are left untouched.
        """
        if participants is None:
            participants = [entry.user_id for entry in expense.allocation.entries]

        return self.create_expense(
            expense_id=expense.id,
            total_cents=expense.total_cents if total_cents is None else total_cents,
            payer=payer or expense.payer,
            participants=participants,
            policy=policy or expense.policy,
            currency_code=expense.currency_code,
            description=expense.description if description is None else description,
        )

    def group_balances(
        self,
        expenses: Iterable[Expense],
        settlements: Iterable[SettlementRecord],
        members: Sequence[UserId],
        group_id: str | None = None,
    ) -> dict[UserId, int]:
        """
        Net balances for a group, checked to sum to zero.

        When a cache is configured and `group_id` is given, results are
        memoised until `record_changed(group_id)` is called.

        Raises:
            UnbalancedLedgerError: If the balances do not net to zero
        """
        if self.cache is not None and group_id is not None:
            balances = self.cache.get_or_compute(
                group_id, expenses, settlements, members
            )
        else:
            balances = aggregate_balances(expenses, settlements, members)

        ensure_balanced(balances)
        return balances

    def record_changed(self, group_id: str) -> None:
        """Invalidate cached balances after a write to a group's records."""
        if self.cache is not None:
            self.cache.invalidate(group_id)

    def suggest_settlements(
        self,
        balances: dict[UserId, int],
        optimize: bool = False,
        currency_code: str | None = None,
    ) -> list[SettlementInstruction]:
        """
        Suggest payments that clear the given balances.

        Args:
            balances: Net balances (must sum to zero)
            optimize: Merge payments per pair and drop ones smaller than
                `settings.min_settlement_cents`
            currency_code: Currency for descriptions (default from settings)

        Raises:
            UnbalancedLedgerError: If the balances don't sum to zero
            ResidualBalanceError: If planning leaves balance unmatched
            InvalidSettlementPlanError: If the plan fails post-checks
        """
        currency = currency_code or self.settings.default_currency
        ensure_balanced(balances)

        plan = plan_settlements(balances, currency)
        if not optimize:
            ensure_valid_settlements(plan, balances)
            return plan

        optimized = optimize_settlements(
            plan, self.settings.min_settlement_cents, currency
        )
        # Dropped small payments can no longer clear every balance exactly
        if self.settings.min_settlement_cents > 0:
            ensure_valid_settlements(optimized)
        else:
            ensure_valid_settlements(optimized, balances)
        return optimized
