"""Pre-flight split checks and post-condition checks on settlement plans.

Both validators return a list of user-facing messages; an empty list means
the input is valid.
"""

import logging
from collections.abc import Mapping, Sequence
from decimal import Decimal

from ..exceptions import ExactAmountMismatchError, InvalidSettlementPlanError
from ..models import (
    AllocationPolicy,
    EqualPolicy,
    ExactAmountsPolicy,
    PercentagesPolicy,
    SettlementInstruction,
    SharesPolicy,
    UserId,
)
from .allocator import PERCENTAGE_TOLERANCE

logger = logging.getLogger(__name__)

EXACT_AMOUNT_TOLERANCE_CENTS = 1


# ============================================================================
# Split validation
# ============================================================================


def validate_split(
    total_cents: int,
    policy: AllocationPolicy,
    participants: Sequence[UserId] | None = None,
    *,
    exact_tolerance_cents: int = EXACT_AMOUNT_TOLERANCE_CENTS,
    percentage_tolerance: Decimal = PERCENTAGE_TOLERANCE,
) -> list[str]:
    """
    Check a split before allocating it.

    Args:
        total_cents: Expense total in minor units
        policy: Allocation policy with its per-user parameters
        participants: Active participant list. Required for equal splits;
            for the other policies it enables coverage checks.
        exact_tolerance_cents: Allowed |sum - total| for exact amounts
        percentage_tolerance: Allowed |sum - 100| for percentages

    Returns:
        Validation messages (empty = valid)
    """
    errors: list[str] = []

    if total_cents <= 0:
        errors.append("Total amount must be positive")

    if isinstance(policy, EqualPolicy):
        if not participants:
            errors.append("At least one participant is required")
    elif isinstance(policy, ExactAmountsPolicy):
        errors.extend(
            _validate_exact(total_cents, policy.amounts, exact_tolerance_cents)
        )
    elif isinstance(policy, PercentagesPolicy):
        errors.extend(_validate_percentages(policy.percentages, percentage_tolerance))
    elif isinstance(policy, SharesPolicy):
        errors.extend(_validate_shares(policy.shares))
    else:
        errors.append(f"Invalid split type: {type(policy).__name__}")

    if participants is not None and not isinstance(policy, EqualPolicy):
        errors.extend(_validate_coverage(policy, participants))

    return errors


def _validate_exact(
    total_cents: int, amounts: Mapping[UserId, int], tolerance: int
) -> list[str]:
    errors = [
        f"Invalid amount for user {user_id}: {amount}"
        for user_id, amount in amounts.items()
        if amount < 0
    ]
    if errors:
        return errors

    split_total = sum(amounts.values())
    if abs(split_total - total_cents) > tolerance:
        errors.append(
            f"Split amounts ({split_total}) don't match expense total ({total_cents})"
        )
    return errors


def _validate_percentages(
    percentages: Mapping[UserId, Decimal], tolerance: Decimal
) -> list[str]:
    errors = [
        f"Invalid percentage for user {user_id}: {percent}"
        for user_id, percent in percentages.items()
        if percent < 0 or percent > 100
    ]
    if errors:
        return errors

    percent_total = sum(percentages.values(), Decimal("0"))
    if abs(percent_total - 100) > tolerance:
        errors.append(f"Percentages must add up to 100% (got {percent_total}%)")
    return errors


def _validate_shares(shares: Mapping[UserId, int]) -> list[str]:
    errors = [
        f"Invalid shares for user {user_id}: {share}"
        for user_id, share in shares.items()
        if share <= 0
    ]
    if errors:
        return errors

    if sum(shares.values()) <= 0:
        errors.append("Total shares must be greater than 0")
    return errors


def _validate_coverage(
    policy: ExactAmountsPolicy | PercentagesPolicy | SharesPolicy,
    participants: Sequence[UserId],
) -> list[str]:
    if isinstance(policy, ExactAmountsPolicy):
        params: Mapping[UserId, object] = policy.amounts
        field, article, required = "amount", "an", False
    elif isinstance(policy, PercentagesPolicy):
        params, field, article, required = policy.percentages, "percentage", "a", True
    else:
        params, field, article, required = policy.shares, "share count", "a", True

    errors: list[str] = []
    if not participants:
        errors.append("At least one participant is required")
    members = set(participants)
    if required:
        errors.extend(
            f"Missing {field} for participant {user_id}"
            for user_id in participants
            if user_id not in params
        )
    errors.extend(
        f"User {user_id} has {article} {field} but is not a participant"
        for user_id in params
        if user_id not in members
    )
    return errors


def reconcile_exact_amounts(
    total_cents: int,
    amounts: Mapping[UserId, int],
    tolerance_cents: int = EXACT_AMOUNT_TOLERANCE_CENTS,
) -> dict[UserId, int]:
    """
    Absorb a small residual so exact amounts sum to the total.

    Amounts converted from floating point upstream can miss the total by a
    cent. A residual within `tolerance_cents` is added to the largest amount
    (first one on ties); anything larger is a real mismatch.

    Args:
        total_cents: Expense total
        amounts: Per-user cents
        tolerance_cents: Largest residual that may be absorbed

    Returns:
        New per-user mapping summing exactly to total_cents

    Raises:
        ExactAmountMismatchError: If the residual exceeds the tolerance or the
            adjustment would make an amount negative
    """
    reconciled = dict(amounts)
    split_total = sum(reconciled.values())
    residual = total_cents - split_total
    if residual == 0:
        return reconciled
    if abs(residual) > tolerance_cents or not reconciled:
        raise ExactAmountMismatchError(total_cents, split_total)

    largest = max(reconciled, key=lambda user_id: reconciled[user_id])
    if reconciled[largest] + residual < 0:
        raise ExactAmountMismatchError(total_cents, split_total)
    reconciled[largest] += residual

    logger.info(f"Applied exact-amount adjustment: {residual:+d} cents to {largest}")
    return reconciled


# ============================================================================
# Settlement plan validation
# ============================================================================


def validate_settlements(
    instructions: Sequence[SettlementInstruction],
    balances: Mapping[UserId, int] | None = None,
) -> list[str]:
    """
    Check a settlement plan (planner output or an externally merged list).

    Args:
        instructions: Suggested payments
        balances: Net balances the plan is meant to clear. When given, each
            user's payments must exactly cancel their balance.

    Returns:
        Validation messages (empty = valid)
    """
    errors: list[str] = []

    invalid_amounts = [s for s in instructions if s.amount_cents <= 0]
    if invalid_amounts:
        errors.append(
            f"Invalid settlement amounts found: {len(invalid_amounts)} "
            f"settlements with non-positive amounts"
        )

    self_payments = [s for s in instructions if s.from_user == s.to_user]
    if self_payments:
        errors.append(
            f"Self-payments found: {len(self_payments)} settlements "
            f"where from_user equals to_user"
        )

    # Paying a debt raises the payer's balance; receiving lowers it
    flows: dict[UserId, int] = {}
    for s in instructions:
        flows[s.from_user] = flows.get(s.from_user, 0) + s.amount_cents
        flows[s.to_user] = flows.get(s.to_user, 0) - s.amount_cents

    if balances is not None:
        users = list(balances) + [u for u in flows if u not in balances]
        for user_id in users:
            remaining = balances.get(user_id, 0) + flows.get(user_id, 0)
            if remaining != 0:
                errors.append(
                    f"Settlements leave {user_id} with {remaining} cents outstanding"
                )

    return errors


def ensure_valid_settlements(
    instructions: Sequence[SettlementInstruction],
    balances: Mapping[UserId, int] | None = None,
) -> None:
    """Raise InvalidSettlementPlanError if `validate_settlements` finds problems."""
    errors = validate_settlements(instructions, balances)
    if errors:
        logger.error(f"Settlement plan failed validation: {errors}")
        raise InvalidSettlementPlanError(errors)
