"""Split allocation: turn an expense total into exact per-user cents.

Every policy ends in the same place: a list of non-negative integers in
participant order whose sum is exactly the total. Percentages and shares are
rounded independently first and then repaired a cent per participant at a
time, in priority order.
"""

import logging
from collections.abc import Sequence
from decimal import Decimal
from fractions import Fraction

from ..exceptions import (
    DuplicateParticipantError,
    EmptyParticipantsError,
    ExactAmountMismatchError,
    InvalidSplitParameterError,
    NonPositiveTotalError,
    PolicyMismatchError,
    UnreconciledRoundingError,
)
from ..models import (
    Allocation,
    AllocationEntry,
    AllocationPolicy,
    EqualPolicy,
    ExactAmountsPolicy,
    PercentagesPolicy,
    SharesPolicy,
    UserId,
)
from ..money import round_half_up

logger = logging.getLogger(__name__)

PERCENTAGE_TOLERANCE = Decimal("0.01")


def allocate(
    total_cents: int,
    participants: Sequence[UserId],
    policy: AllocationPolicy,
    *,
    percentage_tolerance: Decimal = PERCENTAGE_TOLERANCE,
) -> Allocation:
    """
    Allocate `total_cents` across `participants` according to `policy`.

    Pure and deterministic: the same arguments always give the same
    allocation, so retried expense creation is idempotent.

    Args:
        total_cents: Expense total in minor units (must be positive)
        participants: Ordered, non-empty list of distinct user ids
        policy: One of the AllocationPolicy variants
        percentage_tolerance: How far percentages may stray from 100

    Returns:
        Allocation whose entries sum exactly to total_cents

    Raises:
        EmptyParticipantsError, DuplicateParticipantError,
        NonPositiveTotalError, PolicyMismatchError,
        InvalidSplitParameterError, ExactAmountMismatchError: bad input
        UnreconciledRoundingError: conservation could not be forced
    """
    participants = list(participants)
    _check_participants(participants)
    if total_cents <= 0:
        raise NonPositiveTotalError(total_cents)

    if isinstance(policy, EqualPolicy):
        amounts = allocate_equal(total_cents, len(participants))
    elif isinstance(policy, ExactAmountsPolicy):
        amounts = _allocate_exact(total_cents, participants, policy)
    elif isinstance(policy, PercentagesPolicy):
        amounts = _allocate_percentages(
            total_cents, participants, policy, percentage_tolerance
        )
    elif isinstance(policy, SharesPolicy):
        amounts = _allocate_shares(total_cents, participants, policy)
    else:
        raise TypeError(f"Unsupported allocation policy: {type(policy).__name__}")

    return _build_allocation(total_cents, participants, amounts)


def allocate_equal(total_cents: int, count: int) -> list[int]:
    """Even split; the first `total % count` slots get one extra cent."""
    base, remainder = divmod(total_cents, count)
    return [base + (1 if i < remainder else 0) for i in range(count)]


def repair_rounding(
    amounts: list[int], target_cents: int, priority: Sequence[int]
) -> list[int]:
    """
    Force `sum(amounts) == target_cents`.

    Cents are handed out (or taken back) one per slot while walking
    `priority`, a list of indexes into `amounts`, cycling until the
    difference is gone. Nobody is taken below zero. Whole cycles are applied
    in bulk, so the cost depends on the number of slots and not on the size
    of the difference.

    Args:
        amounts: Independently rounded amounts
        target_cents: Required total
        priority: Indexes in the order they should absorb the difference

    Returns:
        A new list of amounts. May still miss the target if no slot can move;
        the caller must verify.
    """
    repaired = list(amounts)
    difference = target_cents - sum(repaired)
    if difference == 0 or not priority:
        return repaired

    if difference > 0:
        rounds, extra = divmod(difference, len(priority))
        for position, idx in enumerate(priority):
            repaired[idx] += rounds + (1 if position < extra else 0)
    else:
        remaining = -difference
        live = [idx for idx in priority if repaired[idx] > 0]
        while remaining and live:
            # Whole cycles until the smallest live slot runs dry
            rounds = min(remaining // len(live), min(repaired[idx] for idx in live))
            if rounds == 0:
                for idx in live[:remaining]:
                    repaired[idx] -= 1
                break
            for idx in live:
                repaired[idx] -= rounds
            remaining -= rounds * len(live)
            live = [idx for idx in live if repaired[idx] > 0]

    logger.info(
        f"Applied rounding repair of {difference:+d} cents "
        f"across {min(abs(difference), len(priority))} participants"
    )
    return repaired


# ============================================================================
# Policy implementations
# ============================================================================


def _check_participants(participants: list[UserId]) -> None:
    if not participants:
        raise EmptyParticipantsError()
    seen: set[UserId] = set()
    for user_id in participants:
        if user_id in seen:
            raise DuplicateParticipantError(user_id)
        seen.add(user_id)


def _reject_strangers(
    participants: list[UserId], keys: Sequence[UserId], what: str
) -> None:
    members = set(participants)
    for user_id in keys:
        if user_id not in members:
            raise PolicyMismatchError(
                user_id, f"User {user_id} has {what} but is not a participant"
            )


def _require_entries(
    participants: list[UserId], params: dict[UserId, object], what: str
) -> None:
    for user_id in participants:
        if user_id not in params:
            raise PolicyMismatchError(
                user_id, f"Missing {what} for participant {user_id}"
            )
    _reject_strangers(participants, list(params), f"a {what}")


def _allocate_exact(
    total_cents: int, participants: list[UserId], policy: ExactAmountsPolicy
) -> list[int]:
    _reject_strangers(participants, list(policy.amounts), "an amount")

    amounts = [policy.amounts.get(user_id, 0) for user_id in participants]
    for user_id, amount in zip(participants, amounts, strict=True):
        if amount < 0:
            raise InvalidSplitParameterError(
                f"Invalid amount for user {user_id}: {amount}"
            )

    split_total = sum(amounts)
    if split_total != total_cents:
        raise ExactAmountMismatchError(total_cents, split_total)
    return amounts


def _allocate_percentages(
    total_cents: int,
    participants: list[UserId],
    policy: PercentagesPolicy,
    tolerance: Decimal,
) -> list[int]:
    _require_entries(participants, policy.percentages, "percentage")

    percents = [policy.percentages[user_id] for user_id in participants]
    for user_id, percent in zip(participants, percents, strict=True):
        if percent < 0 or percent > 100:
            raise InvalidSplitParameterError(
                f"Invalid percentage for user {user_id}: {percent}"
            )
    percent_total = sum(percents, Decimal("0"))
    if abs(percent_total - 100) > tolerance:
        raise InvalidSplitParameterError(
            f"Percentages must add up to 100% (got {percent_total}%)"
        )

    raw = [
        round_half_up(Fraction(percent) * total_cents / 100) for percent in percents
    ]
    return repair_rounding(raw, total_cents, _by_weight(percents))


def _allocate_shares(
    total_cents: int, participants: list[UserId], policy: SharesPolicy
) -> list[int]:
    _require_entries(participants, policy.shares, "share count")

    shares = [policy.shares[user_id] for user_id in participants]
    for user_id, share in zip(participants, shares, strict=True):
        if share <= 0:
            raise InvalidSplitParameterError(
                f"Invalid shares for user {user_id}: {share}"
            )
    total_shares = sum(shares)

    raw = [
        round_half_up(Fraction(total_cents * share, total_shares)) for share in shares
    ]
    # Largest holder absorbs the rounding with the smallest relative error
    return repair_rounding(raw, total_cents, _by_weight(shares))


def _by_weight(weights: Sequence[Decimal | int]) -> list[int]:
    """Indexes with a positive weight, heaviest first, ties in input order."""
    ranked = [i for i, weight in enumerate(weights) if weight > 0]
    return sorted(ranked, key=lambda i: weights[i], reverse=True)


def _build_allocation(
    total_cents: int, participants: list[UserId], amounts: list[int]
) -> Allocation:
    allocated = sum(amounts)
    if allocated != total_cents or any(amount < 0 for amount in amounts):
        logger.error(
            f"Allocation failed conservation check: total={total_cents}, "
            f"allocated={allocated}, amounts={amounts}"
        )
        raise UnreconciledRoundingError(total_cents, allocated)

    return Allocation(
        total_cents=total_cents,
        entries=[
            AllocationEntry(user_id=user_id, amount_cents=amount)
            for user_id, amount in zip(participants, amounts, strict=True)
        ],
    )
