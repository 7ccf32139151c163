"""Settlement planning: suggest payments that zero out net balances.

The planner is a greedy largest-creditor / largest-debtor matcher. It is
O(n log n) and deterministic, and it produces at most (creditors + debtors - 1)
payments. It is not guaranteed to find the global minimum number of payments
for every distribution of balances.
"""

import logging
from collections.abc import Mapping, Sequence
from fractions import Fraction

from ..exceptions import ResidualBalanceError
from ..models import SettlementInstruction, SettlementSummary, UserId
from ..money import format_money, round_half_up

logger = logging.getLogger(__name__)


def describe_payment(
    from_user: UserId, to_user: UserId, amount_cents: int, currency_code: str = "USD"
) -> str:
    """Human-readable description of a single payment."""
    return f"{from_user} pays {to_user} {format_money(amount_cents, currency_code)}"


def plan_settlements(
    balances: Mapping[UserId, int], currency_code: str = "USD"
) -> list[SettlementInstruction]:
    """
    Compute suggested payments that clear every balance.

    Steps:
    1. Split users into creditors (> 0) and debtors (< 0); zeros drop out
    2. Sort both sides by magnitude, largest first (ties keep input order)
    3. Pay min(creditor remaining, debtor remaining) from the current debtor
       to the current creditor, advancing whichever side reaches zero
    4. Stop when either side runs out; leftovers are an error

    Args:
        balances: Net balance per user (must sum to zero)
        currency_code: Currency used in payment descriptions

    Returns:
        Payment instructions, in the order they were matched

    Raises:
        ResidualBalanceError: If any balance is left unmatched
    """
    creditors = sorted(
        ([user_id, cents] for user_id, cents in balances.items() if cents > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    debtors = sorted(
        ([user_id, -cents] for user_id, cents in balances.items() if cents < 0),
        key=lambda item: item[1],
        reverse=True,
    )

    instructions: list[SettlementInstruction] = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor, debtor = creditors[i], debtors[j]
        amount = min(creditor[1], debtor[1])

        instructions.append(
            SettlementInstruction(
                from_user=debtor[0],
                to_user=creditor[0],
                amount_cents=amount,
                description=describe_payment(
                    debtor[0], creditor[0], amount, currency_code
                ),
            )
        )
        creditor[1] -= amount
        debtor[1] -= amount

        if creditor[1] == 0:
            i += 1
        if debtor[1] == 0:
            j += 1

    residuals = {user_id: cents for user_id, cents in creditors[i:] if cents}
    residuals.update({user_id: -cents for user_id, cents in debtors[j:] if cents})
    if residuals:
        logger.error(f"Settlement planning left residual balances: {residuals}")
        raise ResidualBalanceError(residuals)

    logger.debug(
        f"Planned {len(instructions)} payments for "
        f"{len(creditors)} creditors and {len(debtors)} debtors"
    )
    return instructions


def optimize_settlements(
    instructions: Sequence[SettlementInstruction],
    min_amount_cents: int = 0,
    currency_code: str = "USD",
) -> list[SettlementInstruction]:
    """
    Merge payments between the same two users.

    Same-direction payments are added together and opposite-direction
    payments are netted. Pairs that cancel out disappear, as do merged
    payments smaller than `min_amount_cents`.

    Note: dropping small payments means the result may no longer clear every
    balance exactly; run `validate_settlements` against the balances when
    that matters.
    """
    merged: dict[tuple[UserId, UserId], int] = {}
    for instruction in instructions:
        pair = (instruction.from_user, instruction.to_user)
        reverse = (instruction.to_user, instruction.from_user)

        if reverse in merged:
            net = merged[reverse] - instruction.amount_cents
            if net == 0:
                del merged[reverse]
            elif net > 0:
                merged[reverse] = net
            else:
                del merged[reverse]
                merged[pair] = -net
        else:
            merged[pair] = merged.get(pair, 0) + instruction.amount_cents

    result = [
        SettlementInstruction(
            from_user=from_user,
            to_user=to_user,
            amount_cents=amount,
            description=describe_payment(from_user, to_user, amount, currency_code),
        )
        for (from_user, to_user), amount in merged.items()
        if amount >= min_amount_cents
    ]

    dropped = len(merged) - len(result)
    if dropped:
        logger.info(
            f"Dropped {dropped} merged payments below {min_amount_cents} cents"
        )
    return result


def summarize_settlements(
    instructions: Sequence[SettlementInstruction],
) -> SettlementSummary:
    """Count, total and size range of a list of payments."""
    if not instructions:
        return SettlementSummary()

    amounts = [instruction.amount_cents for instruction in instructions]
    total = sum(amounts)
    return SettlementSummary(
        total_transactions=len(amounts),
        total_amount_cents=total,
        average_transaction_cents=round_half_up(Fraction(total, len(amounts))),
        largest_transaction_cents=max(amounts),
        smallest_transaction_cents=min(amounts),
    )
