"""Balance aggregation: fold expenses and recorded payments into net balances."""

import logging
from collections.abc import Iterable, Sequence

from ..exceptions import UnbalancedLedgerError
from ..models import Expense, SettlementRecord, SettlementStatus, UserId

logger = logging.getLogger(__name__)


def aggregate_balances(
    expenses: Iterable[Expense],
    settlements: Iterable[SettlementRecord],
    members: Sequence[UserId],
) -> dict[UserId, int]:
    """
    Compute each user's net balance from scratch.

    Positive = the group owes them, negative = they owe the group.

    Steps:
    1. Start every member at zero
    2. Each expense credits the payer with the total and debits every
       allocation entry (a payer who also participates nets out)
    3. Each non-cancelled settlement credits the payer and debits the receiver

    The fold is commutative, so record order never changes the result.

    Args:
        expenses: Expenses with their allocations
        settlements: Recorded payments
        members: Group members, in display order

    Returns:
        Ordered user -> cents mapping (members first, then any other users in
        first-seen order)

    Raises:
        UnbalancedLedgerError: If an expense's allocation doesn't sum to its
            total
    """
    balances: dict[UserId, int] = {user_id: 0 for user_id in members}

    expense_count = 0
    for expense in expenses:
        allocated = expense.allocation.allocated_cents
        if allocated != expense.total_cents:
            raise UnbalancedLedgerError(
                expense.total_cents - allocated,
                f"Expense {expense.id} allocates {allocated} cents "
                f"of a {expense.total_cents} cent total",
            )
        balances[expense.payer] = balances.get(expense.payer, 0) + expense.total_cents
        for entry in expense.allocation.entries:
            balances[entry.user_id] = (
                balances.get(entry.user_id, 0) - entry.amount_cents
            )
        expense_count += 1

    settlement_count = 0
    for record in settlements:
        if record.status is SettlementStatus.CANCELLED:
            logger.debug(f"Skipping cancelled settlement {record.id}")
            continue
        balances[record.from_user] = (
            balances.get(record.from_user, 0) + record.amount_cents
        )
        balances[record.to_user] = balances.get(record.to_user, 0) - record.amount_cents
        settlement_count += 1

    known = set(members)
    strangers = [user_id for user_id in balances if user_id not in known]
    if strangers:
        logger.warning(f"Records reference users outside the group: {strangers}")

    logger.debug(
        f"Aggregated {expense_count} expenses and {settlement_count} settlements "
        f"into {len(balances)} balances"
    )
    return balances


def ensure_balanced(balances: dict[UserId, int]) -> None:
    """Raise UnbalancedLedgerError unless the balances sum to exactly zero."""
    residual = sum(balances.values())
    if residual != 0:
        logger.error(f"Balances do not net to zero: residual {residual} cents")
        raise UnbalancedLedgerError(residual)


class BalanceCache:
    """Optional memo of computed balances per group.

    Purely a performance layer: callers must `invalidate` a group on every
    write to its expenses or settlements. Recomputing from history is always correct.
    """

    def __init__(self):
        """Initialize an empty cache."""
        self._balances: dict[str, dict[UserId, int]] = {}

    def get_or_compute(
        self,
        group_id: str,
        expenses: Iterable[Expense],
        settlements: Iterable[SettlementRecord],
        members: Sequence[UserId],
    ) -> dict[UserId, int]:
        """Return cached balances for a group, computing them on a miss."""
        cached = self._balances.get(group_id)
        if cached is not None:
            logger.debug(f"Balance cache hit for group {group_id}")
            return dict(cached)

        logger.debug(f"Balance cache miss for group {group_id}")
        balances = aggregate_balances(expenses, settlements, members)
        self._balances[group_id] = dict(balances)
        return balances

    def invalidate(self, group_id: str) -> None:
        """Drop the cached balances for one group."""
        self._balances.pop(group_id, None)

    def clear(self) -> None:
        """Drop every cached group."""
        self._balances.clear()

    def __contains__(self, group_id: str) -> bool:
        return group_id in self._balances
