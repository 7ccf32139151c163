"""Translation from loose boundary split shapes to allocation policies.

Callers (manual entry forms, parsed drafts, ledger files) spell split types
several ways and send per-user rows with optional fields. This is the only
place those spellings are understood; the engine itself only sees
AllocationPolicy variants.
"""

from collections.abc import Sequence
from decimal import Decimal
from fractions import Fraction

from pydantic import BaseModel, StrictInt

from ..exceptions import (
    InvalidSplitParameterError,
    PolicyMismatchError,
    UnknownSplitTypeError,
)
from ..models import (
    AllocationPolicy,
    EqualPolicy,
    ExactAmountsPolicy,
    PercentagesPolicy,
    SharesPolicy,
    SplitKind,
    UserId,
)
from ..money import format_money, round_half_up

SPLIT_TYPE_ALIASES: dict[str, SplitKind] = {
    "equal": SplitKind.EQUAL,
    "exact": SplitKind.EXACT_AMOUNTS,
    "amount": SplitKind.EXACT_AMOUNTS,
    "amounts": SplitKind.EXACT_AMOUNTS,
    "exact_amounts": SplitKind.EXACT_AMOUNTS,
    "percent": SplitKind.PERCENTAGES,
    "percentage": SplitKind.PERCENTAGES,
    "percentages": SplitKind.PERCENTAGES,
    "share": SplitKind.SHARES,
    "shares": SplitKind.SHARES,
}


class SplitParam(BaseModel):
    """One per-user row as sent by a client."""

    user_id: UserId
    amount_cents: int | None = None
    percent: Decimal | None = None
    shares: StrictInt | None = None


def normalize_split_type(split_type: str | SplitKind) -> SplitKind:
    """Map any accepted split type spelling to its canonical kind."""
    if isinstance(split_type, SplitKind):
        return split_type
    kind = SPLIT_TYPE_ALIASES.get(split_type.strip().lower())
    if kind is None:
        raise UnknownSplitTypeError(split_type)
    return kind


def policy_from_params(
    split_type: str | SplitKind,
    per_user_params: Sequence[SplitParam | dict] | None = None,
) -> AllocationPolicy:
    """
    Build an allocation policy from boundary parameters.

    Args:
        split_type: Any accepted spelling ("exact", "percentage", "share", ...)
        per_user_params: Rows of {user_id, amount_cents?, percent?, shares?}

    Returns:
        The matching AllocationPolicy variant

    Raises:
        UnknownSplitTypeError: If the split type is not recognised
        PolicyMismatchError: If a row lacks the field the split type needs
        InvalidSplitParameterError: If a user appears twice
    """
    kind = normalize_split_type(split_type)
    if kind is SplitKind.EQUAL:
        return EqualPolicy()

    rows = [SplitParam.model_validate(row) for row in per_user_params or []]
    field = {
        SplitKind.EXACT_AMOUNTS: "amount_cents",
        SplitKind.PERCENTAGES: "percent",
        SplitKind.SHARES: "shares",
    }[kind]

    values: dict[UserId, object] = {}
    for row in rows:
        value = getattr(row, field)
        if value is None:
            raise PolicyMismatchError(
                row.user_id,
                f"{field} is required for {kind.value} splits (user {row.user_id})",
            )
        if row.user_id in values:
            raise InvalidSplitParameterError(
                f"User {row.user_id} appears more than once in the split"
            )
        values[row.user_id] = value

    if kind is SplitKind.EXACT_AMOUNTS:
        return ExactAmountsPolicy(amounts=values)
    if kind is SplitKind.PERCENTAGES:
        return PercentagesPolicy(percentages=values)
    return SharesPolicy(shares=values)


def policy_kind(policy: AllocationPolicy) -> SplitKind:
    """Canonical kind of a policy instance."""
    return SplitKind(policy.kind)


def split_summary_text(
    policy: AllocationPolicy,
    participant_count: int,
    total_cents: int,
    currency_code: str = "USD",
) -> str:
    """One-line human description of how an expense is split."""
    total = format_money(total_cents, currency_code)
    kind = policy_kind(policy)

    if kind is SplitKind.EQUAL and participant_count > 0:
        per_person = format_money(
            round_half_up(Fraction(total_cents, participant_count)),
            currency_code,
        )
        return (
            f"{total} split equally among {participant_count} people "
            f"(≈{per_person} each)"
        )
    if kind is SplitKind.EXACT_AMOUNTS:
        return f"{total} split by custom amounts"
    if kind is SplitKind.PERCENTAGES:
        return f"{total} split by percentages"
    if kind is SplitKind.SHARES:
        return f"{total} split by shares"
    return f"{total} split"
