"""Allocation tests: conservation, per-policy rounding and repair, errors."""

from decimal import Decimal

import pytest

from splitcents.engine import allocator
from splitcents.engine.allocator import allocate, allocate_equal, repair_rounding
from splitcents.exceptions import (
    AllocationError,
    ConservationError,
    DuplicateParticipantError,
    EmptyParticipantsError,
    ExactAmountMismatchError,
    InputError,
    InvalidSplitParameterError,
    NonPositiveTotalError,
    PolicyMismatchError,
    UnreconciledRoundingError,
)
from splitcents.models import (
    EqualPolicy,
    ExactAmountsPolicy,
    PercentagesPolicy,
    SharesPolicy,
)


def amounts(allocation) -> list[int]:
    """Allocation amounts in participant order."""
    return [entry.amount_cents for entry in allocation.entries]


def percentages(**values: str) -> PercentagesPolicy:
    """Build a percentages policy from keyword strings."""
    return PercentagesPolicy(
        percentages={user: Decimal(value) for user, value in values.items()}
    )


class TestEqualSplit:
    """Equal splits hand the remainder to the first participants."""

    def test_three_way_split_of_one_hundred_dollars(self):
        """10000 cents among three people."""
        allocation = allocate(10000, ["A", "B", "C"], EqualPolicy())

        assert amounts(allocation) == [3334, 3333, 3333]
        assert allocation.allocated_cents == 10000

    def test_three_way_split_of_one_dollar(self):
        """100 cents among three people."""
        allocation = allocate(100, ["A", "B", "C"], EqualPolicy())

        assert amounts(allocation) == [34, 33, 33]

    def test_fewer_cents_than_participants(self):
        """Some participants owe nothing when cents run out."""
        assert allocate_equal(5, 7) == [1, 1, 1, 1, 1, 0, 0]

    def test_single_participant_takes_everything(self):
        allocation = allocate(1234, ["A"], EqualPolicy())

        assert amounts(allocation) == [1234]

    def test_remainder_follows_caller_order(self):
        """Reordering participants moves the extra cent."""
        allocation = allocate(100, ["C", "B", "A"], EqualPolicy())

        assert allocation.as_dict() == {"C": 34, "B": 33, "A": 33}

    def test_conserves_and_differs_by_at_most_one_cent(self):
        """Conservation over a range of totals and group sizes."""
        for total in range(1, 250):
            for count in range(1, 8):
                participants = [f"user{i}" for i in range(count)]
                result = amounts(allocate(total, participants, EqualPolicy()))

                assert sum(result) == total
                assert max(result) - min(result) <= 1


class TestExactAmounts:
    """Exact amounts must already add up to the total."""

    def test_amounts_used_as_given(self):
        policy = ExactAmountsPolicy(amounts={"A": 600, "B": 400})

        allocation = allocate(1000, ["A", "B"], policy)

        assert amounts(allocation) == [600, 400]

    def test_missing_participants_owe_nothing(self):
        policy = ExactAmountsPolicy(amounts={"A": 1000})

        allocation = allocate(1000, ["A", "B"], policy)

        assert allocation.as_dict() == {"A": 1000, "B": 0}

    def test_one_cent_short_is_rejected(self):
        """The one-cent tolerance is not applied inside the allocator."""
        policy = ExactAmountsPolicy(amounts={"A": 600, "B": 399})

        with pytest.raises(ExactAmountMismatchError) as exc_info:
            allocate(1000, ["A", "B"], policy)

        assert isinstance(exc_info.value, InputError)
        assert "don't match expense total" in str(exc_info.value)

    def test_negative_amount_is_rejected(self):
        policy = ExactAmountsPolicy(amounts={"A": 1100, "B": -100})

        with pytest.raises(InvalidSplitParameterError, match="Invalid amount"):
            allocate(1000, ["A", "B"], policy)

    def test_amount_for_non_participant_is_rejected(self):
        policy = ExactAmountsPolicy(amounts={"A": 500, "Z": 500})

        with pytest.raises(PolicyMismatchError, match="not a participant"):
            allocate(1000, ["A", "B"], policy)


class TestPercentages:
    """Percentages are rounded half up, then repaired to the exact total."""

    def test_huge_total_with_loose_percentages(self):
        """99.99% of a billion dollars leaves ten million cents to repair."""
        policy = percentages(A="49.995", B="49.995")

        allocation = allocate(10**11, ["A", "B"], policy)

        assert amounts(allocation) == [5 * 10**10, 5 * 10**10]
        assert allocation.allocated_cents == 10**11

    def test_tolerance_can_be_widened(self):
        policy = percentages(A="50", B="49.8")

        with pytest.raises(InvalidSplitParameterError):
            allocate(1000, ["A", "B"], policy)

        allocation = allocate(
            1000, ["A", "B"], policy, percentage_tolerance=Decimal("0.5")
        )
        assert amounts(allocation) == [501, 499]

    def test_no_repair_needed(self):
        """33/33/34 on $100.00 divides exactly."""
        policy = percentages(A="33", B="33", C="34")

        allocation = allocate(10000, ["A", "B", "C"], policy)

        assert amounts(allocation) == [3300, 3300, 3400]

    def test_repair_goes_to_largest_percentage(self):
        """33.33/33.33/33.34 on $1.00 rounds to 99 cents; C gets the extra cent."""
        policy = percentages(A="33.33", B="33.33", C="33.34")

        allocation = allocate(100, ["A", "B", "C"], policy)

        assert amounts(allocation) == [33, 33, 34]

    def test_ties_broken_by_participant_order(self):
        """Equal percentages within tolerance behave like an equal split."""
        policy = percentages(A="33.33", B="33.33", C="33.33")

        allocation = allocate(100, ["A", "B", "C"], policy)

        assert amounts(allocation) == [34, 33, 33]

    def test_negative_repair_when_rounding_overshoots(self):
        """50/50 of 101 cents rounds both halves up to 51."""
        allocation = allocate(101, ["A", "B"], percentages(A="50", B="50"))

        assert amounts(allocation) == [50, 51]

    def test_repair_cycles_for_large_totals(self):
        """A 0.01% shortfall on a large total is spread evenly."""
        policy = percentages(A="49.995", B="49.995")

        allocation = allocate(1_000_000, ["A", "B"], policy)

        assert amounts(allocation) == [500000, 500000]

    def test_zero_percent_participant_gets_nothing(self):
        allocation = allocate(999, ["A", "B"], percentages(A="100", B="0"))

        assert allocation.as_dict() == {"A": 999, "B": 0}

    def test_conserves_for_awkward_totals(self):
        policy = percentages(A="12.5", B="37.5", C="20", D="30")
        for total in range(1, 500):
            allocation = allocate(total, ["A", "B", "C", "D"], policy)

            assert allocation.allocated_cents == total
            assert all(amount >= 0 for amount in amounts(allocation))

    def test_missing_percentage_is_policy_mismatch(self):
        policy = percentages(A="50", B="50")

        with pytest.raises(PolicyMismatchError) as exc_info:
            allocate(1000, ["A", "B", "C"], policy)

        assert isinstance(exc_info.value, AllocationError)
        assert exc_info.value.user_id == "C"

    def test_out_of_range_percentage(self):
        with pytest.raises(InvalidSplitParameterError, match="Invalid percentage"):
            allocate(1000, ["A", "B"], percentages(A="120", B="-20"))

    def test_percentages_must_sum_to_one_hundred(self):
        with pytest.raises(InvalidSplitParameterError, match="add up to 100%"):
            allocate(1000, ["A", "B"], percentages(A="50", B="49"))


class TestShares:
    """Shares are rounded half up; the largest holder absorbs the repair."""

    def test_equal_shares(self):
        policy = SharesPolicy(shares={"A": 1, "B": 1, "C": 1})

        allocation = allocate(100, ["A", "B", "C"], policy)

        assert amounts(allocation) == [34, 33, 33]

    def test_one_to_two(self):
        policy = SharesPolicy(shares={"A": 1, "B": 2})

        allocation = allocate(100, ["A", "B"], policy)

        assert amounts(allocation) == [33, 67]

    def test_rounding_that_happens_to_conserve(self):
        policy = SharesPolicy(shares={"A": 1, "B": 1, "C": 2})

        allocation = allocate(101, ["A", "B", "C"], policy)

        assert amounts(allocation) == [25, 25, 51]

    def test_overshoot_taken_from_largest_holder(self):
        """2/1/1 of 102 rounds to 51/26/26; A (2 shares) gives back a cent."""
        policy = SharesPolicy(shares={"A": 2, "B": 1, "C": 1})

        allocation = allocate(102, ["A", "B", "C"], policy)

        assert amounts(allocation) == [50, 26, 26]

    def test_largest_holder_wins_over_order(self):
        policy = SharesPolicy(shares={"A": 1, "B": 3})

        allocation = allocate(2, ["A", "B"], policy)

        assert amounts(allocation) == [1, 1]

    def test_non_positive_share_is_rejected(self):
        policy = SharesPolicy(shares={"A": 0, "B": 2})

        with pytest.raises(InvalidSplitParameterError, match="Invalid shares"):
            allocate(100, ["A", "B"], policy)

    def test_missing_share_is_policy_mismatch(self):
        policy = SharesPolicy(shares={"A": 1})

        with pytest.raises(PolicyMismatchError, match="Missing share count"):
            allocate(100, ["A", "B"], policy)


class TestCommonErrors:
    """Errors shared by every policy."""

    def test_empty_participants(self):
        with pytest.raises(EmptyParticipantsError) as exc_info:
            allocate(100, [], EqualPolicy())

        assert isinstance(exc_info.value, AllocationError)
        assert isinstance(exc_info.value, InputError)

    @pytest.mark.parametrize("total", [0, -500])
    def test_non_positive_total(self, total):
        with pytest.raises(NonPositiveTotalError):
            allocate(total, ["A"], EqualPolicy())

    def test_duplicate_participants(self):
        with pytest.raises(DuplicateParticipantError, match="more than once"):
            allocate(100, ["A", "B", "A"], EqualPolicy())

    def test_unreconciled_rounding_is_reported(self, monkeypatch):
        """A broken repair pass surfaces as a conservation error."""
        monkeypatch.setattr(
            allocator, "repair_rounding", lambda amounts, target, priority: amounts
        )
        policy = percentages(A="33.33", B="33.33", C="33.34")

        with pytest.raises(UnreconciledRoundingError) as exc_info:
            allocate(100, ["A", "B", "C"], policy)

        assert isinstance(exc_info.value, ConservationError)
        assert exc_info.value.expected_cents == 100
        assert exc_info.value.actual_cents == 99


class TestRepairRounding:
    """Direct tests of the repair pass."""

    def test_no_difference_returns_copy(self):
        original = [1, 2, 3]

        repaired = repair_rounding(original, 6, [0, 1, 2])

        assert repaired == [1, 2, 3]
        assert repaired is not original

    def test_never_goes_below_zero(self):
        assert repair_rounding([0, 0, 5], 3, [0, 1, 2]) == [0, 0, 3]

    def test_gives_up_when_nothing_can_move(self):
        """The caller detects the remaining mismatch."""
        assert repair_rounding([0, 0], -1, [0, 1]) == [0, 0]

    def test_large_surplus_cycles_in_priority_order(self):
        """7 cents over 3 slots: two each, the first in priority gets the extra."""
        assert repair_rounding([0, 0, 0], 7, [2, 0, 1]) == [2, 2, 3]

    def test_large_deficit_skips_emptied_slots(self):
        """Slot 0 runs dry after one cycle; slot 1 absorbs the rest."""
        assert repair_rounding([1, 5, 0], 2, [1, 0, 2]) == [0, 2, 0]

    def test_deficit_shorter_than_a_cycle(self):
        assert repair_rounding([4, 4, 4], 10, [2, 1, 0]) == [4, 3, 3]


class TestDeterminism:
    """Identical input gives identical output."""

    @pytest.mark.parametrize(
        "policy",
        [
            EqualPolicy(),
            ExactAmountsPolicy(amounts={"A": 333, "B": 333, "C": 334}),
            percentages(A="33.33", B="33.33", C="33.34"),
            SharesPolicy(shares={"A": 3, "B": 2, "C": 2}),
        ],
    )
    def test_same_arguments_same_allocation(self, policy):
        first = allocate(1000, ["A", "B", "C"], policy)
        second = allocate(1000, ["A", "B", "C"], policy)

        assert first == second
        assert first.model_dump_json() == second.model_dump_json()
