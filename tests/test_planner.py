"""Tests for settlement planning, merging and summaries."""

import pytest

from splitcents.engine.planner import (
    describe_payment,
    optimize_settlements,
    plan_settlements,
    summarize_settlements,
)
from splitcents.engine.validation import validate_settlements
from splitcents.exceptions import ResidualBalanceError, StateInvariantError
from splitcents.models import SettlementInstruction


def triples(plan) -> list[tuple[str, str, int]]:
    """(from, to, amount) for each instruction."""
    return [(s.from_user, s.to_user, s.amount_cents) for s in plan]


def pay(from_user: str, to_user: str, amount_cents: int) -> SettlementInstruction:
    """Shorthand for a settlement instruction."""
    return SettlementInstruction(
        from_user=from_user, to_user=to_user, amount_cents=amount_cents
    )


class TestPlanSettlements:
    """Greedy largest-creditor / largest-debtor matching."""

    def test_one_creditor_two_debtors(self):
        plan = plan_settlements({"A": 500, "B": -300, "C": -200})

        assert triples(plan) == [("B", "A", 300), ("C", "A", 200)]

    def test_everyone_settled(self):
        assert plan_settlements({"A": 0, "B": 0}) == []

    def test_empty_balances(self):
        assert plan_settlements({}) == []

    def test_largest_debtor_first(self):
        plan = plan_settlements({"A": 1000, "B": -250, "C": -250, "D": -500})

        assert triples(plan) == [("D", "A", 500), ("B", "A", 250), ("C", "A", 250)]

    def test_debtor_split_across_creditors(self):
        plan = plan_settlements({"A": 700, "B": 300, "C": -600, "D": -400})

        assert triples(plan) == [("C", "A", 600), ("D", "A", 100), ("D", "B", 300)]

    def test_ties_keep_input_order(self):
        plan = plan_settlements({"A": 100, "B": 100, "C": -100, "D": -100})

        assert triples(plan) == [("C", "A", 100), ("D", "B", 100)]

    def test_descriptions(self):
        plan = plan_settlements({"A": 300, "B": -300}, currency_code="EUR")

        assert plan[0].description == "B pays A €3.00"

    def test_plan_cancels_balances(self):
        balances = {
            "A": 12345,
            "B": -5000,
            "C": 2655,
            "D": -9999,
            "E": 1,
            "F": -2,
            "G": 0,
        }
        assert sum(balances.values()) == 0

        plan = plan_settlements(balances)

        assert validate_settlements(plan, balances) == []
        assert all(s.amount_cents > 0 for s in plan)
        assert len(plan) <= 5

    def test_residual_is_an_error(self):
        with pytest.raises(ResidualBalanceError) as exc_info:
            plan_settlements({"A": 500, "B": -300})

        assert isinstance(exc_info.value, StateInvariantError)
        assert exc_info.value.residuals == {"A": 200}

    def test_deterministic(self):
        balances = {"A": 400, "B": -150, "C": -150, "D": -100}

        assert plan_settlements(balances) == plan_settlements(balances)


class TestOptimizeSettlements:
    """Merging payments between the same pair."""

    def test_same_direction_added(self):
        result = optimize_settlements([pay("A", "B", 100), pay("A", "B", 50)])

        assert triples(result) == [("A", "B", 150)]

    def test_opposite_directions_netted(self):
        result = optimize_settlements(
            [
                pay("A", "B", 100),
                pay("A", "B", 50),
                pay("B", "A", 30),
                pay("C", "D", 20),
            ]
        )

        assert triples(result) == [("A", "B", 120), ("C", "D", 20)]

    def test_reverse_direction_wins(self):
        result = optimize_settlements([pay("A", "B", 30), pay("B", "A", 100)])

        assert triples(result) == [("B", "A", 70)]
        assert result[0].description == "B pays A $0.70"

    def test_cancelling_pair_removed(self):
        result = optimize_settlements([pay("A", "B", 40), pay("B", "A", 40)])

        assert result == []

    def test_small_payments_dropped(self):
        result = optimize_settlements(
            [pay("A", "B", 100), pay("C", "D", 20)], min_amount_cents=50
        )

        assert triples(result) == [("A", "B", 100)]


class TestSummarizeSettlements:
    """Plan statistics."""

    def test_empty(self):
        summary = summarize_settlements([])

        assert summary.total_transactions == 0
        assert summary.total_amount_cents == 0

    def test_counts_and_range(self):
        summary = summarize_settlements([pay("B", "A", 300), pay("C", "A", 200)])

        assert summary.total_transactions == 2
        assert summary.total_amount_cents == 500
        assert summary.average_transaction_cents == 250
        assert summary.largest_transaction_cents == 300
        assert summary.smallest_transaction_cents == 200

    def test_average_rounds_half_up(self):
        summary = summarize_settlements([pay("B", "A", 1), pay("C", "A", 2)])

        assert summary.average_transaction_cents == 2


def test_describe_payment_jpy():
    assert describe_payment("B", "A", 1500, "JPY") == "B pays A ¥1,500"
