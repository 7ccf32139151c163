"""MCP server for splitcents: splitting and settle-up as tools."""

import logging
from decimal import Decimal
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .config import load_settings
from .engine.params import policy_from_params, split_summary_text
from .engine.planner import summarize_settlements
from .engine.service import SplitService
from .exceptions import SplitCentsError
from .ledger import Ledger, load_ledger
from .money import format_money, to_cents

logger = logging.getLogger(__name__)

mcp_app = FastMCP("splitcents")

WORKFLOW_INSTRUCTIONS = """\
You are helping a group split shared expenses. Follow this workflow:

1. SPLIT: When the user describes an expense, decide the split type
   (equal, exact, percent or share) and call validate_split_params first.
   If it reports problems, show them to the user verbatim and ask for fixes.

2. ALLOCATE: Once valid, call allocate_split and show the per-person amounts.
   The amounts always add up to the total exactly.

3. BALANCES: To explain who owes what, call explain_balances with the
   group's ledger file.

4. SETTLE UP: Call suggest_settlement to get the payments that clear every
   balance. Use optimize=true to merge payments between the same two people.

Amounts are in the group's currency. Positive balance = is owed money, \
negative balance = owes money.\
"""

_service: SplitService | None = None


def _ensure_service() -> SplitService:
    """Lazily initialize the SplitService (loads .env config)."""
    global _service
    if _service is None:
        _service = SplitService(load_settings())
    return _service


def _load(ledger_path: str | None) -> Ledger:
    path = ledger_path or _ensure_service().settings.ledger_path
    if not path:
        raise SplitCentsError(
            "No ledger path given and SPLITCENTS_LEDGER_PATH is not set."
        )
    return load_ledger(Path(path))


# ---------------------------------------------------------------------------
# MCP Tools
# ---------------------------------------------------------------------------


@mcp_app.tool()
def validate_split_params(
    total: str,
    participants: list[str],
    split_type: str = "equal",
    splits: list[dict] | None = None,
    currency_code: str | None = None,
) -> str:
    """Check a proposed split and report any problems.

    Args:
        total: Expense total in major units, e.g. "42.50".
        participants: User ids sharing the expense, in order.
        split_type: equal, exact, percent or share.
        splits: Rows of {user_id, amount_cents | percent | shares}.
        currency_code: Defaults to the configured currency.
    """
    try:
        service = _ensure_service()
        currency = currency_code or service.settings.default_currency
        total_cents = to_cents(Decimal(total), currency)
        policy = policy_from_params(split_type, splits)

        errors = service.check_split(total_cents, policy, participants)
        if errors:
            return "Split is invalid:\n" + "\n".join(f"  - {e}" for e in errors)
        return "Split is valid: " + split_summary_text(
            policy, len(participants), total_cents, currency
        )
    except SplitCentsError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to validate split: {e}"


@mcp_app.tool()
def allocate_split(
    total: str,
    participants: list[str],
    split_type: str = "equal",
    splits: list[dict] | None = None,
    currency_code: str | None = None,
) -> str:
    """Allocate an expense total into exact per-person amounts.

    Args:
        total: Expense total in major units, e.g. "42.50".
        participants: User ids sharing the expense, in order.
        split_type: equal, exact, percent or share.
        splits: Rows of {user_id, amount_cents | percent | shares}.
        currency_code: Defaults to the configured currency.
    """
    try:
        service = _ensure_service()
        currency = currency_code or service.settings.default_currency
        total_cents = to_cents(Decimal(total), currency)
        policy = policy_from_params(split_type, splits)

        allocation = service.allocate_split(total_cents, participants, policy)

        lines = [split_summary_text(policy, len(participants), total_cents, currency)]
        for entry in allocation.entries:
            lines.append(
                f"  - {entry.user_id}: {format_money(entry.amount_cents, currency)}"
            )
        return "\n".join(lines)
    except SplitCentsError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to allocate split: {e}"


@mcp_app.tool()
def explain_balances(ledger_path: str | None = None) -> str:
    """Explain each member's net balance in a group ledger.

    Args:
        ledger_path: Path to the ledger JSON file (defaults to configured path).
    """
    try:
        service = _ensure_service()
        ledger = _load(ledger_path)
        expenses = ledger.build_expenses(service)
        balances = service.group_balances(
            expenses, ledger.settlements, ledger.members
        )

        currency = ledger.currency_code
        lines = [
            f"Balances ({len(expenses)} expenses, "
            f"{len(ledger.settlements)} recorded payments):"
        ]
        for user_id, cents in balances.items():
            if cents > 0:
                lines.append(f"  - {user_id} is owed {format_money(cents, currency)}")
            elif cents < 0:
                lines.append(f"  - {user_id} owes {format_money(-cents, currency)}")
            else:
                lines.append(f"  - {user_id} is settled up")
        return "\n".join(lines)
    except SplitCentsError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to explain balances: {e}"


@mcp_app.tool()
def suggest_settlement(ledger_path: str | None = None, optimize: bool = False) -> str:
    """Suggest the payments that settle up a group ledger.

    Args:
        ledger_path: Path to the ledger JSON file (defaults to configured path).
        optimize: Merge payments between the same two people.
    """
    try:
        service = _ensure_service()
        ledger = _load(ledger_path)
        expenses = ledger.build_expenses(service)
        balances = service.group_balances(
            expenses, ledger.settlements, ledger.members
        )
        plan = service.suggest_settlements(
            balances, optimize=optimize, currency_code=ledger.currency_code
        )

        if not plan:
            return "Everyone is settled up. No payments needed."

        summary = summarize_settlements(plan)
        lines = ["Suggested payments:"]
        lines.extend(f"  - {instruction.description}" for instruction in plan)
        lines.append("")
        lines.append(
            f"{summary.total_transactions} payments, "
            f"{format_money(summary.total_amount_cents, ledger.currency_code)} total"
        )
        return "\n".join(lines)
    except SplitCentsError as e:
        return f"Error: {e}"
    except Exception as e:
        return f"Failed to suggest settlement: {e}"


# ---------------------------------------------------------------------------
# MCP Prompt
# ---------------------------------------------------------------------------


@mcp_app.prompt()
def settle_up_workflow() -> str:
    """Orchestration instructions for splitting expenses and settling up."""
    return WORKFLOW_INSTRUCTIONS


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run_server():
    """Start the MCP server (stdio transport)."""
    mcp_app.run(transport="stdio")
