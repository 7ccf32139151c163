"""CLI for splitcents using Typer."""

import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import Settings, load_settings
from .engine.params import SplitParam, normalize_split_type, policy_from_params
from .engine.planner import summarize_settlements
from .engine.service import SplitService
from .exceptions import InputError, InvalidSplitParameterError, SplitValidationError
from .ledger import load_ledger
from .mcp_server import run_server
from .models import Allocation, SettlementInstruction, SplitKind
from .money import format_money, to_cents

app = typer.Typer(
    name="splitcents",
    help="Split shared expenses to the cent and suggest who pays whom",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def format_balance(cents: int, currency_code: str, use_color: bool = True) -> str:
    """
    Format a balance in accounting style.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    The spaces keep the digits aligned in tables.
    """
    formatted = format_money(abs(cents), currency_code)
    if cents < 0:
        return f"([red]{formatted}[/red])" if use_color else f"({formatted})"
    if use_color:
        return f" [green]{formatted}[/green] "
    return f" {formatted} "


def parse_params(
    split_kind: SplitKind, raw_params: list[str], currency_code: str
) -> list[SplitParam]:
    """
    Parse USER=VALUE pairs for a split.

    Values are amounts in major units for exact splits, percents for
    percentage splits and integer counts for share splits.
    """
    rows = []
    for raw in raw_params:
        user_id, sep, value = raw.partition("=")
        if not sep or not user_id.strip():
            raise InvalidSplitParameterError(
                f"Expected USER=VALUE, got {raw!r}"
            )
        user_id, value = user_id.strip(), value.strip()
        try:
            if split_kind is SplitKind.EXACT_AMOUNTS:
                rows.append(
                    SplitParam(
                        user_id=user_id,
                        amount_cents=to_cents(Decimal(value), currency_code),
                    )
                )
            elif split_kind is SplitKind.PERCENTAGES:
                rows.append(SplitParam(user_id=user_id, percent=Decimal(value)))
            elif split_kind is SplitKind.SHARES:
                rows.append(SplitParam(user_id=user_id, shares=int(value)))
        except (InvalidOperation, ValueError) as e:
            raise InvalidSplitParameterError(
                f"Invalid value for {user_id}: {value!r}"
            ) from e
    return rows


def display_allocation(allocation: Allocation, currency_code: str):
    """Display an allocation in a table."""
    table = Table(title="Allocation", show_header=True, header_style="bold magenta")
    table.add_column("Participant", style="cyan")
    table.add_column("Amount", justify="right", width=14)

    for entry in allocation.entries:
        table.add_row(entry.user_id, format_money(entry.amount_cents, currency_code))

    console.print(table)
    console.print(
        f"  Total: {format_money(allocation.total_cents, currency_code)}"
    )
    if allocation.allocated_cents == allocation.total_cents:
        console.print("  [green]✓ Allocation conserves every cent[/green]")
    else:
        console.print(
            f"  [red]✗ Total mismatch: allocated {allocation.allocated_cents}, "
            f"expected {allocation.total_cents}[/red]"
        )


def display_balances(balances: dict[str, int], currency_code: str):
    """Display net balances in a table."""
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Balance", justify="right", width=16)
    table.add_column("Status", style="dim")

    for user_id, cents in balances.items():
        if cents > 0:
            status = "is owed"
        elif cents < 0:
            status = "owes"
        else:
            status = "settled up"
        table.add_row(user_id, format_balance(cents, currency_code), status)

    console.print(table)


def display_plan(plan: list[SettlementInstruction], currency_code: str):
    """Display suggested payments and a summary."""
    if not plan:
        console.print("[green]Everyone is settled up. No payments needed.[/green]")
        return

    table = Table(
        title="Suggested Payments", show_header=True, header_style="bold magenta"
    )
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right", width=14)

    for instruction in plan:
        table.add_row(
            instruction.from_user,
            instruction.to_user,
            format_money(instruction.amount_cents, currency_code),
        )
    console.print(table)

    summary = summarize_settlements(plan)
    console.print()
    console.print("[bold]Summary:[/bold]")
    console.print(f"  Payments: {summary.total_transactions}")
    console.print(
        f"  Total moved: {format_money(summary.total_amount_cents, currency_code)}"
    )
    console.print(
        f"  Largest: {format_money(summary.largest_transaction_cents, currency_code)}"
    )


def _fail(e: Exception, verbose: bool):
    """Print an error and exit with status 1."""
    if isinstance(e, SplitValidationError):
        console.print("\n[bold yellow]⚠️  Invalid split:[/bold yellow]")
        for message in e.errors:
            console.print(f"  - {message}")
    elif isinstance(e, InputError):
        console.print(f"\n[bold yellow]⚠️  {e}[/bold yellow]\n")
    else:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise e
    sys.exit(1)


def _resolve_ledger(ledger: Path | None, settings: Settings) -> Path:
    path = ledger or settings.ledger_path
    if path is None:
        raise InvalidSplitParameterError(
            "No ledger given. Pass a path or set SPLITCENTS_LEDGER_PATH."
        )
    return path


@app.command()
def allocate(
    total: str = typer.Argument(..., help="Expense total in major units, e.g. 100.00"),
    split: str = typer.Option("equal", "--split", "-s", help="Split type"),
    participant: list[str] = typer.Option(
        ..., "--participant", "-p", help="Participant (repeat, in order)"
    ),
    param: list[str] = typer.Option(
        [], "--param", "-P", help="Per-user value as USER=VALUE (repeat)"
    ),
    currency: str | None = typer.Option(None, "--currency", help="Currency code"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Allocate an expense total among participants.

    Split types: equal, exact (amounts), percent, share.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = SplitService(settings)
        currency_code = (currency or settings.default_currency).upper()

        kind = normalize_split_type(split)
        total_cents = to_cents(Decimal(total), currency_code)
        policy = policy_from_params(kind, parse_params(kind, param, currency_code))

        allocation = service.allocate_split(total_cents, participant, policy)
        display_allocation(allocation, currency_code)

    except InvalidOperation:
        _fail(InvalidSplitParameterError(f"Invalid total: {total!r}"), verbose)
    except Exception as e:
        _fail(e, verbose)


@app.command()
def validate(
    total: str = typer.Argument(..., help="Expense total in major units"),
    split: str = typer.Option("equal", "--split", "-s", help="Split type"),
    participant: list[str] = typer.Option(
        [], "--participant", "-p", help="Participant (repeat, in order)"
    ),
    param: list[str] = typer.Option(
        [], "--param", "-P", help="Per-user value as USER=VALUE (repeat)"
    ),
    currency: str | None = typer.Option(None, "--currency", help="Currency code"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Check a split without allocating it."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = SplitService(settings)
        currency_code = (currency or settings.default_currency).upper()

        kind = normalize_split_type(split)
        total_cents = to_cents(Decimal(total), currency_code)
        policy = policy_from_params(kind, parse_params(kind, param, currency_code))

        errors = service.check_split(total_cents, policy, participant or None)
        if errors:
            raise SplitValidationError(errors)
        console.print("[bold green]✓ Split is valid[/bold green]")

    except InvalidOperation:
        _fail(InvalidSplitParameterError(f"Invalid total: {total!r}"), verbose)
    except Exception as e:
        _fail(e, verbose)


@app.command()
def balances(
    ledger: Path | None = typer.Argument(None, help="Ledger JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show each member's net balance from a ledger file."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = SplitService(settings)
        book = load_ledger(_resolve_ledger(ledger, settings))

        expenses = book.build_expenses(service)
        result = service.group_balances(expenses, book.settlements, book.members)
        display_balances(result, book.currency_code)

    except Exception as e:
        _fail(e, verbose)


@app.command()
def settle(
    ledger: Path | None = typer.Argument(None, help="Ledger JSON file"),
    optimize: bool = typer.Option(
        False, "--optimize", "-o", help="Merge payments between the same pair"
    ),
    min_amount: int | None = typer.Option(
        None,
        "--min-amount",
        help="With --optimize, drop payments below this many cents",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Suggest the payments that settle up a ledger."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        if min_amount is not None:
            settings = settings.model_copy(update={"min_settlement_cents": min_amount})
        service = SplitService(settings)
        book = load_ledger(_resolve_ledger(ledger, settings))

        expenses = book.build_expenses(service)
        result = service.group_balances(expenses, book.settlements, book.members)
        plan = service.suggest_settlements(
            result, optimize=optimize, currency_code=book.currency_code
        )
        display_plan(plan, book.currency_code)

    except Exception as e:
        _fail(e, verbose)


@app.command()
def mcp():
    """Start the MCP server."""
    run_server()


if __name__ == "__main__":
    app()
