"""CLI for split-ledger using Typer."""

import logging
import sys
from decimal import Decimal, InvalidOperation

import typer
from rich.console import Console
from rich.table import Table

from .calculator import calculate_splits
from .config import load_settings
from .db import Database
from .demo import DEMO_SCENARIOS
from .exceptions import InvalidSplitInputError, NotFoundError, NotGroupMemberError
from .format import format_money, format_percentage
from .models import GroupMember, Participant, Split, SplitOptions, UserBalance
from .service import LedgerService
from .summary import summarize_splits
from .ui import confirm_action, select_member_interactive
from .validator import validate_splits

app = typer.Typer(
    name="split-ledger",
    help="Split shared expenses fairly and track who owes whom",
)

console = Console()

EXPECTED_ERRORS = (InvalidSplitInputError, NotFoundError, NotGroupMemberError)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def parse_amount(value: str) -> Decimal:
    """Parse a decimal amount from the command line."""
    try:
        return Decimal(value)
    except InvalidOperation:
        raise typer.BadParameter(f"Not a valid amount: {value}") from None


def parse_participant(value: str) -> Participant:
    """Parse "user_id" or "user_id:Name"."""
    user_id, _, name = value.partition(":")
    if not user_id:
        raise typer.BadParameter(f"Missing user ID in '{value}'")
    return Participant(user_id=user_id, name=name or user_id)


def parse_member(value: str) -> GroupMember:
    """Parse "user_id", "user_id:Name" or "user_id:Name:email"."""
    user_id, _, rest = value.partition(":")
    name, _, email = rest.partition(":")
    if not user_id:
        raise typer.BadParameter(f"Missing user ID in '{value}'")
    return GroupMember(user_id=user_id, name=name or user_id, email=email or None)


def parse_shares(values: list[str]) -> dict[str, Decimal]:
    """Parse repeated "user_id=value" options."""
    shares = {}
    for value in values:
        user_id, sep, amount = value.partition("=")
        if not sep or not user_id:
            raise typer.BadParameter(f"Expected user_id=value, got '{value}'")
        shares[user_id] = parse_amount(amount)
    return shares


def display_splits(
    splits: list[Split],
    total: Decimal,
    precision: int = 2,
    currency: str = "INR",
    names: dict[str, str] | None = None,
    title: str = "Splits",
):
    """Display a split set with its summary and validity."""
    names = names or {}
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Participant", style="cyan")
    table.add_column("Amount", justify="right", width=14)
    table.add_column("Share", justify="right", width=9)
    table.add_column("Adjusted", justify="center", style="yellow", width=8)

    for split in splits:
        table.add_row(
            names.get(split.user_id, split.user_id),
            format_money(split.amount, precision=precision, currency=currency),
            format_percentage(split.percentage),
            "✓" if split.is_adjusted else "",
        )

    console.print(table)

    summary = summarize_splits(splits, total, precision=precision)
    console.print(
        f"  Total: {format_money(total, precision=precision, currency=currency)}"
    )
    console.print(
        f"  Split: {format_money(summary.total_split, precision=precision, currency=currency)}"
    )
    console.print(f"  Adjusted participants: {summary.adjusted_count}")
    if summary.is_balanced and validate_splits(splits, total, precision=precision):
        console.print("  [green]✓ Totals match (no rounding errors)[/green]")
    else:
        console.print(f"  [red]✗ Total mismatch: difference {summary.difference}[/red]")


def display_balance(balance: UserBalance, currency: str = "INR"):
    """Display a user's balance in a table."""
    table = Table(
        title=f"Balance for {balance.user_id}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Group", style="cyan")
    table.add_column("Paid", justify="right", width=14)
    table.add_column("Owed", justify="right", width=14)
    table.add_column("Net", justify="right", width=14)

    for group_balance in balance.group_balances.values():
        table.add_row(
            group_balance.group_name,
            format_money(group_balance.paid, currency=currency),
            format_money(group_balance.owed, currency=currency),
            format_money(group_balance.net, currency=currency),
        )

    console.print(table)
    console.print(
        f"  Total paid: {format_money(balance.total_paid, currency=currency)}"
    )
    console.print(
        f"  Total owed: {format_money(balance.total_owed, currency=currency)}"
    )
    console.print(f"  Net: {format_money(balance.net_balance, currency=currency)}")
    if balance.net_balance > 0:
        console.print("  [green]You are owed money[/green]")
    elif balance.net_balance < 0:
        console.print("  [red]You owe money[/red]")
    else:
        console.print("  [dim]All settled up[/dim]")


def _fail(e: Exception, verbose: bool):
    """Report an error and exit."""
    if isinstance(e, EXPECTED_ERRORS):
        console.print(f"\n[bold yellow]⚠️  {e}[/bold yellow]\n")
    else:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise e
    sys.exit(1)


@app.command()
def split(
    amount: str = typer.Argument(..., help="Total amount to split"),
    participants: list[str] = typer.Option(
        [], "--participant", "-p", help="Participant as user_id[:Name], repeatable"
    ),
    split_type: str = typer.Option(
        "equal", "--type", "-t", help="equal, percentage or custom"
    ),
    shares: list[str] = typer.Option(
        [], "--share", "-s", help="user_id=value for percentage/custom splits"
    ),
    rounding: str = typer.Option(
        None, "--rounding", "-r", help="distribute, largest or smallest"
    ),
    precision: int = typer.Option(None, "--precision", help="Decimal digits"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Split an amount among participants and show the result.

    Example: split-ledger split 10 -p alice -p bob -p carol
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        parsed = [parse_participant(p) for p in participants]
        share_map = parse_shares(shares)
        digits = settings.default_precision if precision is None else precision

        options = SplitOptions(
            total_amount=parse_amount(amount),
            participants=parsed,
            split_type=split_type,
            custom_amounts=share_map if split_type == "custom" else None,
            custom_percentages=share_map if split_type == "percentage" else None,
            precision=digits,
            rounding_strategy=rounding or settings.default_rounding_strategy,
        )
        splits = calculate_splits(options)

        display_splits(
            splits,
            options.total_amount,
            precision=digits,
            currency=settings.currency_code,
            names={p.user_id: p.name for p in parsed},
        )

    except typer.BadParameter:
        raise
    except Exception as e:
        _fail(e, verbose)


@app.command()
def demo(
    rounding: str = typer.Option(
        "distribute", "--rounding", "-r", help="distribute, largest or smallest"
    ),
    precision: int = typer.Option(2, "--precision", help="Decimal digits"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Run the built-in rounding edge-case scenarios."""
    setup_logging(verbose)

    try:
        for scenario in DEMO_SCENARIOS:
            console.print(f"\n[bold blue]{scenario.name}[/bold blue]")
            console.print(f"[dim]{scenario.description}[/dim]")
            splits = calculate_splits(
                scenario.to_options(rounding_strategy=rounding, precision=precision)
            )
            display_splits(
                splits,
                scenario.total_amount,
                precision=precision,
                names={p.user_id: p.name for p in scenario.participants},
            )
    except Exception as e:
        _fail(e, verbose)


@app.command("group-create")
def group_create(
    name: str = typer.Argument(..., help="Group name"),
    creator: str = typer.Option(
        ..., "--creator", "-c", help="Creator as user_id[:Name[:email]]"
    ),
    members: list[str] = typer.Option(
        [], "--member", "-m", help="Member as user_id[:Name[:email]], repeatable"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create an expense-sharing group."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        group = service.create_group(
            name, parse_member(creator), [parse_member(m) for m in members]
        )

        console.print(f"\n[bold green]✓ Created group '{group.name}'[/bold green]")
        console.print(f"[green]Group ID: {group.id}[/green]\n")

    except typer.BadParameter:
        raise
    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command("group-show")
def group_show(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show a group's members, expenses and settlements."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        group = service.get_group(group_id)
        names = {m.user_id: m.name for m in group.members}
        currency = settings.currency_code

        console.print(f"\n[bold]{group.name}[/bold] [dim]({group.id})[/dim]")
        console.print(
            "  Members: "
            + ", ".join(f"{m.name} ({m.role})" for m in group.members)
        )

        expenses_table = Table(
            title="Expenses", show_header=True, header_style="bold magenta"
        )
        expenses_table.add_column("ID", style="dim", width=10)
        expenses_table.add_column("Date", width=10)
        expenses_table.add_column("Description", style="cyan", width=30)
        expenses_table.add_column("Paid by")
        expenses_table.add_column("Amount", justify="right", width=14)
        for expense in service.get_group_expenses(group_id):
            expenses_table.add_row(
                expense.id[:8],
                str(expense.date.date()),
                expense.description,
                names.get(expense.paid_by, expense.paid_by),
                format_money(expense.amount, currency=currency),
            )
        console.print(expenses_table)

        settlements_table = Table(
            title="Settlements", show_header=True, header_style="bold magenta"
        )
        settlements_table.add_column("ID", style="dim", width=10)
        settlements_table.add_column("Date", width=10)
        settlements_table.add_column("From")
        settlements_table.add_column("To")
        settlements_table.add_column("Amount", justify="right", width=14)
        for settlement in service.get_group_settlements(group_id):
            settlements_table.add_row(
                settlement.id[:8],
                str(settlement.date.date()),
                names.get(settlement.from_user, settlement.from_user),
                names.get(settlement.to_user, settlement.to_user),
                format_money(settlement.amount, currency=currency),
            )
        console.print(settlements_table)

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command("expense-add")
def expense_add(
    group_id: str = typer.Argument(..., help="Group ID"),
    amount: str = typer.Argument(..., help="Total amount"),
    description: str = typer.Argument(..., help="What the expense was for"),
    paid_by: str = typer.Option(
        None, "--paid-by", help="Payer user ID (prompted if omitted)"
    ),
    participants: list[str] = typer.Option(
        [], "--participant", "-p", help="Participant user ID (default: all members)"
    ),
    split_type: str = typer.Option(
        "equal", "--type", "-t", help="equal, percentage or custom"
    ),
    shares: list[str] = typer.Option(
        [], "--share", "-s", help="user_id=value for percentage/custom splits"
    ),
    rounding: str = typer.Option(
        None, "--rounding", "-r", help="distribute, largest or smallest"
    ),
    category: str = typer.Option(None, "--category", help="Category label"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a shared expense to a group."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        group = service.get_group(group_id)
        if not paid_by:
            console.print("\n[bold blue]Who paid?[/bold blue]")
            paid_by = select_member_interactive(group.members)
            if not paid_by:
                console.print("[yellow]No payer selected.[/yellow]")
                return

        share_map = parse_shares(shares)
        expense = service.add_expense(
            group_id=group_id,
            description=description,
            amount=parse_amount(amount),
            paid_by=paid_by,
            participant_ids=participants or None,
            split_type=split_type,
            custom_amounts=share_map if split_type == "custom" else None,
            custom_percentages=share_map if split_type == "percentage" else None,
            rounding_strategy=rounding,
            category=category,
        )

        splits = [
            Split(
                user_id=s.user_id,
                amount=s.amount,
                percentage=s.amount * 100 / expense.amount,
                is_adjusted=s.is_adjusted,
            )
            for s in expense.splits
        ]
        display_splits(
            splits,
            expense.amount,
            precision=settings.default_precision,
            currency=settings.currency_code,
            names={m.user_id: m.name for m in group.members},
            title=expense.description,
        )
        console.print(f"\n[bold green]✓ Expense added: {expense.id}[/bold green]\n")

    except typer.BadParameter:
        raise
    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command("expense-delete")
def expense_delete(
    group_id: str = typer.Argument(..., help="Group ID"),
    expense_id: str = typer.Argument(..., help="Expense ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete an expense and its splits."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        if not yes and not confirm_action(f"Delete expense {expense_id}?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        service.delete_expense(group_id, expense_id)
        console.print(f"\n[bold green]✓ Deleted expense {expense_id}[/bold green]\n")

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def settle(
    group_id: str = typer.Argument(..., help="Group ID"),
    from_user: str = typer.Argument(..., help="User ID paying"),
    to_user: str = typer.Argument(..., help="User ID receiving"),
    amount: str = typer.Argument(..., help="Amount paid"),
    expense_ids: list[str] = typer.Option(
        [], "--expense", "-e", help="Expense ID this settles, repeatable"
    ),
    notes: str = typer.Option(None, "--notes", help="Optional note"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record a payment between two group members."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        settlement = service.record_settlement(
            group_id=group_id,
            from_user=from_user,
            to_user=to_user,
            amount=parse_amount(amount),
            related_expense_ids=expense_ids,
            notes=notes,
        )
        console.print(
            f"\n[bold green]✓ Recorded settlement {settlement.id}[/bold green]\n"
        )

    except typer.BadParameter:
        raise
    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def balance(
    user_id: str = typer.Argument(..., help="User ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show how much a user has paid and owes across their groups."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        user_balance = service.get_user_balance(user_id)
        if user_balance is None:
            console.print(f"[yellow]No shared expenses found for {user_id}.[/yellow]")
            return

        display_balance(user_balance, currency=settings.currency_code)

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


if __name__ == "__main__":
    app()
