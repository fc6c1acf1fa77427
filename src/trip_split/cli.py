"""CLI for TripSplit using Typer."""

import logging
import sys
from decimal import Decimal

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import load_settings
from .db import Database
from .debts import compute_balances
from .models import Debt, Group
from .service import GroupService, find_person_name
from .ui import select_person_interactive

app = typer.Typer(
    name="trip-split",
    help="Track shared trip expenses and settle who owes whom",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _open_service() -> tuple[GroupService, Database]:
    settings = load_settings()
    db = Database(settings.database_path)
    try:
        return GroupService(db, settings), db
    except Exception:
        db.close()
        raise


def _fail(e: Exception, verbose: bool):
    console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")
    if verbose:
        raise e
    sys.exit(1)


def format_money(amount: Decimal, symbol: str = "$", use_color: bool = True) -> str:
    """
    Format money in accounting style.

    Negative amounts use parentheses: ($85.02)
    Positive amounts are plain:        $85.02
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"({symbol}[red]{abs_amount:,.2f}[/red])"
        return f"({symbol}{abs_amount:,.2f})"
    if use_color:
        return f"[green]{symbol}{abs_amount:,.2f}[/green]"
    return f"{symbol}{abs_amount:,.2f}"


def format_debt(group: Group, debt: Debt, symbol: str = "$") -> str:
    """Render a debt as an "X owes Y $Z" line."""
    return (
        f"{find_person_name(group, debt.from_person_id)} owes "
        f"{find_person_name(group, debt.to_person_id)} "
        f"{symbol}{debt.amount:.2f}"
    )


def display_debts(group: Group, debts: list[Debt], symbol: str = "$"):
    """Display the settlements for a group."""
    console.print("\n[bold]Settlements:[/bold]")
    if not debts:
        console.print("  [dim]No debts to settle. Add some transactions first![/dim]")
        return

    for debt in debts:
        console.print(f"  {format_debt(group, debt, symbol)}")


def display_group(group: Group, debts: list[Debt], symbol: str = "$"):
    """Display people, transactions and settlements of a group."""
    console.print(f"\n[bold]{group.name}[/bold] [dim]({group.id})[/dim]")

    balances = compute_balances(group.people, debts)
    people = Table(title="People", show_header=True, header_style="bold magenta")
    people.add_column("ID", style="dim", width=10)
    people.add_column("Name", style="cyan")
    people.add_column("Balance", justify="right", width=14)
    for person in group.people:
        people.add_row(
            person.id[:8], person.name, format_money(balances[person.id], symbol)
        )
    console.print(people)

    table = Table(title="Transactions", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=10)
    table.add_column("Date", width=16)
    table.add_column("Description", style="cyan", width=30)
    table.add_column("Paid by", style="yellow")
    table.add_column("Split between", no_wrap=False)
    table.add_column("Amount", justify="right", width=12)

    for transaction in group.transactions:
        desc = transaction.description
        if transaction.location:
            desc = f"{desc} [dim]@ {transaction.location}[/dim]"
        table.add_row(
            transaction.id[:8],
            transaction.date,
            desc,
            find_person_name(group, transaction.paid_by_id),
            ", ".join(find_person_name(group, p) for p in transaction.participants),
            format_money(transaction.amount, symbol),
        )
    console.print(table)

    display_debts(group, debts, symbol)


def _resolve_ids(service: GroupService, group: Group, references: list[str]) -> list[str]:
    return [service.resolve_person(group, ref).id for ref in references]


@app.command()
def groups(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List all groups."""
    setup_logging(verbose)

    try:
        service, db = _open_service()

        all_groups = service.list_groups()
        if not all_groups:
            console.print("[yellow]No groups yet. Create one with new-group.[/yellow]")
            return

        table = Table(title="Groups", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Name", style="cyan")
        table.add_column("People", justify="right")
        table.add_column("Transactions", justify="right")
        for group in all_groups:
            table.add_row(
                group.id,
                group.name,
                str(len(group.people)),
                str(len(group.transactions)),
            )
        console.print(table)

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command("new-group")
def new_group(
    name: str = typer.Argument(..., help="Name of the trip or group"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a new group."""
    setup_logging(verbose)

    try:
        service, db = _open_service()
        group_id = service.add_group(name)
        console.print(f"[green]✓ Created group '{name.strip()}'[/green] ({group_id})")

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command("delete-group")
def delete_group(
    group_id: str = typer.Argument(..., help="Group ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a group with all its people and transactions."""
    setup_logging(verbose)

    try:
        service, db = _open_service()
        group = service.require_group(group_id)

        if not yes and not typer.confirm(
            f"Delete '{group.name}' and its {len(group.transactions)} transactions?"
        ):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        service.delete_group(group_id)
        console.print(f"[green]✓ Deleted group '{group.name}'[/green]")

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command("add-person")
def add_person(
    group_id: str = typer.Argument(..., help="Group ID"),
    name: str = typer.Argument(..., help="Name of the person"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a person to a group."""
    setup_logging(verbose)

    try:
        service, db = _open_service()
        person_id = service.add_person(group_id, name)
        console.print(f"[green]✓ Added {name.strip()}[/green] ({person_id})")

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command("add-transaction")
def add_transaction(
    group_id: str = typer.Argument(..., help="Group ID"),
    description: str = typer.Option(..., "--description", "-d", help="What it was for"),
    amount: str = typer.Option(..., "--amount", "-a", help="Total amount paid"),
    paid_by: str | None = typer.Option(
        None, "--paid-by", help="Name or ID of the payer (prompted if omitted)"
    ),
    participants: list[str] | None = typer.Option(
        None,
        "--participant",
        "-p",
        help="Name or ID of someone sharing the expense (repeatable, default: everyone)",
    ),
    date: str | None = typer.Option(None, "--date", help="When it happened (default: today)"),
    location: str | None = typer.Option(None, "--location", help="Where it happened"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Record a new shared expense.

    The amount is split evenly between all participants. Without --participant,
    everyone in the group shares the expense.
    """
    setup_logging(verbose)

    try:
        service, db = _open_service()
        group = service.require_group(group_id)

        if paid_by:
            paid_by_id = service.resolve_person(group, paid_by).id
        else:
            console.print(f"\n[bold]Who paid for '{description}'?[/bold]")
            selected = select_person_interactive(list(group.people))
            if selected is None:
                console.print("[yellow]No payer selected.[/yellow]")
                return
            paid_by_id = selected

        if participants:
            participant_ids = _resolve_ids(service, group, participants)
        else:
            participant_ids = [person.id for person in group.people]

        transaction_id = service.add_transaction(
            group_id,
            description=description,
            amount=amount,
            paid_by_id=paid_by_id,
            participants=participant_ids,
            date=date,
            location=location,
        )
        console.print(f"[green]✓ Added transaction[/green] ({transaction_id})")

        group = service.require_group(group_id)
        display_debts(group, service.calculate_debts(group_id), service.settings.currency_symbol)

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command("edit-transaction")
def edit_transaction(
    group_id: str = typer.Argument(..., help="Group ID"),
    transaction_id: str = typer.Argument(..., help="Transaction ID"),
    description: str | None = typer.Option(None, "--description", "-d"),
    amount: str | None = typer.Option(None, "--amount", "-a"),
    paid_by: str | None = typer.Option(None, "--paid-by", help="Name or ID of the payer"),
    participants: list[str] | None = typer.Option(
        None, "--participant", "-p", help="Replaces the participant list (repeatable)"
    ),
    date: str | None = typer.Option(None, "--date"),
    location: str | None = typer.Option(None, "--location"),
    clear_location: bool = typer.Option(
        False, "--clear-location", help="Remove the stored location"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Change fields of an existing transaction."""
    setup_logging(verbose)

    try:
        service, db = _open_service()
        group = service.require_group(group_id)

        options = {
            "description": description,
            "amount": amount,
            "date": date,
            "location": location,
        }
        changes = {k: v for k, v in options.items() if v is not None}
        if clear_location:
            changes["location"] = None
        if paid_by:
            changes["paid_by_id"] = service.resolve_person(group, paid_by).id
        if participants:
            changes["participants"] = _resolve_ids(service, group, participants)

        updated = service.edit_transaction(group_id, transaction_id, **changes)
        console.print(f"[green]✓ Updated '{updated.description}'[/green]")

        group = service.require_group(group_id)
        display_debts(group, service.calculate_debts(group_id), service.settings.currency_symbol)

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command("delete-transaction")
def delete_transaction(
    group_id: str = typer.Argument(..., help="Group ID"),
    transaction_id: str = typer.Argument(..., help="Transaction ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a transaction from a group."""
    setup_logging(verbose)

    try:
        service, db = _open_service()
        service.delete_transaction(group_id, transaction_id)
        console.print("[green]✓ Deleted transaction[/green]")

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def show(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show a group's people, transactions and settlements."""
    setup_logging(verbose)

    try:
        service, db = _open_service()
        group = service.require_group(group_id)
        display_group(group, service.calculate_debts(group_id), service.settings.currency_symbol)

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def debts(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show who owes whom in a group."""
    setup_logging(verbose)

    try:
        service, db = _open_service()
        group = service.require_group(group_id)
        display_debts(group, service.calculate_debts(group_id), service.settings.currency_symbol)

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


if __name__ == "__main__":
    app()
