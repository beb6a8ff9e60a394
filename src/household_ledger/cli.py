"""CLI for Household Ledger."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .categories import CategoryService
from .config import Settings, load_settings
from .db import Database
from .exceptions import LedgerError, SplitValidationError
from .households import HouseholdDirectory
from .models import (
    ShareInput,
    SplitMode,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
)
from .money import to_decimal
from .split.batch import BatchResult
from .split.service import LedgerService
from .state import LedgerState
from .stats import month_range, monthly_stats, recent_transactions, top_categories
from .ui import category_label, select_category_interactive

app = typer.Typer(
    name="household-ledger",
    help="Track personal and household income and expenses",
)
tx_app = typer.Typer(help="Record, edit and list transactions")
household_app = typer.Typer(help="Manage households and members")
category_app = typer.Typer(help="Manage categories")

app.add_typer(tx_app, name="tx")
app.add_typer(household_app, name="household")
app.add_typer(category_app, name="category")

console = Console()

VERBOSE = typer.Option(False, "--verbose", "-v", help="Verbose output")


def setup_logging(verbose: bool = False, level: str = "WARNING"):
    """Setup logging configuration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )


@dataclass
class Ledger:
    """Everything a command needs, wired together once per invocation."""

    settings: Settings
    db: Database
    state: LedgerState = field(default_factory=LedgerState)

    def __post_init__(self):
        self.households = HouseholdDirectory(self.db)
        self.categories = CategoryService(self.db)
        self.service = LedgerService(self.db, self.households, self.state)

    def household(self, household_id: str | None) -> str | None:
        return household_id or self.settings.default_household_id


@contextmanager
def ledger_session(verbose: bool = False) -> Iterator[Ledger]:
    """Open the ledger and report errors the way every command does."""
    db = None
    try:
        settings = load_settings()
        setup_logging(verbose, settings.log_level)
        db = Database(settings.database_path)
        yield Ledger(settings=settings, db=db)
    except LedgerError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


# ============================================================================
# Formatting
# ============================================================================


def format_money(amount: Decimal, kind: str = "expense", use_color: bool = True) -> str:
    """
    Format money in accounting style.

    Expenses use parentheses: ($85.02)
    Income has spaces:         $85.02
    """
    if kind == "expense":
        return f"($[red]{amount:,.2f}[/red])" if use_color else f"(${amount:,.2f})"
    return f" [green]${amount:,.2f}[/green] " if use_color else f" ${amount:,.2f} "


def display_transactions(ledger: Ledger, transactions: list[Transaction], title: str):
    """Display transactions in a table."""
    categories = {c.id: c for c in ledger.state.categories}

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=10)
    table.add_column("Date", width=10)
    table.add_column("Description", style="cyan", width=32)
    table.add_column("Amount", justify="right", width=14)
    table.add_column("Category", style="yellow")
    table.add_column("Owner", style="dim")
    table.add_column("Split", style="dim")

    for t in transactions:
        category = categories.get(t.category_id)
        if t.is_split_portion:
            split = f"portion of {t.main_transaction_id[:8]}"
        elif t.split_info:
            split = f"{len(t.split_info)} members"
        else:
            split = ""
        desc = t.description
        table.add_row(
            t.id[:8],
            t.date.strftime("%Y-%m-%d"),
            desc[:32] + "..." if len(desc) > 32 else desc,
            format_money(t.amount, t.kind),
            category_label(category) if category else "[dim]Unknown[/dim]",
            t.user_id,
            split,
        )

    console.print(table)


def report_portions(result: BatchResult):
    """Print the outcome of split portion writes."""
    if not result.outcomes:
        return
    if result.ok:
        console.print(f"[green]Split portions: {result.summary()}[/green]")
        return
    console.print(f"[yellow]Split portions: {result.summary()}[/yellow]")
    for failure in result.failures:
        console.print(
            f"  [red]✗ {failure.action} {failure.target}: {failure.error}[/red]"
        )


def _parse_shares(raw_shares: list[str]) -> list[ShareInput]:
    """Parse ``member=amount`` pairs."""
    shares = []
    for raw in raw_shares:
        member, sep, amount = raw.partition("=")
        if not sep:
            raise SplitValidationError(f"Expected MEMBER=AMOUNT, got {raw!r}")
        shares.append(ShareInput.parse(member.strip(), amount))
    return shares


def _split_request(
    ledger: Ledger,
    household_id: str | None,
    shares: list[str] | None,
    split_equal: bool,
) -> tuple[list[ShareInput] | None, SplitMode]:
    if split_equal:
        if not household_id:
            raise SplitValidationError("--split-equal needs a household")
        return ledger.service.household_shares(household_id), SplitMode.EQUAL
    if shares:
        return _parse_shares(shares), SplitMode.MANUAL
    return None, SplitMode.MANUAL


# ============================================================================
# Transactions
# ============================================================================


@tx_app.command("add")
def add_transaction(
    amount: str = typer.Argument(..., help="Amount, e.g. 42.50"),
    description: str = typer.Argument(..., help="What it was for"),
    income: bool = typer.Option(False, "--income", help="Record income"),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    date: Optional[datetime] = typer.Option(
        None, "--date", "-d", formats=["%Y-%m-%d"]
    ),
    household: Optional[str] = typer.Option(None, "--household", "-h"),
    share: Optional[List[str]] = typer.Option(
        None, "--share", "-s", help="MEMBER=AMOUNT, repeatable"
    ),
    split_equal: bool = typer.Option(
        False, "--split-equal", help="Split equally across the household"
    ),
    verbose: bool = VERBOSE,
):
    """Record a transaction, optionally split across household members."""
    with ledger_session(verbose) as ledger:
        user_id = ledger.settings.user_id
        household_id = ledger.household(household)

        if category is None:
            category = select_category_interactive(
                ledger.categories.list_categories(user_id), description
            )

        split_info, mode = _split_request(ledger, household_id, share, split_equal)
        draft = TransactionDraft(
            amount=to_decimal(amount),
            description=description,
            date=date or datetime.now(),
            category_id=category or "",
            user_id=user_id,
            kind="income" if income else "expense",
            household_id=household_id,
            split_info=split_info,
            split_mode=mode,
        )
        main, result = ledger.service.create_transaction(draft)

        console.print(f"\n[bold green]✓ Recorded {main.id}[/bold green]")
        for s in main.split_info or []:
            console.print(f"  {s.user_id}: {s.amount:,.2f} ({s.percentage}%)")
        report_portions(result)


@tx_app.command("edit")
def edit_transaction(
    transaction_id: str = typer.Argument(...),
    amount: Optional[str] = typer.Option(None, "--amount", "-a"),
    description: Optional[str] = typer.Option(None, "--description"),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    date: Optional[datetime] = typer.Option(
        None, "--date", "-d", formats=["%Y-%m-%d"]
    ),
    household: Optional[str] = typer.Option(None, "--household", "-h"),
    personal: bool = typer.Option(False, "--personal", help="Detach from household"),
    share: Optional[List[str]] = typer.Option(None, "--share", "-s"),
    split_equal: bool = typer.Option(False, "--split-equal"),
    no_split: bool = typer.Option(False, "--no-split", help="Remove the split"),
    verbose: bool = VERBOSE,
):
    """Edit a transaction; its split is kept unless --no-split or --personal."""
    with ledger_session(verbose) as ledger:
        changes: dict = {}
        if amount is not None:
            changes["amount"] = to_decimal(amount)
        if description is not None:
            changes["description"] = description
        if category is not None:
            changes["category_id"] = category
        if date is not None:
            changes["date"] = date
        if personal:
            changes["household_id"] = None
        elif household is not None:
            changes["household_id"] = household

        if no_split:
            changes["split_info"] = None
        elif share or split_equal:
            household_id = household or (
                ledger.service.get_transaction(transaction_id).household_id
            )
            split_info, mode = _split_request(ledger, household_id, share, split_equal)
            changes["split_info"] = split_info
            changes["split_mode"] = mode
        elif not personal:
            # Resend the current shares; an update without them drops the split
            current = ledger.service.get_transaction(transaction_id)
            if current.split_info:
                changes["split_info"] = [
                    ShareInput(user_id=s.user_id, amount=s.amount)
                    for s in current.split_info
                ]

        updated, result = ledger.service.update_transaction(
            transaction_id, TransactionUpdate(**changes)
        )
        console.print(f"\n[bold green]✓ Updated {updated.id}[/bold green]")
        report_portions(result)


@tx_app.command("delete")
def delete_transaction(
    transaction_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = VERBOSE,
):
    """Delete a transaction and its split portions."""
    with ledger_session(verbose) as ledger:
        if not yes:
            confirm = input(f"Delete {transaction_id}? [y/N] ").strip().lower()
            if confirm not in ("y", "yes"):
                console.print("[yellow]Cancelled.[/yellow]")
                return

        result = ledger.service.delete_transaction(transaction_id)
        console.print(f"\n[bold green]✓ Deleted {transaction_id}[/bold green]")
        report_portions(result)


@tx_app.command("list")
def list_transactions(
    household: Optional[str] = typer.Option(None, "--household", "-h"),
    month: Optional[datetime] = typer.Option(None, "--month", "-m", formats=["%Y-%m"]),
    all_dates: bool = typer.Option(False, "--all", help="Ignore the month filter"),
    kind: str = typer.Option("all", "--kind", "-k", help="income, expense or all"),
    category: Optional[List[str]] = typer.Option(None, "--category", "-c"),
    search: Optional[str] = typer.Option(None, "--search"),
    verbose: bool = VERBOSE,
):
    """List transactions, including household members' split portions."""
    with ledger_session(verbose) as ledger:
        user_id = ledger.settings.user_id
        household_id = ledger.household(household)

        ledger.state.set_categories(ledger.categories.list_categories(user_id))
        start, end = month_range(month) if not all_dates else (None, None)
        ledger.state.set_filter_options(
            start_date=start,
            end_date=end,
            kind=kind,
            household_id=household,
            category_ids=category or None,
            search=search,
        )
        ledger.service.list_transactions(user_id, household_id)

        rows = [row.transaction for row in ledger.state.filtered]
        if not rows:
            console.print("[yellow]No transactions found.[/yellow]")
            return
        display_transactions(ledger, rows, f"Transactions ({len(rows)})")


@tx_app.command("portions")
def show_portions(
    transaction_id: str = typer.Argument(...),
    verbose: bool = VERBOSE,
):
    """Show the split portions of a main transaction."""
    with ledger_session(verbose) as ledger:
        main = ledger.service.get_transaction(transaction_id)
        portions = ledger.service.portions_of(transaction_id)

        console.print(f"\n[bold]{main.description}[/bold] {main.amount:,.2f}")
        for s in main.split_info or []:
            console.print(f"  share {s.user_id}: {s.amount:,.2f} ({s.percentage}%)")
        if not portions:
            console.print("[dim]No split portions.[/dim]")
            return
        display_transactions(ledger, portions, "Split Portions")


@app.command()
def stats(
    household: Optional[str] = typer.Option(None, "--household", "-h"),
    month: Optional[datetime] = typer.Option(None, "--month", "-m", formats=["%Y-%m"]),
    verbose: bool = VERBOSE,
):
    """Monthly totals and top expense categories."""
    with ledger_session(verbose) as ledger:
        user_id = ledger.settings.user_id
        ledger.state.set_categories(ledger.categories.list_categories(user_id))
        start, end = month_range(month)
        ledger.state.set_filter_options(
            start_date=start, end_date=end, household_id=household
        )
        ledger.service.list_transactions(user_id, ledger.household(household))

        current = [row.transaction for row in ledger.state.filtered]
        summary = monthly_stats(current, ledger.state.categories)

        console.print(f"\n[bold]{start:%B %Y}[/bold]")
        console.print(f"  Income:   {format_money(summary.total_income, 'income')}")
        console.print(f"  Expenses: {format_money(summary.total_expenses)}")
        balance_kind = "income" if summary.balance >= 0 else "expense"
        console.print(
            f"  Balance:  {format_money(abs(summary.balance), balance_kind)}"
        )

        table = Table(title="Top Categories", header_style="bold magenta")
        table.add_column("Category", style="yellow")
        table.add_column("Total", justify="right")
        table.add_column("Share", justify="right")
        for entry in top_categories(summary):
            table.add_row(
                category_label(entry.category),
                format_money(entry.total_amount),
                f"{entry.percentage:.1f}%",
            )
        console.print(table)

        recent = recent_transactions(current, ledger.settings.recent_limit)
        if recent:
            display_transactions(ledger, recent, "Recent")


# ============================================================================
# Households
# ============================================================================


@household_app.command("create")
def create_household(name: str = typer.Argument(...), verbose: bool = VERBOSE):
    """Create a household you own."""
    with ledger_session(verbose) as ledger:
        household = ledger.households.create_household(name, ledger.settings.user_id)
        console.print(f"[green]✓ Created household {household.id}[/green]")


@household_app.command("list")
def list_households(verbose: bool = VERBOSE):
    """List your households and pending invitations."""
    with ledger_session(verbose) as ledger:
        table = Table(title="Households", header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Owner")
        table.add_column("Members")
        table.add_column("Invited", style="dim")
        for h in ledger.households.households_for(ledger.settings.user_id):
            table.add_row(
                h.id, h.name, h.owner_id, ", ".join(h.members), ", ".join(h.invited_emails)
            )
        console.print(table)

        if ledger.settings.user_email:
            for h in ledger.households.invitations_for(ledger.settings.user_email):
                console.print(f"[yellow]Invitation:[/yellow] {h.name} ({h.id})")


@household_app.command("invite")
def invite_member(
    household_id: str = typer.Argument(...),
    email: str = typer.Argument(...),
    verbose: bool = VERBOSE,
):
    """Invite someone to a household by email."""
    with ledger_session(verbose) as ledger:
        ledger.households.invite_member(household_id, email)
        console.print(f"[green]✓ Invited {email}[/green]")


@household_app.command("join")
def join_household(household_id: str = typer.Argument(...), verbose: bool = VERBOSE):
    """Accept an invitation sent to your configured email."""
    with ledger_session(verbose) as ledger:
        if not ledger.settings.user_email:
            raise LedgerError("Set LEDGER_USER_EMAIL to accept invitations")
        household = ledger.households.join_household(
            household_id, ledger.settings.user_id, ledger.settings.user_email
        )
        console.print(f"[green]✓ Joined {household.name}[/green]")


@household_app.command("remove")
def remove_member(
    household_id: str = typer.Argument(...),
    user_id: str = typer.Argument(...),
    verbose: bool = VERBOSE,
):
    """Remove a member from a household."""
    with ledger_session(verbose) as ledger:
        ledger.households.remove_member(household_id, user_id)
        console.print(f"[green]✓ Removed {user_id}[/green]")


@household_app.command("quit")
def quit_household(household_id: str = typer.Argument(...), verbose: bool = VERBOSE):
    """Leave a household (owners delete it)."""
    with ledger_session(verbose) as ledger:
        ledger.households.quit_household(household_id, ledger.settings.user_id)
        console.print(f"[green]✓ Left {household_id}[/green]")


# ============================================================================
# Categories
# ============================================================================


@category_app.command("list")
def list_categories(verbose: bool = VERBOSE):
    """List your categories."""
    with ledger_session(verbose) as ledger:
        for c in ledger.categories.list_categories(ledger.settings.user_id):
            console.print(f"  [dim]{c.id}[/dim]  {category_label(c)}")


@category_app.command("add")
def add_category(
    name: str = typer.Argument(...),
    emoji: str = typer.Option("❓", "--emoji", "-e"),
    verbose: bool = VERBOSE,
):
    """Add a category."""
    with ledger_session(verbose) as ledger:
        category = ledger.categories.add_category(ledger.settings.user_id, name, emoji)
        console.print(f"[green]✓ Added {category_label(category)} ({category.id})[/green]")


@category_app.command("defaults")
def default_categories(verbose: bool = VERBOSE):
    """Create the default categories if you have none."""
    with ledger_session(verbose) as ledger:
        created = ledger.categories.create_default_categories(ledger.settings.user_id)
        console.print(f"[green]✓ {len(created)} categories available[/green]")


if __name__ == "__main__":
    app()
