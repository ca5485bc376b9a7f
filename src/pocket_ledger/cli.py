import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pocket_ledger.config.settings import Settings
from pocket_ledger.database.connection import DatabaseConfig, DatabaseManager
from pocket_ledger.domain.enums import BalanceOperation, TransactionDirection
from pocket_ledger.domain.errors import DomainError, InvalidArgumentError
from pocket_ledger.domain.events import utc_now
from pocket_ledger.domain.models import UNSET, TransactionChanges
from pocket_ledger.repositories.sqlite_repositories import (
    SQLiteAccountRepository,
    SQLiteCategoryRepository,
    SQLiteTransactionRepository,
    SQLiteUserRepository,
)
from pocket_ledger.services.guards import ensure_owned_by
from pocket_ledger.services.transactions import CreateTransactionPayload
from pocket_ledger.utils.logging import set_log_level
from pocket_ledger.wiring import LedgerServices, build_services

app = typer.Typer(
    name="pocket-ledger",
    help="Keep track of your accounts and the transactions that move their balances",
    add_completion=False,
)
account_app = typer.Typer(help="Manage accounts")
transaction_app = typer.Typer(help="Record and edit transactions")
category_app = typer.Typer(help="Manage categories")
user_app = typer.Typer(help="Manage your user profile")

app.add_typer(account_app, name="account")
app.add_typer(transaction_app, name="transaction")
app.add_typer(category_app, name="category")
app.add_typer(user_app, name="user")

console = Console()

class State:
    verbose: bool = False
    user_id: Optional[str] = None
    services: Optional[LedgerServices] = None


state = State()

@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
    user: Optional[str] = typer.Option(
        None,
        "--user", "-u",
        envvar="LEDGER_USER_ID",
        help="Id (UUID) of the user you are acting as",
    ),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        help="Path to the SQLite database (defaults to the configured path)",
    ),
):
    """
    Pocket Ledger - accounts, transactions and always-consistent balances.
    """
    settings = Settings.load()
    set_log_level("DEBUG" if verbose else settings.log_level)

    db_manager = DatabaseManager(DatabaseConfig(db_path or settings.database_path))
    db_manager.initialize()
    ctx.call_on_close(db_manager.close)

    state.services = build_services(
        SQLiteAccountRepository(db_manager),
        SQLiteTransactionRepository(db_manager),
        SQLiteCategoryRepository(db_manager),
        SQLiteUserRepository(db_manager),
        settings,
    )
    state.verbose = verbose
    state.user_id = user


def _require_user() -> str:
    if not state.user_id:
        raise InvalidArgumentError("No user given: pass --user or set LEDGER_USER_ID")
    return state.user_id


def _fail(error: Exception) -> None:
    if isinstance(error, DomainError):
        console.print(f"[bold red]Error:[/bold red] {error.message}")
    else:
        console.print(f"[bold red]Error:[/bold red] {error}")
    if state.verbose:
        console.print_exception()
    raise typer.Exit(code=1)


def _format_amount(amount, currency: str, direction: Optional[str] = None) -> str:
    if direction == TransactionDirection.OUTBOUND.value:
        return f"[red]-{amount:,.2f} {currency}[/red]"
    if direction == TransactionDirection.INBOUND.value:
        return f"[green]+{amount:,.2f} {currency}[/green]"
    return f"{amount:,.2f} {currency}"


def _transactions_table(transactions, title: str) -> Table:
    table = Table(title=title, show_header=True, padding=(0, 1))
    table.add_column("Date", style="cyan", width=12)
    table.add_column("Description", style="white", max_width=40)
    table.add_column("Id", style="dim")
    table.add_column("Amount", justify="right")

    for txn in transactions:
        desc = txn["description"]
        desc = desc[:37] + "..." if len(desc) > 40 else desc
        table.add_row(
            txn["date"][:10],
            desc,
            txn["id"],
            _format_amount(txn["amount"]["amount"], txn["amount"]["currency"], txn["direction"]),
        )
    return table


# ═══════════════════════════════════════════════════════════
# ACCOUNTS
# ═══════════════════════════════════════════════════════════

@account_app.command(name="create")
def create_account(
    name: str = typer.Argument(..., help="Account name"),
    currency: str = typer.Option("COP", "--currency", "-c", help="ISO 4217 currency code"),
    initial_balance: str = typer.Option("0", "--initial", "-i", help="Opening balance"),
):
    """
    Open a new account.

    Examples:
        pocket-ledger account create Wallet --currency COP --initial 1000
    """
    try:
        account = asyncio.run(state.services.create_account.execute(
            user_id=_require_user(),
            name=name,
            currency=currency.upper(),
            initial_balance=initial_balance,
        ))
        console.print(f"[bold green]✓ Created account {account.name}[/bold green] ({account.id})")
        console.print(f"  Balance: {_format_amount(account.current_balance.amount, account.currency)}")
    except Exception as e:
        _fail(e)


@account_app.command(name="list")
def list_accounts():
    """List your accounts and their current balances."""
    try:
        accounts = asyncio.run(state.services.search_accounts_by_user.execute(_require_user()))

        if not accounts:
            console.print(Panel(
                "[yellow]No accounts yet[/yellow]",
                title="Accounts",
                border_style="yellow"
            ))
            return

        table = Table(title="Accounts", show_header=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Id", style="dim")
        table.add_column("Initial", justify="right", style="dim")
        table.add_column("Balance", justify="right", style="bold")

        for account in accounts:
            table.add_row(
                account["name"],
                account["id"],
                _format_amount(account["initial_balance"]["amount"], account["initial_balance"]["currency"]),
                _format_amount(account["current_balance"]["amount"], account["current_balance"]["currency"]),
            )
        console.print(table)
    except Exception as e:
        _fail(e)


@account_app.command(name="show")
def show_account(
    account_id: str = typer.Argument(..., help="Account id"),
):
    """Show an account balance and its transactions."""
    try:
        user_id = _require_user()
        account = asyncio.run(state.services.find_account.execute(account_id))
        ensure_owned_by(account, user_id, "Account")
        transactions = asyncio.run(state.services.search_transactions_by_account.execute(account_id))

        console.print(Panel(
            f"[bold]Balance:[/bold] {_format_amount(account.current_balance.amount, account.currency)}\n"
            f"[dim]Initial: {_format_amount(account.initial_balance.amount, account.currency)}[/dim]",
            title=f"[bold]{account.name}[/bold]",
            border_style="cyan",
            padding=(1, 2)
        ))

        if transactions:
            console.print(_transactions_table(transactions, "Transactions"))
        else:
            console.print("[dim]No transactions recorded[/dim]")
    except Exception as e:
        _fail(e)


@account_app.command(name="rename")
def rename_account(
    account_id: str = typer.Argument(..., help="Account id"),
    name: str = typer.Argument(..., help="New name"),
):
    """Rename an account."""
    try:
        account = asyncio.run(state.services.update_account.execute(_require_user(), account_id, name))
        console.print(f"[green]✓[/green] Renamed to {account.name}")
    except Exception as e:
        _fail(e)


@account_app.command(name="delete")
def delete_account(
    account_id: str = typer.Argument(..., help="Account id"),
):
    """Delete an account (its transactions are kept)."""
    try:
        asyncio.run(state.services.delete_account.execute(_require_user(), account_id))
        console.print(f"[green]✓[/green] Deleted account {account_id}")
    except Exception as e:
        _fail(e)


@account_app.command(name="adjust")
def adjust_balance(
    account_id: str = typer.Argument(..., help="Account id"),
    amount: str = typer.Argument(..., help="Amount to move"),
    subtract: bool = typer.Option(
        False,
        "--subtract",
        help="Subtract the amount instead of adding it",
    ),
):
    """
    Correct an account balance directly, without a transaction.

    Examples:
        pocket-ledger account adjust <id> 50
        pocket-ledger account adjust <id> 50 --subtract
    """
    try:
        user_id = _require_user()
        account = asyncio.run(state.services.find_account.execute(account_id))
        ensure_owned_by(account, user_id, "Account")

        account = asyncio.run(state.services.update_account_balance.execute(
            account_id=account_id,
            operation=BalanceOperation.SUBTRACT if subtract else BalanceOperation.ADD,
            amount=amount,
            currency=account.currency,
        ))
        console.print(f"[green]✓[/green] Balance: {_format_amount(account.current_balance.amount, account.currency)}")
    except Exception as e:
        _fail(e)


# ═══════════════════════════════════════════════════════════
# TRANSACTIONS
# ═══════════════════════════════════════════════════════════

@transaction_app.command(name="add")
def add_transaction(
    account_id: str = typer.Argument(..., help="Account id"),
    amount: str = typer.Argument(..., help="Amount (non-negative)"),
    description: str = typer.Option(..., "--description", "-d", help="What the transaction was"),
    direction: TransactionDirection = typer.Option(
        TransactionDirection.OUTBOUND,
        "--direction",
        help="inbound adds to the balance, outbound takes from it",
    ),
    currency: Optional[str] = typer.Option(
        None,
        "--currency", "-c",
        help="Currency code (defaults to the account currency)",
    ),
    date: Optional[str] = typer.Option(None, "--date", help="ISO-8601 date (defaults to now)"),
    category: Optional[str] = typer.Option(None, "--category", help="Category id"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-form notes"),
):
    """
    Record a transaction.

    Examples:
        pocket-ledger transaction add <account> 200 -d Groceries
        pocket-ledger transaction add <account> 5000 -d Salary --direction inbound
    """
    try:
        user_id = _require_user()
        if currency is None:
            currency = asyncio.run(state.services.find_account.execute(account_id)).currency

        transaction = asyncio.run(state.services.create_transaction.execute(CreateTransactionPayload(
            user_id=user_id,
            account_id=account_id,
            amount=amount,
            currency=currency.upper(),
            direction=direction.value,
            description=description,
            date=date or utc_now(),
            category_id=category,
            notes=notes,
        )))
        account = asyncio.run(state.services.find_account.execute(account_id))

        console.print(f"[bold green]✓ Recorded transaction[/bold green] ({transaction.id})")
        console.print(f"  Balance: {_format_amount(account.current_balance.amount, account.currency)}")
    except Exception as e:
        _fail(e)


@transaction_app.command(name="update")
def update_transaction(
    transaction_id: str = typer.Argument(..., help="Transaction id"),
    amount: Optional[str] = typer.Option(None, "--amount", help="New amount"),
    currency: Optional[str] = typer.Option(None, "--currency", help="New currency code"),
    direction: Optional[TransactionDirection] = typer.Option(None, "--direction", help="New direction"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="New description"),
    date: Optional[str] = typer.Option(None, "--date", help="New ISO-8601 date"),
    category: Optional[str] = typer.Option(None, "--category", help="New category id"),
    notes: Optional[str] = typer.Option(None, "--notes", help="New notes"),
    clear_category: bool = typer.Option(False, "--clear-category", help="Remove the category"),
    clear_notes: bool = typer.Option(False, "--clear-notes", help="Remove the notes"),
):
    """
    Change one or more fields of a transaction.

    Examples:
        pocket-ledger transaction update <id> --amount 350
        pocket-ledger transaction update <id> --direction inbound
    """
    try:
        user_id = _require_user()
        changes = TransactionChanges(
            amount=UNSET if amount is None else amount,
            currency=UNSET if currency is None else currency.upper(),
            direction=UNSET if direction is None else direction.value,
            description=UNSET if description is None else description,
            date=UNSET if date is None else date,
            category_id=None if clear_category else (UNSET if category is None else category),
            notes=None if clear_notes else (UNSET if notes is None else notes),
        )
        if changes.is_empty():
            console.print("[yellow]Nothing to update[/yellow]")
            return

        transaction = asyncio.run(state.services.update_transaction.execute(
            transaction_id, changes, user_id=user_id
        ))
        account = asyncio.run(state.services.find_account.execute(transaction.account_id))

        console.print(f"[green]✓[/green] Updated {', '.join(sorted(changes.provided()))}")
        console.print(f"  Balance: {_format_amount(account.current_balance.amount, account.currency)}")
    except Exception as e:
        _fail(e)


@transaction_app.command(name="delete")
def delete_transaction(
    transaction_id: str = typer.Argument(..., help="Transaction id"),
):
    """Delete a transaction and reverse its effect on the balance."""
    try:
        asyncio.run(state.services.delete_transaction.execute(transaction_id, user_id=_require_user()))
        console.print(f"[green]✓[/green] Deleted transaction {transaction_id}")
    except Exception as e:
        _fail(e)


@transaction_app.command(name="list")
def list_transactions(
    account_id: Optional[str] = typer.Option(None, "--account", "-a", help="Only this account"),
):
    """List your transactions, most recent first."""
    try:
        user_id = _require_user()
        if account_id:
            account = asyncio.run(state.services.find_account.execute(account_id))
            ensure_owned_by(account, user_id, "Account")
            transactions = asyncio.run(state.services.search_transactions_by_account.execute(account_id))
        else:
            transactions = asyncio.run(state.services.search_transactions_by_user.execute(user_id))

        if not transactions:
            console.print("[dim]No transactions recorded[/dim]")
            return

        console.print(_transactions_table(transactions, "Transactions"))
    except Exception as e:
        _fail(e)


# ═══════════════════════════════════════════════════════════
# CATEGORIES
# ═══════════════════════════════════════════════════════════

@category_app.command(name="add")
def add_category(
    name: str = typer.Argument(..., help="Category name"),
):
    """Create a category."""
    try:
        category = asyncio.run(state.services.create_category.execute(_require_user(), name))
        console.print(f"[green]✓[/green] Created category {category.name} ({category.id})")
    except Exception as e:
        _fail(e)


@category_app.command(name="list")
def list_categories():
    """List your categories."""
    try:
        categories = asyncio.run(state.services.search_categories_by_user.execute(_require_user()))
        if not categories:
            console.print("[dim]No categories yet[/dim]")
            return

        table = Table(show_header=True, box=None, padding=(0, 2))
        table.add_column("Category", style="cyan", no_wrap=True)
        table.add_column("Id", style="dim")
        for category in categories:
            table.add_row(category["name"], category["id"])
        console.print(table)
    except Exception as e:
        _fail(e)


# ═══════════════════════════════════════════════════════════
# USER
# ═══════════════════════════════════════════════════════════

@user_app.command(name="register")
def register_user(
    first_name: str = typer.Argument(..., help="First name"),
    last_name: str = typer.Argument(..., help="Last name"),
):
    """Create the profile for the current user id."""
    try:
        user = asyncio.run(state.services.register_user.execute(_require_user(), first_name, last_name))
        console.print(f"[bold green]✓ Registered {user.full_name}[/bold green] ({user.id})")
    except Exception as e:
        _fail(e)


@user_app.command(name="show")
def show_user():
    """Show the current user profile."""
    try:
        user = asyncio.run(state.services.find_user.execute(_require_user()))
        console.print(Panel(
            f"[bold]{user['first_name']} {user['last_name']}[/bold]\n"
            f"[dim]Since {user['created_at'][:10]}[/dim]",
            title=user["id"],
            border_style="cyan",
        ))
    except Exception as e:
        _fail(e)


@user_app.command(name="update")
def update_user(
    first_name: Optional[str] = typer.Option(None, "--first", help="New first name"),
    last_name: Optional[str] = typer.Option(None, "--last", help="New last name"),
):
    """Change your first and/or last name."""
    try:
        user = asyncio.run(state.services.update_user.execute(
            _require_user(), first_name=first_name, last_name=last_name
        ))
        console.print(f"[green]✓[/green] Updated to {user.full_name}")
    except Exception as e:
        _fail(e)


def cli_main():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    cli_main()
