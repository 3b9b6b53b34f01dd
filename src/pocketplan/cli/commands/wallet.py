"""Wallet management commands."""

import click
from pocketplan.cli.date_filters import local_today, resolve_cli_date_range, this_month
from pocketplan.cli.error_handling import handle_domain_error
from pocketplan.cli.user_context import require_user_or_exit
from pocketplan.domain.budget import BudgetCalculator
from pocketplan.domain.entities import ExpenseFilters, ExpenseType
from pocketplan.domain.wallet import WalletService
from pocketplan.utils.amount_parser import format_amount, parse_amount
from pocketplan.utils.date_parser import end_of_day, start_of_day


def _money(ctx, amount) -> str:
    return format_amount(amount, ctx.obj["config"].currency)


@click.group("wallet")
def wallet_group():
    """Manage your wallet."""
    pass


@wallet_group.command("create")
@click.option("--balance", default="0", help="Initial balance (default: 0)")
@click.pass_context
def create_wallet(ctx, balance: str):
    """Create a wallet for the current user.

    Examples:
        pocketplan --user alice wallet create
        pocketplan --user alice wallet create --balance 1500
    """
    user_id = require_user_or_exit(ctx)
    service = WalletService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        wallet = service.create_wallet(user_id, parse_amount(balance))
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created wallet {wallet.id} with balance {_money(ctx, wallet.balance)}")


@wallet_group.command("show")
@click.pass_context
def show_wallet(ctx):
    """Show balance and budget settings."""
    user_id = require_user_or_exit(ctx)
    service = WalletService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        wallet = service.get_wallet(user_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Wallet {wallet.id} ({wallet.user_id})")
    click.echo(f"  Balance: {_money(ctx, wallet.balance)}")
    click.echo(f"  Income: {_money(ctx, wallet.income)}")
    click.echo(f"  Monthly target: {wallet.monthly_percentage_target}%")
    click.echo(f"  Paycheck date: {wallet.paycheck_date or '-'}")


@wallet_group.command("set-balance")
@click.argument("amount")
@click.pass_context
def set_balance(ctx, amount: str):
    """Set the balance to AMOUNT, recording the difference as an entry.

    Creates the wallet when the user doesn't have one yet.
    """
    user_id = require_user_or_exit(ctx)
    service = WalletService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        wallet = service.edit_balance(user_id, parse_amount(amount))
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Balance set to {_money(ctx, wallet.balance)}")


@wallet_group.command("settings")
@click.option("--income", help="Monthly income")
@click.option("--target", help="Percentage of income to spend each month")
@click.option("--paycheck-date", help="ISO date, 'start', 'end' or day of month")
@click.pass_context
def update_settings(ctx, income: str | None, target: str | None, paycheck_date: str | None):
    """Update income, spending target and paycheck date."""
    user_id = require_user_or_exit(ctx)
    service = WalletService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        wallet = service.update_settings(
            user_id,
            income=parse_amount(income) if income is not None else None,
            monthly_percentage_target=parse_amount(target) if target is not None else None,
            paycheck_date=paycheck_date,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo("Updated wallet settings")
    click.echo(f"  Income: {_money(ctx, wallet.income)}")
    click.echo(f"  Monthly target: {wallet.monthly_percentage_target}%")
    click.echo(f"  Paycheck date: {wallet.paycheck_date or '-'}")


@wallet_group.command("history")
@click.option("--title", help="Filter by description text")
@click.option("--category", "categories", multiple=True, help="Category (repeatable)")
@click.option("--exact", is_flag=True, help="Match categories exactly instead of by prefix")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'yesterday')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option("--min", "amount_min", help="Minimum amount")
@click.option("--max", "amount_max", help="Maximum amount")
@click.option("--type", "entry_type", type=click.Choice([t.value for t in ExpenseType]))
@click.option("--skip", type=int, default=0, show_default=True)
@click.option("--take", type=int, default=10, show_default=True)
@click.pass_context
def history(
    ctx,
    title: str | None,
    categories: tuple[str, ...],
    exact: bool,
    start_date: str | None,
    end_date: str | None,
    amount_min: str | None,
    amount_max: str | None,
    entry_type: str | None,
    skip: int,
    take: int,
):
    """List entries, newest first."""
    user_id = require_user_or_exit(ctx)
    service = WalletService(ctx.obj["db"], clock=ctx.obj["config"].local_now)
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date)

    try:
        filters = ExpenseFilters(
            title=title,
            categories=categories,
            exact_category=exact,
            date_from=start_of_day(start) if start else None,
            date_to=end_of_day(end) if end else None,
            amount_min=parse_amount(amount_min) if amount_min else None,
            amount_max=parse_amount(amount_max) if amount_max else None,
            type=ExpenseType(entry_type) if entry_type else None,
        )
        expenses = service.list_expenses(user_id, filters, skip=skip, take=take)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not expenses:
        click.echo("No entries found.")
        return

    click.echo(f"\nFound {len(expenses)} entr{'y' if len(expenses) == 1 else 'ies'}:")
    click.echo("-" * 80)
    for exp in expenses:
        marker = " (scheduled)" if exp.schedule else ""
        click.echo(
            f"{exp.id:5d} | {exp.date:%Y-%m-%d %H:%M} | {exp.type.value:8s} | "
            f"{_money(ctx, exp.amount):>12s} | {exp.category or '-':12s} | {exp.description}{marker}"
        )


@wallet_group.command("stats")
@click.option("--start-date", help="Start date (default: first day of this month)")
@click.option("--end-date", help="End date (default: last day of this month)")
@click.pass_context
def wallet_statistics(ctx, start_date: str | None, end_date: str | None):
    """Show totals for a date range."""
    user_id = require_user_or_exit(ctx)
    service = WalletService(ctx.obj["db"], clock=ctx.obj["config"].local_now)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, default_range=this_month(local_today(ctx))
    )

    try:
        stats = service.get_statistics(user_id, start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nStatistics {start} - {end}")
    click.echo("=" * 40)
    click.echo(f"  Spent:     {_money(ctx, stats.expense)} in {stats.count} entries")
    click.echo(f"  Earned:    {_money(ctx, stats.income)}")
    click.echo(f"  Average:   {_money(ctx, stats.average)}")
    click.echo(f"  Largest:   {_money(ctx, stats.max)}")
    click.echo(f"  Smallest:  {_money(ctx, stats.min)}")
    if stats.most_common_category:
        click.echo(f"  Most common category: {stats.most_common_category}")
    click.echo(f"  Balance:   {_money(ctx, stats.last_balance)}")


@wallet_group.command("budget")
@click.pass_context
def budget(ctx):
    """Show today's spending allowance."""
    user_id = require_user_or_exit(ctx)
    db = ctx.obj["db"]
    clock = ctx.obj["config"].local_now

    try:
        wallet = WalletService(db, clock=clock).get_wallet(user_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    status = BudgetCalculator(db, clock=clock).status(wallet)
    click.echo(f"Monthly budget: {_money(ctx, status.monthly_budget)} (from {status.source or 'nothing'})")
    click.echo(f"  Daily:  {_money(ctx, status.daily_budget)}, spent {_money(ctx, status.spent_today)}")
    click.echo(f"  Weekly: {_money(ctx, status.weekly_budget)}, spent {_money(ctx, status.spent_week)}")
    click.echo(f"  Month:  spent {_money(ctx, status.spent_month)}")
    click.echo(
        f"You can spend {_money(ctx, status.allowance.can_spend_today)} today "
        f"({status.allowance.constraint} budget)"
    )


def register_commands(cli):
    """Register wallet commands with main CLI."""
    cli.add_command(wallet_group)
