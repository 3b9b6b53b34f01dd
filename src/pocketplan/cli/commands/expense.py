"""Expense entry commands."""

import json

import click
from pocketplan.cli.error_handling import handle_domain_error
from pocketplan.cli.user_context import require_user_or_exit
from pocketplan.domain.entities import ExpenseType
from pocketplan.domain.expense import ExpenseService
from pocketplan.domain.prediction import ExpensePredictionService
from pocketplan.utils.amount_parser import format_amount, parse_amount
from pocketplan.utils.date_parser import parse_datetime

TYPE_CHOICES = click.Choice([t.value for t in ExpenseType])


def _money(ctx, amount) -> str:
    return format_amount(amount, ctx.obj["config"].currency)


def _print_expense(ctx, exp) -> None:
    click.echo(f"Entry {exp.id}")
    click.echo(f"  Date: {exp.date:%Y-%m-%d %H:%M}{' (scheduled)' if exp.schedule else ''}")
    click.echo(f"  Type: {exp.type.value}")
    click.echo(f"  Amount: {_money(ctx, exp.amount)}")
    click.echo(f"  Description: {exp.description}")
    click.echo(f"  Category: {exp.category or '-'}")
    if exp.shop:
        click.echo(f"  Shop: {exp.shop}")
    if exp.tags:
        click.echo(f"  Tags: {', '.join(exp.tags)}")
    if exp.subscription_id:
        click.echo(f"  Subscription: {exp.subscription_id}")
    if exp.note:
        click.echo(f"  Note: {exp.note}")
    for sub in exp.subexpenses:
        click.echo(f"    - [{sub.id}] {sub.description}: {_money(ctx, sub.amount)}")


@click.group("expense")
def expense_group():
    """Record and manage entries."""
    pass


@expense_group.command("add")
@click.argument("amount")
@click.argument("description")
@click.option("--type", "entry_type", type=TYPE_CHOICES, default="expense", show_default=True)
@click.option("--category", default="", help="Category (e.g. 'food')")
@click.option("--date", "when", help="Date and time (YYYY-MM-DD [HH:MM] or relative like 'tomorrow')")
@click.option("--schedule", is_flag=True, help="Apply to the balance only once the date arrives")
@click.option("--note", help="Free-form note")
@click.option("--shop", help="Shop or merchant")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--spontaneous-rate", default="0", help="How impulsive the purchase was (0-1)")
@click.pass_context
def add_expense(
    ctx,
    amount: str,
    description: str,
    entry_type: str,
    category: str,
    when: str | None,
    schedule: bool,
    note: str | None,
    shop: str | None,
    tags: tuple[str, ...],
    spontaneous_rate: str,
):
    """Add an expense or income.

    Examples:
        pocketplan --user alice expense add 25.50 "Lunch" --category food
        pocketplan --user alice expense add 3000 "Salary" --type income --category income
        pocketplan --user alice expense add 120 "Dentist" --date 2025-07-01 --schedule
    """
    user_id = require_user_or_exit(ctx)
    service = ExpenseService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        exp = service.create_expense(
            user_id,
            parse_amount(amount),
            description,
            type=ExpenseType(entry_type),
            category=category,
            date=parse_datetime(when, now=ctx.obj["config"].local_now()) if when else None,
            schedule=schedule,
            spontaneous_rate=parse_amount(spontaneous_rate),
            note=note,
            shop=shop,
            tags=list(tags),
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created {exp.type.value} {exp.id}: {_money(ctx, exp.amount)} {exp.description}")
    if exp.schedule:
        click.echo(f"  Scheduled for {exp.date:%Y-%m-%d}")


@expense_group.command("show")
@click.argument("expense_id", type=int)
@click.pass_context
def show_expense(ctx, expense_id: int):
    """Show an entry with its sub-expenses."""
    user_id = require_user_or_exit(ctx)
    service = ExpenseService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        exp = service.get_expense(user_id, expense_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    _print_expense(ctx, exp)


@expense_group.command("edit")
@click.argument("expense_id", type=int)
@click.option("--amount", help="New amount")
@click.option("--description", help="New description")
@click.option("--type", "entry_type", type=TYPE_CHOICES, help="New type")
@click.option("--category", help="New category")
@click.option("--date", "when", help="New date")
@click.option("--note", help="New note")
@click.option("--shop", help="New shop")
@click.pass_context
def edit_expense(
    ctx,
    expense_id: int,
    amount: str | None,
    description: str | None,
    entry_type: str | None,
    category: str | None,
    when: str | None,
    note: str | None,
    shop: str | None,
):
    """Edit an entry. The balance is corrected by the difference."""
    user_id = require_user_or_exit(ctx)
    service = ExpenseService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        exp = service.edit_expense(
            user_id,
            expense_id,
            amount=parse_amount(amount) if amount is not None else None,
            description=description,
            type=ExpenseType(entry_type) if entry_type else None,
            category=category,
            date=parse_datetime(when, now=ctx.obj["config"].local_now()) if when else None,
            note=note,
            shop=shop,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated entry {exp.id}")
    _print_expense(ctx, exp)


@expense_group.command("delete")
@click.argument("expense_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def delete_expense(ctx, expense_id: int, yes: bool):
    """Delete an entry and undo its effect on the balance."""
    user_id = require_user_or_exit(ctx)
    service = ExpenseService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    if not yes and not click.confirm(f"Are you sure you want to delete entry {expense_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_expense(user_id, expense_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted entry {expense_id}")


@expense_group.command("refund")
@click.argument("expense_id", type=int)
@click.pass_context
def refund_expense(ctx, expense_id: int):
    """Mark an entry as refunded, giving its amount back."""
    user_id = require_user_or_exit(ctx)
    service = ExpenseService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        exp = service.refund_expense(user_id, expense_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Refunded entry {exp.id}: {_money(ctx, exp.amount)}")


@expense_group.command("sub-add")
@click.argument("expense_id", type=int)
@click.argument("description")
@click.argument("amount")
@click.option("--category", help="Category of the item")
@click.pass_context
def add_subexpense(ctx, expense_id: int, description: str, amount: str, category: str | None):
    """Add an itemized line to an entry."""
    user_id = require_user_or_exit(ctx)
    service = ExpenseService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        sub = service.add_subexpense(user_id, expense_id, description, parse_amount(amount), category)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added item {sub.id} to entry {expense_id}")


@expense_group.command("sub-delete")
@click.argument("subexpense_id", type=int)
@click.pass_context
def delete_subexpense(ctx, subexpense_id: int):
    """Remove an itemized line."""
    user_id = require_user_or_exit(ctx)
    service = ExpenseService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        service.delete_subexpense(user_id, subexpense_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted item {subexpense_id}")


@expense_group.command("receipt")
@click.argument("receipt_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_receipt(ctx, receipt_file: str):
    """Create an entry from a receipt prediction JSON file.

    The file holds merchant, total_price, date, title, category and an
    optional list of subexpenses with name and amount.
    """
    user_id = require_user_or_exit(ctx)
    service = ExpenseService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        with open(receipt_file, encoding="utf-8") as f:
            prediction = json.load(f)
    except json.JSONDecodeError as e:
        click.echo(f"Error: Invalid receipt file: {e}", err=True)
        ctx.exit(1)

    try:
        exp = service.create_expense_from_prediction(user_id, prediction)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created entry {exp.id} from receipt")
    _print_expense(ctx, exp)


@expense_group.command("predict")
@click.argument("text")
@click.option("--amount", help="Amount to use instead of the predicted one")
@click.pass_context
def predict_expense(ctx, text: str, amount: str | None):
    """Suggest amount and category for a description from past entries."""
    user_id = require_user_or_exit(ctx)
    service = ExpensePredictionService(ctx.obj["db"])

    try:
        prediction = service.predict(user_id, text, parse_amount(amount) if amount else None)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if prediction is None:
        click.echo("No prediction available.")
        return
    click.echo(f"{prediction.description}: {_money(ctx, prediction.amount)}")
    click.echo(f"  Category: {prediction.category or '-'}")
    click.echo(f"  Type: {prediction.type.value}")
    click.echo(f"  Confidence: {prediction.confidence:.0%}")


def register_commands(cli):
    """Register expense commands with main CLI."""
    cli.add_command(expense_group)
