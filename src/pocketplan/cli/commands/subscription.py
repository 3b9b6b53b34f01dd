"""Subscription commands."""

from datetime import timedelta

import click
from pocketplan.cli.date_filters import local_today, parse_date_or_exit, resolve_cli_date_range
from pocketplan.cli.error_handling import handle_domain_error
from pocketplan.cli.user_context import require_user_or_exit
from pocketplan.domain.entities import BillingCycle
from pocketplan.domain.subscription import SubscriptionService
from pocketplan.utils.amount_parser import format_amount, parse_amount

CYCLE_CHOICES = click.Choice([c.value for c in BillingCycle])


def _line(ctx, sub) -> str:
    status = "active" if sub.is_active else "inactive"
    amount = format_amount(sub.amount, ctx.obj["config"].currency)
    return (
        f"{sub.id:4d} | {sub.description:25s} | {amount:>12s} | {sub.billing_cycle.value:8s} | "
        f"next {sub.next_billing_date} | {status}"
    )


@click.group("subscription")
def subscription_group():
    """Manage recurring charges."""
    pass


@subscription_group.command("add")
@click.argument("amount")
@click.argument("description")
@click.option("--cycle", type=CYCLE_CHOICES, default="monthly", show_default=True)
@click.option("--start-date", help="First billing date (default: today)")
@click.option("--next-billing", help="Next billing date (default: one cycle after start)")
@click.option("--end-date", help="Last day of the subscription")
@click.pass_context
def add_subscription(
    ctx,
    amount: str,
    description: str,
    cycle: str,
    start_date: str | None,
    next_billing: str | None,
    end_date: str | None,
):
    """Create a subscription.

    Charges copy the latest entry linked to the subscription, so link one
    with `subscription assign` (or use `subscription promote`) before the
    first billing date.

    Examples:
        pocketplan --user alice subscription add 49.99 "Netflix"
        pocketplan --user alice subscription add 120 "Gym" --cycle monthly --start-date 2025-01-05
    """
    user_id = require_user_or_exit(ctx)
    service = SubscriptionService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        sub = service.create_subscription(
            user_id,
            parse_amount(amount),
            description,
            billing_cycle=BillingCycle(cycle),
            date_start=parse_date_or_exit(ctx, start_date, "start date"),
            next_billing=parse_date_or_exit(ctx, next_billing, "next billing date"),
            date_end=parse_date_or_exit(ctx, end_date, "end date"),
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created subscription {sub.id}, next charge on {sub.next_billing_date}")


@subscription_group.command("list")
@click.pass_context
def list_subscriptions(ctx):
    """List subscriptions."""
    user_id = require_user_or_exit(ctx)
    service = SubscriptionService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        subscriptions = service.list_subscriptions(user_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not subscriptions:
        click.echo("No subscriptions found.")
        return
    click.echo("\nSubscriptions:")
    click.echo("-" * 90)
    for sub in subscriptions:
        click.echo(_line(ctx, sub))


@subscription_group.command("promote")
@click.argument("expense_id", type=int)
@click.pass_context
def promote_expense(ctx, expense_id: int):
    """Turn an existing entry into a monthly subscription."""
    user_id = require_user_or_exit(ctx)
    service = SubscriptionService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        sub = service.promote_expense(user_id, expense_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created subscription {sub.id} from entry {expense_id}")


@subscription_group.command("assign")
@click.argument("expense_id", type=int)
@click.argument("subscription_id", type=int, required=False)
@click.pass_context
def assign_expense(ctx, expense_id: int, subscription_id: int | None):
    """Link an entry to SUBSCRIPTION_ID, or unlink it when omitted."""
    user_id = require_user_or_exit(ctx)
    service = SubscriptionService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        service.assign_expense(user_id, expense_id, subscription_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    if subscription_id is None:
        click.echo(f"Unlinked entry {expense_id}")
    else:
        click.echo(f"Linked entry {expense_id} to subscription {subscription_id}")


@subscription_group.command("cancel")
@click.argument("subscription_id", type=int)
@click.pass_context
def cancel_subscription(ctx, subscription_id: int):
    """Stop future charges."""
    user_id = require_user_or_exit(ctx)
    service = SubscriptionService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        service.cancel_subscription(user_id, subscription_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Cancelled subscription {subscription_id}")


@subscription_group.command("enable")
@click.argument("subscription_id", type=int)
@click.pass_context
def enable_subscription(ctx, subscription_id: int):
    """Resume charges of a cancelled subscription."""
    user_id = require_user_or_exit(ctx)
    service = SubscriptionService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        sub = service.enable_subscription(user_id, subscription_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Enabled subscription {sub.id}, next charge on {sub.next_billing_date}")


@subscription_group.command("renew")
@click.argument("subscription_id", type=int)
@click.pass_context
def renew_subscription(ctx, subscription_id: int):
    """Reactivate and move the next charge past today without back-charging."""
    user_id = require_user_or_exit(ctx)
    service = SubscriptionService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        sub = service.renew_subscription(user_id, subscription_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Renewed subscription {sub.id}, next charge on {sub.next_billing_date}")


@subscription_group.command("edit")
@click.argument("subscription_id", type=int)
@click.option("--amount", help="New amount")
@click.option("--description", help="New description")
@click.option("--cycle", type=CYCLE_CHOICES, help="New billing cycle")
@click.option("--end-date", help="New end date")
@click.pass_context
def edit_subscription(
    ctx,
    subscription_id: int,
    amount: str | None,
    description: str | None,
    cycle: str | None,
    end_date: str | None,
):
    """Change a subscription."""
    user_id = require_user_or_exit(ctx)
    service = SubscriptionService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    changes = {}
    try:
        if amount is not None:
            changes["amount"] = parse_amount(amount)
        if description is not None:
            changes["description"] = description
        if cycle is not None:
            changes["billing_cycle"] = cycle
        if end_date is not None:
            changes["date_end"] = parse_date_or_exit(ctx, end_date, "end date")
        sub = service.modify_subscription(user_id, subscription_id, **changes)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(_line(ctx, sub))


@subscription_group.command("upcoming")
@click.option("--start-date", help="Start date (default: today)")
@click.option("--end-date", help="End date (default: 30 days from today)")
@click.pass_context
def upcoming(ctx, start_date: str | None, end_date: str | None):
    """List active subscriptions charged in a date range."""
    user_id = require_user_or_exit(ctx)
    service = SubscriptionService(ctx.obj["db"], clock=ctx.obj["config"].local_now)
    today = local_today(ctx)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, default_range=(today, today + timedelta(days=30))
    )

    try:
        subscriptions = service.upcoming_subscriptions(user_id, start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not subscriptions:
        click.echo("No upcoming charges.")
        return
    for sub in subscriptions:
        click.echo(_line(ctx, sub))


@subscription_group.command("suggest")
@click.argument("expense_id", type=int)
@click.pass_context
def suggest(ctx, expense_id: int):
    """Subscriptions whose description resembles an entry."""
    user_id = require_user_or_exit(ctx)
    service = SubscriptionService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        subscriptions = service.possible_subscriptions(user_id, expense_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not subscriptions:
        click.echo("No matching subscriptions.")
        return
    for sub in subscriptions:
        click.echo(_line(ctx, sub))


def register_commands(cli):
    """Register subscription commands with main CLI."""
    cli.add_command(subscription_group)
