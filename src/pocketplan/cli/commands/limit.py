"""Spending limit commands."""

import click
from pocketplan.cli.error_handling import handle_domain_error
from pocketplan.cli.user_context import require_user_or_exit
from pocketplan.domain.entities import LimitRange
from pocketplan.domain.limits import LimitService
from pocketplan.utils.amount_parser import format_amount, parse_amount

RANGE_CHOICES = click.Choice([r.value for r in LimitRange])


@click.group("limit")
def limit_group():
    """Manage category spending limits."""
    pass


@limit_group.command("add")
@click.argument("category")
@click.argument("amount")
@click.option("--range", "limit_range", type=RANGE_CHOICES, default="monthly", show_default=True)
@click.pass_context
def add_limit(ctx, category: str, amount: str, limit_range: str):
    """Cap spending in CATEGORY at AMOUNT per range.

    Examples:
        pocketplan --user alice limit add food 800
        pocketplan --user alice limit add coffee 50 --range weekly
    """
    user_id = require_user_or_exit(ctx)
    service = LimitService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        limit = service.create_limit(user_id, category, parse_amount(amount), LimitRange(limit_range))
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created {limit.range.value} limit {limit.id} for '{limit.category}'")


@limit_group.command("list")
@click.option("--range", "limit_range", type=RANGE_CHOICES, default="monthly", show_default=True)
@click.pass_context
def list_limits(ctx, limit_range: str):
    """List limits with what has been spent this period."""
    user_id = require_user_or_exit(ctx)
    service = LimitService(ctx.obj["db"], clock=ctx.obj["config"].local_now)
    currency = ctx.obj["config"].currency

    try:
        usage = service.limit_usage(user_id, LimitRange(limit_range))
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not usage:
        click.echo("No limits found.")
        return
    click.echo(f"\n{limit_range.capitalize()} limits:")
    click.echo("-" * 60)
    for limit, spent in usage:
        percent = spent / limit.amount * 100
        click.echo(
            f"{limit.id:4d} | {limit.category:20s} | "
            f"{format_amount(spent, currency)} / {format_amount(limit.amount, currency)} ({percent:.0f}%)"
        )


@limit_group.command("edit")
@click.argument("limit_id", type=int)
@click.option("--amount", help="New amount")
@click.option("--category", help="New category")
@click.pass_context
def edit_limit(ctx, limit_id: int, amount: str | None, category: str | None):
    """Change a limit."""
    user_id = require_user_or_exit(ctx)
    service = LimitService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        limit = service.update_limit(
            user_id,
            limit_id,
            amount=parse_amount(amount) if amount is not None else None,
            category=category,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated limit {limit.id}: {limit.category} {format_amount(limit.amount, ctx.obj['config'].currency)}")


@limit_group.command("delete")
@click.argument("limit_id", type=int)
@click.pass_context
def delete_limit(ctx, limit_id: int):
    """Remove a limit."""
    user_id = require_user_or_exit(ctx)
    service = LimitService(ctx.obj["db"], clock=ctx.obj["config"].local_now)

    try:
        service.delete_limit(user_id, limit_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted limit {limit_id}")


def register_commands(cli):
    """Register limit commands with main CLI."""
    cli.add_command(limit_group)
