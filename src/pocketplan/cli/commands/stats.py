"""Spending statistics commands."""

import calendar

import click
from pocketplan.cli.date_filters import local_today, resolve_cli_date_range, this_month
from pocketplan.cli.error_handling import handle_domain_error
from pocketplan.cli.user_context import require_user_or_exit
from pocketplan.domain.analysis import ExpenseAnalysisService
from pocketplan.domain.statistics import StatisticsService
from pocketplan.utils.amount_parser import format_amount


def date_range_options(func):
    """Add --start-date/--end-date options defaulting to the current month."""
    func = click.option("--end-date", help="End date (default: last day of this month)")(func)
    func = click.option("--start-date", help="Start date (default: first day of this month)")(func)
    return func


def _setup(ctx, start_date, end_date):
    user_id = require_user_or_exit(ctx)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, default_range=this_month(local_today(ctx))
    )
    return user_id, StatisticsService(ctx.obj["db"]), start, end


def _money(ctx, amount) -> str:
    return format_amount(amount, ctx.obj["config"].currency)


@click.group("stats")
def stats_group():
    """Spending statistics and analysis."""
    pass


@stats_group.command("legend")
@date_range_options
@click.option("--topics", is_flag=True, help="Group 'topic:sub' categories by topic")
@click.pass_context
def legend(ctx, start_date: str | None, end_date: str | None, topics: bool):
    """Spending per category with its share of the total."""
    user_id, service, start, end = _setup(ctx, start_date, end_date)
    try:
        entries = service.legend(user_id, start, end, detailed=not topics)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not entries:
        click.echo("No expenses in this period.")
        return
    click.echo(f"\nSpending by category {start} - {end}")
    click.echo("-" * 60)
    for entry in entries:
        click.echo(
            f"{entry.category or 'Uncategorized':25s} {_money(ctx, entry.total):>12s} "
            f"{entry.percentage:>6}% ({entry.count})"
        )


@stats_group.command("weekdays")
@date_range_options
@click.pass_context
def weekdays(ctx, start_date: str | None, end_date: str | None):
    """Spending per day of the week."""
    user_id, service, start, end = _setup(ctx, start_date, end_date)
    try:
        days = service.day_of_week(user_id, start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    for day in days:
        click.echo(
            f"{calendar.day_abbr[day.day - 1]}  count {day.count:3d}  total {_money(ctx, day.total):>12s}  "
            f"avg {_money(ctx, day.avg):>10s}  median {_money(ctx, day.median):>10s}"
        )


@stats_group.command("daily")
@date_range_options
@click.pass_context
def daily(ctx, start_date: str | None, end_date: str | None):
    """Spending per day."""
    user_id, service, start, end = _setup(ctx, start_date, end_date)
    try:
        totals = service.spendings_by_day(user_id, start, end)
        average = service.average_daily_spending(user_id, start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    for total in totals:
        click.echo(f"{total.date}  {_money(ctx, total.total):>12s}")
    click.echo(f"Average per day: {_money(ctx, average)}")


@stats_group.command("streaks")
@date_range_options
@click.pass_context
def streaks(ctx, start_date: str | None, end_date: str | None):
    """Days without spending and no-spend streaks."""
    user_id, service, start, end = _setup(ctx, start_date, end_date)
    try:
        zero_days = service.zero_expense_days(user_id, start, end)
        found = service.no_spending_streaks(user_id, start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"{len(zero_days)} day{'s' if len(zero_days) != 1 else ''} without spending")
    for streak in found:
        click.echo(f"  {streak.start} - {streak.end} ({streak.length} days)")


@stats_group.command("limits")
@date_range_options
@click.pass_context
def limits(ctx, start_date: str | None, end_date: str | None):
    """Monthly spending against the target and topic limits."""
    user_id, service, start, end = _setup(ctx, start_date, end_date)
    try:
        reports = service.spending_limits(user_id, start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not reports:
        click.echo("No expenses in this period.")
        return
    for report in reports:
        flag = " EXCEEDED" if report.general_limit_exceeded else ""
        click.echo(f"{report.month}: {_money(ctx, report.total_spent)} of {_money(ctx, report.general_limit)}{flag}")
        for name, spent, limit, exceeded in report.categories:
            click.echo(f"  {name:20s} {_money(ctx, spent)} / {_money(ctx, limit)}{' EXCEEDED' if exceeded else ''}")


@stats_group.command("analysis")
@click.pass_context
def analysis(ctx):
    """Where the money went over the last three months, by description."""
    user_id = require_user_or_exit(ctx)
    service = ExpenseAnalysisService(ctx.obj["db"], clock=ctx.obj["config"].local_now, currency=ctx.obj["config"].currency)

    result = service.analyze(user_id)
    if result is None:
        click.echo("Not enough data to analyze yet.")
        return
    click.echo(result.title)
    click.echo(result.body)
    click.echo("\nTop by impact:")
    for group in result.top_by_impact:
        click.echo(f"  {group.name}: {_money(ctx, group.total)} in {group.count} entries")


def register_commands(cli):
    """Register stats commands with main CLI."""
    cli.add_command(stats_group)
