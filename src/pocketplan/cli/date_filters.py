"""CLI helpers for date range resolution."""

from datetime import date

import click

from pocketplan.utils.date_parser import days_in_month, parse_date


def this_month(today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    return today.replace(day=1), today.replace(day=days_in_month(today))


def local_today(ctx) -> date:
    """Today in the configured timezone, or the host date when no config is loaded."""
    config = (ctx.obj or {}).get("config")
    return config.local_now().date() if config is not None else date.today()


def parse_date_or_exit(ctx, value: str | None, label: str) -> date | None:
    """Parse an optional CLI date, exiting with an error when it is invalid."""
    if not value:
        return None
    try:
        return parse_date(value, today=local_today(ctx))
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    default_range: tuple[date, date] | None = None,
) -> tuple[date | None, date | None]:
    """Resolve a CLI date range from explicit dates.

    A missing bound is taken from ``default_range`` when one is given.
    """
    start = parse_date_or_exit(ctx, start_date, "start date")
    end = parse_date_or_exit(ctx, end_date, "end date")

    if default_range is not None:
        start = start or default_range[0]
        end = end or default_range[1]

    if start and end and start > end:
        click.echo(f"Error: Start date {start} is after end date {end}.", err=True)
        ctx.exit(1)
    return start, end
