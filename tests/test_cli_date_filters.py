"""Tests for CLI date filter helper."""

from datetime import date, datetime

import click
import pytest

from pocketplan.cli.date_filters import local_today, parse_date_or_exit, resolve_cli_date_range, this_month


def _ctx() -> click.Context:
    return click.Context(click.Command("test"))


def test_this_month():
    assert this_month(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))


def test_parse_date_or_exit_skips_empty():
    assert parse_date_or_exit(_ctx(), None, "start date") is None
    assert parse_date_or_exit(_ctx(), "", "start date") is None


def test_parse_date_or_exit_rejects_invalid(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        parse_date_or_exit(_ctx(), "not a date", "start date")

    assert excinfo.value.exit_code == 1
    assert "Invalid start date" in capsys.readouterr().err


def test_resolve_cli_date_range_parses_explicit_dates():
    start, end = resolve_cli_date_range(_ctx(), start_date="2024-01-02", end_date="2024-01-05")

    assert start == date(2024, 1, 2)
    assert end == date(2024, 1, 5)


def test_resolve_cli_date_range_applies_default_range():
    default_range = (date(2020, 1, 1), date(2020, 1, 31))

    start, end = resolve_cli_date_range(
        _ctx(), start_date="2020-01-10", end_date=None, default_range=default_range
    )

    assert start == date(2020, 1, 10)
    assert end == date(2020, 1, 31)


def test_resolve_cli_date_range_open_ended():
    assert resolve_cli_date_range(_ctx(), start_date=None, end_date=None) == (None, None)


def test_resolve_cli_date_range_rejects_reversed(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(_ctx(), start_date="2024-02-01", end_date="2024-01-01")

    assert excinfo.value.exit_code == 1
    assert "is after end date" in capsys.readouterr().err


class _Config:
    def local_now(self):
        return datetime(2025, 3, 12, 23, 30)


def test_relative_dates_use_configured_clock():
    ctx = click.Context(click.Command("test"), obj={"config": _Config()})

    assert local_today(ctx) == date(2025, 3, 12)
    assert parse_date_or_exit(ctx, "tomorrow", "end date") == date(2025, 3, 13)


def test_local_today_without_config():
    assert local_today(_ctx()) == date.today()
