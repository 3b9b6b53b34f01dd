"""End-to-end tests for the command line interface."""

import json
from datetime import datetime

import pytest

from pocketplan.cli.main import cli
from pocketplan.config import Config


@pytest.fixture
def run(cli_runner, temp_db):
    """Invoke the CLI against the temporary database as 'alice'."""

    def invoke(*args, user="alice", input=None):
        options = ["--db-path", temp_db.database_path]
        if user:
            options += ["--user", user]
        return cli_runner.invoke(cli, options + list(args), input=input)

    return invoke


def test_help(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "budget" in result.output


def test_user_required(run):
    result = run("wallet", "show", user=None)
    assert result.exit_code == 1
    assert "No user given" in result.output


def test_wallet_lifecycle(run):
    result = run("wallet", "create", "--balance", "1000")
    assert result.exit_code == 0
    assert "balance 1000.00zł" in result.output

    result = run("wallet", "create")
    assert result.exit_code == 1
    assert "already has a wallet" in result.output

    result = run("wallet", "settings", "--income", "3000", "--target", "50", "--paycheck-date", "end")
    assert result.exit_code == 0
    assert "Paycheck date: end" in result.output

    result = run("wallet", "set-balance", "1200")
    assert result.exit_code == 0
    assert "Balance set to 1200.00zł" in result.output

    result = run("wallet", "budget")
    assert result.exit_code == 0
    assert "You can spend" in result.output


def test_missing_wallet(run):
    result = run("wallet", "show")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_expenses(run):
    run("wallet", "create", "--balance", "1000")

    result = run("expense", "add", "25.50", "Lunch", "--category", "food", "--tag", "work")
    assert result.exit_code == 0
    assert "25.50zł Lunch" in result.output

    result = run("wallet", "show")
    assert "Balance: 974.50zł" in result.output

    result = run("wallet", "history", "--category", "food")
    assert "Found 1 entry" in result.output
    assert "Lunch" in result.output

    result = run("expense", "add", "5", "Impulse", "--spontaneous-rate", "2")
    assert result.exit_code == 1

    result = run("expense", "refund", "999")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_delete_asks_for_confirmation(run):
    run("wallet", "create", "--balance", "100")
    run("expense", "add", "10", "Snack")

    result = run("expense", "delete", "2", input="n\n")
    assert "Deletion cancelled." in result.output

    result = run("expense", "delete", "2", "--yes")
    assert result.exit_code == 0
    assert "Balance: 100.00zł" in run("wallet", "show").output


def test_receipt_import(run, tmp_path):
    run("wallet", "create", "--balance", "100")
    receipt = tmp_path / "receipt.json"
    receipt.write_text(
        json.dumps(
            {
                "merchant": "Lidl",
                "total_price": "45.50",
                "date": "2025-03-11",
                "title": "Groceries",
                "category": "food",
                "subexpenses": [{"name": "Bread", "amount": "5.50"}],
            }
        )
    )

    result = run("expense", "receipt", str(receipt))
    assert result.exit_code == 0
    assert "Shop: Lidl" in result.output
    assert "Bread: 5.50zł" in result.output
    assert "Balance: 54.50zł" in run("wallet", "show").output


def test_subscriptions_and_limits(run):
    run("wallet", "create", "--balance", "1000")

    result = run("subscription", "add", "49.99", "Netflix")
    assert result.exit_code == 0
    assert "Created subscription" in result.output
    assert "Netflix" in run("subscription", "list").output

    result = run("limit", "add", "food", "800")
    assert result.exit_code == 0
    assert "Created monthly limit" in result.output
    assert "food" in run("limit", "list").output


def test_stats(run):
    run("wallet", "create", "--balance", "1000")
    run("expense", "add", "30", "Pizza", "--category", "food")

    result = run("stats", "legend")
    assert result.exit_code == 0
    assert "food" in result.output
    assert "100.00%" in result.output


def test_notifications(run):
    result = run("notify", "register", "ExponentPushToken[abc]")
    assert result.exit_code == 0

    run("notify", "disable", "weeklyReport")
    output = run("notify", "settings").output
    assert "Notifications: on" in output
    assert "weeklyReport" in output

    result = run("notify", "enable", "horoscope")
    assert result.exit_code == 2


def test_scheduler_commands(run):
    result = run("scheduler", "list", user=None)
    assert result.exit_code == 0
    assert "bill_subscriptions" in result.output

    result = run("scheduler", "run", "realize_scheduled_transactions", user=None)
    assert result.exit_code == 0
    assert "0 processed" in result.output

    result = run("scheduler", "run", "nope", user=None)
    assert result.exit_code == 1
    assert "Unknown job" in result.output


def test_dates_follow_configured_timezone(run, monkeypatch):
    monkeypatch.setattr(Config, "local_now", lambda self: datetime(2025, 3, 12, 23, 30))
    run("wallet", "create", "--balance", "100")

    result = run("expense", "add", "10", "Dentist", "--date", "tomorrow", "--schedule")
    assert result.exit_code == 0
    assert "Scheduled for 2025-03-13" in result.output
