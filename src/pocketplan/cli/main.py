"""Main CLI entry point."""

import click
from pocketplan.config import get_config
from pocketplan.database.factories import create_database, create_sqlite_database

# Import and register all commands at module level
from pocketplan.cli.commands import (
    wallet,
    expense,
    subscription,
    limit,
    stats,
    notify,
    scheduler,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides POCKETPLAN_DB_PATH environment variable)",
    envvar="POCKETPLAN_DB_PATH",
)
@click.option(
    "--user",
    "user_id",
    help="User whose wallet the command works on (or POCKETPLAN_USER)",
    envvar="POCKETPLAN_USER",
)
@click.pass_context
def cli(ctx, db_path: str | None, user_id: str | None):
    """Pocketplan - Personal budget and recurring finance manager.

    Keep a wallet balance in sync with expenses, incomes, scheduled entries
    and subscriptions, and get daily insights about your spending.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            config = get_config()
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

        if db_path:
            db = create_sqlite_database(database_path=db_path)
        elif config.database_url:
            db = create_database(config.database_url)
        else:
            db = create_sqlite_database(database_path=config.database_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["config"] = config
        ctx.obj["user"] = user_id
        ctx.call_on_close(db.disconnect)


# Register all commands
wallet.register_commands(cli)
expense.register_commands(cli)
subscription.register_commands(cli)
limit.register_commands(cli)
stats.register_commands(cli)
notify.register_commands(cli)
scheduler.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
