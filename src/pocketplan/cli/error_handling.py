"""Rendering of ledger errors on the command line."""

import logging

import click

from pocketplan.domain.errors import DomainError, NotFoundError

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Print ``error`` to stderr and exit with status 1.

    Missing wallets get a hint on how to create one.
    """
    logger.debug("Command %s failed", ctx.command_path, exc_info=error)
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, NotFoundError) and str(error).startswith("Wallet for user"):
        click.echo("Create one with 'pocketplan wallet create'.", err=True)
    ctx.exit(1)
