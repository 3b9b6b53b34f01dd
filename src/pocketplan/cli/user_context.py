"""CLI helpers for the acting user."""

from __future__ import annotations

import click


def require_user_or_exit(ctx: click.Context) -> str:
    """Return the user from --user / POCKETPLAN_USER, or exit with a CLI error.

    Every wallet-scoped command acts on behalf of exactly one user.
    """
    user_id = ctx.obj.get("user")
    if not user_id:
        click.echo("Error: No user given. Use --user or set POCKETPLAN_USER.", err=True)
        ctx.exit(1)
    return user_id
