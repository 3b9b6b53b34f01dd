"""Notification settings commands."""

import click
from pocketplan.cli.error_handling import handle_domain_error
from pocketplan.cli.user_context import require_user_or_exit
from pocketplan.domain.insights import INSIGHT_BUILDERS, InsightService
from pocketplan.domain.notifications import NOTIFICATION_TYPES, NotificationService, is_notification_enabled

TYPE_CHOICES = click.Choice(list(NOTIFICATION_TYPES))


@click.group("notify")
def notify_group():
    """Manage push notifications."""
    pass


@notify_group.command("register")
@click.argument("token")
@click.pass_context
def register(ctx, token: str):
    """Register the push TOKEN of the current user's device."""
    user_id = require_user_or_exit(ctx)
    service = NotificationService(ctx.obj["db"])

    try:
        service.register_token(user_id, token)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Registered push token for {user_id}")


@notify_group.command("settings")
@click.pass_context
def settings(ctx):
    """Show which notifications are enabled."""
    user_id = require_user_or_exit(ctx)
    service = NotificationService(ctx.obj["db"])

    try:
        recipient = service.get_settings(user_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Notifications: {'on' if recipient.is_enabled else 'off'}")
    for notification_type in NOTIFICATION_TYPES:
        state = "on" if is_notification_enabled(recipient, notification_type) else "off"
        click.echo(f"  {notification_type:22s} {state}")


@notify_group.command("enable")
@click.argument("notification_type", type=TYPE_CHOICES, required=False)
@click.pass_context
def enable(ctx, notification_type: str | None):
    """Turn notifications on, or only NOTIFICATION_TYPE."""
    _toggle(ctx, notification_type, True)


@notify_group.command("disable")
@click.argument("notification_type", type=TYPE_CHOICES, required=False)
@click.pass_context
def disable(ctx, notification_type: str | None):
    """Turn notifications off, or only NOTIFICATION_TYPE."""
    _toggle(ctx, notification_type, False)


def _toggle(ctx, notification_type: str | None, enabled: bool) -> None:
    user_id = require_user_or_exit(ctx)
    service = NotificationService(ctx.obj["db"])
    state = "Enabled" if enabled else "Disabled"

    try:
        if notification_type is None:
            service.set_enabled(user_id, enabled)
            click.echo(f"{state} notifications")
        else:
            service.set_notification_type(user_id, notification_type, enabled)
            click.echo(f"{state} {notification_type}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@notify_group.command("history")
@click.option("--limit", type=int, default=20, show_default=True)
@click.pass_context
def history(ctx, limit: int):
    """Show recently sent notifications."""
    user_id = require_user_or_exit(ctx)
    service = NotificationService(ctx.obj["db"])

    records = service.history(user_id, limit)
    if not records:
        click.echo("No notifications sent yet.")
        return
    for record in records:
        click.echo(f"{record.sent_at:%Y-%m-%d %H:%M} | {record.title}")
        click.echo(f"    {record.body}")


@notify_group.command("preview")
@click.argument("notification_type", type=TYPE_CHOICES)
@click.pass_context
def preview(ctx, notification_type: str):
    """Print the notification NOTIFICATION_TYPE would produce now, without sending it."""
    user_id = require_user_or_exit(ctx)
    service = InsightService(ctx.obj["db"], clock=ctx.obj["config"].local_now, currency=ctx.obj["config"].currency)

    try:
        insight = getattr(service, INSIGHT_BUILDERS[notification_type])(user_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if insight is None:
        click.echo("Nothing to notify about.")
        return
    click.echo(insight.title)
    click.echo(insight.body)


def register_commands(cli):
    """Register notification commands with main CLI."""
    cli.add_command(notify_group)
