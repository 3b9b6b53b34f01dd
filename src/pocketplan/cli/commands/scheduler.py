"""Scheduler commands."""

import click
from pocketplan.scheduler.runner import build_scheduler


def _describe(schedule) -> str:
    text = f"{schedule.hour:02d}:{schedule.minute:02d}"
    if schedule.weekdays is not None:
        days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
        text += " on " + ",".join(days[d] for d in sorted(schedule.weekdays))
    if schedule.days_of_month is not None:
        text += " on days " + ",".join(str(d) for d in sorted(schedule.days_of_month))
    return text


@click.group("scheduler")
def scheduler_group():
    """Run scheduled jobs."""
    pass


@scheduler_group.command("list")
@click.pass_context
def list_jobs(ctx):
    """List jobs and when they run."""
    scheduler = build_scheduler(ctx.obj["db"], ctx.obj["config"])
    click.echo(f"Jobs ({scheduler.timezone}):")
    for name, (_, schedule) in scheduler.jobs.items():
        click.echo(f"  {name:32s} {_describe(schedule)}")


@scheduler_group.command("run")
@click.argument("job")
@click.pass_context
def run_job(ctx, job: str):
    """Run JOB once, now.

    Examples:
        pocketplan scheduler run bill_subscriptions
        pocketplan scheduler run daily_insights
    """
    scheduler = build_scheduler(ctx.obj["db"], ctx.obj["config"])
    if job not in scheduler.jobs:
        click.echo(f"Error: Unknown job '{job}'. Use 'scheduler list' to see jobs.", err=True)
        ctx.exit(1)

    result = scheduler.run_job(job)
    click.echo(f"{result.job}: {result.processed} processed, {result.skipped} skipped, {result.failed} failed")
    if result.failed:
        ctx.exit(1)


@scheduler_group.command("start")
@click.option("--poll", type=float, help="Seconds between checks (default from POCKETPLAN_SCHEDULER_POLL)")
@click.pass_context
def start(ctx, poll: float | None):
    """Run jobs on their schedule until interrupted."""
    config = ctx.obj["config"]
    scheduler = build_scheduler(ctx.obj["db"], config)
    click.echo(f"Scheduler running with {len(scheduler.jobs)} jobs. Press Ctrl+C to stop.")
    try:
        scheduler.run_forever(poll or config.scheduler_poll_seconds)
    except KeyboardInterrupt:
        click.echo("\nScheduler stopped.")


def register_commands(cli):
    """Register scheduler commands with main CLI."""
    cli.add_command(scheduler_group)
