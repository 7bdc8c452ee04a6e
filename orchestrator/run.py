# -*- coding: utf-8 -*-
import asyncio
import json
from dataclasses import asdict

import click
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from calendar_feed.models import CalendarRecord
from calendar_feed.parser import parse_feed, sort_by_due, upcoming_major_assignments
from calendar_feed.timestamps import now_ms
from orchestrator.utils import configure_logging, console, read_feed_or_exit
from reminder_scheduler.models import ReminderEntry, ReminderSettings
from reminder_scheduler.scheduler import DEFAULT_SNOOZE_MINUTES, fire_due, mark_complete, plan_reminders, snooze_reminder
from reminder_scheduler.service import CHECK_INTERVAL_MINUTES, ReminderService
from reminder_scheduler.store import REMINDER_STATE_PATH, JsonFileStateStore


def truncate_title(title: str, max_length: int = 45) -> str:
    """Truncate title to max_length characters, adding ellipsis if needed."""
    if len(title) <= max_length:
        return title
    return title[:max_length-3] + "..."


def create_records_table(records: list[CalendarRecord], title: str = "📚 Assignments") -> Table:
    """Create a table of records, soonest due first."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("", style="cyan", width=3)
    table.add_column("Title", style="white")
    table.add_column("Due", style="yellow")
    table.add_column("Location", style="dim")

    for record in sort_by_due(records):
        marker = "⭐" if record.is_major else ("📝" if record.is_assignment else "📅")
        due = record.due_time or record.start_time or "—"
        if record.used_fallback_due_date:
            due += " [dim](from start)[/dim]"
        table.add_row(marker, truncate_title(record.title), due, record.location or "")
    return table


def create_reminders_table(fire_now: list[ReminderEntry], scheduled: list[ReminderEntry]) -> Table:
    """Create a table for reminders firing now and scheduled ones."""
    table = Table(title="⏰ Reminders", show_header=True, header_style="bold magenta")
    table.add_column("", style="cyan", width=3)
    table.add_column("Message", style="white")
    table.add_column("In", style="yellow")
    table.add_column("Id", style="dim")

    for entry in fire_now:
        table.add_row("🔔", entry.message, "now", entry.reminder_id)
    for entry in sorted(scheduled, key=lambda e: e.target_time):
        minutes = entry.delay // 60000
        table.add_row("⏰", entry.message, f"{minutes // 60}h {minutes % 60:02d}m", entry.reminder_id)
    return table


def print_notification(entry: ReminderEntry) -> None:
    """Notifier used by `watch`: print the reminder as a panel."""
    console.print(
        Panel(
            f"[bold]{entry.message}[/bold]\nDue: {entry.due_display or '—'}\n[dim]{entry.reminder_id}[/dim]",
            title="📚 Assignment Reminder",
            border_style="yellow",
        )
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Calendar feed assignments and reminders."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(verbose)


@main.command("parse")
@click.argument("source")
@click.option("--all", "show_all", is_flag=True, help="Include events that aren't assignments.")
@click.option("--json", "as_json", is_flag=True, help="Print records as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Also print the full records.")
@click.pass_context
def parse_command(ctx: click.Context, source: str, show_all: bool, as_json: bool, verbose: bool) -> None:
    """Parse a calendar feed and list its assignments.

    SOURCE: Path to an .ics file or a feed URL (http, https, webcal).
    """
    records = parse_feed(read_feed_or_exit(source))
    shown = records if show_all else [r for r in records if r.is_assignment]

    if as_json:
        click.echo(json.dumps([asdict(r) for r in shown], indent=2))
        return
    if verbose or ctx.obj["verbose"]:
        console.print(JSON(json.dumps([asdict(r) for r in shown])))

    console.print(create_records_table(shown))

    majors = upcoming_major_assignments(records, now_ms())
    if majors:
        console.print(create_records_table(majors, title="⭐ Major assignments, next 14 days"))

    stats_text = Text()
    stats_text.append("Records: ", style="white")
    stats_text.append(f"{len(records)}", style="bold green")
    stats_text.append("\n")
    stats_text.append("Assignments: ", style="white")
    stats_text.append(f"{sum(1 for r in records if r.is_assignment)}", style="bold green")
    console.print(Panel(stats_text, title="📊 Statistics", border_style="green"))


@main.command("remind")
@click.argument("source")
@click.option("--state", "state_path", default=REMINDER_STATE_PATH, show_default=True, help="Reminder state file.")
@click.option("--interval", "intervals", multiple=True, type=float, help="Lead time in hours (repeatable).")
def remind_command(source: str, state_path: str, intervals: tuple[float, ...]) -> None:
    """Refresh records from SOURCE, fire the reminders that are due and schedule the rest.

    SOURCE: Path to an .ics file or a feed URL.
    """
    records = parse_feed(read_feed_or_exit(source))
    store = JsonFileStateStore(state_path)

    now = now_ms()
    with store.transaction() as stored:
        stored.records = records
        if intervals:
            stored.settings = ReminderSettings(enabled=stored.settings.enabled, intervals_hours=intervals)
        computation, state = plan_reminders(records, stored.settings, stored.reminder_state, now)
        # Printed below, so they count as delivered
        stored.reminder_state, delivered = fire_due(state, now)

    if not (delivered or computation.to_schedule_future):
        console.print("✅ No new reminders.")
        return
    console.print(create_reminders_table(delivered, computation.to_schedule_future))


@main.command("snooze")
@click.argument("reminder_id")
@click.option("--minutes", default=DEFAULT_SNOOZE_MINUTES, show_default=True, type=float)
@click.option("--state", "state_path", default=REMINDER_STATE_PATH, show_default=True)
def snooze_command(reminder_id: str, minutes: float, state_path: str) -> None:
    """Snooze REMINDER_ID for a while."""
    with JsonFileStateStore(state_path).transaction() as stored:
        stored.reminder_state = snooze_reminder(stored.reminder_state, reminder_id, now_ms(), minutes)
    console.print(f"😴 Snoozed {reminder_id} for {minutes:g} minute(s).")


@main.command("complete")
@click.argument("reminder_id")
@click.option("--state", "state_path", default=REMINDER_STATE_PATH, show_default=True)
def complete_command(reminder_id: str, state_path: str) -> None:
    """Mark the assignment behind REMINDER_ID as completed."""
    with JsonFileStateStore(state_path).transaction() as stored:
        stored.reminder_state = mark_complete(stored.reminder_state, reminder_id, now_ms())
    console.print(f"✅ Completed {reminder_id}.")


@main.command("watch")
@click.argument("url")
@click.option("--every", "every_minutes", default=CHECK_INTERVAL_MINUTES, show_default=True, type=float,
              help="Minutes between feed refreshes.")
@click.option("--state", "state_path", default=REMINDER_STATE_PATH, show_default=True)
def watch_command(url: str, every_minutes: float, state_path: str) -> None:
    """Keep refreshing URL and print reminders as they come due."""
    service = ReminderService(JsonFileStateStore(state_path), notifier=print_notification)
    console.print(
        Panel.fit(
            f"[bold blue]📚 Watching calendar[/bold blue]\n{url}\nEvery [bold]{every_minutes:g}[/bold] minute(s)",
            border_style="blue",
        )
    )
    try:
        asyncio.run(service.run_periodic(every_minutes, url=url))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")


if __name__ == "__main__":
    main()
