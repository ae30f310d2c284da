"""Main CLI application."""

import json
import shlex
import sys
from pathlib import Path
from typing import Callable, NoReturn, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from goal_audit import __version__
from goal_audit.automation.notifier import Notifier
from goal_audit.cli.config_commands import config
from goal_audit.core.config import ConfigManager
from goal_audit.core.exceptions import GoalAuditError, InconsistentStateError
from goal_audit.core.models import Entry, Status
from goal_audit.core.query import ViewFilter, sort_for_display
from goal_audit.core.storage import StorageManager
from goal_audit.core.tracker import GoalTracker, format_elapsed
from goal_audit.logging_setup import setup_logging

console = Console()
error_console = Console(stderr=True)

STATUS_MARKERS = {
    Status.IN_THE_FUTURE: "[dim]future[/dim]",
    Status.ON_THE_MOVE: "[green]moving[/green]",
    Status.WAITING: "[yellow]waiting[/yellow]",
}


def format_estimate(hours: float) -> str:
    """Format an estimate in hours as HH:MM."""
    return format_elapsed(hours * 3600)


def fail(message: object) -> NoReturn:
    """Print an error and exit with status 1."""
    error_console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def get_config(ctx: click.Context) -> ConfigManager:
    """Get the ConfigManager for this invocation."""
    config_mgr: ConfigManager = ctx.obj["config"]
    return config_mgr


def get_tracker(ctx: click.Context, idle_timeout: Optional[float] = None) -> GoalTracker:
    """Get a GoalTracker over the configured database file.

    One-shot commands run without an idle timer; only ``session`` passes one.
    """
    config_mgr = get_config(ctx)
    data_file = ctx.obj.get("data_file") or config_mgr.data_file
    storage = StorageManager(Path(data_file))
    notifier = Notifier(
        enabled=bool(config_mgr.get("notifications.enabled")),
        timeout=int(config_mgr.get("notifications.timeout", 5)),
    )
    try:
        return GoalTracker(storage=storage, notifier=notifier, idle_timeout=idle_timeout)
    except GoalAuditError as e:
        fail(e)


def save_tracker(ctx: click.Context, tracker: GoalTracker) -> None:
    """Save the database, backing up the previous file first if configured."""
    if get_config(ctx).get("advanced.backup_on_save") and tracker.storage.exists():
        tracker.storage.backup()
    tracker.save()


def find_entry(tracker: GoalTracker, entry_id: int) -> Entry:
    """Look up an entry or exit with an error."""
    entry = tracker.database.lookup(entry_id)
    if entry is None:
        fail(f"No goal with id {entry_id}")
    return entry


def default_view(ctx: click.Context) -> ViewFilter:
    """Build the view filter from the display settings."""
    config_mgr = get_config(ctx)
    return ViewFilter(
        category=config_mgr.get("display.category"),
        show_future=bool(config_mgr.get("display.show_future", False)),
        show_completed=bool(config_mgr.get("display.show_completed", False)),
    )


def render_entries(tracker: GoalTracker, view: ViewFilter) -> None:
    """Print the goals visible through view in display order."""
    entries = sort_for_display(tracker.database.query(view.predicate()))

    if not entries:
        console.print("[yellow]No goals found[/yellow]")
        return

    title = "Goals" if view.category is None else f"Goals in {view.category}"
    table = Table(title=title)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Status")
    table.add_column("Goal", style="bold")
    table.add_column("Category", style="blue")
    table.add_column("Spent", style="magenta")
    table.add_column("Estimate", style="magenta")

    for entry in entries:
        spent = entry.accumulated_time
        goal = entry.goal
        if tracker.is_active_entry(entry.id):
            spent += tracker.elapsed()
            goal = f"▶ {goal}"
        elif entry.completed:
            goal = f"✓ {goal}"

        table.add_row(
            str(entry.id),
            STATUS_MARKERS[entry.status],
            goal,
            entry.category,
            format_elapsed(spent),
            format_estimate(entry.estimate),
        )

    console.print(table)


def render_status(tracker: GoalTracker) -> None:
    """Print the tracked goal, if any."""
    entry = tracker.current_entry()

    if entry is None:
        if tracker.is_tracking:
            console.print("[red]The running timer points at a deleted goal[/red]")
            console.print("Discard it with: [cyan]goal-audit cancel[/cyan]")
            return
        console.print("[yellow]Not working on any goal[/yellow]")
        console.print("\nStart with: [cyan]goal-audit work ID[/cyan]")
        return

    elapsed = tracker.elapsed()
    content = f"""[bold]{entry.goal}[/bold]

[dim]Category:[/dim] {entry.category}
[dim]This session:[/dim] {format_elapsed(elapsed)}
[dim]Total:[/dim] {format_elapsed(entry.accumulated_time + elapsed)} of {format_estimate(entry.estimate)}
[dim]Goal ID:[/dim] {entry.id}"""

    console.print(Panel(content, title="Working On", border_style="green"))


@click.group()
@click.version_option(version=__version__)
@click.option("--data-file", help="Custom database file", type=click.Path(dir_okay=False))
@click.option("--config", "config_path", help="Custom config file", type=click.Path(dir_okay=False))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Override the configured log level",
)
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.pass_context
def cli(
    ctx: click.Context,
    data_file: Optional[str],
    config_path: Optional[str],
    log_level: Optional[str],
    no_color: bool,
) -> None:
    """Goal Audit - track the time you spend on your goals.

    Work on one goal at a time; tracking stops by itself when you go idle.
    """
    ctx.ensure_object(dict)
    path = Path(config_path) if config_path else None
    try:
        config_mgr = ConfigManager(path)
    except ValueError as e:
        error_console.print(f"[yellow]Warning:[/yellow] {e}")
        config_mgr = ConfigManager(path)

    ctx.obj["config"] = config_mgr
    ctx.obj["data_file"] = data_file

    setup_logging(log_level or config_mgr.get("advanced.log_level", "WARNING"))

    if no_color:
        console.no_color = True


cli.add_command(config)


@cli.command()
@click.argument("category")
@click.argument("goal")
@click.option("-e", "--estimate", default="0", help="Estimated effort in hours")
@click.pass_context
def add(ctx: click.Context, category: str, goal: str, estimate: str) -> None:
    """Add a new goal.

    Example:
        goal-audit add Work "Write quarterly report" -e 2.5
    """
    tracker = get_tracker(ctx)

    try:
        entry = tracker.create_entry(category, goal, estimate)
        save_tracker(ctx, tracker)
    except GoalAuditError as e:
        fail(e)

    console.print(f"[green]✓[/green] Added goal {entry.id}: {goal}")
    console.print(f"  Category: {category}")
    console.print(f"  Estimate: {format_estimate(entry.estimate)}")


@cli.command("list")
@click.option("-c", "--category", help="Only show this category")
@click.option("--future/--no-future", default=None, help="Show goals that are in the future")
@click.option("--completed/--no-completed", default=None, help="Show completed goals")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_goals(
    ctx: click.Context,
    category: Optional[str],
    future: Optional[bool],
    completed: Optional[bool],
    as_json: bool,
) -> None:
    """List goals, most recently touched first.

    Example:
        goal-audit list
        goal-audit list -c Work --completed
    """
    tracker = get_tracker(ctx)
    view = default_view(ctx)
    if category is not None:
        view.pin_category(category)
    if future is not None:
        view.show_future = future
    if completed is not None:
        view.show_completed = completed

    if as_json:
        entries = sort_for_display(tracker.database.query(view.predicate()))
        print(json.dumps([entry.to_dict() for entry in entries], indent=2))
        return

    render_entries(tracker, view)


@cli.command()
@click.argument("entry_id", type=int)
@click.pass_context
def work(ctx: click.Context, entry_id: int) -> None:
    """Start working on a goal, stopping the current one.

    Example:
        goal-audit work 3
    """
    tracker = get_tracker(ctx)
    entry = find_entry(tracker, entry_id)
    previous = tracker.current_entry()

    try:
        tracker.work_on(entry)
        save_tracker(ctx, tracker)
    except GoalAuditError as e:
        fail(e)

    if previous is not None and previous is not entry:
        console.print(f"[yellow]⏹[/yellow]  Stopped: {previous.goal}")
    console.print(f"[green]▶[/green]  Working on: {entry.goal}")


@cli.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop working on the current goal.

    Example:
        goal-audit stop
    """
    tracker = get_tracker(ctx)
    elapsed = tracker.elapsed()

    try:
        entry = tracker.stop()
    except InconsistentStateError as e:
        # The dangling timer has been cleared; persist that before failing.
        try:
            save_tracker(ctx, tracker)
        except GoalAuditError as save_error:
            error_console.print(f"[red]Error:[/red] {save_error}")
        fail(e)

    try:
        save_tracker(ctx, tracker)
    except GoalAuditError as e:
        fail(e)

    if entry is None:
        console.print("[yellow]Not working on any goal[/yellow]")
        return

    console.print(f"[green]✓[/green] Stopped working on: {entry.goal}")
    console.print(f"  This session: {format_elapsed(elapsed)}")
    console.print(f"  Total: {format_elapsed(entry.accumulated_time)}")


@cli.command()
@click.argument("entry_id", type=int)
@click.pass_context
def toggle(ctx: click.Context, entry_id: int) -> None:
    """Start working on a goal, or stop if it is the current one.

    Example:
        goal-audit toggle 3
    """
    tracker = get_tracker(ctx)
    entry = find_entry(tracker, entry_id)

    try:
        active = tracker.toggle_active(entry)
        save_tracker(ctx, tracker)
    except GoalAuditError as e:
        fail(e)

    if active is None:
        console.print(f"[yellow]⏹[/yellow]  Stopped: {entry.goal}")
    else:
        console.print(f"[green]▶[/green]  Working on: {entry.goal}")


@cli.command()
@click.pass_context
def cancel(ctx: click.Context) -> None:
    """Discard the running timer without recording time.

    Example:
        goal-audit cancel
    """
    tracker = get_tracker(ctx)

    if not tracker.cancel():
        console.print("[yellow]Not working on any goal[/yellow]")
        return

    try:
        save_tracker(ctx, tracker)
    except GoalAuditError as e:
        fail(e)
    console.print("[yellow]✓[/yellow] Running timer discarded")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the goal being worked on.

    Example:
        goal-audit status
    """
    render_status(get_tracker(ctx))


def _update_entry(ctx: click.Context, entry_id: int, change: Callable[[Entry], None]) -> Entry:
    tracker = get_tracker(ctx)
    entry = find_entry(tracker, entry_id)
    try:
        change(entry)
        save_tracker(ctx, tracker)
    except GoalAuditError as e:
        fail(e)
    return entry


@cli.command()
@click.argument("entry_id", type=int)
@click.pass_context
def done(ctx: click.Context, entry_id: int) -> None:
    """Mark a goal as completed."""
    entry = _update_entry(ctx, entry_id, Entry.mark_complete)
    console.print(f"[green]✓[/green] Completed: {entry.goal}")


@cli.command()
@click.argument("entry_id", type=int)
@click.pass_context
def undone(ctx: click.Context, entry_id: int) -> None:
    """Mark a goal as not completed."""
    entry = _update_entry(ctx, entry_id, Entry.mark_incomplete)
    console.print(f"[yellow]○[/yellow] Reopened: {entry.goal}")


@cli.command("set-status")
@click.argument("entry_id", type=int)
@click.argument("new_status", type=click.Choice([s.value for s in Status]))
@click.pass_context
def set_status(ctx: click.Context, entry_id: int, new_status: str) -> None:
    """Change the status of a goal.

    Example:
        goal-audit set-status 3 waiting
    """
    entry = _update_entry(ctx, entry_id, lambda e: e.set_status(new_status))
    console.print(f"[green]✓[/green] {entry.goal}: {STATUS_MARKERS[entry.status]}")


@cli.command()
@click.argument("entry_id", type=int)
@click.option("-g", "--goal", help="New goal description")
@click.option("-c", "--category", help="New category")
@click.option("-e", "--estimate", help="New estimate in hours")
@click.pass_context
def edit(
    ctx: click.Context,
    entry_id: int,
    goal: Optional[str],
    category: Optional[str],
    estimate: Optional[str],
) -> None:
    """Edit a goal.

    Example:
        goal-audit edit 3 -e 4
    """

    def change(entry: Entry) -> None:
        if goal is not None:
            entry.goal = goal
        if category is not None:
            entry.category = category
        if estimate is not None:
            entry.estimate = estimate

    entry = _update_entry(ctx, entry_id, change)
    console.print(f"[green]✓[/green] Updated goal {entry.id}: {entry.goal}")


@cli.command()
@click.argument("entry_id", type=int)
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, entry_id: int, yes: bool) -> None:
    """Delete a goal.

    Example:
        goal-audit delete 3 -y
    """
    tracker = get_tracker(ctx)
    entry = find_entry(tracker, entry_id)

    if tracker.is_active_entry(entry_id):
        fail("Stop working on this goal before deleting it")
    if not yes and not click.confirm(f"Delete {entry.goal!r}?"):
        return

    tracker.delete_entry(entry_id)
    try:
        save_tracker(ctx, tracker)
    except GoalAuditError as e:
        fail(e)
    console.print(f"[green]✓[/green] Deleted: {entry.goal}")


@cli.command()
@click.pass_context
def categories(ctx: click.Context) -> None:
    """List the categories in use."""
    tracker = get_tracker(ctx)
    names = tracker.database.distinct_categories()
    if not names:
        console.print("[yellow]No categories yet[/yellow]")
        return
    for name in names:
        console.print(name)


SESSION_HELP = """Commands:
  list                     show goals
  work ID                  start working on a goal (again to stop)
  stop                     stop working
  status                   show the current goal
  add CATEGORY GOAL [H]    add a goal with an estimate in hours
  done ID / undone ID      mark a goal completed or not
  mark ID STATUS           set status (in-the-future, on-the-move, waiting)
  category [NAME]          pin a category, or show all without NAME
  future / completed       toggle future or completed goals
  quit                     stop working, save and leave"""


def _session_command(tracker: GoalTracker, view: ViewFilter, args: list[str]) -> bool:
    """Run one session command. Returns False when the session should end."""
    command, rest = args[0].lower(), args[1:]
    database = tracker.database

    if command in ("quit", "exit", "q"):
        return False
    if command in ("list", "ls"):
        render_entries(tracker, view)
    elif command == "work":
        entry = database.get(int(rest[0]))
        if tracker.toggle_active(entry) is None:
            console.print(f"[yellow]⏹[/yellow]  Stopped: {entry.goal}")
        else:
            console.print(f"[green]▶[/green]  Working on: {entry.goal}")
    elif command == "stop":
        stopped = tracker.stop()
        if stopped is not None:
            console.print(f"[yellow]⏹[/yellow]  Stopped: {stopped.goal}")
    elif command == "status":
        render_status(tracker)
    elif command == "add":
        estimate = rest[2] if len(rest) > 2 else "0"
        entry = tracker.create_entry(rest[0], rest[1], estimate)
        console.print(f"[green]✓[/green] Added goal {entry.id}: {entry.goal}")
    elif command == "done":
        database.get(int(rest[0])).mark_complete()
    elif command == "undone":
        database.get(int(rest[0])).mark_incomplete()
    elif command == "mark":
        database.get(int(rest[0])).set_status(rest[1])
    elif command == "category":
        if rest:
            view.pin_category(rest[0])
        else:
            view.clear_category()
        render_entries(tracker, view)
    elif command == "future":
        view.toggle_future()
        render_entries(tracker, view)
    elif command == "completed":
        view.toggle_completed()
        render_entries(tracker, view)
    else:
        console.print(SESSION_HELP)
    return True


@cli.command()
@click.pass_context
def session(ctx: click.Context) -> None:
    """Interactive session with idle auto-stop.

    Every command counts as activity. After the configured idle timeout
    without input, tracking stops, the database is saved and a desktop
    notification is shown.
    """
    config_mgr = get_config(ctx)
    tracker = get_tracker(ctx, idle_timeout=config_mgr.idle_timeout)
    view = default_view(ctx)

    if tracker.is_tracking:
        console.print("[yellow]A timer was still running from a previous run.[/yellow]")
        render_status(tracker)
        tracker.record_activity()

    render_entries(tracker, view)
    console.print("[dim]Type 'help' for commands.[/dim]")

    while True:
        try:
            line = click.prompt("goal-audit", prompt_suffix="> ", default="", show_default=False)
        except click.Abort:
            break

        tracker.record_activity()
        try:
            args = shlex.split(line)
        except ValueError as e:
            error_console.print(f"[red]Error:[/red] {e}")
            continue
        if not args:
            continue

        try:
            if not _session_command(tracker, view, args):
                break
            tracker.save()
        except IndexError:
            error_console.print(f"[red]Error:[/red] missing argument for {args[0]!r}, type 'help'")
        except (ValueError, GoalAuditError) as e:
            error_console.print(f"[red]Error:[/red] {e}")

    try:
        stopped = tracker.shutdown()
    except GoalAuditError as e:
        fail(e)
    if stopped is not None:
        console.print(f"[yellow]⏹[/yellow]  Stopped: {stopped.goal}")


if __name__ == "__main__":
    cli(obj={})
