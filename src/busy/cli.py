"""Command-line interface for busy.

busy is a simple time tracker: tasks belong to a project, carry tags, and
are tracked as a list of time intervals.

CONCEPTS:
---------
- TASK:    A piece of work with a title. Running, paused or stopped.
- PROJECT: Named group of tasks, created the first time it is used.
- TAG:     Label attached to tasks, written as ``+name`` on the command line.
- SYNC:    The storage directory is a git repository that can be pulled
           from and pushed to a remote.
"""

import argparse
import logging
import sys
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from busy import __version__
from busy.config import load_config
from busy.core.busy import Busy
from busy.core.period import Period, days_ago, format_duration, midnight, parse_datetime, week_start
from busy.core.types import Task, TaskState
from busy.editor import edit_all_tags, edit_all_tasks, edit_project, edit_tag, edit_task
from busy.errors import BusyError, ExternalCommandError
from busy.report import summarize

console = Console()
logger = logging.getLogger(__name__)

TIME_FORMAT = "%H:%M"
DATE_TIME_FORMAT = "%Y-%m-%d %H:%M"

_STATE_STYLES = {
    TaskState.RUNNING: "green",
    TaskState.PAUSED: "yellow",
    TaskState.STOPPED: "white",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    fmt = "%(name)s: %(message)s" if verbose else "%(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[RichHandler(rich_tracebacks=True, console=console, show_path=verbose)],
    )


def strip_tags(tags: list[str] | None) -> list[str]:
    """Drop the leading ``+`` of command-line tag names."""
    return [tag[1:] if tag.startswith("+") else tag for tag in tags or []]


def _parse_time_arg(value: str, name: str) -> datetime:
    try:
        return parse_datetime(value)
    except ValueError:
        console.print(f"[red]Can't parse {name}:[/red] {value}")
        console.print("Use HH:MM or YYYY-MM-DD HH:MM")
        sys.exit(1)


def _format_moment(moment: datetime | None, now: datetime) -> str:
    if moment is None:
        return "-"
    if moment.date() == now.date():
        return moment.strftime(TIME_FORMAT)
    return moment.strftime(DATE_TIME_FORMAT)


def _get_period(args: argparse.Namespace, now: datetime) -> Period:
    if getattr(args, "today", False):
        return Period.until_now(midnight(now), now)
    if getattr(args, "days", None) is not None:
        return Period.until_now(days_ago(args.days, now), now)
    return Period.until_now(week_start(now), now)


def _project_ids(busy: Busy, names: list[str] | None) -> set[uuid.UUID] | None:
    ids = set()
    for name in names or []:
        project = busy.project_by_name(name)
        if project is not None:
            ids.add(project.id)
    return ids or None


def _tag_ids(busy: Busy, names: list[str] | None) -> set[uuid.UUID] | None:
    ids = {tag.id for tag in busy.find_tags_by_names(strip_tags(names))}
    return ids or None


def print_tasks(busy: Busy, tasks: list[Task], full: bool = False, title: str | None = None) -> None:
    """Render tasks as a table."""
    now = busy.now()
    projects = {p.id: p.name for p in busy.projects()}
    tags = {t.id: t.name for t in busy.tags()}

    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Start", style="blue")
    table.add_column("Stop", style="blue")
    table.add_column("Duration", style="magenta", justify="right")
    table.add_column("Project", style="yellow")
    table.add_column("Title", style="white")
    table.add_column("Tags", style="green")

    for task in tasks:
        state = task.state
        stop = "paused" if state == TaskState.PAUSED else _format_moment(task.stop_time, now)
        table.add_row(
            busy.shorten_id(task.id),
            _format_moment(task.start_time, now),
            stop,
            format_duration(task.duration(now)),
            projects.get(task.project_id, "?"),
            f"[{_STATE_STYLES[state]}]{task.title}[/{_STATE_STYLES[state]}]",
            " ".join(f"+{tags[tag_id]}" for tag_id in task.tags if tag_id in tags),
        )
        if full and len(task.times) > 1:
            for interval in task.times:
                table.add_row(
                    "",
                    _format_moment(interval.start_time, now),
                    _format_moment(interval.stop_time, now),
                    format_duration(interval.duration(now)),
                    "",
                    "",
                    "",
                )

    console.print(table)


def print_task(busy: Busy, task: Task, header: str) -> None:
    console.print(f"[green]{header}[/green]")
    print_tasks(busy, [task], full=True)


# Task commands
def cmd_add(busy: Busy, args: argparse.Namespace) -> None:
    """Add an already finished task."""
    start_time = _parse_time_arg(args.start_time, "start-time")
    finish_time = _parse_time_arg(args.finish_time, "finish-time")
    try:
        task = busy.add(args.project, args.title, strip_tags(args.tags), start_time, finish_time)
    except ValueError as e:
        console.print(f"[red]Can't add task:[/red] {e}")
        sys.exit(1)
    print_task(busy, task, "Task added:")


def cmd_start(busy: Busy, args: argparse.Namespace) -> None:
    """Start a new task."""
    start_time = _parse_time_arg(args.start_time, "start-time") if args.start_time else None
    task = busy.start(args.project, args.title, strip_tags(args.tags), start_time)
    print_task(busy, task, "Task started:")


def cmd_stop(busy: Busy, args: argparse.Namespace) -> None:
    """Stop the active task."""
    print_task(busy, busy.stop(), "Task stopped:")


def cmd_pause(busy: Busy, args: argparse.Namespace) -> None:
    """Pause the running task."""
    print_task(busy, busy.pause(), "Task paused:")


def cmd_resume(busy: Busy, args: argparse.Namespace) -> None:
    """Resume the paused task."""
    print_task(busy, busy.resume(), "Task resumed:")


def cmd_status(busy: Busy, args: argparse.Namespace) -> None:
    """Show the active task, if any."""
    task = busy.active_task()
    if task is None:
        console.print("[yellow]No active task.[/yellow]")
        return
    print_task(busy, task, "Active task:")


def cmd_continue(busy: Busy, args: argparse.Namespace) -> None:
    """Start a copy of an existing task."""
    task = busy.continue_task(busy.resolve_id(args.id))
    print_task(busy, task, "Continue task:")


def cmd_rm(busy: Busy, args: argparse.Namespace) -> None:
    """Remove a task."""
    task = busy.remove_task(busy.resolve_id(args.id))
    print_task(busy, task, "Removed task:")


# Report commands
def cmd_log(busy: Busy, args: argparse.Namespace) -> None:
    """List tasks of a period."""
    now = busy.now()
    period = _get_period(args, now)
    tasks = busy.tasks(period, _project_ids(busy, args.project), _tag_ids(busy, args.tag))
    if not tasks:
        console.print("[yellow]No tasks for this period.[/yellow]")
        return

    print_tasks(busy, tasks, full=args.full)
    total = sum((task.duration(now) for task in tasks), timedelta())
    console.print(f"Total: [magenta]{format_duration(total)}[/magenta]")


def cmd_stat(busy: Busy, args: argparse.Namespace) -> None:
    """Show time totals per project (and per tag)."""
    now = busy.now()
    period = _get_period(args, now)
    tasks = busy.tasks(period, _project_ids(busy, args.project), _tag_ids(busy, args.tag))
    summary = summarize(tasks, busy.projects(), busy.tags(), now)

    table = Table(title="Projects")
    table.add_column("Project", style="yellow")
    table.add_column("Tasks", style="cyan", justify="right")
    table.add_column("Duration", style="magenta", justify="right")
    for total in summary.by_project:
        table.add_row(total.name, str(total.task_count), format_duration(total.duration))
    console.print(table)

    if args.with_tags and summary.by_tag:
        tag_table = Table(title="Tags")
        tag_table.add_column("Tag", style="green")
        tag_table.add_column("Tasks", style="cyan", justify="right")
        tag_table.add_column("Duration", style="magenta", justify="right")
        for total in summary.by_tag:
            tag_table.add_row(f"+{total.name}", str(total.task_count), format_duration(total.duration))
        console.print(tag_table)

    console.print(f"Total: [magenta]{format_duration(summary.total)}[/magenta]")


def cmd_projects(busy: Busy, args: argparse.Namespace) -> None:
    """List all projects."""
    table = Table(title="Projects")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="yellow")
    for project in busy.projects():
        table.add_row(busy.shorten_id(project.id), project.name)
    console.print(table)


def cmd_tags(busy: Busy, args: argparse.Namespace) -> None:
    """List all tags."""
    table = Table(title="Tags")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    for tag in busy.tags():
        table.add_row(busy.shorten_id(tag.id), f"+{tag.name}")
    console.print(table)


def cmd_id(busy: Busy, args: argparse.Namespace) -> None:
    """Print the full id behind a short id."""
    item_id = busy.resolve_id(args.id)
    if busy.task_by_id(item_id) is not None:
        kind = "task"
    elif busy.project_by_id(item_id) is not None:
        kind = "project"
    else:
        kind = "tag"
    console.print(f"{kind} [cyan]{item_id}[/cyan]")


# Edit command
def cmd_edit(busy: Busy, args: argparse.Namespace) -> None:
    """Edit entities in the configured editor."""
    editor = busy.config.editor

    if args.all_tasks:
        tasks = edit_all_tasks(busy, editor)
        console.print(f"[green]Edit finished, {len(tasks)} tasks were saved[/green]")
    elif args.all_tags:
        tags = edit_all_tags(busy, editor)
        console.print(f"[green]Edit finished, {len(tags)} tags were saved[/green]")
    elif args.task:
        print_task(busy, edit_task(busy, busy.resolve_id(args.task), editor), "Updated task:")
    elif args.project:
        project = edit_project(busy, busy.resolve_id(args.project), editor)
        console.print(f"[green]Updated project:[/green] {project.name}")
    elif args.tag:
        tag = edit_tag(busy, busy.resolve_id(args.tag), editor)
        console.print(f"[green]Updated tag:[/green] +{tag.name}")


# Sync command
def cmd_sync(busy: Busy, args: argparse.Namespace) -> None:
    """Sync the storage directory with the remote."""
    if args.push_force:
        console.print("Start sync push force…")
        try:
            busy.push_force()
        except ExternalCommandError as e:
            console.print(f"[red]Sync push force failed, output:[/red]\n{e.output}")
            sys.exit(1)
        console.print("[green]Sync push force success![/green]")
        return

    if args.pull_force:
        console.print("Start sync pull force…")
        try:
            busy.pull_force()
        except ExternalCommandError as e:
            console.print(f"[red]Sync pull force failed, output:[/red]\n{e.output}")
            sys.exit(1)
        console.print("[green]Sync pull force success![/green]")
        return

    console.print("Start syncing…")
    try:
        output = busy.sync()
    except ExternalCommandError as e:
        console.print(f"[red]Sync failed, err output:[/red]\n{e.output}")
        console.print("You can try to use `busy sync --push-force` or `busy sync --pull-force`")
        sys.exit(1)
    logger.debug(output)
    console.print("[green]Syncing finished[/green]")


def _add_filter_args(parser: argparse.ArgumentParser, with_period: bool = True) -> None:
    if with_period:
        period = parser.add_mutually_exclusive_group()
        period.add_argument("--days", type=int, help="Show the last N days (default: this week)")
        period.add_argument("--today", action="store_true", help="Show today only")
    parser.add_argument("--project", nargs="+", help="Only these projects")
    parser.add_argument("--tag", nargs="+", help="Only tasks with any of these tags")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="busy",
        description="Simple CLI time tracker",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    tag_help = "Tags, may be prefixed with `+` like: +my-tag1 +mytag2"
    time_help = "format: HH:MM or YYYY-MM-DD HH:MM"

    add_parser = subparsers.add_parser("add", help="Add a finished task")
    add_parser.add_argument("project", help="Project name")
    add_parser.add_argument("title", help="Task title")
    add_parser.add_argument("tags", nargs="*", help=tag_help)
    add_parser.add_argument("--start-time", required=True, help=f"Task start time, {time_help}")
    add_parser.add_argument("--finish-time", required=True, help=f"Task finish time, {time_help}")
    add_parser.set_defaults(func=cmd_add)

    start_parser = subparsers.add_parser("start", help="Start a new task")
    start_parser.add_argument("project", help="Project name")
    start_parser.add_argument("title", help="Task title")
    start_parser.add_argument("tags", nargs="*", help=tag_help)
    start_parser.add_argument("--start-time", help=f"Override the start time, {time_help}")
    start_parser.set_defaults(func=cmd_start)

    subparsers.add_parser("stop", help="Stop the current task").set_defaults(func=cmd_stop)
    subparsers.add_parser("pause", help="Pause the current task").set_defaults(func=cmd_pause)
    subparsers.add_parser("resume", help="Resume the paused task").set_defaults(func=cmd_resume)
    subparsers.add_parser(
        "status", aliases=["st"], help="Show the active task"
    ).set_defaults(func=cmd_status)

    continue_parser = subparsers.add_parser(
        "continue", help="Continue a task (clone it and start from now)"
    )
    continue_parser.add_argument("id", help="Short task id")
    continue_parser.set_defaults(func=cmd_continue)

    rm_parser = subparsers.add_parser("rm", help="Remove a task")
    rm_parser.add_argument("id", help="Short task id")
    rm_parser.set_defaults(func=cmd_rm)

    log_parser = subparsers.add_parser("log", help="List tasks")
    _add_filter_args(log_parser)
    log_parser.add_argument("--full", action="store_true", help="Show every interval")
    log_parser.set_defaults(func=cmd_log)

    today_parser = subparsers.add_parser(
        "today", aliases=["td"], help="List today's tasks, shortcut for `log --today`"
    )
    _add_filter_args(today_parser, with_period=False)
    today_parser.add_argument("--full", action="store_true", help="Show every interval")
    today_parser.set_defaults(func=cmd_log, today=True, days=None)

    stat_parser = subparsers.add_parser("stat", help="Show project & tag statistics")
    _add_filter_args(stat_parser)
    stat_parser.add_argument("--with-tags", action="store_true", help="Also show tag totals")
    stat_parser.set_defaults(func=cmd_stat)

    subparsers.add_parser("projects", help="List all projects").set_defaults(func=cmd_projects)
    subparsers.add_parser("tags", help="List all tags").set_defaults(func=cmd_tags)

    id_parser = subparsers.add_parser("id", help="Resolve a short id")
    id_parser.add_argument("id", help="Short id")
    id_parser.set_defaults(func=cmd_id)

    edit_parser = subparsers.add_parser(
        "edit",
        help="Edit data in $EDITOR",
        description="Open entities as JSON in your editor and save the result.",
    )
    edit_target = edit_parser.add_mutually_exclusive_group(required=True)
    edit_target.add_argument("--task", help="Short task id")
    edit_target.add_argument("--project", help="Short project id")
    edit_target.add_argument("--tag", help="Short tag id")
    edit_target.add_argument("--all-tasks", action="store_true", help="Edit all tasks")
    edit_target.add_argument("--all-tags", action="store_true", help="Edit all tags")
    edit_parser.set_defaults(func=cmd_edit)

    sync_parser = subparsers.add_parser(
        "sync",
        help="Sync tasks with the remote (see BUSY_REMOTE)",
    )
    sync_mode = sync_parser.add_mutually_exclusive_group()
    sync_mode.add_argument("--push-force", action="store_true", help="Overwrite the remote history")
    sync_mode.add_argument("--pull-force", action="store_true", help="Rebase onto the remote history")
    sync_parser.set_defaults(func=cmd_sync)

    subparsers.add_parser("version", help="Show the version").set_defaults(func=None)

    return parser


def run(busy: Busy, handler: Callable[[Busy, argparse.Namespace], None], args: argparse.Namespace) -> int:
    """Run one command handler, turning busy errors into a message and exit code."""
    try:
        handler(busy, args)
    except BusyError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "version":
        console.print(f"busy v{__version__}")
        sys.exit(0)

    try:
        busy = Busy(load_config())
    except BusyError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    sys.exit(run(busy, args.func, args))


if __name__ == "__main__":
    main()
