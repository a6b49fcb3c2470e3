"""Command-line interface for todo lists."""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ConfigModel, load_config, resolve_list_name, set_default_list
from .exceptions import TodoListError
from .export import ExportFormat
from .manager import TaskManager
from .query_engine import SortKey, TaskFilter
from .recurring import RecurrenceOutcome
from .storage import ListStore
from .todo import Task
from .utils.datetime import days_until, today


console = Console()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def get_manager(ctx: click.Context) -> TaskManager:
    """Open the selected list and wrap it in a TaskManager."""
    config: ConfigModel = ctx.obj["config"]
    list_name = resolve_list_name(ctx.obj.get("list_name"), config)
    return TaskManager(ListStore.open(config.data_dir, list_name))


def due_note(task: Task, reference: date) -> str:
    """Overdue, Today, or the number of days until the due date."""
    due = task.due_date
    if due is None:
        return ""
    if task.is_overdue(reference):
        return "Overdue"
    if due == reference:
        return "Today"
    return f"{days_until(due, reference)}d"


def print_tasks(tasks: List[Task], title: Optional[str] = None) -> None:
    """Render tasks as a table, or a placeholder line when there are none."""
    if not tasks:
        console.print("[yellow](no tasks match)[/yellow]")
        return

    reference = today()
    table = Table(title=title)
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Description")
    table.add_column("Due")
    table.add_column("Priority")
    table.add_column("Tags", style="cyan")
    table.add_column("Status")
    table.add_column("Recurrence")
    table.add_column("")

    priority_colors = {"high": "red", "medium": "yellow", "low": "dim"}
    for task in tasks:
        note = due_note(task, reference)
        color = priority_colors.get(task.priority.value, "white")
        table.add_row(
            str(task.id),
            escape(task.description),
            task.due_text,
            f"[{color}]{task.priority.value}[/{color}]",
            escape(task.tags_text) or "-",
            "[green]Done[/green]" if task.is_done else task.status.value,
            task.recurrence.value,
            f"[red]{note}[/red]" if note == "Overdue" else note,
        )
    console.print(table)


def run(action):
    """Run a command action, turning domain errors into a single error line."""
    try:
        return action()
    except TodoListError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.option("--list", "-l", "list_name", help="List to work with (default from config)")
@click.option("--config", type=click.Path(dir_okay=False), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx, list_name, config, verbose):
    """Manage named todo lists stored as pipe-delimited record files."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None
    ctx.obj["config"] = load_config(ctx.obj["config_path"])
    ctx.obj["list_name"] = list_name

    if ctx.invoked_subcommand is None:
        ctx.invoke(view)


@main.command()
@click.argument("description")
@click.option("--due", "-d", help="Due date (YYYY-MM-DD)")
@click.option("--priority", "-p", help="high, medium or low")
@click.option("--tags", "-t", help="Comma separated tags")
@click.option("--recurrence", "--recur", "-r", help="none, daily, weekly, monthly or yearly")
@click.pass_context
def add(ctx, description, due, priority, tags, recurrence):
    """Add a new task."""
    def action():
        manager = get_manager(ctx)
        task = manager.add(description, due=due, priority=priority, tags=tags, recurrence=recurrence)
        console.print(f"[green]Added task [{task.id}] to list '{manager.list_name}'.[/green]")

    run(action)


@main.command()
@click.option("--priority", "-p", help="Filter by priority")
@click.option("--tag", "--tags", "-t", "tag", help="Filter by tag (exact or partial)")
@click.option("--due", "--due-filter", "-d", "due", help="today, overdue, week or YYYY-MM-DD")
@click.option("--status", "-s", help="Incomplete or Done")
@click.option("--sort", type=click.Choice([key.value for key in SortKey]), help="Sort order")
@click.pass_context
def view(ctx, priority=None, tag=None, due=None, status=None, sort=None):
    """View tasks, optionally filtered and sorted."""
    def action():
        manager = get_manager(ctx)
        criteria = TaskFilter(priority=priority, tag=tag, due=due, status=status)
        print_tasks(manager.view(criteria, sort), title=f"List: {manager.list_name}")

    run(action)


@main.command()
@click.argument("query")
@click.pass_context
def search(ctx, query):
    """Search descriptions and tags for a keyword."""
    def action():
        manager = get_manager(ctx)
        print_tasks(manager.search(query), title=f"Search '{escape(query)}' in {manager.list_name}")

    run(action)


@main.command()
@click.argument("task_id", type=int)
@click.pass_context
def complete(ctx, task_id):
    """Mark a task Done (creates the next instance if it recurs)."""
    def action():
        result = get_manager(ctx).complete(task_id)
        console.print(f"[green]Marked task [{task_id}] Done.[/green]")
        if result.outcome is RecurrenceOutcome.CREATED:
            console.print(
                f"Created recurring next instance as task [{result.next_task.id}] "
                f"due {result.next_task.due}."
            )
        elif result.outcome is RecurrenceOutcome.NO_DUE_DATE:
            console.print("[yellow]Recurring task had no due date; not auto-creating next occurrence.[/yellow]")
        elif result.outcome is RecurrenceOutcome.INVALID_DUE_DATE:
            console.print("[yellow]Original due date invalid; skipping recurrence creation.[/yellow]")

    run(action)


@main.command()
@click.argument("task_id", type=int)
@click.pass_context
def delete(ctx, task_id):
    """Delete a task."""
    def action():
        get_manager(ctx).delete(task_id)
        console.print(f"[green]Deleted task [{task_id}].[/green]")

    run(action)


@main.command()
@click.argument("task_id", type=int)
@click.option("--desc", "description", help="New description")
@click.option("--due", "-d", help="New due date (YYYY-MM-DD or none)")
@click.option("--priority", "-p", help="New priority")
@click.option("--tags", "-t", help="New comma separated tags")
@click.option("--recurrence", "--recur", "-r", help="New recurrence")
@click.pass_context
def modify(ctx, task_id, description, due, priority, tags, recurrence):
    """Modify fields of a task."""
    if all(value is None for value in (description, due, priority, tags, recurrence)):
        raise click.UsageError("Nothing to modify: give at least one of --desc, --due, --priority, --tags, --recurrence")

    def action():
        get_manager(ctx).modify(
            task_id,
            description=description,
            due=due,
            priority=priority,
            tags=tags,
            recurrence=recurrence,
        )
        console.print(f"[green]Modified task [{task_id}].[/green]")

    run(action)


@main.command()
@click.pass_context
def archive(ctx):
    """Move completed tasks to the archive file."""
    def action():
        result = get_manager(ctx).archive()
        console.print(
            f"[green]Archived {len(result.archived)} completed tasks to {result.archive_path}[/green]"
        )

    run(action)


@main.command("show-archive")
@click.pass_context
def show_archive(ctx):
    """Show archived tasks."""
    def action():
        manager = get_manager(ctx)
        print_tasks(manager.archived_tasks(), title=f"Archive: {manager.list_name}")

    run(action)


@main.command()
@click.argument("fmt", metavar="FORMAT", type=click.Choice([fmt.value for fmt in ExportFormat]))
@click.option("--output-dir", "-o", type=click.Path(file_okay=False), help="Directory for the export file")
@click.pass_context
def export(ctx, fmt, output_dir):
    """Export the whole list as csv, json or txt."""
    def action():
        output = output_dir or ctx.obj["config"].export_dir
        path = get_manager(ctx).export(fmt, output)
        console.print(f"[green]Exported {fmt.upper()} to {path}[/green]")

    run(action)


@main.command("set-default")
@click.argument("name")
@click.pass_context
def set_default(ctx, name):
    """Set the default list."""
    def action():
        set_default_list(name, ctx.obj["config"], ctx.obj["config_path"])
        console.print(f"Default list set to: {name}")

    run(action)


@main.command("show-lists")
@click.pass_context
def show_lists(ctx):
    """Show existing lists."""
    data_dir = ctx.obj["config"].data_dir
    names = ListStore.list_names(data_dir)
    console.print(f"Existing lists in {data_dir}:")
    if not names:
        console.print("  (no lists)")
    for name in names:
        console.print(f"  - {name}")


@main.command("create-list")
@click.argument("name")
@click.pass_context
def create_list(ctx, name):
    """Create a new, empty list."""
    def action():
        store = ListStore.create(ctx.obj["config"].data_dir, name)
        console.print(f"Created list '{name}' at {store.path}")

    run(action)


if __name__ == "__main__":
    main()
