"""tasksync CLI - task list with local storage and optional API sync."""

import json
import locale
import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

import click

from .core.tasks import Filter, Sort, Task, parse_due_date, project
from .engine import TaskEngine
from .workflows import build_engine

logger = logging.getLogger(__name__)

FILTER_CHOICES = [f.value for f in Filter]
SORT_CHOICES = [s.value for s in Sort]


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """tasksync - Task list with optional API sync."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.debug(f"Keeping default collation: {e}")
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


@contextmanager
def open_engine() -> Iterator[TaskEngine]:
    """Engine for one command: waits for startup sync, drains side effects on exit."""
    engine = build_engine()
    try:
        engine.flush()
        yield engine
    finally:
        engine.flush()
        engine.close()


def _parse_due(ctx, param, value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return parse_due_date(value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a date (YYYY-MM-DD) or ISO-8601 timestamp")


def _format_due(task: Task) -> str:
    if not task.due_date:
        return ""
    due = task.due_date
    if (due.hour, due.minute, due.second) == (0, 0, 0):
        return f" (due {due.date().isoformat()})"
    return f" (due {due.strftime('%Y-%m-%d %H:%M')} UTC)"


def _show_tasks(tasks: list[Task], as_json: bool, empty_msg: str = "No tasks yet.") -> None:
    """Shared task display logic."""
    if as_json:
        click.echo(json.dumps([t.to_record() for t in tasks], indent=2))
        return

    if not tasks:
        click.echo(empty_msg)
        return

    for task in tasks:
        mark = "x" if task.completed else " "
        click.echo(f"[{mark}] {task.text}{_format_due(task)}  ({task.id})")


def _require(found: bool, task_id: str) -> None:
    if not found:
        click.echo(f"Error: no task with id {task_id}", err=True)
        sys.exit(1)


@main.command("list")
@click.option("--filter", "filter_key", type=click.Choice(FILTER_CHOICES), default=Filter.ALL.value,
              help="Which tasks to show")
@click.option("--sort", "sort_key", type=click.Choice(SORT_CHOICES), default=None,
              help="Sort for this listing only (see 'tasksync sort' to change the default)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_tasks(filter_key: str, sort_key: str | None, as_json: bool):
    """List tasks."""
    with open_engine() as engine:
        engine.set_filter(filter_key)
        if sort_key:
            tasks = project(list(engine.tasks), engine.filter, sort_key)
        else:
            tasks = engine.view()
    _show_tasks(tasks, as_json)


@main.command()
@click.argument("text")
@click.option("--due", "due_date", callback=_parse_due, default=None,
              help="Due date (YYYY-MM-DD or ISO-8601)")
def add(text: str, due_date: datetime | None):
    """Add a task."""
    with open_engine() as engine:
        task_id = engine.add(text, due_date)
    if task_id is None:
        click.echo("Error: task text cannot be empty", err=True)
        sys.exit(1)
    click.echo(task_id)


@main.command()
@click.argument("task_id")
def toggle(task_id: str):
    """Mark a task complete, or incomplete again."""
    with open_engine() as engine:
        _require(engine.toggle(task_id), task_id)
        task = engine.get(task_id)
    click.echo(f"{'Completed' if task.completed else 'Reopened'}: {task.text}")


@main.command()
@click.argument("task_id")
def delete(task_id: str):
    """Delete a task."""
    with open_engine() as engine:
        task = engine.get(task_id)
        _require(engine.delete(task_id), task_id)
    click.echo(f"Deleted: {task.text}")


@main.command()
@click.argument("task_id")
@click.option("--text", default=None, help="New task text")
@click.option("--due", "due_date", callback=_parse_due, default=None,
              help="New due date (YYYY-MM-DD or ISO-8601)")
@click.option("--clear-due", is_flag=True, help="Remove the due date")
def edit(task_id: str, text: str | None, due_date: datetime | None, clear_due: bool):
    """Edit a task's text or due date."""
    if due_date and clear_due:
        click.echo("Error: --due and --clear-due are mutually exclusive", err=True)
        sys.exit(1)

    changes = {}
    if text is not None:
        if not text.strip():
            click.echo("Warning: ignoring empty --text", err=True)
        changes["text"] = text
    if clear_due:
        changes["due_date"] = None
    elif due_date:
        changes["due_date"] = due_date

    with open_engine() as engine:
        _require(engine.update(task_id, **changes), task_id)
        task = engine.get(task_id)
    click.echo(f"[{'x' if task.completed else ' '}] {task.text}{_format_due(task)}")


@main.command("sort")
@click.argument("sort_key", type=click.Choice(SORT_CHOICES), required=False)
def sort_cmd(sort_key: str | None):
    """Show or change the default sort order."""
    with open_engine() as engine:
        if sort_key:
            engine.set_sort(sort_key)
        current = engine.sort

    for option in Sort:
        marker = "*" if option == current else " "
        click.echo(f"{marker} {option.value:14} {option.label}")


@main.command()
def status():
    """Show sync mode and task counts."""
    with open_engine() as engine:
        counts = engine.counts()
        api_enabled = engine.api_enabled
        synced = engine.synced

    if not api_enabled:
        mode = "Local"
    elif synced:
        mode = "API"
    else:
        mode = "API (unreachable, using local copy)"
    click.echo(f"Mode: {mode}")
    click.echo(f"Tasks: {counts.total} ({counts.active} active, {counts.completed} completed)")


if __name__ == "__main__":
    main()
