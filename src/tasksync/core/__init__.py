"""Functional core - pure business logic with no I/O."""

from .tasks import (
    Filter,
    Sort,
    Task,
    filter_tasks,
    sort_tasks,
    project,
    parse_filter,
    parse_sort,
    parse_due_date,
    format_due_date,
)

__all__ = [
    "Filter",
    "Sort",
    "Task",
    "filter_tasks",
    "sort_tasks",
    "project",
    "parse_filter",
    "parse_sort",
    "parse_due_date",
    "format_due_date",
]
