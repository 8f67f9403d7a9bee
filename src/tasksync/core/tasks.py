"""Pure task domain logic - no I/O dependencies."""

import locale
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum


class Filter(Enum):
    """Which slice of the collection a view shows."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class Sort(Enum):
    """Ordering applied to a view after filtering."""

    DEFAULT = "default"  # Creation order, newest first
    DUE_DATE = "dueDate"
    COMPLETED_LAST = "completedLast"
    ALPHABETICAL = "alphabetical"

    @property
    def label(self) -> str:
        return SORT_LABELS[self]


SORT_LABELS = {
    Sort.DEFAULT: "Default (Created)",
    Sort.DUE_DATE: "Due date (soonest first)",
    Sort.COMPLETED_LAST: "Completed last",
    Sort.ALPHABETICAL: "Alphabetical",
}


def parse_filter(value: Filter | str | None) -> Filter:
    """Coerce a filter key, falling back to ALL for anything unknown."""
    if isinstance(value, Filter):
        return value
    try:
        return Filter(value)
    except ValueError:
        return Filter.ALL


def parse_sort(value: Sort | str | None) -> Sort:
    """Coerce a sort key, falling back to DEFAULT for anything unknown."""
    if isinstance(value, Sort):
        return value
    try:
        return Sort(value)
    except ValueError:
        return Sort.DEFAULT


def parse_due_date(value: str) -> datetime:
    """
    Parse an ISO-8601 date or datetime into an aware UTC datetime.

    Date-only values mean UTC midnight. Naive datetimes are taken as UTC.
    Raises ValueError for anything unparseable.
    """
    value = value.strip()
    if len(value) == 10:
        day = date.fromisoformat(value)
        return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)

    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_due_date(value: datetime) -> str:
    """Canonical wire form, e.g. 2024-01-01T00:00:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    stamp = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


@dataclass(frozen=True)
class Task:
    """A single to-do item. Immutable; edits produce a new Task."""

    id: str
    text: str
    completed: bool = False
    due_date: datetime | None = None

    def to_record(self) -> dict:
        """Serialize to the persistence/wire record."""
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "dueDate": format_due_date(self.due_date) if self.due_date else None,
        }

    @classmethod
    def from_record(cls, data: dict) -> "Task":
        """Create Task from a stored or remote record. Raises ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"Task record must be an object, got {type(data).__name__}")

        raw_id = data.get("id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)):
            raise ValueError(f"Task record has invalid id: {raw_id!r}")

        text = data.get("text")
        if not isinstance(text, str) or not text.strip():
            raise ValueError(f"Task {raw_id} has no text")

        due = data.get("dueDate")
        if due and not isinstance(due, str):
            raise ValueError(f"Task {raw_id} has invalid dueDate: {due!r}")

        completed = data.get("completed", False)
        if completed is None:
            completed = False
        if not isinstance(completed, bool):
            raise ValueError(f"Task {raw_id} has invalid completed flag: {completed!r}")

        return cls(
            id=str(raw_id),
            text=text,
            completed=completed,
            due_date=parse_due_date(due) if due else None,
        )


def tasks_from_records(records) -> list[Task]:
    """Deserialize a list of records. Raises ValueError on any malformed entry."""
    if not isinstance(records, list):
        raise ValueError(f"Expected a list of tasks, got {type(records).__name__}")
    return [Task.from_record(r) for r in records]


def filter_tasks(tasks: list[Task], key: Filter | str) -> list[Task]:
    """
    Select the tasks a filter shows.

    Pure function - no I/O. Unknown keys behave like ALL.
    """
    match parse_filter(key):
        case Filter.ACTIVE:
            return [t for t in tasks if not t.completed]
        case Filter.COMPLETED:
            return [t for t in tasks if t.completed]
        case _:
            return list(tasks)


def _alphabetical_key(task: Task) -> tuple[str, str]:
    """Compare base letters first and accents only to break ties. Case is ignored."""
    folded = task.text.casefold()
    decomposed = unicodedata.normalize("NFKD", folded)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return (locale.strxfrm(base), locale.strxfrm(folded))


def _due_date_key(task: Task) -> tuple[int, datetime]:
    # Undated tasks sort last
    if task.due_date is None:
        return (1, datetime.min.replace(tzinfo=timezone.utc))
    return (0, task.due_date)


def sort_tasks(tasks: list[Task], key: Sort | str) -> list[Task]:
    """
    Order tasks for display. Always returns a new list; ties keep input order.

    Pure function - no I/O. Unknown keys behave like DEFAULT.
    """
    match parse_sort(key):
        case Sort.DUE_DATE:
            return sorted(tasks, key=_due_date_key)
        case Sort.COMPLETED_LAST:
            return sorted(tasks, key=lambda t: t.completed)
        case Sort.ALPHABETICAL:
            return sorted(tasks, key=_alphabetical_key)
        case _:
            return list(tasks)


def project(tasks: list[Task], filter_key: Filter | str, sort_key: Sort | str) -> list[Task]:
    """Filter, then sort."""
    return sort_tasks(filter_tasks(tasks, filter_key), sort_key)
