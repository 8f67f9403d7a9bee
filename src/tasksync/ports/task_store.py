"""Local task storage interface."""

from typing import Protocol

from tasksync.core.tasks import Sort, Task


class TaskStore(Protocol):
    """Durable local storage for the task collection and sort preference.

    Implementations never raise: failed reads return defaults and failed
    writes are dropped.
    """

    def load(self) -> list[Task]:
        """Load the saved collection, or an empty list."""
        ...

    def save(self, tasks: list[Task]) -> None:
        """Persist the collection."""
        ...

    def load_sort_key(self) -> Sort:
        """Load the saved sort key, or Sort.DEFAULT."""
        ...

    def save_sort_key(self, key: Sort) -> None:
        """Persist the sort key."""
        ...
