"""Remote task service interface."""

from typing import Protocol

from tasksync.core.tasks import Task


class TaskRemote(Protocol):
    """Best-effort mirror of local mutations on a remote service."""

    def fetch_all(self) -> list[Task]:
        """Fetch the remote collection. Raises RemoteSyncError on failure."""
        ...

    def create(self, task: Task) -> bool:
        """Send a newly created task."""
        ...

    def toggle(self, task_id: str) -> bool:
        """Flip completion of a task."""
        ...

    def patch(self, task_id: str, fields: dict) -> bool:
        """Send changed fields (record names) of a task."""
        ...

    def delete(self, task_id: str) -> bool:
        """Remove a task."""
        ...
