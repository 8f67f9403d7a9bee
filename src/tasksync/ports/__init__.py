"""Ports - interfaces/protocols for external dependencies."""

from .task_store import TaskStore
from .task_remote import TaskRemote

__all__ = [
    "TaskStore",
    "TaskRemote",
]
