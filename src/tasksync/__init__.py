"""tasksync - task list manager with local storage and optional API sync."""

from .engine import TaskEngine

__all__ = ["TaskEngine"]
