"""Task state engine - canonical collection, optimistic mutations, derived views.

Mutations replace the collection synchronously and return. Persistence and
remote mirroring are handed to background workers and never awaited, so a
slow or broken remote cannot block or fail a caller.
"""

import logging
import secrets
import string
import threading
import time
from concurrent import futures
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Callable

from .core.tasks import Filter, Sort, Task, parse_due_date, parse_filter, parse_sort, project
from .ports import TaskRemote, TaskStore

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase

# Task attribute -> record field name, for patch bodies
_RECORD_FIELDS = {"text": "text", "due_date": "dueDate", "completed": "completed"}


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


def generate_id() -> str:
    """Epoch milliseconds plus a short random suffix, e.g. 1718000000000_k3j9xq."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"{int(time.time() * 1000)}_{suffix}"


def _as_utc(value: datetime | date | str | None) -> datetime | None:
    """Normalize a due date to an aware UTC datetime at millisecond precision."""
    if value is None:
        return None
    if isinstance(value, str):
        value = parse_due_date(value)
    elif not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def _unique(tasks: list[Task]) -> tuple[Task, ...]:
    """Drop later duplicates of an id, keeping the first occurrence."""
    seen: set[str] = set()
    kept = []
    for task in tasks:
        if task.id in seen:
            logger.warning(f"Dropping duplicate task id {task.id}")
            continue
        seen.add(task.id)
        kept.append(task)
    return tuple(kept)


@dataclass(frozen=True)
class TaskCounts:
    total: int
    active: int
    completed: int


class TaskEngine:
    """
    Owns the canonical task collection.

    Implements the add/toggle/delete/update operations with optimistic local
    application: state is replaced before the call returns, then persistence
    and the remote call are dispatched to background workers. Remote failures
    are logged and dropped; local state is the source of truth for the session.
    """

    def __init__(
        self,
        store: TaskStore,
        remote: TaskRemote | None = None,
        id_factory: Callable[[], str] | None = None,
        persist_executor: Executor | None = None,
        remote_executor: Executor | None = None,
    ):
        self._store = store
        self._remote = remote
        self._new_id = id_factory or generate_id

        self._lock = threading.Lock()
        self._tasks = _unique(store.load())
        self._sort = store.load_sort_key()
        self._filter = Filter.ALL
        self._version = 0
        self._view_cache: tuple[tuple, tuple[Task, ...]] | None = None
        self._issued_ids = {t.id for t in self._tasks}

        self._subscribers: list[Callable[[], None]] = []
        self._pending: set[Future] = set()
        self._pending_lock = threading.Lock()
        self._closed = False
        self._syncing = False
        self._synced = False

        # Single workers keep saves and remote calls in dispatch order
        self._owned_executors: list[Executor] = []
        if persist_executor is None:
            persist_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tasksync-persist")
            self._owned_executors.append(persist_executor)
        if remote_executor is None:
            remote_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tasksync-remote")
            self._owned_executors.append(remote_executor)
        self._persist_executor = persist_executor
        self._remote_executor = remote_executor

        logger.debug(f"Loaded {len(self._tasks)} tasks, sort={self._sort.value}")

        if self._remote is not None:
            self._syncing = True
            self._dispatch(self._remote_executor, self._initial_sync)

    # ============== State ==============

    @property
    def tasks(self) -> tuple[Task, ...]:
        """Snapshot of the full canonical collection, newest first."""
        return self._tasks

    @property
    def filter(self) -> Filter:
        return self._filter

    @property
    def sort(self) -> Sort:
        return self._sort

    @property
    def api_enabled(self) -> bool:
        return self._remote is not None

    @property
    def syncing(self) -> bool:
        """True while the startup fetch is in flight."""
        return self._syncing

    @property
    def synced(self) -> bool:
        """True once the startup fetch has replaced the local collection."""
        return self._synced

    def get(self, task_id: str) -> Task | None:
        return next((t for t in self._tasks if t.id == task_id), None)

    def counts(self) -> TaskCounts:
        tasks = self._tasks
        done = sum(1 for t in tasks if t.completed)
        return TaskCounts(total=len(tasks), active=len(tasks) - done, completed=done)

    def view(self) -> list[Task]:
        """Current filter then sort over the canonical collection."""
        with self._lock:
            key = (self._version, self._filter, self._sort)
            if self._view_cache is None or self._view_cache[0] != key:
                self._view_cache = (key, tuple(project(list(self._tasks), self._filter, self._sort)))
            return list(self._view_cache[1])

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call callback after every state change. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ============== Mutations ==============

    def add(self, text: str, due_date: datetime | date | str | None = None) -> str | None:
        """Prepend a new task. Returns its id, or None if text is blank."""
        text = (text or "").strip()
        if not text:
            logger.debug("Ignoring add with empty text")
            return None

        due = _as_utc(due_date)
        with self._lock:
            task_id = self._new_id()
            while task_id in self._issued_ids:
                task_id = self._new_id()
            self._issued_ids.add(task_id)
            task = Task(id=task_id, text=text, due_date=due)
            self._replace((task, *self._tasks))

        self._changed()
        self._mirror("create", task)
        return task_id

    def toggle(self, task_id: str) -> bool:
        """Flip completion. Returns False if no task has that id."""
        with self._lock:
            index = self._index_of(task_id)
            if index is None:
                return False
            current = self._tasks[index]
            self._replace_at(index, replace(current, completed=not current.completed))

        self._changed()
        self._mirror("toggle", task_id)
        return True

    def delete(self, task_id: str) -> bool:
        """Remove a task. Returns False if no task has that id."""
        with self._lock:
            index = self._index_of(task_id)
            if index is None:
                return False
            self._replace(self._tasks[:index] + self._tasks[index + 1:])

        self._changed()
        self._mirror("delete", task_id)
        return True

    def update(
        self,
        task_id: str,
        *,
        text: str | _Unset = UNSET,
        due_date: datetime | date | str | None | _Unset = UNSET,
        completed: bool | _Unset = UNSET,
    ) -> bool:
        """
        Apply the supplied fields to a task.

        Blank text is dropped while other fields still apply. Only fields that
        differ from the current task are applied and sent to the remote, so
        resubmitting identical values costs nothing. Pass due_date=None to
        clear it. Returns False if no task has that id.
        """
        new_due = _as_utc(due_date) if due_date is not UNSET else UNSET

        with self._lock:
            index = self._index_of(task_id)
            if index is None:
                return False
            current = self._tasks[index]

            changes = {}
            if text is not UNSET:
                trimmed = (text or "").strip()
                if not trimmed:
                    logger.debug(f"Dropping empty text from update of {task_id}")
                elif trimmed != current.text:
                    changes["text"] = trimmed
            if new_due is not UNSET and new_due != current.due_date:
                changes["due_date"] = new_due
            if completed is not UNSET and bool(completed) != current.completed:
                changes["completed"] = bool(completed)

            if not changes:
                return True
            updated = replace(current, **changes)
            self._replace_at(index, updated)

        record = updated.to_record()
        self._changed()
        self._mirror("patch", task_id, {_RECORD_FIELDS[f]: record[_RECORD_FIELDS[f]] for f in changes})
        return True

    def set_filter(self, key: Filter | str) -> None:
        key = parse_filter(key)
        if key == self._filter:
            return
        with self._lock:
            self._filter = key
        self._notify()

    def set_sort(self, key: Sort | str) -> None:
        """Change the sort order and persist it."""
        key = parse_sort(key)
        if key == self._sort:
            return
        with self._lock:
            self._sort = key
        self._dispatch(self._persist_executor, self._save_sort_key, key)
        self._notify()

    # ============== Lifecycle ==============

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for dispatched background work. Returns False on timeout."""
        deadline = time.monotonic() + timeout if timeout is not None else None
        while True:
            with self._pending_lock:
                pending = [f for f in self._pending if not f.done()]
            if not pending:
                return True
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
            _, not_done = futures.wait(pending, timeout=remaining)
            if not_done:
                return False

    def close(self, wait: bool = True) -> None:
        """Tear down. A startup fetch that resolves after this is discarded."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for executor in self._owned_executors:
            executor.shutdown(wait=wait)

    def __enter__(self) -> "TaskEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ============== Internals ==============

    def _index_of(self, task_id: str) -> int | None:
        return next((i for i, t in enumerate(self._tasks) if t.id == task_id), None)

    def _replace(self, tasks: tuple[Task, ...]) -> None:
        """Swap in a new collection. Caller holds the lock."""
        self._tasks = tasks
        self._version += 1

    def _replace_at(self, index: int, task: Task) -> None:
        self._replace(self._tasks[:index] + (task,) + self._tasks[index + 1:])

    def _changed(self) -> None:
        self._dispatch(self._persist_executor, self._save)
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback()
            except Exception:
                logger.exception("Subscriber failed")

    def _dispatch(self, executor: Executor, fn: Callable, *args) -> None:
        """Submit background work without waiting for it."""
        if self._closed:
            logger.debug(f"Engine closed, skipping {fn.__name__}")
            return
        try:
            future = executor.submit(fn, *args)
        except RuntimeError as e:
            logger.debug(f"Could not dispatch {fn.__name__}: {e}")
            return
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _mirror(self, operation: str, *args) -> None:
        if self._remote is None:
            return
        self._dispatch(self._remote_executor, self._call_remote, operation, *args)

    def _call_remote(self, operation: str, *args) -> None:
        try:
            ok = getattr(self._remote, operation)(*args)
        except Exception as e:
            logger.warning(f"Remote {operation} raised, ignoring: {e}")
            return
        if not ok:
            logger.warning(f"Remote {operation} failed, keeping local state")

    def _save(self) -> None:
        """Write the collection as it is when the save runs, not when it was queued."""
        with self._lock:
            tasks = list(self._tasks)
        try:
            self._store.save(tasks)
        except Exception as e:
            logger.warning(f"Failed to save tasks: {e}")

    def _save_sort_key(self, key: Sort) -> None:
        try:
            self._store.save_sort_key(key)
        except Exception as e:
            logger.warning(f"Failed to save sort key: {e}")

    def _initial_sync(self) -> None:
        """Replace local tasks with the remote collection, if it can be fetched."""
        try:
            fetched = self._remote.fetch_all()
        except Exception as e:
            logger.warning(f"Startup sync failed, keeping local tasks: {e}")
        else:
            with self._lock:
                if self._closed:
                    logger.debug("Engine closed, discarding startup sync result")
                    return
                self._replace(_unique(fetched))
                self._issued_ids.update(t.id for t in self._tasks)
                self._synced = True
            logger.info(f"Synced {len(self._tasks)} tasks from remote")
            self._dispatch(self._persist_executor, self._save)
        finally:
            self._syncing = False
        if not self._closed:
            self._notify()
