"""File-based task storage adapter."""

import json
import logging
import os
import tempfile
from pathlib import Path

from tasksync.core.tasks import Sort, Task, parse_sort, tasks_from_records

logger = logging.getLogger(__name__)

TASKS_KEY = "tasksync_tasks_v1"
SORT_KEY = "tasksync_sort_v1"


class FileTaskStore:
    """
    File-based key-value task storage.

    Implements TaskStore protocol. Each key is a JSON file in data_dir.
    Reads fall back to defaults; write failures are logged and dropped.
    """

    def __init__(
        self,
        data_dir: Path | str,
        tasks_key: str = TASKS_KEY,
        sort_key: str = SORT_KEY,
    ):
        self.data_dir = Path(data_dir).expanduser()
        self.tasks_key = tasks_key
        self.sort_key = sort_key

    def _path_for_key(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def _read(self, key: str):
        """Read and decode a key. Returns None if missing or unreadable."""
        path = self._path_for_key(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

    def _write(self, key: str, value) -> None:
        """Encode and atomically replace a key's file."""
        path = self._path_for_key(key)
        try:
            payload = json.dumps(value)
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write {path}: {e}")

    def load(self) -> list[Task]:
        """Load the saved collection, or [] if missing or malformed."""
        data = self._read(self.tasks_key)
        if data is None:
            return []
        try:
            return tasks_from_records(data)
        except ValueError as e:
            logger.warning(f"Discarding malformed task collection: {e}")
            return []

    def save(self, tasks: list[Task]) -> None:
        self._write(self.tasks_key, [t.to_record() for t in tasks])

    def load_sort_key(self) -> Sort:
        data = self._read(self.sort_key)
        return parse_sort(data if isinstance(data, str) else None)

    def save_sort_key(self, key: Sort) -> None:
        self._write(self.sort_key, parse_sort(key).value)
