"""Tests for the file-based task store."""

import json
from datetime import datetime, timezone

import pytest

from tasksync.adapters.file_store import SORT_KEY, TASKS_KEY, FileTaskStore
from tasksync.core.tasks import Sort, Task


@pytest.fixture
def store(tmp_path):
    return FileTaskStore(tmp_path)


@pytest.fixture
def tasks():
    return [
        Task(id="2", text="Newest", due_date=datetime(2024, 1, 1, tzinfo=timezone.utc)),
        Task(id="1", text="Oldest", completed=True),
    ]


class TestLoad:
    def test_missing_file_is_empty(self, store):
        assert store.load() == []

    def test_malformed_json_is_empty(self, store, tmp_path):
        (tmp_path / f"{TASKS_KEY}.json").write_text("{not json")
        assert store.load() == []

    def test_non_list_payload_is_empty(self, store, tmp_path):
        (tmp_path / f"{TASKS_KEY}.json").write_text(json.dumps({"id": "1", "text": "x"}))
        assert store.load() == []

    def test_malformed_record_discards_collection(self, store, tmp_path):
        records = [{"id": "1", "text": "ok"}, {"id": "2"}]
        (tmp_path / f"{TASKS_KEY}.json").write_text(json.dumps(records))
        assert store.load() == []

    def test_reads_saved_records(self, store, tmp_path):
        records = [{"id": "1", "text": "Saved", "completed": False, "dueDate": None}]
        (tmp_path / f"{TASKS_KEY}.json").write_text(json.dumps(records))
        assert store.load() == [Task(id="1", text="Saved")]


class TestSave:
    def test_save_then_load(self, store, tasks):
        store.save(tasks)
        assert store.load() == tasks

    def test_writes_records(self, store, tasks, tmp_path):
        store.save(tasks)
        data = json.loads((tmp_path / f"{TASKS_KEY}.json").read_text())
        assert data[0] == {
            "id": "2",
            "text": "Newest",
            "completed": False,
            "dueDate": "2024-01-01T00:00:00.000Z",
        }

    def test_round_trip_is_lossless(self, store, tasks, tmp_path):
        store.save(tasks)
        first = (tmp_path / f"{TASKS_KEY}.json").read_text()
        store.save(store.load())
        assert (tmp_path / f"{TASKS_KEY}.json").read_text() == first

    def test_creates_data_dir(self, tmp_path, tasks):
        store = FileTaskStore(tmp_path / "nested" / "data")
        store.save(tasks)
        assert store.load() == tasks

    def test_leaves_no_temp_files(self, store, tasks, tmp_path):
        store.save(tasks)
        assert [p.name for p in tmp_path.iterdir()] == [f"{TASKS_KEY}.json"]

    def test_write_failure_is_swallowed(self, tmp_path, tasks):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file where the data dir should be")
        store = FileTaskStore(blocker)

        store.save(tasks)  # must not raise

        assert store.load() == []

    def test_custom_keys(self, tmp_path, tasks):
        store = FileTaskStore(tmp_path, tasks_key="work_tasks", sort_key="work_sort")
        store.save(tasks)
        store.save_sort_key(Sort.ALPHABETICAL)
        assert (tmp_path / "work_tasks.json").exists()
        assert (tmp_path / "work_sort.json").exists()


class TestSortKey:
    def test_defaults_when_missing(self, store):
        assert store.load_sort_key() is Sort.DEFAULT

    def test_save_then_load(self, store):
        store.save_sort_key(Sort.DUE_DATE)
        assert store.load_sort_key() is Sort.DUE_DATE

    def test_stored_as_json_string(self, store, tmp_path):
        store.save_sort_key(Sort.COMPLETED_LAST)
        assert json.loads((tmp_path / f"{SORT_KEY}.json").read_text()) == "completedLast"

    def test_unknown_value_is_default(self, store, tmp_path):
        (tmp_path / f"{SORT_KEY}.json").write_text(json.dumps("priority"))
        assert store.load_sort_key() is Sort.DEFAULT

    def test_malformed_value_is_default(self, store, tmp_path):
        (tmp_path / f"{SORT_KEY}.json").write_text("[1, 2")
        assert store.load_sort_key() is Sort.DEFAULT
