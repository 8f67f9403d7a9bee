"""Tests for configuration loading and engine wiring."""

import pytest

from tasksync.adapters.file_store import FileTaskStore
from tasksync.adapters.http_remote import HttpTaskRemote
from tasksync.config import API_BASE_ENV, DATA_DIR, DEFAULT_API_TIMEOUT, Config, load_config
from tasksync.workflows import build_engine, get_remote, get_store


@pytest.fixture(autouse=True)
def no_env_override(monkeypatch):
    monkeypatch.delenv(API_BASE_ENV, raising=False)


@pytest.fixture
def conf_file(tmp_path):
    return tmp_path / "tasksync.conf"


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.conf")
        assert config == Config()
        assert config.remote_enabled is False

    def test_reads_keys(self, conf_file):
        conf_file.write_text(
            "# tasksync settings\n"
            "API_BASE = http://localhost:3001/api\n"
            "DATA_DIR = /tmp/tasks\n"
            "API_TIMEOUT = 2.5\n"
        )
        config = load_config(conf_file)
        assert config.api_base == "http://localhost:3001/api"
        assert config.data_dir == "/tmp/tasks"
        assert config.api_timeout == 2.5

    def test_quoted_values_and_comments(self, conf_file):
        conf_file.write_text(
            'API_BASE = "http://api.test/#anchor"  # quoted keeps the hash\n'
            "DATA_DIR = /tmp/tasks # unquoted drops the comment\n"
        )
        config = load_config(conf_file)
        assert config.api_base == "http://api.test/#anchor"
        assert config.data_dir == "/tmp/tasks"

    def test_ignores_unknown_and_malformed_lines(self, conf_file):
        conf_file.write_text("THEME = dark\nnot a setting\nAPI_BASE = http://api.test\n")
        assert load_config(conf_file).api_base == "http://api.test"

    @pytest.mark.parametrize("value", ["soon", "0", "-5", ""])
    def test_invalid_timeout_keeps_default(self, conf_file, value):
        conf_file.write_text(f"API_TIMEOUT = {value}\n")
        assert load_config(conf_file).api_timeout == DEFAULT_API_TIMEOUT

    def test_requests_are_bounded_by_default(self, tmp_path):
        assert load_config(tmp_path / "missing.conf").api_timeout == DEFAULT_API_TIMEOUT
        assert get_remote(Config(api_base="http://api.test")).timeout == DEFAULT_API_TIMEOUT

    def test_env_overrides_file(self, conf_file, monkeypatch):
        conf_file.write_text("API_BASE = http://from-file\n")
        monkeypatch.setenv(API_BASE_ENV, "http://from-env/")
        assert load_config(conf_file).api_base_url == "http://from-env"

    def test_empty_env_disables_remote(self, conf_file, monkeypatch):
        conf_file.write_text("API_BASE = http://from-file\n")
        monkeypatch.setenv(API_BASE_ENV, "")
        assert load_config(conf_file).remote_enabled is False


class TestConfig:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("http://api.test/", "http://api.test"),
            ("http://api.test//", "http://api.test"),
            ("  http://api.test  ", "http://api.test"),
            ("http://api.test", "http://api.test"),
            ("", ""),
            ("   ", ""),
        ],
    )
    def test_api_base_url_normalized(self, raw, expected):
        assert Config(api_base=raw).api_base_url == expected

    def test_remote_enabled(self):
        assert Config(api_base="http://api.test").remote_enabled is True
        assert Config(api_base="/").remote_enabled is False

    def test_data_path_default(self):
        assert Config().data_path == DATA_DIR

    def test_data_path_expands_user(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert Config(data_dir="~/tasks").data_path == tmp_path / "tasks"


class TestWiring:
    def test_get_store_uses_data_dir(self, tmp_path):
        store = get_store(Config(data_dir=str(tmp_path)))
        assert isinstance(store, FileTaskStore)
        assert store.data_dir == tmp_path

    def test_no_remote_when_unconfigured(self):
        assert get_remote(Config()) is None

    def test_remote_from_config(self):
        remote = get_remote(Config(api_base="http://api.test/", api_timeout=3))
        assert isinstance(remote, HttpTaskRemote)
        assert remote.base_url == "http://api.test"
        assert remote.timeout == 3

    def test_build_engine_local_only(self, tmp_path):
        with build_engine(Config(data_dir=str(tmp_path))) as engine:
            task_id = engine.add("Buy milk")
            engine.flush()
            assert engine.api_enabled is False

        reopened = FileTaskStore(tmp_path).load()
        assert [t.id for t in reopened] == [task_id]
