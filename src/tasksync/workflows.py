"""Wiring layer between configuration and the task engine.

Resolves each adapter from Config so the CLI (or any other front end)
gets a ready TaskEngine without knowing which backends are active.
"""

import logging

from .adapters.file_store import FileTaskStore
from .adapters.http_remote import HttpTaskRemote
from .config import Config, load_config
from .engine import TaskEngine

logger = logging.getLogger(__name__)


def get_store(config: Config) -> FileTaskStore:
    """Resolve the local store directory from config."""
    return FileTaskStore(config.data_path)


def get_remote(config: Config) -> HttpTaskRemote | None:
    """Remote adapter for the configured base URL, or None for local-only."""
    if not config.remote_enabled:
        return None
    return HttpTaskRemote(config.api_base_url, timeout=config.api_timeout)


def build_engine(config: Config | None = None) -> TaskEngine:
    """Create an engine wired to the configured store and remote."""
    config = config or load_config()
    remote = get_remote(config)
    if remote is None:
        logger.debug("No API_BASE configured, running local-only")
    else:
        logger.debug(f"Syncing with {remote.base_url}")
    return TaskEngine(get_store(config), remote)
