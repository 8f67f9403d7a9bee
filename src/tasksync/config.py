"""Configuration management for tasksync."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TASKSYNC_HOME = Path(os.environ.get("TASKSYNC_HOME", Path.home() / ".tasksync"))
CONFIG_FILE = TASKSYNC_HOME / "config" / "tasksync.conf"
DATA_DIR = TASKSYNC_HOME / "data"

API_BASE_ENV = "TASKSYNC_API_BASE"
DEFAULT_API_TIMEOUT = 10.0


@dataclass
class Config:
    """tasksync configuration."""

    api_base: str = ""
    data_dir: str = ""
    api_timeout: float = DEFAULT_API_TIMEOUT

    @property
    def api_base_url(self) -> str:
        """Remote base URL without trailing slashes, or '' when sync is off."""
        return self.api_base.strip().rstrip("/")

    @property
    def remote_enabled(self) -> bool:
        return bool(self.api_base_url)

    @property
    def data_path(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return DATA_DIR


def _unquote(value: str) -> str:
    """Strip surrounding quotes, or an inline comment from an unquoted value."""
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        if end_quote != -1:
            return value[1:end_quote]
        return value[1:]
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def load_config(config_file: Path | None = None) -> Config:
    """Load configuration from tasksync.conf, then apply environment overrides."""
    config = Config()
    config_file = config_file or CONFIG_FILE

    if config_file.exists():
        for line in config_file.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _unquote(value.strip())

            match key:
                case "api_base":
                    config.api_base = value
                case "data_dir":
                    config.data_dir = value
                case "api_timeout":
                    try:
                        timeout = float(value)
                    except ValueError:
                        timeout = 0
                    if timeout > 0:
                        config.api_timeout = timeout
                    else:
                        logger.warning(f"Ignoring invalid API_TIMEOUT: {value!r}")

    # An empty env value is an explicit "local only"
    if API_BASE_ENV in os.environ:
        config.api_base = os.environ[API_BASE_ENV]

    return config
