"""Load and save the JSON configuration file"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .schema import Config

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "trustgate" / "config.json"


class ConfigError(Exception):
    """Raised when the configuration file exists but cannot be used."""
    def __init__(self, path: Path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


def default_config_path() -> Path:
    env_path = os.getenv("TRUSTGATE_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return CONFIG_PATH


def load_config(path: Optional[Path] = None) -> Config:
    """Read the config file; a missing file yields the defaults."""
    path = Path(path) if path else default_config_path()
    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return Config()

    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        raise ConfigError(path, f"cannot read config: {e}") from e

    try:
        return Config.model_validate(data or {})
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(x) for x in error["loc"])
        raise ConfigError(path, f"{field}: {error['msg']}") from e


def save_config(config: Config, path: Optional[Path] = None):
    path = Path(path) if path else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2, exclude_none=True))
