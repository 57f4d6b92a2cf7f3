"""Configuration handling for gitm"""

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

from gitm.exceptions import ConfigError
from gitm.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_ENV_VAR = "GITM_CONFIG"
ROOT_DIRECTORY_ENV_VAR = "GITM_ROOT_DIRECTORY"
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"

DEFAULT_ROOT_DIRECTORY = "~/git-repos"
INIT_CLONE_OPTIONS = ["--recurse-submodules"]


def default_config_path() -> Path:
    """Config file location: ``$GITM_CONFIG`` or ``~/.gitm.json``."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".gitm.json"


@dataclass
class Config:
    """Configuration for gitm with validation."""

    # Layout
    root_directory: str = DEFAULT_ROOT_DIRECTORY
    clone_default_options: List[str] = field(default_factory=list)

    # Execution modes
    workers: Optional[int] = None  # Number of parallel workers (None = auto-detect)
    sequential: bool = False
    command_timeout: Optional[float] = None  # Seconds per git command (None = no limit)
    verbose: bool = False
    debug: bool = False

    # GitHub integration
    github_token: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_root_directory()
        self._validate_clone_options()
        self._validate_workers()
        self._validate_command_timeout()

    def _validate_root_directory(self):
        if not self.root_directory or not str(self.root_directory).strip():
            raise ConfigError("root_directory cannot be empty")
        self.root_directory = str(self.root_directory).strip()

    def _validate_clone_options(self):
        if isinstance(self.clone_default_options, str):
            self.clone_default_options = self.clone_default_options.split()
        if not isinstance(self.clone_default_options, list):
            raise ConfigError("clone_default_options must be a list")

    def _validate_workers(self):
        if self.workers is not None and self.workers <= 0:
            raise ConfigError(f"workers must be positive, got {self.workers}")

    def _validate_command_timeout(self):
        if self.command_timeout is not None and self.command_timeout <= 0:
            raise ConfigError(f"command_timeout must be positive, got {self.command_timeout}")

    @property
    def root_path(self) -> str:
        """Root directory with ``~`` expanded."""
        return os.path.expanduser(self.root_directory)

    def to_dict(self) -> dict:
        return {
            "root_directory": self.root_directory,
            "clone_default_options": list(self.clone_default_options),
            "workers": self.workers,
            "sequential": self.sequential,
            "command_timeout": self.command_timeout,
            "github_token": self.github_token,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)


def load_config(path: Optional[Path] = None) -> Config:
    """Load the config file (if any) and apply environment overrides.

    Raises:
        ConfigError: the file exists but is unreadable or invalid
    """
    path = Path(path) if path is not None else default_config_path()
    data = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        logger.debug(f"Loaded config from {path}")
    else:
        logger.debug(f"No config file at {path}, using defaults")

    if os.environ.get(ROOT_DIRECTORY_ENV_VAR):
        data["root_directory"] = os.environ[ROOT_DIRECTORY_ENV_VAR]
    if os.environ.get(GITHUB_TOKEN_ENV_VAR):
        data["github_token"] = os.environ[GITHUB_TOKEN_ENV_VAR]

    try:
        return Config.from_dict(data)
    except TypeError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e


def save_config(config: Config, path: Optional[Path] = None) -> Path:
    """Write ``config`` as JSON and return the path written."""
    path = Path(path) if path is not None else default_config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=2)
            f.write("\n")
    except OSError as e:
        raise ConfigError(f"Failed to write config file {path}: {e}") from e
    logger.info(f"Saved config to {path}")
    return path


def init_config(path: Optional[Path] = None, force: bool = False) -> Path:
    """Write a config file with the default values.

    Raises:
        ConfigError: the file already exists and ``force`` is not set
    """
    path = Path(path) if path is not None else default_config_path()
    if path.exists() and not force:
        raise ConfigError(f"Config file already exists: {path}")
    config = Config(clone_default_options=list(INIT_CLONE_OPTIONS))
    return save_config(config, path)


def _coerce(key: str, raw: str):
    current = Config.__dataclass_fields__[key]
    default = current.default_factory() if callable(current.default_factory) else current.default

    if key == "clone_default_options":
        return raw.split()
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ConfigError(f"{key} must be a boolean, got '{raw}'")
    if raw.strip().lower() in ("", "none", "null"):
        if key in ("workers", "command_timeout", "github_token"):
            return None
    try:
        if key == "workers":
            return int(raw)
        if key == "command_timeout":
            return float(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number, got '{raw}'") from e
    return raw


def get_config_value(key: str, path: Optional[Path] = None):
    """Return a single value from the loaded configuration."""
    config = load_config(path)
    if key not in Config.__dataclass_fields__:
        raise ConfigError(f"Unknown config key: {key}")
    return config.get(key)


def set_config_value(key: str, raw: str, path: Optional[Path] = None) -> Config:
    """Set ``key`` from its string form and persist the file.

    Only the file contents are written; environment overrides are not
    baked into the saved file.
    """
    if key not in Config.__dataclass_fields__:
        raise ConfigError(f"Unknown config key: {key}")

    path = Path(path) if path is not None else default_config_path()
    data = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e

    data[key] = _coerce(key, raw)
    config = Config.from_dict(data)
    save_config(config, path)
    return config
