# Task board — configuration
# Override via taskboard.yaml, TASKBOARD_* environment variables, or CLI args.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

CONFIG_PATH = Path(__file__).parent / "taskboard.yaml"

BACKENDS = ("sqlite", "remote", "memory")

# Environment variable -> Config attribute
ENV_OVERRIDES = {
    "TASKBOARD_BACKEND": "backend",
    "TASKBOARD_DB": "db_path",
    "TASKBOARD_STORAGE_URL": "storage_url",
    "TASKBOARD_STORAGE_TOKEN": "storage_token",
    "TASKBOARD_LOG_LEVEL": "log_level",
}


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


@dataclass
class Config:
    """Runtime configuration for the board."""

    # Persistence
    backend: str = "sqlite"
    db_path: str = "~/.local/share/taskboard/board.db"
    storage_key: str = "board"
    storage_url: str = ""           # remote backend only
    storage_token: str = ""
    storage_timeout: float = 5.0

    # HTTP surface
    host: str = "127.0.0.1"
    port: int = 3000

    log_level: str = "INFO"

    def resolve_paths(self):
        """Expand ~ in filesystem paths."""
        self.db_path = str(Path(self.db_path).expanduser())

    def apply_env(self):
        for env_name, attr in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                setattr(self, attr, value)

    def validate(self):
        self.backend = self.backend.strip().lower()
        if self.backend not in BACKENDS:
            raise ConfigError(f"Unknown backend '{self.backend}'. Available: {list(BACKENDS)}")
        if self.backend == "remote" and not self.storage_url:
            raise ConfigError("Remote backend needs storage_url (or TASKBOARD_STORAGE_URL)")
        self.log_level = self.log_level.upper()

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML, then environment; falls back to defaults."""
        path = path or os.environ.get("TASKBOARD_CONFIG")
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            with open(cfg_path, "r") as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigError(f"Cannot parse {cfg_path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"{cfg_path} must contain a mapping")
            cfg = cls(**{k: v for k, v in data.items() if hasattr(cls, k)})
        else:
            cfg = cls()
        cfg.apply_env()
        cfg.resolve_paths()
        cfg.validate()
        return cfg
