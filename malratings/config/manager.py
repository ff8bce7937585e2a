"""Configuration management."""

import os
from pathlib import Path
from typing import Any

import toml
from pydantic import BaseModel, ValidationError

from ..core.exceptions import ConfigurationError
from ..core.logging import get_logger
from .models import Config

logger = get_logger("config")


class ConfigManager:
    """Loads and saves the TOML configuration file."""

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = config_dir or self._get_default_config_dir()
        self.config_file = self.config_dir / "config.toml"

        self.config_dir.mkdir(parents=True, exist_ok=True)

        self._config: Config | None = None

    @staticmethod
    def _get_default_config_dir() -> Path:
        """Get the default configuration directory for the current platform."""
        if os.name == "nt":  # Windows
            base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif os.environ.get("XDG_CONFIG_HOME"):  # Linux/Unix with XDG
            base = Path(os.environ["XDG_CONFIG_HOME"])
        else:  # macOS and other Unix
            base = Path.home() / ".config"

        return base / "malratings"

    def load_config(self) -> Config:
        """Load configuration from file or create default."""
        if self._config is not None:
            return self._config

        if self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data = toml.load(f)
                self._config = Config(**config_data)
            except (OSError, ValidationError, toml.TomlDecodeError) as e:
                # Fall back to default config on error
                logger.warning(
                    "Error loading config file, using defaults",
                    path=str(self.config_file),
                    error=str(e),
                )
                self._config = Config()
                self.save_config()
        else:
            self._config = Config()
            self.save_config()  # Create default config file

        return self._config

    def save_config(self, config: Config | None = None) -> None:
        """Save configuration to file."""
        if config is not None:
            self._config = config
        elif self._config is None:
            raise ValueError("No config to save")

        config_dict = self._config.model_dump(exclude_none=True, mode="json")

        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                toml.dump(config_dict, f)
        except OSError as e:
            raise RuntimeError(f"Failed to save config: {e}") from e

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults."""
        self._config = Config()
        self.save_config()

    def get_value(self, key: str) -> Any:
        """Read a dotted key such as ``shoko.server_url``."""
        target: Any = self.load_config()
        for part in key.split("."):
            if not isinstance(target, BaseModel) or part not in type(target).model_fields:
                raise ConfigurationError(f"Unknown configuration key: {key}")
            target = getattr(target, part)
        return target

    def set_value(self, key: str, raw_value: str) -> Config:
        """Set a dotted key from its string form and save.

        The whole configuration is re-validated, so out-of-range values
        (e.g. ``refresh_interval_hours = 500``) are rejected.
        """
        self.get_value(key)  # unknown keys fail here

        data = self.load_config().model_dump(mode="json")
        section = data
        *parents, leaf = key.split(".")
        for part in parents:
            section = section[part]
        section[leaf] = raw_value

        try:
            config = Config(**data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid value for {key}: {raw_value}",
                details={"errors": e.errors(include_url=False)},
            ) from e

        self.save_config(config)
        return config

    def get_log_dir(self) -> Path:
        """Get the log directory, creating it if necessary."""
        log_dir = self.load_config().log_directory
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir
