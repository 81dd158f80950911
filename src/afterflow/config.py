"""Configuration management for Afterflow."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from platformdirs import user_config_dir, user_data_dir
from pydantic import ValidationError

from .core.models import AppConfig

logger = logging.getLogger(__name__)

# Default configuration paths
APP_NAME = "afterflow"
CONFIG_DIR = Path(user_config_dir(APP_NAME))
DATA_DIR = Path(user_data_dir(APP_NAME))
CONFIG_FILE = CONFIG_DIR / "config.json"


class ConfigManager:
    """Manages application configuration."""

    def __init__(self, config_path: Optional[Path] = None, data_dir: Optional[Path] = None) -> None:
        self.config_path = config_path or CONFIG_FILE
        self.data_dir = data_dir or DATA_DIR
        self._config: Optional[AppConfig] = None

    def load(self) -> AppConfig:
        """Load configuration from file or create default."""
        if self._config is not None:
            return self._config

        if self.config_path.exists():
            try:
                config_data = json.loads(self.config_path.read_text())
                self._config = AppConfig(**config_data)
                logger.info(f"Loaded configuration from {self.config_path}")
            except (json.JSONDecodeError, TypeError, ValidationError) as e:
                logger.warning(f"Invalid config file {self.config_path}: {e}")
                logger.info("Using default configuration")
                self._config = AppConfig()
        else:
            self._config = AppConfig()
            logger.info("Using default configuration")

        self._config = self._resolve_paths(self._config)
        return self._config

    def save(self, config: Optional[AppConfig] = None) -> None:
        """Save configuration to file."""
        if config is not None:
            self._config = config

        if self._config is None:
            logger.warning("No configuration to save")
            return

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            config_dict = self._config.model_dump(mode="json")
            self.config_path.write_text(json.dumps(config_dict, indent=2))
            logger.info(f"Saved configuration to {self.config_path}")

        except OSError as e:
            logger.error(f"Failed to write config file: {e}")
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize config: {e}")

    def reset(self) -> AppConfig:
        """Reset to default configuration."""
        self._config = self._resolve_paths(AppConfig())
        return self._config

    def _resolve_paths(self, config: AppConfig) -> AppConfig:
        """Resolve relative directories under the user data directory."""
        resolved_data = config.model_dump()

        if not config.export_dir.is_absolute():
            resolved_data["export_dir"] = self.data_dir / config.export_dir

        if not config.logs_dir.is_absolute():
            resolved_data["logs_dir"] = self.data_dir / config.logs_dir

        return AppConfig(**resolved_data)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load configuration (convenience function)."""
    manager = ConfigManager(config_path)
    return manager.load()
