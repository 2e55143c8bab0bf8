"""Configuration loading and saving."""

import logging
import os
import shutil
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from audioscope.config.models import AudioscopeConfig

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "AUDIOSCOPE_CONFIG"


def default_config_path() -> Path:
    """Resolve the config file location from the environment or the user config dir."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "audioscope" / "audioscope.yaml"


class ConfigManager:
    """Manages configuration loading and saving."""

    def __init__(self, config_path: Path | None = None):
        """Initialize ConfigManager.

        Args:
            config_path: Optional YAML path. If None, uses ``default_config_path()``.
        """
        self.config_path = config_path or default_config_path()

    def load(self) -> AudioscopeConfig:
        """Load configuration, writing defaults first if the file is missing.

        Returns:
            AudioscopeConfig: Loaded and validated configuration

        Raises:
            ValueError: If the file contents fail validation
        """
        self._ensure_config_exists()
        raw_config = self._read_yaml()
        try:
            return AudioscopeConfig.model_validate(raw_config)
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

    def save(self, config: AudioscopeConfig) -> None:
        """Save configuration to file with backup.

        Args:
            config: Configuration to save

        Raises:
            PermissionError: If config file cannot be written
        """
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            backup_path = self.config_path.with_suffix(".yaml.backup")
            try:
                shutil.copy2(self.config_path, backup_path)
            except PermissionError:
                logger.warning("Could not create backup at %s", backup_path)

        config_yaml = yaml.dump(config.model_dump(), default_flow_style=False, sort_keys=False)
        self.config_path.write_text(config_yaml)
        logger.info("Configuration saved successfully to %s", self.config_path)

    def _ensure_config_exists(self) -> None:
        """Create the config file from model defaults if needed."""
        if self.config_path.exists():
            return
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        defaults = AudioscopeConfig().model_dump()
        self.config_path.write_text(
            yaml.dump(defaults, default_flow_style=False, sort_keys=False)
        )
        logger.info("Wrote default configuration to %s", self.config_path)

    def _read_yaml(self) -> dict[str, Any]:
        """Read YAML config file.

        Returns:
            dict: Raw configuration dictionary
        """
        config_text = self.config_path.read_text()
        return yaml.safe_load(config_text) or {}
