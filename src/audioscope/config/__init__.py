"""Audioscope configuration package.

Pydantic models for analyzer, source and logging settings, plus YAML
loading and saving.
"""

from .manager import ConfigManager
from .models import AudioscopeConfig

__all__ = [
    "AudioscopeConfig",
    "ConfigManager",
]
