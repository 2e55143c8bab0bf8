"""Configuration models for Audioscope.

This module contains all configuration-related Pydantic models used throughout the application.
"""

from pydantic import BaseModel, Field, field_validator, model_validator


class LoggingConfig(BaseModel):
    """Structlog-based logging configuration."""

    level: str = "INFO"
    json_logs: bool | None = None  # None = auto-detect based on environment
    include_caller: bool = False  # Include file:line info (useful for debugging)
    extra_fields: dict[str, str] = Field(default_factory=lambda: {"service": "audioscope"})


class AnalyzerConfig(BaseModel):
    """Spectral analyzer settings."""

    window_size: int = 2048  # FFT length; band table is calibrated for 2048
    smoothing: float = 0.8  # Frame-to-frame magnitude damping
    min_decibels: float = -100.0  # Mapped to byte 0
    max_decibels: float = -30.0  # Mapped to byte 255

    @field_validator("window_size")
    @classmethod
    def validate_window_size(cls, v: int) -> int:
        """Require a power of two between 32 and 32768."""
        if v < 32 or v > 32768 or v & (v - 1):
            raise ValueError(f"Invalid window size {v}. Must be a power of two in [32, 32768].")
        return v

    @field_validator("smoothing")
    @classmethod
    def validate_smoothing(cls, v: float) -> float:
        """Require a smoothing constant within [0, 1]."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Invalid smoothing {v}. Must be within [0, 1].")
        return v

    @model_validator(mode="after")
    def validate_decibel_range(self) -> "AnalyzerConfig":
        """Require min_decibels below max_decibels."""
        if self.min_decibels >= self.max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")
        return self


class SourceConfig(BaseModel):
    """Audio source and device settings."""

    capture_sample_rate: int = 44100  # Rate requested from capture devices
    block_size: int = 512  # Frames per stream callback
    fetch_timeout: float = 30.0  # Seconds allowed for remote audio downloads
    device_cache_ttl: float = 60.0  # Seconds a device enumeration stays cached

    @field_validator("capture_sample_rate", "block_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Reject zero or negative rates and block sizes."""
        if v <= 0:
            raise ValueError(f"Value must be positive, got {v}")
        return v


class AudioscopeConfig(BaseModel):
    """Configuration settings for the Audioscope engine."""

    config_version: str = "1.0.0"

    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    sources: SourceConfig = Field(default_factory=SourceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Monitor CLI
    monitor_fps: float = 30.0  # Frames pulled per second

    @field_validator("monitor_fps")
    @classmethod
    def validate_monitor_fps(cls, v: float) -> float:
        """Reject zero or negative refresh rates."""
        if v <= 0:
            raise ValueError(f"monitor_fps must be positive, got {v}")
        return v
