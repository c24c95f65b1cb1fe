"""
Configuration management system for the tilt level engine.

This module provides Pydantic settings models for type-safe configuration with
validation and environment variable integration. Values are validated here, at
the settings boundary, so the sensor engine never has to sanitize them on the
hot path.
"""

from pathlib import Path
from typing import Optional
from enum import Enum
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Log levels for the application."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BaseConfig(BaseSettings):
    """
    Base configuration class with common settings for all components.

    All other configuration classes should inherit from this class.
    """
    debug: bool = False
    log_level: LogLevel = LogLevel.INFO

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TILTLEVEL_",
        extra="ignore",
        validate_assignment=True,
    )


class FilterConfig(BaseConfig):
    """Configuration for the Kalman filter and the live EMA track."""
    ema_alpha: float = 0.06
    kalman_q: float = Field(default=0.0005, gt=0)
    kalman_r: float = Field(default=0.18, gt=0)
    deadzone: float = Field(default=0.005, ge=0)

    @field_validator("ema_alpha")
    @classmethod
    def validate_ema_alpha(cls, v):
        """Validate EMA alpha is strictly between 0 and 1."""
        if not 0.0 < v < 1.0:
            raise ValueError("EMA alpha must be between 0.0 and 1.0 (exclusive)")
        return v

    model_config = SettingsConfigDict(env_prefix="TILTLEVEL_FILTER_")


class StaticDetectionConfig(BaseConfig):
    """Configuration for motion variance tracking and static averaging."""
    variance_threshold: float = Field(default=0.0025, ge=0)
    duration_frames: int = Field(default=60, gt=0)
    averaging_sample_count: int = Field(default=150, gt=0)
    max_buffer_size: int = Field(default=2000, gt=0)
    entry_threshold_scale: float = Field(default=1.0, gt=0)
    exit_threshold_scale: float = Field(default=1.8, gt=0)
    exit_grace_frames: int = Field(default=12, gt=0)

    model_config = SettingsConfigDict(env_prefix="TILTLEVEL_STATIC_")


class FinalDisplayConfig(BaseConfig):
    """Configuration for the rate limiter applied to the confirmed reading."""
    deadband: float = Field(default=0.02, ge=0)
    max_step: float = Field(default=0.01, gt=0)

    model_config = SettingsConfigDict(env_prefix="TILTLEVEL_FINAL_")


class CalibrationConfig(BaseConfig):
    """Configuration for zero-offset calibration."""
    two_point_timeout_ms: float = Field(default=30000.0, gt=0)
    storage_path: Optional[Path] = None

    model_config = SettingsConfigDict(env_prefix="TILTLEVEL_CALIBRATION_")


class SensorServiceConfig(BaseConfig):
    """Configuration for the sensor service that feeds the engine."""
    sensor_loss_delay_ms: float = Field(default=1000.0, gt=0)

    model_config = SettingsConfigDict(env_prefix="TILTLEVEL_SENSOR_")


class ApplicationConfig(BaseConfig):
    """
    Main application configuration that combines all component configurations.

    This is the top-level configuration class that should be used by the application.
    """
    filter: FilterConfig = Field(default_factory=FilterConfig)
    static: StaticDetectionConfig = Field(default_factory=StaticDetectionConfig)
    final: FinalDisplayConfig = Field(default_factory=FinalDisplayConfig)
    calibration: CalibrationConfig = Field(default_factory=CalibrationConfig)
    sensor: SensorServiceConfig = Field(default_factory=SensorServiceConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TILTLEVEL_",
        env_nested_delimiter="__",
        extra="ignore",
        validate_assignment=True,
    )

    @model_validator(mode="after")
    def check_averaging_window(self):
        """Averaging must be able to fill before the buffer starts evicting."""
        if self.static.averaging_sample_count > self.static.max_buffer_size:
            raise ValueError("averaging_sample_count cannot exceed max_buffer_size")
        return self


def get_config() -> ApplicationConfig:
    """
    Get the application configuration.

    Returns:
        The validated ApplicationConfig instance
    """
    return ApplicationConfig()
