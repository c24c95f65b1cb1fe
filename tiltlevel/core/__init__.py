"""
Core framework for the tilt level engine.

This package provides the shared building blocks:
- Typed event definitions and the event bus
- Configuration management
- Shared value types and exceptions
"""

from .events import EventType, BaseEvent
from .bus import EventBus
from .config import get_config, ApplicationConfig
from .errors import TiltLevelError, CalibrationStorageError
from .models import (
    MeasurementMode,
    CalibrationStep,
    CalibrationErrorReason,
    StorageErrorReason,
    CalibrationOffsets,
    CalibrationResult,
    EngineSnapshot,
)

__all__ = [
    'EventType',
    'BaseEvent',
    'EventBus',
    'get_config',
    'ApplicationConfig',
    'TiltLevelError',
    'CalibrationStorageError',
    'MeasurementMode',
    'CalibrationStep',
    'CalibrationErrorReason',
    'StorageErrorReason',
    'CalibrationOffsets',
    'CalibrationResult',
    'EngineSnapshot',
]
