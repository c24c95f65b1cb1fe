"""
Event definitions for the tilt level engine.

This package contains all event types used in the system, organized by functional area.
"""

# Re-export core types
from tiltlevel.core.events import EventType, BaseEvent
from .sensors import (
    ReadingUpdatedEvent,
    MeasurementModeChangedEvent,
    SensorLostEvent,
    SensorRecoveredEvent,
)
from .calibration import (
    CalibrationCompletedEvent,
    CalibrationFailedEvent,
    TwoPointStepChangedEvent,
    StorageErrorEvent,
)

__all__ = [
    'EventType',
    'BaseEvent',
    'ReadingUpdatedEvent',
    'MeasurementModeChangedEvent',
    'SensorLostEvent',
    'SensorRecoveredEvent',
    'CalibrationCompletedEvent',
    'CalibrationFailedEvent',
    'TwoPointStepChangedEvent',
    'StorageErrorEvent',
]
