"""
Sensor events for the tilt level engine.

This module defines events related to the orientation stream: per-tick
readings, measurement mode transitions and sensor health.
"""

from typing import Literal, Optional
from tiltlevel.core.events import BaseEvent, EventType
from tiltlevel.core.models import EngineSnapshot, MeasurementMode


class ReadingUpdatedEvent(BaseEvent):
    """
    Event published after every accepted sample.

    Carries the full engine snapshot consumed by the display and audio
    feedback.
    """
    type: Literal[EventType.READING_UPDATED] = EventType.READING_UPDATED
    snapshot: EngineSnapshot


class MeasurementModeChangedEvent(BaseEvent):
    """
    Event published when the classifier moves between ACTIVE, LOCKING and MEASURING.
    """
    type: Literal[EventType.MEASUREMENT_MODE_CHANGED] = EventType.MEASUREMENT_MODE_CHANGED
    mode: MeasurementMode
    previous_mode: MeasurementMode


class SensorLostEvent(BaseEvent):
    """
    Event published once when no valid sample has arrived for longer than the
    configured sensor loss delay.
    """
    type: Literal[EventType.SENSOR_LOST] = EventType.SENSOR_LOST
    silent_ms: float  # Time since the last accepted sample
    last_sample_at_ms: Optional[float] = None


class SensorRecoveredEvent(BaseEvent):
    """Event published when valid samples resume after a sensor loss."""
    type: Literal[EventType.SENSOR_RECOVERED] = EventType.SENSOR_RECOVERED
