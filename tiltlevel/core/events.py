"""
Core event system for the tilt level engine.

This module defines the base event model and event type enum that form the
foundation of the typed event system. All events published to collaborators
(UI, audio feedback, data loggers) should inherit from BaseEvent.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from enum import Enum
import time
import uuid


class EventType(str, Enum):
    """
    Enum defining all event types in the system.

    Using string-based enum to ensure JSON serialization works properly.
    """
    # Reading events
    READING_UPDATED = "reading_updated"
    MEASUREMENT_MODE_CHANGED = "measurement_mode_changed"

    # Calibration events
    CALIBRATION_COMPLETED = "calibration_completed"
    CALIBRATION_FAILED = "calibration_failed"
    TWO_POINT_STEP_CHANGED = "two_point_step_changed"

    # Sensor health events
    SENSOR_LOST = "sensor_lost"
    SENSOR_RECOVERED = "sensor_recovered"

    # System events
    STORAGE_ERROR = "storage_error"


def generate_trace_id() -> str:
    """Generate a unique trace ID for event tracing."""
    return str(uuid.uuid4())


class BaseEvent(BaseModel):
    """
    Base model for all events with common metadata.

    All events in the system should inherit from this class and specify the event type
    and any additional payload fields required for that event.
    """
    type: EventType
    producer_name: str = ""
    timestamp: float = Field(default_factory=time.time)
    trace_id: Optional[str] = Field(default_factory=generate_trace_id)

    model_config = ConfigDict(
        # Allow extra attributes to be specified (useful for future compatibility)
        extra="allow",
        # Use enum values rather than the enum objects themselves
        use_enum_values=True,
    )
