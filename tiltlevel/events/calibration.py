"""
Calibration events for the tilt level engine.

The UI maps these to user guidance (e.g. "hold still", "rotate 180 degrees",
"storage full").
"""

from typing import Literal, Optional
from tiltlevel.core.events import BaseEvent, EventType
from tiltlevel.core.models import AnglePair, CalibrationStep, StorageErrorReason


class CalibrationCompletedEvent(BaseEvent):
    """
    Event published when new offsets have been applied.

    ``persisted`` is False when the offsets only live in memory for this
    session.
    """
    type: Literal[EventType.CALIBRATION_COMPLETED] = EventType.CALIBRATION_COMPLETED
    method: Literal["one_point", "two_point"]
    adjustment: AnglePair
    calib_pitch: float
    calib_roll: float
    persisted: bool


class CalibrationFailedEvent(BaseEvent):
    """Event published when a calibration command is refused."""
    type: Literal[EventType.CALIBRATION_FAILED] = EventType.CALIBRATION_FAILED
    method: Literal["one_point", "two_point"]
    reason: str


class TwoPointStepChangedEvent(BaseEvent):
    """Event published when a two-point session moves to another step."""
    type: Literal[EventType.TWO_POINT_STEP_CHANGED] = EventType.TWO_POINT_STEP_CHANGED
    step: CalibrationStep
    previous_step: CalibrationStep


class StorageErrorEvent(BaseEvent):
    """Event published when calibration offsets could not be loaded or saved."""
    type: Literal[EventType.STORAGE_ERROR] = EventType.STORAGE_ERROR
    operation: Literal["load", "save"]
    reason: StorageErrorReason
    detail: Optional[str] = None
