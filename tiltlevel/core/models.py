"""
Shared value types for the tilt level engine.

Enums are string-based so they serialize cleanly to JSON, and the read models
are Pydantic models so collaborators (UI, audio, loggers) can consume them
without knowing the engine's internals.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class MeasurementMode(str, Enum):
    """Motion regime reported by the hysteresis classifier."""
    ACTIVE = "active"        # Device is moving; live values are shown
    LOCKING = "locking"      # Static, still collecting averaging samples
    MEASURING = "measuring"  # Static, enough samples for a confirmed reading


class CalibrationStep(str, Enum):
    """Progress of a two-point calibration session."""
    IDLE = "idle"
    AWAITING_FIRST = "awaiting_first"
    AWAITING_SECOND = "awaiting_second"
    COMPLETED = "completed"


class CalibrationErrorReason(str, Enum):
    """Why a calibration command was refused."""
    NOT_STABLE = "not_stable"
    NOT_STARTED = "not_started"
    TIMEOUT = "timeout"
    INVALID_STATE = "invalid_state"


class StorageErrorReason(str, Enum):
    """Why calibration offsets could not be persisted or loaded."""
    QUOTA_EXCEEDED = "quota_exceeded"
    STORAGE_UNAVAILABLE = "storage_unavailable"


class AnglePair(BaseModel):
    """A pitch/roll pair in degrees."""
    pitch: float
    roll: float


class CalibrationOffsets(BaseModel):
    """Persisted zero offsets; serialized with the legacy camelCase keys."""
    calib_pitch: float = Field(default=0.0, alias="calibPitch")
    calib_roll: float = Field(default=0.0, alias="calibRoll")

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)


class CalibrationResult(BaseModel):
    """
    Outcome of a calibration command.

    ``ok`` is False either because the command was refused (``reason`` is a
    CalibrationErrorReason) or because persisting the new offsets failed
    (``reason`` is a StorageErrorReason). In the latter case the offsets are
    still applied for the current session.
    """
    ok: bool
    reason: Optional[str] = None
    step: Optional[CalibrationStep] = None
    done: bool = False
    adjustment: Optional[AnglePair] = None


class StorageResult(BaseModel):
    """Outcome of a calibration load or save."""
    ok: bool
    reason: Optional[StorageErrorReason] = None
    loaded: bool = False


class TwoPointCalibrationState(BaseModel):
    """Snapshot of a two-point calibration session for progress display."""
    step: CalibrationStep
    has_first_point: bool
    elapsed_ms: float
    remaining_ms: float
    timeout_ms: float


class MeasurementInfo(BaseModel):
    """Diagnostic view of the static-detection pipeline."""
    mode: MeasurementMode
    variance: float
    static_samples: int
    live_pitch: float
    live_roll: float
    final_pitch: Optional[float] = None
    final_roll: Optional[float] = None
    final_display_pitch: Optional[float] = None
    final_display_roll: Optional[float] = None
    has_final_measurement: bool = False


class FinalAngles(BaseModel):
    """The confirmed reading, available only while measuring."""
    available: bool
    pitch: Optional[float] = None
    roll: Optional[float] = None


class EngineSnapshot(BaseModel):
    """Per-tick output of the sensor engine."""
    raw_pitch: float
    raw_roll: float
    pitch: float
    roll: float
    live_pitch: float
    live_roll: float
    final_pitch: Optional[float] = None
    final_roll: Optional[float] = None
    has_final_measurement: bool
    mode: MeasurementMode
    variance: Optional[float] = None
    static_sample_count: int
    max_pitch: float
    max_roll: float
    sample_count: int
    locked: bool
