"""
Sensor Engine

This engine turns raw orientation samples (beta = pitch, gamma = roll, in
degrees) into the readings shown by a leveling display.

The engine is responsible for:
1. Rejecting invalid samples at the boundary
2. Applying the persisted zero-calibration offsets
3. Filtering each axis with a scalar Kalman filter
4. Maintaining the live (EMA + deadzone) track
5. Classifying motion into ACTIVE / LOCKING / MEASURING
6. Averaging static samples into a rate-limited confirmed reading
7. Running one-point and two-point calibration

Per-sample pipeline (`process`):
- raw -> minus calibration offset -> Kalman (per axis)
- Kalman output -> LiveAngleTrack (always, independent of the mode)
- Kalman output -> MotionWindow -> HysteresisClassifier
- If static: StaticAccumulator mean -> FinalValueSmoother -> displayed value
- If active: the displayed value is the live value

The engine is synchronous and not thread-safe: samples must be fed in
arrival order from a single caller.
"""

import logging
import math
from typing import Callable, Optional

from tiltlevel.calibration.controller import CalibrationController
from tiltlevel.calibration.storage import (
    CalibrationStore,
    JsonFileCalibrationStore,
    MemoryCalibrationStore,
)
from tiltlevel.core.config import ApplicationConfig
from tiltlevel.core.errors import CalibrationStorageError
from tiltlevel.core.models import (
    AnglePair,
    CalibrationErrorReason,
    CalibrationOffsets,
    CalibrationResult,
    CalibrationStep,
    EngineSnapshot,
    FinalAngles,
    MeasurementInfo,
    MeasurementMode,
    StorageResult,
    TwoPointCalibrationState,
)
from tiltlevel.detection.accumulator import StaticAccumulator
from tiltlevel.detection.classifier import HysteresisClassifier
from tiltlevel.detection.motion_window import MotionWindow
from tiltlevel.filters.final import FinalValueSmoother
from tiltlevel.filters.kalman import ScalarKalmanFilter
from tiltlevel.filters.live import LiveAngleTrack


class SensorEngine:
    """
    Two-axis tilt estimator with static averaging and calibration.

    Outputs are plain attributes, read by collaborators after each `process`
    call: raw_*, live_*, final_* (NaN when unavailable), display_final_*,
    pitch/roll (the value to display), calib_*, max_*, sample_count.
    """

    def __init__(self,
                 config: Optional[ApplicationConfig] = None,
                 store: Optional[CalibrationStore] = None,
                 clock: Optional[Callable[[], float]] = None):
        """
        Initialize the SensorEngine.

        Args:
            config: Tunables; defaults to ApplicationConfig() (env and .env aware)
            store: Calibration persistence; defaults to a JSON file when
                config.calibration.storage_path is set, otherwise memory only
            clock: Millisecond clock used for two-point calibration timeouts
        """
        self.logger = logging.getLogger(__name__)
        self.config = config or ApplicationConfig()

        if store is None:
            if self.config.calibration.storage_path is not None:
                store = JsonFileCalibrationStore(self.config.calibration.storage_path)
            else:
                store = MemoryCalibrationStore()
        self.store = store

        # --- Filters ---
        self.kf_pitch = ScalarKalmanFilter()
        self.kf_roll = ScalarKalmanFilter()
        self.live_pitch_track = LiveAngleTrack()
        self.live_roll_track = LiveAngleTrack()
        self.final_smoother = FinalValueSmoother()

        # --- Static detection ---
        self.motion_window = MotionWindow()
        self.accumulator = StaticAccumulator()
        self.classifier = HysteresisClassifier()

        # --- Calibration ---
        self.calibration = CalibrationController(clock=clock)
        self.calib_pitch = 0.0
        self.calib_roll = 0.0

        # --- Outputs ---
        self.raw_pitch = 0.0
        self.raw_roll = 0.0
        self.pitch = 0.0
        self.roll = 0.0
        self.live_pitch = 0.0
        self.live_roll = 0.0
        self.final_pitch = math.nan
        self.final_roll = math.nan
        self.display_final_pitch = math.nan
        self.display_final_roll = math.nan
        self.has_final_measurement = False

        # --- Stats ---
        self.max_pitch = 0.0
        self.max_roll = 0.0
        self.sample_count = 0

        self.locked = False

        self.apply_config(self.config)
        self.last_load_result = self.load_calibration()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def apply_config(self, config: ApplicationConfig) -> None:
        """
        Push every tunable into the pipeline components.

        Takes effect from the next `process` call. Filter state, buffers and
        calibration offsets are kept; a smaller window or buffer capacity is
        applied by evicting on the next push.
        """
        self.config = config

        filt = config.filter
        self.set_kalman_params(filt.kalman_q, filt.kalman_r)
        for track in (self.live_pitch_track, self.live_roll_track):
            track.alpha = filt.ema_alpha
            track.deadzone = filt.deadzone

        static = config.static
        self.motion_window.capacity = static.duration_frames
        self.accumulator.capacity = static.max_buffer_size
        self.classifier.variance_threshold = static.variance_threshold
        self.classifier.entry_scale = static.entry_threshold_scale
        self.classifier.exit_scale = static.exit_threshold_scale
        self.classifier.grace_frames = static.exit_grace_frames
        self.classifier.averaging_sample_count = static.averaging_sample_count

        self.final_smoother.deadband = config.final.deadband
        self.final_smoother.max_step = config.final.max_step

        self.calibration.timeout_ms = config.calibration.two_point_timeout_ms

    def set_kalman_params(self, q: float, r: float) -> None:
        self.kf_pitch.set_params(q, r)
        self.kf_roll.set_params(q, r)

    # ------------------------------------------------------------------
    # Sample processing
    # ------------------------------------------------------------------

    def process(self, beta: float, gamma: float) -> bool:
        """
        Process one orientation sample.

        Args:
            beta: Pitch (front/back tilt) in degrees
            gamma: Roll (left/right tilt) in degrees

        Returns:
            bool: False if the engine is locked or the sample is not finite
            (nothing is mutated in that case), True otherwise
        """
        if self.locked:
            return False
        if not (is_finite_number(beta) and is_finite_number(gamma)):
            return False

        self.raw_pitch = beta
        self.raw_roll = gamma
        self.sample_count += 1

        kf_pitch = self.kf_pitch.update(beta - self.calib_pitch)
        kf_roll = self.kf_roll.update(gamma - self.calib_roll)

        self.live_pitch = self.live_pitch_track.update(kf_pitch)
        self.live_roll = self.live_roll_track.update(kf_roll)

        self.motion_window.observe(kf_pitch, kf_roll)
        was_static = self.classifier.is_static
        static = self.classifier.evaluate(self.motion_window)

        if static:
            if not was_static:
                self.accumulator.clear()
            self.accumulator.push(kf_pitch, kf_roll)
            mode = self.classifier.settle(True, self.accumulator.count)

            self.final_pitch, self.final_roll = self.accumulator.mean()
            self.display_final_pitch = self.final_smoother.update(self.display_final_pitch, self.final_pitch)
            self.display_final_roll = self.final_smoother.update(self.display_final_roll, self.final_roll)
            self.has_final_measurement = mode is MeasurementMode.MEASURING
            self.pitch = self.display_final_pitch if math.isfinite(self.display_final_pitch) else self.final_pitch
            self.roll = self.display_final_roll if math.isfinite(self.display_final_roll) else self.final_roll
        else:
            if was_static:
                self.accumulator.clear()
            self.classifier.settle(False, 0)
            self._clear_final()
            self.pitch = self.live_pitch
            self.roll = self.live_roll

        if abs(self.pitch) > abs(self.max_pitch):
            self.max_pitch = self.pitch
        if abs(self.roll) > abs(self.max_roll):
            self.max_roll = self.roll
        return True

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    def calibrate_one_point(self) -> CalibrationResult:
        """
        Treat the current reading as level.

        The displayed pitch/roll is added to the stored offsets (repeated
        calibrations compound), the pipeline restarts from the new zero and
        the offsets are persisted. A persistence failure is reported in the
        result but the new offsets stay applied.
        """
        self.calibration.cancel()
        if not self.kf_pitch.initialized:
            return CalibrationResult(ok=False, reason=CalibrationErrorReason.INVALID_STATE.value)

        adjustment = AnglePair(pitch=self.pitch, roll=self.roll)
        self.calib_pitch += adjustment.pitch
        self.calib_roll += adjustment.roll
        self.logger.info(f"One-point calibration applied: pitch={adjustment.pitch:.4f} roll={adjustment.roll:.4f}")

        save_result = self.save_calibration()
        self._reset_post_calibration_state()
        return CalibrationResult(
            ok=save_result.ok,
            reason=save_result.reason.value if save_result.reason else None,
            step=CalibrationStep.COMPLETED,
            done=True,
            adjustment=adjustment,
        )

    def start_two_point_calibration(self) -> CalibrationResult:
        return self.calibration.start()

    def capture_two_point_calibration_point(self) -> CalibrationResult:
        """
        Capture the current reading for the active two-point session.

        A capture is only accepted while the device is judged stationary
        (LOCKING or MEASURING). On the second capture the midpoint of both
        readings is added to the offsets and the pipeline restarts.
        """
        result = self.calibration.capture(self.pitch, self.roll, stable=self.classifier.is_static)
        if not result.done or result.adjustment is None:
            return result

        self.calib_pitch += result.adjustment.pitch
        self.calib_roll += result.adjustment.roll

        save_result = self.save_calibration()
        self._reset_post_calibration_state()
        return result.model_copy(update={
            "ok": save_result.ok,
            "reason": save_result.reason.value if save_result.reason else None,
        })

    def cancel_two_point_calibration(self) -> CalibrationResult:
        return self.calibration.cancel()

    def get_two_point_calibration_state(self) -> TwoPointCalibrationState:
        return self.calibration.state()

    def load_calibration(self) -> StorageResult:
        """Load persisted offsets; on failure the current offsets are kept."""
        try:
            offsets = self.store.load()
        except CalibrationStorageError as e:
            self.logger.error(f"Failed to load calibration: {e}")
            return StorageResult(ok=False, reason=e.reason)

        if offsets is None:
            return StorageResult(ok=True, loaded=False)

        self.calib_pitch = offsets.calib_pitch
        self.calib_roll = offsets.calib_roll
        self.logger.info(f"Calibration loaded: pitch={self.calib_pitch:.4f} roll={self.calib_roll:.4f}")
        return StorageResult(ok=True, loaded=True)

    def save_calibration(self) -> StorageResult:
        offsets = CalibrationOffsets(calib_pitch=self.calib_pitch, calib_roll=self.calib_roll)
        try:
            self.store.save(offsets)
        except CalibrationStorageError as e:
            self.logger.warning(f"Failed to save calibration ({e.reason.value}); keeping it for this session only")
            return StorageResult(ok=False, reason=e.reason)

        self.logger.info(f"Calibration saved: pitch={self.calib_pitch:.4f} roll={self.calib_roll:.4f}")
        return StorageResult(ok=True)

    # ------------------------------------------------------------------
    # Commands and read models
    # ------------------------------------------------------------------

    def reset_stats(self) -> None:
        self.max_pitch = 0.0
        self.max_roll = 0.0
        self.sample_count = 0

    def lock(self) -> None:
        """Freeze all outputs; samples are refused until `unlock`."""
        self.locked = True

    def unlock(self) -> None:
        self.locked = False

    @property
    def measurement_mode(self) -> MeasurementMode:
        return self.classifier.mode

    @property
    def variance(self) -> float:
        return self.motion_window.variance

    @property
    def static_sample_count(self) -> int:
        return self.accumulator.count

    def get_total_angle(self) -> float:
        return math.hypot(self.pitch, self.roll)

    def get_measurement_mode(self) -> MeasurementMode:
        return self.classifier.mode

    def get_measurement_info(self) -> MeasurementInfo:
        return MeasurementInfo(
            mode=self.classifier.mode,
            variance=self.motion_window.variance,
            static_samples=self.accumulator.count,
            live_pitch=self.live_pitch,
            live_roll=self.live_roll,
            final_pitch=_finite_or_none(self.final_pitch),
            final_roll=_finite_or_none(self.final_roll),
            final_display_pitch=_finite_or_none(self.display_final_pitch),
            final_display_roll=_finite_or_none(self.display_final_roll),
            has_final_measurement=self.has_final_measurement,
        )

    def get_live_angles(self) -> AnglePair:
        return AnglePair(pitch=self.live_pitch, roll=self.live_roll)

    def get_final_angles(self) -> FinalAngles:
        if (not self.has_final_measurement
                or not math.isfinite(self.display_final_pitch)
                or not math.isfinite(self.display_final_roll)):
            return FinalAngles(available=False)
        return FinalAngles(available=True, pitch=self.display_final_pitch, roll=self.display_final_roll)

    def snapshot(self) -> EngineSnapshot:
        """Everything a display or audio collaborator reads after a tick."""
        final = self.get_final_angles()
        return EngineSnapshot(
            raw_pitch=self.raw_pitch,
            raw_roll=self.raw_roll,
            pitch=self.pitch,
            roll=self.roll,
            live_pitch=self.live_pitch,
            live_roll=self.live_roll,
            final_pitch=final.pitch,
            final_roll=final.roll,
            has_final_measurement=self.has_final_measurement,
            mode=self.classifier.mode,
            variance=_finite_or_none(self.motion_window.variance),
            static_sample_count=self.accumulator.count,
            max_pitch=self.max_pitch,
            max_roll=self.max_roll,
            sample_count=self.sample_count,
            locked=self.locked,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _clear_final(self) -> None:
        self.final_pitch = math.nan
        self.final_roll = math.nan
        self.display_final_pitch = math.nan
        self.display_final_roll = math.nan
        self.has_final_measurement = False

    def _reset_post_calibration_state(self) -> None:
        """Restart filtering from the new zero point."""
        self.kf_pitch.reset()
        self.kf_roll.reset()
        self.live_pitch_track.reset()
        self.live_roll_track.reset()
        self.pitch = 0.0
        self.roll = 0.0
        self.live_pitch = 0.0
        self.live_roll = 0.0
        self._clear_final()
        self.motion_window.clear()
        self.classifier.reset()
        self.accumulator.clear()


def is_finite_number(value) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None
