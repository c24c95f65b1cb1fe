"""
Two-point calibration session state machine.

The user levels the device, captures a first reading, rotates it 180 degrees
on the same surface and captures a second one. The true zero lies halfway
between the two readings, so the offset increment is their midpoint.

Timeouts are polled: an expired session is only noticed at the next capture
attempt, so no timer or background task is needed.
"""

import time
import logging
from typing import Callable, Optional

from tiltlevel.core.models import (
    AnglePair,
    CalibrationErrorReason,
    CalibrationResult,
    CalibrationStep,
    TwoPointCalibrationState,
)


def monotonic_ms() -> float:
    """Default clock for calibration timeouts, in milliseconds."""
    return time.monotonic() * 1000.0


class CalibrationController:
    """
    Tracks a two-point calibration session.

    The controller only does session bookkeeping and midpoint math; applying
    the offset to the engine and persisting it is the caller's job.
    """

    def __init__(self, timeout_ms: float = 30000.0, clock: Optional[Callable[[], float]] = None):
        self.timeout_ms = timeout_ms
        self.clock = clock or monotonic_ms
        self.step = CalibrationStep.IDLE
        self.first_point: Optional[AnglePair] = None
        self.started_at: Optional[float] = None
        self.logger = logging.getLogger(__name__)

    def start(self) -> CalibrationResult:
        """Begin a session, discarding any point captured earlier."""
        self.step = CalibrationStep.AWAITING_FIRST
        self.first_point = None
        self.started_at = None
        self.logger.info("Two-point calibration started")
        return CalibrationResult(ok=True, step=self.step)

    def cancel(self) -> CalibrationResult:
        """Return to idle. Safe to call at any time."""
        if self.step is not CalibrationStep.IDLE:
            self.logger.info(f"Two-point calibration cancelled at step {self.step.value}")
        self.step = CalibrationStep.IDLE
        self.first_point = None
        self.started_at = None
        return CalibrationResult(ok=True, step=self.step)

    def is_expired(self) -> bool:
        if self.started_at is None:
            return False
        return self.clock() - self.started_at > self.timeout_ms

    def capture(self, pitch: float, roll: float, stable: bool) -> CalibrationResult:
        """
        Attempt to capture the current reading.

        Args:
            pitch: Currently displayed pitch
            roll: Currently displayed roll
            stable: Whether the device is judged stationary (LOCKING or MEASURING)

        Returns:
            A refusal with a CalibrationErrorReason, an intermediate result after
            the first point, or a completed result whose ``adjustment`` is the
            offset increment to apply.
        """
        if self.step is CalibrationStep.IDLE:
            return _refused(CalibrationErrorReason.NOT_STARTED, self.step)

        if self.step is CalibrationStep.AWAITING_SECOND and self.is_expired():
            self.logger.warning("Two-point calibration timed out waiting for second point")
            self.cancel()
            return _refused(CalibrationErrorReason.TIMEOUT, self.step)

        if not stable:
            return _refused(CalibrationErrorReason.NOT_STABLE, self.step)

        if self.step is CalibrationStep.AWAITING_FIRST:
            self.first_point = AnglePair(pitch=pitch, roll=roll)
            self.step = CalibrationStep.AWAITING_SECOND
            self.started_at = self.clock()
            self.logger.info(f"Captured first calibration point: pitch={pitch:.4f} roll={roll:.4f}")
            return CalibrationResult(ok=True, step=self.step)

        if self.step is CalibrationStep.AWAITING_SECOND and self.first_point is not None:
            adjustment = AnglePair(
                pitch=(self.first_point.pitch + pitch) / 2.0,
                roll=(self.first_point.roll + roll) / 2.0,
            )
            self.logger.info(
                f"Captured second calibration point: pitch={pitch:.4f} roll={roll:.4f}, "
                f"adjustment=({adjustment.pitch:.4f}, {adjustment.roll:.4f})"
            )
            self.cancel()
            return CalibrationResult(
                ok=True,
                step=CalibrationStep.COMPLETED,
                done=True,
                adjustment=adjustment,
            )

        return _refused(CalibrationErrorReason.INVALID_STATE, self.step)

    def state(self) -> TwoPointCalibrationState:
        if self.started_at is None:
            elapsed = 0.0
            remaining = self.timeout_ms
        else:
            elapsed = max(0.0, self.clock() - self.started_at)
            remaining = max(0.0, self.timeout_ms - elapsed)
        return TwoPointCalibrationState(
            step=self.step,
            has_first_point=self.first_point is not None,
            elapsed_ms=elapsed,
            remaining_ms=remaining,
            timeout_ms=self.timeout_ms,
        )


def _refused(reason: CalibrationErrorReason, step: CalibrationStep) -> CalibrationResult:
    return CalibrationResult(ok=False, reason=reason.value, step=step)
