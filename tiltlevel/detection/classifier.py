"""
Hysteresis classifier for the active / static regimes.

Core Concepts:
- A window is "calm" under a threshold ``t`` when its motion variance is at or
  below ``t`` AND its mean motion is at or below ``sqrt(t)``. The second test
  rejects windows whose variance looks low while every sample is moving.
- Entering the static regime uses ``t * entry_scale``; staying in it uses the
  looser ``t * exit_scale``.
- Leaving the static regime needs ``grace_frames`` consecutive non-calm
  samples, so a single bump does not discard the averaged reading.
- Inside the static regime the mode is refined to LOCKING until
  ``averaging_sample_count`` static samples exist, then MEASURING.
"""

import logging
import math

from tiltlevel.core.models import MeasurementMode
from .motion_window import MotionWindow


class HysteresisClassifier:
    """Decides the measurement mode from a MotionWindow on every sample."""

    def __init__(self,
                 variance_threshold: float = 0.0025,
                 entry_scale: float = 1.0,
                 exit_scale: float = 1.8,
                 grace_frames: int = 12,
                 averaging_sample_count: int = 150):
        self.variance_threshold = variance_threshold
        self.entry_scale = entry_scale
        self.exit_scale = exit_scale
        self.grace_frames = grace_frames
        self.averaging_sample_count = averaging_sample_count

        self.mode = MeasurementMode.ACTIVE
        self.grace_counter = 0
        self.logger = logging.getLogger(__name__)

    @property
    def is_static(self) -> bool:
        return self.mode is not MeasurementMode.ACTIVE

    @property
    def entry_threshold(self) -> float:
        return self.variance_threshold * self.entry_scale

    @property
    def exit_threshold(self) -> float:
        return self.variance_threshold * self.exit_scale

    @staticmethod
    def is_calm(window: MotionWindow, threshold: float) -> bool:
        """Variance and mean-magnitude test against one threshold."""
        if not window.is_full or window.count == 0:
            return False
        if window.variance > threshold:
            return False
        return window.mean <= math.sqrt(max(threshold, 0.0))

    def evaluate(self, window: MotionWindow) -> bool:
        """
        Decide whether the current sample belongs to the static regime.

        Only the grace counter is updated here; call ``settle`` afterwards to
        commit the resulting mode.
        """
        if not window.is_full:
            self.grace_counter = 0
            return False

        if not self.is_static:
            self.grace_counter = 0
            return self.is_calm(window, self.entry_threshold)

        if self.is_calm(window, self.exit_threshold):
            self.grace_counter = 0
            return True

        self.grace_counter += 1
        return self.grace_counter < self.grace_frames

    def settle(self, static: bool, static_count: int) -> MeasurementMode:
        """
        Commit the mode for this sample.

        Args:
            static: Result of ``evaluate`` for this sample
            static_count: Number of samples in the static accumulator

        Returns:
            The new mode
        """
        previous = self.mode
        if not static:
            self.mode = MeasurementMode.ACTIVE
            self.grace_counter = 0
        elif static_count >= self.averaging_sample_count:
            self.mode = MeasurementMode.MEASURING
        else:
            self.mode = MeasurementMode.LOCKING

        if self.mode is not previous:
            self.logger.debug(f"Measurement mode {previous.value} -> {self.mode.value}")
        return self.mode

    def reset(self) -> None:
        self.mode = MeasurementMode.ACTIVE
        self.grace_counter = 0
