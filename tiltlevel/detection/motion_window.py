"""
Sliding window over filtered-sample motion.

Each sample contributes the Euclidean magnitude of the change in filtered
(pitch, roll) since the previous sample. Running sums give the window mean and
variance in O(1) per sample.
"""

import math
from collections import deque
from typing import Deque, Optional


class MotionWindow:
    """
    Fixed-capacity window of motion metrics with running sum / sum of squares.

    ``total`` and ``total_sq`` always equal the sums over the samples currently
    held; they are maintained incrementally and never recomputed, so small
    float drift over very long sessions is accepted.
    """

    def __init__(self, capacity: int = 60):
        self.capacity = capacity
        self.samples: Deque[float] = deque()
        self.total = 0.0
        self.total_sq = 0.0
        self.variance = math.inf
        self._prev_pitch: Optional[float] = None
        self._prev_roll: Optional[float] = None

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def count(self) -> int:
        return len(self.samples)

    @property
    def is_full(self) -> bool:
        return len(self.samples) >= self.capacity

    @property
    def mean(self) -> float:
        if not self.samples:
            return math.inf
        return self.total / len(self.samples)

    def observe(self, pitch: float, roll: float) -> float:
        """
        Record a filtered (pitch, roll) sample and push its motion metric.

        The first sample after a reset has nothing to diff against and counts
        as one calm sample (metric 0).

        Returns:
            The metric that was pushed.
        """
        if self._prev_pitch is None or self._prev_roll is None:
            metric = 0.0
        else:
            metric = math.hypot(pitch - self._prev_pitch, roll - self._prev_roll)

        self._prev_pitch = pitch
        self._prev_roll = roll
        self.push(metric)
        return metric

    def push(self, metric: float) -> None:
        """Append a metric, evict beyond capacity and refresh the variance."""
        if not math.isfinite(metric):
            metric = 0.0

        self.samples.append(metric)
        self.total += metric
        self.total_sq += metric * metric

        while len(self.samples) > self.capacity:
            dropped = self.samples.popleft()
            self.total -= dropped
            self.total_sq -= dropped * dropped

        n = len(self.samples)
        if n == 0:
            self.variance = math.inf
            return

        mean = self.total / n
        self.variance = max(0.0, self.total_sq / n - mean * mean)

    def clear(self) -> None:
        self.samples.clear()
        self.total = 0.0
        self.total_sq = 0.0
        self.variance = math.inf
        self._prev_pitch = None
        self._prev_roll = None
