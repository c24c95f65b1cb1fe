"""
Scalar Kalman filter used for each tilt axis.

The state model is a constant value corrupted by additive noise: predict adds
process noise ``q`` to the error covariance, correct blends the measurement in
with gain ``p / (p + r)``.
"""

import math


class ScalarKalmanFilter:
    """
    Single-variable Kalman filter.

    The first measurement after construction or ``reset()`` is passed through
    unchanged and seeds the estimate, so a zero-initialized state never
    produces an artificial transient.
    """

    def __init__(self, q: float = 0.001, r: float = 0.1):
        self.q = q  # Process noise variance
        self.r = r  # Measurement noise variance
        self.x = 0.0
        self.p = 1.0
        self.k = 0.0
        self.initialized = False

    def update(self, measurement: float) -> float:
        """
        Feed one measurement and return the new estimate.

        Non-finite measurements leave the state untouched and return the
        current estimate.
        """
        if not math.isfinite(measurement):
            return self.x

        if not self.initialized:
            self.x = measurement
            self.initialized = True
            return self.x

        self.p += self.q
        self.k = self.p / (self.p + self.r)
        self.x += self.k * (measurement - self.x)
        self.p *= (1.0 - self.k)
        return self.x

    def set_params(self, q: float, r: float) -> None:
        """Update noise parameters; invalid values are ignored, state is kept."""
        if _is_positive(q):
            self.q = q
        if _is_positive(r):
            self.r = r

    def reset(self) -> None:
        self.x = 0.0
        self.p = 1.0
        self.k = 0.0
        self.initialized = False


def _is_positive(value) -> bool:
    try:
        return math.isfinite(value) and value > 0
    except TypeError:
        return False
