"""Per-axis signal filters for the tilt engine."""

from .kalman import ScalarKalmanFilter
from .live import LiveAngleTrack
from .final import FinalValueSmoother

__all__ = [
    'ScalarKalmanFilter',
    'LiveAngleTrack',
    'FinalValueSmoother',
]
