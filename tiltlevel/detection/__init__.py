"""Static-detection pipeline: motion window, classifier and static accumulator."""

from .motion_window import MotionWindow
from .accumulator import StaticAccumulator
from .classifier import HysteresisClassifier

__all__ = [
    'MotionWindow',
    'StaticAccumulator',
    'HysteresisClassifier',
]
