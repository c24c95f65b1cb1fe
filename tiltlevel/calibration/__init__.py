"""Zero-offset calibration: session control and offset persistence."""

from .controller import CalibrationController
from .storage import CalibrationStore, MemoryCalibrationStore, JsonFileCalibrationStore

__all__ = [
    'CalibrationController',
    'CalibrationStore',
    'MemoryCalibrationStore',
    'JsonFileCalibrationStore',
]
