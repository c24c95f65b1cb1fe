"""Exception types raised by the tilt level package."""

from .models import StorageErrorReason


class TiltLevelError(Exception):
    """Base class for all tilt level errors."""


class CalibrationStorageError(TiltLevelError):
    """
    Raised by a calibration store when offsets cannot be read or written.

    The sensor engine catches this and reports ``reason`` as a result value;
    in-memory calibration is never rolled back because of it.
    """

    def __init__(self, reason: StorageErrorReason, message: str = ""):
        self.reason = StorageErrorReason(reason)
        super().__init__(message or self.reason.value)
