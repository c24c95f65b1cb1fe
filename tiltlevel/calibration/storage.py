"""
Persistence for calibration offsets.

Stores raise CalibrationStorageError on failure; the sensor engine turns that
into a result value so a failed save never disturbs the in-memory state.
"""

import errno
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from tiltlevel.core.errors import CalibrationStorageError
from tiltlevel.core.models import CalibrationOffsets, StorageErrorReason

# errno values that mean the medium is full rather than unreachable
_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


def storage_error_reason(error: BaseException) -> StorageErrorReason:
    """Map a low-level exception to a storage error reason."""
    if isinstance(error, OSError) and error.errno in _QUOTA_ERRNOS:
        return StorageErrorReason.QUOTA_EXCEEDED
    return StorageErrorReason.STORAGE_UNAVAILABLE


def _reject_constant(name: str):
    raise ValueError(f"Non-finite value {name} in calibration file")


class CalibrationStore(ABC):
    """Interface for loading and saving calibration offsets."""

    @abstractmethod
    def load(self) -> Optional[CalibrationOffsets]:
        """
        Load persisted offsets.

        Returns:
            The offsets, or None if nothing usable has been stored

        Raises:
            CalibrationStorageError: If the storage cannot be read
        """

    @abstractmethod
    def save(self, offsets: CalibrationOffsets) -> None:
        """
        Persist offsets.

        Raises:
            CalibrationStorageError: If the storage cannot be written
        """


class MemoryCalibrationStore(CalibrationStore):
    """Keeps offsets in process memory only."""

    def __init__(self, offsets: Optional[CalibrationOffsets] = None):
        self.offsets = offsets

    def load(self) -> Optional[CalibrationOffsets]:
        return self.offsets

    def save(self, offsets: CalibrationOffsets) -> None:
        self.offsets = offsets.model_copy()


class JsonFileCalibrationStore(CalibrationStore):
    """
    Stores offsets as a small JSON document.

    The document uses the ``calibPitch`` / ``calibRoll`` keys so files written
    by earlier versions of the app stay readable.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)

    def load(self) -> Optional[CalibrationOffsets]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CalibrationStorageError(storage_error_reason(e), str(e)) from e

        try:
            data = json.loads(text, parse_constant=_reject_constant)
        except ValueError as e:
            raise CalibrationStorageError(StorageErrorReason.STORAGE_UNAVAILABLE, str(e)) from e

        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring calibration file with unexpected layout: {self.path}")
            return None

        values = [data.get("calibPitch"), data.get("calibRoll")]
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
            self.logger.warning(f"Ignoring calibration file without numeric offsets: {self.path}")
            return None

        try:
            return CalibrationOffsets.model_validate(data)
        except ValidationError as e:
            raise CalibrationStorageError(StorageErrorReason.STORAGE_UNAVAILABLE, str(e)) from e

    def save(self, offsets: CalibrationOffsets) -> None:
        payload = json.dumps(offsets.model_dump(by_alias=True))
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise CalibrationStorageError(storage_error_reason(e), str(e)) from e
