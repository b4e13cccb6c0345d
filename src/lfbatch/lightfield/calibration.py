"""Calibration database lookup.

The calibration database is a JSON file listing calibrations by camera
serial number and lens zoom/focus step::

    {"CalibrationDatabase": [
        {"CamSerial": "B5143300780", "ZoomStep": 1200, "FocusStep": 870,
         "Fname": "Cal01/CalInfo.json"},
        ...
    ]}

Each entry points, relative to the database file, at a calibration info
JSON file holding the ``LensletGridModel`` used while calibrating plus the
rectification parameters (intrinsics, distortion, ...). Building the
database is outside this package; only lookup is done here.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, ValidationError, field_validator

from lfbatch.schemas.base import LFBaseModel
from lfbatch.lightfield.grid_model import LensletGridModel
from lfbatch.lightfield.records import CalibrationRecord

__all__ = ['CalibrationEntry', 'CalibrationDatabase', 'locate_database_file', 'camera_key']

logger = logging.getLogger(__name__)


class CalibrationEntry(LFBaseModel):
    """One calibration in the database."""
    cam_serial: str = Field(alias="CamSerial")
    zoom_step: float = Field(0.0, alias="ZoomStep")
    focus_step: float = Field(0.0, alias="FocusStep")
    fname: str = Field(alias="Fname")

    model_config = ConfigDict(extra='ignore', frozen=True, populate_by_name=True)

    @field_validator("cam_serial", mode="before")
    @classmethod
    def coerce_serial(cls, v):
        """Serial numbers are sometimes stored as JSON numbers."""
        return str(v)


def locate_database_file(path, fname: str) -> Optional[Path]:
    """Resolve a database location to a single file.

    ``path`` may name the database file itself or a folder that is searched
    recursively for ``fname``. Returns None when nothing, or more than one
    candidate, is found.
    """
    path = Path(path)
    if path.is_file():
        return path
    if not path.is_dir():
        logger.warning("Calibration database path does not exist: %s", path)
        return None

    matches = sorted(p for p in path.rglob(fname) if p.is_file())
    if not matches:
        logger.warning("No %s found under %s", fname, path)
        return None
    if len(matches) > 1:
        logger.warning(
            "Found %d candidates for %s under %s; specify the database file directly: %s",
            len(matches), fname, path, [str(m) for m in matches],
        )
        return None
    return matches[0]


def camera_key(lf_metadata: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Camera serial and lens steps from light field metadata, or None if absent."""
    try:
        serial = lf_metadata["SerialData"]["camera"]["serialNumber"]
        lens = lf_metadata["devices"]["lens"]
    except (KeyError, TypeError):
        return None
    return {
        "cam_serial": str(serial),
        "zoom_step": float(lens.get("zoomStep", 0.0)),
        "focus_step": float(lens.get("focusStep", 0.0)),
    }


class CalibrationDatabase:
    """Read-only view of a calibration database file.

    Parameters
    ----------
    db_path : Path
        The database JSON file. Calibration info files are resolved
        relative to its folder.
    entries : list of CalibrationEntry
    """

    def __init__(self, db_path: Path, entries: List[CalibrationEntry]):
        self.db_path = Path(db_path)
        self.entries = list(entries)

    @classmethod
    def load(cls, db_path) -> "CalibrationDatabase":
        """Parse a database file.

        Raises
        ------
        ValueError
            If the file is not valid JSON or an entry is malformed.
        """
        db_path = Path(db_path)
        with open(db_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        if isinstance(raw, dict):
            raw = raw.get("CalibrationDatabase", [])
        if not isinstance(raw, list):
            raise ValueError(f"Malformed calibration database {db_path}: expected a list of entries")
        try:
            entries = [CalibrationEntry.model_validate(item) for item in raw]
        except ValidationError as e:
            raise ValueError(f"Malformed calibration database {db_path}: {e}") from e
        logger.debug("Calibration database %s: %d entries", db_path, len(entries))
        return cls(db_path, entries)

    def select(self, lf_metadata: Dict[str, Any]) -> Optional[CalibrationEntry]:
        """Entry for the same camera with the nearest zoom and focus steps."""
        key = camera_key(lf_metadata)
        if key is None:
            logger.warning("Light field metadata has no camera serial or lens settings")
            return None

        candidates = [e for e in self.entries if e.cam_serial == key["cam_serial"]]
        if not candidates:
            return None

        def distance(entry):
            return ((entry.zoom_step - key["zoom_step"]) ** 2
                    + (entry.focus_step - key["focus_step"]) ** 2)

        return min(candidates, key=distance)

    def find(self, lf_metadata: Dict[str, Any]) -> Optional[CalibrationRecord]:
        """Load the calibration matching ``lf_metadata``, or None if there is none.

        A calibration saved without a grid model is returned with
        ``grid_model=None``.

        Raises
        ------
        OSError
            If the calibration info file cannot be read.
        ValueError
            If it is not a JSON object or its grid model is malformed.
        """
        entry = self.select(lf_metadata)
        if entry is None:
            return None

        cal_info_path = self.db_path.parent / entry.fname
        with open(cal_info_path, "r", encoding="utf-8") as f:
            cal_info = json.load(f)

        if not isinstance(cal_info, dict):
            raise ValueError(f"Malformed calibration info {cal_info_path}")

        grid_model = cal_info.pop("LensletGridModel", None)
        if grid_model is not None:
            grid_model = LensletGridModel.model_validate(grid_model)
        logger.info(
            "Selected calibration %s (serial %s, zoom %g, focus %g)",
            cal_info_path, entry.cam_serial, entry.zoom_step, entry.focus_step,
        )
        return CalibrationRecord(grid_model=grid_model, rectification=cal_info,
                                 source=str(cal_info_path))
