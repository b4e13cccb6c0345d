"""Light field record and the per-record configuration snapshots.

A LightFieldRecord exists for one iteration of the batch loop: it is made by
decoding a raw lenslet image or by reloading a persisted artifact, and it is
dropped once the record has been saved. Its configuration objects are frozen;
each stage produces a new snapshot via ``model_copy(update=...)``.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

import numpy as np
import xarray as xr
from pydantic import Field

from lfbatch.schemas.internal import InternalDecodeConfig, InternalRectConfig
from lfbatch.lightfield.grid_model import LensletGridModel
from lfbatch.lightfield.stages import Stage, ordered_stages

__all__ = [
    'LF_DIMS',
    'DecodeConfiguration',
    'RectConfiguration',
    'CalibrationRecord',
    'LightFieldRecord',
]

# Angular (t, s), spatial (v, u), then colour + weight channels
LF_DIMS = ("t", "s", "v", "u", "channel")


class DecodeConfiguration(InternalDecodeConfig):
    """Decode options for one record, including values found while decoding.

    ``optional_tasks`` lists the optional stages whose effect is baked into
    the samples. It is the only field that changes after decoding, and the
    only one a later run reads back to decide what is left to do.
    """
    optional_tasks: List[Stage] = Field(default_factory=list)
    n_col_chans: int = 3
    n_weight_chans: int = 1
    lf_size: Optional[List[int]] = None
    colour_matrix: Optional[List[List[float]]] = None
    colour_balance: Optional[List[float]] = None
    gamma: float = 1.0

    @classmethod
    def from_internal(cls, decode: InternalDecodeConfig) -> "DecodeConfiguration":
        """Fresh snapshot from the run configuration, with no stages completed."""
        data = decode.model_dump()
        data["optional_tasks"] = []
        return cls.model_validate(data)

    @property
    def working_dtype(self):
        return np.float32 if self.precision == "single" else np.float64

    def with_completed(self, stage: Stage) -> "DecodeConfiguration":
        """Snapshot with ``stage`` appended to the completed list."""
        tasks = ordered_stages([*self.optional_tasks, stage])
        return self.model_copy(update={"optional_tasks": list(tasks)})


class RectConfiguration(InternalRectConfig):
    """Rectification options for one record plus what the lookup resolved."""
    calibration_database_file: Optional[str] = None
    cal_info_path: Optional[str] = None
    rect_cam_intrinsics_h: Optional[List[List[float]]] = None

    @classmethod
    def from_internal(cls, rect: InternalRectConfig) -> "RectConfiguration":
        return cls.model_validate(rect.model_dump())


@dataclass(frozen=True)
class CalibrationRecord:
    """Rectification transform and grid model captured for one camera setting."""
    grid_model: Optional[LensletGridModel]
    rectification: Dict[str, Any]
    source: Optional[str] = None


@dataclass
class LightFieldRecord:
    """Light field samples plus everything needed to process and save them.

    Attributes
    ----------
    name : str
        Base identity (input path relative to the base folder, no extension).
    lf : xr.DataArray
        Samples with dims ``LF_DIMS``, floating point in [0, 1] while in memory.
    decode : DecodeConfiguration
    rect : RectConfiguration
    lf_metadata : dict
        Camera metadata from the raw file (serial number, zoom, focus, ...).
    white_image_metadata : dict
    grid_model : LensletGridModel, optional
        Grid model used at decode time; needed by Rectify.
    """
    name: str
    lf: xr.DataArray
    decode: DecodeConfiguration
    rect: RectConfiguration
    lf_metadata: Dict[str, Any] = field(default_factory=dict)
    white_image_metadata: Dict[str, Any] = field(default_factory=dict)
    grid_model: Optional[LensletGridModel] = None

    @staticmethod
    def wrap(samples: np.ndarray) -> xr.DataArray:
        """Wrap a 5-D array in a DataArray with the light field dims."""
        return xr.DataArray(np.asarray(samples), dims=LF_DIMS, name="lf")

    @property
    def n_channels(self) -> int:
        return int(self.lf.sizes["channel"])

    @property
    def completed(self):
        return tuple(self.decode.optional_tasks)

    def evolve(self, **changes) -> "LightFieldRecord":
        """Copy with some fields replaced; numpy arrays are wrapped as DataArrays."""
        if "lf" in changes and not isinstance(changes["lf"], xr.DataArray):
            changes["lf"] = self.wrap(changes["lf"])
        return replace(self, **changes)
