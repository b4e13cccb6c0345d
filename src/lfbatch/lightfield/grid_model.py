"""Lenslet grid model and tolerance comparison.

The grid model describes the microlens array geometry that was used to slice
a lenslet image into a light field. A calibration is only valid for light
fields decoded with (nearly) the same grid model, so Rectify compares the
model found at decode time with the one stored alongside the calibration.
"""

from typing import Dict, Literal

import numpy as np
from pydantic import ConfigDict

from lfbatch.schemas.base import LFBaseModel

__all__ = ['LensletGridModel', 'GRID_MODEL_FIELDS', 'fractional_differences', 'grid_models_match']

GRID_MODEL_FIELDS = (
    "h_spacing",
    "v_spacing",
    "h_offset",
    "v_offset",
    "rot",
    "orientation",
    "first_pos_shift_row",
)


class LensletGridModel(LFBaseModel):
    """Microlens grid geometry: pitch, rotation, offset and orientation.

    Accepts the toolbox's JSON key names (HSpacing, VSpacing, ...) as well as
    the snake_case field names.
    """
    h_spacing: float
    v_spacing: float
    h_offset: float
    v_offset: float
    rot: float
    orientation: Literal["horz", "vert"] = "horz"
    first_pos_shift_row: int = 1

    model_config = ConfigDict(
        extra='ignore',
        frozen=True,
        populate_by_name=True,
        alias_generator=lambda name: "".join(part.capitalize() for part in name.split("_")),
    )

    def as_vector(self) -> np.ndarray:
        """Numeric values in GRID_MODEL_FIELDS order, orientation binarized (horz=1)."""
        values = []
        for name in GRID_MODEL_FIELDS:
            value = getattr(self, name)
            if name == "orientation":
                value = 1.0 if value == "horz" else 0.0
            values.append(float(value))
        return np.asarray(values, dtype=np.float64)


def fractional_differences(reference: LensletGridModel, other: LensletGridModel) -> Dict[str, float]:
    """Per-field ``|reference - other| / |reference|``.

    Fields that are equal have zero difference even when the reference value
    is zero; a zero reference with a non-zero other value is infinitely
    different.
    """
    a = reference.as_vector()
    b = other.as_vector()
    diffs = {}
    for name, ref_val, other_val in zip(GRID_MODEL_FIELDS, a, b):
        if ref_val == other_val:
            diffs[name] = 0.0
        elif ref_val == 0:
            diffs[name] = float("inf")
        else:
            diffs[name] = float(abs((ref_val - other_val) / ref_val))
    return diffs


def grid_models_match(reference: LensletGridModel, other: LensletGridModel, tolerance: float) -> bool:
    """True when every fractional difference is at or below ``tolerance``."""
    return all(d <= tolerance for d in fractional_differences(reference, other).values())
