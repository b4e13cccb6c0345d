"""Interfaces for the pluggable processing steps.

Demosaicing and resampling a lenslet image, and warping a light field into
a rectified one, are done by external code. The pipeline only depends on
the call signatures below; any callable with a matching signature works.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Protocol, runtime_checkable

import numpy as np

from lfbatch.lightfield.records import (
    CalibrationRecord,
    DecodeConfiguration,
    LightFieldRecord,
    RectConfiguration,
)

__all__ = ['LightFieldDecoder', 'LightFieldRectifier', 'ColourTransform', 'RectificationResult']


@dataclass
class RectificationResult:
    """What a rectifier hands back.

    Attributes
    ----------
    lf : np.ndarray
        Rectified samples with the same (t, s, v, u, channel) layout.
    success : bool
        False when the rectifier could not apply the calibration; the
        samples are then discarded and Rectify is not marked completed.
    rect_cam_intrinsics_h : list of list of float, optional
        Intrinsics of the rectified camera, recorded in the provenance.
    """
    lf: np.ndarray
    success: bool = True
    rect_cam_intrinsics_h: Optional[List[List[float]]] = None


@runtime_checkable
class LightFieldDecoder(Protocol):
    """Turns one raw lenslet file into a light field record.

    The decoder receives a fresh decode snapshot and returns a record whose
    ``decode`` carries the discovered values (channel counts, ``lf_size``,
    colour matrix and balance, gamma). Returning None means the file could
    not be decoded; the pipeline skips it.
    """

    def __call__(self, path: Path, name: str, decode: DecodeConfiguration,
                 rect: RectConfiguration) -> Optional[LightFieldRecord]:
        ...


@runtime_checkable
class LightFieldRectifier(Protocol):
    """Warps a light field using a calibration.

    Rectifiers that need the weight channel set ``requires_weight = True``;
    records reloaded without one then fail explicitly instead of being
    passed an incomplete light field.
    """

    def __call__(self, lf: np.ndarray, calibration: CalibrationRecord,
                 rect: RectConfiguration) -> RectificationResult:
        ...


class ColourTransform(Protocol):
    """Colour correction applied to colour channels only."""

    def __call__(self, colour: np.ndarray, colour_matrix: Any, colour_balance: Any,
                 gamma: float, saturation: float, clip_mode: str) -> np.ndarray:
        ...
