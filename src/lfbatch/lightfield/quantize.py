"""Conversion between floating point light fields and stored integer samples."""

import numpy as np

__all__ = ['normalization_divisor', 'to_int', 'from_int', 'quantization_step']


def normalization_divisor(samples, clip_mode: str) -> float:
    """Divisor applied before quantizing.

    With clip mode ``"none"`` highlights above 1 are kept, so samples are
    scaled by their maximum and the maximum is stored as ``max_lum``.
    Otherwise samples are already in [0, 1] and the divisor is 1.
    """
    if clip_mode != "none":
        return 1.0
    max_lum = float(np.max(samples))
    # An all-black light field has nothing to rescale
    return max_lum if max_lum > 0 else 1.0


def to_int(samples, dtype: str) -> np.ndarray:
    """Round and saturate [0, 1] samples into the full range of ``dtype``."""
    int_max = np.iinfo(dtype).max
    scaled = np.rint(np.asarray(samples, dtype=np.float64) * int_max)
    return np.clip(scaled, 0, int_max).astype(dtype)


def from_int(samples: np.ndarray, working_dtype, max_lum: float = 1.0) -> np.ndarray:
    """Integer samples back to floating point, undoing the stored divisor."""
    int_max = np.iinfo(samples.dtype).max
    out = samples.astype(working_dtype) / working_dtype(int_max)
    if max_lum != 1.0:
        out *= working_dtype(max_lum)
    return out


def quantization_step(dtype: str, max_lum: float = 1.0) -> float:
    """Largest round-trip error for one sample stored as ``dtype``."""
    return max_lum / np.iinfo(dtype).max
