"""Colour correction of decoded light fields.

The default transform white balances, applies the camera colour matrix,
normalizes by the saturation level, handles highlights according to the
clip mode, then applies gamma. It operates on colour channels only; the
executor strips and re-attaches the weight channels around it.
"""

import numpy as np

__all__ = ['correct_colour', 'apply_highlight_rolloff', 'saturation_level', 'CLIP_MODES']

CLIP_MODES = ("hard", "soft", "none")


def saturation_level(colour_balance, colour_matrix) -> float:
    """Lowest output value a saturated (all ones) sensor pixel maps to."""
    balance = np.asarray(colour_balance, dtype=np.float64)
    matrix = np.asarray(colour_matrix, dtype=np.float64)
    return float(np.min(balance @ matrix))


def apply_highlight_rolloff(image: np.ndarray, threshold: float = 0.85,
                            smoothness: float = 0.1) -> np.ndarray:
    """Compress values above ``threshold`` smoothly towards 1.

    Parameters
    ----------
    image : np.ndarray
        Samples in the 0-1+ range, may have values > 1.0
    threshold : float
        Where to start rolling off highlights (0.80-0.95 typical)
    smoothness : float
        How gradual the rolloff is (0.05-0.20 typical)

    Returns
    -------
    np.ndarray
        Samples with compressed highlights, all values <= 1
    """
    result = image.copy()
    mask = image > threshold
    if not np.any(mask):
        return result

    above_threshold = image[mask] - threshold
    max_range = 1.0 - threshold
    result[mask] = threshold + max_range * (1.0 - np.exp(-above_threshold / smoothness))
    return result


def correct_colour(colour: np.ndarray, colour_matrix, colour_balance, gamma: float,
                   saturation: float, clip_mode: str) -> np.ndarray:
    """Apply white balance, colour matrix, highlight handling and gamma.

    Parameters
    ----------
    colour : np.ndarray
        Colour samples, last axis is the colour channel.
    colour_matrix : array-like
        3x3 matrix applied to row vectors (``rgb @ matrix``).
    colour_balance : array-like
        Per-channel white balance gains.
    gamma : float
        Output gamma exponent.
    saturation : float
        Value that maps to 1 after correction.
    clip_mode : {"hard", "soft", "none"}
        ``hard`` clips to [0, 1]; ``soft`` rolls highlights off below 1;
        ``none`` only removes negatives, keeping highlights above 1.

    Returns
    -------
    np.ndarray
        Corrected samples with the dtype of ``colour``.
    """
    if clip_mode not in CLIP_MODES:
        raise ValueError(f"Invalid clip mode {clip_mode!r}. Must be one of {CLIP_MODES}")

    dtype = colour.dtype
    balance = np.asarray(colour_balance, dtype=dtype)
    matrix = np.asarray(colour_matrix, dtype=dtype)

    out = (colour * balance) @ matrix
    out /= dtype.type(saturation)

    if clip_mode == "hard":
        out = np.clip(out, 0, 1)
    elif clip_mode == "soft":
        out = np.clip(apply_highlight_rolloff(out), 0, 1)
    else:
        out = np.maximum(out, 0)

    if gamma != 1.0:
        np.power(out, dtype.type(gamma), out=out)
    return out.astype(dtype, copy=False)
