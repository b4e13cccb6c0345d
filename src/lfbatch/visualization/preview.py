"""Thumbnail previews of light fields.

A preview is the central angular sample of the light field, contrast
stretched and histogram equalised over the pixels with non-zero weight,
titled with the record name and the stages applied so far.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from skimage import exposure
from skimage.util import img_as_ubyte

__all__ = ['central_view', 'equalize_view', 'render_preview']

logger = logging.getLogger(__name__)


def central_view(lf: np.ndarray) -> np.ndarray:
    """(V, U, C) image seen from the middle of the (T, S) aperture."""
    n_t, n_s = lf.shape[:2]
    return np.asarray(lf[n_t // 2, n_s // 2])


def equalize_view(view: np.ndarray, n_col_chans: int, hist_thresh: float = 0.01) -> np.ndarray:
    """Contrast-adjust a view for display.

    Parameters
    ----------
    view : np.ndarray
        (V, U, C) floating point image, colour channels first, then weight.
    n_col_chans : int
        Number of colour channels; a following channel is used as weight.
    hist_thresh : float
        Fraction of darkest and brightest samples saturated before
        equalising, so isolated outliers do not dominate the histogram.

    Returns
    -------
    np.ndarray
        (V, U, n_col_chans) float image in [0, 1].
    """
    colour = np.asarray(view[..., :n_col_chans], dtype=np.float64)
    if view.shape[-1] > n_col_chans:
        valid = view[..., n_col_chans] > 0
    else:
        valid = np.ones(colour.shape[:2], dtype=bool)
    if not np.any(valid):
        valid = np.ones(colour.shape[:2], dtype=bool)

    mask = np.repeat(valid[..., np.newaxis], n_col_chans, axis=-1)
    samples = colour[mask]
    lo, hi = np.percentile(samples, [100 * hist_thresh, 100 * (1 - hist_thresh)])
    if hi <= lo:
        # Flat image, nothing to stretch
        return np.clip(colour, 0, 1)

    colour = exposure.rescale_intensity(colour, in_range=(lo, hi), out_range=(0.0, 1.0))
    return exposure.equalize_hist(colour, mask=mask)


def render_preview(lf: np.ndarray, n_col_chans: int, title: str,
                   output_path: Optional[Path] = None, hist_thresh: float = 0.01,
                   completed: Iterable = (), dpi: int = 100) -> np.ndarray:
    """Build the preview image and optionally save it as a titled figure.

    Parameters
    ----------
    lf : np.ndarray
        (T, S, V, U, C) floating point light field.
    n_col_chans : int
        Number of colour channels.
    title : str
        Record identity shown above the image.
    output_path : Path, optional
        Where to save the PNG. Nothing is written if None.
    hist_thresh : float
        See :func:`equalize_view`.
    completed : iterable of Stage
        Stages applied so far, appended to the title.
    dpi : int
        Figure resolution; the figure is sized to show one image pixel per
        screen pixel.

    Returns
    -------
    np.ndarray
        The 8-bit preview image, (V, U, n_col_chans).
    """
    thumb = img_as_ubyte(equalize_view(central_view(lf), n_col_chans, hist_thresh))

    if output_path is not None:
        full_title = ", ".join([title] + [str(stage) for stage in completed])
        height, width = thumb.shape[:2]
        fig, ax = plt.subplots(figsize=(max(width / dpi, 2.0), max(height / dpi, 2.0) + 0.4), dpi=dpi)
        if thumb.shape[-1] == 1:
            ax.imshow(thumb[..., 0], cmap="gray", interpolation="nearest")
        else:
            ax.imshow(thumb[..., :3], interpolation="nearest")
        ax.set_title(full_title, fontsize=8)
        ax.set_axis_off()

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=dpi, bbox_inches='tight', format='png')
        plt.close(fig)
        logger.debug("Preview saved: %s", output_path)

    return thumb
