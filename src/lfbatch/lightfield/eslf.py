"""ESLF (Extended Standard Light Field) image layout.

An ESLF image tiles the light field by lenslet: each ``T x S`` block of
pixels holds every angular sample of one spatial location (v, u). A 5-D
light field (t, s, v, u, c) is written as a ``(V*T, U*S, C)`` image, with
the weight channel, when kept, stored as the alpha plane of a PNG.

Images are written and read with OpenCV, which handles 16-bit colour and
alpha PNGs. OpenCV stores colour as BGR, so the channel order is swapped on
the way in and out.
"""

import logging
from pathlib import Path
from typing import Sequence

import cv2
import numpy as np
from skimage.util import img_as_ubyte

from lfbatch.contracts.failure import ConfigurationError

__all__ = ['pack_eslf', 'unpack_eslf', 'write_eslf', 'read_eslf']

logger = logging.getLogger(__name__)

# Named writer options accepted in FileConfig.imwrite_options
IMWRITE_FLAGS = {
    "jpeg_quality": cv2.IMWRITE_JPEG_QUALITY,
    "png_compression": cv2.IMWRITE_PNG_COMPRESSION,
}


def pack_eslf(lf: np.ndarray) -> np.ndarray:
    """Tile a (T, S, V, U, C) light field into a (V*T, U*S, C) image."""
    n_t, n_s, n_v, n_u, n_c = lf.shape
    return lf.transpose(2, 0, 3, 1, 4).reshape(n_v * n_t, n_u * n_s, n_c)


def unpack_eslf(image: np.ndarray, lenslet_size: Sequence[int]) -> np.ndarray:
    """Inverse of :func:`pack_eslf` given the (T, S) lenslet size."""
    n_t, n_s = int(lenslet_size[0]), int(lenslet_size[1])
    if image.ndim == 2:
        image = image[:, :, np.newaxis]
    height, width, n_c = image.shape
    if height % n_t or width % n_s:
        raise ValueError(
            f"ESLF image of size {height}x{width} is not a whole number of "
            f"{n_t}x{n_s} lenslets"
        )
    n_v, n_u = height // n_t, width // n_s
    return image.reshape(n_v, n_t, n_u, n_s, n_c).transpose(1, 3, 0, 2, 4)


def _imwrite_params(options: dict) -> list:
    params = []
    for name, value in options.items():
        if name not in IMWRITE_FLAGS:
            raise ConfigurationError(
                f"Unknown image writer option {name!r}; expected one of {sorted(IMWRITE_FLAGS)}"
            )
        params.extend([IMWRITE_FLAGS[name], int(value)])
    return params


def _swap_rgb(image: np.ndarray) -> np.ndarray:
    """RGB(A) <-> BGR(A); extra planes are left in place."""
    if image.shape[2] < 3:
        return image
    order = [2, 1, 0] + list(range(3, image.shape[2]))
    return image[:, :, order]


def write_eslf(path, lf: np.ndarray, n_col_chans: int, write_alpha: bool,
               imwrite_options: dict = None) -> Path:
    """Write a quantized light field as an ESLF image.

    Parameters
    ----------
    path : str or Path
        Output file; the extension selects the encoder (``.png``/``.jpg``).
    lf : np.ndarray
        Integer samples, shape (T, S, V, U, C).
    n_col_chans : int
        Number of leading colour channels.
    write_alpha : bool
        Store the first channel after the colour channels as alpha. Ignored
        when the light field has no such channel.
    imwrite_options : dict, optional
        Named encoder options, see ``IMWRITE_FLAGS``.

    Returns
    -------
    Path
        The written file.

    Raises
    ------
    OSError
        If the encoder reports failure.
    """
    path = Path(path)
    n_keep = n_col_chans + 1 if write_alpha and lf.shape[-1] > n_col_chans else n_col_chans
    image = pack_eslf(lf[..., :n_keep])

    if path.suffix.lower() in (".jpg", ".jpeg") and image.dtype != np.uint8:
        # JPEG is 8-bit only
        image = img_as_ubyte(image)

    ok = cv2.imwrite(str(path), _swap_rgb(np.ascontiguousarray(image)),
                     _imwrite_params(imwrite_options or {}))
    if not ok:
        raise OSError(f"Failed to write ESLF image {path}")
    logger.debug("ESLF written: %s %s %s", path.name, image.shape, image.dtype)
    return path


def read_eslf(path, lenslet_size: Sequence[int], n_col_chans: int, load_alpha: bool) -> np.ndarray:
    """Read an ESLF image back into a (T, S, V, U, C) integer light field.

    The alpha plane is returned as the channel after the colour channels
    only when ``load_alpha`` is set and the file actually has one.
    """
    path = Path(path)
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise OSError(f"Failed to load ESLF image {path}")
    if image.ndim == 2:
        image = image[:, :, np.newaxis]
    image = _swap_rgb(image)
    n_keep = n_col_chans + 1 if load_alpha and image.shape[2] > n_col_chans else n_col_chans
    return unpack_eslf(image[:, :, :n_keep], lenslet_size)
