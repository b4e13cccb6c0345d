"""
Output paths for decoded light fields.

The output tree mirrors the input tree: a raw file found at
``<base>/F01/IMG_0001.LFR`` is saved as
``<output>/F01/IMG_0001__Decoded.<format>`` with its thumbnail beside it.
- Artifact names come from FileConfig.save_fname_pattern
- Thumbnail names come from FileConfig.thumb_fname_pattern
- Sequential image formats get a ``.json`` sidecar next to the image
- Logs go to ``<output>/logs``, created only when a log file is written
"""

from pathlib import Path
from datetime import datetime, timezone


def setup_output_directories(output_root):
    """
    Create the output root up front.

    Failing here, before any decoding, surfaces permission problems early.
    The log folder is only named here; :func:`get_log_path` creates it, so
    runs without file logging leave nothing but artifacts behind.

    Parameters
    ----------
    output_root : str or Path
        Root of the output tree.

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'logs'
    """
    output_root = Path(output_root).expanduser().resolve()

    output_root.mkdir(parents=True, exist_ok=True)
    return {
        "base": output_root,
        "logs": output_root / "logs",
    }


def get_artifact_path(output_root, base_name, save_fname_pattern, output_format):
    """
    Deterministic artifact path for one record.

    Parameters
    ----------
    output_root : str or Path
        Root of the output tree.
    base_name : str
        Record identity, e.g. 'F01/IMG_0001'.
    save_fname_pattern : str
        printf-style pattern with one '%s', e.g. '%s__Decoded'.
    output_format : str
        'nc', 'eslf.png' or 'eslf.jpg'; appended as the extension.

    Returns
    -------
    Path
        Full path: output_root/F01/IMG_0001__Decoded.nc

    Example
    -------
    >>> get_artifact_path('out', 'F01/IMG_0001', '%s__Decoded', 'eslf.png')
    PosixPath('out/F01/IMG_0001__Decoded.eslf.png')
    """
    fname = (save_fname_pattern % base_name) + "." + output_format
    return Path(output_root) / fname


def get_sidecar_path(artifact_path):
    """
    Metadata sidecar for a sequential-image artifact: '<artifact>.json'.
    """
    artifact_path = Path(artifact_path)
    return artifact_path.with_name(artifact_path.name + ".json")


def get_thumbnail_path(output_root, base_name, thumb_fname_pattern):
    """
    Preview image path for one record.

    Example
    -------
    >>> get_thumbnail_path('out', 'F01/IMG_0001', '%s__Decoded_Thumb.png')
    PosixPath('out/F01/IMG_0001__Decoded_Thumb.png')
    """
    return Path(output_root) / (thumb_fname_pattern % base_name)


def get_log_path(output_dirs):
    """
    Timestamped log file path under output_dirs['logs'].
    """
    log_dir = output_dirs["logs"]
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return log_dir / f"decode_{timestamp}.log"
