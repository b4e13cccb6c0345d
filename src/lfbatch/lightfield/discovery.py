"""Recursive discovery of raw lenslet images.

The input may be a folder (searched recursively with the default file
specs), a single file, a wildcard pattern such as ``Images/F01/*.lfr``, or a
list of any of these. Files are reported relative to a base path so the
output tree can mirror the input tree.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple, Union

__all__ = ['find_files_recursive', 'base_name']

logger = logging.getLogger(__name__)

LEGACY_FRAME_SUFFIX = "__frame"
WILDCARD_CHARS = "*?["


def _split_input(entry: str, default_specs: Sequence[str],
                 default_path: str) -> Tuple[Path, List[str]]:
    """Base folder and file specs for one input entry.

    A pattern without a folder, such as ``*0002*``, is searched for under
    ``default_path``.
    """
    path = Path(entry)
    if path.is_dir():
        return path, list(default_specs)
    if any(c in entry for c in WILDCARD_CHARS):
        base = Path(default_path) if path.parent == Path(".") else path.parent
        return base, [path.name]
    if path.is_file():
        return path.parent, [path.name]
    raise FileNotFoundError(f"Input path does not exist: {entry}")


def find_files_recursive(
    input_path: Union[str, Path, Iterable[Union[str, Path]], None],
    default_specs: Sequence[str],
    default_path: str = "Images",
) -> Tuple[List[str], Path]:
    """Find input files below ``input_path``.

    Parameters
    ----------
    input_path : str, Path, list or None
        Folder, file, wildcard pattern, or a list of these. ``None`` or an
        empty string falls back to ``default_path``.
    default_specs : sequence of str
        Glob patterns used when a folder is given.
    default_path : str
        Folder searched when no input is given, and for patterns that name
        no folder.

    Returns
    -------
    file_list : list of str
        Sorted, unique POSIX paths relative to ``base_path``.
    base_path : Path
        Common base folder of everything found.

    Raises
    ------
    FileNotFoundError
        If an input entry names neither a folder, a file nor a pattern.
    """
    if input_path is None or input_path == "":
        input_path = default_path
    if isinstance(input_path, (str, Path)):
        entries = [str(input_path)]
    else:
        entries = [str(e) for e in input_path]

    searches = [_split_input(entry, default_specs, default_path) for entry in entries]
    base_path = Path(os.path.commonpath([str(base.resolve()) for base, _ in searches]))

    found = set()
    for base, specs in searches:
        base = base.resolve()
        for spec in specs:
            for match in base.rglob(spec):
                if match.is_file():
                    found.add(match.relative_to(base_path).as_posix())

    file_list = sorted(found)
    logger.info("Found %d input files under %s", len(file_list), base_path)
    for name in file_list:
        logger.debug("  %s", name)
    return file_list, base_path


def base_name(relative_path: str) -> str:
    """Record identity: path without extension, legacy ``__frame`` suffix removed.

    >>> base_name("F01/IMG_0001.LFR")
    'F01/IMG_0001'
    >>> base_name("cam/img0001__frame.raw")
    'cam/img0001'
    """
    path = Path(relative_path)
    stem = path.with_suffix("").as_posix() if path.suffix else path.as_posix()
    cull = stem.find(LEGACY_FRAME_SUFFIX)
    if cull >= 0:
        stem = stem[:cull]
    return stem
