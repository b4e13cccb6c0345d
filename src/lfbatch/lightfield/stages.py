"""Optional processing stages and ordered stage-set helpers.

Decode is implicit: every persisted artifact has been decoded, so only the
optional stages that can be layered on top of a decode are enumerated here.
"""

from enum import Enum
from typing import Iterable, Tuple

__all__ = ['Stage', 'STAGE_ORDER', 'ordered_stages', 'remaining_stages', 'parse_stage']


class Stage(str, Enum):
    """Optional stage applied after decoding.

    Values match the names written into artifact provenance, so artifacts
    written by one run are readable by the next.
    """
    COLOUR_CORRECT = "ColourCorrect"
    RECTIFY = "Rectify"

    def __str__(self) -> str:
        return self.value


# ColourCorrect always runs before Rectify
STAGE_ORDER: Tuple[Stage, ...] = (Stage.COLOUR_CORRECT, Stage.RECTIFY)


def parse_stage(value) -> Stage:
    """Coerce a stage name or member into a :class:`Stage`.

    Raises
    ------
    ValueError
        If ``value`` does not name a known stage (names are case sensitive).
    """
    if isinstance(value, Stage):
        return value
    try:
        return Stage(str(value).strip())
    except ValueError:
        valid = [s.value for s in STAGE_ORDER]
        raise ValueError(f"Invalid stage: {value!r}. Must be one of {valid}") from None


def ordered_stages(stages: Iterable) -> Tuple[Stage, ...]:
    """Return unique stages in first-seen order."""
    seen = []
    for stage in stages:
        stage = parse_stage(stage)
        if stage not in seen:
            seen.append(stage)
    return tuple(seen)


def remaining_stages(requested: Iterable, completed: Iterable) -> Tuple[Stage, ...]:
    """Stages in ``requested`` that are not in ``completed``, in requested order."""
    done = set(ordered_stages(completed))
    return tuple(s for s in ordered_stages(requested) if s not in done)
