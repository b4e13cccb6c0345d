"""Structured diagnostics and per-record outcomes.

Non-fatal conditions are reported as Diagnostic events instead of being
printed and forgotten. Each event is logged as a warning when it is
created and collected on the record outcome, so callers and tests can
inspect exactly what happened to every record.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from lfbatch.lightfield.stages import Stage

__all__ = ['DiagnosticKind', 'Diagnostic', 'RecordStatus', 'RecordOutcome', 'emit']

logger = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    NO_CALIBRATION = "no_calibration"
    GRID_MODEL_MISMATCH = "grid_model_mismatch"
    INCOMPLETE_TASKS = "incomplete_tasks"
    DECODE_FAILED = "decode_failed"
    CORRUPT_ARTIFACT = "corrupt_artifact"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    detail: str
    record: Optional[str] = None

    def __str__(self) -> str:
        where = f"[{self.record}] " if self.record else ""
        return f"{where}{self.kind.value}: {self.detail}"


def emit(diagnostics: List[Diagnostic], kind: DiagnosticKind, detail: str,
         record: Optional[str] = None) -> Diagnostic:
    """Create a diagnostic, log it as a warning, and append it to ``diagnostics``."""
    diag = Diagnostic(kind=kind, detail=detail, record=record)
    logger.warning("%s", diag)
    diagnostics.append(diag)
    return diag


class RecordStatus(str, Enum):
    """Final state of one record in a batch run.

    DECODED: decoded from raw and (if enabled) saved
    UPDATED: existing artifact reloaded, new stages applied and saved
    UP_TO_DATE: existing artifact already had every requested stage
    UNCHANGED: stages were attempted but none completed, nothing saved
    SKIPPED: decode failed or the existing artifact could not be read
    FAILED: an unexpected error or contract violation stopped the record
    """
    DECODED = "decoded"
    UPDATED = "updated"
    UP_TO_DATE = "up_to_date"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class RecordOutcome:
    """What happened to one input file."""
    name: str
    status: RecordStatus
    completed: Tuple[Stage, ...] = ()
    executed: Tuple[Stage, ...] = ()
    artifact_path: Optional[Path] = None
    saved: bool = False
    diagnostics: List[Diagnostic] = field(default_factory=list)
    error: Optional[str] = None
