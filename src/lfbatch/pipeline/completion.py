"""Decide what remains to be done for one record.

The artifact on disk is the only state carried between runs: its
provenance says which optional stages are already baked into the samples.
Comparing that with the stages requested now gives the work left, and the
record is only loaded when there is some.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple, TYPE_CHECKING

from lfbatch.lightfield.records import LightFieldRecord
from lfbatch.lightfield.stages import Stage, ordered_stages, remaining_stages
from lfbatch.contracts import assert_decoded

if TYPE_CHECKING:
    from lfbatch.schemas import InternalConfig
    from lfbatch.pipeline.persistence import PersistenceEngine

__all__ = ['CompletionStatus', 'CompletionTracker']

logger = logging.getLogger(__name__)


@dataclass
class CompletionStatus:
    """Result of checking one record against its artifact.

    Attributes
    ----------
    path : Path
        Where the artifact is (or will be) saved.
    exists : bool
        An artifact is present and is not being redone.
    completed : tuple of Stage
        Stages already applied to the stored samples.
    remaining : tuple of Stage
        Requested stages still to apply, in requested order.
    record : LightFieldRecord, optional
        The reloaded record, only when the artifact exists and work remains.
    """
    path: Path
    exists: bool
    completed: Tuple[Stage, ...] = ()
    remaining: Tuple[Stage, ...] = ()
    record: Optional[LightFieldRecord] = None

    @property
    def needs_decode(self) -> bool:
        return not self.exists

    @property
    def up_to_date(self) -> bool:
        return self.exists and not self.remaining


class CompletionTracker:
    """Reconciles requested stages with an existing artifact.

    Parameters
    ----------
    config : InternalConfig
        Resolved run configuration; supplies the requested stages and
        ``force_redo``.
    persistence : PersistenceEngine
        Knows where artifacts live and how to read them.

    Example usage::

        tracker = CompletionTracker(config, persistence)
        status = tracker.check("F01/IMG_0001")
        if status.needs_decode:
            ...
        elif status.remaining:
            record = status.record
    """

    def __init__(self, config: "InternalConfig", persistence: "PersistenceEngine"):
        self.config = config
        self.persistence = persistence

    def check(self, name: str, requested: Optional[Iterable] = None,
              force_redo: Optional[bool] = None) -> CompletionStatus:
        """Check one record.

        Parameters
        ----------
        name : str
            Record identity (base name).
        requested : iterable of Stage, optional
            Defaults to the configured optional tasks.
        force_redo : bool, optional
            Defaults to the configured ``force_redo``. When set, an existing
            artifact is ignored and will be overwritten.

        Returns
        -------
        CompletionStatus

        Raises
        ------
        ArtifactReadError
            If the existing artifact or its sidecar is unreadable.
        ContractViolation
            If a reloaded light field does not match its provenance.
        """
        if requested is None:
            requested = self.config.decode.optional_tasks
        if force_redo is None:
            force_redo = self.config.file.force_redo
        requested = ordered_stages(requested)

        path = self.persistence.artifact_path(name)
        if force_redo or not path.exists():
            if force_redo and path.exists():
                logger.info("    %s exists, redoing (force_redo)", path)
            return CompletionStatus(path=path, exists=False, remaining=requested)

        logger.info("    %s already exists", path)
        provenance = self.persistence.read_provenance(path)
        completed = self.persistence.read_completed_tasks(path, provenance)
        remaining = remaining_stages(requested, completed)

        if not remaining:
            logger.info("    No further tasks requested")
            return CompletionStatus(path=path, exists=True, completed=completed)

        logger.info("    Additional tasks remain (%s), loading existing file...",
                    ", ".join(str(s) for s in remaining))
        record = self.persistence.load_record(path, name, provenance)
        assert_decoded(record)
        return CompletionStatus(path=path, exists=True, completed=completed,
                                remaining=remaining, record=record)
