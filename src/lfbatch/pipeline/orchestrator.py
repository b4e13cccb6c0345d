"""Batch decode orchestration.

Walks every discovered raw file through completion check, stage execution
and persistence, one record at a time. Records are independent: each
starts from the same resolved configuration, and a failure in one is
logged and recorded before moving on to the next.
"""

import time
import logging
from collections import Counter
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

from lfbatch.contracts import (
    ArtifactReadError,
    ConfigurationError,
    ContractViolation,
    FailurePolicy,
    UnsupportedOutputFormat,
)
from lfbatch.lightfield.discovery import base_name, find_files_recursive
from lfbatch.lightfield.stages import Stage
from lfbatch.pipeline.completion import CompletionTracker
from lfbatch.pipeline.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    RecordOutcome,
    RecordStatus,
    emit,
)
from lfbatch.pipeline.executor import PipelineExecutor
from lfbatch.pipeline.persistence import OUTPUT_FORMATS, PersistenceEngine
from lfbatch.setup_directories import get_log_path, setup_output_directories

if TYPE_CHECKING:
    from lfbatch.schemas import InternalConfig
    from lfbatch.lightfield.collaborators import (
        ColourTransform,
        LightFieldDecoder,
        LightFieldRectifier,
    )

__all__ = ['DecodeOrchestrator']

logger = logging.getLogger(__name__)


class DecodeOrchestrator:
    """Runs the decode pipeline over a folder of raw lenslet images.

    This is the main entry point for running ``lfbatch``. For each input
    file it:

    1. Checks for an existing artifact and reads which optional stages it
       already has (CompletionTracker).
    2. Decodes the raw file if there is no artifact, or reloads the
       artifact if stages remain (PipelineExecutor / CompletionTracker).
    3. Applies the remaining stages, ColourCorrect then Rectify.
    4. Saves the result, with provenance, if anything changed
       (PersistenceEngine).

    Re-running over the same folder does no work for records that are
    already complete, and only the missing stages for the rest.

    **Failure handling:**

    Errors carry a FailurePolicy. SKIP_RECORD errors (corrupt artifacts,
    contract violations, unexpected exceptions inside one record) are
    logged and recorded on that record's outcome, and the batch continues.
    ABORT_RUN errors (configuration problems) stop the batch.

    **Logging:**

    All output goes to both console and ``<output>/logs/decode_*.log``.
    Log level controlled via ``config.logging.level``.

    Example usage::

        config = resolve_config(ParamConfig(), user_cfg)
        orch = DecodeOrchestrator(config, decoder=my_decoder)
        outcomes = orch.run()
    """

    def __init__(self, config: "InternalConfig", decoder: "LightFieldDecoder",
                 rectifier: Optional["LightFieldRectifier"] = None,
                 colour_transform: Optional["ColourTransform"] = None):
        """Validate the run configuration and collaborators.

        Raises
        ------
        UnsupportedOutputFormat
            If the output format has no writer.
        ConfigurationError
            If Rectify is requested without a rectifier.
        """
        if config.file.output_format not in OUTPUT_FORMATS:
            raise UnsupportedOutputFormat(config.file.output_format)
        if Stage.RECTIFY in config.decode.optional_tasks and rectifier is None:
            raise ConfigurationError("Rectify requested but no rectifier was supplied")

        self.config = config
        self.executor = PipelineExecutor(config, decoder, rectifier, colour_transform)

        self.output_dirs = None
        self.persistence = None
        self.tracker = None
        self.outcomes: List[RecordOutcome] = []
        self._start_time = None

    @property
    def diagnostics(self) -> List[Diagnostic]:
        """Every diagnostic emitted so far, in order."""
        return [d for outcome in self.outcomes for d in outcome.diagnostics]

    def _setup_logging(self):
        """Route every lfbatch logger to the console and, if enabled, a run log file."""
        log_level = getattr(logging, self.config.logging.level.upper(), logging.INFO)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Handlers from a previous run in the same process would duplicate lines
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        log_path = None
        if self.config.logging.log_to_file:
            log_path = get_log_path(self.output_dirs)
            fh = logging.FileHandler(log_path)
            fh.setLevel(log_level)
            fh.setFormatter(formatter)
            root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", logging.getLevelName(log_level), log_path)

    def run(self, configure_logging: bool = True) -> List[RecordOutcome]:
        """Process every input file.

        Parameters
        ----------
        configure_logging : bool, optional
            Install the file and console handlers (default). Library callers
            with their own logging set this to False.

        Returns
        -------
        list of RecordOutcome
            One per input file, in discovery order.

        Raises
        ------
        FileNotFoundError
            If the input path does not exist.
        ConfigurationError
            If an error with an ABORT_RUN policy occurs.
        """
        self._start_time = time.time()
        file_list, base_path = find_files_recursive(
            self.config.input_path, self.config.default_file_spec
        )

        # Output root is created before decoding so permission errors surface early
        output_root = self.config.file.output_path or base_path
        self.output_dirs = setup_output_directories(output_root)
        if configure_logging:
            self._setup_logging()

        self.persistence = PersistenceEngine(self.config, self.output_dirs["base"])
        self.tracker = CompletionTracker(self.config, self.persistence)

        logger.info("=" * 60)
        logger.info("Decoding light fields")
        logger.info("Input from %s", base_path)
        logger.info("Output to %s", self.output_dirs["base"])
        logger.info("Requested tasks: %s",
                    ", ".join(str(s) for s in self.config.decode.optional_tasks) or "none")
        logger.info("=" * 60)

        self.outcomes = []
        for i, fname in enumerate(file_list, start=1):
            logger.info("---%s [%d / %d]...", fname, i, len(file_list))
            outcome = self.process_file(base_path / fname, fname)
            self.outcomes.append(outcome)

        self._log_summary()
        return self.outcomes

    def process_file(self, path: Path, fname: str) -> RecordOutcome:
        """Run one input file through check, execute, save."""
        name = base_name(fname)
        diagnostics: List[Diagnostic] = []
        try:
            return self._process(path, name, diagnostics)

        except ArtifactReadError as e:
            emit(diagnostics, DiagnosticKind.CORRUPT_ARTIFACT, str(e), record=name)
            return RecordOutcome(name=name, status=RecordStatus.SKIPPED, artifact_path=Path(e.path),
                                 diagnostics=diagnostics, error=str(e))

        except ContractViolation as e:
            logger.critical("Contract violated while processing %s: %s", name, e)
            return RecordOutcome(name=name, status=RecordStatus.FAILED,
                                 diagnostics=diagnostics, error=f"Contract violation: {e}")

        except Exception as e:
            if getattr(e, "policy", FailurePolicy.SKIP_RECORD) is FailurePolicy.ABORT_RUN:
                raise
            logger.exception("Error processing %s", fname)
            return RecordOutcome(name=name, status=RecordStatus.FAILED,
                                 diagnostics=diagnostics, error=str(e))

    def _process(self, path: Path, name: str, diagnostics: List[Diagnostic]) -> RecordOutcome:
        status = self.tracker.check(name)

        if status.up_to_date:
            return RecordOutcome(name=name, status=RecordStatus.UP_TO_DATE,
                                 completed=status.completed, artifact_path=status.path,
                                 diagnostics=diagnostics)

        fresh = status.needs_decode
        if fresh:
            record = self.executor.decode(path, name, diagnostics)
            if record is None:
                return RecordOutcome(name=name, status=RecordStatus.SKIPPED,
                                     artifact_path=status.path, diagnostics=diagnostics)
        else:
            record = status.record

        result = self.executor.run(record, status.remaining)
        diagnostics.extend(result.diagnostics)

        saved = False
        save_required = fresh or bool(result.executed)
        if save_required and self.config.file.save_result:
            self.persistence.save(result.record)
            saved = True

        if fresh:
            record_status = RecordStatus.DECODED
        elif result.executed:
            record_status = RecordStatus.UPDATED
        else:
            record_status = RecordStatus.UNCHANGED

        return RecordOutcome(
            name=name,
            status=record_status,
            completed=result.completed,
            executed=result.executed,
            artifact_path=status.path,
            saved=saved,
            diagnostics=diagnostics,
        )

    def summary(self) -> dict:
        """Counts of records per status plus diagnostics per kind."""
        statuses = Counter(outcome.status.value for outcome in self.outcomes)
        kinds = Counter(d.kind.value for d in self.diagnostics)
        return {
            "total": len(self.outcomes),
            "saved": sum(1 for outcome in self.outcomes if outcome.saved),
            "status": dict(statuses),
            "diagnostics": dict(kinds),
        }

    def _log_summary(self):
        elapsed = time.time() - self._start_time if self._start_time else 0
        stats = self.summary()
        logger.info("=" * 60)
        logger.info("Batch complete. Runtime: %.1f seconds", elapsed)
        logger.info("Statistics: total=%d, saved=%d, %s", stats["total"], stats["saved"],
                    ", ".join(f"{k}={v}" for k, v in sorted(stats["status"].items())) or "no records")
        if stats["diagnostics"]:
            logger.info("Diagnostics: %s",
                        ", ".join(f"{k}={v}" for k, v in sorted(stats["diagnostics"].items())))
        logger.info("=" * 60)
