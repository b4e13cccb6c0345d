"""Stage execution for one light field record.

Runs Decode for records without an artifact, then whichever optional
stages remain, always in the fixed order ColourCorrect, Rectify. Each stage
returns a new record with a new decode snapshot; nothing is modified in
place. Conditions that let the record continue (no calibration, grid model
mismatch, unfinished stages) are reported as diagnostics rather than errors.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, TYPE_CHECKING

import numpy as np

from lfbatch.contracts import (
    assert_channel_layout,
    assert_decoded,
    assert_float_record,
    assert_weight_available,
    require,
)
from lfbatch.lightfield.calibration import CalibrationDatabase, locate_database_file
from lfbatch.lightfield.colour import correct_colour, saturation_level
from lfbatch.lightfield.grid_model import fractional_differences, grid_models_match
from lfbatch.lightfield.records import DecodeConfiguration, LightFieldRecord, RectConfiguration
from lfbatch.lightfield.stages import STAGE_ORDER, Stage, ordered_stages
from lfbatch.pipeline.diagnostics import Diagnostic, DiagnosticKind, emit

if TYPE_CHECKING:
    from lfbatch.schemas import InternalConfig
    from lfbatch.lightfield.collaborators import (
        ColourTransform,
        LightFieldDecoder,
        LightFieldRectifier,
    )

__all__ = ['ExecutionResult', 'PipelineExecutor']

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of running the remaining stages on one record.

    Attributes
    ----------
    record : LightFieldRecord
        The record after every stage that ran.
    completed : tuple of Stage
        All stages now baked into the samples, earlier runs included.
    executed : tuple of Stage
        Stages completed in this run; saving is needed only if non-empty
        (or the record was freshly decoded).
    diagnostics : list of Diagnostic
    """
    record: LightFieldRecord
    completed: Tuple[Stage, ...]
    executed: Tuple[Stage, ...]
    diagnostics: List[Diagnostic] = field(default_factory=list)


class PipelineExecutor:
    """Applies processing stages to light field records.

    Parameters
    ----------
    config : InternalConfig
        Resolved run configuration. Each decode starts from fresh snapshots
        of its decode and rect groups.
    decoder : LightFieldDecoder
        Turns a raw file into a record.
    rectifier : LightFieldRectifier, optional
        Needed only when Rectify is requested.
    colour_transform : ColourTransform, optional
        Defaults to :func:`lfbatch.lightfield.colour.correct_colour`.
    """

    def __init__(self, config: "InternalConfig", decoder: "LightFieldDecoder",
                 rectifier: Optional["LightFieldRectifier"] = None,
                 colour_transform: Optional["ColourTransform"] = None):
        self.config = config
        self.decoder = decoder
        self.rectifier = rectifier
        self.colour_transform = colour_transform or correct_colour

    # ------------------------------------------------------------------
    # Decode

    def decode(self, path, name: str,
               diagnostics: Optional[List[Diagnostic]] = None) -> Optional[LightFieldRecord]:
        """Decode one raw file.

        Returns None, after emitting DECODE_FAILED, when the decoder gives
        up on the file.
        """
        diagnostics = diagnostics if diagnostics is not None else []
        decode = DecodeConfiguration.from_internal(self.config.decode)
        rect = RectConfiguration.from_internal(self.config.rect)

        logger.info("Decoding %s...", name)
        record = self.decoder(Path(path), name, decode, rect)
        if record is None:
            emit(diagnostics, DiagnosticKind.DECODE_FAILED,
                 f"decoder returned no light field for {path}", record=name)
            return None

        require(
            isinstance(record, LightFieldRecord),
            f"Decode contract violated: decoder returned {type(record).__name__}, expected LightFieldRecord"
        )
        assert_decoded(record)
        assert_float_record(record)
        require(
            not record.completed,
            f"Decode contract violated: fresh decode reports completed stages {record.completed}"
        )

        # Cast to the working precision and record the shape found
        lf = record.lf.values.astype(record.decode.working_dtype, copy=False)
        decode = record.decode.model_copy(update={"lf_size": list(lf.shape)})
        record = record.evolve(lf=lf, decode=decode)
        logger.info("Decode complete: %s %s", name, lf.shape)
        return record

    # ------------------------------------------------------------------
    # ColourCorrect

    def colour_correct(self, record: LightFieldRecord) -> LightFieldRecord:
        """Colour correct the colour channels, leaving weight channels untouched."""
        assert_float_record(record)
        assert_channel_layout(record)
        d = record.decode
        require(
            d.colour_matrix is not None and d.colour_balance is not None,
            "ColourCorrect contract violated: no colour matrix or colour balance recorded at decode"
        )

        logger.info("Applying colour correction...")
        n_col, n_weight = d.n_col_chans, d.n_weight_chans
        lf = record.lf.values
        colour = lf[..., :n_col]
        weight = lf[..., n_col:n_col + n_weight]

        if d.early_white_balance:
            # White balance already applied while decoding
            balance = np.ones(n_col)
        else:
            balance = np.asarray(d.colour_balance, dtype=np.float64)

        if d.resamp_method == "none":
            # At most one colour component per pixel is reliable; do not mix them
            matrix = np.eye(n_col)
        else:
            matrix = np.asarray(d.colour_matrix, dtype=np.float64)

        if d.colour_compatibility:
            saturation = saturation_level(d.colour_balance, d.colour_matrix)
        else:
            saturation = 1.0

        corrected = self.colour_transform(colour, matrix, balance, d.gamma, saturation, d.clip_mode)
        corrected = np.asarray(corrected, dtype=lf.dtype)
        require(
            corrected.shape == colour.shape,
            f"ColourCorrect contract violated: transform returned shape {corrected.shape}, "
            f"expected {colour.shape}"
        )

        lf_out = np.concatenate([corrected, weight], axis=-1)
        return record.evolve(lf=lf_out, decode=d.with_completed(Stage.COLOUR_CORRECT))

    # ------------------------------------------------------------------
    # Rectify

    def rectify(self, record: LightFieldRecord,
                diagnostics: Optional[List[Diagnostic]] = None) -> Tuple[LightFieldRecord, bool]:
        """Rectify using the calibration that matches the record's camera.

        Returns
        -------
        record : LightFieldRecord
            Rectified record, or the input record (with the resolved
            calibration location) when rectification did not happen.
        success : bool
        """
        diagnostics = diagnostics if diagnostics is not None else []
        assert_float_record(record)
        assert_channel_layout(record)
        require(self.rectifier is not None, "Rectify requested but no rectifier was supplied")

        logger.info("Applying rectification...")
        rect = record.rect
        db_file = locate_database_file(rect.calibration_database_path,
                                       rect.calibration_database_fname)
        if db_file is None:
            emit(diagnostics, DiagnosticKind.NO_CALIBRATION,
                 f"no calibration database {rect.calibration_database_fname} "
                 f"found at {rect.calibration_database_path}, skipping", record=record.name)
            return record, False

        rect = rect.model_copy(update={"calibration_database_file": str(db_file)})
        logger.info("Selecting calibration...")
        try:
            calibration = CalibrationDatabase.load(db_file).find(record.lf_metadata)
        except (OSError, ValueError, KeyError) as e:
            emit(diagnostics, DiagnosticKind.NO_CALIBRATION,
                 f"unusable calibration in {db_file}: {e}, skipping", record=record.name)
            return record.evolve(rect=rect), False
        if calibration is None:
            emit(diagnostics, DiagnosticKind.NO_CALIBRATION,
                 "no suitable calibration found, skipping", record=record.name)
            return record.evolve(rect=rect), False

        rect = rect.model_copy(update={"cal_info_path": calibration.source})
        self._compare_grid_models(record, calibration.grid_model, rect.max_grid_model_diff,
                                  diagnostics)

        if getattr(self.rectifier, "requires_weight", False):
            assert_weight_available(record, Stage.RECTIFY)

        result = self.rectifier(record.lf.values, calibration, rect)
        if not result.success:
            logger.warning("Rectifier reported failure for %s", record.name)
            return record.evolve(rect=rect), False

        if result.rect_cam_intrinsics_h is not None:
            rect = rect.model_copy(update={"rect_cam_intrinsics_h": result.rect_cam_intrinsics_h})
        lf = np.asarray(result.lf, dtype=record.lf.dtype)
        rectified = record.evolve(lf=lf, rect=rect,
                                  decode=record.decode.with_completed(Stage.RECTIFY))
        assert_decoded(rectified)
        return rectified, True

    def _compare_grid_models(self, record, reference, tolerance, diagnostics) -> None:
        """Warn when the decode grid model differs from the calibration's."""
        if record.grid_model is None:
            emit(diagnostics, DiagnosticKind.GRID_MODEL_MISMATCH,
                 "light field has no lenslet grid model to compare with the calibration",
                 record=record.name)
            return
        if reference is None:
            emit(diagnostics, DiagnosticKind.GRID_MODEL_MISMATCH,
                 "calibration was saved without a lenslet grid model", record=record.name)
            return
        if grid_models_match(reference, record.grid_model, tolerance):
            return

        diffs = fractional_differences(reference, record.grid_model)
        over = {name: d for name, d in diffs.items() if d > tolerance}
        emit(diagnostics, DiagnosticKind.GRID_MODEL_MISMATCH,
             "lenslet grid models differ; ideally the same grid model and white image "
             f"are used to decode during calibration and rectification ({over})",
             record=record.name)

    # ------------------------------------------------------------------

    def run(self, record: LightFieldRecord, remaining: Iterable) -> ExecutionResult:
        """Run the remaining optional stages in fixed order.

        Parameters
        ----------
        record : LightFieldRecord
            A freshly decoded or reloaded record.
        remaining : iterable of Stage
            Stages to apply; anything already completed is ignored.

        Returns
        -------
        ExecutionResult
            Emits one INCOMPLETE_TASKS diagnostic if any requested stage did
            not complete.
        """
        remaining = ordered_stages(remaining)
        diagnostics: List[Diagnostic] = []
        executed = []

        for stage in STAGE_ORDER:
            if stage not in remaining or stage in record.completed:
                continue
            if stage is Stage.COLOUR_CORRECT:
                record = self.colour_correct(record)
                executed.append(stage)
            elif stage is Stage.RECTIFY:
                record, success = self.rectify(record, diagnostics)
                if success:
                    executed.append(stage)

        not_done = [s for s in remaining if s not in record.completed]
        if not_done:
            emit(diagnostics, DiagnosticKind.INCOMPLETE_TASKS,
                 "could not complete all requested tasks: " + " ".join(str(s) for s in not_done),
                 record=record.name)

        return ExecutionResult(
            record=record,
            completed=record.completed,
            executed=tuple(executed),
            diagnostics=diagnostics,
        )
