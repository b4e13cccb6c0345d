"""Resolved, frozen configuration handed to the pipeline.

Every field is required. Defaults belong to ParamConfig and cross-option
rules to resolve.py, so a model here can only be built from a complete
merged dict.
"""

from typing import Any, Literal, Optional, Union
from pydantic import Field, ConfigDict
from lfbatch.schemas.base import LFBaseModel
from lfbatch.lightfield.stages import Stage


_FROZEN = ConfigDict(
    extra='forbid',
    validate_assignment=True,
    str_strip_whitespace=True,
    frozen=True,
)


class InternalFileConfig(LFBaseModel):
    """Resolved artifact naming and saving options.

    ``output_path`` of None means "next to the inputs": the orchestrator
    substitutes the discovered input base path.
    """
    output_path: Optional[str]
    output_precision: Literal["uint8", "uint16"]
    output_format: Literal["nc", "eslf.png", "eslf.jpg"]
    imwrite_options: dict[str, Any]
    save_weight: bool
    save_result: bool
    force_redo: bool
    save_fname_pattern: str
    thumb_fname_pattern: str

    model_config = _FROZEN


class InternalDecodeConfig(LFBaseModel):
    """Resolved decode options; ``clip_mode`` is always set here."""
    optional_tasks: list[Stage]
    colour_hist_thresh: float
    white_image_database_path: str
    white_image_database_fname: str
    do_dehex: bool
    do_square_st: bool
    resamp_method: Literal["fast", "triangulation", "barycentric", "none"]
    level_limits: Optional[tuple[float, float]]
    precision: Literal["single", "double"]
    weighted_demosaic: bool
    weighted_interp: bool
    colour_compatibility: bool
    normalise_wi_colours: bool
    normalise_wi_exposure: bool
    early_white_balance: bool
    correct_saturated: bool
    clip_mode: Literal["hard", "soft", "none"]

    model_config = _FROZEN


class InternalRectConfig(LFBaseModel):
    """Resolved calibration lookup settings."""
    calibration_database_path: str
    calibration_database_fname: str
    max_grid_model_diff: float = Field(gt=0)

    model_config = _FROZEN


class InternalLoggingConfig(LFBaseModel):
    """Resolved logging settings."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    log_to_file: bool

    model_config = _FROZEN


class InternalConfig(LFBaseModel):
    """Configuration of one run.

    Stages and writers read attributes directly, e.g.
    ``config.file.output_precision``. Each record starts from this same
    object, so values discovered while decoding one record never leak into
    the next.
    """

    input_path: Union[str, list[str]]
    default_file_spec: list[str]
    file: InternalFileConfig
    decode: InternalDecodeConfig
    rect: InternalRectConfig
    logging: InternalLoggingConfig

    model_config = _FROZEN
