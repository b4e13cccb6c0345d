"""Expert defaults for every decode pipeline option.

A value missing here has no default anywhere: the user and command-line
layers only override fields, and processing code reads the resolved
InternalConfig, never this module.
"""

from typing import Any, Literal, Optional, Union
from pydantic import Field, field_validator
from lfbatch.schemas.base import LFBaseModel
from lfbatch.lightfield.stages import Stage, ordered_stages


class FileConfig(LFBaseModel):
    """Output naming and saving configuration."""
    output_path: Optional[str] = None  # None mirrors the input base path
    output_precision: Literal["uint8", "uint16"] = "uint16"
    output_format: Literal["nc", "eslf.png", "eslf.jpg"] = "nc"
    imwrite_options: dict[str, Any] = Field(default_factory=dict)
    save_weight: bool = True
    save_result: bool = True
    force_redo: bool = False
    save_fname_pattern: str = "%s__Decoded"
    thumb_fname_pattern: str = "%s__Decoded_Thumb.png"

    @field_validator("save_fname_pattern", "thumb_fname_pattern")
    @classmethod
    def require_single_placeholder(cls, v):
        """Name patterns are printf-style and take exactly the base name."""
        if v.count("%s") != 1:
            raise ValueError(f"Name pattern must contain exactly one '%s': {v!r}")
        return v


class DecodeConfig(LFBaseModel):
    """Decoding and colour correction configuration."""
    optional_tasks: list[Stage] = Field(default_factory=list)
    colour_hist_thresh: float = Field(0.01, ge=0, lt=0.5)
    white_image_database_path: str = "Cameras"
    white_image_database_fname: str = "WhiteImageDatabase.json"
    do_dehex: bool = True
    do_square_st: bool = True
    resamp_method: Literal["fast", "triangulation", "barycentric", "none"] = "fast"
    level_limits: Optional[tuple[float, float]] = None
    precision: Literal["single", "double"] = "single"
    weighted_demosaic: bool = False
    weighted_interp: bool = False
    colour_compatibility: bool = True
    normalise_wi_colours: bool = True
    normalise_wi_exposure: bool = True
    early_white_balance: bool = False
    correct_saturated: bool = False
    clip_mode: Optional[Literal["hard", "soft", "none"]] = None  # resolved from correct_saturated

    @field_validator("optional_tasks", mode="before")
    @classmethod
    def coerce_tasks(cls, v):
        """Accept a single stage name or any iterable of names."""
        if v is None:
            return []
        if isinstance(v, (str, Stage)):
            v = [v]
        return list(ordered_stages(v))


class RectConfig(LFBaseModel):
    """Rectification configuration."""
    calibration_database_path: Optional[str] = None  # defaults to the white image database folder
    calibration_database_fname: str = "CalibrationDatabase.json"
    max_grid_model_diff: float = Field(1e-5, gt=0)


class LoggingConfig(LFBaseModel):
    """Console and run log settings."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_to_file: bool = True


class ParamConfig(LFBaseModel):
    """Bottom layer of configuration resolution.

    Group names follow the toolbox option structs: ``file`` holds
    FileOptions, ``decode`` DecodeOptions and ``rect`` RectOptions.

    Examples
    --------
    >>> ParamConfig().decode.resamp_method
    'fast'
    """

    input_path: Union[str, list[str]] = "Images"
    default_file_spec: list[str] = Field(
        default_factory=lambda: ["*.lfr", "*.lfp", "*.LFR", "*.raw"]
    )
    file: FileConfig = Field(default_factory=FileConfig)
    decode: DecodeConfig = Field(default_factory=DecodeConfig)
    rect: RectConfig = Field(default_factory=RectConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
