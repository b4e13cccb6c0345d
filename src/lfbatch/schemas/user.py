"""The CONFIG dict of a user config file.

Option groups use the toolbox spellings (FileOptions, DecodeOptions,
RectOptions with CamelCase keys such as OutputFormat or OptionalTasks);
snake_case field names are accepted too. Keys lfbatch does not know are
dropped, so an existing toolbox option dict can be used as is.
"""

from typing import Any, Literal, Optional, Union
from pydantic import Field, field_validator
from lfbatch.schemas.base import LFBaseModel
from lfbatch.lightfield.stages import ordered_stages


class UserFileConfig(LFBaseModel):
    """User-facing file options."""
    output_path: Optional[str] = Field(None, alias="OutputPath")
    output_precision: Optional[str] = Field(None, alias="OutputPrecision")
    output_format: Optional[str] = Field(None, alias="OutputFormat")
    imwrite_options: Optional[dict[str, Any]] = Field(None, alias="ImwriteOptions")
    save_weight: Optional[bool] = Field(None, alias="SaveWeight")
    save_result: Optional[bool] = Field(None, alias="SaveResult")
    force_redo: Optional[bool] = Field(None, alias="ForceRedo")
    save_fname_pattern: Optional[str] = Field(None, alias="SaveFnamePattern")
    thumb_fname_pattern: Optional[str] = Field(None, alias="ThumbFnamePattern")

    model_config = LFBaseModel.model_config.copy()
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("output_format", "output_precision", mode="before")
    @classmethod
    def normalize_names(cls, v):
        """Format and precision names are case insensitive."""
        return v.lower().strip() if isinstance(v, str) else v


class UserDecodeConfig(LFBaseModel):
    """User-facing decode options."""
    optional_tasks: Optional[list[str]] = Field(None, alias="OptionalTasks")
    colour_hist_thresh: Optional[float] = Field(None, alias="ColourHistThresh")
    white_image_database_path: Optional[str] = Field(None, alias="WhiteImageDatabasePath")
    white_image_database_fname: Optional[str] = Field(None, alias="WhiteImageDatabaseFname")
    do_dehex: Optional[bool] = Field(None, alias="DoDehex")
    do_square_st: Optional[bool] = Field(None, alias="DoSquareST")
    resamp_method: Optional[str] = Field(None, alias="ResampMethod")
    level_limits: Optional[tuple[float, float]] = Field(None, alias="LevelLimits")
    precision: Optional[str] = Field(None, alias="Precision")
    weighted_demosaic: Optional[bool] = Field(None, alias="WeightedDemosaic")
    weighted_interp: Optional[bool] = Field(None, alias="WeightedInterp")
    colour_compatibility: Optional[bool] = Field(None, alias="ColourCompatibility")
    normalise_wi_colours: Optional[bool] = Field(None, alias="NormaliseWIColours")
    normalise_wi_exposure: Optional[bool] = Field(None, alias="NormaliseWIExposure")
    early_white_balance: Optional[bool] = Field(None, alias="EarlyWhiteBalance")
    correct_saturated: Optional[bool] = Field(None, alias="CorrectSaturated")
    clip_mode: Optional[str] = Field(None, alias="ClipMode")

    model_config = LFBaseModel.model_config.copy()
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("optional_tasks", mode="before")
    @classmethod
    def coerce_tasks(cls, v):
        """Massage a single task name into a list."""
        if isinstance(v, str):
            return [v]
        if v is not None:
            return [str(t) for t in ordered_stages(v)]
        return v

    @field_validator("resamp_method", "precision", "clip_mode", mode="before")
    @classmethod
    def normalize_method_names(cls, v):
        return v.lower().strip() if isinstance(v, str) else v


class UserRectConfig(LFBaseModel):
    """User-facing rectification options."""
    calibration_database_path: Optional[str] = Field(None, alias="CalibrationDatabasePath")
    calibration_database_fname: Optional[str] = Field(None, alias="CalibrationDatabaseFname")
    max_grid_model_diff: Optional[float] = Field(None, alias="MaxGridModelDiff")

    model_config = LFBaseModel.model_config.copy()
    model_config.update({"populate_by_name": True, "extra": "ignore"})


class UserConfig(LFBaseModel):
    """Overrides from the user config file, applied over ParamConfig.

    The flat upper-case keys are shortcuts for the fields most often set;
    a value in an option group wins over its shortcut.

    Examples
    --------
    >>> user = UserConfig(INPUT_PATH="Images/Illum", TASKS="Rectify",
    ...                   FileOptions={"OutputFormat": "ESLF.PNG"})
    >>> user.to_internal_overrides()["file"]
    {'output_format': 'eslf.png'}
    """

    input_path: Optional[Union[str, list[str]]] = Field(None, alias="INPUT_PATH")
    default_file_spec: Optional[list[str]] = Field(None, alias="DEFAULT_FILE_SPEC")
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(None, alias="LOG_LEVEL")

    # Flat aliases for the most common overrides
    output_path: Optional[str] = Field(None, alias="OUTPUT_PATH")
    output_format: Optional[str] = Field(None, alias="OUTPUT_FORMAT")
    tasks: Optional[list[str]] = Field(None, alias="TASKS")
    force_redo: Optional[bool] = Field(None, alias="FORCE_REDO")

    # Nested overrides (option groups)
    file: Optional[UserFileConfig] = Field(None, alias="FileOptions")
    decode: Optional[UserDecodeConfig] = Field(None, alias="DecodeOptions")
    rect: Optional[UserRectConfig] = Field(None, alias="RectOptions")

    model_config = LFBaseModel.model_config.copy()
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("tasks", mode="before")
    @classmethod
    def coerce_tasks(cls, v):
        """Accept a single task name or a list of names."""
        if isinstance(v, str):
            return [v]
        if v is not None:
            return [str(t) for t in ordered_stages(v)]
        return v

    @field_validator("output_format", mode="before")
    @classmethod
    def normalize_format(cls, v):
        return v.lower().strip() if isinstance(v, str) else v

    def to_internal_overrides(self) -> dict:
        """Set fields only, nested by option group as in InternalConfig."""
        overrides = {}

        if self.input_path is not None:
            overrides["input_path"] = self.input_path
        if self.default_file_spec is not None:
            overrides["default_file_spec"] = list(self.default_file_spec)
        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        file_cfg = {}
        if self.output_path is not None:
            file_cfg["output_path"] = str(self.output_path)
        if self.output_format is not None:
            file_cfg["output_format"] = self.output_format
        if self.force_redo is not None:
            file_cfg["force_redo"] = self.force_redo

        if self.file is not None:
            file_cfg.update(self.file.model_dump(exclude_none=True))

        if file_cfg:
            overrides["file"] = file_cfg

        decode_cfg = {}
        if self.tasks is not None:
            decode_cfg["optional_tasks"] = self.tasks

        if self.decode is not None:
            decode_cfg.update(self.decode.model_dump(exclude_none=True))

        if decode_cfg:
            overrides["decode"] = decode_cfg

        if self.rect is not None:
            rect_cfg = self.rect.model_dump(exclude_none=True)
            if rect_cfg:
                overrides["rect"] = rect_cfg

        return overrides
