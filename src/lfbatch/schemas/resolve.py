"""Turn the three configuration layers into one InternalConfig.

Expert defaults (ParamConfig) are overlaid with the user's option groups
(UserConfig) and then with command-line flags (CLIConfig). After merging,
the rules that tie options to each other are applied, and the result is
validated and frozen.
"""

import logging
from pathlib import PurePath
from typing import Optional, Type, TypeVar, Union

from pydantic import BaseModel

from lfbatch.schemas.param import ParamConfig
from lfbatch.schemas.user import UserConfig
from lfbatch.schemas.cli import CLIConfig
from lfbatch.schemas.internal import InternalConfig

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Overlay ``overrides`` on ``base``, recursing into nested option groups.

    Neither input is modified. Non-dict values, lists included, are
    replaced wholesale, so a task list from the command line replaces the
    user's rather than extending it.

    >>> deep_merge({"file": {"output_format": "nc", "force_redo": False}},
    ...            {"file": {"force_redo": True}})
    {'file': {'output_format': 'nc', 'force_redo': True}}
    """
    merged = dict(base)
    for layer in overrides:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = deep_merge(current, value)
            else:
                merged[key] = value
    return merged


def _as_model(value, model: Type[M]) -> M:
    """Accept a model instance, a dict, or None (empty layer)."""
    if isinstance(value, model):
        return value
    return model.model_validate(value or {})


def _apply_decode_rules(decode: dict) -> None:
    """Derive decode options that depend on other decode options."""
    # Legacy colour behaviour disables both white image normalisations
    if decode["colour_compatibility"]:
        decode["normalise_wi_colours"] = False
        decode["normalise_wi_exposure"] = False

    if decode.get("clip_mode") is None:
        decode["clip_mode"] = "soft" if decode["correct_saturated"] else "hard"


def _apply_file_rules(file_cfg: dict, decode: dict) -> None:
    """Derive file options that depend on decode options."""
    # Without resampling at most one colour sample per pixel is valid, which
    # only the monolithic container can carry alongside its weights. Unclipped
    # highlights need the stored max_lum next to the samples.
    if file_cfg["output_format"] == "nc":
        return
    if decode["resamp_method"] == "none":
        reason = "resamp_method 'none'"
    elif decode["clip_mode"] == "none":
        reason = "clip_mode 'none'"
    else:
        return
    logger.warning(
        "Only 'nc' output is available with %s; using 'nc' instead of %r",
        reason, file_cfg["output_format"]
    )
    file_cfg["output_format"] = "nc"


def _apply_rect_rules(rect: dict, decode: dict) -> None:
    """Default the calibration database location to the white image database folder."""
    if rect.get("calibration_database_path") is None:
        wi_path = PurePath(decode["white_image_database_path"])
        if wi_path.name == decode["white_image_database_fname"]:
            wi_path = wi_path.parent
        rect["calibration_database_path"] = str(wi_path)


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Build the run configuration.

    Command-line values beat user values, which beat the expert defaults.
    Fields a layer leaves unset fall through to the layer below.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert defaults.
    user_cfg : dict or UserConfig, optional
        Option groups from the user config file.
    cli_cfg : dict or CLIConfig, optional
        Command-line flags.

    Returns
    -------
    InternalConfig
        Frozen configuration; every record of the run starts from it.

    Raises
    ------
    ValidationError
        If a layer, or the merged result, is invalid. An unknown output
        format is caught here, once, instead of failing every record.

    Examples
    --------
    >>> user = UserConfig(TASKS=["ColourCorrect"], OUTPUT_FORMAT="eslf.png")
    >>> config = resolve_config(ParamConfig(), user)
    >>> config.file.output_format, config.decode.clip_mode
    ('eslf.png', 'hard')
    """
    param = _as_model(param_cfg, ParamConfig)
    user = _as_model(user_cfg, UserConfig)
    cli = _as_model(cli_cfg, CLIConfig)

    merged = deep_merge(
        param.model_dump(),
        user.to_internal_overrides(),
        cli.to_internal_overrides(),
    )

    _apply_decode_rules(merged["decode"])
    _apply_file_rules(merged["file"], merged["decode"])
    _apply_rect_rules(merged["rect"], merged["decode"])

    config = InternalConfig.model_validate(merged)
    logger.debug("Resolved configuration: tasks=%s, format=%s",
                 [str(s) for s in config.decode.optional_tasks], config.file.output_format)
    return config
