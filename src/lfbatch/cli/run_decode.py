"""Entry points for decoding a folder: a Python function and the CLI.

``scripts/run_decode_folder.py`` only forwards to :func:`main`; everything
that matters lives here.
"""

import sys
import json
import argparse
import logging
import importlib.util
from pathlib import Path
from types import ModuleType
from typing import Optional, Dict, Any, List

from lfbatch.pipeline.orchestrator import DecodeOrchestrator
from lfbatch.pipeline.diagnostics import RecordOutcome
from lfbatch.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig


logger = logging.getLogger(__name__)


def load_user_config_module(config_path: str) -> ModuleType:
    """Execute a user config file and return it as a module.

    The module supplies ``CONFIG`` and the collaborators (``DECODER``,
    ``RECTIFIER``, ``COLOUR_TRANSFORM``).

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"User config not found: {path}")

    module_spec = importlib.util.spec_from_file_location("lfbatch_user_config", path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    logger.debug("Loaded user config %s", path)
    return module


def load_user_config_dict(config_path: str) -> dict:
    """The ``CONFIG`` dict of a user config file, not yet validated.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file defines no ``CONFIG`` dict.
    """
    config = getattr(load_user_config_module(config_path), "CONFIG", None)
    if not isinstance(config, dict):
        raise ValueError(f"No CONFIG dict found in {config_path}")
    return config


def run_decode_folder(
    input_path=None,
    file_options: Optional[Dict[str, Any]] = None,
    decode_options: Optional[Dict[str, Any]] = None,
    rect_options: Optional[Dict[str, Any]] = None,
    decoder=None,
    rectifier=None,
    colour_transform=None,
    user_config: Optional[Dict[str, Any]] = None,
    cli_args: Optional[Dict[str, Any]] = None,
    configure_logging: bool = True,
) -> List[RecordOutcome]:
    """Decode, and optionally colour correct and rectify, a folder of raw images.

    Configuration is resolved as ParamConfig < user options < CLI overrides.
    The option groups accept the light field toolbox names (``OutputFormat``,
    ``OptionalTasks``, ``ClipMode``, ...) as well as snake_case names.

    Parameters
    ----------
    input_path : str, Path or list, optional
        Folder, file, wildcard pattern or list of these. Defaults to "Images".
    file_options, decode_options, rect_options : dict, optional
        Option group overrides.
    decoder : LightFieldDecoder
        Required. Turns a raw file into a light field record.
    rectifier : LightFieldRectifier, optional
        Required if Rectify is requested.
    colour_transform : ColourTransform, optional
        Replaces the default colour correction.
    user_config : dict, optional
        A full user CONFIG dict; the explicit arguments above override it.
    cli_args : dict, optional
        Command-line overrides (input_path, output_path, tasks, force_redo,
        dry_run, output_format, log_level).
    configure_logging : bool, optional
        Install the orchestrator's file and console log handlers.

    Returns
    -------
    list of RecordOutcome
        One per input file.

    Raises
    ------
    ValueError
        If configuration validation fails or no decoder is given.
    ConfigurationError
        If the configuration cannot be used for any record.

    Examples
    --------
    Decode everything under Images/ and colour correct it::

        run_decode_folder("Images", decode_options={"OptionalTasks": "ColourCorrect"},
                          decoder=my_decoder)

    Write ESLF PNGs instead of NetCDF::

        run_decode_folder("Images/F01", file_options={"OutputFormat": "eslf.png"},
                          decoder=my_decoder)
    """
    if decoder is None:
        raise ValueError("A decoder is required to decode raw lenslet images")

    user_dict = dict(user_config or {})
    for key, value in (("INPUT_PATH", input_path),
                       ("FileOptions", file_options),
                       ("DecodeOptions", decode_options),
                       ("RectOptions", rect_options)):
        if value is not None:
            user_dict[key] = value
    inputs = user_dict.get("INPUT_PATH")
    if isinstance(inputs, Path):
        user_dict["INPUT_PATH"] = str(inputs)
    elif isinstance(inputs, (list, tuple)):
        user_dict["INPUT_PATH"] = [str(p) for p in inputs]
    user_cfg = UserConfig.model_validate(user_dict)

    # argparse leaves unset flags as None; those must not mask user values
    overrides = {k: v for k, v in (cli_args or {}).items() if v is not None}
    config = resolve_config(ParamConfig(), user_cfg, CLIConfig.model_validate(overrides))

    orchestrator = DecodeOrchestrator(config, decoder=decoder, rectifier=rectifier,
                                      colour_transform=colour_transform)
    return orchestrator.run(configure_logging=configure_logging)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lfbatch-decode",
        description="Decode a folder of raw lenslet light field images",
    )
    parser.add_argument("config", help="Path to user config file (defines CONFIG and DECODER)")
    parser.add_argument("input_path", nargs="?", help="Folder, file or wildcard pattern to decode")
    parser.add_argument("--output-path", help="Output root (default: next to the inputs)")
    parser.add_argument("--tasks", nargs="+", choices=["ColourCorrect", "Rectify"],
                        help="Optional tasks to apply")
    parser.add_argument("--output-format", choices=["nc", "eslf.png", "eslf.jpg"],
                        help="Artifact format")
    parser.add_argument("--force-redo", action="store_true", default=None,
                        help="Ignore existing artifacts and decode again")
    parser.add_argument("--dry-run", action="store_true", default=None,
                        help="Process but do not save results")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    module = load_user_config_module(args.config)
    user_cfg_dict = getattr(module, "CONFIG", None)
    if not isinstance(user_cfg_dict, dict):
        parser.error(f"No CONFIG dict found in {args.config}")
    decoder = getattr(module, "DECODER", None)
    if decoder is None:
        parser.error(f"No DECODER defined in {args.config}")

    cli_args = {
        "input_path": args.input_path,
        "output_path": args.output_path,
        "tasks": args.tasks,
        "output_format": args.output_format,
        "force_redo": args.force_redo,
        "dry_run": args.dry_run,
        "log_level": "DEBUG" if args.verbose else None,
    }

    inputs = args.input_path or user_cfg_dict.get("INPUT_PATH", "Images")
    print(f"lfbatch-decode: {inputs} (config {args.config})")
    if args.verbose:
        print(json.dumps({k: v for k, v in cli_args.items() if v is not None}, indent=2))

    run_decode_folder(
        decoder=decoder,
        rectifier=getattr(module, "RECTIFIER", None),
        colour_transform=getattr(module, "COLOUR_TRANSFORM", None),
        user_config=user_cfg_dict,
        cli_args=cli_args,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
