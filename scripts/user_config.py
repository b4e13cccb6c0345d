"""lfbatch User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the decode. Expert defaults are in src/lfbatch/schemas/param.py

Besides CONFIG, this file supplies the processing steps that live outside
lfbatch:

- DECODER (required): callable(path, name, decode, rect) -> LightFieldRecord or None
- RECTIFIER (needed for "Rectify"): callable(lf, calibration, rect) -> RectificationResult
- COLOUR_TRANSFORM (optional): replaces the default colour correction

Usage:
    python scripts/run_decode_folder.py scripts/user_config.py
    python scripts/run_decode_folder.py scripts/user_config.py Images/Illum
    lfbatch-decode scripts/user_config.py --tasks ColourCorrect
"""

CONFIG = {
    # ========================================================================
    # INPUT & OUTPUT
    # ========================================================================
    "INPUT_PATH": "Images",          # Folder, file, wildcard, or a list of these
    "OUTPUT_PATH": None,             # None = write next to the inputs
    "OUTPUT_FORMAT": "nc",           # "nc", "eslf.png" or "eslf.jpg"
    "FORCE_REDO": False,             # Decode again even if an artifact exists

    # ========================================================================
    # OPTIONAL TASKS
    # ========================================================================
    "TASKS": ["ColourCorrect"],      # Any of "ColourCorrect", "Rectify"

    # ========================================================================
    # OPTION GROUPS (light field toolbox names)
    # ========================================================================
    "FileOptions": {
        "OutputPrecision": "uint16",
        "SaveWeight": True,
    },
    "DecodeOptions": {
        "WhiteImageDatabasePath": "Cameras",
        "ResampMethod": "fast",
        "Precision": "single",
        "CorrectSaturated": False,
    },
    "RectOptions": {
        "MaxGridModelDiff": 1e-5,
    },

    "LOG_LEVEL": "INFO",
}

# Set to your decoder, e.g.:
#     from my_lytro_tools import decode_lytro_image
#     DECODER = decode_lytro_image
DECODER = None

RECTIFIER = None
