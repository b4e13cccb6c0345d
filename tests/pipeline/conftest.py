import pytest
from pathlib import Path

from lfbatch.schemas import ParamConfig, UserConfig, InternalConfig
from lfbatch.schemas.resolve import resolve_config
from lfbatch.setup_directories import setup_output_directories

from tests.helpers.fake_lightfield import make_raw_tree, write_calibration_db


@pytest.fixture
def raw_dir(temp_dir) -> Path:
    """Folder of placeholder raw lenslet files."""
    return make_raw_tree(temp_dir / "Images")


@pytest.fixture
def calibration_dir(temp_dir) -> Path:
    """Folder holding a calibration database for the fake camera."""
    folder = temp_dir / "Cameras"
    write_calibration_db(folder)
    return folder


@pytest.fixture
def pipeline_config(temp_dir, raw_dir, calibration_dir):
    """Factory for InternalConfig pointed at the temp input and output folders."""
    def _make(**overrides) -> InternalConfig:
        user = {
            "INPUT_PATH": str(raw_dir),
            "OUTPUT_PATH": str(temp_dir / "out"),
            "LOG_LEVEL": "DEBUG",
            "RectOptions": {"CalibrationDatabasePath": str(calibration_dir)},
        }
        user.update(overrides)
        return resolve_config(ParamConfig(), UserConfig.model_validate(user), None)

    return _make


@pytest.fixture
def pipeline_output_dirs(temp_dir):
    """Output directories for pipeline tests."""
    return setup_output_directories(temp_dir / "out")
