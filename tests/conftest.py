"""Configuration fixtures shared by every test package."""

import shutil
import tempfile
from pathlib import Path

import pytest

from lfbatch.schemas import ParamConfig, UserConfig, resolve_config


@pytest.fixture
def param_config():
    """Untouched defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Resolved configuration with no user or command-line layer."""
    return resolve_config(param_config)


@pytest.fixture
def make_config(param_config):
    """Build an InternalConfig from UserConfig keyword arguments.

    The keywords are the user config file spellings: ``TASKS``,
    ``OUTPUT_PATH``, ``FileOptions``, ``DecodeOptions`` and so on.
    """
    def _resolve(**user_keys):
        return resolve_config(param_config, UserConfig(**user_keys) if user_keys else None)

    return _resolve


@pytest.fixture
def temp_dir():
    path = Path(tempfile.mkdtemp(prefix="lfbatch_"))
    yield path
    shutil.rmtree(path, ignore_errors=True)
