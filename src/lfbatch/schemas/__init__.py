"""Layered configuration for lfbatch.

ParamConfig holds the defaults, UserConfig the user config file and
CLIConfig the command line. resolve_config merges them, in that order of
precedence, into the frozen InternalConfig the pipeline runs on.
"""

from lfbatch.schemas.resolve import resolve_config
from lfbatch.schemas.internal import InternalConfig
from lfbatch.schemas.param import ParamConfig
from lfbatch.schemas.user import UserConfig
from lfbatch.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
