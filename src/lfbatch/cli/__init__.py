"""Command-line interface modules for lfbatch execution.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from lfbatch.cli.run_decode import run_decode_folder

__all__ = ['run_decode_folder']
