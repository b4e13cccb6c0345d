"""Flags from the lfbatch-decode command line.

Only the options that typically change from one run to the next are
exposed: what to decode, where to write, which tasks, redo, dry run and
verbosity. Everything else comes from the user config file.
"""

from typing import Literal, Optional, Union
from pydantic import field_validator
from lfbatch.schemas.base import LFBaseModel
from lfbatch.lightfield.stages import ordered_stages


class CLIConfig(LFBaseModel):
    """Top layer of configuration resolution; None means "flag not given".

    Notes
    -----
    ``dry_run`` is the command-line spelling of ``save_result=False``.

    Examples
    --------
    >>> CLIConfig(tasks="Rectify", dry_run=True).to_internal_overrides()
    {'file': {'save_result': False}, 'decode': {'optional_tasks': ['Rectify']}}
    """

    input_path: Optional[Union[str, list[str]]] = None
    output_path: Optional[str] = None
    output_format: Optional[Literal["nc", "eslf.png", "eslf.jpg"]] = None
    tasks: Optional[list[str]] = None
    force_redo: Optional[bool] = None
    dry_run: Optional[bool] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    @field_validator("tasks", mode="before")
    @classmethod
    def normalize_tasks(cls, v):
        """Validate task names and drop duplicates."""
        if isinstance(v, str):
            v = [v]
        if v is not None:
            return [str(t) for t in ordered_stages(v)]
        return v

    def to_internal_overrides(self) -> dict:
        """Only the flags that were given, nested by option group."""
        overrides = {}

        if self.input_path is not None:
            overrides["input_path"] = self.input_path

        file_overrides = {}
        if self.output_path is not None:
            file_overrides["output_path"] = str(self.output_path)
        if self.output_format is not None:
            file_overrides["output_format"] = self.output_format
        if self.force_redo is not None:
            file_overrides["force_redo"] = self.force_redo
        if self.dry_run is not None:
            file_overrides["save_result"] = not self.dry_run

        if file_overrides:
            overrides["file"] = file_overrides

        if self.tasks is not None:
            overrides["decode"] = {"optional_tasks": self.tasks}

        if self.log_level:
            overrides["logging"] = {"level": self.log_level}
        return overrides
