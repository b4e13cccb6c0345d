"""Shared pydantic base for the configuration layers."""

from pydantic import BaseModel, ConfigDict


class LFBaseModel(BaseModel):
    """Strict by default: unknown keys are errors and assignments are re-validated.

    The user-facing models relax ``extra`` so toolbox option dicts with keys
    lfbatch does not use can be passed through unchanged.
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=False,  # stages stay Stage members
        str_strip_whitespace=True,
    )
