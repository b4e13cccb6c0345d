"""Centralized failure policy for pipeline errors.

Every error raised by the pipeline carries a FailurePolicy that tells the
orchestrator whether to skip the current record or abort the whole run.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    """What the orchestrator does when an error escapes a record.

    SKIP_RECORD: log, record the failure, continue with the next record
    ABORT_RUN: stop the batch; the error cannot be fixed by moving on
    """
    SKIP_RECORD = "skip_record"
    ABORT_RUN = "abort_run"


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a stage (or an injected collaborator) did not produce
    the invariants it promised, e.g. a decoder returning a light field whose
    channel axis disagrees with its reported channel counts.

    Key distinction:
    - ValueError: User/config error (handled by Pydantic)
    - ContractViolation: Stage output broke an invariant
    - ArtifactReadError: Existing output on disk cannot be used
    """
    policy = FailurePolicy.SKIP_RECORD


class ArtifactReadError(RuntimeError):
    """An existing artifact or its sidecar could not be read.

    Corrupt artifacts are not repaired; the record is skipped and the
    file is left in place for inspection (rerun with force_redo to replace it).
    """
    policy = FailurePolicy.SKIP_RECORD

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read existing artifact {path}: {reason}")


class ConfigurationError(ValueError):
    """Configuration cannot be used for any record."""
    policy = FailurePolicy.ABORT_RUN


class UnsupportedOutputFormat(ConfigurationError):
    """Output format identifier has no writer."""

    def __init__(self, output_format):
        self.output_format = output_format
        super().__init__(f"Unrecognized output format {output_format!r}")
