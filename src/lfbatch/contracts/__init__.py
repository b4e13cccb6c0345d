"""Pipeline contracts: fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages.
Contracts fail immediately and loudly when a stage, or an injected
collaborator, does not produce its promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Collaborators handle imaging edge cases
"""

from lfbatch.contracts.failure import (
    ArtifactReadError,
    ConfigurationError,
    ContractViolation,
    FailurePolicy,
    UnsupportedOutputFormat,
)
from lfbatch.contracts.base import require
from lfbatch.contracts.lightfield import (
    assert_channel_layout,
    assert_decoded,
    assert_float_record,
    assert_quantized,
    assert_weight_available,
)

__all__ = [
    "ArtifactReadError",
    "ConfigurationError",
    "ContractViolation",
    "FailurePolicy",
    "UnsupportedOutputFormat",
    "require",
    "assert_channel_layout",
    "assert_decoded",
    "assert_float_record",
    "assert_quantized",
    "assert_weight_available",
]
