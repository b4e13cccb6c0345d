"""The one check every light field contract is built from."""

from lfbatch.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Raise :class:`ContractViolation` with ``message`` unless ``condition`` holds.

    Stages call this on their own output before handing a record on, so a
    broken record stops where it was produced rather than where it is
    eventually written.

    Examples
    --------
    >>> require(lf.ndim == 5, "Decode contract: expected 5-D light field")
    """
    if not condition:
        raise ContractViolation(message)
