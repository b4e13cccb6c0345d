"""Light field stage contracts.

Enforces the guarantees a light field record must satisfy between stages:
after decoding or reloading, before the floating-point stages, and after
quantization for saving.
"""

import numpy as np
from lfbatch.contracts.base import require
from lfbatch.lightfield.records import LF_DIMS


def assert_channel_layout(record) -> None:
    """Channel axis must hold exactly the colour channels plus the weight channels."""
    n_col = record.decode.n_col_chans
    n_weight = record.decode.n_weight_chans
    require(
        n_col > 0 and n_weight >= 0,
        f"Channel contract violated: n_col_chans={n_col}, n_weight_chans={n_weight}"
    )
    require(
        record.n_channels == n_col + n_weight,
        f"Channel contract violated: light field has {record.n_channels} channels, "
        f"expected {n_col} colour + {n_weight} weight"
    )


def assert_decoded(record) -> None:
    """Enforce decode stage contract.

    Called after the decoder returns and after an artifact is reloaded.
    Verifies the samples are a 5-D light field with the expected dims and
    a channel axis that agrees with the reported channel counts.

    Parameters
    ----------
    record : LightFieldRecord
        Record produced by the decoder or by the completion tracker.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    lf = record.lf
    require(
        lf.ndim == 5,
        f"Decode contract violated: light field has {lf.ndim} dims, expected 5"
    )
    require(
        tuple(lf.dims) == LF_DIMS,
        f"Decode contract violated: dims are {tuple(lf.dims)}, expected {LF_DIMS}"
    )
    require(
        all(size > 0 for size in lf.shape),
        f"Decode contract violated: empty axis in shape {lf.shape}"
    )
    assert_channel_layout(record)


def assert_float_record(record) -> None:
    """Floating point stages (ColourCorrect, Rectify) require floating samples."""
    require(
        np.issubdtype(record.lf.dtype, np.floating),
        f"Float contract violated: samples are {record.lf.dtype}, expected floating point"
    )


def assert_weight_available(record, stage) -> None:
    """A stage that declares it needs the weight channel must find one."""
    require(
        record.decode.n_weight_chans > 0,
        f"Weight contract violated: {stage} requires a weight channel, "
        "but this light field was saved without one"
    )


def assert_quantized(samples: np.ndarray, dtype: str) -> None:
    """Quantized samples must carry the requested integer type."""
    require(
        samples.dtype == np.dtype(dtype),
        f"Quantize contract violated: samples are {samples.dtype}, expected {dtype}"
    )
    require(
        samples.ndim == 5,
        f"Quantize contract violated: samples have {samples.ndim} dims, expected 5"
    )
