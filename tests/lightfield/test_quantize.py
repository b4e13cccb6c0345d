import pytest
import numpy as np

from lfbatch.lightfield.quantize import (
    from_int,
    normalization_divisor,
    quantization_step,
    to_int,
)
from tests.helpers.fake_lightfield import make_fake_lf

pytestmark = pytest.mark.unit


def test_to_int_rounds_and_saturates():
    samples = np.array([-0.2, 0.0, 0.5, 1.0, 1.7])
    out = to_int(samples, "uint8")
    assert out.dtype == np.uint8
    np.testing.assert_array_equal(out, [0, 0, 128, 255, 255])


def test_from_int_scales_to_unit_range():
    out = from_int(np.array([0, 65535], dtype=np.uint16), np.float32)
    assert out.dtype == np.float32
    np.testing.assert_allclose(out, [0.0, 1.0])


@pytest.mark.parametrize("dtype", ["uint8", "uint16"])
def test_round_trip_within_one_step(dtype):
    lf = make_fake_lf(dtype=np.float64)
    back = from_int(to_int(lf, dtype), np.float64)
    assert np.max(np.abs(back - lf)) <= quantization_step(dtype)


def test_divisor_is_one_when_clipping():
    lf = make_fake_lf() * 3
    assert normalization_divisor(lf, "hard") == 1.0
    assert normalization_divisor(lf, "soft") == 1.0


def test_divisor_is_max_without_clipping():
    lf = make_fake_lf(dtype=np.float64)
    lf[0, 0, 0, 0, 0] = 2.5
    assert normalization_divisor(lf, "none") == pytest.approx(2.5)


def test_divisor_for_black_light_field():
    assert normalization_divisor(np.zeros((2, 2, 2, 2, 3)), "none") == 1.0


def test_unclipped_round_trip_restores_scale():
    lf = make_fake_lf(dtype=np.float64)
    lf[..., :3] *= 2.0
    max_lum = normalization_divisor(lf, "none")

    back = from_int(to_int(lf / max_lum, "uint16"), np.float64, max_lum)

    assert np.max(back) == pytest.approx(np.max(lf))
    assert np.max(np.abs(back - lf)) <= quantization_step("uint16", max_lum)
