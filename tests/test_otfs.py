import numpy as np
import pytest

from errors import ConfigurationError, ShapeError
from guard_interval import GuardMode
from otfs import (
    OTFSModulator, OTFSParams, otfs_demodulate, otfs_modulate, reconcile_length,
)


def _grid(M, N, seed=0):
    rng = np.random.default_rng(seed)
    return rng.standard_normal((M, N)) + 1j * rng.standard_normal((M, N))


@pytest.mark.parametrize("mode", [GuardMode.ZERO_PAD, GuardMode.CYCLIC_PREFIX,
                                  GuardMode.NONE])
@pytest.mark.parametrize("M,N,g", [(64, 30, 10), (8, 4, 0), (5, 7, 3), (1, 1, 0)])
def test_round_trip_identity(mode, M, N, g):
    x_dd = _grid(M, N, seed=M * N)
    s = otfs_modulate(x_dd, g, mode)
    y_dd = otfs_demodulate(s, M, N, g, mode)
    np.testing.assert_allclose(y_dd, x_dd, rtol=1e-9, atol=1e-12)


def test_modulation_matches_explicit_sum():
    # s[m + M*n] = 1/sqrt(MN) * sum_{d,l} X[d,l] exp(j2pi(m d / M + n l / N))
    M, N = 4, 3
    x_dd = _grid(M, N, seed=7)
    s = otfs_modulate(x_dd)
    expected = np.zeros(M * N, dtype=complex)
    for m in range(M):
        for n in range(N):
            acc = 0.0 + 0j
            for d in range(M):
                for l in range(N):
                    acc += x_dd[d, l] * np.exp(
                        2j * np.pi * (m * d / M + n * l / N))
            expected[m + M * n] = acc / np.sqrt(M * N)
    np.testing.assert_allclose(s, expected, atol=1e-12)


def test_transform_is_unitary():
    x_dd = _grid(16, 8, seed=3)
    s = otfs_modulate(x_dd)
    np.testing.assert_allclose(np.sum(np.abs(s)**2), np.sum(np.abs(x_dd)**2))


def test_impulse_maps_to_flat_frame():
    x_dd = np.zeros((8, 4), dtype=complex)
    x_dd[0, 0] = 1.0
    s = otfs_modulate(x_dd, 2, GuardMode.ZERO_PAD)
    np.testing.assert_allclose(s[:32], np.full(32, 1 / np.sqrt(32)))
    np.testing.assert_array_equal(s[32:], np.zeros(2))


def test_reconcile_length():
    x = np.arange(5) + 0j
    np.testing.assert_array_equal(reconcile_length(x, 3), x[:3])
    np.testing.assert_array_equal(reconcile_length(x, 7),
                                  np.r_[x, 0, 0])
    np.testing.assert_array_equal(reconcile_length(x, 5), x)


def test_demodulate_short_sequence_is_zero_padded():
    M, N = 4, 4
    x_dd = _grid(M, N, seed=1)
    s = otfs_modulate(x_dd)
    y_short = otfs_demodulate(s[:10], M, N)
    padded = np.r_[s[:10], np.zeros(6)]
    np.testing.assert_allclose(y_short, otfs_demodulate(padded, M, N))
    assert y_short.shape == (M, N)


def test_demodulate_long_sequence_is_truncated():
    M, N = 4, 4
    x_dd = _grid(M, N, seed=2)
    s = np.r_[otfs_modulate(x_dd), np.ones(9)]
    np.testing.assert_allclose(otfs_demodulate(s, M, N), x_dd, atol=1e-12)


def test_params_reference_values():
    p = OTFSParams()
    assert (p.M, p.N, p.guard_len) == (64, 30, 10)
    assert p.guard_mode is GuardMode.ZERO_PAD
    assert p.sampling_rate == 2 * 64 * 15000
    assert p.frame_length == 1920
    assert p.tx_length == 1930
    assert p.doppler_resolution == pytest.approx(1000.0)
    assert OTFSParams(guard_mode="none").tx_length == 1920


@pytest.mark.parametrize("kwargs,field", [
    ({"M": 0}, "M"),
    ({"N": -2}, "N"),
    ({"delta_f_Hz": 0.0}, "delta_f_Hz"),
    ({"oversampling": 0}, "oversampling"),
    ({"guard_len": -1}, "guard_len"),
    ({"M": 2, "N": 2, "guard_len": 5, "guard_mode": GuardMode.CYCLIC_PREFIX},
     "guard_len"),
])
def test_params_validation(kwargs, field):
    with pytest.raises(ConfigurationError, match=field):
        OTFSParams(**kwargs).validate()


def test_modulator_rejects_wrong_grid_shape():
    mod = OTFSModulator(OTFSParams(M=8, N=4, guard_len=2))
    with pytest.raises(ShapeError):
        mod.modulate(np.zeros((4, 8)))


def test_modulator_round_trip():
    params = OTFSParams(M=8, N=6, guard_len=3,
                        guard_mode=GuardMode.CYCLIC_PREFIX)
    mod = OTFSModulator(params)
    x_dd = _grid(8, 6, seed=11)
    s = mod.modulate(x_dd)
    assert s.shape == (params.tx_length,)
    np.testing.assert_allclose(mod.demodulate(s), x_dd, atol=1e-12)
