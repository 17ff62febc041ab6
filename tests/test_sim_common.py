import numpy as np

from estimator import Pilot
from sim_common import (
    PILOTS, bits_per_frame, build_dd_grid, count_bit_errors, data_positions,
    extract_data, qpsk_demodulate, qpsk_modulate, random_bits,
    trial_generators,
)


def test_qpsk_round_trip_and_energy():
    rng = np.random.default_rng(0)
    bits = random_bits(400, rng)
    symbols = qpsk_modulate(bits)
    np.testing.assert_allclose(np.abs(symbols), 1.0)
    np.testing.assert_array_equal(qpsk_demodulate(symbols), bits)


def test_qpsk_mapping():
    np.testing.assert_allclose(qpsk_modulate([0, 0, 1, 1, 0, 1]),
                               np.array([1 + 1j, -1 - 1j, 1 - 1j]) / np.sqrt(2))


def test_data_positions_are_column_major_and_skip_pilots():
    pilots = [Pilot(1, 0, 1.0), Pilot(0, 1, 1.0), Pilot(2, 2, 1.0)]
    d, l = data_positions(pilots, 3, 3)
    assert list(zip(d, l)) == [(0, 0), (2, 0), (1, 1), (2, 1), (0, 2), (1, 2)]


def test_build_dd_grid_and_extract():
    M, N = 64, 30
    rng = np.random.default_rng(1)
    bits = random_bits(bits_per_frame(PILOTS, M, N), rng)
    assert len(bits) == 2 * (M * N - 3)
    x_dd = build_dd_grid(bits, PILOTS, M, N)
    for p in PILOTS:
        assert x_dd[p.doppler_idx, p.delay_idx] == p.value
    np.testing.assert_array_equal(qpsk_demodulate(extract_data(x_dd, PILOTS)),
                                  bits)


def test_count_bit_errors():
    assert count_bit_errors([0, 1, 1, 0], [0, 0, 1, 1]) == 2


def test_trial_generators_are_reproducible_and_distinct():
    a = [g.integers(0, 1 << 30) for g in trial_generators(7, 3)]
    b = [g.integers(0, 1 << 30) for g in trial_generators(7, 3)]
    assert a == b
    assert len(set(a)) == 3
