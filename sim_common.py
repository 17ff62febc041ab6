"""
Shared infrastructure for the OTFS link simulations.
=====================================================
Reference scenario constants, bit source, QPSK mapping, DD grid assembly,
single-trial link chain and IEEE-style plotting helpers.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

from channel import MultipathDopplerChannel, Path, add_awgn
from estimator import (
    ChannelEstimate, Pilot, equalize_one_tap, estimate_channel, place_pilots,
    validate_pilots,
)
from guard_interval import GuardMode
from otfs import OTFSModulator, OTFSParams


# ============================================================================
#  IEEE-style figure formatting
# ============================================================================

def ieee_setup():
    """Configure matplotlib for IEEE paper figures."""
    plt.rcParams.update({
        'font.family': 'serif',
        'font.serif': ['Times New Roman', 'Times', 'DejaVu Serif'],
        'mathtext.fontset': 'stix',
        'font.size': 8,
        'axes.labelsize': 9,
        'xtick.labelsize': 8,
        'ytick.labelsize': 8,
        'legend.fontsize': 7,
        'legend.framealpha': 0.9,
        'figure.figsize': (3.5, 2.8),
        'figure.dpi': 150,
        'axes.grid': True,
        'grid.alpha': 0.3,
        'grid.linestyle': '--',
        'lines.linewidth': 1.0,
        'lines.markersize': 4,
        'savefig.dpi': 300,
        'savefig.bbox': 'tight',
    })


def save_figure(fig, basename, out_dir='.'):
    """Save figure in PNG and EPS formats."""
    os.makedirs(out_dir, exist_ok=True)
    base = os.path.join(out_dir, basename)
    fig.savefig(f'{base}.png', dpi=300, bbox_inches='tight', pad_inches=0.02)
    fig.savefig(f'{base}.eps', format='eps', bbox_inches='tight', pad_inches=0.02)
    plt.close(fig)
    print(f"Saved: {base}.png, {base}.eps")


# ============================================================================
#  Reference scenario
# ============================================================================

OTFS_PARAMS = OTFSParams(M=64, N=30, delta_f_Hz=15e3, oversampling=2,
                         guard_len=10, guard_mode=GuardMode.ZERO_PAD)
SAMPLING_RATE_HZ = OTFS_PARAMS.sampling_rate      # 1.92 MHz

PILOT_VALUE = np.exp(1j * 3 * np.pi / 4)
# (1,5), (32,15), (64,30) in 1-based (Doppler, delay) indexing
PILOTS = (
    Pilot(0, 4, PILOT_VALUE),
    Pilot(31, 14, PILOT_VALUE),
    Pilot(63, 29, PILOT_VALUE),
)

PATHS = (
    Path(delay=0, gain=1.0, doppler_Hz=0.0),
    Path(delay=5, gain=0.7, doppler_Hz=-3.0),
    Path(delay=8, gain=0.5, doppler_Hz=5.0),
)

SNR_DB_RANGE = np.arange(0, 31, 5)
SEED = 2026


def trial_generators(seed: int, n_trials: int) -> List[np.random.Generator]:
    """Independent RNG streams, one per trial."""
    return [np.random.default_rng(s)
            for s in np.random.SeedSequence(seed).spawn(n_trials)]


# ============================================================================
#  Bits and QPSK
# ============================================================================

def random_bits(n: int, rng: np.random.Generator) -> np.ndarray:
    return rng.integers(0, 2, size=n).astype(np.int8)


def qpsk_modulate(bits):
    """Gray-coded QPSK: pairs of bits -> unit-energy complex symbols.

    Mapping (b0, b1) -> ((1-2*b0) + j*(1-2*b1)) / sqrt(2).
    If len(bits) is odd, a zero-bit is appended.
    """
    bits = np.asarray(bits, dtype=np.int8).ravel()
    if len(bits) % 2 != 0:
        bits = np.concatenate([bits, np.zeros(1, dtype=np.int8)])
    I = 1.0 - 2.0 * bits[0::2].astype(np.float64)
    Q = 1.0 - 2.0 * bits[1::2].astype(np.float64)
    return (I + 1j * Q) / np.sqrt(2.0)


def qpsk_demodulate(y):
    """Hard QPSK decisions, bits interleaved as [b0_sym0, b1_sym0, ...]."""
    y = np.asarray(y).ravel()
    bits = np.zeros(2 * len(y), dtype=np.int8)
    bits[0::2] = np.real(y) < 0
    bits[1::2] = np.imag(y) < 0
    return bits


def count_bit_errors(tx_bits, rx_bits) -> int:
    return int(np.sum(np.asarray(tx_bits) != np.asarray(rx_bits)))


# ============================================================================
#  DD grid assembly
# ============================================================================

def data_positions(pilots, M, N):
    """Non-pilot bins in column-major order, as (doppler_idx, delay_idx)."""
    mask = np.ones((M, N), dtype=bool)
    for p in pilots:
        mask[p.doppler_idx, p.delay_idx] = False
    k = np.nonzero(mask.flatten(order='F'))[0]
    return k % M, k // M


def bits_per_frame(pilots, M, N) -> int:
    return 2 * (M * N - len(pilots))


def build_dd_grid(bits, pilots, M, N):
    """QPSK data on every non-pilot bin, pilots overlaid."""
    d_idx, l_idx = data_positions(pilots, M, N)
    symbols = qpsk_modulate(bits)
    assert len(symbols) == len(d_idx), "bit count does not fill the grid"
    x_dd = np.zeros((M, N), dtype=complex)
    x_dd[d_idx, l_idx] = symbols
    return place_pilots(x_dd, pilots)


def extract_data(y_dd, pilots):
    M, N = y_dd.shape
    d_idx, l_idx = data_positions(pilots, M, N)
    return y_dd[d_idx, l_idx]


# ============================================================================
#  One link trial
# ============================================================================

@dataclass
class TrialRecord:
    """Every intermediate of one frame through the link."""
    snr_dB: Optional[float]
    tx_bits: np.ndarray
    tx_grid: np.ndarray
    tx_samples: np.ndarray
    rx_channel: np.ndarray       # channel output, before noise
    rx_samples: np.ndarray       # after noise
    rx_grid: np.ndarray
    estimate: ChannelEstimate
    eq_grid: np.ndarray
    rx_bits_raw: np.ndarray
    rx_bits_eq: np.ndarray
    bit_errors_raw: int = 0
    bit_errors_eq: int = 0

    @property
    def n_bits(self) -> int:
        return len(self.tx_bits)


def run_trial(snr_dB: Optional[float], rng: np.random.Generator,
              params: OTFSParams = OTFS_PARAMS,
              paths: Sequence = PATHS,
              pilots: Sequence = PILOTS,
              interpolator=None) -> TrialRecord:
    """Bits -> DD grid -> OTFS -> channel -> AWGN -> OTFS^-1 -> estimate."""
    M, N = params.M, params.N
    pilots = validate_pilots(pilots, M, N)
    modulator = OTFSModulator(params)
    channel = MultipathDopplerChannel(paths, params.sampling_rate)

    tx_bits = random_bits(bits_per_frame(pilots, M, N), rng)
    x_dd = build_dd_grid(tx_bits, pilots, M, N)
    s = modulator.modulate(x_dd)
    r_ch = channel.apply(s)
    r = add_awgn(r_ch, snr_dB, rng)
    y_dd = modulator.demodulate(r)

    est = estimate_channel(y_dd, pilots, interpolator, M=M, N=N)
    x_eq = equalize_one_tap(y_dd, est.grid)

    bits_raw = qpsk_demodulate(extract_data(y_dd, pilots))
    bits_eq = qpsk_demodulate(extract_data(x_eq, pilots))

    return TrialRecord(
        snr_dB=snr_dB, tx_bits=tx_bits, tx_grid=x_dd, tx_samples=s,
        rx_channel=r_ch, rx_samples=r, rx_grid=y_dd, estimate=est,
        eq_grid=x_eq, rx_bits_raw=bits_raw, rx_bits_eq=bits_eq,
        bit_errors_raw=count_bit_errors(tx_bits, bits_raw),
        bit_errors_eq=count_bit_errors(tx_bits, bits_eq),
    )
