"""
Multipath Doppler Channel
=========================
Time-domain doubly dispersive channel for the OTFS link simulator.

This module implements:
- Per-path linear (non-circular) integer-sample delay
- Real path gain and continuous-time Doppler phase rotation
- Superposition of all paths on the receiver time axis
- AWGN injection at a given SNR
- A DD-bin mapping of the path set, used only as a plotting diagnostic
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from errors import ConfigurationError, ShapeError


# ============================================================================
#  Helper functions
# ============================================================================


def db_to_linear(x_db: float) -> float:
    return 10.0 ** (np.asarray(x_db, dtype=float) / 10.0)


def linear_to_db(x_lin: float) -> float:
    return 10.0 * np.log10(np.maximum(x_lin, 1e-30))


# ============================================================================
#  Path description
# ============================================================================

@dataclass(frozen=True)
class Path:
    """One propagation path."""
    delay: int = 0               # delay [samples]
    gain: float = 1.0            # linear amplitude gain
    doppler_Hz: float = 0.0      # Doppler shift [Hz]

    def validate(self) -> "Path":
        if isinstance(self.delay, bool) or int(self.delay) != self.delay \
                or self.delay < 0:
            raise ConfigurationError(
                f"path delay must be a non-negative integer, got {self.delay!r}")
        if not np.isfinite(self.gain) or self.gain < 0:
            raise ConfigurationError(
                f"path gain must be a non-negative real, got {self.gain!r}")
        if not np.isfinite(self.doppler_Hz):
            raise ConfigurationError(
                f"path doppler_Hz must be finite, got {self.doppler_Hz!r}")
        return self


def as_paths(paths) -> Tuple[Path, ...]:
    """Accept Path objects or (delay, gain, doppler_Hz) triples."""
    out = []
    for p in paths:
        if not isinstance(p, Path):
            delay, gain, doppler = p
            p = Path(delay=delay, gain=gain, doppler_Hz=doppler)
        out.append(p.validate())
    return tuple(out)


# ============================================================================
#  Time-domain channel application
# ============================================================================

class MultipathDopplerChannel:
    """Apply a fixed path set to time-domain sample sequences.

    r[k] = sum_p  g_p * s[k - d_p] * exp(j 2 pi nu_p k / f_s),
    with s[k - d_p] = 0 for k < d_p. The phase ramp always runs on the
    receiver time axis k / f_s.
    """

    def __init__(self, paths: Sequence, sampling_rate: float):
        if not sampling_rate > 0:
            raise ConfigurationError(
                f"sampling_rate must be positive, got {sampling_rate!r}")
        self.paths = as_paths(paths)
        self.fs = float(sampling_rate)

    def apply(self, s: np.ndarray) -> np.ndarray:
        s = np.asarray(s)
        if s.ndim != 1:
            raise ShapeError(f"tx samples must be 1-D, got shape {s.shape}")
        L = len(s)
        t = np.arange(L) / self.fs
        r = np.zeros(L, dtype=complex)
        for p in self.paths:
            d = int(p.delay)
            delayed = np.zeros(L, dtype=complex)
            if d < L:
                delayed[d:] = s[:L - d]
            if p.doppler_Hz == 0.0:
                r += p.gain * delayed
            else:
                r += p.gain * delayed * np.exp(1j * 2 * np.pi * p.doppler_Hz * t)
        return r


def apply_channel(s: np.ndarray, sampling_rate: float,
                  paths: Sequence) -> np.ndarray:
    """Function form of MultipathDopplerChannel.apply."""
    return MultipathDopplerChannel(paths, sampling_rate).apply(s)


def add_awgn(s: np.ndarray, snr_dB: Optional[float],
             rng: np.random.Generator = None) -> np.ndarray:
    """
    Add circular complex Gaussian noise.

    The noise variance is set against the mean power of ``s``;
    ``snr_dB=None`` returns an unmodified copy.
    """
    s = np.asarray(s, dtype=complex)
    if snr_dB is None:
        return s.copy()
    if rng is None:
        rng = np.random.default_rng()
    p_sig = np.mean(np.abs(s)**2) if len(s) else 0.0
    noise_var = p_sig / db_to_linear(snr_dB)
    w = np.sqrt(noise_var / 2) * (
        rng.standard_normal(len(s)) + 1j * rng.standard_normal(len(s))
    )
    return s + w


# ============================================================================
#  DD-domain diagnostic
# ============================================================================

def dd_bin_indices(paths: Sequence, M: int, N: int,
                   delta_f_Hz: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Heuristic DD bins of each path, for plot markers only.

    delay bin   = delay mod N
    Doppler bin = round(doppler / delta_f * M) mod M

    Not validated against the time-domain model above.
    """
    paths = as_paths(paths)
    delay_idx = np.array([int(p.delay) % N for p in paths], dtype=int)
    doppler_idx = np.array(
        [int(np.round(p.doppler_Hz / delta_f_Hz * M)) % M for p in paths],
        dtype=int)
    return doppler_idx, delay_idx


def build_dd_kernel(paths: Sequence, M: int, N: int,
                    delta_f_Hz: float) -> np.ndarray:
    """Place each path gain on its heuristic DD bin; (M, N) kernel."""
    paths = as_paths(paths)
    doppler_idx, delay_idx = dd_bin_indices(paths, M, N, delta_f_Hz)
    h_dd = np.zeros((M, N), dtype=complex)
    for p, u, v in zip(paths, doppler_idx, delay_idx):
        h_dd[u, v] += p.gain
    return h_dd
