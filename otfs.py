"""
OTFS Transform Pair
===================
Maps an M x N delay-Doppler (DD) grid to a time-domain frame and back.

Grid convention: axis 0 is the Doppler axis (M bins), axis 1 the delay
axis (N bins). The frame is the column-major (Doppler-fastest) flattening of
the transformed grid, i.e. sample k holds element (k % M, k // M).

Both stages use ``norm="ortho"`` so the transform is unitary: signal energy
is identical in the DD and time domains and the round trip is exact.
"""

from dataclasses import dataclass

import numpy as np

from errors import ConfigurationError, ShapeError
from guard_interval import GuardMode, insert_guard, remove_guard


# Doppler-fastest flattening, shared by modulate() and demodulate()
FLATTEN_ORDER = "F"


def _check_positive_int(name, value):
    if isinstance(value, bool) or int(value) != value or value <= 0:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")


@dataclass
class OTFSParams:
    """OTFS frame parameters."""
    M: int = 64                   # Doppler bins
    N: int = 30                   # delay bins
    delta_f_Hz: float = 15e3      # subcarrier spacing [Hz]
    oversampling: int = 2         # sampling rate / (M * delta_f)
    guard_len: int = 10           # guard samples
    guard_mode: GuardMode = GuardMode.ZERO_PAD

    def __post_init__(self):
        self.guard_mode = GuardMode.parse(self.guard_mode)

    @property
    def sampling_rate(self) -> float:
        """f_s = oversampling * M * delta_f  [Hz]."""
        return self.oversampling * self.M * self.delta_f_Hz

    @property
    def frame_length(self) -> int:
        """Number of core samples per frame, M * N."""
        return self.M * self.N

    @property
    def tx_length(self) -> int:
        """Transmitted samples per frame including the guard."""
        if self.guard_mode is GuardMode.NONE:
            return self.frame_length
        return self.frame_length + self.guard_len

    @property
    def doppler_resolution(self) -> float:
        """1 / frame duration  [Hz]."""
        return self.sampling_rate / self.frame_length

    def validate(self) -> "OTFSParams":
        _check_positive_int("M", self.M)
        _check_positive_int("N", self.N)
        _check_positive_int("oversampling", self.oversampling)
        if not self.delta_f_Hz > 0:
            raise ConfigurationError(
                f"delta_f_Hz must be positive, got {self.delta_f_Hz!r}")
        if isinstance(self.guard_len, bool) or int(self.guard_len) != self.guard_len \
                or self.guard_len < 0:
            raise ConfigurationError(
                f"guard_len must be a non-negative integer, got {self.guard_len!r}")
        if (self.guard_mode is GuardMode.CYCLIC_PREFIX
                and self.guard_len > self.frame_length):
            raise ConfigurationError(
                f"guard_len={self.guard_len} exceeds frame length "
                f"M*N={self.frame_length} for cyclic prefix")
        return self


def reconcile_length(samples: np.ndarray, length: int) -> np.ndarray:
    """Zero-pad on the right or truncate so that ``len(result) == length``."""
    x = np.asarray(samples, dtype=complex)
    if len(x) >= length:
        return x[:length].copy()
    out = np.zeros(length, dtype=complex)
    out[:len(x)] = x
    return out


def otfs_modulate(x_dd: np.ndarray, guard_len: int = 0,
                  guard_mode=GuardMode.NONE) -> np.ndarray:
    """
    DD grid -> time-domain frame.

    Parameters
    ----------
    x_dd       : (M, N) complex DD grid
    guard_len  : guard samples
    guard_mode : GuardMode or its name

    Returns
    -------
    s : (M*N [+ guard_len],) complex time-domain samples
    """
    x_dd = np.asarray(x_dd)
    if x_dd.ndim != 2:
        raise ShapeError(f"DD grid must be 2-D (M, N), got shape {x_dd.shape}")
    # IDFT along Doppler (axis 0), then along delay (axis 1)
    tmp = np.fft.ifft(x_dd, axis=0, norm="ortho")
    x_tf = np.fft.ifft(tmp, axis=1, norm="ortho")
    s = x_tf.flatten(order=FLATTEN_ORDER)
    return insert_guard(s, guard_len, guard_mode)


def otfs_demodulate(r: np.ndarray, M: int, N: int, guard_len: int = 0,
                    guard_mode=GuardMode.NONE) -> np.ndarray:
    """
    Time-domain samples -> DD grid.

    After guard removal the sequence is reconciled to exactly M*N samples
    (zero-padded or truncated) before reshaping; a length mismatch is never
    an error.
    """
    _check_positive_int("M", M)
    _check_positive_int("N", N)
    core = remove_guard(r, guard_len, guard_mode)
    core = reconcile_length(core, M * N)
    y_tf = core.reshape((M, N), order=FLATTEN_ORDER)
    # DFT along delay (axis 1), then along Doppler (axis 0)
    tmp = np.fft.fft(y_tf, axis=1, norm="ortho")
    return np.fft.fft(tmp, axis=0, norm="ortho")


class OTFSModulator:
    """OTFS modulator/demodulator bound to one set of frame parameters."""

    def __init__(self, params: OTFSParams):
        self.p = params.validate()

    def modulate(self, x_dd: np.ndarray) -> np.ndarray:
        x_dd = np.asarray(x_dd)
        if x_dd.shape != (self.p.M, self.p.N):
            raise ShapeError(
                f"DD grid shape {x_dd.shape} does not match "
                f"(M, N) = ({self.p.M}, {self.p.N})")
        return otfs_modulate(x_dd, self.p.guard_len, self.p.guard_mode)

    def demodulate(self, r: np.ndarray) -> np.ndarray:
        return otfs_demodulate(r, self.p.M, self.p.N,
                               self.p.guard_len, self.p.guard_mode)
