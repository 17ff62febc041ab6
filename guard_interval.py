"""
Guard-Interval Codec
====================
Appends or removes the guard segment around one OTFS frame.

  - ZERO_PAD      : ``guard_len`` zeros after the frame; removal drops the
                    trailing ``guard_len`` samples without inspecting them.
  - CYCLIC_PREFIX : the last ``guard_len`` samples copied to the front;
                    removal drops the leading ``guard_len`` samples.
  - NONE          : passthrough on both sides.
"""

from enum import Enum

import numpy as np

from errors import ConfigurationError, ShapeError


class GuardMode(Enum):
    ZERO_PAD = "zp"
    CYCLIC_PREFIX = "cp"
    NONE = "none"

    @classmethod
    def parse(cls, mode) -> "GuardMode":
        """Map a mode name or member to a GuardMode.

        Unrecognised names fall back to NONE, so that the modulator and the
        demodulator both apply the symmetric no-op.
        """
        if isinstance(mode, cls):
            return mode
        if mode is None:
            return cls.NONE
        key = str(mode).strip().lower().replace("-", "_")
        aliases = {
            "zp": cls.ZERO_PAD, "zero_pad": cls.ZERO_PAD, "zeropad": cls.ZERO_PAD,
            "cp": cls.CYCLIC_PREFIX, "cyclic_prefix": cls.CYCLIC_PREFIX,
            "cyclicprefix": cls.CYCLIC_PREFIX,
        }
        return aliases.get(key, cls.NONE)


def _check_guard_len(guard_len) -> int:
    if isinstance(guard_len, bool) or int(guard_len) != guard_len or guard_len < 0:
        raise ConfigurationError(
            f"guard_len must be a non-negative integer, got {guard_len!r}")
    return int(guard_len)


def _as_sequence(samples) -> np.ndarray:
    x = np.asarray(samples)
    if x.ndim != 1:
        raise ShapeError(f"samples must be 1-D, got shape {x.shape}")
    return x


def insert_guard(samples, guard_len: int, mode) -> np.ndarray:
    """Return a new sequence with the guard segment added."""
    x = _as_sequence(samples)
    g = _check_guard_len(guard_len)
    mode = GuardMode.parse(mode)

    if g == 0 or mode is GuardMode.NONE:
        return x.copy()
    if mode is GuardMode.ZERO_PAD:
        return np.concatenate([x, np.zeros(g, dtype=x.dtype)])
    # CYCLIC_PREFIX
    if g > len(x):
        raise ConfigurationError(
            f"guard_len={g} exceeds sequence length {len(x)} "
            f"for cyclic prefix")
    return np.concatenate([x[-g:], x])


def remove_guard(samples, guard_len: int, mode) -> np.ndarray:
    """Return the core sequence with the guard segment stripped.

    A sequence shorter than the guard yields an empty result; the
    demodulator's length reconciliation takes it from there.
    """
    x = _as_sequence(samples)
    g = _check_guard_len(guard_len)
    mode = GuardMode.parse(mode)

    if g == 0 or mode is GuardMode.NONE:
        return x.copy()
    if mode is GuardMode.ZERO_PAD:
        return x[:max(len(x) - g, 0)].copy()
    return x[g:].copy()
