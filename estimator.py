"""
Pilot-Aided Channel Estimation
==============================
Estimates the DD-domain channel from known pilot symbols.

  1. Per-pilot ratio estimate h_i = Y[d_i, l_i] / p_i.
  2. Scattered-data interpolation of {(d_i, l_i, h_i)} onto every integer
     bin of the M x N grid through a pluggable ScatteredInterpolator.
  3. Every non-finite interpolated value (points outside the convex hull
     of the pilots) is replaced with exactly 0.
"""

import warnings
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from scipy.interpolate import LinearNDInterpolator, NearestNDInterpolator

from errors import ConfigurationError, NumericAnomaly, ShapeError


@dataclass(frozen=True)
class Pilot:
    """Known symbol at a fixed DD-grid position (0-based indices)."""
    doppler_idx: int
    delay_idx: int
    value: complex


def as_pilots(pilots) -> Tuple[Pilot, ...]:
    """Accept Pilot objects or (doppler_idx, delay_idx, value) triples."""
    out = []
    for p in pilots:
        if not isinstance(p, Pilot):
            d, l, v = p
            p = Pilot(d, l, complex(v))
        out.append(p)
    return tuple(out)


def pilot_coordinates(pilots) -> np.ndarray:
    """(P, 2) array of (doppler_idx, delay_idx)."""
    return np.array([[p.doppler_idx, p.delay_idx] for p in as_pilots(pilots)],
                    dtype=float).reshape(-1, 2)


def _is_index(value) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    try:
        return int(value) == value
    except (TypeError, ValueError, OverflowError):
        return False


def validate_pilots(pilots, M: int, N: int) -> Tuple[Pilot, ...]:
    """Check indices, bounds, distinctness, values and non-collinearity.

    Returns the pilots with plain ``int`` indices.
    """
    checked = []
    seen = set()
    for p in as_pilots(pilots):
        for idx in (p.doppler_idx, p.delay_idx):
            if not _is_index(idx):
                raise ConfigurationError(
                    f"pilot index {idx!r} must be an integer")
        p = Pilot(int(p.doppler_idx), int(p.delay_idx), p.value)
        checked.append(p)
        if not (0 <= p.doppler_idx < M and 0 <= p.delay_idx < N):
            raise ConfigurationError(
                f"pilot at ({p.doppler_idx}, {p.delay_idx}) lies outside "
                f"the {M}x{N} grid")
        key = (p.doppler_idx, p.delay_idx)
        if key in seen:
            raise ConfigurationError(f"duplicate pilot position {key}")
        seen.add(key)
        if not np.isfinite(p.value) or p.value == 0:
            raise ConfigurationError(
                f"pilot at {key} has value {p.value}; "
                f"must be finite and non-zero")
    pilots = tuple(checked)
    if len(pilots) < 3:
        raise ConfigurationError(
            f"at least 3 pilots are needed for 2-D interpolation, "
            f"got {len(pilots)}")
    pts = pilot_coordinates(pilots)
    if np.linalg.matrix_rank(pts - pts.mean(axis=0)) < 2:
        raise ConfigurationError("pilot positions are collinear")
    return pilots


def place_pilots(x_dd: np.ndarray, pilots) -> np.ndarray:
    """Return a copy of ``x_dd`` with pilot values written at their bins."""
    x = np.array(x_dd, dtype=complex)
    for p in as_pilots(pilots):
        x[p.doppler_idx, p.delay_idx] = p.value
    return x


# ============================================================================
#  Interpolation strategies
# ============================================================================

class ScatteredInterpolator:
    """
    Interpolate scattered complex samples onto the full integer grid.

    Implementations return an (M, N) complex array and mark every bin they
    cannot define with NaN; the estimator turns those into zeros.
    """

    name = "base"

    def __call__(self, points: np.ndarray, values: np.ndarray,
                 shape: Tuple[int, int]) -> np.ndarray:
        raise NotImplementedError


def _grid_points(shape):
    M, N = shape
    dd, ll = np.meshgrid(np.arange(M), np.arange(N), indexing="ij")
    return dd, ll


class LinearTriangulationInterpolator(ScatteredInterpolator):
    """Delaunay triangulation + barycentric linear interpolation.

    Bins outside the convex hull of the pilots come back as NaN.
    """

    name = "linear"

    def __call__(self, points, values, shape):
        interp = LinearNDInterpolator(points, values, fill_value=np.nan)
        dd, ll = _grid_points(shape)
        return np.asarray(interp(dd, ll), dtype=complex)


class NearestPilotInterpolator(ScatteredInterpolator):
    """Each bin takes the estimate of its nearest pilot (no hull limit)."""

    name = "nearest"

    def __call__(self, points, values, shape):
        interp = NearestNDInterpolator(points, values)
        dd, ll = _grid_points(shape)
        return np.asarray(interp(dd, ll), dtype=complex)


INTERPOLATORS = {
    LinearTriangulationInterpolator.name: LinearTriangulationInterpolator,
    NearestPilotInterpolator.name: NearestPilotInterpolator,
}


def get_interpolator(interpolator=None) -> ScatteredInterpolator:
    if interpolator is None:
        return LinearTriangulationInterpolator()
    if isinstance(interpolator, ScatteredInterpolator):
        return interpolator
    try:
        return INTERPOLATORS[interpolator]()
    except KeyError:
        raise ConfigurationError(
            f"unknown interpolator {interpolator!r}; "
            f"choose from {sorted(INTERPOLATORS)}") from None


# ============================================================================
#  Estimation
# ============================================================================

@dataclass
class ChannelEstimate:
    per_pilot: np.ndarray        # (P,) complex, in pilot order
    grid: np.ndarray             # (M, N) complex, all finite
    n_zero_filled: int = 0       # bins set to 0 by the no-signal rule


def estimate_channel(y_dd: np.ndarray, pilots: Sequence,
                     interpolator=None, M: int = None,
                     N: int = None) -> ChannelEstimate:
    """
    Pilot-aided DD channel estimate.

    Parameters
    ----------
    y_dd         : (M, N) demodulated DD grid
    pilots       : Pilot objects or (doppler_idx, delay_idx, value) triples
    interpolator : ScatteredInterpolator, its registered name, or None
                   for linear triangulation
    M, N         : declared grid size; checked against y_dd when given

    Returns
    -------
    ChannelEstimate with the per-pilot ratios and the interpolated grid
    """
    y_dd = np.asarray(y_dd)
    if y_dd.ndim != 2:
        raise ShapeError(f"received DD grid must be 2-D, got shape {y_dd.shape}")
    if (M is not None and y_dd.shape[0] != M) or \
            (N is not None and y_dd.shape[1] != N):
        raise ShapeError(
            f"received DD grid shape {y_dd.shape} does not match "
            f"(M, N) = ({M}, {N})")
    M, N = y_dd.shape
    pilots = validate_pilots(pilots, M, N)
    interp = get_interpolator(interpolator)

    values = np.array([p.value for p in pilots], dtype=complex)
    rx = np.array([y_dd[p.doppler_idx, p.delay_idx] for p in pilots],
                  dtype=complex)
    h_pilot = rx / values

    h_grid = interp(pilot_coordinates(pilots), h_pilot, (M, N))
    bad = ~np.isfinite(h_grid)
    if not np.all(np.isfinite(h_pilot)):
        warnings.warn(
            "non-finite pilot estimate; affected bins set to 0",
            NumericAnomaly, stacklevel=2)
    h_grid = np.where(bad, 0.0 + 0.0j, h_grid)

    return ChannelEstimate(per_pilot=h_pilot, grid=h_grid,
                           n_zero_filled=int(np.sum(bad)))


def equalize_one_tap(y_dd: np.ndarray, h_dd: np.ndarray) -> np.ndarray:
    """Divide by the estimate where it is non-zero; pass other bins through."""
    y_dd = np.asarray(y_dd, dtype=complex)
    h_dd = np.asarray(h_dd, dtype=complex)
    out = y_dd.copy()
    nz = h_dd != 0
    out[nz] = y_dd[nz] / h_dd[nz]
    return out
