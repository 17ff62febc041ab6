"""
Error taxonomy for the OTFS link simulator.
============================================
ShapeError and ConfigurationError are raised before any numeric work starts.
NumericAnomaly is a warning category only: non-finite interpolation output is
replaced with zero and never raised to the caller.
"""


class ShapeError(ValueError):
    """Grid or sequence dimensions inconsistent with the declared M, N."""


class ConfigurationError(ValueError):
    """Invalid static configuration (grid size, guard, paths, pilots)."""


class NumericAnomaly(RuntimeWarning):
    """Non-finite values met inside the pilot convex hull and zero-filled."""
