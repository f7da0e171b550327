"""Concave parabola for ascent runs (``downhill: false``)."""

import numpy as np


def compute_objective(x, params):
    """f(x) = height - sum_i (x_i - c_i)^2, maximal at c = params["centre"]."""
    x = np.asarray(x, dtype=float)
    centre = np.asarray(params.get("centre", 0.0), dtype=float)
    height = float(params.get("height", 0.0))
    return float(height - np.sum((x - centre) ** 2))
