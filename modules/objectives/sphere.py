"""Sphere objective, sum of squared offsets from a centre."""

import numpy as np


def compute_objective(x, params):
    """
    f(x) = sum_i (x_i - c_i)^2
    where c is ``params["centre"]`` (default: origin).
    """
    x = np.asarray(x, dtype=float)
    centre = np.asarray(params.get("centre", 0.0), dtype=float)
    return float(np.sum((x - centre) ** 2))
