# modules/objectives/rastrigin.py

import numpy as np


def compute_objective(x, params):
    """
    Rastrigin function, highly multimodal with its global minimum f = 0 at
    the origin:
        f(x) = A D + sum_i x_i^2 - A cos(2 pi x_i)
    """
    x = np.asarray(x, dtype=float)
    A = float(params.get("A", 10.0))
    return float(A * x.size + np.sum(x**2 - A * np.cos(2.0 * np.pi * x)))
