# modules/objectives/rosenbrock.py

import numpy as np


def compute_objective(x, params):
    """
    Rosenbrock valley:
        f(x) = sum_i b (x_{i+1} - x_i^2)^2 + (a - x_i)^2
    with a = params["a"] (1.0) and b = params["b"] (100.0). Minimum f = 0 at
    x = (a, a^2, ...); needs at least two dimensions.
    """
    x = np.asarray(x, dtype=float)
    if x.size < 2:
        raise ValueError("rosenbrock needs at least two parameters")
    a = float(params.get("a", 1.0))
    b = float(params.get("b", 100.0))
    return float(np.sum(b * (x[1:] - x[:-1] ** 2) ** 2 + (a - x[:-1]) ** 2))
