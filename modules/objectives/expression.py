"""Expression-based objective."""

from __future__ import annotations

from typing import Dict

import numpy as np

from runtime.expr_eval import compile_expr, eval_expr


def _expression_from_options(options: dict | None) -> str | None:
    if not options:
        return None
    return options.get("expression") or options.get("expr")


def prepare(options: dict) -> dict:
    """Parse the expression once; evaluation reuses the tree."""
    expr = _expression_from_options(options)
    if not expr:
        raise ValueError("expression objective needs an 'expression' option")
    prepared = dict(options)
    prepared["_tree"] = compile_expr(str(expr))
    return prepared


def _build_names(x: np.ndarray, options: dict) -> Dict[str, float]:
    # x1..xD are 1-based like the usual mathematical notation.
    names: Dict[str, float] = {f"x{i + 1}": float(v) for i, v in enumerate(x)}
    for name, v in zip(options.get("param_names") or [], x):
        names[str(name)] = float(v)
    params = options.get("expr_params") or {}
    for key, val in params.items():
        if isinstance(val, (int, float)):
            names[key] = float(val)
    return names


def compute_objective(x, params):
    """Evaluate ``params["expression"]`` at ``x``."""
    x = np.asarray(x, dtype=float)
    tree = params.get("_tree")
    if tree is None:
        tree = prepare(params)["_tree"]
    return eval_expr(tree, _build_names(x, params))
