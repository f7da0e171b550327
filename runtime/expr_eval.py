"""Restricted arithmetic for expression objectives.

Only numbers, the names handed in by the caller, ``pi``/``e``, the four
arithmetic operators plus ``%`` and ``**``, and a short list of math
functions are understood. Anything else in the parsed tree is a
``ValueError``.
"""

from __future__ import annotations

import ast
import math
import operator
from typing import Callable, Dict

_BINARY: Dict[type, Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY: Dict[type, Callable[[float], float]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

FUNCTIONS: Dict[str, Callable[..., float]] = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "exp": math.exp,
    "log": math.log,
    "sqrt": math.sqrt,
    "abs": abs,
    "min": min,
    "max": max,
}

CONSTANTS = {"pi": math.pi, "e": math.e}


class _Evaluator(ast.NodeVisitor):
    def __init__(self, names: Dict[str, float]) -> None:
        self.names = names

    def visit_Expression(self, node):
        return self.visit(node.body)

    def visit_BinOp(self, node):
        op = _BINARY.get(type(node.op))
        if op is None:
            raise ValueError(f"Unsupported operator {type(node.op).__name__}")
        return op(self.visit(node.left), self.visit(node.right))

    def visit_UnaryOp(self, node):
        op = _UNARY.get(type(node.op))
        if op is None:
            raise ValueError(f"Unsupported operator {type(node.op).__name__}")
        return op(self.visit(node.operand))

    def visit_Call(self, node):
        name = node.func.id if isinstance(node.func, ast.Name) else None
        if name not in FUNCTIONS or node.keywords:
            raise ValueError(f"Unsupported function call: {ast.dump(node.func)}")
        return float(FUNCTIONS[name](*(self.visit(arg) for arg in node.args)))

    def visit_Name(self, node):
        value = self.names.get(node.id, CONSTANTS.get(node.id))
        if value is None:
            raise ValueError(f"Unknown name: {node.id}")
        return float(value)

    def visit_Constant(self, node):
        # bool is an int subclass; True + x is not arithmetic we want.
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise ValueError(f"Unsupported literal {node.value!r}")
        return float(node.value)

    def generic_visit(self, node):
        raise ValueError(f"Unsupported expression element {type(node).__name__}")


def compile_expr(expr: str) -> ast.Expression:
    """Parse ``expr`` once so it can be evaluated repeatedly."""
    try:
        return ast.parse(expr, mode="eval")
    except SyntaxError as exc:
        raise ValueError(f"Invalid expression {expr!r}: {exc.msg}") from exc


def eval_expr(expr: str | ast.Expression, names: Dict[str, float]) -> float:
    tree = compile_expr(expr) if isinstance(expr, str) else expr
    return _Evaluator(names).visit(tree)
