"""Custom exception types for the annealing optimizer."""

from __future__ import annotations

from typing import Any


class AnnealError(Exception):
    """Base class for domain-specific errors."""


class InvalidArgumentError(AnnealError, ValueError):
    """Raised when an engine or its configuration is built from bad input."""


class InvalidStateError(AnnealError, RuntimeError):
    """Raised when the engine protocol is driven out of order.

    ``state`` is the state the engine was in, ``expected`` the states in
    which the rejected operation would have been legal.
    """

    def __init__(
        self,
        message: str,
        *,
        state: Any | None = None,
        expected: tuple[Any, ...] = (),
    ) -> None:
        super().__init__(message)
        self.state = state
        self.expected = tuple(expected)


class AnnealFatalError(AnnealError, ArithmeticError):
    """Raised when a numeric failure leaves the annealing state unusable."""

    def __init__(
        self,
        message: str,
        *,
        kind: str = "numeric",
        values: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.values = values


__all__ = [
    "AnnealError",
    "InvalidArgumentError",
    "InvalidStateError",
    "AnnealFatalError",
]
