"""Package utilities for asa-optimizer.

The optimizer core lives in top-level packages like `runtime/`, `core/` and
`storage/`. This package carries the installed version and re-exports the
names most client code needs.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from core.exceptions import (
    AnnealError,
    AnnealFatalError,
    InvalidArgumentError,
    InvalidStateError,
)
from parameters.anneal_parameters import AnnealParameters
from runtime.anneal import AnnealEngine, AnnealState, StepResult
from runtime.driver import anneal, drive

try:
    __version__ = version("asa-optimizer")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "AnnealEngine",
    "AnnealError",
    "AnnealFatalError",
    "AnnealParameters",
    "AnnealState",
    "InvalidArgumentError",
    "InvalidStateError",
    "StepResult",
    "anneal",
    "drive",
]
