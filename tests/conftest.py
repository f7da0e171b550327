"""Pytest configuration and test categorization.

Tests stay in one flat directory; markers derived from the file name let CI
pick `unit`, `regression`, `e2e` or `benchmark` subsets.
"""

from __future__ import annotations

import os
import pathlib
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

_MARKERS = {
    "unit": "fast, isolated tests",
    "regression": "guards against previously fixed behaviour",
    "e2e": "full annealing runs through the driver or CLI",
    "benchmark": "longer convergence benchmarks",
}

# First matching file-name fragment wins.
_FILENAME_CATEGORIES = (
    (("benchmark",), "benchmark"),
    (("e2e", "end_to_end"), "e2e"),
    (("regression",), "regression"),
)


def _category(filename: str) -> str:
    name = filename.lower()
    for fragments, marker in _FILENAME_CATEGORIES:
        if any(fragment in name for fragment in fragments):
            return marker
    return "unit"


def pytest_configure(config: pytest.Config) -> None:
    for name, description in _MARKERS.items():
        config.addinivalue_line("markers", f"{name}: {description}")


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    for item in items:
        marker = _category(pathlib.Path(str(item.fspath)).name)
        item.add_marker(getattr(pytest.mark, marker))
