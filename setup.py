from __future__ import annotations

from setuptools import find_namespace_packages, setup

# The code base keeps the flat layout of its top-level packages (most of
# them implicit namespace packages), so they are listed explicitly.
_PACKAGES = ("asa_optimizer", "core", "parameters", "runtime", "modules", "storage", "visualization")


setup(
    name="asa-optimizer",
    version="0.3.0",
    description="Client-driven Adaptive Simulated Annealing with persistence and plotting helpers",
    python_requires=">=3.9",
    packages=find_namespace_packages(
        include=[f"{name}" for name in _PACKAGES] + [f"{name}.*" for name in _PACKAGES]
    ),
    py_modules=["main"],
    install_requires=[
        "numpy>=1.22",
        "PyYAML>=6.0",
        "matplotlib>=3.5",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "asa-optimizer=main:main",
            "asa-plot=visualization.cli:main",
        ],
    },
)
