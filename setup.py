#!/usr/bin/env python3
# =============================================================================
#  blockbot — setup.py
#
#  Usage:
#      pip install -e ".[dev]"
#      python -m pytest
# =============================================================================

from __future__ import annotations

import re
from pathlib import Path

from setuptools import setup, find_packages

# ---------------------------------------------------------------------------
#  Read version from the package so we have a single source of truth.
# ---------------------------------------------------------------------------
_HERE = Path(__file__).resolve().parent


def _read_version() -> str:
    """Extract ``__version__`` from blockbot/__init__.py."""
    init = _HERE / "blockbot" / "__init__.py"
    text = init.read_text(encoding="utf-8")
    match = re.search(r'^__version__[^=]*=\s*"([^"]+)"', text, re.MULTILINE)
    if match:
        return match.group(1)
    return "0.0.0"


def _read_long_description() -> str:
    """Read README.md for the long description."""
    readme = _HERE / "README.md"
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


def _read_requirements() -> list[str]:
    """Read requirements.txt if it exists."""
    req_file = _HERE / "requirements.txt"
    if req_file.exists():
        lines = req_file.read_text(encoding="utf-8").splitlines()
        return [
            ln.strip()
            for ln in lines
            if ln.strip() and not ln.strip().startswith("#")
        ]
    return []


setup(
    name="blockbot",
    version=_read_version(),
    description=(
        "Block-program editor core, compiler and step interpreter "
        "for a grid-world robot puzzle."
    ),
    long_description=_read_long_description(),
    long_description_content_type="text/markdown",
    license="MIT",
    author="blockbot contributors",
    python_requires=">=3.10",
    packages=find_packages(
        include=[
            "blockbot",
            "blockbot.*",
        ],
        exclude=[
            "tests",
            "tests.*",
        ],
    ),
    install_requires=_read_requirements(),
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
        ],
    },

    entry_points={
        "console_scripts": [
            "blockbot=blockbot.main:main",
        ],
    },

    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Education",
        "Topic :: Games/Entertainment :: Puzzle Games",
        "Topic :: Software Development :: Interpreters",
    ],
    keywords=[
        "visual-programming",
        "blocks",
        "interpreter",
        "grid-world",
        "puzzle",
    ],
    zip_safe=False,
)
