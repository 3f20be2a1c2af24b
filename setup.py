#!/usr/bin/env python3
# =============================================================================
#  stencil-compiler: setup.py
#
#  Runtime requirements live in requirements.txt; the version lives in
#  stencil/__init__.py.  Both are read here so there is one source of
#  truth for each.
#
#  Typical use:
#      pip install -e ".[dev]"
#      python -m pytest
# =============================================================================

from __future__ import annotations

import re
from pathlib import Path

from setuptools import setup, find_packages

# ---------------------------------------------------------------------------
#  Metadata readers
# ---------------------------------------------------------------------------
_HERE = Path(__file__).resolve().parent


def _read_version() -> str:
    """Extract ``__version__`` from stencil/__init__.py."""
    init = _HERE / "stencil" / "__init__.py"
    text = init.read_text(encoding="utf-8")
    match = re.search(r'^__version__\s*=\s*"([^"]+)"', text, re.MULTILINE)
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


# ---------------------------------------------------------------------------
#  The ``stencil`` CLI is exposed through console_scripts, which calls
#  stencil.__main__:main.
# ---------------------------------------------------------------------------
setup(
    name="stencil-compiler",
    version=_read_version(),
    description=(
        "Compiler for hybrid Python/HTML template units that generates "
        "plain Python renderer modules."
    ),
    long_description=_read_long_description(),
    long_description_content_type="text/markdown",
    license="MIT",
    author="stencil contributors",
    python_requires=">=3.8",
    packages=find_packages(
        include=[
            "stencil",
            "stencil.*",
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
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "stencil=stencil.__main__:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development :: Compilers",
        "Topic :: Text Processing :: Markup :: HTML",
    ],
    keywords=[
        "templates",
        "html",
        "compiler",
        "code-generation",
    ],
    zip_safe=False,
)
