"""Minimal setup.py for hact package."""

import os
from pathlib import Path

from setuptools import find_packages, setup

# Read the version from _version.py
__version__ = ""
exec(open(os.path.join("hact", "_version.py")).read())

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="hact",
    version=__version__,
    description=(
        "Finite-difference solvers for heterogeneous-agent continuous-time household models"
    ),
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["hact", "hact.*"]),
    package_data={"hact": ["data/presets/*.yaml"]},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Mathematics",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.11",
    install_requires=[
        "numpy>=2.3.2",
        "pandas>=2.3.2",
        "pydantic>=2.11.7",
        "pyyaml>=6.0.2",
        "scipy>=1.16.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.4.1",
            "pytest-cov>=6.2.1",
            "pytest-xdist>=3.8.0",
        ],
        "dev": [
            "pytest>=8.4.1",
            "pytest-cov>=6.2.1",
            "pytest-xdist>=3.8.0",
            "pylint>=3.3.8",
            "black>=25.1.0",
            "mypy>=1.17.1",
            "isort>=6.0.1",
            "types-PyYAML>=6.0.0",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
