"""Configuration management using Pydantic v2 models.

Every configuration class is immutable (``frozen=True``) and validated on
construction. Structural problems (grid with fewer than two points, income
generator rows that do not sum to zero, infeasible borrowing limits) raise
:class:`~hact.config.exceptions.InvalidModelError` listing every issue.

Sub-modules:
    core: Top-level ``Config`` with YAML loading and logging setup.
    grids: Asset grids and the income process.
    models: One configuration class per household model.
    presets: Named calibrations shipped with the package.
    reporting: Logging configuration.
    solver: HJB and stationary-distribution solver settings.

Examples:
    Defaults (two-state Huggett economy)::

        from hact.config import Config

        config = Config()

    Loading from file::

        config = Config.from_yaml(Path("huggett.yaml"))
"""

from .core import Config, ModelConfig
from .exceptions import InvalidModelError
from .grids import AssetGridConfig, IncomeProcessConfig
from .models import HuggettConfig, TwoAssetConfig
from .presets import list_presets, load_preset
from .reporting import LoggingConfig
from .solver import HJBSolverConfig, StationaryConfig, StationaryMethod, TimeSteppingScheme

__all__ = [
    # Core
    "Config",
    "ModelConfig",
    "InvalidModelError",
    # State space
    "AssetGridConfig",
    "IncomeProcessConfig",
    # Models
    "HuggettConfig",
    "TwoAssetConfig",
    # Presets
    "list_presets",
    "load_preset",
    # Reporting
    "LoggingConfig",
    # Solvers
    "HJBSolverConfig",
    "StationaryConfig",
    "StationaryMethod",
    "TimeSteppingScheme",
]
