"""Heterogeneous-agent continuous-time models (HACT) solver."""

from ._version import __version__

# Use lazy imports so that importing the package does not pull in scipy
# and pandas until a solver is accessed

__all__ = [
    "__version__",
    "Config",
    "ConvergenceError",
    "CRRAUtility",
    "HJBSolution",
    "HJBSolver",
    "HJBSolverConfig",
    "HouseholdModel",
    "HuggettConfig",
    "HuggettModel",
    "InvalidModelError",
    "NonFiniteResultError",
    "NumericalDivergenceError",
    "SingularSystemError",
    "StateSpace",
    "StationaryConfig",
    "StationaryMethod",
    "StationarySolution",
    "TwoAssetConfig",
    "TwoAssetModel",
    "build_model",
    "hjb_residual",
    "load_preset",
    "run",
    "solve",
    "solve_stationary",
    "stationary_density",
]


def __getattr__(name):
    """Lazy import modules to avoid circular dependencies during test discovery."""
    if name in [
        "Config",
        "HJBSolverConfig",
        "HuggettConfig",
        "StationaryConfig",
        "StationaryMethod",
        "TwoAssetConfig",
        "load_preset",
    ]:
        from .config import (
            Config,
            HJBSolverConfig,
            HuggettConfig,
            StationaryConfig,
            StationaryMethod,
            TwoAssetConfig,
            load_preset,
        )

        return locals()[name]
    elif name in [
        "ConvergenceError",
        "InvalidModelError",
        "NonFiniteResultError",
        "NumericalDivergenceError",
        "SingularSystemError",
    ]:
        from .exceptions import (
            ConvergenceError,
            InvalidModelError,
            NonFiniteResultError,
            NumericalDivergenceError,
            SingularSystemError,
        )

        return locals()[name]
    elif name == "CRRAUtility":
        from .utility import CRRAUtility

        return CRRAUtility
    elif name == "StateSpace":
        from .state_space import StateSpace

        return StateSpace
    elif name == "HouseholdModel":
        from .household import HouseholdModel

        return HouseholdModel
    elif name in ["HJBSolution", "HJBSolver", "hjb_residual"]:
        from .hjb_solver import HJBSolution, HJBSolver, hjb_residual

        return locals()[name]
    elif name == "HuggettModel":
        from .huggett import HuggettModel

        return HuggettModel
    elif name == "TwoAssetModel":
        from .two_asset import TwoAssetModel

        return TwoAssetModel
    elif name in ["solve_stationary", "stationary_density"]:
        from .stationary import solve_stationary, stationary_density

        return locals()[name]
    elif name in ["StationarySolution", "build_model", "run", "solve"]:
        from .pipeline import StationarySolution, build_model, run, solve

        return locals()[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
