"""Named calibrations shipped with the package.

Presets are YAML files under ``hact/data/presets``. Each one is a complete
:class:`~hact.config.core.Config`; overrides are deep-merged on top.

Examples:
    Three-state Huggett economy with a finer grid::

        config = load_preset("huggett_three_state", {"model": {"asset_grid": {"num_points": 800}}})
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from .core import Config

PRESET_DIR = Path(__file__).resolve().parent.parent / "data" / "presets"


def list_presets() -> List[str]:
    """Names of the available presets, sorted."""
    return sorted(p.stem for p in PRESET_DIR.glob("*.yaml"))


def load_preset(name: str, overrides: Optional[Dict[str, Any]] = None) -> Config:
    """Load a named preset.

    Args:
        name: Preset name (file stem), e.g. ``"huggett"``.
        overrides: Optional nested dictionary merged on top of the preset.

    Returns:
        Validated configuration.

    Raises:
        KeyError: If no preset with that name exists.
    """
    path = PRESET_DIR / f"{name}.yaml"
    if not path.exists():
        raise KeyError(f"Unknown preset '{name}'. Available: {', '.join(list_presets())}")
    config = Config.from_yaml(path)
    if overrides:
        config = Config.from_dict(overrides, base_config=config)
    return config
