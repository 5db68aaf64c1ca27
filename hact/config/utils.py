"""Shared configuration utilities."""

from typing import Any, Dict


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override dictionary into base dictionary.

    Nested dictionaries (e.g. ``model.income``) are merged key by key, so an
    override can change a single parameter of a preset.

    Args:
        base: Base dictionary providing default values.
        override: Override dictionary whose values take precedence.

    Returns:
        New merged dictionary (neither input is mutated).
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result
