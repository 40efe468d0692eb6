"""
config_loader.py
-----------------
Singleton config loader. Reads config.yaml once and caches it.
All modules access configuration through this — never hardcoded values.
"""

import os
import yaml
from typing import Any, Dict


_CONFIG_CACHE: Dict[str, Any] = {}


def load_config(config_path: str | None = None) -> Dict[str, Any]:
    """
    Load and cache the YAML configuration file.

    Args:
        config_path: Path to config.yaml. Defaults to config/ relative to this file.

    Returns:
        Full config dictionary.
    """
    global _CONFIG_CACHE

    if _CONFIG_CACHE:
        return _CONFIG_CACHE

    if config_path is None:
        config_path = os.path.join(os.path.dirname(__file__), "config.yaml")

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        _CONFIG_CACHE = yaml.safe_load(f)

    return _CONFIG_CACHE


def get_data_config() -> Dict[str, Any]:
    """Returns the data block (dataset directory and file names)."""
    return load_config()["data"]


def get_evaluation_config() -> Dict[str, Any]:
    """Returns the evaluation block (not-found marker, out-of-hours window)."""
    return load_config()["evaluation"]


def get_dashboard_config() -> Dict[str, Any]:
    """Returns the dashboard block."""
    return load_config()["dashboard"]


def get_output_config() -> Dict[str, Any]:
    """Returns the output block."""
    return load_config()["output"]


def get_severity_color(severity: str) -> str:
    """
    Returns the display color for a severity label.

    Unknown labels fall back to the Low color.
    """
    colors = get_dashboard_config()["severity_colors"]
    return colors.get(severity, colors["Low"])


def reset_config() -> None:
    """Clears cached config. Useful for testing."""
    global _CONFIG_CACHE
    _CONFIG_CACHE = {}
