"""YAML configuration loading for the pillar and target encoders."""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "pointpillars.yaml"

REQUIRED_SECTIONS = ("grid", "pillars", "targets", "anchors")
GRID_KEYS = ("x_min", "x_max", "y_min", "y_max", "z_min", "z_max", "x_step", "y_step")


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load an encoding configuration from a YAML file.

    Args:
        config_path: Path to a YAML file. Defaults to the packaged
            ``config/pointpillars.yaml``.

    Returns:
        Parsed configuration dictionary with all required sections present.
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f)

    if not isinstance(config, dict):
        raise ValueError(f"Expected a mapping at the top level of {config_path}")

    for section in REQUIRED_SECTIONS:
        get_section(config, section)

    grid = config["grid"]
    missing = [key for key in GRID_KEYS if key not in grid]
    if missing:
        raise KeyError(f"Grid keys {missing} not found in {config_path}")
    if grid["x_step"] <= 0 or grid["y_step"] <= 0:
        raise ValueError("grid steps must be positive")
    if grid["x_min"] >= grid["x_max"] or grid["y_min"] >= grid["y_max"]:
        raise ValueError("grid minimum must be less than grid maximum")

    return config


def get_section(config: Dict[str, Any], key: str) -> Any:
    """Return a required top-level section of a loaded configuration."""
    if key not in config:
        raise KeyError(f"Section '{key}' not found in config")
    return config[key]


def grid_kwargs(config: Dict[str, Any]) -> Dict[str, float]:
    """Extract the grid bounds and steps as keyword arguments for the encoders."""
    grid = get_section(config, "grid")
    return {key: float(grid[key]) for key in GRID_KEYS}
