"""Anchor templates for target encoding."""

from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import numpy.typing as npt

from point_pillars.geometry import BoundingBox3D
from point_pillars.util import get_section, load_config

__all__ = ["anchor_boxes", "anchor_arrays_from_config"]


def anchor_boxes(
    anchor_dimensions: npt.ArrayLike,
    anchor_z_heights: npt.ArrayLike,
    anchor_yaws: npt.ArrayLike,
) -> List[BoundingBox3D]:
    """Parse per-anchor arrays into anchor templates.

    Args:
        anchor_dimensions: [A, 3] (length, width, height); extra columns are ignored
        anchor_z_heights: [A] box center height
        anchor_yaws: [A] reference orientation

    Returns:
        List of A anchor boxes centered at the origin, ``base_yaw == yaw``
    """
    dimensions = np.asarray(anchor_dimensions, dtype=np.float32)
    z_heights = np.asarray(anchor_z_heights, dtype=np.float32).reshape(-1)
    yaws = np.asarray(anchor_yaws, dtype=np.float32).reshape(-1)

    if dimensions.ndim != 2 or len(dimensions) == 0:
        raise ValueError("Anchor length is zero")
    if dimensions.shape[1] < 3:
        raise ValueError(
            f"anchor dimensions need (length, width, height) columns, got {dimensions.shape}"
        )
    if len(z_heights) != len(dimensions) or len(yaws) != len(dimensions):
        raise ValueError(
            f"Got {len(dimensions)} anchor dimensions, {len(z_heights)} z heights "
            f"and {len(yaws)} yaws"
        )

    return [
        BoundingBox3D.anchor(
            length=dims[0],
            width=dims[1],
            height=dims[2],
            z=z,
            yaw=yaw,
        )
        for dims, z, yaw in zip(dimensions, z_heights, yaws)
    ]


def anchor_arrays_from_config(
    config: Optional[Dict[str, Any]] = None,
) -> Tuple[npt.NDArray[np.float32], npt.NDArray[np.float32], npt.NDArray[np.float32]]:
    """Read the ``anchors`` section into (dimensions, z_heights, yaws) arrays."""
    if config is None:
        config = load_config()

    anchors = get_section(config, "anchors")
    if not anchors:
        raise ValueError("Anchor length is zero")

    dimensions = np.array([anchor["dimensions"] for anchor in anchors], dtype=np.float32)
    z_heights = np.array([anchor["z_height"] for anchor in anchors], dtype=np.float32)
    yaws = np.array([anchor.get("yaw", 0.0) for anchor in anchors], dtype=np.float32)
    return dimensions, z_heights, yaws
