"""Dense PointPillars input tensors from raw points.

Each occupied cell becomes one pillar slot; each of its points becomes one row
of the 9-dimensional feature vector from section 2.1 of the PointPillars paper
(https://arxiv.org/abs/1812.05784):

    [x, y, z, intensity, xc, yc, zc, xp, yp]

where ``c`` is the offset from the arithmetic mean of all points in the pillar
and ``p`` the offset from the pillar's grid position. Colored clouds append
``[r, g, b]`` for 12 features.
"""

import time
from typing import Tuple

import numpy as np
import numpy.typing as npt

from point_pillars.util import get_logger

from .pillarization import bin_points, order_pillars, validate_points

__all__ = ["create_pillars", "feature_size"]

logger = get_logger(__name__)

BASE_FEATURES = 9


def feature_size(num_columns: int) -> int:
    """Number of output features for a point array with ``num_columns`` columns."""
    # Color channels are appended after the geometric features
    return BASE_FEATURES + (num_columns - 4)


def create_pillars(
    points: npt.ArrayLike,
    max_points_per_pillar: int,
    max_pillars: int,
    x_step: float,
    y_step: float,
    x_min: float,
    x_max: float,
    y_min: float,
    y_max: float,
    z_min: float,
    z_max: float,
    print_time: bool = False,
    min_distance: float = -1.0,
    pillar_order: str = "first_seen",
) -> Tuple[npt.NDArray[np.float32], npt.NDArray[np.int32]]:
    """Create the pillar feature tensor and pillar index tensor.

    Args:
        points: [N, 4] (x, y, z, intensity) or [N, 7] (..., r, g, b) points
        max_points_per_pillar: Point slots per pillar; extra points are dropped
        max_pillars: Pillar slots; extra pillars are dropped
        x_step, y_step: Pillar size in meters
        x_min, x_max, y_min, y_max, z_min, z_max: Half-open grid range
        print_time: Log the runtime at INFO level
        min_distance: If positive, drop points closer than this in the x/y plane
        pillar_order: Which pillars win when there are more than ``max_pillars``
            (see ``order_pillars``)

    Returns:
        pillars: [1, max_pillars, max_points_per_pillar, 9|12] float32
        indices: [1, max_pillars, 3] int32 rows of (batch, x_index, y_index).
            Unused slots are (0, 0, 0), the same as a pillar in cell (0, 0).
    """
    start = time.perf_counter()

    points = validate_points(points)
    if max_points_per_pillar <= 0 or max_pillars <= 0:
        raise ValueError(
            "max_points_per_pillar and max_pillars must be positive, got "
            f"{max_points_per_pillar} and {max_pillars}"
        )

    pillars = bin_points(
        points,
        x_step=x_step,
        y_step=y_step,
        x_min=x_min,
        x_max=x_max,
        y_min=y_min,
        y_max=y_max,
        z_min=z_min,
        z_max=z_max,
        min_distance=min_distance,
    )

    n_features = feature_size(points.shape[1])
    tensor = np.zeros((1, max_pillars, max_points_per_pillar, n_features), dtype=np.float32)
    indices = np.zeros((1, max_pillars, 3), dtype=np.int32)

    x_step, y_step = np.float32(x_step), np.float32(y_step)
    x_min, y_min = np.float32(x_min), np.float32(y_min)

    selected = order_pillars(pillars, pillar_order)[:max_pillars]
    for pillar_id, pillar in enumerate(selected):
        n_points = min(pillar.num_points, max_points_per_pillar)
        rows = pillar.points[:n_points]
        offsets = pillar.centroid_offsets()[:n_points]

        indices[0, pillar_id, 1] = pillar.x_index
        indices[0, pillar_id, 2] = pillar.y_index

        pillar_x = np.float32(pillar.x_index) * x_step + x_min
        pillar_y = np.float32(pillar.y_index) * y_step + y_min

        out = tensor[0, pillar_id, :n_points]
        out[:, 0:4] = rows[:, 0:4]
        out[:, 4:7] = offsets
        out[:, 7] = rows[:, 0] - pillar_x
        out[:, 8] = rows[:, 1] - pillar_y
        if n_features > BASE_FEATURES:
            out[:, BASE_FEATURES:] = rows[:, 4:]

    if len(pillars) > max_pillars:
        logger.debug(
            f"Dropped {len(pillars) - max_pillars} of {len(pillars)} pillars "
            f"(max_pillars={max_pillars})"
        )

    duration = time.perf_counter() - start
    if print_time:
        logger.info(f"create_pillars took: {duration:.6f} seconds")

    return tensor, indices
