"""Spatial binning of raw points into vertical grid cells ("pillars").

Points are filtered to the half-open grid range, keyed by their integer
``(x_index, y_index)`` cell and grouped per cell. Grouping uses the same
sort-and-unique approach as hard voxelization, but keeps the points of each
cell in their input order so that per-pillar truncation always drops the
last-seen points.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
import numpy.typing as npt


__all__ = [
    "CellKey",
    "Pillar",
    "PILLAR_ORDERS",
    "validate_points",
    "bin_points",
    "order_pillars",
]

CellKey = Tuple[int, int]

# Supported column layouts: x, y, z, intensity [, r, g, b]
POINT_COLUMNS = (4, 7)
PILLAR_ORDERS = ("first_seen", "index", "occupancy")


@dataclass
class Pillar:
    """Points sharing one grid cell.

    Args:
        x_index: Cell index along x
        y_index: Cell index along y
        points: [P, 4|7] point rows in input order, intensity clamped to [0, 1]
        first_seen: Position of the cell's first point among the kept points
    """

    x_index: int
    y_index: int
    points: npt.NDArray[np.float32]
    first_seen: int = 0

    @property
    def key(self) -> CellKey:
        return self.x_index, self.y_index

    @property
    def num_points(self) -> int:
        return len(self.points)

    def centroid(self) -> npt.NDArray[np.float32]:
        """Arithmetic mean of the xyz coordinates of all points in the cell."""
        return self.points[:, :3].mean(axis=0, dtype=np.float32)

    def centroid_offsets(self) -> npt.NDArray[np.float32]:
        """[P, 3] offsets ``(xc, yc, zc)`` of every point from the centroid."""
        return self.points[:, :3] - self.centroid()


def validate_points(points: npt.ArrayLike) -> npt.NDArray[np.float32]:
    """Check the point array layout and return it as float32.

    Raises:
        ValueError: If the array is not (N, 4) or (N, 7).
    """
    points = np.asarray(points, dtype=np.float32)
    if points.ndim != 2 or points.shape[1] not in POINT_COLUMNS:
        raise ValueError(
            "numpy array with shape (n, 4) or (n, 7) expected "
            f"(n being the number of points), got {points.shape}"
        )
    return points


def bin_points(
    points: npt.ArrayLike,
    x_step: float,
    y_step: float,
    x_min: float,
    x_max: float,
    y_min: float,
    y_max: float,
    z_min: float,
    z_max: float,
    min_distance: float = -1.0,
) -> Dict[CellKey, Pillar]:
    """Group points by grid cell.

    Args:
        points: [N, 4] (x, y, z, intensity) or [N, 7] (..., r, g, b) points
        x_step, y_step: Cell size in meters
        x_min, x_max, y_min, y_max, z_min, z_max: Half-open grid range
        min_distance: If positive, drop points closer than this to the
            sensor in the x/y plane

    Returns:
        Cell key -> Pillar, ordered by the first point seen in each cell.
    """
    points = validate_points(points)

    x_min, x_max = np.float32(x_min), np.float32(x_max)
    y_min, y_max = np.float32(y_min), np.float32(y_max)
    z_min, z_max = np.float32(z_min), np.float32(z_max)
    x_step, y_step = np.float32(x_step), np.float32(y_step)

    x, y, z = points[:, 0], points[:, 1], points[:, 2]
    mask = (
        (x >= x_min) & (x < x_max) &
        (y >= y_min) & (y < y_max) &
        (z >= z_min) & (z < z_max)
    )
    if min_distance > 0:
        mask &= (x ** 2 + y ** 2) >= np.float32(min_distance) ** 2

    kept = points[mask].copy()
    if len(kept) == 0:
        return {}
    kept[:, 3] = np.clip(kept[:, 3], 0.0, 1.0)

    x_idx = np.floor((kept[:, 0] - x_min) / x_step).astype(np.int64)
    y_idx = np.floor((kept[:, 1] - y_min) / y_step).astype(np.int64)
    keys = np.stack([x_idx, y_idx], axis=1)

    unique_keys, first_index, inverse, counts = np.unique(
        keys, axis=0, return_index=True, return_inverse=True, return_counts=True
    )
    inverse = inverse.reshape(-1)

    # Stable sort keeps input order of points inside each cell
    grouped = kept[np.argsort(inverse, kind="stable")]
    groups = np.split(grouped, np.cumsum(counts)[:-1])

    pillars: Dict[CellKey, Pillar] = {}
    for cell in np.argsort(first_index, kind="stable"):
        key = (int(unique_keys[cell, 0]), int(unique_keys[cell, 1]))
        pillars[key] = Pillar(
            x_index=key[0],
            y_index=key[1],
            points=groups[cell],
            first_seen=int(first_index[cell]),
        )

    return pillars


def order_pillars(pillars: Dict[CellKey, Pillar], policy: str = "first_seen") -> List[Pillar]:
    """Return pillars in the emission order given by ``policy``.

    ``first_seen`` keeps the binning order, ``index`` sorts by ascending
    ``(x_index, y_index)`` and ``occupancy`` puts the fullest cells first
    (ties keep the binning order).
    """
    if policy == "first_seen":
        return list(pillars.values())
    if policy == "index":
        return [pillars[key] for key in sorted(pillars)]
    if policy == "occupancy":
        return sorted(pillars.values(), key=lambda p: -p.num_points)
    raise ValueError(f"Unknown pillar order: {policy}. Expected one of {PILLAR_ORDERS}")
