"""torch front end for the pillar feature encoder."""

from typing import Any, Dict, Optional, Tuple

import numpy as np
import torch
import torch.nn as nn

from point_pillars.util import configure_logging, get_section, grid_kwargs, load_config

from .pillar_features import create_pillars, feature_size
from .pillarization import PILLAR_ORDERS

__all__ = ["PillarEncoder", "create_pillar_encoder"]


class PillarEncoder(nn.Module):
    """Hard pillarization with fixed pillar and point capacities.

    Wraps ``create_pillars`` so a point cloud tensor can be turned into the
    dense network input directly inside a torch pipeline. The module has no
    parameters.

    Args:
        x_step, y_step: Pillar size (x, y) in meters
        x_min, x_max, y_min, y_max, z_min, z_max: Half-open grid range
        max_points_per_pillar: Maximum number of points to keep per pillar
        max_pillars: Maximum number of pillars to generate
        min_distance: If positive, drop points closer than this in the x/y plane
        pillar_order: Pillar selection policy when capacity is exceeded

    Example:
        >>> encoder = PillarEncoder(
        ...     x_step=0.16, y_step=0.16,
        ...     x_min=0.0, x_max=80.64, y_min=-40.32, y_max=40.32,
        ...     z_min=-1.0, z_max=3.0,
        ...     max_points_per_pillar=100, max_pillars=12000,
        ... )
        >>> points = torch.rand(10000, 4)  # [N, 4] (x, y, z, intensity)
        >>> pillars, indices = encoder(points)
    """

    def __init__(
        self,
        x_step: float,
        y_step: float,
        x_min: float,
        x_max: float,
        y_min: float,
        y_max: float,
        z_min: float,
        z_max: float,
        max_points_per_pillar: int = 100,
        max_pillars: int = 12000,
        min_distance: float = -1.0,
        pillar_order: str = "first_seen",
    ):
        super().__init__()

        if pillar_order not in PILLAR_ORDERS:
            raise ValueError(f"Unknown pillar order: {pillar_order}")

        self.x_step = x_step
        self.y_step = y_step
        self.point_cloud_range = (x_min, y_min, z_min, x_max, y_max, z_max)
        self.max_points_per_pillar = max_points_per_pillar
        self.max_pillars = max_pillars
        self.min_distance = min_distance
        self.pillar_order = pillar_order

        # Same convention as voxel grids: cells per axis
        self.grid_size = [
            int((x_max - x_min) / x_step),
            int((y_max - y_min) / y_step),
        ]

    @torch.no_grad()
    def forward(self, points: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        """Pillarize one point cloud.

        Args:
            points: [N, 4] or [N, 7] point cloud

        Returns:
            pillars: [1, max_pillars, max_points_per_pillar, 9|12] float32
            indices: [1, max_pillars, 3] int32 (batch, x_index, y_index)
        """
        x_min, y_min, z_min, x_max, y_max, z_max = self.point_cloud_range
        pillars, indices = create_pillars(
            points.detach().cpu().numpy().astype(np.float32, copy=False),
            max_points_per_pillar=self.max_points_per_pillar,
            max_pillars=self.max_pillars,
            x_step=self.x_step,
            y_step=self.y_step,
            x_min=x_min,
            x_max=x_max,
            y_min=y_min,
            y_max=y_max,
            z_min=z_min,
            z_max=z_max,
            min_distance=self.min_distance,
            pillar_order=self.pillar_order,
        )
        return (
            torch.from_numpy(pillars).to(points.device),
            torch.from_numpy(indices).to(points.device),
        )

    def output_shape(self, num_columns: int = 4) -> Tuple[int, int, int, int]:
        """Shape of the pillar tensor for a point cloud with ``num_columns`` columns."""
        return (1, self.max_pillars, self.max_points_per_pillar, feature_size(num_columns))

    def extra_repr(self) -> str:
        return (
            f"step=({self.x_step}, {self.y_step}), "
            f"point_cloud_range={self.point_cloud_range}, "
            f"max_points_per_pillar={self.max_points_per_pillar}, "
            f"max_pillars={self.max_pillars}"
        )


def create_pillar_encoder(config: Optional[Dict[str, Any]] = None) -> PillarEncoder:
    """Build a ``PillarEncoder`` from a loaded configuration.

    Args:
        config: Configuration from ``load_config``; the packaged default is
            used when omitted.

    Returns:
        Configured PillarEncoder
    """
    if config is None:
        config = load_config()
    configure_logging(config)

    grid = get_section(config, "grid")
    pillars = get_section(config, "pillars")

    return PillarEncoder(
        **grid_kwargs(config),
        max_points_per_pillar=int(pillars["max_points_per_pillar"]),
        max_pillars=int(pillars["max_pillars"]),
        min_distance=float(grid.get("min_distance", -1.0)),
        pillar_order=pillars.get("pillar_order", "first_seen"),
    )
