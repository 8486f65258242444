"""Config-bound target encoder."""

from typing import Any, Dict, Optional, Tuple

import numpy as np
import numpy.typing as npt

from point_pillars.util import configure_logging, get_section, grid_kwargs, load_config

from .anchors import anchor_arrays_from_config
from .targets import NUM_TARGET_CHANNELS, TargetEncoding, encode_targets, target_grid_size

__all__ = ["TargetEncoder"]


class TargetEncoder:
    """Encodes ground-truth boxes with a fixed grid, anchor set and thresholds.

    Args:
        config: Configuration from ``load_config``; the packaged default is
            used when omitted.

    Example:
        >>> encoder = TargetEncoder()
        >>> target = encoder(positions, dimensions, yaws, class_ids)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        if config is None:
            config = load_config()
        configure_logging(config)

        targets = get_section(config, "targets")

        self.grid = grid_kwargs(config)
        self.anchor_dimensions, self.anchor_z_heights, self.anchor_yaws = (
            anchor_arrays_from_config(config)
        )
        self.positive_threshold = float(targets["positive_threshold"])
        self.negative_threshold = float(targets["negative_threshold"])
        self.angle_threshold = float(targets["angle_threshold"])
        self.downscaling_factor = int(targets["downscaling_factor"])
        self.nb_classes = int(targets["nb_classes"])

        if self.negative_threshold > self.positive_threshold:
            raise ValueError(
                f"negative_threshold ({self.negative_threshold}) must not exceed "
                f"positive_threshold ({self.positive_threshold})"
            )

    @property
    def nb_anchors(self) -> int:
        return len(self.anchor_dimensions)

    @property
    def grid_size(self) -> Tuple[int, int]:
        g = self.grid
        return target_grid_size(
            g["x_step"], g["y_step"], g["x_min"], g["x_max"], g["y_min"], g["y_max"],
            self.downscaling_factor,
        )

    def output_shape(self, nb_objects: int) -> Tuple[int, int, int, int, int]:
        x_size, y_size = self.grid_size
        return (nb_objects, x_size, y_size, self.nb_anchors, NUM_TARGET_CHANNELS)

    def encode(
        self,
        object_positions: npt.ArrayLike,
        object_dimensions: npt.ArrayLike,
        object_yaws: npt.ArrayLike,
        object_class_ids: npt.ArrayLike,
        print_time: bool = False,
    ) -> TargetEncoding:
        """Encode one frame of ground-truth boxes; see ``encode_targets``."""
        return encode_targets(
            object_positions,
            object_dimensions,
            object_yaws,
            object_class_ids,
            self.anchor_dimensions,
            self.anchor_z_heights,
            self.anchor_yaws,
            positive_threshold=self.positive_threshold,
            negative_threshold=self.negative_threshold,
            angle_threshold=self.angle_threshold,
            nb_classes=self.nb_classes,
            downscaling_factor=self.downscaling_factor,
            print_time=print_time,
            **self.grid,
        )

    def __call__(self, *args, **kwargs) -> npt.NDArray[np.float32]:
        return self.encode(*args, **kwargs).tensor

    def __repr__(self) -> str:
        return (
            f"TargetEncoder(\n"
            f"  anchors={self.nb_anchors},\n"
            f"  thresholds=({self.negative_threshold}, {self.positive_threshold}),\n"
            f"  angle_threshold={self.angle_threshold},\n"
            f"  downscaling_factor={self.downscaling_factor},\n"
            f"  grid_size={self.grid_size}\n"
            f")"
        )
