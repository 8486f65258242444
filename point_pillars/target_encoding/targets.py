"""Anchor matching and regression target encoding.

For every ground-truth box the encoder scans a window of grid cells around
the box, places every anchor type at every cell, and scores the placement
with the top-down IOU. Each (cell, anchor) pair gets a label:

     1  positive  (IOU > positive_threshold), with regression targets
     0  negative  (IOU < negative_threshold)
    -1  ignore    (anything in between, including NaN)

If no pair in the window is positive, the best scoring anchor is forced to be
positive at the object's own cell and its 5x5 neighbourhood is set to ignore.

Output channels per (object, x cell, y cell, anchor):

    0       label
    1, 2    x/y offset divided by the anchor's planar diagonal
    3       z offset divided by the anchor height
    4, 5, 6 log ratio of length/width/height to the anchor's
    7       sine of the unoriented yaw residual in [-pi/2, pi/2]
    8       heading flip flag
    9       class id
"""

import logging
import math
import time
from typing import List, NamedTuple, Optional, Tuple

import numpy as np
import numpy.typing as npt

from point_pillars.geometry import (
    HALF_PI,
    ONE_AND_HALF_PI,
    PI,
    TWO_PI,
    BoundingBox3D,
    iou,
    place_anchor,
)
from point_pillars.util import get_logger

from .anchors import anchor_boxes

__all__ = [
    "NUM_TARGET_CHANNELS",
    "FALLBACK_RADIUS",
    "TargetEncoding",
    "target_grid_size",
    "label_boxes",
    "encode_targets",
    "create_pillars_target",
]

logger = get_logger(__name__)

NUM_TARGET_CHANNELS = 10
# Half width of the neighbourhood written by the fallback assignment
FALLBACK_RADIUS = 2


class TargetEncoding(NamedTuple):
    """Target tensor plus the number of objects written into it."""

    tensor: npt.NDArray[np.float32]
    object_count: int


def _clip(n: int, lower: int, upper: int) -> int:
    return max(lower, min(n, upper))


def _cell_index(value: float, minimum: float, step: float) -> int:
    """Grid cell of ``value``, computed in float32 like the point binner."""
    return int(np.floor((np.float32(value) - np.float32(minimum)) / np.float32(step)))


def _in_grid(label: BoundingBox3D, x_min: float, x_max: float, y_min: float, y_max: float) -> bool:
    """Half-open range test on the label center, in float32 like the point binner."""
    x, y = np.float32(label.x), np.float32(label.y)
    return bool(
        np.float32(x_min) <= x < np.float32(x_max)
        and np.float32(y_min) <= y < np.float32(y_max)
    )


def target_grid_size(
    x_step: float,
    y_step: float,
    x_min: float,
    x_max: float,
    y_min: float,
    y_max: float,
    downscaling_factor: int,
) -> Tuple[int, int]:
    """Number of output cells along x and y at the given downscaling factor."""
    x_size = int(math.floor((x_max - x_min) / (x_step * downscaling_factor)))
    y_size = int(math.floor((y_max - y_min) / (y_step * downscaling_factor)))
    return x_size, y_size


def label_boxes(
    object_positions: npt.ArrayLike,
    object_dimensions: npt.ArrayLike,
    object_yaws: npt.ArrayLike,
    object_class_ids: npt.ArrayLike,
) -> List[BoundingBox3D]:
    """Parse per-object arrays into ground-truth boxes.

    Args:
        object_positions: [M, 3] box centers (x, y, z)
        object_dimensions: [M, 3] (length, width, height)
        object_yaws: [M] orientations
        object_class_ids: [M] integer class ids

    Returns:
        List of M label boxes in input order
    """
    positions = np.asarray(object_positions, dtype=np.float32)
    dimensions = np.asarray(object_dimensions, dtype=np.float32)
    yaws = np.asarray(object_yaws, dtype=np.float32).reshape(-1)
    class_ids = np.asarray(object_class_ids).reshape(-1)

    if dimensions.ndim != 2 or len(dimensions) == 0:
        raise ValueError("Object length is zero")
    n_objects = len(dimensions)
    if positions.ndim != 2 or positions.shape[1] < 3 or dimensions.shape[1] < 3:
        raise ValueError(
            "object positions and dimensions must have shape (m, 3), got "
            f"{positions.shape} and {dimensions.shape}"
        )
    if len(positions) != n_objects or len(yaws) != n_objects or len(class_ids) != n_objects:
        raise ValueError(
            f"Got {len(positions)} positions, {n_objects} dimensions, "
            f"{len(yaws)} yaws and {len(class_ids)} class ids"
        )

    return [
        BoundingBox3D.label(
            x=pos[0],
            y=pos[1],
            z=pos[2],
            length=dims[0],
            width=dims[1],
            height=dims[2],
            yaw=yaw,
            class_id=class_id,
        )
        for pos, dims, yaw, class_id in zip(positions, dimensions, yaws, class_ids)
    ]


def _write_positive(
    cell: npt.NDArray[np.float32], label: BoundingBox3D, anchor: BoundingBox3D
) -> None:
    """Fill all channels of one (cell, anchor) slot with a positive match."""
    diag = np.float64(anchor.planar_diagonal)

    cell[0] = 1
    cell[1] = np.float64(label.x - anchor.x) / diag
    cell[2] = np.float64(label.y - anchor.y) / diag
    cell[3] = np.float64(label.z - anchor.z) / np.float64(anchor.height)

    cell[4:7] = np.log(
        np.array([label.length, label.width, label.height])
        / np.array([anchor.length, anchor.width, anchor.height])
    )

    # Unoriented residual, folded so that the sine stays invertible
    delta_yaw_no = math.fmod(label.yaw - anchor.base_yaw, PI)
    cell[7] = math.sin(-delta_yaw_no if abs(delta_yaw_no) > HALF_PI else delta_yaw_no)

    # Literal flip condition of the reference encoder; after fmod it is
    # never satisfied, so the flag is always 0.
    delta_yaw_o = math.fmod(label.yaw - anchor.base_yaw, TWO_PI)
    if abs(delta_yaw_o) < HALF_PI and abs(delta_yaw_o) > ONE_AND_HALF_PI:
        cell[8] = 1
    else:
        cell[8] = 0

    cell[9] = label.class_id


def _matching_yaw(label: BoundingBox3D, anchor: BoundingBox3D, angle_threshold: float) -> float:
    """Yaw an anchor is evaluated at for this label.

    Anchors whose reference orientation is within ``angle_threshold`` of the
    label (modulo pi) take the label's yaw, so rotated boxes between two
    anchor orientations are still covered.
    """
    delta_yaw_no = math.fmod(label.yaw - anchor.base_yaw, PI)
    if abs(delta_yaw_no) < angle_threshold or (PI - abs(delta_yaw_no)) < angle_threshold:
        return label.yaw
    return anchor.base_yaw


def _encode_object(
    target: npt.NDArray[np.float32],
    label: BoundingBox3D,
    anchors: List[BoundingBox3D],
    positive_threshold: float,
    negative_threshold: float,
    angle_threshold: float,
    cell_x: float,
    cell_y: float,
    x_min: float,
    y_min: float,
    log_level: int,
    object_id: int,
) -> float:
    """Write the targets of one object into its [x, y, anchor, channel] slice.

    Returns:
        Best IOU found in the search window
    """
    x_size, y_size = target.shape[0], target.shape[1]

    # Zone in on the cells the object can possibly overlap
    offset = int(math.ceil(label.planar_diagonal / cell_x))
    x_c = _cell_index(label.x, x_min, cell_x)
    y_c = _cell_index(label.y, y_min, cell_y)
    x_start, x_end = _clip(x_c - offset, 0, x_size), _clip(x_c + offset, 0, x_size)
    y_start, y_end = _clip(y_c - offset, 0, y_size), _clip(y_c + offset, 0, y_size)

    yaws = [_matching_yaw(label, anchor, angle_threshold) for anchor in anchors]

    max_iou = 0.0
    best_anchor: Optional[BoundingBox3D] = None
    best_anchor_id = 0
    for x_id in range(x_start, x_end):
        x = x_id * cell_x + x_min
        for y_id in range(y_start, y_end):
            y = y_id * cell_y + y_min
            for anchor_id, anchor in enumerate(anchors):
                placed = place_anchor(anchor, x, y, yaws[anchor_id])
                overlap = iou(placed, label)

                if max_iou < overlap:
                    max_iou = overlap
                    best_anchor = placed
                    best_anchor_id = anchor_id

                if overlap > positive_threshold:
                    _write_positive(target[x_id, y_id, anchor_id], label, placed)
                elif overlap < negative_threshold:
                    target[x_id, y_id, anchor_id, 0] = 0
                else:
                    target[x_id, y_id, anchor_id, 0] = -1

    if max_iou > positive_threshold:
        logger.log(
            log_level,
            f"At least 1 anchor was positively matched for object {object_id}. "
            f"Best IOU was {max_iou}.",
        )
        return max_iou

    logger.log(
        log_level,
        f"There was no sufficiently overlapping anchor anywhere for object {object_id}. "
        f"Best IOU was {max_iou}. Adding the best location regardless of threshold.",
    )

    x_home, y_home = x_c, y_c

    if best_anchor is None:
        # Nothing overlapped at all: fall back to the first anchor at home
        best_anchor = place_anchor(
            anchors[0],
            _clip(x_home, 0, x_size - 1) * cell_x + x_min,
            _clip(y_home, 0, y_size - 1) * cell_y + y_min,
            anchors[0].base_yaw,
        )
        best_anchor_id = 0

    for dx in range(-FALLBACK_RADIUS, FALLBACK_RADIUS + 1):
        for dy in range(-FALLBACK_RADIUS, FALLBACK_RADIUS + 1):
            x_id = _clip(x_home + dx, 0, x_size - 1)
            y_id = _clip(y_home + dy, 0, y_size - 1)

            if dx == 0 and dy == 0:
                _write_positive(target[x_id, y_id, best_anchor_id], label, best_anchor)
            elif 0 <= x_home + dx < x_size and 0 <= y_home + dy < y_size:
                # Clipped neighbours would land on the positive cell
                target[x_id, y_id, best_anchor_id, 0] = -1

    return max_iou


def encode_targets(
    object_positions: npt.ArrayLike,
    object_dimensions: npt.ArrayLike,
    object_yaws: npt.ArrayLike,
    object_class_ids: npt.ArrayLike,
    anchor_dimensions: npt.ArrayLike,
    anchor_z_heights: npt.ArrayLike,
    anchor_yaws: npt.ArrayLike,
    positive_threshold: float,
    negative_threshold: float,
    angle_threshold: float,
    nb_classes: int,
    downscaling_factor: int,
    x_step: float,
    y_step: float,
    x_min: float,
    x_max: float,
    y_min: float,
    y_max: float,
    z_min: float,
    z_max: float,
    print_time: bool = False,
) -> TargetEncoding:
    """Encode ground-truth boxes against anchors.

    Same arguments as ``create_pillars_target``; additionally reports how
    many objects were inside the grid and written to the tensor.

    Returns:
        TargetEncoding(tensor, object_count). Objects occupy the leading
        ``object_count`` slices in input order; the remaining slices belong
        to rejected objects and stay zero.
    """
    start = time.perf_counter()
    log_level = logging.INFO if print_time else logging.DEBUG

    anchors = anchor_boxes(anchor_dimensions, anchor_z_heights, anchor_yaws)
    labels = label_boxes(object_positions, object_dimensions, object_yaws, object_class_ids)
    nb_anchors = len(anchors)
    nb_objects = len(labels)

    if downscaling_factor <= 0:
        raise ValueError(f"downscaling_factor must be positive, got {downscaling_factor}")
    x_size, y_size = target_grid_size(
        x_step, y_step, x_min, x_max, y_min, y_max, downscaling_factor
    )
    if x_size <= 0 or y_size <= 0:
        raise ValueError(
            f"Target grid is empty ({x_size} x {y_size}) for the given range, "
            f"steps and downscaling factor {downscaling_factor}"
        )

    # Exclude the max values since they fall outside the discretized grid
    in_range = [label for label in labels if _in_grid(label, x_min, x_max, y_min, y_max)]

    tensor = np.zeros(
        (nb_objects, x_size, y_size, nb_anchors, NUM_TARGET_CHANNELS), dtype=np.float32
    )
    logger.log(
        log_level,
        f"Received {len(in_range)} objects ({nb_objects - len(in_range)} outside the grid, "
        f"{nb_classes} classes)",
    )

    cell_x = x_step * downscaling_factor
    cell_y = y_step * downscaling_factor
    with np.errstate(divide="ignore", invalid="ignore"):
        for object_id, label in enumerate(in_range):
            _encode_object(
                tensor[object_id],
                label,
                anchors,
                positive_threshold=positive_threshold,
                negative_threshold=negative_threshold,
                angle_threshold=angle_threshold,
                cell_x=cell_x,
                cell_y=cell_y,
                x_min=x_min,
                y_min=y_min,
                log_level=log_level,
                object_id=object_id,
            )

    duration = time.perf_counter() - start
    logger.log(log_level, f"create_pillars_target took: {duration:.6f} seconds")

    return TargetEncoding(tensor, len(in_range))


def create_pillars_target(
    object_positions: npt.ArrayLike,
    object_dimensions: npt.ArrayLike,
    object_yaws: npt.ArrayLike,
    object_class_ids: npt.ArrayLike,
    anchor_dimensions: npt.ArrayLike,
    anchor_z_heights: npt.ArrayLike,
    anchor_yaws: npt.ArrayLike,
    positive_threshold: float,
    negative_threshold: float,
    angle_threshold: float,
    nb_classes: int,
    downscaling_factor: int,
    x_step: float,
    y_step: float,
    x_min: float,
    x_max: float,
    y_min: float,
    y_max: float,
    z_min: float,
    z_max: float,
    print_time: bool = False,
) -> npt.NDArray[np.float32]:
    """Create the PointPillars ground-truth tensor.

    Args:
        object_positions: [M, 3] box centers
        object_dimensions: [M, 3] (length, width, height)
        object_yaws: [M] box orientations
        object_class_ids: [M] class ids
        anchor_dimensions: [A, 3] anchor (length, width, height)
        anchor_z_heights: [A] anchor center heights
        anchor_yaws: [A] anchor reference orientations
        positive_threshold: IOU above which a pair is positive
        negative_threshold: IOU below which a pair is negative
        angle_threshold: Max yaw residual (mod pi) at which anchors take the label's yaw
        nb_classes: Number of classes (not used by the encoding)
        downscaling_factor: Output stride relative to the pillar grid
        x_step, y_step: Pillar size in meters
        x_min, x_max, y_min, y_max, z_min, z_max: Grid range
        print_time: Log matching diagnostics and runtime at INFO level

    Returns:
        [M, x_size, y_size, A, 10] float32 target tensor

    Raises:
        ValueError: If there are no anchors or no objects, or the arrays
            have inconsistent shapes.
    """
    return encode_targets(
        object_positions,
        object_dimensions,
        object_yaws,
        object_class_ids,
        anchor_dimensions,
        anchor_z_heights,
        anchor_yaws,
        positive_threshold=positive_threshold,
        negative_threshold=negative_threshold,
        angle_threshold=angle_threshold,
        nb_classes=nb_classes,
        downscaling_factor=downscaling_factor,
        x_step=x_step,
        y_step=y_step,
        x_min=x_min,
        x_max=x_max,
        y_min=y_min,
        y_max=y_max,
        z_min=z_min,
        z_max=z_max,
        print_time=print_time,
    ).tensor
