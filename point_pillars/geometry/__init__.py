"""Geometry engine: oriented boxes, polygon clipping and top-down IOU."""

from .boxes import (
    PI,
    HALF_PI,
    TWO_PI,
    ONE_AND_HALF_PI,
    Point2D,
    BoundingBox3D,
    place_anchor,
)
from .polygon import (
    Polygon,
    rotate,
    box_to_polygon,
    line_intersection,
    clip_edge,
    clip_polygon,
    polygon_area,
    iou,
)

__all__ = [
    "PI",
    "HALF_PI",
    "TWO_PI",
    "ONE_AND_HALF_PI",
    "Point2D",
    "BoundingBox3D",
    "place_anchor",
    "Polygon",
    "rotate",
    "box_to_polygon",
    "line_intersection",
    "clip_edge",
    "clip_polygon",
    "polygon_area",
    "iou",
]
