"""Top-down polygon geometry for oriented boxes.

Boxes are projected onto the x/y plane as four-corner polygons in clockwise
order, intersected with the Sutherland-Hodgman algorithm and measured with
the shoelace formula. Everything runs on plain Python floats.

Degenerate inputs are not guarded: intersecting parallel lines, or taking the
IOU of two zero-area boxes, follows IEEE semantics and yields ``inf``/``nan``
instead of raising.
"""

import math
from typing import List, Sequence, Tuple

from .boxes import BoundingBox3D, Point2D

__all__ = [
    "Polygon",
    "rotate",
    "box_to_polygon",
    "line_intersection",
    "clip_edge",
    "clip_polygon",
    "polygon_area",
    "iou",
]

Polygon = List[Point2D]

# Distance to a clipping edge, relative to coordinate magnitude, below which
# a vertex is treated as lying on the edge
ON_EDGE_TOLERANCE = 1e-9


def _ieee_divide(num: float, den: float) -> float:
    """Float division that returns inf/nan on a zero denominator."""
    if den != 0.0:
        return num / den
    if num == 0.0 or math.isnan(num):
        return math.nan
    return math.copysign(math.inf, num) * math.copysign(1.0, den)


def rotate(x: float, y: float, angle: float) -> Tuple[float, float]:
    """Rotate ``(x, y)`` about the origin by ``angle`` radians."""
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return x * cos_a - y * sin_a, x * sin_a + y * cos_a


def box_to_polygon(box: BoundingBox3D) -> Polygon:
    """Return the top-down rectangle of ``box`` in clockwise order.

    Corners are back-left, front-left, front-right, back-right with respect to
    the box's length (front) and width (left) axes.
    """
    half_l = 0.5 * box.length
    half_w = 0.5 * box.width
    corners = (
        (-half_l, half_w),
        (half_l, half_w),
        (half_l, -half_w),
        (-half_l, -half_w),
    )
    polygon = []
    for cx, cy in corners:
        rx, ry = rotate(cx, cy, box.yaw)
        polygon.append(Point2D(rx + box.x, ry + box.y))
    return polygon


def line_intersection(
    p1: Point2D, p2: Point2D, p3: Point2D, p4: Point2D
) -> Point2D:
    """Intersection of the infinite lines through ``p1-p2`` and ``p3-p4``."""
    x1, y1 = p1
    x2, y2 = p2
    x3, y3 = p3
    x4, y4 = p4
    den = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    cross_12 = x1 * y2 - y1 * x2
    cross_34 = x3 * y4 - y3 * x4
    x_num = cross_12 * (x3 - x4) - (x1 - x2) * cross_34
    y_num = cross_12 * (y3 - y4) - (y1 - y2) * cross_34
    return Point2D(_ieee_divide(x_num, den), _ieee_divide(y_num, den))


def clip_edge(
    polygon: Sequence[Point2D], edge_start: Point2D, edge_end: Point2D
) -> Polygon:
    """Clip ``polygon`` against the half plane to the right of one edge.

    A vertex is inside when it lies to the right of ``edge_start -> edge_end``,
    which is the interior side of a clockwise clipping polygon. Vertices on the
    edge line, up to rounding, count as inside, so subject edges collinear
    with the clipping edge are kept as they are.
    """
    x1, y1 = edge_start
    x2, y2 = edge_end
    clipped: Polygon = []

    # Cross products scale with edge length times distance to the line
    scale = max(1.0, abs(x1), abs(y1), abs(x2), abs(y2))
    eps = ON_EDGE_TOLERANCE * math.hypot(x2 - x1, y2 - y1) * scale

    n = len(polygon)
    for i in range(n):
        current = polygon[i]
        following = polygon[(i + 1) % n]

        i_pos = (x2 - x1) * (current.y - y1) - (y2 - y1) * (current.x - x1)
        k_pos = (x2 - x1) * (following.y - y1) - (y2 - y1) * (following.x - x1)

        if i_pos <= eps and k_pos <= eps:
            clipped.append(following)
        elif i_pos > eps and k_pos <= eps:
            clipped.append(line_intersection(edge_start, edge_end, current, following))
            clipped.append(following)
        elif i_pos <= eps and k_pos > eps:
            clipped.append(line_intersection(edge_start, edge_end, current, following))
        # both outside: nothing is kept

    return clipped


def clip_polygon(subject: Sequence[Point2D], clipper: Sequence[Point2D]) -> Polygon:
    """Sutherland-Hodgman intersection of ``subject`` with a convex ``clipper``."""
    clipped = list(subject)
    n = len(clipper)
    for i in range(n):
        clipped = clip_edge(clipped, clipper[i], clipper[(i + 1) % n])
    return clipped


def polygon_area(polygon: Sequence[Point2D]) -> float:
    """Unsigned area of a simple polygon (shoelace formula)."""
    if len(polygon) < 3:
        return 0.0

    area = 0.0
    j = len(polygon) - 1
    for i in range(len(polygon)):
        area += (polygon[j].x + polygon[i].x) * (polygon[j].y - polygon[i].y)
        j = i
    return abs(area / 2.0)


def iou(box_a: BoundingBox3D, box_b: BoundingBox3D) -> float:
    """Top-down intersection over union of two oriented boxes."""
    polygon_a = box_to_polygon(box_a)
    polygon_b = box_to_polygon(box_b)
    overlap = clip_polygon(polygon_a, polygon_b)

    area_a = polygon_area(polygon_a)
    area_b = polygon_area(polygon_b)
    area_overlap = polygon_area(overlap)

    return _ieee_divide(area_overlap, area_a + area_b - area_overlap)
