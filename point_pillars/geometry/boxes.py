"""Box and point value types used by the geometry engine and target encoder."""

import math
from dataclasses import dataclass, replace
from typing import NamedTuple

__all__ = [
    "PI",
    "HALF_PI",
    "TWO_PI",
    "ONE_AND_HALF_PI",
    "Point2D",
    "BoundingBox3D",
    "place_anchor",
]

PI: float = math.pi
HALF_PI: float = math.pi / 2
TWO_PI: float = 2 * math.pi
ONE_AND_HALF_PI: float = 1.5 * math.pi


class Point2D(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class BoundingBox3D:
    """Oriented 3D box.

    ``base_yaw`` is only meaningful for anchors: it is the reference
    orientation of the anchor template, while ``yaw`` is the orientation the
    box is evaluated at. ``class_id`` is only meaningful for labels.
    """

    x: float
    y: float
    z: float
    length: float
    width: float
    height: float
    yaw: float
    base_yaw: float = 0.0
    class_id: float = 0.0

    @classmethod
    def anchor(
        cls,
        length: float,
        width: float,
        height: float,
        z: float,
        yaw: float,
    ) -> "BoundingBox3D":
        """Anchor template at the origin with ``base_yaw`` fixed to ``yaw``."""
        return cls(
            x=0.0,
            y=0.0,
            z=float(z),
            length=float(length),
            width=float(width),
            height=float(height),
            yaw=float(yaw),
            base_yaw=float(yaw),
        )

    @classmethod
    def label(
        cls,
        x: float,
        y: float,
        z: float,
        length: float,
        width: float,
        height: float,
        yaw: float,
        class_id: float = 0.0,
    ) -> "BoundingBox3D":
        """Ground-truth box."""
        return cls(
            x=float(x),
            y=float(y),
            z=float(z),
            length=float(length),
            width=float(width),
            height=float(height),
            yaw=float(yaw),
            class_id=float(class_id),
        )

    @property
    def planar_diagonal(self) -> float:
        return math.sqrt(self.width ** 2 + self.length ** 2)


def place_anchor(anchor: BoundingBox3D, x: float, y: float, yaw: float) -> BoundingBox3D:
    """Return a copy of ``anchor`` centered at ``(x, y)`` and rotated to ``yaw``."""
    return replace(anchor, x=x, y=y, yaw=yaw)
