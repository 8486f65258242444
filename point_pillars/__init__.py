"""PointPillars input and target encoding.

Two independent operations:
- create_pillars: raw points -> pillar feature tensor + pillar index tensor
- create_pillars_target: ground-truth boxes + anchors -> target tensor
"""

from .point_cloud_encoding import (
    create_pillars,
    bin_points,
    PillarEncoder,
    create_pillar_encoder,
)
from .target_encoding import (
    create_pillars_target,
    encode_targets,
    TargetEncoding,
    TargetEncoder,
)
from .geometry import BoundingBox3D, iou

__all__ = [
    "create_pillars",
    "bin_points",
    "PillarEncoder",
    "create_pillar_encoder",
    "create_pillars_target",
    "encode_targets",
    "TargetEncoding",
    "TargetEncoder",
    "BoundingBox3D",
    "iou",
]

__version__ = "0.1.0"
