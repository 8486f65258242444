"""Point cloud encoding: pillarization and PointPillars input tensors.

Components:
- Pillarization: bin raw points into grid cells, keeping input order per cell
- Pillar features: dense [1, P, N, 9|12] feature tensor and pillar indices
- Pillar encoder: torch module wrapper built from the YAML config
"""

from .pillarization import (
    CellKey,
    Pillar,
    PILLAR_ORDERS,
    validate_points,
    bin_points,
    order_pillars,
)
from .pillar_features import create_pillars, feature_size
from .pillar_encoder import PillarEncoder, create_pillar_encoder

__all__ = [
    'CellKey',
    'Pillar',
    'PILLAR_ORDERS',
    'validate_points',
    'bin_points',
    'order_pillars',
    'create_pillars',
    'feature_size',
    'PillarEncoder',
    'create_pillar_encoder',
]
