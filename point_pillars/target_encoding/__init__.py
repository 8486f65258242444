"""Anchor target encoding for PointPillars training targets."""

from .anchors import anchor_boxes, anchor_arrays_from_config
from .targets import (
    NUM_TARGET_CHANNELS,
    FALLBACK_RADIUS,
    TargetEncoding,
    target_grid_size,
    label_boxes,
    encode_targets,
    create_pillars_target,
)
from .target_encoder import TargetEncoder

__all__ = [
    'anchor_boxes',
    'anchor_arrays_from_config',
    'NUM_TARGET_CHANNELS',
    'FALLBACK_RADIUS',
    'TargetEncoding',
    'target_grid_size',
    'label_boxes',
    'encode_targets',
    'create_pillars_target',
    'TargetEncoder',
]
