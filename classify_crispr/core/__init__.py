"""
Core classification modules for classify_crispr.

Author: Kevin R. Roy
"""

from .cigar import (
    CigarElement,
    CigarOperator,
    CigarWalk,
    cigar_from_tuples,
    cigar_to_string,
    cigar_to_tuples,
    parse_cigar_string,
    read_position_at_reference_position,
    soft_clip_past_reference_end,
    walk_cigar,
)
from .classification import (
    NEAR_TARGET_MARGIN,
    ClassificationLabel,
    ClassificationResult,
    TargetClassifier,
    classify_read,
    covers_target,
    is_in_frame,
    is_near_target,
    scan_target_window,
)
from .models import AlignedRead
from .normalization import (
    clip_overhanging_alignment,
    clip_overhanging_mate_cigar,
    fix_unmapped_mapping_quality,
    normalize_read,
)
from .tally import ClassificationTally

__all__ = [
    # CIGAR
    'CigarOperator',
    'CigarElement',
    'CigarWalk',
    'cigar_from_tuples',
    'cigar_to_tuples',
    'cigar_to_string',
    'parse_cigar_string',
    'walk_cigar',
    'read_position_at_reference_position',
    'soft_clip_past_reference_end',
    # Models
    'AlignedRead',
    # Classification
    'NEAR_TARGET_MARGIN',
    'ClassificationLabel',
    'ClassificationResult',
    'TargetClassifier',
    'classify_read',
    'covers_target',
    'is_near_target',
    'is_in_frame',
    'scan_target_window',
    # Normalization
    'clip_overhanging_alignment',
    'clip_overhanging_mate_cigar',
    'fix_unmapped_mapping_quality',
    'normalize_read',
    # Tally
    'ClassificationTally',
]
