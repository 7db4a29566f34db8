"""
Read normalization applied before classification.

Reads (or mates) aligned past the end of their reference sequence get the
overhang soft clipped, and unmapped reads get a mapping quality of 0. Both
fixes are idempotent.

Author: Kevin R. Roy
"""

import logging
from typing import Sequence

import pysam

from .cigar import (
    cigar_from_tuples,
    cigar_to_string,
    cigar_to_tuples,
    parse_cigar_string,
    soft_clip_past_reference_end,
)

logger = logging.getLogger(__name__)

MATE_CIGAR_TAG = 'MC'


def clip_overhanging_alignment(segment: pysam.AlignedSegment, reference_length: int) -> bool:
    """
    Soft clip the part of a mapped read aligned past the reference end.

    Args:
        segment: pysam AlignedSegment, modified in place
        reference_length: Length of the read's reference sequence

    Returns:
        True if the CIGAR was rewritten
    """
    if segment.is_unmapped or segment.cigartuples is None:
        return False

    alignment_start = segment.reference_start + 1
    if alignment_start > reference_length:
        logger.debug(
            f"Read {segment.query_name} starts at {alignment_start}, "
            f"past the reference end ({reference_length}); not clipped"
        )
        return False

    cigar = cigar_from_tuples(segment.cigartuples)
    clipped = soft_clip_past_reference_end(cigar, alignment_start, reference_length)
    if clipped == cigar:
        return False

    logger.debug(
        f"Read {segment.query_name}: clipped {cigar_to_string(cigar)} -> {cigar_to_string(clipped)}"
    )
    segment.cigartuples = cigar_to_tuples(clipped)
    return True


def clip_overhanging_mate_cigar(segment: pysam.AlignedSegment, mate_reference_length: int) -> bool:
    """
    Rewrite the mate CIGAR (MC tag) if the mate aligns past its reference end.

    Returns:
        True if the MC tag was rewritten
    """
    if not segment.is_paired or segment.mate_is_unmapped:
        return False
    if segment.next_reference_id < 0 or not segment.has_tag(MATE_CIGAR_TAG):
        return False

    mate_start = segment.next_reference_start + 1
    if mate_start > mate_reference_length:
        return False

    mate_cigar = parse_cigar_string(segment.get_tag(MATE_CIGAR_TAG))
    clipped = soft_clip_past_reference_end(mate_cigar, mate_start, mate_reference_length)
    if clipped == mate_cigar:
        return False

    segment.set_tag(MATE_CIGAR_TAG, cigar_to_string(clipped), value_type='Z')
    return True


def fix_unmapped_mapping_quality(segment: pysam.AlignedSegment) -> bool:
    """Set the mapping quality of an unmapped read to 0. Returns True if changed."""
    if segment.is_unmapped and segment.mapping_quality != 0:
        segment.mapping_quality = 0
        return True
    return False


def normalize_read(segment: pysam.AlignedSegment, reference_lengths: Sequence[int]) -> bool:
    """
    Apply all pre-classification fixes to a read.

    Args:
        segment: pysam AlignedSegment, modified in place
        reference_lengths: Reference sequence lengths indexed by reference id
            (``AlignmentFile.lengths``)

    Returns:
        True if anything changed
    """
    changed = False

    if 0 <= segment.reference_id < len(reference_lengths):
        changed |= clip_overhanging_alignment(segment, reference_lengths[segment.reference_id])

    if 0 <= segment.next_reference_id < len(reference_lengths):
        changed |= clip_overhanging_mate_cigar(segment, reference_lengths[segment.next_reference_id])

    changed |= fix_unmapped_mapping_quality(segment)
    return changed
