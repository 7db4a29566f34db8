"""
Target-region classification of aligned reads.

Classifies each read by how it relates to a fixed target region:
- off-target: Different contig, or not within 250 bp of covering the target
- near-target: Same contig, covers the target once extended by 250 bp
- no-overlap: Aligned span never reaches the target end and carries no indel
- in-frame / frame-shift: Read carries indels; net length a multiple of 3 or not
- clipped: Target not resolvable in read coordinates
- mutation: Mismatch in the target with base quality above the threshold
- WT-noise: Only low-quality mismatches in the target
- WT: Target identical to the reference
- truncated: Read sequence or qualities shorter than the target window

Author: Kevin R. Roy
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ..config import DEFAULT_MIN_BASE_QUAL, TargetRegion
from .cigar import CigarWalk, walk_cigar
from .models import AlignedRead

logger = logging.getLogger(__name__)

# Reads within this many reference bases of covering the target are near-target
NEAR_TARGET_MARGIN = 250

CODON_LENGTH = 3

REFERENCE_MATCH = '='


class ClassificationLabel(Enum):
    """Classification outcomes, valued by their CR tag text."""
    MUTATION = 'mutation'
    WT_NOISE = 'WT-noise'
    WT = 'WT'
    CLIPPED = 'clipped'
    NO_OVERLAP = 'no-overlap'
    IN_FRAME = 'in-frame'
    FRAME_SHIFT = 'frame-shift'
    NEAR_TARGET = 'near-target'
    OFF_TARGET = 'off-target'
    TRUNCATED = 'truncated'

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_tag(cls, value: str) -> 'ClassificationLabel':
        return cls(value)


@dataclass(frozen=True)
class ClassificationResult:
    """Result of classifying one read, with the values that decided it."""
    label: ClassificationLabel
    read_start: Optional[int] = None
    read_end: Optional[int] = None
    walk: Optional[CigarWalk] = None
    mutated_bases: int = 0
    noisy_bases: int = 0

    @property
    def inserted_bases(self) -> int:
        return self.walk.inserted_bases if self.walk else 0

    @property
    def deleted_bases(self) -> int:
        return self.walk.deleted_bases if self.walk else 0


def covers_target(read: AlignedRead, target: TargetRegion) -> bool:
    """True if the read's aligned span covers the whole target on its contig."""
    return (
        read.contig is not None
        and read.contig == target.contig
        and read.alignment_start <= target.start
        and read.alignment_end >= target.end
    )


def is_near_target(read: AlignedRead, target: TargetRegion, margin: int = NEAR_TARGET_MARGIN) -> bool:
    """True if the read's span, widened by margin on each side, covers the target."""
    return (
        read.contig is not None
        and read.contig == target.contig
        and read.alignment_start - margin <= target.start
        and read.alignment_end + margin >= target.end
    )


def is_in_frame(inserted_bases: int, deleted_bases: int) -> bool:
    """True if the net indel length preserves the reading frame."""
    return (inserted_bases - deleted_bases) % CODON_LENGTH == 0


def scan_target_window(
    bases: str,
    qualities: Optional[Sequence[int]],
    start: Optional[int],
    end: Optional[int],
    target_length: int,
    min_base_qual: int = DEFAULT_MIN_BASE_QUAL,
    read_name: str = '',
) -> ClassificationResult:
    """
    Compare the target window of a read against the reference.

    Args:
        bases: Read bases in base-difference encoding ('=' equals reference)
        qualities: Per-base qualities parallel to bases
        start: 1-based read position of the target start, None if unresolved
        end: 1-based read position of the target end, None if unresolved
        target_length: Number of target bases
        min_base_qual: Mismatches need a quality strictly above this to count
            as mutated bases
        read_name: Used in diagnostics only

    Returns:
        ClassificationResult labelled mutation, WT-noise, WT, clipped or truncated
    """
    if start is None or end is None or end < start:
        return ClassificationResult(ClassificationLabel.CLIPPED, read_start=start, read_end=end)

    window = bases[start - 1:end]
    window_quals = qualities[start - 1:end] if qualities is not None else ()

    if len(window) < target_length or len(window_quals) < target_length:
        logger.warning(
            f"Read {read_name}: target window {start}-{end} has {len(window)} bases "
            f"and {len(window_quals)} qualities, expected {target_length}"
        )
        return ClassificationResult(ClassificationLabel.TRUNCATED, read_start=start, read_end=end)

    mutated = 0
    noisy = 0
    for i in range(target_length):
        if window[i] != REFERENCE_MATCH:
            if window_quals[i] > min_base_qual:
                mutated += 1
            else:
                noisy += 1

    if mutated > 0:
        label = ClassificationLabel.MUTATION
    elif noisy > 0:
        label = ClassificationLabel.WT_NOISE
    else:
        label = ClassificationLabel.WT

    return ClassificationResult(
        label,
        read_start=start,
        read_end=end,
        mutated_bases=mutated,
        noisy_bases=noisy,
    )


def classify_read(
    read: AlignedRead,
    target: TargetRegion,
    min_base_qual: int = DEFAULT_MIN_BASE_QUAL,
) -> ClassificationResult:
    """
    Classify a read against the target region.

    Classification hierarchy:
    1. Span does not cover target -> NEAR_TARGET (within 250 bp) or OFF_TARGET
    2. CIGAR never reaches the target end and has no indel -> NO_OVERLAP
    3. No indel in the read -> substitution scan of the target window
       (MUTATION, WT_NOISE, WT, CLIPPED or TRUNCATED)
    4. Net indel length divisible by 3 -> IN_FRAME
    5. Otherwise -> FRAME_SHIFT

    Args:
        read: Aligned read
        target: Target region
        min_base_qual: Base quality threshold for mutated bases

    Returns:
        ClassificationResult with label and details
    """
    if not covers_target(read, target):
        if is_near_target(read, target):
            return ClassificationResult(ClassificationLabel.NEAR_TARGET)
        return ClassificationResult(ClassificationLabel.OFF_TARGET)

    start = read.read_position_at_reference_position(target.start)
    end = read.read_position_at_reference_position(target.end)

    walk = walk_cigar(read.cigar, read.alignment_start)

    if walk.end_position <= target.end and walk.indel_bases == 0:
        # span test passed yet the CIGAR stops short of the target
        return ClassificationResult(
            ClassificationLabel.NO_OVERLAP, read_start=start, read_end=end, walk=walk
        )

    if not walk.has_indel:
        scanned = scan_target_window(
            read.bases,
            read.qualities,
            start,
            end,
            target.length,
            min_base_qual=min_base_qual,
            read_name=read.name,
        )
        return ClassificationResult(
            scanned.label,
            read_start=start,
            read_end=end,
            walk=walk,
            mutated_bases=scanned.mutated_bases,
            noisy_bases=scanned.noisy_bases,
        )

    if is_in_frame(walk.inserted_bases, walk.deleted_bases):
        label = ClassificationLabel.IN_FRAME
    else:
        label = ClassificationLabel.FRAME_SHIFT

    return ClassificationResult(label, read_start=start, read_end=end, walk=walk)


class TargetClassifier:
    """
    Classify reads against one fixed target region.

    The classifier holds only immutable run settings; classify() is a pure
    function of the read.
    """

    def __init__(self, target: TargetRegion, min_base_qual: int = DEFAULT_MIN_BASE_QUAL):
        """
        Initialize the classifier.

        Args:
            target: Target region (1-based inclusive)
            min_base_qual: Mismatches need a base quality strictly above this
                to count as mutations
        """
        self.target = target
        self.min_base_qual = min_base_qual

    def classify(self, read: AlignedRead) -> ClassificationLabel:
        return self.classify_with_details(read).label

    def classify_with_details(self, read: AlignedRead) -> ClassificationResult:
        return classify_read(read, self.target, self.min_base_qual)

    def __repr__(self) -> str:
        return f"TargetClassifier(target={self.target}, min_base_qual={self.min_base_qual})"
