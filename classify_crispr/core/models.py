"""
Data models for target-region classification.

Author: Kevin R. Roy
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import pysam

from .cigar import (
    Cigar,
    cigar_from_tuples,
    parse_cigar_string,
    read_position_at_reference_position,
    reference_length,
)


@dataclass(frozen=True)
class AlignedRead:
    """
    Read-only view of one aligned read, in 1-based reference coordinates.

    Attributes:
        name: Read (query) name
        contig: Reference name, or None when the read is not placed
        alignment_start: 1-based first aligned reference base (0 if unmapped)
        alignment_end: 1-based last aligned reference base (0 if unmapped)
        cigar: CIGAR elements in alignment order
        bases: Read bases, '=' marking bases identical to the reference
        qualities: Per-base quality scores, None when absent
        mapping_quality: Mapping quality
        is_unmapped: Unmapped flag
    """
    name: str
    contig: Optional[str]
    alignment_start: int
    alignment_end: int
    cigar: Cigar
    bases: str
    qualities: Optional[Tuple[int, ...]] = None
    mapping_quality: int = 0
    is_unmapped: bool = False

    def read_position_at_reference_position(self, ref_pos: int) -> Optional[int]:
        """1-based read position aligned to ref_pos, or None if not represented."""
        if self.is_unmapped:
            return None
        return read_position_at_reference_position(self.cigar, self.alignment_start, ref_pos)

    @classmethod
    def from_cigar_string(
        cls,
        name: str,
        contig: Optional[str],
        alignment_start: int,
        cigar: str,
        bases: str,
        qualities: Optional[Tuple[int, ...]] = None,
        mapping_quality: int = 60,
    ) -> 'AlignedRead':
        """Build a mapped read from a CIGAR string; the alignment end is derived."""
        elements = parse_cigar_string(cigar)
        return cls(
            name=name,
            contig=contig,
            alignment_start=alignment_start,
            alignment_end=alignment_start + reference_length(elements) - 1,
            cigar=elements,
            bases=bases,
            qualities=tuple(qualities) if qualities is not None else None,
            mapping_quality=mapping_quality,
        )

    @classmethod
    def from_segment(cls, segment: pysam.AlignedSegment) -> 'AlignedRead':
        """Build a view of a pysam AlignedSegment."""
        contig = segment.reference_name if segment.reference_id >= 0 else None

        if segment.is_unmapped or segment.cigartuples is None:
            alignment_start = 0
            alignment_end = 0
            cigar: Cigar = ()
        else:
            # pysam is 0-based half-open; reference_end is the 1-based inclusive end
            alignment_start = segment.reference_start + 1
            alignment_end = segment.reference_end
            cigar = cigar_from_tuples(segment.cigartuples)

        quals = segment.query_qualities
        return cls(
            name=segment.query_name or '',
            contig=contig,
            alignment_start=alignment_start,
            alignment_end=alignment_end,
            cigar=cigar,
            bases=segment.query_sequence or '',
            qualities=tuple(int(q) for q in quals) if quals is not None else None,
            mapping_quality=segment.mapping_quality,
            is_unmapped=segment.is_unmapped,
        )
