"""
CIGAR utilities for target-region classification.

Provides the closed set of CIGAR operators, conversion from pysam tuples and
CIGAR strings, the forward CIGAR walk used by the classifier, the
reference-to-read coordinate lookup and soft clipping of alignments that run
off the end of the reference.

Author: Kevin R. Roy
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple


class CigarOperator(Enum):
    """CIGAR operations, valued by their BAM/pysam operation codes."""
    MATCH = 0
    INSERTION = 1
    DELETION = 2
    REF_SKIP = 3
    SOFT_CLIP = 4
    HARD_CLIP = 5
    PADDING = 6
    SEQUENCE_MATCH = 7
    SEQUENCE_MISMATCH = 8

    @property
    def char(self) -> str:
        return _OP_CHARS[self]

    @property
    def consumes_reference(self) -> bool:
        return self in REF_CONSUMING_OPS

    @property
    def consumes_read(self) -> bool:
        return self in READ_CONSUMING_OPS

    @property
    def is_clip(self) -> bool:
        return self in (CigarOperator.SOFT_CLIP, CigarOperator.HARD_CLIP)

    @classmethod
    def from_char(cls, char: str) -> 'CigarOperator':
        try:
            return _CHAR_OPS[char]
        except KeyError:
            raise ValueError(f"Unknown CIGAR operation: {char!r}") from None


_OP_CHARS = {
    CigarOperator.MATCH: 'M',
    CigarOperator.INSERTION: 'I',
    CigarOperator.DELETION: 'D',
    CigarOperator.REF_SKIP: 'N',
    CigarOperator.SOFT_CLIP: 'S',
    CigarOperator.HARD_CLIP: 'H',
    CigarOperator.PADDING: 'P',
    CigarOperator.SEQUENCE_MATCH: '=',
    CigarOperator.SEQUENCE_MISMATCH: 'X',
}
_CHAR_OPS = {char: op for op, char in _OP_CHARS.items()}

# Operations that consume reference bases
REF_CONSUMING_OPS = frozenset({
    CigarOperator.MATCH,
    CigarOperator.DELETION,
    CigarOperator.REF_SKIP,
    CigarOperator.SEQUENCE_MATCH,
    CigarOperator.SEQUENCE_MISMATCH,
})

# Operations that consume query (read) bases
READ_CONSUMING_OPS = frozenset({
    CigarOperator.MATCH,
    CigarOperator.INSERTION,
    CigarOperator.SOFT_CLIP,
    CigarOperator.SEQUENCE_MATCH,
    CigarOperator.SEQUENCE_MISMATCH,
})

CIGAR_PATTERN = re.compile(r'(\d+)([MIDNSHP=X])')


class CigarElement(NamedTuple):
    """One CIGAR run: operator and run length."""
    operator: CigarOperator
    length: int

    def __str__(self) -> str:
        return f"{self.length}{self.operator.char}"


Cigar = Tuple[CigarElement, ...]


def cigar_from_tuples(cigartuples: Optional[Iterable[Tuple[int, int]]]) -> Cigar:
    """Convert pysam's [(op, length), ...] into CigarElements."""
    if cigartuples is None:
        return ()
    return tuple(CigarElement(CigarOperator(op), length) for op, length in cigartuples)


def cigar_to_tuples(cigar: Sequence[CigarElement]) -> List[Tuple[int, int]]:
    """Convert CigarElements back into pysam's [(op, length), ...]."""
    return [(element.operator.value, element.length) for element in cigar]


def parse_cigar_string(cigar_str: str) -> Cigar:
    """
    Parse a CIGAR string such as ``10S40M2I20M`` into CigarElements.

    ``*`` (no CIGAR) and the empty string give an empty CIGAR.
    """
    cigar_str = cigar_str.strip()
    if cigar_str in ('', '*'):
        return ()

    elements = []
    consumed = 0
    for match in CIGAR_PATTERN.finditer(cigar_str):
        if match.start() != consumed:
            raise ValueError(f"Malformed CIGAR string: {cigar_str!r}")
        length = int(match.group(1))
        if length < 1:
            raise ValueError(f"CIGAR run length must be positive: {cigar_str!r}")
        elements.append(CigarElement(CigarOperator.from_char(match.group(2)), length))
        consumed = match.end()

    if consumed != len(cigar_str):
        raise ValueError(f"Malformed CIGAR string: {cigar_str!r}")

    return tuple(elements)


def cigar_to_string(cigar: Sequence[CigarElement]) -> str:
    if not cigar:
        return '*'
    return ''.join(str(element) for element in cigar)


def reference_length(cigar: Sequence[CigarElement]) -> int:
    """Number of reference bases spanned by the alignment."""
    return sum(e.length for e in cigar if e.operator.consumes_reference)


def read_length(cigar: Sequence[CigarElement]) -> int:
    """Number of read bases described by the CIGAR (soft clips included)."""
    return sum(e.length for e in cigar if e.operator.consumes_read)


@dataclass(frozen=True)
class CigarWalk:
    """Outcome of a forward scan over a read's CIGAR.

    Attributes:
        end_position: Reference position reached after the last operation
            (one past the last aligned base, 1-based)
        inserted_bases: Total inserted bases over the whole read
        deleted_bases: Total deleted bases over the whole read
    """
    end_position: int
    inserted_bases: int = 0
    deleted_bases: int = 0

    @property
    def indel_bases(self) -> int:
        return self.inserted_bases + self.deleted_bases

    @property
    def has_indel(self) -> bool:
        return self.inserted_bases > 0 or self.deleted_bases > 0


def walk_cigar(cigar: Sequence[CigarElement], alignment_start: int) -> CigarWalk:
    """
    Scan a CIGAR from the alignment start, totalling inserted and deleted bases.

    Args:
        cigar: CIGAR elements in alignment order
        alignment_start: 1-based reference position of the first aligned base

    Returns:
        CigarWalk with the reference position reached and indel totals
    """
    position = alignment_start
    inserted = 0
    deleted = 0

    for operator, length in cigar:
        if operator in (CigarOperator.SOFT_CLIP, CigarOperator.HARD_CLIP, CigarOperator.PADDING):
            continue
        elif operator in (CigarOperator.MATCH, CigarOperator.SEQUENCE_MATCH,
                          CigarOperator.SEQUENCE_MISMATCH):
            position += length
        elif operator is CigarOperator.INSERTION:
            inserted += length
        elif operator is CigarOperator.DELETION:
            deleted += length
            position += length
        elif operator is CigarOperator.REF_SKIP:
            position += length
        else:
            raise ValueError(f"Unhandled CIGAR operator: {operator}")

    return CigarWalk(end_position=position, inserted_bases=inserted, deleted_bases=deleted)


def read_position_at_reference_position(
    cigar: Sequence[CigarElement],
    alignment_start: int,
    ref_pos: int,
) -> Optional[int]:
    """
    Translate a reference position into a read position.

    Both positions are 1-based. Read positions count soft-clipped bases (they
    index into the stored read sequence) but not hard-clipped ones.

    Returns:
        The read position aligned to ref_pos, or None if ref_pos falls in a
        deletion, a skipped region, or outside the aligned span
    """
    if alignment_start < 1 or ref_pos < alignment_start:
        return None

    ref_cursor = alignment_start
    read_cursor = 1

    for operator, length in cigar:
        if operator.consumes_reference and operator.consumes_read:
            if ref_pos < ref_cursor + length:
                return read_cursor + (ref_pos - ref_cursor)
            ref_cursor += length
            read_cursor += length
        elif operator.consumes_reference:
            if ref_pos < ref_cursor + length:
                return None
            ref_cursor += length
        elif operator.consumes_read:
            read_cursor += length

    return None


def soft_clip_past_reference_end(
    cigar: Sequence[CigarElement],
    alignment_start: int,
    reference_end: int,
) -> Cigar:
    """
    Soft clip every read base aligned past the end of the reference.

    Read bases (matches, insertions) beyond reference_end become soft clip,
    deletions and skips beyond it are dropped, and trailing hard clips stay
    outermost. A CIGAR that already ends within the reference is returned
    unchanged, so clipping twice equals clipping once.

    Args:
        cigar: Original CIGAR elements
        alignment_start: 1-based alignment start
        reference_end: Length of the reference sequence (last valid position)

    Returns:
        The rewritten CIGAR
    """
    if alignment_start + reference_length(cigar) - 1 <= reference_end:
        return tuple(cigar)

    kept: List[CigarElement] = []
    clipped = 0
    trailing_hard = 0
    position = alignment_start
    past_end = False

    for operator, length in cigar:
        if operator is CigarOperator.HARD_CLIP:
            if kept or clipped:
                trailing_hard += length
            else:
                kept.append(CigarElement(operator, length))
            continue

        if past_end:
            if operator.consumes_read:
                clipped += length
            continue

        if operator.consumes_reference:
            available = reference_end - position + 1
            if length <= available:
                kept.append(CigarElement(operator, length))
                position += length
                continue
            # the run crosses the reference end
            if available > 0:
                kept.append(CigarElement(operator, available))
            if operator.consumes_read:
                clipped += length - max(available, 0)
            position += length
            past_end = True
        elif operator is CigarOperator.INSERTION and position > reference_end:
            clipped += length
        else:
            kept.append(CigarElement(operator, length))

    # deletions/skips left dangling before the clip are not valid alignment ends
    while kept and kept[-1].operator in (CigarOperator.DELETION, CigarOperator.REF_SKIP):
        kept.pop()

    if kept and kept[-1].operator is CigarOperator.INSERTION:
        clipped += kept.pop().length

    if clipped:
        if kept and kept[-1].operator is CigarOperator.SOFT_CLIP:
            clipped += kept.pop().length
        kept.append(CigarElement(CigarOperator.SOFT_CLIP, clipped))
    if trailing_hard:
        kept.append(CigarElement(CigarOperator.HARD_CLIP, trailing_hard))

    return tuple(kept)
