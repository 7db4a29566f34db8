"""Shared fixtures for classify_crispr tests."""

from pathlib import Path
from typing import List, Optional

import pysam
import pytest

REFERENCE_LENGTHS = {'chr1': 2000, 'chr2': 1500}


@pytest.fixture
def header() -> pysam.AlignmentHeader:
    return pysam.AlignmentHeader.from_dict({
        'HD': {'VN': '1.6', 'SO': 'unsorted'},
        'SQ': [{'SN': name, 'LN': length} for name, length in REFERENCE_LENGTHS.items()],
    })


@pytest.fixture
def make_segment(header):
    """Factory for pysam reads; start is 1-based like the rest of the package."""

    def _make(
        name: str,
        start: int,
        cigar: str,
        seq: str,
        quals: Optional[str] = None,
        contig: str = 'chr1',
        mapq: int = 60,
        flag: int = 0,
    ) -> pysam.AlignedSegment:
        a = pysam.AlignedSegment(header)
        a.query_name = name
        a.flag = flag
        a.reference_name = contig
        a.reference_start = start - 1
        a.mapping_quality = mapq
        a.cigarstring = cigar
        a.query_sequence = seq
        a.query_qualities = pysam.qualitystring_to_array(quals if quals is not None else 'I' * len(seq))
        return a

    return _make


@pytest.fixture
def write_sam(header):
    """Write reads to a SAM file carrying the shared header."""

    def _write(path: Path, reads: List[pysam.AlignedSegment]) -> Path:
        with pysam.AlignmentFile(str(path), 'wh', header=header) as out:
            for read in reads:
                out.write(read)
        return path

    return _write


@pytest.fixture
def read_tags():
    """(read name, tag value) for every record of an alignment file."""

    def _read(path: Path, tag: str = 'CR') -> List[tuple]:
        with pysam.AlignmentFile(str(path), 'r', check_sq=False) as bam:
            return [(r.query_name, r.get_tag(tag)) for r in bam.fetch(until_eof=True)]

    return _read
