"""
Alignment file input and output.

Author: Kevin R. Roy
"""

import logging
from pathlib import Path
from typing import Iterator, Optional

import pysam

from ..config import ConfigurationError

logger = logging.getLogger(__name__)

WRITE_MODES = {
    '.bam': 'wb',
    '.cram': 'wc',
    '.sam': 'wh',
}


def output_mode(path: Path) -> str:
    """pysam write mode for an output path, picked from its suffix (SAM by default)."""
    return WRITE_MODES.get(Path(path).suffix.lower(), 'wh')


def open_alignment_input(path: Path, reference_fasta: Optional[Path] = None) -> pysam.AlignmentFile:
    """
    Open a BAM/SAM/CRAM file for reading; the format is detected by pysam.

    Raises:
        ConfigurationError: If the file cannot be opened as an alignment file
    """
    kwargs = {}
    if reference_fasta is not None:
        kwargs['reference_filename'] = str(reference_fasta)
    try:
        # check_sq=False: unaligned input has no @SQ lines
        return pysam.AlignmentFile(str(path), 'r', check_sq=False, **kwargs)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot open alignment file {path}: {e}") from e


def open_alignment_output(
    path: Path,
    template: pysam.AlignmentFile,
    reference_fasta: Optional[Path] = None,
) -> pysam.AlignmentFile:
    """Open an output alignment file carrying the header of template."""
    mode = output_mode(path)
    kwargs = {}
    if mode == 'wc' and reference_fasta is not None:
        kwargs['reference_filename'] = str(reference_fasta)
    try:
        return pysam.AlignmentFile(str(path), mode, template=template, **kwargs)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot open output file {path}: {e}") from e


def iter_reads(bam: pysam.AlignmentFile) -> Iterator[pysam.AlignedSegment]:
    """Iterate all records in file order, unmapped reads included."""
    return bam.fetch(until_eof=True)


def reference_lengths(bam: pysam.AlignmentFile) -> tuple:
    return tuple(bam.lengths)
