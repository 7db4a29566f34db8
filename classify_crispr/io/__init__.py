"""
I/O modules for classify_crispr.

Author: Kevin R. Roy
"""

from .bam import (
    iter_reads,
    open_alignment_input,
    open_alignment_output,
    output_mode,
)
from .output import (
    format_tally_lines,
    write_summary_tsv,
)

__all__ = [
    'open_alignment_input',
    'open_alignment_output',
    'output_mode',
    'iter_reads',
    'format_tally_lines',
    'write_summary_tsv',
]
