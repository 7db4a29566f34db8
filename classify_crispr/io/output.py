"""
Summary output for classification runs.

Author: Kevin R. Roy
"""

import logging
from pathlib import Path
from typing import List

from ..core.tally import ClassificationTally

logger = logging.getLogger(__name__)


def format_tally_lines(tally: ClassificationTally) -> List[str]:
    """One 'label count' line per observed label."""
    return [f"{label.value} {count}" for label, count in tally.items()]


def write_summary_tsv(tally: ClassificationTally, output_path: Path) -> Path:
    """
    Write the tally to a TSV file.

    Args:
        tally: Run tally
        output_path: Path for output TSV

    Returns:
        Path to written file
    """
    df = tally.to_dataframe()
    df['fraction'] = df['fraction'].map(lambda x: f"{x:.4f}")
    df.to_csv(output_path, sep='\t', index=False)

    logger.info(f"Wrote summary for {tally.total} reads to {output_path}")
    return Path(output_path)
