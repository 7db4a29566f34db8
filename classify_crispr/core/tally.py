"""
Run-scoped tally of classification labels.

Author: Kevin R. Roy
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

import pandas as pd

from .classification import ClassificationLabel


@dataclass
class ClassificationTally:
    """
    Label counts for one run.

    Every classified read is recorded exactly once, so ``total`` equals the
    number of classified reads. Reads skipped by the debug read-name filter
    are counted separately in ``reads_filtered``.
    """
    counts: Counter = field(default_factory=Counter)
    reads_filtered: int = 0
    cancelled: bool = False

    def record(self, label: ClassificationLabel) -> None:
        self.counts[label] += 1

    def record_filtered(self) -> None:
        self.reads_filtered += 1

    def __getitem__(self, label: ClassificationLabel) -> int:
        return self.counts.get(label, 0)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def rate(self, label: ClassificationLabel) -> float:
        total = self.total
        return self[label] / total if total > 0 else 0.0

    def items(self) -> List[Tuple[ClassificationLabel, int]]:
        """Observed labels with their counts, in label declaration order."""
        return [(label, self.counts[label]) for label in ClassificationLabel if self.counts[label] > 0]

    def as_dict(self) -> Dict[str, int]:
        return {label.value: count for label, count in self.items()}

    def merge(self, other: 'ClassificationTally') -> 'ClassificationTally':
        """Combine two tallies (e.g. from shards of one read stream)."""
        return ClassificationTally(
            counts=self.counts + other.counts,
            reads_filtered=self.reads_filtered + other.reads_filtered,
            cancelled=self.cancelled or other.cancelled,
        )

    @classmethod
    def from_labels(cls, labels: Iterable[ClassificationLabel]) -> 'ClassificationTally':
        return cls(counts=Counter(labels))

    def to_dataframe(self) -> pd.DataFrame:
        """One row per observed label with count and fraction of all classified reads."""
        rows = [
            {'label': label.value, 'count': count, 'fraction': self.rate(label)}
            for label, count in self.items()
        ]
        return pd.DataFrame(rows, columns=['label', 'count', 'fraction'])
