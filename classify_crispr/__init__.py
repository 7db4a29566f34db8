"""
classify_crispr - classify aligned reads by their impact on a CRISPR target region.

Author: Kevin R. Roy
"""

__version__ = "0.1.0"
__author__ = "Kevin R. Roy"

from .config import ClassifierConfig, ConfigurationError, TargetRegion
from .core.classification import ClassificationLabel, ClassificationResult, TargetClassifier
from .core.tally import ClassificationTally

__all__ = [
    "TargetRegion",
    "ClassifierConfig",
    "ConfigurationError",
    "ClassificationLabel",
    "ClassificationResult",
    "TargetClassifier",
    "ClassificationTally",
    "__version__",
]
