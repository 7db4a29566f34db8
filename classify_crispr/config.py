"""
Configuration classes for classify_crispr.

Author: Kevin R. Roy
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_MIN_BASE_QUAL = 20
DEFAULT_PROGRESS_INTERVAL = 1_000_000
CLASSIFICATION_TAG = 'CR'


class ConfigurationError(ValueError):
    """Invalid run configuration, detected before any read is processed."""


@dataclass(frozen=True)
class TargetRegion:
    """
    Target region on the reference, 1-based and inclusive at both ends.

    Attributes:
        contig: Reference sequence name
        start: First target base
        end: Last target base
    """
    contig: str
    start: int
    end: int

    def __post_init__(self):
        if not self.contig:
            raise ConfigurationError("Target contig must be provided")
        if self.start < 1:
            raise ConfigurationError(f"Target start must be >= 1 (got {self.start})")
        if self.end < self.start:
            raise ConfigurationError(
                f"Target end ({self.end}) must not be before target start ({self.start})"
            )

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"{self.contig}:{self.start}-{self.end}"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'TargetRegion':
        missing = [key for key in ('contig', 'start', 'end') if d.get(key) in (None, '')]
        if missing:
            raise ConfigurationError(f"Missing target field(s): {', '.join(missing)}")
        try:
            return cls(contig=str(d['contig']), start=int(d['start']), end=int(d['end']))
        except (TypeError, ValueError) as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid target coordinates: {e}") from e


@dataclass
class ClassifierConfig:
    """Complete configuration for one classification run."""
    input_path: Path
    output_path: Path
    target: TargetRegion
    min_base_qual: int = DEFAULT_MIN_BASE_QUAL
    debug_read_name: Optional[str] = None
    reference_fasta: Optional[Path] = None
    summary_path: Optional[Path] = None
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL
    tag: str = CLASSIFICATION_TAG

    def validate(self) -> 'ClassifierConfig':
        """Check paths and thresholds. Raises ConfigurationError."""
        if self.min_base_qual < 0:
            raise ConfigurationError(f"Minimum base quality must be >= 0 (got {self.min_base_qual})")
        if self.progress_interval < 1:
            raise ConfigurationError("Progress interval must be a positive number of reads")
        if len(self.tag) != 2:
            raise ConfigurationError(f"Read tag must be two characters (got {self.tag!r})")

        _assert_readable(self.input_path, "Input")
        if self.reference_fasta is not None:
            _assert_readable(self.reference_fasta, "Reference FASTA")

        _assert_writable(self.output_path, "Output")
        if self.summary_path is not None:
            _assert_writable(self.summary_path, "Summary")

        return self

    def print_summary(self):
        """Print the run settings."""
        print("\n" + "=" * 50)
        print("Target classification settings")
        print("=" * 50)
        print(f"Input:             {self.input_path}")
        print(f"Output:            {self.output_path}")
        print(f"Target:            {self.target} ({self.target.length} bp)")
        print(f"Min base quality:  {self.min_base_qual}")
        if self.reference_fasta is not None:
            print(f"Reference FASTA:   {self.reference_fasta}")
        if self.debug_read_name is not None:
            print(f"Debug read name:   {self.debug_read_name}")
        if self.summary_path is not None:
            print(f"Summary TSV:       {self.summary_path}")
        print("=" * 50)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClassifierConfig':
        """Build a configuration from a mapping using the YAML key names."""
        for key in ('input', 'output'):
            if not data.get(key):
                raise ConfigurationError(f"Missing required setting: {key}")

        target_data = data.get('target')
        if not isinstance(target_data, dict):
            raise ConfigurationError("Missing required setting: target (contig, start, end)")

        reference = data.get('reference')
        summary = data.get('summary')
        try:
            return cls(
                input_path=Path(data['input']),
                output_path=Path(data['output']),
                target=TargetRegion.from_dict(target_data),
                min_base_qual=int(data.get('min_base_qual', DEFAULT_MIN_BASE_QUAL)),
                debug_read_name=data.get('debug_read_name'),
                reference_fasta=Path(reference) if reference else None,
                summary_path=Path(summary) if summary else None,
                progress_interval=int(data.get('progress_interval', DEFAULT_PROGRESS_INTERVAL)),
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid setting: {e}") from e

    @classmethod
    def from_yaml(cls, path: Path) -> 'ClassifierConfig':
        """Load configuration from YAML file."""
        return cls.from_dict(load_yaml_settings(path))


def load_yaml_settings(path: Path) -> Dict[str, Any]:
    """Read a YAML settings mapping; an empty file gives an empty mapping."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _assert_readable(path: Path, what: str):
    if not path.exists():
        raise ConfigurationError(f"{what} file not found: {path}")
    if not path.is_file() or not os.access(path, os.R_OK):
        raise ConfigurationError(f"{what} file is not readable: {path}")


def _assert_writable(path: Path, what: str):
    if path.exists():
        if path.is_dir() or not os.access(path, os.W_OK):
            raise ConfigurationError(f"{what} file is not writable: {path}")
        return
    parent = path.parent if str(path.parent) else Path('.')
    if not parent.is_dir():
        raise ConfigurationError(f"{what} directory does not exist: {parent}")
    if not os.access(parent, os.W_OK):
        raise ConfigurationError(f"{what} directory is not writable: {parent}")
