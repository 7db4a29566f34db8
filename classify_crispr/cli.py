"""
Command-line interface for classify_crispr.

Author: Kevin R. Roy
"""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import (
    DEFAULT_MIN_BASE_QUAL,
    DEFAULT_PROGRESS_INTERVAL,
    ClassifierConfig,
    ConfigurationError,
    load_yaml_settings,
)


def _merge_settings(config_path, **cli_values) -> ClassifierConfig:
    """Combine YAML settings with command-line values (command line wins)."""
    data = load_yaml_settings(Path(config_path)) if config_path else {}
    target = dict(data.get('target') or {})

    for key in ('contig', 'start', 'end'):
        value = cli_values.pop(f'target_{key}')
        if value is not None:
            target[key] = value
    data['target'] = target

    for key, value in cli_values.items():
        if value is not None:
            data[key] = value

    return ClassifierConfig.from_dict(data)


def _target_options(f):
    f = click.option('--target-end', type=int,
                     help='End position of target (1-based, inclusive)')(f)
    f = click.option('--target-start', type=int,
                     help='Start position of target (1-based, inclusive)')(f)
    f = click.option('--target-contig', type=str,
                     help='Contig of target')(f)
    return f


@click.group()
@click.version_option(version=__version__)
def cli():
    """Classify reads by their impact on a CRISPR target region."""
    pass


@cli.command()
@click.option('--input', '-i', 'input_path', type=click.Path(),
              help='Input BAM/SAM/CRAM')
@click.option('--output', '-o', 'output_path', type=click.Path(),
              help='Where to write reads post classification')
@click.option('--min-base-qual', type=int, default=None,
              help=f'Minimum base quality score to consider for a mismatch/mutation '
                   f'(default: {DEFAULT_MIN_BASE_QUAL})')
@_target_options
@click.option('--debug-read-name', type=str,
              help='Only consider this read name, for debugging')
@click.option('--reference', '-R', type=click.Path(),
              help='Reference FASTA (needed for CRAM input/output)')
@click.option('--summary', type=click.Path(),
              help='Optional TSV file for the label counts')
@click.option('--progress-interval', type=int, default=None,
              help=f'Log progress every N reads (default: {DEFAULT_PROGRESS_INTERVAL:,})')
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True),
              help='YAML config file; command-line options override it')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def classify(input_path, output_path, min_base_qual, target_contig, target_start, target_end,
             debug_read_name, reference, summary, progress_interval, config_path, verbose):
    """
    Classify each read's impact on the target region and tag it with CR.

    \b
    Example:
      classify-crispr classify -i edited.bam -o classified.bam \\
          --target-contig chr11 --target-start 5227002 --target-end 5227021
    """
    from .pipeline import ClassificationPipeline
    from .io.output import format_tally_lines

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        config = _merge_settings(
            config_path,
            input=input_path,
            output=output_path,
            min_base_qual=min_base_qual,
            target_contig=target_contig,
            target_start=target_start,
            target_end=target_end,
            debug_read_name=debug_read_name,
            reference=reference,
            summary=summary,
            progress_interval=progress_interval,
        )
        tally = ClassificationPipeline(config).run()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for line in format_tally_lines(tally):
        click.echo(line)


@cli.command()
@click.option('--input', '-i', 'input_path', type=click.Path(),
              help='Input BAM/SAM/CRAM')
@click.option('--output', '-o', 'output_path', type=click.Path(),
              help='Where reads would be written')
@click.option('--min-base-qual', type=int, default=None,
              help='Minimum base quality score to consider for a mismatch/mutation')
@_target_options
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True),
              help='YAML config file; command-line options override it')
def info(input_path, output_path, min_base_qual, target_contig, target_start, target_end, config_path):
    """Validate settings and display them without processing reads."""
    try:
        config = _merge_settings(
            config_path,
            input=input_path,
            output=output_path,
            min_base_qual=min_base_qual,
            target_contig=target_contig,
            target_start=target_start,
            target_end=target_end,
        ).validate()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    config.print_summary()


@cli.command()
@click.option('--output', '-o', type=click.Path(), default='classify_crispr.yaml',
              help='Output config file path')
def init(output):
    """Generate a template configuration file."""
    template = f'''# classify_crispr configuration template
# Edit this file to configure your analysis

# Required: alignment files
input: edited.bam              # BAM/SAM/CRAM to classify
output: classified.bam         # Reads tagged with CR:Z:<label>

# Required: target region (1-based, inclusive)
target:
  contig: chr1
  start: 1000
  end: 1020

# Mismatches need a base quality above this to count as mutations
min_base_qual: {DEFAULT_MIN_BASE_QUAL}

# Optional: reference FASTA (CRAM only)
# reference: genome.fa

# Optional: TSV with label counts
# summary: classification_summary.tsv

# Optional: only process this read, for debugging
# debug_read_name: HWI:1:X:1:2114:9900:10252
'''

    with open(output, 'w') as f:
        f.write(template)

    click.echo(f"Generated configuration template: {output}")
    click.echo("\nEdit this file and run:")
    click.echo(f"  classify-crispr classify --config {output}")


if __name__ == '__main__':
    cli()
