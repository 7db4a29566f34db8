"""
Single-pass classification driver.

Reads an alignment file in order, normalizes and classifies each read, tags
it with its label and writes it to the output file, keeping a tally of
labels.

Author: Kevin R. Roy
"""

import logging
import threading
from typing import Iterable, Optional

import pysam

from .config import ClassifierConfig, ConfigurationError
from .core.classification import ClassificationLabel, TargetClassifier
from .core.models import AlignedRead
from .core.normalization import normalize_read
from .core.tally import ClassificationTally
from .io.bam import iter_reads, open_alignment_input, open_alignment_output, reference_lengths
from .io.output import write_summary_tsv

logger = logging.getLogger(__name__)


class ProgressLogger:
    """Log a line every `interval` reads with the last position seen."""

    def __init__(self, interval: int, noun: str = 'reads'):
        self.interval = interval
        self.noun = noun
        self.count = 0

    def record(self, segment: pysam.AlignedSegment) -> bool:
        self.count += 1
        if self.count % self.interval != 0:
            return False

        if segment.is_unmapped and segment.reference_id < 0:
            where = '*/*'
        else:
            where = f"{segment.reference_name}:{segment.reference_start + 1:,}"
        logger.info(f"Processed {self.count:,} {self.noun}. Last read position: {where}")
        return True


class ClassificationPipeline:
    """Main pipeline orchestrator."""

    def __init__(self, config: ClassifierConfig):
        self.config = config
        self.classifier = TargetClassifier(config.target, config.min_base_qual)

    def run(self, cancel_event: Optional[threading.Event] = None) -> ClassificationTally:
        """
        Classify every read of the input file and write the tagged reads.

        Args:
            cancel_event: When set, processing stops before the next read;
                the returned tally covers the reads written so far

        Returns:
            ClassificationTally for the run
        """
        config = self.config.validate()

        reader = open_alignment_input(config.input_path, config.reference_fasta)
        try:
            self._check_target_contig(reader)
            writer = open_alignment_output(config.output_path, reader, config.reference_fasta)
            try:
                tally = self.process(
                    iter_reads(reader),
                    writer,
                    reference_lengths(reader),
                    cancel_event=cancel_event,
                )
            finally:
                writer.close()
        finally:
            reader.close()

        if tally.cancelled:
            logger.warning(f"Run cancelled after {tally.total:,} reads; tally is partial")
        else:
            logger.info(f"Classified {tally.total:,} reads")

        if config.summary_path is not None:
            write_summary_tsv(tally, config.summary_path)

        return tally

    def process(
        self,
        reads: Iterable[pysam.AlignedSegment],
        writer,
        ref_lengths,
        cancel_event: Optional[threading.Event] = None,
    ) -> ClassificationTally:
        """
        Classify a stream of reads, writing each tagged read to writer.

        writer only needs a ``write(segment)`` method.
        """
        tally = ClassificationTally()
        progress = ProgressLogger(self.config.progress_interval)
        debug_name = self.config.debug_read_name

        for segment in reads:
            if cancel_event is not None and cancel_event.is_set():
                tally.cancelled = True
                break

            if debug_name is not None and segment.query_name != debug_name:
                tally.record_filtered()
                continue

            normalize_read(segment, ref_lengths)

            label = self.classify_segment(segment)

            segment.set_tag(self.config.tag, label.value, value_type='Z')
            writer.write(segment)
            tally.record(label)

            progress.record(segment)

        return tally

    def classify_segment(self, segment: pysam.AlignedSegment) -> ClassificationLabel:
        read = AlignedRead.from_segment(segment)
        result = self.classifier.classify_with_details(read)
        if self.config.debug_read_name is not None:
            logger.info(
                f"Read {read.name}: {result.label.value} (read window {result.read_start}-"
                f"{result.read_end}, inserted={result.inserted_bases}, "
                f"deleted={result.deleted_bases}, mutated={result.mutated_bases}, "
                f"noisy={result.noisy_bases})"
            )
        return result.label

    def _check_target_contig(self, reader: pysam.AlignmentFile):
        contigs = reader.references
        if contigs and self.config.target.contig not in contigs:
            raise ConfigurationError(
                f"Target contig '{self.config.target.contig}' not found in "
                f"{self.config.input_path} header ({len(contigs)} contigs)"
            )


def classify_bam(config: ClassifierConfig, cancel_event: Optional[threading.Event] = None) -> ClassificationTally:
    """Run a classification pipeline for config."""
    return ClassificationPipeline(config).run(cancel_event=cancel_event)
