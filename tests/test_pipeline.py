"""Tests for classify_crispr.pipeline."""

import threading

import pandas as pd
import pysam
import pytest
from classify_crispr.config import ClassifierConfig, ConfigurationError, TargetRegion
from classify_crispr.core.classification import ClassificationLabel
from classify_crispr.core.tally import ClassificationTally
from classify_crispr.pipeline import ClassificationPipeline, classify_bam

TARGET = TargetRegion(contig="chr1", start=1000, end=1009)


@pytest.fixture
def reads(make_segment):
    """One read per interesting outcome, in file order."""
    mutated = "=" * 14 + "A" + "=" * 15
    return [
        make_segment("wt", 990, "30M", "=" * 30),
        make_segment("mut", 990, "30M", mutated),
        make_segment("noise", 990, "30M", mutated, quals="I" * 14 + "5" + "I" * 15),
        make_segment("del3", 990, "20M3D20M", "=" * 40),
        make_segment("ins1", 990, "20M1I20M", "=" * 41),
        make_segment("near", 1200, "30M", "=" * 30),
        make_segment("other", 990, "30M", "=" * 30, contig="chr2"),
        make_segment("unmapped", 990, "30M", "A" * 30, flag=4, mapq=25),
    ]


EXPECTED = [
    ("wt", "WT"),
    ("mut", "mutation"),
    ("noise", "WT-noise"),
    ("del3", "in-frame"),
    ("ins1", "frame-shift"),
    ("near", "near-target"),
    ("other", "off-target"),
    ("unmapped", "off-target"),
]


@pytest.fixture
def input_sam(tmp_path, write_sam, reads):
    return write_sam(tmp_path / "input.sam", reads)


def make_config(tmp_path, input_path, **kwargs):
    return ClassifierConfig(
        input_path=input_path,
        output_path=tmp_path / "classified.sam",
        target=TARGET,
        **kwargs,
    )


class TestClassificationPipeline:
    """Test end-to-end classification of an alignment file."""

    def test_reads_tagged_in_input_order(self, tmp_path, input_sam, read_tags):
        """Test every read is written once, in order, with its CR tag."""
        config = make_config(tmp_path, input_sam)
        ClassificationPipeline(config).run()
        assert read_tags(config.output_path) == EXPECTED

    def test_tally_conservation(self, tmp_path, input_sam):
        """Test tally counts sum to the number of reads processed."""
        tally = classify_bam(make_config(tmp_path, input_sam))
        assert tally.total == len(EXPECTED)
        assert tally[ClassificationLabel.OFF_TARGET] == 2
        assert tally[ClassificationLabel.WT] == 1
        assert tally.reads_filtered == 0
        assert not tally.cancelled

    def test_unmapped_mapq_zeroed_in_output(self, tmp_path, input_sam):
        config = make_config(tmp_path, input_sam)
        ClassificationPipeline(config).run()
        with pysam.AlignmentFile(str(config.output_path), "r", check_sq=False) as bam:
            unmapped = [r for r in bam.fetch(until_eof=True) if r.query_name == "unmapped"]
        assert unmapped[0].mapping_quality == 0

    def test_debug_read_name_filter(self, tmp_path, input_sam, read_tags):
        """Test only the named read is classified and written."""
        config = make_config(tmp_path, input_sam, debug_read_name="mut")
        tally = ClassificationPipeline(config).run()
        assert tally.total == 1
        assert tally.reads_filtered == len(EXPECTED) - 1
        assert read_tags(config.output_path) == [("mut", "mutation")]

    def test_summary_tsv(self, tmp_path, input_sam):
        config = make_config(tmp_path, input_sam, summary_path=tmp_path / "summary.tsv")
        ClassificationPipeline(config).run()
        df = pd.read_csv(config.summary_path, sep="\t")
        assert list(df.columns) == ["label", "count", "fraction"]
        assert df["count"].sum() == len(EXPECTED)
        assert dict(zip(df["label"], df["count"]))["off-target"] == 2

    def test_bam_output(self, tmp_path, input_sam, read_tags):
        """Test BAM output is chosen from the file suffix."""
        config = make_config(tmp_path, input_sam)
        config.output_path = tmp_path / "classified.bam"
        ClassificationPipeline(config).run()
        assert read_tags(config.output_path) == EXPECTED

    def test_missing_target_contig(self, tmp_path, input_sam):
        config = make_config(tmp_path, input_sam)
        config.target = TargetRegion(contig="chrX", start=1, end=10)
        with pytest.raises(ConfigurationError, match="chrX"):
            ClassificationPipeline(config).run()

    def test_missing_input(self, tmp_path):
        config = make_config(tmp_path, tmp_path / "missing.bam")
        with pytest.raises(ConfigurationError, match="not found"):
            ClassificationPipeline(config).run()


class ListWriter:
    def __init__(self):
        self.written = []

    def write(self, segment):
        self.written.append(segment)


class TestCancellation:
    """Test early termination keeps the tally consistent."""

    def test_cancel_before_start(self, tmp_path, input_sam, read_tags):
        event = threading.Event()
        event.set()
        tally = ClassificationPipeline(make_config(tmp_path, input_sam)).run(cancel_event=event)
        assert tally.cancelled
        assert tally.total == 0
        assert read_tags(tmp_path / "classified.sam") == []

    def test_cancel_midway(self, tmp_path, input_sam, reads):
        """Test a cancelled run reports exactly the reads written."""
        event = threading.Event()

        def stream():
            for i, read in enumerate(reads):
                yield read
                if i == 2:
                    event.set()

        writer = ListWriter()
        pipeline = ClassificationPipeline(make_config(tmp_path, input_sam))
        tally = pipeline.process(stream(), writer, (2000, 1500), cancel_event=event)

        assert tally.cancelled
        assert tally.total == 3
        assert [r.query_name for r in writer.written] == ["wt", "mut", "noise"]


class TestClassificationTally:
    """Test the tally accumulator."""

    def test_items_in_label_order(self):
        tally = ClassificationTally.from_labels([
            ClassificationLabel.WT,
            ClassificationLabel.MUTATION,
            ClassificationLabel.WT,
        ])
        assert tally.items() == [(ClassificationLabel.MUTATION, 1), (ClassificationLabel.WT, 2)]
        assert tally.as_dict() == {"mutation": 1, "WT": 2}
        assert tally.rate(ClassificationLabel.WT) == pytest.approx(2 / 3)

    def test_merge(self):
        """Test merging shard tallies adds counts."""
        a = ClassificationTally.from_labels([ClassificationLabel.WT])
        b = ClassificationTally.from_labels([ClassificationLabel.WT, ClassificationLabel.IN_FRAME])
        b.record_filtered()
        merged = a.merge(b)
        assert merged.total == 3
        assert merged[ClassificationLabel.WT] == 2
        assert merged.reads_filtered == 1

    def test_empty(self):
        tally = ClassificationTally()
        assert tally.total == 0
        assert tally.rate(ClassificationLabel.WT) == 0.0
        assert tally.to_dataframe().empty


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
