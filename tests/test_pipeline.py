"""
End-to-end tests for the flank extension pipeline and its driver script.

Tests cover:
- Parse -> extend -> collapse -> extract -> assemble on an in-memory genome
- Edge statistics and warning counts
- Unknown sequences, malformed identifiers and store drift
- Atomic output writing
- The extend_flanking_seqs.py script
"""

import importlib.util
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from flanking import (
    ExtensionConfig,
    ExtractionMismatchError,
    FlankExtensionPipeline,
    MalformedIdentifierError,
    OrientationPolicy,
)
from flanking import pipeline as pipeline_module
from flanking.utils.genome_store import InMemoryGenomeStore
from flanking.utils.parsers import parse_fasta, reverse_complement

SEQ1 = ("ACGTTGCA" * 63)[:500]
SEQ2 = ("GATTACAC" * 40)[:300]

HEADER = [
    "   SW   perc perc perc  query      position in query    matching  repeat\n",
    "score   div. del. ins.  sequence    begin     end    (left)   repeat\n",
    "\n",
]


def _line(identifier, start, end, remaining, strand=""):
    return (f"  2514  8.77 1.46 0.58  {identifier}  {start}  {end} ({remaining})  "
            f"{strand} rnd-1_family-1#DNA  (10)  6866  6522\n")


HITS = [
    _line("seq1_100_200", 1, 101, 0),           # forward 100-200      -> 50-250
    _line("seq1_300_220", 1, 81, 0),            # reverse 220-300      -> 170-350
    _line("seq2_10_60_R", 1, 51, 0, "C"),       # reverse 10-60        -> 1-110
]


@pytest.fixture
def store():
    return InMemoryGenomeStore({"seq1": SEQ1, "seq2": SEQ2})


@pytest.fixture
def pipeline(store):
    return FlankExtensionPipeline(store, ExtensionConfig.symmetric(50))


class TestExtensionConfig:
    """Tests for ExtensionConfig"""

    def test_defaults(self):
        config = ExtensionConfig()

        assert (config.left_flank, config.right_flank, config.gap_tolerance) == (100, 100, 0)
        assert config.orientation_policy is OrientationPolicy.EITHER

    def test_symmetric(self):
        config = ExtensionConfig.symmetric(20, gap_tolerance=5)
        assert (config.left_flank, config.right_flank, config.gap_tolerance) == (20, 20, 5)

    def test_policy_from_string(self):
        assert ExtensionConfig(orientation_policy="strand").orientation_policy is OrientationPolicy.STRAND

    @pytest.mark.parametrize("field", ["left_flank", "right_flank", "gap_tolerance"])
    def test_negative_values(self, field):
        with pytest.raises(ValueError):
            ExtensionConfig(**{field: -1})


class TestFlankExtensionPipeline:
    """Tests for FlankExtensionPipeline"""

    def test_records(self, pipeline):
        result = pipeline.run_lines(HEADER + HITS)

        assert [(r.output_id, r.sequence) for r in result.records] == [
            ("seq1_50_350", SEQ1[49:350]),
            ("seq2_1_110_R", reverse_complement(SEQ2[0:110])),
        ]

    def test_traceability(self, pipeline):
        result = pipeline.run_lines(HITS)

        assert [(r.ext_start, r.ext_end) for r in result.requests] == [(50, 250), (170, 350), (1, 110)]
        merged = result.collapse.ranges["seq1"][0]
        assert result.collapse.members(merged) == [0, 1]
        assert merged.member_count == 2
        # the longer forward request decides the orientation
        assert result.records[0].output_id == "seq1_50_350"

    def test_statistics(self, pipeline):
        stats = pipeline.run_lines(HEADER + HITS).stats

        assert stats.alignments == 3
        assert stats.sequence_regions == 2
        assert stats.left_needed == 3
        assert stats.right_needed == 3
        assert stats.left_terminal == 0
        assert stats.right_terminal == 1
        assert stats.ambiguous_orientations == 1
        assert stats.skipped_lines == 2
        assert stats.unknown_sequences == 0
        assert stats.unextracted_regions == 0

    def test_summary(self, pipeline):
        summary = pipeline.run_lines(HITS).stats.summary()

        assert summary.startswith("Multiple Alignment Edge Stats:")
        assert "Sequence Regions : 2" in summary
        assert "Right Edge: 3 aligned sequences needed extension, 1 sequences were unextendable" in summary
        assert "conflicting orientation" in summary

    def test_gap_tolerance_merges(self, store):
        lines = [_line("seq1_100_110", 1, 11, 0), _line("seq1_130_140", 1, 11, 0)]

        apart = FlankExtensionPipeline(store, ExtensionConfig.symmetric(5)).run_lines(lines)
        joined = FlankExtensionPipeline(
            store, ExtensionConfig.symmetric(5, gap_tolerance=10)
        ).run_lines(lines)

        assert [r.output_id for r in apart.records] == ["seq1_95_115", "seq1_125_145"]
        assert [r.output_id for r in joined.records] == ["seq1_95_145"]

    def test_zero_flank(self, store):
        result = FlankExtensionPipeline(store, ExtensionConfig.symmetric(0)).run_lines(
            [_line("seq1_100_200", 1, 101, 0)]
        )
        assert result.records[0].output_id == "seq1_100_200"
        assert result.records[0].sequence == SEQ1[99:200]

    def test_unknown_sequence_retained_but_not_extracted(self, pipeline):
        result = pipeline.run_lines(HITS + [_line("seqX_1_50", 1, 50, 0)])

        assert len(result.requests) == 4
        assert "seqX" in result.collapse.ranges
        assert [r.output_id for r in result.records] == ["seq1_50_350", "seq2_1_110_R"]
        assert result.stats.unknown_sequences == 1
        assert result.stats.sequence_regions == 2
        assert result.stats.unextracted_regions == 1

        summary = result.stats.summary()
        assert "Sequence Regions : 2" in summary
        assert "1 regions on unknown sequences were not extracted" in summary

    def test_malformed_identifier_aborts(self, pipeline):
        with pytest.raises(MalformedIdentifierError):
            pipeline.run_lines(HITS + [_line("seq1", 1, 50, 0)])

    def test_store_drift(self, store):
        class DroppingStore(InMemoryGenomeStore):
            def extract(self, batch):
                return super().extract(batch)[:-1]

        drifting = FlankExtensionPipeline(
            DroppingStore(store.sequences), ExtensionConfig.symmetric(50)
        )
        with pytest.raises(ExtractionMismatchError) as excinfo:
            drifting.run_lines(HITS)

        assert excinfo.value.missing == [("seq2", 1, 110)]

    def test_run_file_and_write(self, pipeline, tmp_path):
        out_file = tmp_path / "family.out"
        out_file.write_text("".join(HEADER + HITS))
        fasta_file = tmp_path / "family.fa"

        result = pipeline.run_file(str(out_file))
        written = pipeline.write(result, str(fasta_file))

        assert written == 2
        assert parse_fasta(str(fasta_file)) == {
            "seq1_50_350": SEQ1[49:350],
            "seq2_1_110_R": reverse_complement(SEQ2[0:110]),
        }
        assert fasta_file.read_text().startswith(">seq1_50_350\n" + SEQ1[49:350] + "\n")

    def test_write_failure_leaves_no_file(self, pipeline, tmp_path, monkeypatch):
        result = pipeline.run_lines(HITS)

        def broken_write(records, handle):
            handle.write(">partial\n")
            raise IOError("disk full")

        monkeypatch.setattr(pipeline_module, "write_fasta", broken_write)
        with pytest.raises(IOError):
            pipeline.write(result, str(tmp_path / "out.fa"))

        assert list(tmp_path.iterdir()) == []

    def test_write_stdout(self, pipeline, capsys):
        result = pipeline.run_lines(HITS[:1])
        pipeline.write(result, "-")

        assert capsys.readouterr().out == ">seq1_50_250\n" + SEQ1[49:250] + "\n"


def _load_script():
    script = os.path.join(os.path.dirname(__file__), "..", "scripts", "extend_flanking_seqs.py")
    spec = importlib.util.spec_from_file_location("extend_flanking_seqs", script)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestScript:
    """Tests for scripts/extend_flanking_seqs.py"""

    @pytest.fixture
    def inputs(self, tmp_path):
        genome = tmp_path / "genome.fa"
        genome.write_text(f">seq1\n{SEQ1}\n>seq2\n{SEQ2}\n")
        alignments = tmp_path / "family.out"
        alignments.write_text("".join(HEADER + HITS))
        return genome, alignments

    def test_main(self, inputs, tmp_path):
        genome, alignments = inputs
        output = tmp_path / "extended.fa"

        status = _load_script().main([
            "-d", str(genome), "-i", str(alignments), "-o", str(output), "-f", "50",
        ])

        assert status == 0
        assert list(parse_fasta(str(output))) == ["seq1_50_350", "seq2_1_110_R"]

    def test_flank_options(self):
        script = _load_script()
        args = script.parse_args(["-d", "g.fa", "-i", "in.out", "-o", "out.fa", "-l", "30", "-g", "4"])
        config = script.build_config(args)

        assert (config.left_flank, config.right_flank, config.gap_tolerance) == (30, 100, 4)

    def test_malformed_input_fails(self, inputs, tmp_path):
        genome, alignments = inputs
        alignments.write_text(_line("seq1", 1, 50, 0))
        output = tmp_path / "extended.fa"

        status = _load_script().main(["-d", str(genome), "-i", str(alignments), "-o", str(output)])

        assert status == 1
        assert not output.exists()
