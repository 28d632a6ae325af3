"""
Unit tests for sequence_assembler module
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from flanking.errors import ExtractionMismatchError
from flanking.range_collapser import MergedRange
from flanking.range_extender import ExtensionRequest
from flanking.sequence_assembler import (
    FlankedSequenceRecord,
    SequenceAssembler,
    hit_local_sequence,
    index_extracted,
    output_id_for,
    to_store_batch,
)
from flanking.utils.parsers import Orientation, reverse_complement


FORWARD = Orientation.FORWARD
REVERSE = Orientation.REVERSE


@pytest.fixture
def ranges():
    return {
        "seq1": [MergedRange("seq1", 1, 8, FORWARD, 1)],
        "seq2": [MergedRange("seq2", 3, 6, REVERSE, 2)],
    }


class TestOutputId:
    """Tests for output identifiers"""

    def test_forward(self):
        assert output_id_for(MergedRange("seq1", 50, 250, FORWARD)) == "seq1_50_250"

    def test_reverse(self):
        assert output_id_for(MergedRange("seq1", 50, 250, REVERSE)) == "seq1_50_250_R"


class TestSequenceAssembler:
    """Tests for SequenceAssembler.assemble"""

    def test_assemble(self, ranges):
        extracted = {("seq1", 1, 8): "acgtacgt", ("seq2", 3, 6): "AACG"}
        records = SequenceAssembler().assemble(ranges, extracted)

        assert [(r.output_id, r.sequence) for r in records] == [
            ("seq1_1_8", "ACGTACGT"),
            ("seq2_3_6_R", "CGTT"),
        ]
        assert records[1].is_reverse
        assert records[1].merged_range == ranges["seq2"][0]

    def test_record_length_matches_range(self, ranges):
        extracted = {("seq1", 1, 8): "NNNNACGT", ("seq2", 3, 6): "YRMK"}
        for record in SequenceAssembler().assemble(ranges, extracted):
            assert len(record.sequence) == record.merged_range.length

    def test_ambiguity_codes_complemented(self):
        ranges = {"s": [MergedRange("s", 1, 9, REVERSE)]}
        records = SequenceAssembler().assemble(ranges, {("s", 1, 9): "YRMKHDBVN"})

        assert records[0].sequence == "NBVHDMKYR"

    def test_missing_extraction(self, ranges):
        with pytest.raises(ExtractionMismatchError) as excinfo:
            SequenceAssembler().assemble(ranges, {("seq1", 1, 8): "ACGTACGT"})

        assert excinfo.value.missing == [("seq2", 3, 6)]
        assert "seq2:3-6" in str(excinfo.value)

    def test_missing_extraction_is_key_error(self, ranges):
        with pytest.raises(KeyError):
            SequenceAssembler().assemble(ranges, {})

    def test_wrong_length(self, ranges):
        extracted = {("seq1", 1, 8): "ACGT", ("seq2", 3, 6): "AACG"}
        with pytest.raises(ExtractionMismatchError) as excinfo:
            SequenceAssembler().assemble(ranges, extracted)

        assert excinfo.value.missing == [("seq1", 1, 8)]

    def test_empty(self):
        assert SequenceAssembler().assemble({}, {}) == []

    def test_to_fasta(self):
        record = FlankedSequenceRecord("seq1_1_4_R", "ACGT")
        assert record.to_fasta() == ">seq1_1_4_R\nACGT\n"


class TestStoreConversion:
    """Tests for converting between merged ranges and store regions"""

    def test_to_store_batch(self, ranges):
        merged = [m for group in ranges.values() for m in group]
        assert to_store_batch(merged) == [("seq1", 0, 8), ("seq2", 2, 6)]

    def test_index_extracted(self, ranges):
        merged = [m for group in ranges.values() for m in group]
        results = [("seq1:0-8", "ACGTACGT"), ("seq2:2-6", "AACG")]

        assert index_extracted(merged, results) == {
            ("seq1", 1, 8): "ACGTACGT",
            ("seq2", 3, 6): "AACG",
        }

    def test_index_extracted_missing(self, ranges):
        merged = [m for group in ranges.values() for m in group]

        with pytest.raises(ExtractionMismatchError) as excinfo:
            index_extracted(merged, [("seq1:0-8", "ACGTACGT")])

        assert excinfo.value.missing == [("seq2", 3, 6)]

    def test_index_extracted_unrequested(self, ranges):
        merged = ranges["seq1"]
        results = [("seq1:0-8", "ACGTACGT"), ("seq9:0-4", "ACGT")]

        with pytest.raises(ExtractionMismatchError, match="seq9:0-4"):
            index_extracted(merged, results)


class TestHitLocalSequence:
    """Tests for slicing a hit's own span out of a shared range"""

    GENOME = "AACCGGTTAC"

    def _record(self, orientation):
        merged = MergedRange("seq1", 1, 10, orientation, 2)
        sequence = self.GENOME if orientation is FORWARD else reverse_complement(self.GENOME)
        return FlankedSequenceRecord(output_id_for(merged), sequence, merged)

    def test_forward_range_forward_request(self):
        request = ExtensionRequest("seq1", 1, 4, FORWARD)
        assert hit_local_sequence(self._record(FORWARD), request) == "AACC"

    def test_forward_range_reverse_request(self):
        request = ExtensionRequest("seq1", 1, 4, REVERSE)
        assert hit_local_sequence(self._record(FORWARD), request) == "GGTT"

    def test_reverse_range_reverse_request(self):
        request = ExtensionRequest("seq1", 1, 4, REVERSE)
        assert hit_local_sequence(self._record(REVERSE), request) == "GGTT"

    def test_reverse_range_forward_request(self):
        request = ExtensionRequest("seq1", 7, 10, FORWARD)
        assert hit_local_sequence(self._record(REVERSE), request) == "TTAC"

    def test_request_outside_range(self):
        with pytest.raises(ValueError):
            hit_local_sequence(self._record(FORWARD), ExtensionRequest("seq1", 5, 12, FORWARD))
