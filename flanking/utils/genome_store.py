#!/usr/bin/env python3
"""
Genome Store Module

Random access to assembly sequences for the flanking extension engine. A store
answers two questions:

    store.length_of("chr1")                         # total length, or None
    store.extract([("chr1", 99, 250), ...])         # 0-based half-open regions

Three implementations are provided:
    InMemoryGenomeStore  - sequences held in a dict
    FastaGenomeStore     - FASTA assembly loaded with Biopython
    TwoBitGenomeStore    - UCSC .2bit assembly read through twoBitInfo/twoBitToFa
"""

import logging
import os
import re
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from Bio import SeqIO

from .parsers import iter_fasta_handle

logger = logging.getLogger(__name__)

# (source_id, start, end) in 0-based half-open coordinates
StoreRegion = Tuple[str, int, int]

_REGION_HEADER = re.compile(r'^\S+:\d+-\d+$')


def format_region(source_id: str, start: int, end: int) -> str:
    """Render a 0-based half-open region the way twoBitToFa names it ('id:start-end')."""
    return f"{source_id}:{start}-{end}"


class GenomeStore:
    """
    Interface for genome random-access stores.

    Subclasses implement ``length_of`` and ``extract``. Extraction always takes
    0-based half-open coordinates and returns ``(identifier, sequence)`` pairs in
    request order, where identifier is ``format_region`` of the request.
    """

    def length_of(self, source_id: str) -> Optional[int]:
        """Total length of a sequence, or None if the store does not hold it."""
        raise NotImplementedError

    def extract(self, batch: Sequence[StoreRegion]) -> List[Tuple[str, str]]:
        """Extract every region of ``batch`` as uppercase sequence."""
        raise NotImplementedError

    def __contains__(self, source_id: str) -> bool:
        return self.length_of(source_id) is not None


class InMemoryGenomeStore(GenomeStore):
    """
    Store backed by a plain dictionary of sequences.

    Attributes:
        sequences (Dict[str, str]): Uppercase sequences keyed by id
    """

    def __init__(self, sequences: Optional[Dict[str, str]] = None):
        self.sequences = {
            seq_id: seq.upper() for seq_id, seq in (sequences or {}).items()
        }

    def length_of(self, source_id: str) -> Optional[int]:
        sequence = self.sequences.get(source_id)
        return None if sequence is None else len(sequence)

    def extract(self, batch: Sequence[StoreRegion]) -> List[Tuple[str, str]]:
        """
        Slice every requested region.

        Raises:
            KeyError: If a region names a sequence the store does not hold
            ValueError: If a region lies outside its sequence
        """
        results = []
        for source_id, start, end in batch:
            if source_id not in self.sequences:
                raise KeyError(f"Sequence '{source_id}' not found in genome store")

            genome_len = len(self.sequences[source_id])
            if start < 0 or end > genome_len or start >= end:
                raise ValueError(
                    f"Invalid region: {format_region(source_id, start, end)}, "
                    f"sequence_length={genome_len}"
                )

            results.append((
                format_region(source_id, start, end),
                self.sequences[source_id][start:end]
            ))
        return results


class FastaGenomeStore(InMemoryGenomeStore):
    """Store holding every record of a FASTA assembly in memory."""

    def __init__(self, fasta_path: str):
        """
        Load an assembly from FASTA.

        Args:
            fasta_path: Path to the genomic FASTA file

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        if not Path(fasta_path).exists():
            raise FileNotFoundError(f"Genome file not found: {fasta_path}")

        super().__init__({
            record.id: str(record.seq) for record in SeqIO.parse(fasta_path, "fasta")
        })
        logger.info("Loaded %d sequences from %s", len(self.sequences), fasta_path)


class TwoBitGenomeStore(GenomeStore):
    """
    Store reading a UCSC .2bit assembly through the command line tools.

    Sequence lengths are read once per store with ``twoBitInfo``; every
    ``extract`` call runs a single ``twoBitToFa -seqList`` over the whole batch.
    The region list lives in a temporary directory that is removed when the
    call returns or fails.
    """

    def __init__(self, twobit_path: str, tools_dir: Optional[str] = None):
        """
        Args:
            twobit_path: Path to the .2bit assembly
            tools_dir: Directory holding twoBitInfo/twoBitToFa (default: PATH)

        Raises:
            FileNotFoundError: If the assembly doesn't exist
        """
        self.twobit_path = Path(twobit_path)
        if not self.twobit_path.exists():
            raise FileNotFoundError(f"2bit file not found: {twobit_path}")

        self.twobit_info = os.path.join(tools_dir, "twoBitInfo") if tools_dir else "twoBitInfo"
        self.twobit_to_fa = os.path.join(tools_dir, "twoBitToFa") if tools_dir else "twoBitToFa"
        self._lengths: Optional[Dict[str, int]] = None

    def _run(self, cmd: List[str]) -> str:
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True
            )
        except subprocess.CalledProcessError as e:
            raise RuntimeError(f"{Path(cmd[0]).name} failed: {e.stderr}")
        return result.stdout

    @property
    def lengths(self) -> Dict[str, int]:
        """Sequence lengths keyed by id, read on first use."""
        if self._lengths is None:
            output = self._run([self.twobit_info, str(self.twobit_path), "stdout"])
            self._lengths = {}
            for line in output.splitlines():
                match = re.match(r'^(\S+)\s+(\d+)', line)
                if match:
                    self._lengths[match.group(1)] = int(match.group(2))
            logger.info("Indexed %d sequences in %s", len(self._lengths), self.twobit_path)
        return self._lengths

    def length_of(self, source_id: str) -> Optional[int]:
        return self.lengths.get(source_id)

    def extract(self, batch: Sequence[StoreRegion]) -> List[Tuple[str, str]]:
        if not batch:
            return []

        with tempfile.TemporaryDirectory(prefix="twobit_") as tmp_dir:
            seq_list = Path(tmp_dir) / "regions.seqlist"
            with open(seq_list, "w") as f:
                for source_id, start, end in batch:
                    f.write(format_region(source_id, start, end) + "\n")

            logger.info("Extracting %d regions from %s", len(batch), self.twobit_path)
            output = self._run([
                self.twobit_to_fa,
                f"-seqList={seq_list}",
                str(self.twobit_path),
                "stdout"
            ])

        return [
            (self._region_name(record.id), record.sequence.upper())
            for record in iter_fasta_handle(output.splitlines())
        ]

    def _region_name(self, header_id: str) -> str:
        """
        Name a twoBitToFa record the way it was requested.

        A region spanning a whole sequence comes back under the bare sequence
        name, e.g. '>chr1' for chr1:0-1000.
        """
        if _REGION_HEADER.match(header_id) is None and header_id in self.lengths:
            return format_region(header_id, 0, self.lengths[header_id])
        return header_id
