"""Sequencing reads (single and paired-end) and the layouts used to turn them into alignment targets."""
from dataclasses import dataclass
from enum import Enum

import numpy as np


# Constants ------------------------------------------------------------------------------------------------------------
_COMPLEMENT = bytes.maketrans(b'ACGTUNRYSWKMBDHVacgtunryswkmbdhv', b'TGCAANYRSWMKVHDBtgcaanyrswmkvhdb')
PHRED_OFFSET = 33


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(frozen=True, slots=True, eq=False)
class ReadData:
    """
    One mate of a read: description line, nucleotides and per-base phred scores.

    Attributes:
        description: Header line without the leading ``@``/``>``.
        sequence: Nucleotides as ASCII bytes.
        quality: Phred scores as a ``uint8`` array with the same length as *sequence*.
    """
    description: bytes
    sequence: bytes
    quality: np.ndarray

    def __post_init__(self):
        if len(self.quality) != len(self.sequence):
            raise ValueError(f'Quality length ({len(self.quality)}) differs from sequence length '
                             f'({len(self.sequence)}) for {self.description!r}')

    def __len__(self): return len(self.sequence)

    def __eq__(self, other):
        if not isinstance(other, ReadData): return NotImplemented
        return (self.description == other.description and self.sequence == other.sequence and
                np.array_equal(self.quality, other.quality))

    __hash__ = None

    @classmethod
    def from_ascii(cls, description: bytes, sequence: bytes, quality: bytes = None) -> 'ReadData':
        """Builds a mate from raw FASTQ fields; a missing quality string gives a constant maximum quality."""
        if quality is None: qual = np.full(len(sequence), 40, dtype=np.uint8)
        else: qual = np.frombuffer(quality, dtype=np.uint8) - PHRED_OFFSET
        return cls(description, sequence, qual.astype(np.uint8, copy=False))

    @property
    def quality_ascii(self) -> bytes: return (self.quality + PHRED_OFFSET).astype(np.uint8).tobytes()

    def reverse_complement(self) -> 'ReadData':
        return ReadData(self.description, self.sequence.translate(_COMPLEMENT)[::-1], self.quality[::-1].copy())


class SequenceRead:
    """
    A single sequencing observation: one (single-end) or two (paired-end) mates sharing an ordinal id.

    Reads are immutable once produced by a reader.
    """
    __slots__ = ('_id', '_mates')
    def __init__(self, id_: int, *mates: ReadData):
        if not 1 <= len(mates) <= 2: raise ValueError(f'A read has one or two mates, got {len(mates)}')
        self._id = id_
        self._mates = mates

    @property
    def id(self) -> int: return self._id
    @property
    def paired(self) -> bool: return len(self._mates) == 2

    def __len__(self): return len(self._mates)
    def __getitem__(self, item: int) -> ReadData: return self._mates[item]
    def __iter__(self): return iter(self._mates)
    def __repr__(self): return f"{self.__class__.__name__}(id={self._id}, mates={len(self)})"

    def __eq__(self, other):
        if not isinstance(other, SequenceRead): return NotImplemented
        return self._id == other._id and self._mates == other._mates

    __hash__ = None

    def descriptions(self) -> tuple[bytes, ...]: return tuple(m.description for m in self._mates)
    def sequences(self) -> tuple[ReadData, ...]: return self._mates


class SingleRead(SequenceRead):
    __slots__ = ()
    def __init__(self, id_: int, mate: ReadData): super().__init__(id_, mate)


class PairedRead(SequenceRead):
    __slots__ = ()
    def __init__(self, id_: int, r1: ReadData, r2: ReadData): super().__init__(id_, r1, r2)


class ReadsLayout(str, Enum):
    """
    Relative orientation of paired-end mates.

    ``OPPOSITE`` mates come from opposite strands (standard Illumina), ``COLLINEAR`` from the same strand and
    ``UNKNOWN`` means both orientations are tried.
    """
    OPPOSITE = 'Opposite'
    COLLINEAR = 'Collinear'
    UNKNOWN = 'Unknown'

    def create_targets(self, read: SequenceRead) -> list[tuple[ReadData, ...]]:
        """
        Returns the candidate target tuples for *read*, most likely orientation first.

        Examples:
            >>> ReadsLayout.OPPOSITE.create_targets(PairedRead(0, r1, r2))[0] == (r1, r2.reverse_complement())
            True
        """
        if not read.paired: return [(read[0],)]
        r1, r2 = read[0], read[1]
        if self is ReadsLayout.COLLINEAR: return [(r1, r2)]
        if self is ReadsLayout.OPPOSITE: return [(r1, r2.reverse_complement())]
        return [(r1, r2.reverse_complement()), (r1.reverse_complement(), r2)]
