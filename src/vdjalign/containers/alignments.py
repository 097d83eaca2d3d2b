"""Containers for per-read alignment results: gene hits, alignments and the aligner's verdict on a read."""
from dataclasses import dataclass
from enum import IntEnum
from typing import Mapping, Iterable, Optional

from vdjalign.core.genes import Gene, GeneType, Chains
from vdjalign.core.reads import ReadData, SequenceRead


# Classes --------------------------------------------------------------------------------------------------------------
class FailCause(IntEnum):
    """Reasons an engine may give for not aligning a read."""
    NO_HITS = 0
    NO_V_HITS = 1
    NO_J_HITS = 2
    NO_CDR3_PARTS = 3
    V_AND_J_ON_DIFFERENT_TARGETS = 4
    LOW_TOTAL_SCORE = 5

    def __str__(self): return self.name.replace('_', ' ').capitalize()


@dataclass(frozen=True, slots=True)
class Hit:
    """
    A scored match between a read target and a reference gene.

    Attributes:
        gene: The reference gene.
        score: Alignment score (higher is better).
        target: Index of the read target the hit was found on.
    """
    gene: Gene
    score: float
    target: int = 0

    @property
    def chains(self) -> Chains: return self.gene.chains


class Alignment:
    """
    All gene hits found for one read, grouped by gene type and sorted best first.

    Created by an aligner on a worker thread; the classifier may attach the original read data once before the
    alignment is handed to a writer.

    Examples:
        >>> alignment = Alignment(0, {GeneType.VARIABLE: [v_hit], GeneType.JOINING: [j_hit]}, targets)
        >>> alignment.best_hit(GeneType.VARIABLE) is v_hit
        True
    """
    __slots__ = ('_read_id', '_hits', '_targets', 'original_descriptions', 'original_sequences')
    def __init__(self, read_id: int, hits: Mapping[GeneType, Iterable[Hit]], targets: tuple[ReadData, ...]):
        self._read_id = read_id
        self._hits: dict[GeneType, tuple[Hit, ...]] = {
            GeneType(gt): tuple(sorted(h, key=lambda hit: hit.score, reverse=True)) for gt, h in hits.items()
        }
        self._targets = tuple(targets)
        self.original_descriptions: Optional[tuple[bytes, ...]] = None
        self.original_sequences: Optional[tuple[ReadData, ...]] = None

    def __repr__(self):
        tops = ', '.join(f"{gt.letter}={h[0].gene.name if h else '-'}" for gt, h in self._hits.items())
        return f"<Alignment read={self._read_id} {tops}{' chimera' if self.is_chimera else ''}>"

    @classmethod
    def empty(cls, read_id: int, gene_types: Iterable[GeneType], targets: tuple[ReadData, ...]) -> 'Alignment':
        """An alignment with an empty hit collection for every gene type in *gene_types*."""
        return cls(read_id, {gt: () for gt in gene_types}, targets)

    @property
    def read_id(self) -> int: return self._read_id
    @property
    def targets(self) -> tuple[ReadData, ...]: return self._targets
    @property
    def gene_types(self) -> tuple[GeneType, ...]: return tuple(self._hits)
    @property
    def is_empty(self) -> bool: return not any(self._hits.values())

    def hits(self, gene_type: GeneType) -> tuple[Hit, ...]: return self._hits.get(gene_type, ())

    def best_hit(self, gene_type: GeneType) -> Optional[Hit]:
        return hits[0] if (hits := self.hits(gene_type)) else None

    def top_chains(self, gene_type: GeneType) -> Chains:
        return Chains(hit.chains) if (hit := self.best_hit(gene_type)) else Chains()

    @property
    def is_chimera(self) -> bool:
        """True when the best V and J hits share no chain."""
        v, j = self.top_chains(GeneType.VARIABLE), self.top_chains(GeneType.JOINING)
        return bool(v) and bool(j) and v.isdisjoint(j)

    @property
    def chains(self) -> Chains:
        """
        The chains this alignment is attributed to.

        The chains shared by the best V and J hits when both exist, otherwise the chains of whichever of the V,
        J, C or D best hits is found first. Empty for chimeras and alignments without hits.
        """
        v, j = self.top_chains(GeneType.VARIABLE), self.top_chains(GeneType.JOINING)
        if v and j: return Chains(v & j)
        for gene_type in (GeneType.VARIABLE, GeneType.JOINING, GeneType.CONSTANT, GeneType.DIVERSITY):
            if chains := self.top_chains(gene_type): return chains
        return Chains()


@dataclass(frozen=True, slots=True)
class AlignmentResult:
    """
    An aligner's verdict on one read: the read plus either an alignment or ``None``.

    Attributes:
        read: The input read.
        alignment: The alignment, or ``None`` if the read could not be aligned.
        fail_cause: Optional reason for the failure, ignored when *alignment* is set.
    """
    read: SequenceRead
    alignment: Optional[Alignment] = None
    fail_cause: Optional[FailCause] = None

    @property
    def read_id(self) -> int: return self.read.id
    @property
    def aligned(self) -> bool: return self.alignment is not None
