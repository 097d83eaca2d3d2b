"""
Base class for alignment engines.

The scoring itself is provided by subclasses; this module fixes the contract the pipeline relies on: genes are
registered once before alignment starts, after which the engine is only read from worker threads.
"""
from abc import ABC, abstractmethod
from typing import Iterable

from vdjalign.core.genes import Gene, GeneType
from vdjalign.core.reads import SequenceRead
from vdjalign.containers.alignments import AlignmentResult
from vdjalign.engines.parameters import AlignerParameters


# Classes --------------------------------------------------------------------------------------------------------------
class BaseAligner(ABC):
    """
    Aligns reads against registered reference genes.

    Subclasses implement ``align``; it must be thread-safe with respect to the registered genes (which are not
    modified once alignment starts) and must return an ``AlignmentResult`` for every read, using
    ``alignment=None`` for reads it could not align rather than raising.

    Attributes:
        parameters: The mutable aligner configuration; its features to align may only change before the first
            gene is registered.
        paired: Whether reads are paired-end.
        merge: Whether overlapping paired mates may be merged by the engine.

    Examples:
        >>> aligner = MyAligner(AlignerParameters.preset('default'))
        >>> aligner.add_gene(gene)
        >>> results = aligner.align_batch(reads)
    """
    def __init__(self, parameters: AlignerParameters, paired: bool = False, merge: bool = True):
        self.parameters = parameters
        self.paired = paired
        self.merge = merge
        self._genes: dict[GeneType, list[Gene]] = {gt: [] for gt in GeneType}

    def __repr__(self):
        counts = ', '.join(f'{gt.letter}={len(genes)}' for gt, genes in self._genes.items())
        return f"{self.__class__.__name__}({counts})"

    @property
    def has_genes(self) -> bool: return any(self._genes.values())

    def add_gene(self, gene: Gene):
        """
        Registers *gene* as an alignment reference.

        Raises:
            ValueError: If the gene does not contain the feature to align for its type.
        """
        if not self.parameters.contains_required_feature(gene):
            raise ValueError(f'Gene {gene.name} does not contain {self.parameters.feature_to_align(gene.gene_type)}')
        self._genes[gene.gene_type].append(gene)
        self._on_gene_added(gene)

    def _on_gene_added(self, gene: Gene):
        """Hook for subclasses that build an index per gene."""
        pass

    def genes(self, gene_type: GeneType) -> list[Gene]: return list(self._genes[gene_type])
    @property
    def v_genes(self) -> list[Gene]: return self.genes(GeneType.VARIABLE)
    @property
    def j_genes(self) -> list[Gene]: return self.genes(GeneType.JOINING)

    @abstractmethod
    def align(self, read: SequenceRead) -> AlignmentResult: ...

    def align_batch(self, reads: Iterable[SequenceRead]) -> list[AlignmentResult]:
        """Aligns each read independently, returning results in the order of *reads*."""
        return [self.align(read) for read in reads]
