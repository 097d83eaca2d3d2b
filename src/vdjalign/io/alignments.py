"""In-memory alignment writer."""
from typing import Optional

from vdjalign.containers.alignments import Alignment


# Classes --------------------------------------------------------------------------------------------------------------
class AlignmentCollector:
    """
    Collects the ordered alignment stream in memory.

    Useful when alignments are consumed by Python code rather than persisted.

    Attributes:
        header: ``(aligner class name, feature to align per gene type letter)`` recorded by ``write_header``.
        alignments: Alignments in the order they were written.
        processed_count: Number of input reads, set after the last alignment.
    """
    def __init__(self):
        self.header: Optional[tuple[str, dict[str, str]]] = None
        self.alignments: list[Alignment] = []
        self.processed_count: Optional[int] = None
        self.closed = False

    def __len__(self): return len(self.alignments)
    def __iter__(self): return iter(self.alignments)
    def __repr__(self): return f"<AlignmentCollector: {len(self)} alignments>"

    def write_header(self, aligner):
        params = aligner.parameters
        self.header = (aligner.__class__.__name__,
                       {gt.letter: str(params.feature_to_align(gt)) for gt in params.gene_types})

    def write(self, alignment: Alignment):
        if self.closed: raise ValueError('Write to a closed AlignmentCollector')
        self.alignments.append(alignment)

    def set_processed_count(self, n: int): self.processed_count = n

    def close(self): self.closed = True
    def __enter__(self): return self
    def __exit__(self, exc_type, exc_val, exc_tb): self.close()
