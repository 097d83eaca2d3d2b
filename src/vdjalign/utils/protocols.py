"""Structural interfaces for the collaborators the alignment action is wired to."""
from typing import Protocol, Iterator, Iterable, runtime_checkable


@runtime_checkable
class ReadSource(Protocol):
    """
    A lazy, ordered source of reads (e.g. ``FastqReader``).

    Reads are produced with unique, strictly increasing ids. ``number_of_reads`` counts the reads handed out so
    far. Opened on ``__enter__`` and released on ``__exit__``.
    """
    @property
    def number_of_reads(self) -> int: ...
    def __iter__(self) -> Iterator['SequenceRead']: ...
    def __enter__(self): ...
    def __exit__(self, exc_type, exc_val, exc_tb): ...


@runtime_checkable
class ReadSink(Protocol):
    """A destination for reads that failed to align (e.g. ``FastqWriter``)."""
    def write(self, read: 'SequenceRead'): ...
    def __enter__(self): ...
    def __exit__(self, exc_type, exc_val, exc_tb): ...


@runtime_checkable
class AlignmentWriter(Protocol):
    """
    A destination for the ordered alignment stream.

    ``write_header`` is called once before any record, ``set_processed_count`` once after the last one.
    """
    def write_header(self, aligner: 'BaseAligner'): ...
    def write(self, alignment: 'Alignment'): ...
    def set_processed_count(self, n: int): ...
    def __enter__(self): ...
    def __exit__(self, exc_type, exc_val, exc_tb): ...


@runtime_checkable
class GeneSource(Protocol):
    """An enumerable gene set filterable by chain (e.g. ``GeneLibrary``)."""
    @property
    def library_id(self) -> str: ...
    def genes(self, chains: 'Chains') -> Iterable['Gene']: ...
