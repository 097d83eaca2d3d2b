"""
Module for reading and writing sequencing reads.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union, Generator, BinaryIO, Optional

from vdjalign import VdjalignError
from vdjalign.core.reads import SequenceRead
from vdjalign.utils import Xopen


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class SeqIOError(VdjalignError, IOError):
    """Base class for sequence I/O errors."""

class TruncatedFileError(SeqIOError):
    """Raised when a file appears to be truncated."""

class ParserError(SeqIOError):
    """Raised when a file does not follow its format."""


# Classes --------------------------------------------------------------------------------------------------------------
class BaseReader(ABC):
    """
    Abstract base class for read files.

    Files are opened on ``__enter__`` (or lazily on first iteration) and closed on ``__exit__``. Reads are numbered
    0, 1, 2 ... in file order; ``number_of_reads`` counts the reads yielded so far.
    """
    _CHUNK_SIZE = 65536
    def __init__(self, *files: Union[str, Path, BinaryIO]):
        self._openers = [Xopen(file, mode='rb') for file in files]
        self._handles: Optional[list[BinaryIO]] = None
        self._number_of_reads = 0

    def __repr__(self): return f"{self.__class__.__name__}({', '.join(str(o.file) for o in self._openers)})"

    @property
    def number_of_reads(self) -> int: return self._number_of_reads

    def __enter__(self):
        if self._handles is None:
            self._handles = []
            try:
                for opener in self._openers: self._handles.append(opener.__enter__())
            except Exception:
                self.close()
                raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb): self.close()

    def close(self):
        """Closes any open file; safe to call more than once."""
        if self._handles is None: return
        for opener in self._openers[:len(self._handles)]: opener.__exit__(None, None, None)
        self._handles = None

    def __iter__(self) -> Generator[SequenceRead, None, None]:
        if self._handles is None: self.__enter__()
        for read in self._reads(self._handles):
            self._number_of_reads += 1
            yield read

    @abstractmethod
    def _reads(self, handles: list[BinaryIO]) -> Generator[SequenceRead, None, None]: ...

    def _next_id(self) -> int: return self._number_of_reads


class BaseWriter(ABC):
    """
    Abstract base class for read file writers.

    Examples:
        >>> with FastqWriter("failed.fastq.gz") as w:
        ...     w.write(read)
    """
    def __init__(self, *files: Union[str, Path, BinaryIO]):
        self._openers = [Xopen(file, mode='wb') for file in files]
        self._handles: Optional[list[BinaryIO]] = None

    def __repr__(self): return f"{self.__class__.__name__}({', '.join(str(o.file) for o in self._openers)})"

    def __enter__(self):
        if self._handles is None:
            self._handles = []
            try:
                for opener in self._openers: self._handles.append(opener.__enter__())
            except Exception:
                self.close()
                raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb): self.close()

    def close(self):
        """Flushes and closes any open file; safe to call more than once."""
        if self._handles is None: return
        for handle, opener in zip(self._handles, self._openers):
            handle.flush()
            opener.__exit__(None, None, None)
        self._handles = None

    def write(self, *reads: SequenceRead):
        if self._handles is None: self.__enter__()
        for read in reads: self.write_one(read)

    @abstractmethod
    def write_one(self, read: SequenceRead): ...
