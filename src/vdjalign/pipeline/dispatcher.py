"""
Chunked dispatch of reads to a pool of alignment worker threads.

Reads are numbered in arrival order, grouped into chunks, prefetched into a bounded queue by a background thread
and aligned on a ``ThreadPoolExecutor``. Results come out as ``(arrival, result)`` pairs in completion order;
``OrderedOutput`` keyed on the arrival number restores input order whatever the read ids look like.
"""
from concurrent.futures import ThreadPoolExecutor, Future, wait, FIRST_COMPLETED
from typing import Iterable, Iterator

from vdjalign.core.reads import SequenceRead
from vdjalign.containers.alignments import AlignmentResult
from vdjalign.engines.aligner import BaseAligner
from vdjalign.utils import Prefetcher, chunked


# Constants ------------------------------------------------------------------------------------------------------------
CHUNK_SIZE = 64
BUFFER_SIZE = 16


# Classes --------------------------------------------------------------------------------------------------------------
class ParallelProcessor:
    """
    Aligns reads on a pool of worker threads.

    The reader is consumed lazily, *chunk_size* reads at a time. At most *buffer_size* chunks wait in the
    prefetch queue and at most two chunks per thread are submitted to the pool, so a slow pool blocks the
    prefetch thread instead of letting it read ahead. Workers only read from the aligner. An exception raised by
    the aligner or the reader stops the pool and is re-raised by the iterator.

    Examples:
        >>> with ParallelProcessor(reader, aligner, threads=8) as processor:
        ...     for _, result in OrderedOutput(processor, key=itemgetter(0)):
        ...         ...
    """
    def __init__(self, reads: Iterable[SequenceRead], aligner: BaseAligner, threads: int = 1,
                 chunk_size: int = CHUNK_SIZE, buffer_size: int = BUFFER_SIZE):
        if threads < 1: raise ValueError(f'Number of threads must be positive, got {threads}')
        self._aligner = aligner
        self._threads = threads
        self._max_pending = threads * 2
        self._prefetcher = Prefetcher(chunked(enumerate(reads), chunk_size), queue_size=buffer_size)
        self._pool = ThreadPoolExecutor(max_workers=threads, thread_name_prefix='vdjalign-align')

    @property
    def threads(self) -> int: return self._threads

    def _align(self, chunk: list[tuple[int, SequenceRead]]) -> list[tuple[int, AlignmentResult]]:
        arrivals, reads = zip(*chunk)
        return list(zip(arrivals, self._aligner.align_batch(reads)))

    def __iter__(self) -> Iterator[tuple[int, AlignmentResult]]:
        chunks = iter(self._prefetcher)
        pending: set[Future] = set()
        exhausted = False
        try:
            while True:
                while not exhausted and len(pending) < self._max_pending:
                    if (chunk := next(chunks, None)) is None: exhausted = True
                    else: pending.add(self._pool.submit(self._align, chunk))
                if not pending: return
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done: yield from future.result()
        except Exception:
            self.close()
            raise

    def close(self):
        """Stops the prefetch thread and the pool; chunks not yet aligned are dropped."""
        self._prefetcher.close()
        self._pool.shutdown(wait=True, cancel_futures=True)

    def __enter__(self): return self
    def __exit__(self, exc_type, exc_val, exc_tb): self.close()
